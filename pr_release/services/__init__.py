"""Services: git access, pull request fetching, resolution and publishing."""
