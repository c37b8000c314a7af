"""Shared utilities (release body rendering)."""

from pr_release.utils.markdown import DEFAULT_ITEM_FORMAT, DEFAULT_TEMPLATE, load_template, render_pr_body

__all__ = ["DEFAULT_ITEM_FORMAT", "DEFAULT_TEMPLATE", "load_template", "render_pr_body"]
