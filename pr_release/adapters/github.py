"""GitHub API adapter."""

import logging
from datetime import datetime
from typing import Any, Dict, List

import requests

from pr_release.adapters.base import CodeReviewHost
from pr_release.errors import TransportError
from pr_release.models import PullRequest, User

LOG = logging.getLogger("pr_release.adapters.github")

DEFAULT_TIMEOUT = 30


def _parse_iso(s: str | None) -> datetime | None:
    if not s:
        return None
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _pr_from_api(data: Dict[str, Any]) -> PullRequest:
    user = data.get("user") or {}
    head = data.get("head") or {}
    base = data.get("base") or {}
    return PullRequest(
        number=data["number"],
        title=data.get("title") or "",
        body=data.get("body") or "",
        user=User(
            login=user.get("login", ""),
            html_url=user.get("html_url", ""),
            avatar_url=user.get("avatar_url", ""),
        ),
        state=data.get("state", "open"),
        merged_at=_parse_iso(data.get("merged_at")),
        merge_commit_sha=data.get("merge_commit_sha"),
        head_branch=head.get("ref", ""),
        base_branch=base.get("ref", ""),
        html_url=data.get("html_url"),
        url=data.get("url"),
        created_at=_parse_iso(data.get("created_at")),
    )


def _error_message(resp: requests.Response) -> str:
    msg = resp.text or resp.reason or str(resp.status_code)
    try:
        msg = resp.json().get("message", msg)
    except (ValueError, AttributeError):
        pass
    if resp.status_code in (403, 429) and resp.headers.get("X-RateLimit-Remaining") == "0":
        reset = resp.headers.get("X-RateLimit-Reset", "?")
        msg = f"rate limit exceeded (resets at {reset}): {msg}"
    return msg


class GitHubAdapter(CodeReviewHost):
    """GitHub REST API implementation."""

    def __init__(self, token: str, api_url: str = "https://api.github.com") -> None:
        self._api_url = api_url.rstrip("/")
        self._session = requests.Session()
        self._session.headers["Authorization"] = f"Bearer {token}"
        self._session.headers["Accept"] = "application/vnd.github+json"
        self._session.headers["X-GitHub-Api-Version"] = "2022-11-28"

    def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
        json: Dict[str, Any] | None = None,
        timeout: float | None = None,
        allow_not_found: bool = False,
    ) -> requests.Response | None:
        url = f"{self._api_url}{path}" if path.startswith("/") else f"{self._api_url}/{path}"
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=timeout if timeout is not None else DEFAULT_TIMEOUT,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {path}: {e}") from e
        if allow_not_found and resp.status_code == 404:
            LOG.debug("%s %s: not found", method, path)
            return None
        if resp.status_code >= 400:
            raise TransportError(f"{resp.status_code}: {_error_message(resp)}", status_code=resp.status_code)
        return resp

    def get_pull_request(self, repo: str, number: int, timeout: float | None = None) -> PullRequest | None:
        resp = self._request("GET", f"/repos/{repo}/pulls/{number}", timeout=timeout, allow_not_found=True)
        if resp is None:
            return None
        return _pr_from_api(resp.json())

    def list_pull_requests_for_commit(self, repo: str, sha: str, timeout: float | None = None) -> List[PullRequest]:
        try:
            resp = self._request("GET", f"/repos/{repo}/commits/{sha}/pulls", timeout=timeout, allow_not_found=True)
        except TransportError as e:
            # 422: commit SHA unknown to the host
            if e.status_code == 422:
                return []
            raise
        if resp is None:
            return []
        return [_pr_from_api(d) for d in resp.json() or []]

    def list_closed_pull_requests(
        self,
        repo: str,
        page: int,
        per_page: int,
        timeout: float | None = None,
    ) -> List[PullRequest]:
        params = {"state": "closed", "sort": "created", "direction": "desc", "page": page, "per_page": per_page}
        resp = self._request("GET", f"/repos/{repo}/pulls", params=params, timeout=timeout)
        return [_pr_from_api(d) for d in resp.json() or []]

    def list_open_pull_requests(self, repo: str, head: str, base: str) -> List[PullRequest]:
        params = {"state": "open", "head": head, "base": base, "sort": "created", "direction": "desc"}
        resp = self._request("GET", f"/repos/{repo}/pulls", params=params)
        return [_pr_from_api(d) for d in resp.json() or []]

    def create_pr(self, repo: str, title: str, body: str, head: str, base: str) -> PullRequest:
        resp = self._request(
            "POST",
            f"/repos/{repo}/pulls",
            json={"title": title, "body": body, "head": head, "base": base},
        )
        return _pr_from_api(resp.json())

    def update_pr(self, repo: str, number: int, title: str, body: str) -> PullRequest:
        resp = self._request("PATCH", f"/repos/{repo}/pulls/{number}", json={"title": title, "body": body})
        return _pr_from_api(resp.json())

    def request_reviewers(self, repo: str, number: int, reviewers: List[str]) -> PullRequest:
        resp = self._request(
            "POST",
            f"/repos/{repo}/pulls/{number}/requested_reviewers",
            json={"reviewers": reviewers},
        )
        return _pr_from_api(resp.json())

    def add_labels(self, repo: str, number: int, labels: List[str]) -> List[str]:
        resp = self._request("POST", f"/repos/{repo}/issues/{number}/labels", json={"labels": labels})
        return [lb["name"] for lb in (resp.json() or []) if isinstance(lb, dict) and "name" in lb]
