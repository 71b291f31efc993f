"""GitHub pull requests, enough to find the branch they come from."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote, urlsplit

import requests

from omnix.nix.flake_url import FlakeUrl

_PR_NUMBER = re.compile(r"\+?[0-9]+")
_U64_MAX = 2**64 - 1
_USER_AGENT = "omnix"


@dataclass(frozen=True)
class PullRequestRef:
    """A reference to a GitHub pull request."""

    owner: str
    repo: str
    pr: int

    @classmethod
    def from_web_url(cls, url: str) -> Optional[PullRequestRef]:
        """Parse ``https://github.com/<owner>/<repo>/pull/<n>``; else ``None``."""
        try:
            parts = urlsplit(url)
            host = parts.hostname
        except ValueError:
            return None
        if parts.scheme != "https" or host != "github.com":
            return None
        path = parts.path or "/"
        segments = (path[1:] if path.startswith("/") else path).split("/")
        if len(segments) != 4 or segments[2] != "pull":
            return None
        owner, repo, _, number = segments
        if not _PR_NUMBER.fullmatch(number):
            return None
        pr = int(number)
        if pr > _U64_MAX:
            return None
        return cls(owner=owner, repo=repo, pr=pr)

    def api_url(self) -> str:
        """The GitHub API URL of this pull request."""
        return f"https://api.github.com/repos/{self.owner}/{self.repo}/pulls/{self.pr}"

    def __str__(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}/pull/{self.pr}"


@dataclass(frozen=True)
class PullRequest:
    """The parts of a GitHub API pull request response used here."""

    url: str
    head_ref: str
    head_repo_full_name: str

    @classmethod
    def from_json(cls, data: Any) -> PullRequest:
        """Build from a decoded GitHub API response."""
        try:
            url = data["url"]
            head = data["head"]
            ref = head["ref"]
            full_name = head["repo"]["full_name"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid pull request response: {exc!r}") from exc
        if not all(isinstance(v, str) for v in (url, ref, full_name)):
            raise ValueError("invalid pull request response: expected strings")
        return cls(url=url, head_ref=ref, head_repo_full_name=full_name)

    @classmethod
    def get(cls, ref: PullRequestRef) -> PullRequest:
        """Fetch the pull request through the GitHub API."""
        url = ref.api_url()
        try:
            resp = requests.get(url, headers={"User-Agent": _USER_AGENT})
        except requests.RequestException as exc:
            raise RuntimeError(f"cannot create request: {url}") from exc
        if not 200 <= resp.status_code < 300:
            raise RuntimeError(f"cannot make request: {resp.status_code}")
        try:
            return cls.from_json(resp.json())
        except ValueError as exc:
            raise RuntimeError(f"cannot parse response: {url}") from exc

    def flake_url(self) -> FlakeUrl:
        """A flake URL for the branch of this pull request."""
        # `github:` URLs cannot hold special characters in the branch name.
        encoded = quote(self.head_ref, safe="")
        return FlakeUrl(
            f"git+https://github.com/{self.head_repo_full_name}?ref={encoded}"
        )