"""A reference to a flake living somewhere."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from omnix.ci.pull_request import PullRequest, PullRequestRef
from omnix.nix.flake_url import FlakeUrl


@dataclass(frozen=True)
class FlakeRef:
    """Either a GitHub pull request or a flake URL nix understands."""

    pr: Optional[PullRequestRef] = None
    flake: Optional[FlakeUrl] = None

    def __post_init__(self) -> None:
        if (self.pr is None) == (self.flake is None):
            raise ValueError("FlakeRef holds exactly one of pr or flake")

    @classmethod
    def parse(cls, s: str) -> FlakeRef:
        """A pull request web URL, or else any flake URL."""
        pr = PullRequestRef.from_web_url(s)
        if pr is not None:
            return cls(pr=pr)
        return cls(flake=FlakeUrl(s))

    def to_flake_url(self) -> FlakeUrl:
        """A flake URL nix commands recognise; pull requests are looked up."""
        if self.pr is not None:
            return PullRequest.get(self.pr).flake_url()
        return self.flake

    def __str__(self) -> str:
        return str(self.pr) if self.pr is not None else str(self.flake)