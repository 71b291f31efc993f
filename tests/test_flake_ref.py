from unittest import mock

import pytest

from omnix.ci.flake_ref import FlakeRef
from omnix.ci.pull_request import PullRequest, PullRequestRef
from omnix.nix.flake_url import FlakeUrl

RESPONSE = {
    "url": "https://api.github.com/repos/srid/nixci/pulls/19",
    "head": {"ref": "feature", "repo": {"full_name": "srid/nixci"}},
}


def test_github_pr():
    assert FlakeRef.parse("https://github.com/srid/nixci/pull/19") == FlakeRef(
        pr=PullRequestRef(owner="srid", repo="nixci", pr=19)
    )


def test_current_dir():
    assert FlakeRef.parse(".") == FlakeRef(flake=FlakeUrl("."))


def test_flake_url():
    assert FlakeRef.parse("github:srid/nixci") == FlakeRef(flake=FlakeUrl("github:srid/nixci"))


@pytest.mark.parametrize("s", ["https://github.com/srid/nixci/pull/19", "github:srid/nixci", "."])
def test_str_round_trip(s):
    assert str(FlakeRef.parse(s)) == s


def test_requires_exactly_one():
    with pytest.raises(ValueError):
        FlakeRef()


def test_to_flake_url_for_flake():
    assert FlakeRef.parse("github:srid/nixci").to_flake_url() == FlakeUrl("github:srid/nixci")


def test_to_flake_url_for_pr():
    resp = mock.Mock(status_code=200)
    resp.json.return_value = RESPONSE
    with mock.patch("requests.get", return_value=resp):
        url = FlakeRef.parse("https://github.com/srid/nixci/pull/19").to_flake_url()
    assert url == PullRequest.from_json(RESPONSE).flake_url()