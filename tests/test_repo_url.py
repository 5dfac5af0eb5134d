"""Tests for repository reference parsing."""

from __future__ import annotations

import pytest

from repowiki.errors import InvalidRepoUrlError
from repowiki.repo_url import parse_repo_url


@pytest.mark.parametrize(
    "value",
    [
        "https://github.com/acme/shop",
        "https://github.com/acme/shop/",
        "https://github.com/acme/shop.git",
        "git@github.com:acme/shop.git",
        " acme/shop ",
    ],
)
def test_parse_repo_url_variants(value: str) -> None:
    parsed = parse_repo_url(value)
    assert (parsed.owner, parsed.repo) == ("acme", "shop")
    assert parsed.slug == "acme/shop"


@pytest.mark.parametrize("value", ["", "https://gitlab.com/acme/shop", "acme", "https://github.com/acme/shop/tree/main"])
def test_parse_repo_url_rejects_invalid(value: str) -> None:
    with pytest.raises(InvalidRepoUrlError) as excinfo:
        parse_repo_url(value)
    assert excinfo.value.status_code == 400
    assert excinfo.value.code == "INVALID_REPO_URL"
