"""GitHub blob permalinks pinned to a commit."""

from __future__ import annotations

from urllib.parse import quote

_BLOB_URL_FMT = "https://github.com/{owner}/{repo}/blob/{sha}/{path}{anchor}"


def build_permalink(
    *,
    owner: str,
    repo: str,
    sha: str,
    path: str,
    start_line: int,
    end_line: int | None = None,
) -> str:
    """Return a line-anchored link; single-line ranges omit the ``-L`` suffix."""
    encoded_path = "/".join(quote(segment, safe="") for segment in path.split("/"))
    if end_line is not None and end_line > start_line:
        anchor = f"#L{start_line}-L{end_line}"
    else:
        anchor = f"#L{start_line}"
    return _BLOB_URL_FMT.format(owner=owner, repo=repo, sha=sha, path=encoded_path, anchor=anchor)


__all__ = ["build_permalink"]
