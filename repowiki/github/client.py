"""Minimal GitHub REST client for trees, file contents and branch heads."""

from __future__ import annotations

import base64
import binascii
import json
import socket
import time
from typing import Callable, Dict, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from ..errors import RepositoryFetchError, is_retryable_error
from ..filters import should_include_path
from ..logging import get_logger
from ..models import RepoFile, RepoFileContent, RepoHead
from ..pipeline.concurrency import run_bounded

Transport = Callable[[str, Dict[str, str], float], object]


class GitHubHTTPError(RuntimeError):
    """Transport-level failure; the message carries the status for retry checks."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class GitHubClient:
    """Fetches repository metadata and file contents over the REST API."""

    BACKOFF_BASE_SECONDS = 0.3

    def __init__(
        self,
        token: str | None = None,
        *,
        api_url: str = "https://api.github.com",
        max_file_bytes: int = 150_000,
        max_retries: int = 3,
        fetch_concurrency: int = 6,
        request_timeout: float = 30.0,
        transport: Transport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.max_file_bytes = max_file_bytes
        self.max_retries = max_retries
        self.fetch_concurrency = fetch_concurrency
        self.request_timeout = request_timeout
        self._transport = transport or self._urllib_transport
        self._sleep = sleep
        self.logger = get_logger("github")

    def get_repo_head(self, owner: str, repo: str) -> RepoHead:
        repo_data = self._get_json(f"/repos/{owner}/{repo}")
        default_branch = str(repo_data.get("default_branch") or "main")
        branch_data = self._get_json(f"/repos/{owner}/{repo}/branches/{quote(default_branch, safe='')}")
        commit = branch_data.get("commit") if isinstance(branch_data, dict) else None
        sha = commit.get("sha") if isinstance(commit, dict) else None
        if not isinstance(sha, str) or not sha:
            raise RepositoryFetchError(
                "Unable to resolve repository head commit",
                details={"owner": owner, "repo": repo, "branch": default_branch},
            )
        return RepoHead(default_branch=default_branch, head_sha=sha)

    def get_file_tree(self, owner: str, repo: str, sha: str) -> List[RepoFile]:
        """Return filtered blobs of the recursive tree at ``sha``."""
        data = self._get_json(f"/repos/{owner}/{repo}/git/trees/{sha}?recursive=true")
        entries = data.get("tree") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise RepositoryFetchError("Repository tree response is malformed", details={"sha": sha})
        if data.get("truncated"):
            self.logger.warning("Tree listing for %s/%s was truncated by GitHub", owner, repo)
        files: List[RepoFile] = []
        for entry in entries:
            if not isinstance(entry, dict) or entry.get("type") != "blob":
                continue
            path = entry.get("path")
            if not isinstance(path, str) or not should_include_path(path):
                continue
            size = entry.get("size")
            files.append(RepoFile(path=path, size=size if isinstance(size, int) else 0))
        self.logger.debug("Tree for %s/%s@%s has %d eligible files", owner, repo, sha[:7], len(files))
        return files

    def get_file_contents(
        self,
        owner: str,
        repo: str,
        ref: str,
        paths: Sequence[str],
    ) -> List[RepoFileContent]:
        """Fetch files best-effort; oversize and non-file entries are skipped."""
        unique_paths = [path for path in dict.fromkeys(paths) if should_include_path(path)]

        def _fetch(path: str) -> Optional[RepoFileContent]:
            return self._fetch_with_retry(owner, repo, ref, path)

        fetched = run_bounded(_fetch, unique_paths, max_workers=self.fetch_concurrency)
        files = [file for file in fetched if file is not None]
        self.logger.debug("Fetched %d/%d files from %s/%s", len(files), len(unique_paths), owner, repo)
        return files

    def _fetch_with_retry(self, owner: str, repo: str, ref: str, path: str) -> Optional[RepoFileContent]:
        attempt = 0
        while True:
            try:
                return self._fetch_single_file(owner, repo, ref, path)
            except GitHubHTTPError as exc:
                attempt += 1
                if attempt > self.max_retries or not is_retryable_error(exc):
                    self.logger.error(
                        "Failed to fetch %s from %s/%s after %d attempt(s): %s",
                        path,
                        owner,
                        repo,
                        attempt,
                        exc,
                        extra={"meta": {"path": path, "status": exc.status}},
                    )
                    raise RepositoryFetchError(
                        "Failed to fetch repository content", details={"path": path}
                    ) from exc
                delay = self.BACKOFF_BASE_SECONDS * 2 ** (attempt - 1)
                self.logger.warning(
                    "Retrying %s in %.1fs (%s)", path, delay, exc, extra={"meta": {"path": path, "attempt": attempt}}
                )
                self._sleep(delay)

    def _fetch_single_file(self, owner: str, repo: str, ref: str, path: str) -> Optional[RepoFileContent]:
        encoded_path = "/".join(quote(segment, safe="") for segment in path.split("/"))
        data = self._request_json(
            f"/repos/{owner}/{repo}/contents/{encoded_path}?ref={quote(ref, safe='')}"
        )
        if not isinstance(data, dict) or data.get("type") != "file":
            return None
        encoded = data.get("content")
        size = data.get("size") if isinstance(data.get("size"), int) else 0
        if not isinstance(encoded, str) or not encoded or size > self.max_file_bytes:
            return None
        try:
            content = base64.b64decode(encoded).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError):
            self.logger.debug("Skipping %s: content is not valid base64", path)
            return None
        return RepoFileContent(path=path, content=content, size=size)

    def _get_json(self, endpoint: str) -> dict:
        try:
            data = self._request_json(endpoint)
        except GitHubHTTPError as exc:
            raise RepositoryFetchError(
                f"GitHub request failed: {exc}", details={"endpoint": endpoint, "status": exc.status}
            ) from exc
        if not isinstance(data, dict):
            raise RepositoryFetchError("Unexpected GitHub response", details={"endpoint": endpoint})
        return data

    def _request_json(self, endpoint: str) -> object:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "repowiki",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return self._transport(f"{self.api_url}{endpoint}", headers, self.request_timeout)

    @staticmethod
    def _urllib_transport(url: str, headers: Dict[str, str], timeout: float) -> object:
        request = Request(url, headers=headers, method="GET")
        try:
            with urlopen(request, timeout=timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore").strip() if hasattr(exc, "read") else ""
            message = f"HTTP {exc.code}: {exc.reason}"
            if detail:
                message = f"{message} {detail[:200]}"
            raise GitHubHTTPError(message, status=exc.code) from exc
        except (socket.timeout, TimeoutError) as exc:
            raise GitHubHTTPError("Request timeout") from exc
        except URLError as exc:
            raise GitHubHTTPError(f"Connection failed: {exc.reason}") from exc
        try:
            return json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise GitHubHTTPError("Invalid JSON payload") from exc


__all__ = ["GitHubClient", "GitHubHTTPError"]
