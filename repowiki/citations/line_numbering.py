"""Line-numbered views of file text used as generation context.

Every number shown to the generation backend is the true 1-based source line,
so anything it cites can be checked against :func:`count_lines` later.

Line counting follows plain ``str.split("\\n")`` semantics: a trailing newline
produces one extra, empty, final line. ``"a\\nb\\n"`` therefore has three lines
and a citation ending on line 3 is accepted. The empty string has one line.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from ..models import RepoFileContent

_OMITTED_FMT = "... ({count} lines omitted) ..."


def _format_line(number: int, line: str) -> str:
    return f"{number:>5} | {line}"


def count_lines(text: str) -> int:
    """Return the number of newline-delimited segments in ``text``."""
    return len(text.split("\n"))


def number_all(text: str) -> str:
    """Prefix every line with its right-aligned line number."""
    return "\n".join(_format_line(index + 1, line) for index, line in enumerate(text.split("\n")))


def windowed(text: str, max_lines: int, head_lines: int, tail_lines: int) -> str:
    """Return a numbered view that keeps the head and tail of long files.

    Files with at most ``max_lines`` lines are numbered in full. Longer files
    keep the first ``head_lines`` and the last ``tail_lines`` lines with their
    absolute numbers, separated by a single marker stating how many lines were
    skipped.
    """
    lines = text.split("\n")
    total = len(lines)
    if total <= max_lines:
        return number_all(text)

    head_end = min(head_lines, total)
    tail_start = max(total - tail_lines + 1, head_end + 1)

    rendered: List[str] = [_format_line(index + 1, line) for index, line in enumerate(lines[:head_end])]
    rendered.append(_OMITTED_FMT.format(count=tail_start - head_end - 1))
    rendered.extend(
        _format_line(tail_start + offset, line)
        for offset, line in enumerate(lines[tail_start - 1 :])
    )
    return "\n".join(rendered)


def build_line_counts(files: Iterable[RepoFileContent]) -> Dict[str, int]:
    """Map each fetched path to its true line count."""
    return {file.path: count_lines(file.content) for file in files}


__all__ = ["build_line_counts", "count_lines", "number_all", "windowed"]
