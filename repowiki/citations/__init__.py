"""Line numbering, permalinks and citation linking."""

from .line_numbering import build_line_counts, count_lines, number_all, windowed
from .linker import CITE_MARKER_PATTERN, LinkedMarkdown, link_citations
from .permalink import build_permalink

__all__ = [
    "CITE_MARKER_PATTERN",
    "LinkedMarkdown",
    "build_line_counts",
    "build_permalink",
    "count_lines",
    "link_citations",
    "number_all",
    "windowed",
]
