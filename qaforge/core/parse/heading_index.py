import re
from typing import List

from qaforge.models.chunk import HeadingRecord

_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.*?)[ \t]*$")
_CLOSING_HASHES_RE = re.compile(r"[ \t]+#+$")
_FENCE_RE = re.compile(r"^(`{3,}|~{3,})")


def build_heading_index(text: str) -> List[HeadingRecord]:
    """
    Scans markdown text and returns its ATX headings in document order.

    A heading is a line starting with 1-6 '#' followed by whitespace and a
    non-empty title. Offsets are character offsets of the line start.
    Lines inside fenced code blocks are skipped.
    """
    headings = []
    offset = 0
    fence = None

    for line in text.splitlines(keepends=True):
        stripped = line.rstrip("\r\n")

        fence_match = _FENCE_RE.match(stripped)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker[0] == fence[0] and len(marker) >= len(fence):
                fence = None
        elif fence is None:
            match = _HEADING_RE.match(stripped)
            if match:
                title = _CLOSING_HASHES_RE.sub("", match.group(2)).strip()
                if title and not set(title) <= {"#"}:
                    headings.append(HeadingRecord(level=len(match.group(1)), title=title, offset=offset))

        offset += len(line)

    return headings
