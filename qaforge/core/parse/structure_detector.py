from bisect import bisect_right
from typing import List, Optional, Tuple

from qaforge.models.chunk import HeadingRecord

class StructureDetector:
    """
    Resolves the section path ("Chapter 3 > 3.2 > 3.2.1") active at any
    offset of a document, from its heading index.
    """

    def __init__(self, headings: List[HeadingRecord]):
        self.headings = headings
        self.offsets = [h.offset for h in headings]
        self.paths = self._build_paths(headings)

    def _build_paths(self, headings: List[HeadingRecord]) -> List[Optional[str]]:
        """
        Path in effect from each heading onwards.
        Same nesting rule as the TOC: a heading sits under the nearest
        preceding heading with a strictly smaller level.
        """
        paths = []
        section_stack: List[Tuple[int, str]] = []

        for h in headings:
            # Pop by level, not depth, so H1 -> H3 -> H3 keeps the H3s as siblings
            while section_stack and section_stack[-1][0] >= h.level:
                section_stack.pop()
            section_stack.append((h.level, h.title))
            paths.append(" > ".join(title for _, title in section_stack))

        return paths

    def section_path_at(self, offset: int) -> Optional[str]:
        """Path of the last heading starting at or before offset, None before the first heading."""
        idx = bisect_right(self.offsets, offset) - 1
        return self.paths[idx] if idx >= 0 else None
