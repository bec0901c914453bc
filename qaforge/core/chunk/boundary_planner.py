from bisect import bisect_left
from typing import List, Tuple

from qaforge.core.errors import MalformedInput
from qaforge.models.chunk import HeadingRecord


def validate_window(min_len: int, max_len: int) -> None:
    if min_len <= 0 or max_len <= 0:
        raise MalformedInput(f"Chunk lengths must be positive, got min={min_len}, max={max_len}")
    if min_len > max_len:
        raise MalformedInput(f"Minimum chunk length {min_len} exceeds maximum {max_len}")


def plan_boundaries(text: str,
                    headings: List[HeadingRecord],
                    min_len: int,
                    max_len: int) -> List[Tuple[int, int]]:
    """
    Partitions [0, len(text)) into contiguous (start, end) ranges.

    From each chunk start, the cut goes at the first heading whose offset lies
    in [start + min_len, start + max_len], or at start + max_len when no heading
    falls there. The window is capped so the remainder never drops below
    min_len; when no valid cut is left the rest of the document is emitted as
    the final chunk, even if that exceeds max_len.
    """
    validate_window(min_len, max_len)

    total = len(text)
    if total == 0:
        return []

    # Offset 0 is never a cut; duplicates collapse
    cut_points = sorted({h.offset for h in headings if 0 < h.offset < total})

    ranges = []
    start = 0
    while total - start > max_len:
        lo = start + min_len
        hi = min(start + max_len, total - min_len)
        if hi < lo:
            break

        idx = bisect_left(cut_points, lo)
        if idx < len(cut_points) and cut_points[idx] <= hi:
            cut = cut_points[idx]
        else:
            cut = hi

        ranges.append((start, cut))
        start = cut

    ranges.append((start, total))
    return ranges
