import logging
import os
from typing import List, Optional, Tuple

from qaforge.config.settings import settings
from qaforge.core.chunk.boundary_planner import plan_boundaries, validate_window
from qaforge.core.parse.heading_index import build_heading_index
from qaforge.core.parse.structure_detector import StructureDetector
from qaforge.core.parse.toc_builder import build_toc
from qaforge.models.chunk import Chunk, ChunkResult, HeadingRecord

logger = logging.getLogger(__name__)

class Chunker:
    """
    Implements heading-aware markdown chunking.
    - Indexes ATX headings once per document.
    - Plans contiguous cuts inside the [min, max] size window, preferring heading boundaries.
    - Builds the table of contents from the same heading index, independent of the cuts.
    """

    def __init__(self, min_len: Optional[int] = None, max_len: Optional[int] = None):
        self.config = settings.chunking
        self.min_len = min_len if min_len is not None else self.config.text_split_min_length
        self.max_len = max_len if max_len is not None else self.config.text_split_max_length

    def chunk_document(self,
                       text: str,
                       source_file_name: str = "document.md",
                       min_len: Optional[int] = None,
                       max_len: Optional[int] = None) -> ChunkResult:
        """
        Main entry point for chunking a document. Concatenating the returned
        chunk contents in ordinal order gives back `text` unchanged.
        """
        min_len = min_len if min_len is not None else self.min_len
        max_len = max_len if max_len is not None else self.max_len
        # Reject bad windows before scanning anything
        validate_window(min_len, max_len)

        headings = build_heading_index(text)
        ranges = plan_boundaries(text, headings, min_len, max_len)
        chunks = self.assemble(text, ranges, headings, source_file_name)
        toc = build_toc(headings)

        logger.info(f"Split '{source_file_name}' ({len(text)} chars, {len(headings)} headings) into {len(chunks)} chunks")
        return ChunkResult(chunks=chunks, toc=toc)

    def assemble(self,
                 text: str,
                 ranges: List[Tuple[int, int]],
                 headings: List[HeadingRecord],
                 source_file_name: str) -> List[Chunk]:
        stem = os.path.splitext(os.path.basename(source_file_name))[0]
        detector = StructureDetector(headings)

        chunks = []
        for ordinal, (start, end) in enumerate(ranges, start=1):
            content = text[start:end]
            chunks.append(Chunk(
                ordinal=ordinal,
                name=f"{stem}-part-{ordinal}",
                source_file_name=source_file_name,
                content=content,
                size=len(content),
                section_path=detector.section_path_at(start)
            ))
        return chunks


def chunk_document(text: str,
                   min_len: int,
                   max_len: int,
                   source_file_name: str = "document.md") -> ChunkResult:
    return Chunker(min_len, max_len).chunk_document(text, source_file_name)
