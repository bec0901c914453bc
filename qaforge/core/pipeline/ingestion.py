import logging
import os
from typing import Callable, List, Optional, Tuple

from qaforge.core.chunk.chunker import Chunker
from qaforge.core.parse.toc_builder import toc_to_markdown
from qaforge.models.chunk import ChunkResult
from qaforge.storage.base import CHUNKS, QUESTIONS, TOCS, RecordStore

logger = logging.getLogger(__name__)

class IngestionPipeline:
    """
    Orchestrates the ingestion process:
    read -> chunk -> build toc -> replace stored chunks (and their questions) -> store toc
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.chunker = Chunker()

    def run_file(self,
                 project_id: str,
                 file_path: str,
                 min_len: Optional[int] = None,
                 max_len: Optional[int] = None,
                 progress_callback: Optional[Callable[[int, str], None]] = None) -> Tuple[ChunkResult, List[str]]:
        with open(file_path, "r", encoding="utf-8") as f:
            text = f.read()
        return self.run(project_id, os.path.basename(file_path), text, min_len, max_len, progress_callback)

    def run(self,
            project_id: str,
            file_name: str,
            text: str,
            min_len: Optional[int] = None,
            max_len: Optional[int] = None,
            progress_callback: Optional[Callable[[int, str], None]] = None) -> Tuple[ChunkResult, List[str]]:
        """
        Runs chunking for a single markdown document and persists the result.
        Returns the chunk result and the ids of the stored chunk records, in ordinal order.
        """
        def update_progress(progress: int, message: str):
            if progress_callback:
                progress_callback(progress, message)
            logger.info(f"[{project_id}/{file_name}] {progress}%: {message}")

        try:
            update_progress(5, "Starting processing")

            # 1. Chunking + TOC
            update_progress(10, "Splitting document")
            result = self.chunker.chunk_document(text, file_name, min_len, max_len)
            update_progress(50, f"Generated {len(result.chunks)} chunks")

            # 2. Re-chunking replaces the previous chunk set of this file, with the questions asked of it
            old_chunks = self.store.list_records(CHUNKS, {"project_id": project_id, "file_name": file_name})
            orphaned = sum(self.store.delete_records(QUESTIONS, {"chunk_id": c["id"]}) for c in old_chunks)
            removed = self.store.delete_records(CHUNKS, {"project_id": project_id, "file_name": file_name})
            if removed:
                update_progress(55, f"Removed {removed} previous chunks and {orphaned} of their questions")

            # 3. Storage
            update_progress(60, "Saving chunks")
            chunk_ids = [
                self.store.create_record(CHUNKS, {
                    "project_id": project_id,
                    "file_name": file_name,
                    "name": chunk.name,
                    "ordinal": chunk.ordinal,
                    "content": chunk.content,
                    "size": chunk.size,
                    "section_path": chunk.section_path
                })
                for chunk in result.chunks
            ]

            update_progress(90, "Saving table of contents")
            self.store.delete_records(TOCS, {"project_id": project_id, "file_name": file_name})
            self.store.create_record(TOCS, {
                "project_id": project_id,
                "file_name": file_name,
                "toc": [node.model_dump() for node in result.toc],
                "outline": toc_to_markdown(result.toc)
            })

            update_progress(100, "Ingestion completed successfully")
            return result, chunk_ids

        except Exception as e:
            logger.exception(f"Ingestion failed for {file_name}")
            if progress_callback:
                progress_callback(-1, str(e)) # Use -1 to indicate failure
            raise
