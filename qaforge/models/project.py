from pydantic import BaseModel, Field

from qaforge.models.chunk import TocNode

class SplitRequest(BaseModel):
    file_name: str
    text: str
    min_length: int | None = None           # falls back to chunking.text_split_min_length
    max_length: int | None = None           # falls back to chunking.text_split_max_length

class ChunkRecord(BaseModel):
    id: str
    project_id: str
    name: str
    file_name: str
    ordinal: int
    content: str
    size: int
    section_path: str | None = None

class SplitResponse(BaseModel):
    file_name: str
    total_chunks: int
    chunks: list[ChunkRecord]
    toc: str                                # indented outline
    toc_tree: list[TocNode]

class BatchRequest(BaseModel):
    ids: list[str] | None = None            # None = the default selection for the job kind
    concurrency_limit: int | None = Field(default=None, ge=1)
