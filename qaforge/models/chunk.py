from pydantic import BaseModel, ConfigDict, Field

class HeadingRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1, le=6)          # length of the leading "#" run
    title: str
    offset: int = Field(ge=0)               # character offset of the heading line in the source text

class TocNode(BaseModel):
    title: str
    level: int
    children: list["TocNode"] = Field(default_factory=list)

TocNode.model_rebuild()

class Chunk(BaseModel):
    ordinal: int = Field(ge=1)              # 1-based position in the source document
    name: str                               # "<source stem>-part-<ordinal>"
    source_file_name: str
    content: str
    size: int                               # always len(content)
    section_path: str | None = None         # "Chapter 3 > 3.2" active where the chunk starts

class ChunkResult(BaseModel):
    chunks: list[Chunk]
    toc: list[TocNode]
