import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request

from qaforge.core.errors import MalformedInput
from qaforge.core.parse.toc_builder import toc_to_markdown
from qaforge.core.pipeline.ingestion import IngestionPipeline
from qaforge.models.project import ChunkRecord, SplitRequest, SplitResponse
from qaforge.storage.base import CHUNKS, RecordStore

router = APIRouter()
logger = logging.getLogger(__name__)

def get_ingestion_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.ingestion_pipeline

def get_store(request: Request) -> RecordStore:
    return request.app.state.store

@router.post("/projects/{project_id}/split", response_model=SplitResponse, summary="Split a markdown document into chunks")
def split_document(
    project_id: str,
    request_data: SplitRequest,
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
    store: RecordStore = Depends(get_store)
):
    """
    1. Chunks the text inside the configured (or requested) size window.
    2. Replaces any chunks previously stored for this file.
    3. Returns the stored chunks and the table of contents.
    """
    try:
        result, chunk_ids = pipeline.run(
            project_id=project_id,
            file_name=request_data.file_name,
            text=request_data.text,
            min_len=request_data.min_length,
            max_len=request_data.max_length
        )
    except MalformedInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Splitting failed for {request_data.file_name}")
        raise HTTPException(status_code=500, detail=str(e))

    chunks = [ChunkRecord(**store.get_record(CHUNKS, cid)) for cid in chunk_ids]
    return SplitResponse(
        file_name=request_data.file_name,
        total_chunks=len(chunks),
        chunks=chunks,
        toc=toc_to_markdown(result.toc),
        toc_tree=result.toc
    )

@router.get("/projects/{project_id}/chunks", response_model=List[ChunkRecord], summary="List the chunks of a project")
def list_chunks(project_id: str, store: RecordStore = Depends(get_store)):
    records = store.list_records(CHUNKS, {"project_id": project_id})
    records.sort(key=lambda r: (r["file_name"], r["ordinal"]))
    return [ChunkRecord(**r) for r in records]
