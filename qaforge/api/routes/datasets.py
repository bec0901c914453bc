import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from qaforge.storage.base import DATASETS, QUESTIONS, TAGS, RecordStore

router = APIRouter()
logger = logging.getLogger(__name__)

class TagRequest(BaseModel):
    label: str
    parent_id: str | None = None

def get_store(request: Request) -> RecordStore:
    return request.app.state.store

@router.post("/projects/{project_id}/tags", summary="Add a label that question tagging may assign")
def create_tag(project_id: str, request_data: TagRequest, store: RecordStore = Depends(get_store)):
    tag_id = store.create_record(TAGS, {"project_id": project_id, "label": request_data.label, "parent_id": request_data.parent_id})
    return store.get_record(TAGS, tag_id)

@router.get("/projects/{project_id}/questions", summary="List generated questions")
def list_questions(project_id: str,
                   answered: Optional[bool] = None,
                   store: RecordStore = Depends(get_store)) -> List[dict]:
    filter = {"project_id": project_id}
    if answered is not None:
        filter["answered"] = answered
    return store.list_records(QUESTIONS, filter)

@router.get("/projects/{project_id}/datasets/export", summary="Export question/answer records")
def export_datasets(project_id: str,
                    status: Optional[str] = Query(default=None, pattern="^(confirmed|unconfirmed)$"),
                    store: RecordStore = Depends(get_store)) -> List[dict]:
    filter = {"project_id": project_id}
    if status is not None:
        filter["confirmed"] = status == "confirmed"
    return store.list_records(DATASETS, filter)

@router.post("/projects/{project_id}/datasets/{dataset_id}/confirm", summary="Mark a dataset record as reviewed")
def confirm_dataset(project_id: str, dataset_id: str, store: RecordStore = Depends(get_store)):
    record = store.get_record(DATASETS, dataset_id)
    if record is None or record.get("project_id") != project_id:
        raise HTTPException(status_code=404, detail="Dataset not found.")
    store.update_record(DATASETS, dataset_id, {"confirmed": True})
    return store.get_record(DATASETS, dataset_id)
