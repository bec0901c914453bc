import logging
import uuid
from datetime import datetime, timezone
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from qaforge.core.batch.coordinator import BatchCoordinator
from qaforge.core.pipeline.generation import GenerationPipeline
from qaforge.models.batch import ProgressState
from qaforge.models.job import BatchJob, JobKind, JobStatus
from qaforge.models.project import BatchRequest

router = APIRouter()
logger = logging.getLogger(__name__)

def get_generation_pipeline(request: Request) -> GenerationPipeline:
    return request.app.state.generation_pipeline

def _start_job(request: Request,
               background_tasks: BackgroundTasks,
               pipeline: GenerationPipeline,
               project_id: str,
               kind: JobKind,
               request_data: BatchRequest) -> BatchJob:
    """
    1. Registers a BatchJob in the in-memory job table.
    2. Dispatches the batch to BackgroundTasks so the HTTP response never waits on the LLM.
    3. Keeps the job's progress current from the coordinator's callback.
    """
    jobs_db = request.app.state.jobs_db
    coordinators = request.app.state.coordinators

    job_id = str(uuid.uuid4())
    job = BatchJob(
        job_id=job_id,
        project_id=project_id,
        kind=kind,
        status=JobStatus.pending,
        message="Queued for processing",
        created_at=datetime.now(timezone.utc).isoformat()
    )
    jobs_db[job_id] = job

    def progress_callback(progress: ProgressState):
        target_job = jobs_db.get(job_id)
        if not target_job:
            return
        target_job.progress = progress
        target_job.status = JobStatus.processing
        target_job.message = f"{progress.completed}/{progress.total} items processed"

    coordinator = BatchCoordinator(
        concurrency_limit=request_data.concurrency_limit,
        progress_callback=progress_callback
    )
    coordinators[job_id] = coordinator

    runners = {
        JobKind.questions: pipeline.generate_questions,
        JobKind.answers: pipeline.generate_answers,
        JobKind.tags: pipeline.tag_questions,
        JobKind.cot: pipeline.optimize_cots,
    }

    async def run_batch_with_cleanup():
        try:
            report = await runners[kind](project_id, request_data.ids, coordinator=coordinator)
            job.progress = coordinator.progress.model_copy()
            job.succeeded_ids = report.succeeded_ids
            job.failed_ids = report.failed_ids
            job.status = JobStatus.stopped if coordinator.stop_requested else JobStatus.completed
            job.message = f"{report.succeeded} succeeded, {report.failed} failed"
        except Exception as e:
            logger.error(f"Background batch {job_id} failed: {e}")
            job.status = JobStatus.failed
            job.message = f"Error: {str(e)}"
        finally:
            job.completed_at = datetime.now(timezone.utc).isoformat()
            coordinators.pop(job_id, None)

    background_tasks.add_task(run_batch_with_cleanup)
    return job

@router.post("/projects/{project_id}/questions/generate", response_model=BatchJob, summary="Generate questions for chunks")
def generate_questions(project_id: str, request_data: BatchRequest, request: Request, background_tasks: BackgroundTasks,
                       pipeline: GenerationPipeline = Depends(get_generation_pipeline)):
    return _start_job(request, background_tasks, pipeline, project_id, JobKind.questions, request_data)

@router.post("/projects/{project_id}/datasets/generate", response_model=BatchJob, summary="Generate answers for questions")
def generate_answers(project_id: str, request_data: BatchRequest, request: Request, background_tasks: BackgroundTasks,
                     pipeline: GenerationPipeline = Depends(get_generation_pipeline)):
    return _start_job(request, background_tasks, pipeline, project_id, JobKind.answers, request_data)

@router.post("/projects/{project_id}/questions/tag", response_model=BatchJob, summary="Label questions with project tags")
def tag_questions(project_id: str, request_data: BatchRequest, request: Request, background_tasks: BackgroundTasks,
                  pipeline: GenerationPipeline = Depends(get_generation_pipeline)):
    return _start_job(request, background_tasks, pipeline, project_id, JobKind.tags, request_data)

@router.post("/projects/{project_id}/datasets/optimize-cot", response_model=BatchJob, summary="Rewrite dataset chains of thought")
def optimize_cots(project_id: str, request_data: BatchRequest, request: Request, background_tasks: BackgroundTasks,
                  pipeline: GenerationPipeline = Depends(get_generation_pipeline)):
    return _start_job(request, background_tasks, pipeline, project_id, JobKind.cot, request_data)

@router.get("/jobs/{job_id}", response_model=BatchJob, summary="Get the progress of a batch job")
def get_job(job_id: str, request: Request):
    jobs_db = request.app.state.jobs_db
    if job_id not in jobs_db:
        raise HTTPException(status_code=404, detail="Job ID not found.")
    return jobs_db[job_id]

@router.post("/jobs/{job_id}/stop", response_model=BatchJob, summary="Stop launching new items for a batch job")
def stop_job(job_id: str, request: Request):
    jobs_db = request.app.state.jobs_db
    if job_id not in jobs_db:
        raise HTTPException(status_code=404, detail="Job ID not found.")
    coordinator = request.app.state.coordinators.get(job_id)
    if coordinator:
        coordinator.stop()
        jobs_db[job_id].message = "Stop requested, draining in-flight items"
    return jobs_db[job_id]
