import logging
from typing import List, Optional

from qaforge.core.batch.coordinator import BatchCoordinator, ProgressCallback
from qaforge.core.batch.task_pool import Worker
from qaforge.core.generate.generators import AnswerGenerator, CotOptimizer, QuestionGenerator, QuestionTagger
from qaforge.core.generate.llm_client import LLMClient
from qaforge.models.batch import BatchReport, WorkItem
from qaforge.storage.base import CHUNKS, DATASETS, QUESTIONS, RecordStore

logger = logging.getLogger(__name__)

class GenerationPipeline:
    """
    Selects work from the record store and runs it through a BatchCoordinator.
    When ids are omitted each job picks its natural backlog:
    chunks without questions, unanswered questions, unlabeled questions, datasets with a COT.
    """

    def __init__(self, store: RecordStore, llm: LLMClient):
        self.store = store
        self.llm = llm
        self.tagger = QuestionTagger(store, llm)
        self.question_generator = QuestionGenerator(store, llm, self.tagger)
        self.cot_optimizer = CotOptimizer(store, llm)
        self.answer_generator = AnswerGenerator(store, llm, self.cot_optimizer)

    async def generate_questions(self,
                                 project_id: str,
                                 chunk_ids: Optional[List[str]] = None,
                                 coordinator: Optional[BatchCoordinator] = None,
                                 progress_callback: Optional[ProgressCallback] = None) -> BatchReport:
        if chunk_ids is None:
            asked = {q["chunk_id"] for q in self.store.list_records(QUESTIONS, {"project_id": project_id})}
            chunk_ids = [c["id"] for c in self.store.list_records(CHUNKS, {"project_id": project_id}) if c["id"] not in asked]
        return await self._run("questions", chunk_ids, self.question_generator.generate_one, coordinator, progress_callback)

    async def generate_answers(self,
                               project_id: str,
                               question_ids: Optional[List[str]] = None,
                               coordinator: Optional[BatchCoordinator] = None,
                               progress_callback: Optional[ProgressCallback] = None) -> BatchReport:
        if question_ids is None:
            question_ids = [q["id"] for q in self.store.list_records(QUESTIONS, {"project_id": project_id, "answered": False})]
        return await self._run("answers", question_ids, self.answer_generator.generate_one, coordinator, progress_callback)

    async def tag_questions(self,
                            project_id: str,
                            question_ids: Optional[List[str]] = None,
                            coordinator: Optional[BatchCoordinator] = None,
                            progress_callback: Optional[ProgressCallback] = None) -> BatchReport:
        if question_ids is None:
            question_ids = [q["id"] for q in self.store.list_records(QUESTIONS, {"project_id": project_id}) if not q.get("label")]
        return await self._run("tags", question_ids, self.tagger.generate_one, coordinator, progress_callback)

    async def optimize_cots(self,
                            project_id: str,
                            dataset_ids: Optional[List[str]] = None,
                            coordinator: Optional[BatchCoordinator] = None,
                            progress_callback: Optional[ProgressCallback] = None) -> BatchReport:
        if dataset_ids is None:
            dataset_ids = [d["id"] for d in self.store.list_records(DATASETS, {"project_id": project_id}) if d.get("cot")]
        return await self._run("cot", dataset_ids, self.cot_optimizer.generate_one, coordinator, progress_callback)

    async def _run(self,
                   job: str,
                   ids: List[str],
                   generate_one: Worker,
                   coordinator: Optional[BatchCoordinator],
                   progress_callback: Optional[ProgressCallback]) -> BatchReport:
        coordinator = coordinator or BatchCoordinator(progress_callback=progress_callback)
        # Duplicate ids would run the same item twice
        items = [WorkItem(id=i) for i in dict.fromkeys(ids)]
        logger.info(f"Running {job} batch over {len(items)} items")
        return await coordinator.run_batch(items, generate_one)
