import logging
from typing import Any, Dict, List, Optional

from qaforge.config.settings import settings
from qaforge.core.errors import ProviderError
from qaforge.core.generate.llm_client import LLMClient
from qaforge.core.generate.output_parser import parse_labeled_questions, parse_question_list
from qaforge.core.generate.prompt_builder import PromptBuilder
from qaforge.models.batch import WorkItem
from qaforge.models.generation import LabeledQuestion
from qaforge.storage.base import CHUNKS, DATASETS, QUESTIONS, TAGS, RecordStore

logger = logging.getLogger(__name__)


def _require(store: RecordStore, kind: str, record_id: str) -> Dict[str, Any]:
    record = store.get_record(kind, record_id)
    if record is None:
        raise LookupError(f"{kind} record {record_id} not found")
    return record


class QuestionTagger:
    """Labels questions with the project's tags. Work item id: question id."""

    def __init__(self, store: RecordStore, llm: LLMClient):
        self.store = store
        self.llm = llm

    async def label_questions(self, project_id: str, questions: List[str]) -> List[LabeledQuestion]:
        tags = [t["label"] for t in self.store.list_records(TAGS, {"project_id": project_id})]
        if not tags:
            return [LabeledQuestion(question=q) for q in questions]

        response = await self.llm.generate(PromptBuilder.build_label_prompt(tags, questions))
        labels = {lq.question: lq.label for lq in parse_labeled_questions(response)}

        # Keep input order and drop labels the model invented
        return [
            LabeledQuestion(question=q, label=labels.get(q) if labels.get(q) in tags else None)
            for q in questions
        ]

    async def generate_one(self, item: WorkItem) -> Dict[str, Any]:
        question = _require(self.store, QUESTIONS, item.id)
        labeled = await self.label_questions(question["project_id"], [question["question"]])
        label = labeled[0].label
        self.store.update_record(QUESTIONS, item.id, {"label": label})
        return {"question_id": item.id, "label": label}


class QuestionGenerator:
    """Extracts questions from one chunk and stores them, labeled. Work item id: chunk id."""

    def __init__(self, store: RecordStore, llm: LLMClient, tagger: Optional[QuestionTagger] = None):
        self.store = store
        self.llm = llm
        self.tagger = tagger or QuestionTagger(store, llm)
        self.config = settings.task

    def question_count(self, content: str) -> int:
        return max(1, len(content) // self.config.question_generation_length)

    async def generate_one(self, item: WorkItem) -> Dict[str, Any]:
        chunk = _require(self.store, CHUNKS, item.id)
        payload = item.payload if isinstance(item.payload, dict) else {}
        number = payload.get("number") or self.question_count(chunk["content"])

        prompt = PromptBuilder.build_question_prompt(chunk["content"], number, payload.get("global_prompt", ""))
        questions = parse_question_list(await self.llm.generate(prompt))

        try:
            labeled = await self.tagger.label_questions(chunk["project_id"], questions)
        except ProviderError as e:
            # Questions are still worth keeping; a later tagging batch picks them up
            logger.warning(f"Tagging failed for chunk {item.id}, saving unlabeled questions: {e}")
            labeled = [LabeledQuestion(question=q) for q in questions]

        question_ids = [
            self.store.create_record(QUESTIONS, {
                "project_id": chunk["project_id"],
                "chunk_id": item.id,
                "question": lq.question,
                "label": lq.label,
                "answered": False
            })
            for lq in labeled
        ]
        logger.info(f"Chunk {chunk.get('name', item.id)}: saved {len(question_ids)} questions")
        return {"chunk_id": item.id, "question_ids": question_ids, "total": len(question_ids)}


class CotOptimizer:
    """Rewrites a stored chain of thought so it no longer cites the source text. Work item id: dataset id."""

    def __init__(self, store: RecordStore, llm: LLMClient):
        self.store = store
        self.llm = llm

    async def optimize(self, question: str, answer: str, cot: str) -> str:
        optimized = (await self.llm.generate(PromptBuilder.build_optimize_cot_prompt(question, answer, cot))).strip()
        if not optimized:
            raise ProviderError("Model returned an empty chain of thought")
        return optimized

    async def generate_one(self, item: WorkItem) -> Dict[str, Any]:
        dataset = _require(self.store, DATASETS, item.id)
        if not dataset.get("cot"):
            return {"dataset_id": item.id, "optimized": False}

        cot = await self.optimize(dataset["question"], dataset["answer"], dataset["cot"])
        self.store.update_record(DATASETS, item.id, {"cot": cot})
        return {"dataset_id": item.id, "optimized": True}


class AnswerGenerator:
    """Answers one question from its chunk and stores a dataset record. Work item id: question id."""

    def __init__(self,
                 store: RecordStore,
                 llm: LLMClient,
                 cot_optimizer: Optional[CotOptimizer] = None,
                 optimize_cot: Optional[bool] = None):
        self.store = store
        self.llm = llm
        self.cot_optimizer = cot_optimizer or CotOptimizer(store, llm)
        self.optimize_cot = settings.task.optimize_cot if optimize_cot is None else optimize_cot

    async def generate_one(self, item: WorkItem) -> Dict[str, Any]:
        question = _require(self.store, QUESTIONS, item.id)
        chunk = _require(self.store, CHUNKS, question["chunk_id"])
        payload = item.payload if isinstance(item.payload, dict) else {}

        prompt = PromptBuilder.build_answer_prompt(chunk["content"], question["question"], payload.get("global_prompt", ""))
        result = await self.llm.generate_with_reasoning(prompt)
        if not result.answer:
            raise ProviderError("Model returned an empty answer")

        cot = result.reasoning
        if cot and self.optimize_cot:
            try:
                cot = await self.cot_optimizer.optimize(question["question"], result.answer, cot)
            except ProviderError as e:
                logger.warning(f"COT optimization failed for question {item.id}, keeping raw reasoning: {e}")

        dataset_id = self.store.create_record(DATASETS, {
            "project_id": question["project_id"],
            "question_id": item.id,
            "question": question["question"],
            "answer": result.answer,
            "cot": cot,
            "question_label": question.get("label"),
            "chunk_name": chunk.get("name"),
            "chunk_content": chunk["content"],
            "model": self.llm.model_name,
            "confirmed": False
        })
        self.store.update_record(QUESTIONS, item.id, {"answered": True})
        return {"question_id": item.id, "dataset_id": dataset_id}
