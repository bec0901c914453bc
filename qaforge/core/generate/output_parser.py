import json
import re
from typing import Any, List

from qaforge.core.errors import ProviderError
from qaforge.models.generation import LabeledQuestion

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def extract_json(output: str) -> Any:
    """
    Pulls the JSON payload out of free-form model output: a fenced ```json
    block, the whole text, or the outermost [...] / {...} span, in that order.
    Raises ProviderError when nothing parses.
    """
    candidates = [m.group(1).strip() for m in _FENCED_JSON_RE.finditer(output)]
    candidates.append(output.strip())

    for open_char, close_char in (("[", "]"), ("{", "}")):
        start = output.find(open_char)
        end = output.rfind(close_char)
        if 0 <= start < end:
            candidates.append(output[start:end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    raise ProviderError(f"Model output is not valid JSON: {output[:120]!r}")


def parse_question_list(output: str) -> List[str]:
    data = extract_json(output)
    if not isinstance(data, list):
        raise ProviderError("Expected a JSON array of questions")

    questions = []
    for entry in data:
        if isinstance(entry, str):
            text = entry
        elif isinstance(entry, dict) and isinstance(entry.get("question"), str):
            text = entry["question"]
        else:
            continue
        if text.strip():
            questions.append(text.strip())

    if not questions:
        raise ProviderError("Model returned no usable questions")
    return questions


def parse_labeled_questions(output: str) -> List[LabeledQuestion]:
    data = extract_json(output)
    if not isinstance(data, list):
        raise ProviderError("Expected a JSON array of labeled questions")
    return [
        LabeledQuestion(question=entry["question"], label=str(entry["label"]) if entry.get("label") else None)
        for entry in data
        if isinstance(entry, dict) and isinstance(entry.get("question"), str)
    ]

