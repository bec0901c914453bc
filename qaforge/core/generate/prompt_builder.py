import json

class PromptBuilder:
    """
    Builds the single-turn prompts sent to the LLM. Wording is deliberately
    short; each prompt only fixes the output format the parsers expect.
    """

    @staticmethod
    def build_question_prompt(text: str, number: int, global_prompt: str = "") -> str:
        """Asks for `number` questions answerable from `text`, as a JSON string array."""
        preface = f"{global_prompt}\n\n" if global_prompt else ""
        return (
            f"{preface}Read the text below and write {number} distinct questions that can be answered "
            f"using only this text.\n"
            f"Return a JSON array of strings and nothing else.\n\n"
            f"Text:\n---\n{text}\n---"
        )

    @staticmethod
    def build_label_prompt(tags: list[str], questions: list[str]) -> str:
        return (
            f"Assign each question the most suitable label from this list: {json.dumps(tags, ensure_ascii=False)}.\n"
            f"Use an empty string when no label fits.\n"
            f'Return a JSON array of objects shaped like {{"question": "...", "label": "..."}}.\n\n'
            f"Questions:\n{json.dumps(questions, ensure_ascii=False)}"
        )

    @staticmethod
    def build_answer_prompt(text: str, question: str, global_prompt: str = "") -> str:
        preface = f"{global_prompt}\n\n" if global_prompt else ""
        return (
            f"{preface}Answer the question using only the reference text. Do not mention the reference "
            f"text in the answer.\n\n"
            f"Reference:\n---\n{text}\n---\nQuestion: {question}"
        )

    @staticmethod
    def build_optimize_cot_prompt(question: str, answer: str, cot: str) -> str:
        """Rewrites a chain of thought so it reasons directly instead of quoting the reference text."""
        return (
            f"Rewrite the reasoning below so that it reads as direct reasoning about the question. "
            f"Remove every phrase that refers to a reference text or source. Keep all logical steps. "
            f"Return only the rewritten reasoning.\n\n"
            f"Question: {question}\nAnswer: {answer}\nReasoning:\n{cot}"
        )
