from pydantic import BaseModel

class ReasonedAnswer(BaseModel):
    answer: str
    reasoning: str = ""              # chain of thought, empty when the model gave none

class LabeledQuestion(BaseModel):
    question: str
    label: str | None = None
