from typing import Any
from pydantic import BaseModel, Field, computed_field

class WorkItem(BaseModel):
    id: str
    payload: Any = None

class WorkResult(BaseModel):
    success: bool
    id: str
    data: Any = None
    error: str | None = None

    @classmethod
    def from_success(cls, item_id: str, data: Any = None) -> "WorkResult":
        return cls(success=True, id=item_id, data=data)

    @classmethod
    def from_error(cls, item_id: str, error: str) -> "WorkResult":
        return cls(success=False, id=item_id, error=error)

class ProgressState(BaseModel):
    total: int = 0
    completed: int = 0
    succeeded: int = 0
    failed: int = 0

    @computed_field
    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 100
        # Round half up, so 2.5% reads as 3%
        return int(100 * self.completed / self.total + 0.5)

    def record(self, result: WorkResult) -> None:
        self.completed += 1
        if result.success:
            self.succeeded += 1
        else:
            self.failed += 1

class BatchReport(BaseModel):
    results: list[WorkResult] = Field(default_factory=list)
    succeeded: int = 0
    failed: int = 0
    succeeded_ids: list[str] = Field(default_factory=list)
    failed_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[WorkResult]) -> "BatchReport":
        succeeded_ids = [r.id for r in results if r.success]
        failed_ids = [r.id for r in results if not r.success]
        return cls(
            results=results,
            succeeded=len(succeeded_ids),
            failed=len(failed_ids),
            succeeded_ids=succeeded_ids,
            failed_ids=failed_ids
        )

    def by_id(self) -> dict[str, WorkResult]:
        """Re-keys results by item id; results are stored in completion order."""
        return {r.id: r for r in self.results}
