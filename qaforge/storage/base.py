from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

# Record kinds
CHUNKS = "chunks"
TOCS = "tocs"
QUESTIONS = "questions"
TAGS = "tags"
DATASETS = "datasets"

class RecordStore(ABC):
    """
    Key-value record persistence. Records are plain dicts carrying their own "id".
    Filters are equality matches on every given key.
    """

    @abstractmethod
    def create_record(self, kind: str, data: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    def get_record(self, kind: str, record_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def update_record(self, kind: str, record_id: str, patch: Dict[str, Any]) -> None:
        """Raises KeyError when the record does not exist."""
        pass

    @abstractmethod
    def list_records(self, kind: str, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def delete_records(self, kind: str, filter: Dict[str, Any]) -> int:
        """Deletes every matching record and returns how many were removed."""
        pass
