import os
import json
import logging
from typing import Optional

from qaforge.config.settings import settings
from qaforge.storage.memory_store import InMemoryStore

logger = logging.getLogger(__name__)

class LocalJsonStore(InMemoryStore):
    """
    Implements RecordStore on the local disk.
    - One JSON file per record kind ("chunks.json", "questions.json", ...).
    - Records are kept in memory and the kind's file is rewritten after every change.
    """

    def __init__(self, data_dir: Optional[str] = None):
        super().__init__()
        self.data_dir = data_dir or settings.storage.data_dir
        os.makedirs(self.data_dir, exist_ok=True)
        self._load()

    def _path(self, kind: str) -> str:
        return os.path.join(self.data_dir, f"{kind}.json")

    def _load(self) -> None:
        for file_name in sorted(os.listdir(self.data_dir)):
            if not file_name.endswith(".json"):
                continue
            kind = file_name[:-len(".json")]
            with open(os.path.join(self.data_dir, file_name), "r", encoding="utf-8") as f:
                self._records[kind] = json.load(f)
        logger.info(f"Loaded {len(self._records)} record kinds from {self.data_dir}")

    def _persist(self, kind: str) -> None:
        path = self._path(kind)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._records.get(kind, {}), f, ensure_ascii=False, indent=2)
        # Replace atomically so a crash never leaves a half-written file
        os.replace(tmp_path, path)
