"""
Artifact: syllabus_service/syllabus_ingest/clients/memory_stores.py
Purpose: Process-local reference collaborators used for the service's default wiring and in tests.
Preconditions:
- Single process; contents are lost on restart.
Inputs:
- Acceptable: Document bytes with metadata carrying `user_id`; task dicts with `title`, `classId`, `dueDate`, `type`.
- Unacceptable: Task dicts without a title.
Postconditions:
- Upload counts are per user and limited to the requested window.
Returns:
- `StoredDocument`, bytes, counts and `PersistedTask` values.
Errors/Exceptions:
- `FileNotFoundError` for unknown paths; `ValueError` for task dicts without a title.
"""

import asyncio
import time
import uuid
from typing import Any, Callable, Dict, List, Tuple

from ..core.logging import get_logger
from ..schemas.documents import StoredDocument
from ..schemas.shared import PersistedTask

logger = get_logger("syllabus_ingest.clients")

TASK_FIELDS = ("title", "classId", "dueDate", "type")


class InMemoryDocumentStore:
    """File storage plus upload-count bookkeeping keyed by user."""

    def __init__(self, base_url: str = "memory://syllabi", clock: Callable[[], float] = time.time):
        self.base_url = base_url.rstrip("/")
        self._clock = clock
        self._blobs: Dict[str, bytes] = {}
        self._uploads: List[Tuple[str, float]] = []
        self._lock = asyncio.Lock()

    async def upload_document(self, data: bytes, metadata: Dict[str, Any]) -> StoredDocument:
        path = str(metadata.get("path") or uuid.uuid4().hex)
        async with self._lock:
            self._blobs[path] = bytes(data)
            self._uploads.append((str(metadata.get("user_id", "")), self._clock()))
        logger.debug("Stored document path=%s bytes=%d", path, len(data))
        return StoredDocument(path=path, url=f"{self.base_url}/{path}")

    async def get_document_bytes(self, path: str) -> bytes:
        try:
            return self._blobs[path]
        except KeyError:
            raise FileNotFoundError(f"No stored document at {path}") from None

    async def get_recent_upload_count(self, user_id: str, window_seconds: int) -> int:
        cutoff = self._clock() - window_seconds
        return sum(1 for owner, stamp in self._uploads if owner == user_id and stamp >= cutoff)


class InMemoryTaskStore:
    def __init__(self):
        self.tasks: List[PersistedTask] = []
        self._lock = asyncio.Lock()

    async def create_task(self, task: Dict[str, Any]) -> PersistedTask:
        if not task.get("title"):
            raise ValueError("Task title is required")
        extra = {key: value for key, value in task.items() if key not in TASK_FIELDS}
        persisted = PersistedTask(
            id=uuid.uuid4().hex,
            title=task["title"],
            classId=task.get("classId", ""),
            dueDate=task.get("dueDate"),
            type=task.get("type", "assignment"),
            extra=extra,
        )
        async with self._lock:
            self.tasks.append(persisted)
        return persisted
