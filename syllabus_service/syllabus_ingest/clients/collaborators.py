"""
Artifact: syllabus_service/syllabus_ingest/clients/collaborators.py
Purpose: Declares the narrow async contracts of the external collaborators the pipeline calls: file storage, rate-limit counters, task store and semantic similarity.
Preconditions:
- Implementations provide per-user isolation themselves.
Inputs:
- Acceptable: Any object structurally matching a protocol.
- Unacceptable: Synchronous implementations of the async methods.
Postconditions:
- Services depend on these protocols only, never on concrete storage.
Returns:
- Protocol classes.
Errors/Exceptions:
- Implementations may raise any exception; the pipeline maps them to `TransportError`.
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..schemas.documents import StoredDocument
from ..schemas.shared import PersistedTask


@runtime_checkable
class FileStorage(Protocol):
    async def upload_document(self, data: bytes, metadata: Dict[str, Any]) -> StoredDocument: ...

    async def get_document_bytes(self, path: str) -> bytes: ...


@runtime_checkable
class RateLimitStore(Protocol):
    async def get_recent_upload_count(self, user_id: str, window_seconds: int) -> int: ...


@runtime_checkable
class TaskStore(Protocol):
    async def create_task(self, task: Dict[str, Any]) -> PersistedTask: ...


@runtime_checkable
class SimilarityCapability(Protocol):
    """Scores candidates against a query; `None` means the capability is unavailable."""

    async def rank(self, query: str, candidates: List[str]) -> Optional[List[float]]: ...
