"""Client package exports for collaborator contracts and provider integrations."""

from .collaborators import FileStorage, RateLimitStore, SimilarityCapability, TaskStore
from .embedding_client import build_nvidia_embedding_client
from .memory_stores import InMemoryDocumentStore, InMemoryTaskStore

__all__ = [
    "FileStorage",
    "InMemoryDocumentStore",
    "InMemoryTaskStore",
    "RateLimitStore",
    "SimilarityCapability",
    "TaskStore",
    "build_nvidia_embedding_client",
]
