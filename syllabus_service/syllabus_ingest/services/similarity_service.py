"""
Artifact: syllabus_service/syllabus_ingest/services/similarity_service.py
Purpose: Provides the optional semantic-similarity capability used by augmentation to break ties between plausible date snippets.
Preconditions:
- `EmbeddingSimilarity` needs a LangChain `Embeddings` implementation (NVIDIA endpoint by default).
Inputs:
- Acceptable: A query string and a non-empty list of candidate strings.
- Unacceptable: N/A; empty candidate lists yield an empty score list.
Postconditions:
- `NullSimilarity` always reports the capability as unavailable (`None`).
Returns:
- Cosine scores aligned with the candidates, or `None`.
Errors/Exceptions:
- `AugmentationError` when the embedding provider fails.
"""

import asyncio
from typing import List, Optional

import numpy as np
from langchain_core.embeddings import Embeddings

from ..clients.collaborators import SimilarityCapability
from ..clients.embedding_client import build_nvidia_embedding_client
from ..core.config import settings
from ..core.errors import AugmentationError
from ..core.logging import get_logger

logger = get_logger("syllabus_ingest.similarity")


def cosine_similarity(left: List[float], right: List[float]) -> float:
    a = np.asarray(left, dtype=float)
    b = np.asarray(right, dtype=float)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


class NullSimilarity:
    """Stand-in used whenever no embedding service is configured."""

    async def rank(self, query: str, candidates: List[str]) -> Optional[List[float]]:
        return None


class EmbeddingSimilarity:
    def __init__(self, embeddings: Embeddings):
        self.embeddings = embeddings

    async def rank(self, query: str, candidates: List[str]) -> Optional[List[float]]:
        if not candidates:
            return []
        try:
            query_vector = await asyncio.to_thread(self.embeddings.embed_query, query)
            candidate_vectors = await asyncio.to_thread(self.embeddings.embed_documents, list(candidates))
        except Exception as exc:
            raise AugmentationError(f"Embedding request failed: {exc}") from exc
        return [cosine_similarity(query_vector, vector) for vector in candidate_vectors]


def build_similarity_capability() -> SimilarityCapability:
    """Embedding-backed similarity when enabled and keyed, otherwise the null capability."""
    if not settings.semantic_tiebreak_enabled() or not settings.nvidia_api_key():
        logger.info("Semantic tie-break disabled; using rule-based augmentation only")
        return NullSimilarity()
    try:
        client = build_nvidia_embedding_client(settings.embedding_model_name())
    except Exception as exc:
        logger.warning("Could not initialise embedding client, continuing without it: %s", exc)
        return NullSimilarity()
    logger.info("Semantic tie-break enabled with model=%s", settings.embedding_model_name())
    return EmbeddingSimilarity(client)
