"""
Artifact: syllabus_service/syllabus_ingest/clients/embedding_client.py
Purpose: Wraps external embedding client construction for Nvidia-backed LangChain embedding calls.
Preconditions:
- `langchain_nvidia_ai_endpoints` package is installed and `NVIDIA_API_KEY` is configured externally.
Inputs:
- Acceptable: Embedding model name string.
- Unacceptable: Unsupported model identifiers.
Postconditions:
- Returns a configured NVIDIAEmbeddings client for the semantic tie-break.
Returns:
- `NVIDIAEmbeddings` object.
Errors/Exceptions:
- Underlying provider/client initialization exceptions for invalid setup.
"""

from langchain_nvidia_ai_endpoints import NVIDIAEmbeddings


def build_nvidia_embedding_client(model_name: str) -> NVIDIAEmbeddings:
    """Create a configured NVIDIAEmbeddings client."""
    return NVIDIAEmbeddings(model=model_name, truncate="END")
