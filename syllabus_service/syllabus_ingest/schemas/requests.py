"""
Artifact: syllabus_service/syllabus_ingest/schemas/requests.py
Purpose: Defines transport request models accepted by the syllabus ingestion and text extraction routes.
Preconditions:
- Pydantic BaseModel and typing modules are available.
Inputs:
- Acceptable: JSON object containing user/class identifiers and one base64-encoded document, or raw syllabus text.
- Unacceptable: Missing identifiers, missing file object, or invalid field types.
Postconditions:
- Request data is validated into typed models used by services/routes.
Returns:
- `SyllabusIngestRequest` and `ExtractTextRequest` model instances.
Errors/Exceptions:
- Pydantic validation errors for malformed request bodies.
"""

from typing import Optional

from pydantic import BaseModel

from .shared import PdfFile


class SyllabusIngestRequest(BaseModel):
    user_id: str
    class_id: str
    class_name: Optional[str] = ""
    term_year: Optional[int] = None
    media_type: str = "application/pdf"
    file: PdfFile


class ExtractTextRequest(BaseModel):
    text: str
