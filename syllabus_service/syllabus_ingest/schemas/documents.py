"""In-process artifacts of one upload: the raw document and its normalized text."""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Document:
    payload: bytes
    filename: str
    media_type: str
    user_id: str
    class_id: str
    size_bytes: Optional[int] = None

    @property
    def size(self) -> int:
        return self.size_bytes if self.size_bytes is not None else len(self.payload)

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lower()


@dataclass(frozen=True)
class NormalizedText:
    text: str
    page_count: int = 0
    methods: tuple = field(default_factory=tuple)

    @property
    def length(self) -> int:
        return len(self.text)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class StoredDocument:
    path: str
    url: str


@dataclass(frozen=True)
class ClassContext:
    class_id: str
    class_name: str = ""
    term_year: Optional[int] = None
