"""Data types passed between the cheat sheet pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import CheatSheetError, InvalidConstraints

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@dataclass(frozen=True)
class SourceDocument:
    """One uploaded file, exactly as received."""

    data: bytes
    mime_type: str
    original_name: str = ""


@dataclass(frozen=True)
class LayoutConstraints:
    """Requested column count and page budget of the cheat sheet.

    Both values must be integers >= 1; anything else raises
    :class:`InvalidConstraints` instead of being clamped.
    """

    columns: int = 1
    pages: int = 1

    def __post_init__(self):
        for field_name in ("columns", "pages"):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConstraints(
                    f"{field_name} must be an integer, got {value!r}"
                )
            if value < 1:
                raise InvalidConstraints(f"{field_name} must be >= 1, got {value}")


@dataclass
class ExtractionResult:
    """Outcome of extracting a single document, tagged success or failure."""

    document: SourceDocument
    text: str = ""
    error: Optional[CheatSheetError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CheatSheetResult:
    request_id: str
    pdf: bytes
    markup: str
    combined_text: str


class PipelineState(str, Enum):
    EXTRACTING = "extracting"
    SYNTHESIZING = "synthesizing"
    REFINING = "refining"
    COMPILING = "compiling"
    DONE = "done"
    FAILED = "failed"
