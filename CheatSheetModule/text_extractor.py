"""Plain-text extraction for uploaded documents.

Dispatches on the declared mime type: PDFs go through PyMuPDF (with OCR for
pages that have no text layer), Word documents through python-docx, images
through easyocr and plain text is decoded directly. Each document is spooled
to its own temp file which is removed once extraction finishes.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import docx
import fitz
from dotenv import load_dotenv

from tools.ocr_service import OCRService, get_ocr_service
from tools.temp_files import scoped_temp_file

from .errors import CheatSheetError, ExtractionFailed, UnsupportedFormat
from .models import DOCX_MIME, PDF_MIME, ExtractionResult, SourceDocument

load_dotenv()
logger = logging.getLogger(__name__)

TEXT_MIMES = {"text/plain", "text/markdown"}


def _normalize_mime(mime_type: str) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes"}


class TextExtractor:
    def __init__(
        self,
        ocr_service: Optional[OCRService] = None,
        pdf_ocr_fallback: Optional[bool] = None,
        max_workers: Optional[int] = None,
    ):
        self._ocr_service = ocr_service
        self.pdf_ocr_fallback = (
            pdf_ocr_fallback
            if pdf_ocr_fallback is not None
            else _env_flag("PDF_OCR_FALLBACK", True)
        )
        self.max_workers = max(1, max_workers or int(os.getenv("EXTRACTION_WORKERS", 4)))

    @property
    def ocr_service(self) -> OCRService:
        if self._ocr_service is None:
            self._ocr_service = get_ocr_service()
        return self._ocr_service

    def _handler_for(self, mime_type: str) -> Optional[Callable[[Path], str]]:
        mime = _normalize_mime(mime_type)
        handlers: Dict[str, Callable[[Path], str]] = {
            PDF_MIME: self._extract_pdf,
            DOCX_MIME: self._extract_docx,
        }
        if mime in handlers:
            return handlers[mime]
        if mime.startswith("image/"):
            return self._extract_image
        if mime in TEXT_MIMES:
            return self._extract_plain
        return None

    def extract(self, doc: SourceDocument, request_id: Optional[str] = None) -> str:
        """Return the plain text of ``doc``.

        Raises:
            UnsupportedFormat: no handler exists for ``doc.mime_type``
            ExtractionFailed: the decoder or OCR engine failed
        """
        handler = self._handler_for(doc.mime_type)
        if handler is None:
            raise UnsupportedFormat(doc.mime_type, doc.original_name)

        suffix = Path(doc.original_name).suffix if doc.original_name else ""
        try:
            with scoped_temp_file(doc.data, suffix=suffix, request_id=request_id) as path:
                text = handler(path)
        except CheatSheetError:
            raise
        except Exception as e:
            logger.warning("Extraction of %s failed: %s", doc.original_name, e)
            raise ExtractionFailed(
                f"Could not extract text from '{doc.original_name}': {e}",
                original_name=doc.original_name,
            ) from e

        logger.info(
            "Extracted %d characters from %s (%s)",
            len(text),
            doc.original_name,
            _normalize_mime(doc.mime_type),
        )
        return text

    def extract_all(
        self, docs: Sequence[SourceDocument], request_id: Optional[str] = None
    ) -> List[ExtractionResult]:
        """Extract every document, keeping upload order in the result list."""

        def _run(doc: SourceDocument) -> ExtractionResult:
            try:
                return ExtractionResult(document=doc, text=self.extract(doc, request_id))
            except CheatSheetError as e:
                return ExtractionResult(document=doc, error=e)

        if self.max_workers == 1 or len(docs) < 2:
            return [_run(doc) for doc in docs]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(docs))) as pool:
            return list(pool.map(_run, docs))

    def _extract_pdf(self, path: Path) -> str:
        pages = []
        with fitz.open(str(path)) as pdf:
            for page in pdf:
                text = page.get_text()
                if not text.strip() and self.pdf_ocr_fallback:
                    # scanned page without a text layer
                    pix = page.get_pixmap(matrix=fitz.Matrix(2, 2))
                    text = self.ocr_service.extract_text_from_image(pix.tobytes("png"))
                pages.append(text.strip("\n"))
        return "\n".join(page for page in pages if page)

    def _extract_docx(self, path: Path) -> str:
        document = docx.Document(str(path))
        lines = [p.text for p in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                lines.append("\t".join(c for c in cells if c))
        return "\n".join(line for line in lines if line.strip())

    def _extract_image(self, path: Path) -> str:
        return self.ocr_service.extract_text_from_image(path.read_bytes())

    def _extract_plain(self, path: Path) -> str:
        return path.read_bytes().decode("utf-8", errors="replace")
