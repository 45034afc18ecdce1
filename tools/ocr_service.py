import io
import logging
import os
import threading
from typing import List, Optional, Union

import easyocr
import numpy as np
from PIL import Image
from dotenv import load_dotenv

load_dotenv()
logger = logging.getLogger(__name__)


class OCRError(RuntimeError):
    pass


def _env_languages() -> List[str]:
    raw = os.getenv("OCR_LANGUAGES", "en")
    return [lang.strip() for lang in raw.split(",") if lang.strip()] or ["en"]


class OCRService:
    """Thin wrapper around an easyocr reader.

    The reader loads detection and recognition models on first use, which is
    slow, so it is built lazily and shared behind a lock.
    """

    def __init__(self, languages: Optional[List[str]] = None, gpu: Optional[bool] = None):
        self.languages = languages or _env_languages()
        if gpu is None:
            gpu = os.getenv("OCR_GPU", "false").lower() in {"1", "true", "yes"}
        self.gpu = gpu
        self._reader = None
        self._lock = threading.Lock()

    @property
    def reader(self):
        if self._reader is None:
            with self._lock:
                if self._reader is None:
                    logger.info("Loading OCR reader for languages %s", self.languages)
                    self._reader = easyocr.Reader(self.languages, gpu=self.gpu)
        return self._reader

    def extract_text_from_image(self, image_data: Union[bytes, str, Image.Image]) -> str:
        try:
            if isinstance(image_data, bytes):
                image = Image.open(io.BytesIO(image_data))
            elif isinstance(image_data, str):
                image = Image.open(image_data)
            else:
                image = image_data
            image_array = np.array(image.convert("RGB"))

            reader = self.reader
            with self._lock:
                lines = reader.readtext(image_array, detail=0, paragraph=True)
        except Exception as e:
            raise OCRError(f"OCR failed: {e}") from e

        return "\n".join(line for line in lines if line)


_ocr_service = None
_ocr_service_lock = threading.Lock()


def get_ocr_service() -> OCRService:
    """Return the process-wide OCR service."""
    global _ocr_service
    if _ocr_service is None:
        with _ocr_service_lock:
            if _ocr_service is None:
                _ocr_service = OCRService()
    return _ocr_service
