from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from dotenv import load_dotenv

load_dotenv()
logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def temp_root() -> str:
    """Directory under which all pipeline temp files are created."""
    root = os.getenv("CHEATSHEET_TMP_DIR") or tempfile.gettempdir()
    os.makedirs(root, exist_ok=True)
    return root


def unique_stem(prefix: str, request_id: Optional[str] = None) -> str:
    """Build a collision-free file stem from the request id and a timestamp.

    >>> unique_stem("cheatsheet", "abc")  # doctest: +SKIP
    'cheatsheet_abc_1718000000000_9f2c1a'
    """
    rid = _UNSAFE_CHARS.sub("", request_id or "") or new_request_id()
    millis = int(time.time() * 1000)
    return f"{prefix}_{rid}_{millis}_{uuid.uuid4().hex[:6]}"


@contextmanager
def scoped_temp_file(
    data: bytes, suffix: str = "", request_id: Optional[str] = None
) -> Iterator[Path]:
    """Write ``data`` to a uniquely named temp file and delete it on exit."""
    path = Path(temp_root()) / f"{unique_stem('upload', request_id)}{suffix}"
    try:
        path.write_bytes(data)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


@contextmanager
def scoped_temp_dir(prefix: str, request_id: Optional[str] = None) -> Iterator[Path]:
    """Create a unique temp directory and remove it with everything inside."""
    path = Path(tempfile.mkdtemp(prefix=f"{unique_stem(prefix, request_id)}_", dir=temp_root()))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        if path.exists():
            logger.warning("Temp directory %s could not be removed", path)
