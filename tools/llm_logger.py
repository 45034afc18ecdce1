import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()
logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = "data/Log/llm_log.jsonl"


class LLMLogger:
    """Appends every LLM request/response pair to a JSON-lines audit file.

    The target file is read from ``LLM_LOG_PATH`` on every call so that it
    can be redirected at runtime; ``LLM_LOG_ENABLED=false`` turns it off.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def log_file(self) -> Path:
        return Path(os.getenv("LLM_LOG_PATH", DEFAULT_LOG_PATH))

    @property
    def enabled(self) -> bool:
        return os.getenv("LLM_LOG_ENABLED", "true").lower() in {"1", "true", "yes"}

    def log_llm_call(
        self,
        messages: List[Dict[str, str]],
        response: Any,
        model: Optional[str],
        module: str,
        metadata: Optional[Dict] = None,
    ):
        """Log LLM call with full details"""
        if not self.enabled:
            return
        entry = {
            "timestamp": datetime.now().isoformat(),
            "module": module,
            "metadata": metadata or {},
            "request": {"model": model, "messages": messages},
            "response": self._extract_response_data(response),
        }
        try:
            path = self.log_file
            with self._lock:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.warning("Failed to log LLM call: %s", e)

    def _extract_response_data(self, response: Any) -> Dict:
        if response is None:
            return {"content": None}
        metadata = getattr(response, "response_metadata", None) or {}
        usage = metadata.get("token_usage") or {}
        return {
            "id": metadata.get("id", ""),
            "model": metadata.get("model_name", metadata.get("model", "")),
            "content": getattr(response, "content", str(response)),
            "finish_reason": metadata.get("finish_reason", ""),
            "usage": {
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
            },
        }

    def read_logs(self) -> List[Dict]:
        """Return all logged entries, skipping unreadable lines."""
        path = self.log_file
        if not path.exists():
            return []
        entries = []
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning("Skipping malformed LLM log line")
        return entries


def get_llm_logger() -> LLMLogger:
    """Get singleton LLMLogger instance"""
    return LLMLogger()
