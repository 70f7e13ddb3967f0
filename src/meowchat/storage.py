"""Durable local key-value storage.

All state lives in a single JSON object file mapping string keys to string
values. Every write replaces the file atomically before returning, so a
reader that opens the file afterwards always sees the latest value.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from .errors import StorageError

logger = logging.getLogger(__name__)

STORAGE_KEYS = {
    "CONTEXTS": "chat_contexts",
    "CURRENT_CONTEXT": "current_chat_context",
    "XAI_KEY": "xai_api_key",
    "GEMINI_KEY": "gemini_api_key",
    "HF_TOKEN": "hf_api_token",
    "MODEL": "selected_model",
}


class KeyValueStorage:
    """A string-to-string map persisted as one JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> list[str]:
        return list(self._read())

    # ── Private helpers ──────────────────────────────────────────────

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error("Storage file %s is corrupt: %s", self.path, e)
            raise StorageError(f"Cannot parse storage file {self.path}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.path} does not hold an object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
