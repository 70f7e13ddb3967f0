"""Platform-aware data paths, user settings, and request configuration."""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .core import DEFAULT_MODEL_ID
from .storage import STORAGE_KEYS, KeyValueStorage

DEFAULT_SYSTEM_PROMPT = (
    "You are a friendly cat-themed AI assistant named MeowGPT. "
    "Respond in a helpful and playful manner."
)


def get_data_path() -> Path:
    """Return the directory meowchat keeps its state in."""
    env = os.environ.get("MEOWCHAT_DATA_PATH")
    if env:
        return Path(env)

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "meowchat"
    elif sys.platform == "win32":
        return Path(os.environ.get("APPDATA", "")) / "meowchat"
    else:  # Linux
        xdg = os.environ.get("XDG_DATA_HOME")
        if xdg:
            return Path(xdg) / "meowchat"
        return Path.home() / ".local" / "share" / "meowchat"


def get_storage_path() -> Path:
    """Return the path of the key-value storage file."""
    return get_data_path() / "storage.json"


@dataclass
class Settings:
    """User-editable settings: provider credentials and the chosen model."""

    xai_api_key: str = ""
    gemini_api_key: str = ""
    hf_api_token: str = ""
    selected_model: str = DEFAULT_MODEL_ID


class SettingsProvider:
    """Reads and writes Settings in key-value storage.

    Values that were never saved fall back to environment variables
    (XAI_API_KEY, GEMINI_API_KEY, HF_API_TOKEN, MEOWCHAT_MODEL).
    """

    _FIELDS = {
        "xai_api_key": (STORAGE_KEYS["XAI_KEY"], "XAI_API_KEY"),
        "gemini_api_key": (STORAGE_KEYS["GEMINI_KEY"], "GEMINI_API_KEY"),
        "hf_api_token": (STORAGE_KEYS["HF_TOKEN"], "HF_API_TOKEN"),
        "selected_model": (STORAGE_KEYS["MODEL"], "MEOWCHAT_MODEL"),
    }

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def load(self) -> Settings:
        values = {}
        for attr, (key, env_var) in self._FIELDS.items():
            value = self.storage.get(key)
            if value is None:
                value = os.environ.get(env_var)
            if value is not None:
                values[attr] = value
        settings = Settings(**values)
        if not settings.selected_model:
            settings.selected_model = DEFAULT_MODEL_ID
        return settings

    def save(self, settings: Settings) -> None:
        for attr, (key, _) in self._FIELDS.items():
            self.storage.set(key, getattr(settings, attr))


@dataclass
class ChatConfig:
    """Fixed request parameters the conversation controller is built with."""

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    text_temperature: float = 0.7
    generation_config: dict = field(default_factory=lambda: {
        "temperature": 1,
        "topK": 40,
        "topP": 0.95,
        "maxOutputTokens": 8192,
        "responseMimeType": "text/plain",
    })
    timeout: float | None = None  # None keeps httpx's default
    apology_prefix: str = "Meow... "
