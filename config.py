"""JSON-based config store, pipeline settings and API key resolution."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from interfaces import ConfigStore

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "your_groq_api_key_here"
API_KEY_ENV_VAR = "GROQ_API_KEY"
AUTO_LANGUAGE = "auto"


@dataclass
class Settings:
    base_url: str = "https://api.groq.com/openai/v1"
    model: str = "whisper-large-v3"
    # None means auto-detect; the language part is then left out of the upload.
    default_language: Optional[str] = None
    response_format: str = "json"
    request_timeout_s: float = 30.0
    resource_timeout_s: float = 60.0
    max_recording_s: float = 60.0
    success_display_s: float = 1.5
    error_display_s: float = 3.0
    sample_rate: int = 16000
    channels: int = 1
    packaged_api_key: str = ""


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "voiceboard" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", ""))

    def set_api_key(self, key: str) -> None:
        data = self._read_all()
        data["api_key"] = key.strip()
        self._write_all(data)

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", "Key.alt_l"))

    def set_hotkey(self, hotkey: str) -> None:
        data = self._read_all()
        data["hotkey"] = hotkey
        self._write_all(data)

    def get_language(self) -> str:
        data = self._read_all()
        return str(data.get("language", ""))

    def set_language(self, language: str) -> None:
        data = self._read_all()
        data["language"] = language
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def read_packaged_config(path: Path) -> dict:
    """Read the configuration file shipped next to the app, if any."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable packaged config %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_settings(store: ConfigStore, packaged: Optional[Mapping[str, object]] = None) -> Settings:
    packaged = packaged or {}
    settings = Settings(packaged_api_key=str(packaged.get(API_KEY_ENV_VAR, "")))
    language = store.get_language().strip() or str(packaged.get("language", "")).strip()
    if language and language != AUTO_LANGUAGE:
        settings.default_language = language
    settings.resource_timeout_s = settings.request_timeout_s * 2
    return settings


def is_usable_api_key(key: Optional[str]) -> bool:
    return bool(key) and key.strip() != "" and key.strip() != PLACEHOLDER_API_KEY


def resolve_api_key(
    store: ConfigStore,
    packaged: str = "",
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Return the first usable key: packaged value, environment, then runtime override.

    Returns an empty string when nothing usable is configured.
    """
    environ = os.environ if environ is None else environ
    for source, candidate in (
        ("packaged config", packaged),
        ("environment", environ.get(API_KEY_ENV_VAR, "")),
        ("runtime override", store.get_api_key()),
    ):
        if is_usable_api_key(candidate):
            logger.debug("Using API key from %s", source)
            return candidate.strip()
    return ""
