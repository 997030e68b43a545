"""
SettingsStore — persisted API key and base URL.

Settings live in a small JSON file (like a plugin's data.json). Values from
the environment (or a .env file) win over the stored ones, so CI and
one-off runs can inject a key without touching the file.
"""

import os
import json
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from clients.archivist_client import DEFAULT_BASE_URL

logger = logging.getLogger('SettingsStore')

DEFAULT_SETTINGS_PATH = os.path.join(os.path.expanduser('~'), '.archivist_importer.json')


class ArchivistSettings(BaseModel):
    """Schema for the persisted settings."""

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL

    @field_validator("api_key", mode="before")
    @classmethod
    def trim_key(cls, v):
        return (v or "").strip()

    @field_validator("base_url", mode="before")
    @classmethod
    def default_base_url(cls, v):
        v = (v or "").strip().rstrip("/")
        return v or DEFAULT_BASE_URL

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


class SettingsStore:
    """Loads and saves ArchivistSettings at *path*."""

    def __init__(self, path: Optional[str] = None, use_env: bool = True):
        self.path = path or os.getenv('ARCHIVIST_SETTINGS_PATH', DEFAULT_SETTINGS_PATH)
        self.use_env = use_env

    def load(self) -> ArchivistSettings:
        data = {}
        if os.path.exists(self.path):
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"Could not read settings from {self.path}: {e}")
                data = {}
            if not isinstance(data, dict):
                data = {}

        if self.use_env:
            load_dotenv()
            env_key = os.getenv('ARCHIVIST_API_KEY')
            env_url = os.getenv('ARCHIVIST_BASE_URL')
            if env_key:
                data['api_key'] = env_key
            if env_url:
                data['base_url'] = env_url

        return ArchivistSettings(
            api_key=data.get('api_key', ''),
            base_url=data.get('base_url', ''),
        )

    def save(self, settings: ArchivistSettings) -> None:
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(settings.model_dump(), f, indent=2)
        logger.info(f"Saved settings to {self.path}")
