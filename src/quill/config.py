"""Configuration loading from environment variables and quill.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

DEFAULT_BACKEND_URL = "https://notes-app-0nri.onrender.com"
_DEFAULT_STATE_DIR = Path.home() / ".quill"
_CONFIG_FILENAME = "quill.toml"


@dataclass
class BackendConfig:
    """Notes backend location."""

    url: str = DEFAULT_BACKEND_URL


@dataclass
class StorageConfig:
    """Where the session credential is persisted."""

    state_dir: Path = _DEFAULT_STATE_DIR

    @property
    def session_file(self) -> Path:
        return self.state_dir / "session.json"


@dataclass
class QuillConfig:
    """Top-level Quill configuration."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log_level: str = "WARNING"


def load_config(config_path: Path | None = None) -> QuillConfig:
    """Load configuration from environment variables and optional quill.toml.

    Priority: environment variables > quill.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _DEFAULT_STATE_DIR / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    backend_data = file_data.get("backend", {})
    storage_data = file_data.get("storage", {})

    # An empty env var counts as unset
    url = os.getenv("QUILL_BACKEND_URL") or backend_data.get("url") or DEFAULT_BACKEND_URL
    state_dir = os.getenv("QUILL_STATE_DIR") or storage_data.get("state_dir")

    return QuillConfig(
        backend=BackendConfig(url=url.rstrip("/")),
        storage=StorageConfig(
            state_dir=Path(state_dir).expanduser() if state_dir else _DEFAULT_STATE_DIR,
        ),
        log_level=os.getenv("QUILL_LOG_LEVEL", file_data.get("log_level", "WARNING")),
    )
