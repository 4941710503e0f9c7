"""Runtime settings: defaults, an optional JSON profile, then environment."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


DEFAULT_DB_PATH = Path.home() / ".botparts" / "botparts.sqlite"
STORE_BACKENDS = ("sqlite", "memory")

_ENV_KEYS: Dict[str, str] = {
    "db_path": "BOTPARTS_DB_PATH",
    "app_id": "BOTPARTS_APP_ID",
    "default_build_name": "BOTPARTS_DEFAULT_BUILD_NAME",
    "currency_symbol": "BOTPARTS_CURRENCY",
    "log_level": "BOTPARTS_LOG_LEVEL",
    "store": "BOTPARTS_STORE",
}


@dataclass(frozen=True)
class Settings:
    db_path: str = str(DEFAULT_DB_PATH)
    app_id: str = "default-app-id"
    default_build_name: str = "Current Build"
    currency_symbol: str = "₹"
    log_level: str = "INFO"
    store: str = "sqlite"

    def __post_init__(self) -> None:
        if self.store not in STORE_BACKENDS:
            raise ValueError(f"store must be one of {STORE_BACKENDS}, got {self.store!r}")
        if not self.app_id or "/" in self.app_id:
            raise ValueError(f"app_id must be non-empty and contain no '/', got {self.app_id!r}")
        if not self.default_build_name.strip():
            raise ValueError("default_build_name cannot be empty")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: Optional["Settings"] = None) -> "Settings":
        known = {f.name for f in fields(cls)}
        overrides = {key: str(value) for key, value in data.items() if key in known and value is not None}
        return replace(base or cls(), **overrides)

    @classmethod
    def load(cls, path: Path, base: Optional["Settings"] = None) -> "Settings":
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{path} must hold a JSON object")
        return cls.from_mapping(data, base)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(self), indent=2, ensure_ascii=False), encoding="utf-8")

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        overrides = {name: environ[key] for name, key in _ENV_KEYS.items() if environ.get(key)}
        return replace(self, **overrides) if overrides else self


def load_settings(path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Resolve settings from defaults, an optional JSON file and the environment."""

    settings = Settings()
    if path is not None:
        settings = Settings.load(path, settings)
    return settings.with_env(environ)
