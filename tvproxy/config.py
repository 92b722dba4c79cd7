"""Application settings with defaults, environment bindings, a YAML file and overrides."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

ENV_PREFIX = "LW"
CONFIG_NAME = "lbrytv"

_DEFAULTS: dict[str, Any] = {
    "debug": False,
    "lbrynet": "http://localhost:5279/",
    "address": ":8080",
    "host": "http://localhost:8080",
    "basecontenturl": "http://localhost:8080/content/",
    "blobdownloadtimeout": 10,
    "accountsenabled": False,
}

_ENV_BOUND = ("debug", "lbrynet", "accountsenabled")

_TRUE_STRINGS = {"1", "t", "true"}


class ConfigError(Exception):
    """Raised when the configuration file cannot be found or parsed."""


@dataclass(frozen=True)
class DBConfig:
    """Database connection settings."""

    connection: str = ""
    dbname: str = ""
    options: str = ""


def _default_search_paths() -> list[str]:
    paths = [
        os.environ.get("LBRYTV_CONFIG_DIR", ""),
        str(Path(sys.argv[0] or ".").resolve().parent),
        ".",
        "..",
        "../..",
        os.path.expanduser("~/.lbrytv"),
    ]
    return [p for p in paths if p]


def _lower_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


class Config:
    """Layered settings store; keys are case-insensitive.

    Lookup order: explicitly set values, bound environment variables,
    the configuration file, then built-in defaults.
    """

    def __init__(
        self,
        search_paths: Iterable[str] | None = None,
        environ: Mapping[str, str] | None = None,
        name: str = CONFIG_NAME,
    ):
        self.name = name
        self.environ = os.environ if environ is None else environ
        self.search_paths = (
            _default_search_paths() if search_paths is None else list(search_paths)
        )
        self.read_done = False
        self.config_file: Path | None = None
        self._defaults = dict(_DEFAULTS)
        self._file: dict[str, Any] = {}
        self._set: dict[str, Any] = {}
        self._overridden: dict[str, Any] = {}

    def read(self) -> None:
        """Load the first configuration file found in the search paths."""
        for directory in self.search_paths:
            for ext in ("yml", "yaml"):
                candidate = Path(directory) / f"{self.name}.{ext}"
                if candidate.is_file():
                    try:
                        data = yaml.safe_load(candidate.read_text()) or {}
                    except yaml.YAMLError as exc:
                        raise ConfigError(f"cannot parse {candidate}: {exc}") from exc
                    if not isinstance(data, Mapping):
                        raise ConfigError(f"{candidate} does not hold a mapping")
                    self._file = _lower_keys(data)
                    self.config_file = candidate
                    self.read_done = True
                    return
        raise ConfigError(
            f'Config File "{self.name}" Not Found in {self.search_paths!r}'
        )

    def get(self, key: str) -> Any:
        k = key.lower()
        if k in self._set:
            return self._set[k]
        if k in _ENV_BOUND:
            env_name = f"{ENV_PREFIX}_{k.upper()}"
            if env_name in self.environ:
                return self.environ[env_name]
        if k in self._file:
            return self._file[k]
        return self._defaults.get(k)

    def get_bool(self, key: str) -> bool:
        value = self.get(key)
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        return str(value).strip().lower() in _TRUE_STRINGS

    def get_string(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def get_int(self, key: str) -> int:
        value = self.get(key)
        if value is None:
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    def set(self, key: str, value: Any) -> None:
        self._set[key.lower()] = value

    def override(self, key: str, value: Any) -> None:
        """Set a value, remembering the current one for restore_overridden."""
        self._overridden[key.lower()] = self.get(key)
        self.set(key, value)

    def restore_overridden(self) -> None:
        for key, value in self._overridden.items():
            if value is None:
                self._set.pop(key, None)
            else:
                self.set(key, value)
        self._overridden = {}

    @property
    def overridden(self) -> dict[str, Any]:
        return dict(self._overridden)


class _ConfigHolder:
    """Keeps the process-wide configuration object."""

    def __init__(self) -> None:
        self.current: Config | None = None

    def get(self) -> Config:
        if self.current is None:
            config = Config()
            config.read()
            self.current = config
        return self.current

    def install(self, config: Config | None) -> None:
        if config is not None and not isinstance(config, Config):
            raise TypeError(f"expected a Config instance, got {type(config).__name__}")
        self.current = config


_holder = _ConfigHolder()


def get_config() -> Config:
    """Return the process-wide configuration, reading it on first use."""
    return _holder.get()


def set_config(config: Config | None) -> None:
    """Install a configuration object as the process-wide one (None resets it)."""
    _holder.install(config)


def is_production() -> bool:
    return not get_config().get_bool("Debug")


def override(key: str, value: Any) -> None:
    get_config().override(key, value)


def restore_overridden() -> None:
    get_config().restore_overridden()


def accounts_enabled() -> bool:
    return get_config().get_bool("AccountsEnabled")


def get_address() -> str:
    return get_config().get_string("Address")


def metrics_address() -> str:
    return get_config().get_string("MetricsAddress")


def metrics_path() -> str:
    return get_config().get_string("MetricsPath")


def get_lbrynet() -> str:
    return get_config().get_string("Lbrynet")


def get_internal_api_host() -> str:
    return get_config().get_string("InternalAPIHost")


def get_database() -> DBConfig:
    raw = get_config().get("Database")
    if not isinstance(raw, Mapping):
        return DBConfig()
    values = {str(k).lower(): v for k, v in raw.items()}
    return DBConfig(
        connection=str(values.get("connection") or ""),
        dbname=str(values.get("dbname") or ""),
        options=str(values.get("options") or ""),
    )


def get_sentry_dsn() -> str:
    return get_config().get_string("SentryDSN")


def get_project_url() -> str:
    return get_config().get_string("ProjectURL")


def get_publish_source_dir() -> str:
    return get_config().get_string("PublishSourceDir")


def get_blob_files_dir() -> str:
    return get_config().get_string("BlobFilesDir")


def get_reflector_address() -> str:
    return get_config().get_string("ReflectorAddress")


def get_blob_download_timeout() -> int:
    return get_config().get_int("BlobDownloadTimeout")


def should_log_responses() -> bool:
    return get_config().get_bool("ShouldLogResponses")