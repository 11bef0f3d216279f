"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union, get_args, get_origin

import yaml

from kvsession.modules.reliability import BackoffPolicy


@dataclass
class SessionStoreConfig:
    """Session store configuration."""
    table_name: str = "sessions"
    table_key: str = "session_id"
    secret_key: Optional[str] = None
    consistent_read: bool = True
    read_capacity: int = 10
    write_capacity: int = 5
    enable_locking: bool = False
    lock_expiry_time: float = 0.5
    lock_retry_delay: float = 0.5
    lock_max_wait_time: float = 1.0
    lock_max_attempts: int = 5
    shadow_keys: List[str] = field(default_factory=list)
    index_keys: List[str] = field(default_factory=list)
    cookie_name: str = "_session_id"
    cookie_secure: bool = False
    cookie_max_age: Optional[int] = None
    redis_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"

    def __post_init__(self):
        if self.lock_expiry_time <= 0:
            raise ValueError("lock_expiry_time must be positive")
        if self.lock_retry_delay < 0 or self.lock_max_wait_time < 0:
            raise ValueError("lock_retry_delay and lock_max_wait_time must not be negative")
        if self.lock_max_attempts < 1:
            raise ValueError("lock_max_attempts must be at least 1")
        reserved = {"data", "created_at", "updated_at", "lock_flag", "lock_time", self.table_key}
        clashing = sorted(reserved.intersection(self.shadow_keys))
        if clashing:
            raise ValueError(f"Shadow keys clash with reserved attributes: {', '.join(clashing)}")

    @property
    def lock_backoff(self) -> BackoffPolicy:
        """Retry schedule for pessimistic lock acquisition."""
        return BackoffPolicy.fixed(
            delay=self.lock_retry_delay,
            max_wait=self.lock_max_wait_time,
            max_attempts=self.lock_max_attempts,
        )


# Environment variable per option; everything else uses SESSION_<OPTION>
ENV_OVERRIDES = {
    "redis_url": "REDIS_URL",
    "log_level": "LOG_LEVEL",
}


class ConfigProvider(Protocol):
    """Protocol for configuration sources. Returns raw, partial options."""

    def load(self) -> Dict[str, Any]:
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def load(self) -> Dict[str, Any]:
        """Collect options set through environment variables."""
        options = {}
        for f in fields(SessionStoreConfig):
            name = ENV_OVERRIDES.get(f.name, f"SESSION_{f.name.upper()}")
            if name in self.environ:
                options[f.name] = self.environ[name]
        return options


class YamlConfigProvider:
    """YAML file configuration provider."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Dict[str, Any]:
        """Read options from the YAML file (a top-level mapping)."""
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {self.path} must contain a mapping")
        return data


def load_config(config_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None, **options) -> SessionStoreConfig:
    """
    Build the configuration.

    Precedence, lowest to highest: defaults, environment, YAML file, keyword options.

    Args:
        config_file: Optional YAML file (falls back to SESSION_CONFIG_FILE)
        environ: Environment mapping (defaults to os.environ)
        **options: Explicit option overrides

    Returns:
        SessionStoreConfig

    Raises:
        ValueError: On unknown options or unparseable values
    """
    env_provider = EnvConfigProvider(environ)
    merged: Dict[str, Any] = env_provider.load()

    config_file = config_file or env_provider.environ.get("SESSION_CONFIG_FILE")
    if config_file:
        merged.update(YamlConfigProvider(config_file).load())

    merged.update(options)

    known = {f.name: f for f in fields(SessionStoreConfig)}
    unknown = sorted(set(merged) - set(known))
    if unknown:
        raise ValueError(f"Unknown configuration options: {', '.join(unknown)}")

    values = {name: _coerce(name, known[name].type, value) for name, value in merged.items()}
    return SessionStoreConfig(**values)


def _base_type(annotation: Any) -> Any:
    """Strip Optional[...] and generic parameters: Optional[int] -> int, List[str] -> list."""
    if get_origin(annotation) is Union:
        annotation = next(a for a in get_args(annotation) if a is not type(None))
    return get_origin(annotation) or annotation


def _coerce(name: str, annotation: Any, value: Any) -> Any:
    """Convert a raw option (often a string from the environment) to its field type."""
    if value is None:
        return None
    base = _base_type(annotation)

    if base is list:
        items = value.split(",") if isinstance(value, str) else list(value)
        # Accept "role:S" style entries, keeping only the attribute name
        return [str(item).split(":")[0].strip() for item in items if str(item).strip()]
    if base is bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    if base in (int, float):
        try:
            return base(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value for {name}: {value!r}") from e
    return str(value)
