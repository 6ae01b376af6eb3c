"""Configuration loading for the snooze host and its adapters."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


_TRUE_VALUES = {"1", "true", "yes", "on", "y"}
_FALSE_VALUES = {"0", "false", "no", "off", "n"}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

DEFAULT_DATA_DIR = ".snooze_data"
DEFAULT_CHECK_INTERVAL_SECONDS = 60
DEFAULT_RECOVERY_COOLDOWN_SECONDS = 300


@dataclass(frozen=True, slots=True)
class SnoozeConfig:
    """Runtime configuration for the snooze host."""

    data_dir: str = DEFAULT_DATA_DIR
    check_interval_seconds: int = DEFAULT_CHECK_INTERVAL_SECONDS
    recovery_cooldown_seconds: int = DEFAULT_RECOVERY_COOLDOWN_SECONDS
    notification_timeout_seconds: int = 0
    host: str = "127.0.0.1"
    port: int = 8787
    enable_timers: bool = True
    log_level: str = "INFO"
    env_file: str = ".env"

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def store_path(self) -> Path:
        return Path(self.data_dir).expanduser() / "store.json"

    @property
    def session_path(self) -> Path:
        return Path(self.data_dir).expanduser() / "session.json"


def load_snooze_config(env_file: str = ".env") -> SnoozeConfig:
    """Load snooze config from env file with safe parsing defaults."""

    env = _parse_env_file(env_file)

    data_dir = env.get("SNOOZE_DATA_DIR", DEFAULT_DATA_DIR).strip() or DEFAULT_DATA_DIR
    check_interval = _env_int(
        env,
        "SNOOZE_CHECK_INTERVAL_SECONDS",
        default=DEFAULT_CHECK_INTERVAL_SECONDS,
        minimum=1,
    )
    cooldown = _env_int(
        env,
        "SNOOZE_RECOVERY_COOLDOWN_SECONDS",
        default=DEFAULT_RECOVERY_COOLDOWN_SECONDS,
        minimum=0,
    )
    timeout = _env_int(env, "SNOOZE_NOTIFICATION_TIMEOUT_SECONDS", default=0, minimum=0)
    host = env.get("SNOOZE_HTTP_HOST", "127.0.0.1").strip() or "127.0.0.1"
    port = _env_int(env, "SNOOZE_HTTP_PORT", default=8787, minimum=1)
    enable_timers = _env_bool(env, "SNOOZE_ENABLE_TIMERS", default=True)

    log_level = env.get("SNOOZE_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        log_level = "INFO"

    return SnoozeConfig(
        data_dir=data_dir,
        check_interval_seconds=check_interval,
        recovery_cooldown_seconds=cooldown,
        notification_timeout_seconds=timeout,
        host=host,
        port=port,
        enable_timers=enable_timers,
        log_level=log_level,
        env_file=env_file,
    )


def _parse_env_file(path: str) -> dict[str, str]:
    env_path = Path(path)
    if not env_path.exists():
        return {}

    env: dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        if text.startswith("export "):
            text = text[7:].strip()
        if "=" not in text:
            continue

        key, value = text.split("=", 1)
        key = key.strip()
        value = value.strip()

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]

        if key:
            env[key] = value

    return env


def _env_int(env: dict[str, str], key: str, default: int, minimum: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    if parsed < minimum:
        return default
    return parsed


def _env_bool(env: dict[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == "":
        return default

    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default
