"""Settings resolved from the environment with sane defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass

from . import constants


def _parse_env_list(env_name: str, default: list[str]) -> tuple[str, ...]:
    raw = os.getenv(env_name)
    if not raw:
        return tuple(default)
    tokens = [token.strip() for token in raw.split(",") if token.strip()]
    return tuple(tokens) if tokens else tuple(default)


def _get_env_str(env_name: str, default: str) -> str:
    raw = os.getenv(env_name)
    if raw is None:
        return default
    return raw


def _get_env_alias(env_names: tuple[str, ...], default: str) -> str:
    for env_name in env_names:
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            return raw
    return default


def _parse_env_int(env_name: str, default: int) -> int:
    raw = os.getenv(env_name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_env_float(env_name: str, default: float) -> float:
    raw = os.getenv(env_name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _read_file_trimmed(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return handle.read().strip()
    except OSError as exc:
        raise ValueError(f"unable to read password file {path!r}: {exc}") from exc


def _resolve_password() -> str:
    env_secret = os.getenv("STOCKSCAN_PASSWORD", "").strip()
    file_path = (os.getenv("STOCKSCAN_PASSWORD_FILE") or "").strip()
    if not file_path:
        return env_secret
    try:
        secret = _read_file_trimmed(file_path)
    except ValueError:
        return env_secret
    return secret or env_secret


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    request_timeout: float
    device_tag: str
    api_token: str
    username: str
    password: str
    inactivity_timeout_ms: int
    scan_delay_ms: int
    required_consistent_reads: int
    validation_window_ms: int
    cooldown_ms: int
    history_size: int
    api_host: str
    api_port: int
    users: tuple[str, ...]
    jwt_secret: str
    token_ttl_seconds: int
    scan_retention_days: int
    cleanup_interval_seconds: float

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_base_url=_get_env_alias(
                ("STOCKSCAN_API_URL", "STOCKSCAN_API_BASE_URL"),
                constants.DEFAULT_API_BASE_URL,
            ),
            request_timeout=_parse_env_float(
                "STOCKSCAN_REQUEST_TIMEOUT", constants.DEFAULT_REQUEST_TIMEOUT
            ),
            device_tag=_get_env_alias(
                ("STOCKSCAN_DEVICE_TAG",), constants.DEFAULT_DEVICE_TAG
            ),
            api_token=_get_env_str("STOCKSCAN_TOKEN", ""),
            username=_get_env_str("STOCKSCAN_USERNAME", "").strip(),
            password=_resolve_password(),
            inactivity_timeout_ms=_parse_env_int(
                "STOCKSCAN_INACTIVITY_TIMEOUT_MS",
                constants.DEFAULT_INACTIVITY_TIMEOUT_MS,
            ),
            scan_delay_ms=_parse_env_int(
                "STOCKSCAN_SCAN_DELAY_MS", constants.DEFAULT_SCAN_DELAY_MS
            ),
            required_consistent_reads=_parse_env_int(
                "STOCKSCAN_REQUIRED_READS",
                constants.DEFAULT_REQUIRED_CONSISTENT_READS,
            ),
            validation_window_ms=_parse_env_int(
                "STOCKSCAN_VALIDATION_WINDOW_MS",
                constants.DEFAULT_VALIDATION_WINDOW_MS,
            ),
            cooldown_ms=_parse_env_int(
                "STOCKSCAN_COOLDOWN_MS", constants.DEFAULT_COOLDOWN_MS
            ),
            history_size=_parse_env_int(
                "STOCKSCAN_HISTORY_SIZE", constants.DEFAULT_HISTORY_SIZE
            ),
            api_host=_get_env_str("STOCKSCAN_API_HOST", constants.DEFAULT_API_HOST),
            api_port=_parse_env_int("STOCKSCAN_API_PORT", constants.DEFAULT_API_PORT),
            users=_parse_env_list("STOCKSCAN_USERS", constants.DEFAULT_USERS),
            jwt_secret=_get_env_str("STOCKSCAN_JWT_SECRET", "").strip(),
            token_ttl_seconds=_parse_env_int(
                "STOCKSCAN_TOKEN_TTL", constants.DEFAULT_TOKEN_TTL_SECONDS
            ),
            scan_retention_days=_parse_env_int(
                "STOCKSCAN_SCAN_RETENTION_DAYS",
                constants.DEFAULT_SCAN_RETENTION_DAYS,
            ),
            cleanup_interval_seconds=_parse_env_float(
                "STOCKSCAN_CLEANUP_INTERVAL",
                constants.DEFAULT_CLEANUP_INTERVAL_SECONDS,
            ),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


__all__ = ["Settings", "get_settings"]
