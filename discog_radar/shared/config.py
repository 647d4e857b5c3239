import os
from typing import Tuple

from .errors import ConfigurationError

DISCOGS_BASE_URL = "https://api.discogs.com"
DEFAULT_USER_AGENT = "digi-discog-radar/1.0"

DEFAULT_RETRIES = 3
DEFAULT_DELAY_MS = 300
DEFAULT_TIMEOUT_SECONDS = 10.0

DEFAULT_SCAN_BATCH_SIZE = 5
DEFAULT_SCAN_BATCH_DELAY_MS = 1000

_KEYVAULT_PREFIX = "@Microsoft.KeyVault("


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value >= minimum else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


def get_credentials() -> Tuple[str, str]:
    key = os.getenv("DISCOGS_KEY")
    secret = os.getenv("DISCOGS_SECRET")
    key = key.strip() if key else key
    secret = secret.strip() if secret else secret
    if not key or not secret:
        raise ConfigurationError("Discogs credentials are not configured.")
    # App settings backed by Key Vault stay literal when the reference fails to resolve.
    if key.startswith(_KEYVAULT_PREFIX) or secret.startswith(_KEYVAULT_PREFIX):
        raise ConfigurationError("Discogs credentials are unresolved Key Vault references.")
    return key, secret


def user_agent() -> str:
    return os.getenv("USER_AGENT", DEFAULT_USER_AGENT)


def retry_settings() -> Tuple[int, int]:
    return (
        _env_int("DISCOGS_RETRIES", DEFAULT_RETRIES, minimum=1),
        _env_int("DISCOGS_RETRY_DELAY_MS", DEFAULT_DELAY_MS),
    )


def http_timeout() -> float:
    return _env_float("DISCOGS_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)


def scan_wave_settings() -> Tuple[int, int]:
    return (
        _env_int("LABEL_SCAN_BATCH_SIZE", DEFAULT_SCAN_BATCH_SIZE, minimum=1),
        _env_int("LABEL_SCAN_BATCH_DELAY_MS", DEFAULT_SCAN_BATCH_DELAY_MS),
    )
