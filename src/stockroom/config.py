import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import dotenv_values

from .logging import get_logger

log = get_logger("config")

DEFAULT_RATE_URL = "https://ve.dolarapi.com/v1/dolares"
DEFAULT_RATE_TIMEOUT = 10
DEFAULT_DB_TIMEOUT = 5.0
DEFAULT_INVOICE_CURRENCY = "Bs"


@dataclass
class Settings:
    db_path: Optional[str]
    db_timeout: float
    rate_url: str
    rate_timeout: int
    invoice_currency: str


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    Running the CLI from a subdirectory still picks up the repository-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    values = {k: v for k, v in dotenv_values(path).items() if v is not None}
    log.debug(f"Loaded {len(values)} key(s) from .env at {path}")
    return values


def _lookup(key: str, env: Dict[str, str]) -> Optional[str]:
    v = os.environ.get(key)
    if v is None:
        v = env.get(key)
    if v is None:
        return None
    v = v.strip()
    return v or None


def _number(key: str, raw: Optional[str], default, cast):
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError:
        log.warning(f"{key}={raw!r} is not a number; using {default}")
        return default
    if value <= 0:
        log.warning(f"{key}={raw!r} must be positive; using {default}")
        return default
    return value


def load_settings(dotenv_dir: Optional[str] = None) -> Settings:
    """Build settings from the environment, falling back to the nearest `.env`."""
    env = _read_dotenv(dotenv_dir or os.getcwd())
    return Settings(
        db_path=_lookup("STOCKROOM_DB_PATH", env),
        db_timeout=_number("STOCKROOM_DB_TIMEOUT", _lookup("STOCKROOM_DB_TIMEOUT", env), DEFAULT_DB_TIMEOUT, float),
        rate_url=_lookup("STOCKROOM_RATE_URL", env) or DEFAULT_RATE_URL,
        rate_timeout=_number("STOCKROOM_RATE_TIMEOUT", _lookup("STOCKROOM_RATE_TIMEOUT", env), DEFAULT_RATE_TIMEOUT, int),
        invoice_currency=_lookup("STOCKROOM_INVOICE_CURRENCY", env) or DEFAULT_INVOICE_CURRENCY,
    )
