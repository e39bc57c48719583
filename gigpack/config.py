# gigpack/config.py
# Settings lookup shared by pages, library code and tools.
# - Prefers Streamlit secrets when available, else falls back to environment variables
# - Logging is configured once per process

from __future__ import annotations

import logging
import os
from typing import Any, Optional

try:
    import streamlit as st  # type: ignore
except Exception:  # streamlit not always present (unit tests, CLI)
    st = None  # type: ignore

from gigpack.errors import ConfigError

_LOGGING_READY = False


def _secret(name: str) -> Any:
    if st is None:
        return None
    try:
        if hasattr(st, "secrets") and name in st.secrets:
            return st.secrets[name]  # type: ignore[index]
    except Exception:
        # no secrets.toml outside a Streamlit run
        return None
    return None


def get_setting(name: str, default: Optional[str] = None, required: bool = False) -> Any:
    """Prefer st.secrets → env var → default. Raise ConfigError if required and missing."""
    val = _secret(name)
    if val is None:
        val = os.getenv(name, default)
    if required and (val is None or str(val).strip() == ""):
        raise ConfigError(
            f"Missing required setting: {name}. Add it under Settings → Secrets in "
            "Streamlit Cloud or set it as an environment variable locally."
        )
    return val


def get_section(name: str) -> dict:
    """Nested secrets table (e.g. [google_oauth]); empty dict when absent."""
    val = _secret(name)
    if val is None:
        return {}
    try:
        return dict(val)
    except Exception:
        return {}


def flag(name: str, default: str = "0") -> bool:
    val = get_setting(name, default)
    return str(val).lower() in {"1", "true", "yes", "on"}


def save_mode() -> str:
    mode = str(get_setting("GIGPACK_SAVE_MODE", "rpc") or "rpc").strip().lower()
    return mode if mode in ("rpc", "direct") else "rpc"


def public_base_url() -> str:
    return str(get_setting("GIGPACK_PUBLIC_BASE_URL", "http://localhost:8501")).rstrip("/")


def configure_logging() -> None:
    global _LOGGING_READY
    if _LOGGING_READY:
        return
    level = str(get_setting("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _LOGGING_READY = True


def gig_timezone() -> str:
    """IANA zone used for gig wall-clock times (calendar events, .ics files)."""
    return str(get_setting("GIGPACK_TIMEZONE", "America/New_York") or "America/New_York")
