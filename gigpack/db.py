# gigpack/db.py
# Supabase clients.
#   user_client()  -> anon key + the signed-in user's session (RLS applies)
#   admin_client() -> service key; only for public share lookups and tools

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from supabase import create_client, Client

from gigpack.config import get_setting

logger = logging.getLogger(__name__)


def anon_client() -> Client:
    url = get_setting("SUPABASE_URL", required=True)
    key = get_setting("SUPABASE_ANON_KEY", required=True)
    return create_client(url, key)


def user_client(access_token: Optional[str] = None, refresh_token: Optional[str] = None) -> Client:
    """Anon client with the session attached, so row level security sees the user."""
    sb = anon_client()
    if not (access_token and refresh_token):
        try:
            import streamlit as st
            access_token = access_token or st.session_state.get("sb_access_token")
            refresh_token = refresh_token or st.session_state.get("sb_refresh_token")
        except Exception:
            pass
    if access_token and refresh_token:
        try:
            sb.auth.set_session(access_token=access_token, refresh_token=refresh_token)
        except Exception as e:
            logger.warning("SB_SESSION_ATTACH_FAILED %s", e)
    return sb


def _admin_key() -> Optional[str]:
    return (
        get_setting("SUPABASE_SERVICE_ROLE")
        or get_setting("SUPABASE_SERVICE_KEY")
        or get_setting("SUPABASE_ANON_KEY")
    )


def admin_client() -> Client:
    return create_client(get_setting("SUPABASE_URL", required=True), _admin_key())


# ---------- Small query helpers ----------
def rows(resp: Any) -> List[Dict[str, Any]]:
    return getattr(resp, "data", None) or []


def first_row(resp: Any) -> Optional[Dict[str, Any]]:
    data = rows(resp)
    if isinstance(data, dict):
        return data
    return data[0] if data else None


def fetch_one(sb: Client, table: str, column: str, value: Any, select: str = "*") -> Optional[Dict[str, Any]]:
    """Single row by equality or None (no PGRST116 on missing rows)."""
    resp = sb.table(table).select(select).eq(column, value).limit(1).execute()
    return first_row(resp)


def fetch_children(sb: Client, table: str, gig_id: str, select: str = "*", column: str = "gig_id") -> List[Dict[str, Any]]:
    return rows(sb.table(table).select(select).eq(column, gig_id).execute())
