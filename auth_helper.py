# -----auth_helper.py
# Session handling for the Streamlit pages.
# Tokens live in st.session_state (sb_access_token / sb_refresh_token);
# user_id / supabase_user are hydrated from them on every page load.

import logging

import streamlit as st
from supabase_auth.errors import AuthApiError

from gigpack.config import configure_logging
from gigpack.db import anon_client
from gigpack.errors import ConfigError

configure_logging()
logger = logging.getLogger(__name__)

_SESSION_KEYS = ("supabase_user", "user_id", "user_email", "sb_access_token", "sb_refresh_token")


def _clear_identity():
    for k in _SESSION_KEYS:
        st.session_state.pop(k, None)


def _client():
    try:
        return anon_client()
    except ConfigError as e:
        st.error(str(e))
        st.stop()


def restore_session():
    # hard logout sentinel
    if st.session_state.get("force_logged_out"):
        _clear_identity()
        return None, None

    access = st.session_state.get("sb_access_token")
    refresh = st.session_state.get("sb_refresh_token")
    if not (access and refresh):
        _clear_identity()
        return None, None

    sb = _client()
    try:
        sb.auth.set_session(access, refresh)
        session = sb.auth.get_session()
    except AuthApiError as e:
        # refresh token invalid or already used
        logger.info("AUTH_SESSION_EXPIRED %s", e)
        _clear_identity()
        return None, None

    user = session.user if session else None
    if user:
        st.session_state["supabase_user"] = user
        st.session_state["user_id"] = user.id
        st.session_state["user_email"] = user.email
        # set_session may have rotated the tokens
        st.session_state["sb_access_token"] = session.access_token
        st.session_state["sb_refresh_token"] = session.refresh_token
    else:
        _clear_identity()
    return user, session


def require_login():
    user, session = restore_session()
    user_id = st.session_state.get("user_id")
    if not user_id:
        st.error("Please sign in from the Login page.")
        st.stop()
    return user, session, user_id


def sign_in(email: str, password: str):
    """Password sign-in; stores the session tokens. Raises AuthApiError on bad credentials."""
    sb = _client()
    res = sb.auth.sign_in_with_password({"email": email, "password": password})
    if not res.session:
        return None
    st.session_state.pop("force_logged_out", None)
    st.session_state["sb_access_token"] = res.session.access_token
    st.session_state["sb_refresh_token"] = res.session.refresh_token
    st.session_state["supabase_user"] = res.user
    st.session_state["user_id"] = res.user.id
    st.session_state["user_email"] = res.user.email
    logger.info("AUTH_SIGN_IN user=%s", res.user.id)
    return res.user


def sign_out():
    try:
        _client().auth.sign_out()
    except Exception as e:
        logger.info("AUTH_SIGN_OUT_IGNORED %s", e)

    st.session_state["force_logged_out"] = True
    for k in list(st.session_state.keys()):
        if k != "force_logged_out":
            st.session_state.pop(k, None)
