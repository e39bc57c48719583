# gigpack/ui_header.py
# Page header shared by every signed-in page.
import html
from pathlib import Path
from typing import Optional

import streamlit as st

from gigpack.config import get_setting

ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"


def _logo_source(logo_filename: str) -> Optional[str]:
    """LOGO_URL setting first, then assets/<logo_filename>; None when neither exists."""
    logo_url = get_setting("LOGO_URL")
    if logo_url:
        return str(logo_url)
    local = ASSETS_DIR / logo_filename
    return str(local) if local.exists() else None


def render_header(
    title: str,
    emoji: str = "",
    subtitle: Optional[str] = None,
    logo_filename: str = "gigpack_logo.png",
) -> None:
    logo = _logo_source(logo_filename)
    if logo:
        left, right = st.columns([0.12, 0.88])
        with left:
            st.image(logo, use_container_width=True)
    else:
        right = st.container()

    with right:
        heading = html.escape(f"{emoji} {title}" if emoji else title)
        st.markdown(f"<h1 style='margin-bottom:0'>{heading}</h1>", unsafe_allow_html=True)
        if subtitle:
            st.caption(subtitle)
