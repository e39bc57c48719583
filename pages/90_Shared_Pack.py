# pages/90_Shared_Pack.py
# Public gig pack by share token: /Shared_Pack?token=<token>. No login.
import streamlit as st

from gigpack.config import configure_logging, public_base_url
from gigpack.db import admin_client
from gigpack.errors import ConfigError
from gigpack.public_pack import get_public_gig_pack
from gigpack.ui_pack import render_gig_pack

st.set_page_config(page_title="Gig Pack", page_icon="📦", layout="wide")
configure_logging()

token = st.query_params.get("token")
if not token:
    st.info("This page needs a share link (…/Shared_Pack?token=…).")
    st.stop()

try:
    pack = get_public_gig_pack(admin_client(), token)
except ConfigError as e:
    st.error(str(e))
    st.stop()

if not pack:
    st.error("This gig pack link is invalid or has expired.")
    st.stop()

render_gig_pack(pack, show_private=False, share_url=f"{public_base_url()}/Shared_Pack?token={token}")
