##-----  pages/999_Logout.py

import streamlit as st

from auth_helper import sign_out

st.set_page_config(page_title="Logout", page_icon="🚪")

# sets the force_logged_out sentinel and clears the rest of the session
sign_out()

st.info("You have been logged out.")

st.markdown(
    '<meta http-equiv="refresh" content="0; url=/Login">',
    unsafe_allow_html=True,
)

st.stop()
