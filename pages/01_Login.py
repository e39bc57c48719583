# pages/01_Login.py
import streamlit as st
from supabase_auth.errors import AuthApiError

from auth_helper import restore_session, sign_in

st.set_page_config(page_title="Sign In", page_icon="🔑")
st.title("Sign In")

user, _ = restore_session()

if user:
    st.success(f"Signed in as {user.email}")
    st.page_link("Gig Pack App.py", label="Go to dashboard", icon="🏠")
    st.page_link("pages/999_Logout.py", label="Sign out", icon="🚪")
else:
    with st.form("login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign In")
    if submitted:
        if not email or not password:
            st.error("Enter your email and password.")
        else:
            try:
                if sign_in(email.strip(), password):
                    st.success("Logged in successfully!")
                    st.rerun()
                else:
                    st.error("Invalid credentials.")
            except AuthApiError as e:
                st.error(f"Login failed: {e}")
