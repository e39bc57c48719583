# pages/06_Trash.py
import streamlit as st

from auth_helper import require_login
from gigpack.db import user_client
from gigpack.errors import GigPackError
from gigpack.gigs import list_trashed_gigs, permanently_delete_gig, restore_gig
from gigpack.ui_format import format_gig_date
from gigpack.ui_header import render_header

st.set_page_config(page_title="Trash", page_icon="🗑️")

user, session, user_id = require_login()
sb = user_client()

render_header("Trash", emoji="🗑️", subtitle="Trashed gigs are hidden from everyone. Restore them or delete them for good.")

trashed = list_trashed_gigs(sb, user_id)
if not trashed:
    st.info("Trash is empty.")
    st.stop()

for g in trashed:
    with st.container(border=True):
        c1, c2, c3 = st.columns([0.6, 0.2, 0.2])
        with c1:
            st.markdown(f"**{g.get('title') or 'Gig'}**  \n{format_gig_date(g.get('date'))}")
            st.caption(f"Trashed {format_gig_date(g.get('deleted_at'))}")
        with c2:
            if st.button("Restore", key=f"restore_{g['id']}", use_container_width=True):
                restore_gig(sb, g["id"])
                st.toast("Gig restored.", icon="♻️")
                st.rerun()
        with c3:
            confirm_key = f"confirm_del_{g['id']}"
            if st.session_state.get(confirm_key):
                if st.button("Really delete", key=f"really_{g['id']}", type="primary", use_container_width=True):
                    try:
                        permanently_delete_gig(sb, g["id"], user_id)
                    except GigPackError as e:
                        st.error(str(e))
                    else:
                        st.session_state.pop(confirm_key, None)
                        st.toast("Gig deleted.", icon="🗑️")
                        st.rerun()
            elif st.button("Delete forever", key=f"del_{g['id']}", use_container_width=True):
                st.session_state[confirm_key] = True
                st.rerun()
