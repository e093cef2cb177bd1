import streamlit as st

from teamtasks.navigation import Screen
from teamtasks.ui import bootstrap, go


services = bootstrap(Screen.HOME)
user = services.auth.get_user(st.session_state)

st.markdown('<div class="tt-hero">', unsafe_allow_html=True)
st.markdown("<h1>📋 Team Tasks</h1>", unsafe_allow_html=True)
st.markdown(
    "<h3>Assign work, track due dates, see who's online and chat with your team.</h3>",
    unsafe_allow_html=True,
)
st.markdown("</div>", unsafe_allow_html=True)

if user:
    st.success(f"Welcome back, {user.get('name') or user['email']}!")
    if st.button("Open Dashboard 🚀", type="primary"):
        go(Screen.DASHBOARD)
else:
    c1, c2 = st.columns(2)
    with c1:
        if st.button("Log in", type="primary", use_container_width=True):
            go(Screen.LOGIN)
    with c2:
        if st.button("Create an account", use_container_width=True):
            go(Screen.SIGNUP)
