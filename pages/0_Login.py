import streamlit as st

from teamtasks.navigation import Screen
from teamtasks.ui import bootstrap, go


services = bootstrap(Screen.LOGIN)

if services.auth.get_user(st.session_state):
    go(Screen.DASHBOARD)

st.title("🔑 Log in")

with st.form("login_form"):
    email = st.text_input("Email")
    password = st.text_input("Password", type="password")
    submitted = st.form_submit_button("Log in", type="primary")

if submitted:
    res = services.auth.sign_in(st.session_state, email, password)
    if res.error:
        st.error(res.error.message)
    else:
        go(Screen.DASHBOARD)

st.markdown("---")
if st.button("Don't have an account? Sign up"):
    go(Screen.SIGNUP)
