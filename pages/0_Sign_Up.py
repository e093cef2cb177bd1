import streamlit as st

from teamtasks.auth import MIN_PASSWORD_LENGTH
from teamtasks.navigation import Screen
from teamtasks.ui import bootstrap, go


services = bootstrap(Screen.SIGNUP)

st.title("📝 Create an account")

with st.form("signup_form"):
    name = st.text_input("Full name")
    email = st.text_input("Email")
    password = st.text_input("Password", type="password", help=f"At least {MIN_PASSWORD_LENGTH} characters")
    submitted = st.form_submit_button("Sign up", type="primary")

if submitted:
    res = services.auth.sign_up(email, password, name)
    if res.error:
        st.error(res.error.message)
    else:
        # Sign straight in, like the hosted auth flow does without email confirmation.
        login = services.auth.sign_in(st.session_state, email, password)
        if login.error:
            st.success("Account created. Please log in.")
        else:
            go(Screen.DASHBOARD)

st.markdown("---")
if st.button("Already have an account? Log in"):
    go(Screen.LOGIN)
