import streamlit as st

from teamtasks.models import SETTINGS_FLAGS
from teamtasks.navigation import Screen
from teamtasks.settings import (
    SETTING_LABELS,
    default_settings,
    load_settings,
    update_password,
    update_profile,
    update_setting,
    upload_profile_photo,
)
from teamtasks.ui import page, staged_files


services, user, client = page(Screen.SETTINGS)

st.title("⚙️ Settings")


def _show(message):
    if message is None:
        return
    (st.success if message.ok else st.error)(message.text)


if "settings_row" not in st.session_state or st.session_state.get("settings_owner") != user["id"]:
    st.session_state.settings_row = load_settings(client, user["id"]) or {"user_id": user["id"], **default_settings()}
    st.session_state.settings_owner = user["id"]
current = st.session_state.settings_row

profile_tab, security_tab, notify_tab = st.tabs(["👤 Profile", "🔒 Password", "🔔 Notifications"])

with profile_tab:
    photo_col, form_col = st.columns([1, 3])
    with photo_col:
        path = services.storage.path_from_public_url(current.get("profile_photo_url") or "")
        blob = services.storage.download(path) if path else None
        if blob is not None and blob.ok:
            st.image(blob.data, width=120)
        else:
            st.markdown("<span class='tt-avatar'>👤</span>", unsafe_allow_html=True)
        photo = st.file_uploader("Profile photo", type=["png", "jpg", "jpeg", "gif", "webp"])
        if photo is not None and st.button("Upload photo"):
            current, msg = upload_profile_photo(client, services.storage, current, staged_files([photo])[0])
            st.session_state.settings_row = current
            _show(msg)

    with form_col:
        with st.form("profile_form"):
            name = st.text_input("Full name", value=user.get("name") or "")
            email = st.text_input("Email", value=user["email"])
            saved = st.form_submit_button("Save profile", type="primary")
        if saved:
            _show(update_profile(services.auth, st.session_state, name=name, email=email))

with security_tab:
    with st.form("password_form", clear_on_submit=True):
        new_password = st.text_input("New password", type="password")
        confirm_password = st.text_input("Confirm password", type="password")
        changed = st.form_submit_button("Update password", type="primary")
    if changed:
        _show(update_password(services.auth, st.session_state, new_password, confirm_password))

with notify_tab:
    for flag in SETTINGS_FLAGS:
        value = st.toggle(SETTING_LABELS[flag], value=bool(current.get(flag, True)), key=f"setting-{flag}")
        if value != bool(current.get(flag, True)):
            current, msg = update_setting(client, current, flag, value)
            st.session_state.settings_row = current
            _show(msg)
