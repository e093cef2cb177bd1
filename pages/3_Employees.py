import html

import streamlit as st

from teamtasks.chat import load_thread, send_message, unread_counts
from teamtasks.navigation import Screen
from teamtasks.presence import format_last_seen, parse_timestamp
from teamtasks.roster import load_team_members
from teamtasks.ui import page, staged_files


services, user, client = page(Screen.EMPLOYEES)
cfg = services.config

st.title("👥 Employees")

roster_col, chat_col = st.columns([2, 3])


@st.fragment(run_every=cfg.roster_interval_seconds)
def roster_panel():
    members = load_team_members(client, services.auth)
    if members is not None:
        st.session_state.team_members = members
    members = st.session_state.get("team_members", [])
    unread = unread_counts(client, user["id"])

    online = sum(1 for m in members if m.is_online)
    st.caption(f"{online} of {len(members)} online")
    for member in members:
        if member.user_id == user["id"]:
            continue
        dot = "tt-dot-online" if member.is_online else "tt-dot-offline"
        status = "Online" if member.is_online else f"Last seen {format_last_seen(member.last_seen)}"
        badge = f"<span class='tt-badge'>{unread[member.user_id]}</span>" if unread.get(member.user_id) else ""
        c1, c2 = st.columns([4, 1])
        with c1:
            st.markdown(
                f"<span class='tt-avatar'>{html.escape(member.initials or '?')}</span> "
                f"<b>{html.escape(member.name)}</b>{badge}<br>"
                f"<span class='tt-dot {dot}'></span><span class='tt-task-meta'>{status} • "
                f"{html.escape(member.email)}</span>",
                unsafe_allow_html=True,
            )
        with c2:
            if st.button("💬", key=f"chat-{member.user_id}", help=f"Chat with {member.name}"):
                st.session_state.chat_partner = member.user_id
                st.session_state.chat_partner_name = member.name
                st.session_state.pop("chat_messages", None)
                st.rerun()


def _render_message(msg):
    mine = msg["sender_id"] == user["id"]
    ts = parse_timestamp(msg.get("created_at") or "")
    when = ts.strftime("%b %d, %H:%M") if ts else ""
    st.markdown(
        f"<div class='tt-bubble {'tt-bubble-mine' if mine else 'tt-bubble-theirs'}'>"
        f"{html.escape(msg['message'])}<div class='tt-bubble-time'>{when}</div></div>",
        unsafe_allow_html=True,
    )
    if msg.get("has_attachment") and msg.get("attachment_url"):
        path = services.storage.path_from_public_url(msg["attachment_url"])
        blob = services.storage.download(path) if path else None
        if blob is not None and blob.ok:
            st.download_button(
                f"📎 {msg.get('attachment_name') or 'attachment'}",
                data=blob.data,
                file_name=msg.get("attachment_name") or "attachment",
                key=f"dl-{msg['id']}",
            )


@st.fragment(run_every=cfg.chat_interval_seconds)
def chat_panel(partner_id: str):
    thread_box = st.container(height=420)

    with st.form("chat_form", clear_on_submit=True):
        text = st.text_input("Message", placeholder="Type a message…")
        upload = st.file_uploader("Attach a file", accept_multiple_files=False)
        sent = st.form_submit_button("Send", type="primary")
    if sent:
        staged = staged_files([upload] if upload else [])
        send_message(
            client,
            partner_id,
            text,
            storage=services.storage,
            attachment=staged[0] if staged else None,
        )

    messages = load_thread(client, user["id"], partner_id)
    if messages is not None:
        st.session_state.chat_messages = messages
    with thread_box:
        history = st.session_state.get("chat_messages", [])
        if not history:
            st.caption("No messages yet. Say hi 👋")
        for msg in history:
            _render_message(msg)


with roster_col:
    roster_panel()

with chat_col:
    partner = st.session_state.get("chat_partner")
    if partner:
        h1, h2 = st.columns([4, 1])
        with h1:
            st.subheader(f"💬 {st.session_state.get('chat_partner_name', '')}")
        with h2:
            if st.button("Close"):
                st.session_state.pop("chat_partner", None)
                st.session_state.pop("chat_messages", None)
                st.rerun()
        chat_panel(partner)
    else:
        st.info("Pick a team member to start chatting.")
