import html

import plotly.express as px
import streamlit as st

from teamtasks.auth import display_name
from teamtasks.models import PRIORITIES, STATUSES
from teamtasks.navigation import Screen
from teamtasks.presence import format_last_seen
from teamtasks.roster import load_team_members
from teamtasks.tasks import NewTask, create_task, load_tasks, tasks_to_df
from teamtasks.ui import filter_tiles, just_mounted, page, staged_files, task_card


services, user, client = page(Screen.DASHBOARD)

st.title("📋 Dashboard")

users_res = services.auth.list_users()
users = users_res.data or []

# Keep the previous list when a reload fails.
loaded = load_tasks(client, users)
if loaded is not None:
    st.session_state.dashboard_tasks = loaded
tasks = st.session_state.get("dashboard_tasks", [])

# Team panel is fetched once per visit; the Employees page keeps it live.
if just_mounted() or "dashboard_team" not in st.session_state:
    members = load_team_members(client, services.auth)
    if members is not None:
        st.session_state.dashboard_team = members
team = st.session_state.get("dashboard_team", [])

main_col, side_col = st.columns([3, 1])

with main_col:
    flt = filter_tiles(tasks, "dashboard_filter")
    visible = flt.apply(tasks)

    st.subheader("Tasks" if flt.active is None else f"Tasks: {flt.active.value}")
    if not visible:
        st.info("No tasks here yet.")
    for task in visible:
        task_card(task, key_prefix="dash")

    with st.expander("➕ Add task", expanded=False):
        with st.form("add_task_form", clear_on_submit=True):
            title = st.text_input("Title")
            description = st.text_area("Description")
            c1, c2, c3 = st.columns(3)
            with c1:
                assignee = st.selectbox(
                    "Assign to",
                    options=[None] + [u["id"] for u in users],
                    format_func=lambda uid: "Select a member" if uid is None else display_name(
                        next(u for u in users if u["id"] == uid)),
                )
            with c2:
                priority = st.selectbox("Priority", PRIORITIES, index=PRIORITIES.index("Medium"))
            with c3:
                due = st.date_input("Due date", value=None)
            files = st.file_uploader("Attachments", accept_multiple_files=True)
            submitted = st.form_submit_button("Create task", type="primary")

        if submitted:
            created = create_task(client, services.storage, NewTask(
                title=title,
                due_date=due,
                assigned_to=assignee,
                description=description,
                priority=priority,
                attachments=staged_files(files),
            ))
            if created is not None:
                st.session_state.pop("dashboard_tasks", None)
                st.rerun()

    if tasks:
        st.subheader("Overview")
        df = tasks_to_df(tasks)
        g1, g2 = st.columns(2)
        with g1:
            by_status = df.groupby("status").size().reindex(STATUSES, fill_value=0).rename_axis("status").reset_index(name="count")
            fig = px.bar(by_status, x="status", y="count", title="Tasks by status", color="status")
            st.plotly_chart(fig, use_container_width=True)
        with g2:
            by_priority = df.groupby("priority").size().reindex(PRIORITIES, fill_value=0).rename_axis("priority").reset_index(name="count")
            fig = px.pie(by_priority, names="priority", values="count", title="Tasks by priority", hole=0.45)
            st.plotly_chart(fig, use_container_width=True)

with side_col:
    st.subheader("👥 Team")
    for member in team:
        dot = "tt-dot-online" if member.is_online else "tt-dot-offline"
        status = "Online" if member.is_online else format_last_seen(member.last_seen)
        st.markdown(
            f"<div><span class='tt-dot {dot}'></span><b>{html.escape(member.name)}</b>"
            f"<div class='tt-task-meta'>{status}</div></div>",
            unsafe_allow_html=True,
        )
