import streamlit as st

from teamtasks.navigation import Screen
from teamtasks.tasks import load_my_tasks
from teamtasks.ui import filter_tiles, page, task_card


services, user, client = page(Screen.MY_TASKS)

st.title("✅ My Tasks")

loaded = load_my_tasks(client, user["id"])
if loaded is not None:
    st.session_state.my_tasks = loaded
tasks = st.session_state.get("my_tasks", [])

flt = filter_tiles(tasks, "my_tasks_filter")
visible = flt.apply(tasks)

if not visible:
    st.info("Nothing assigned to you here.")
for task in visible:
    task_card(task, key_prefix="mine", show_assignee=False)
