import html
from datetime import date

import streamlit as st

from teamtasks.calendar import (
    DAY_NAMES,
    NewEvent,
    create_event,
    delete_event,
    events_for_day,
    load_events,
    month_layout,
    next_month,
    previous_month,
)
from teamtasks.models import EVENT_TYPES
from teamtasks.navigation import Screen
from teamtasks.ui import page


services, user, client = page(Screen.CALENDAR)

st.title("📅 Calendar")

if "calendar_month" not in st.session_state:
    st.session_state.calendar_month = date.today().replace(day=1)
if "calendar_day" not in st.session_state:
    st.session_state.calendar_day = None

layout = month_layout(st.session_state.calendar_month)

loaded = load_events(client)
if loaded is not None:
    st.session_state.calendar_events = loaded
events = st.session_state.get("calendar_events", [])

nav_prev, nav_title, nav_next = st.columns([1, 3, 1])
with nav_prev:
    if st.button("◀ Previous", use_container_width=True):
        st.session_state.calendar_month = previous_month(st.session_state.calendar_month)
        st.session_state.calendar_day = None
        st.rerun()
with nav_title:
    st.markdown(f"<h3 style='text-align:center'>{layout.title}</h3>", unsafe_allow_html=True)
with nav_next:
    if st.button("Next ▶", use_container_width=True):
        st.session_state.calendar_month = next_month(st.session_state.calendar_month)
        st.session_state.calendar_day = None
        st.rerun()

for col, name in zip(st.columns(7), DAY_NAMES):
    col.markdown(f"**{name}**")

today = date.today()
for week in layout.weeks():
    for col, day in zip(st.columns(7), week):
        if day is None:
            continue
        with col:
            is_today = (layout.year, layout.month, day) == (today.year, today.month, today.day)
            chips = "".join(
                f"<span class='tt-event tt-event-{e['event_type']}'>{html.escape(e['title'])}</span>"
                for e in events_for_day(events, layout.year, layout.month, day)
            )
            st.markdown(
                f"<div class='tt-day{' tt-day-today' if is_today else ''}'>"
                f"<div class='tt-day-num'>{day}</div>{chips}</div>",
                unsafe_allow_html=True,
            )
            if st.button("Open", key=f"day-{layout.year}-{layout.month}-{day}", use_container_width=True):
                st.session_state.calendar_day = date(layout.year, layout.month, day)
                st.rerun()

selected = st.session_state.calendar_day
if selected is not None:
    st.markdown("---")
    st.subheader(selected.strftime("%A, %B %d, %Y"))

    for event in events_for_day(events, selected.year, selected.month, selected.day):
        c1, c2 = st.columns([5, 1])
        with c1:
            st.markdown(f"**{event['title']}** · {event['event_type']}")
            if event.get("meeting_link"):
                st.markdown(f"[Join meeting]({event['meeting_link']})")
            if event.get("notes"):
                st.caption(event["notes"])
        with c2:
            if event["user_id"] == user["id"] and st.button("Delete", key=f"del-{event['id']}"):
                if delete_event(client, event["id"]):
                    st.rerun()

    event_type = st.selectbox("Type", EVENT_TYPES, key="calendar_event_type")
    with st.form("add_event_form", clear_on_submit=True):
        title = st.text_input("Title")
        link = st.text_input("Meeting link") if event_type == "Meeting" else ""
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("Add event", type="primary")
    if submitted:
        created = create_event(client, selected, NewEvent(
            title=title,
            event_type=event_type,
            meeting_link=link,
            notes=notes,
        ))
        if created is not None:
            st.rerun()
