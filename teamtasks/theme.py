import logging
import os

import streamlit as st
from streamlit.errors import StreamlitAPIException


logger = logging.getLogger(__name__)


def set_theme(
    page_title: str = "Team Tasks",
    page_icon: str = "📋",
    layout: str = "wide",
    initial_sidebar_state: str = "expanded",
):
    """Configure the Streamlit page & inject the shared CSS.

    Parameters allow per-page override of title/icon without duplicating logic.
    Safe to call once at top of each page. Subsequent calls will be ignored by
    Streamlit for page_config but CSS will still be (re)injected.
    """
    try:
        st.set_page_config(
            page_title=page_title,
            page_icon=page_icon,
            layout=layout,
            initial_sidebar_state=initial_sidebar_state,
        )
    except StreamlitAPIException:
        # set_page_config can only be called once per run; ignore if already set.
        pass

    theme_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'assets', 'custom_theme.css')

    try:
        with open(theme_file, 'r', encoding='utf-8') as f:
            css = f.read()
            st.markdown(f"<style>{css}</style>", unsafe_allow_html=True)
    except FileNotFoundError:
        logger.warning("Theme file not found at %s", theme_file)
