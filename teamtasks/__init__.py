"""Team Tasks: a small multi-user task manager built on Streamlit.

Modules are importable without Streamlit running; page scripts under
``pages/`` only render what these modules compute.
"""

__version__ = "0.1.0"
