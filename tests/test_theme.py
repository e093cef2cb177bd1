import logging

from teamtasks import theme


def test_set_theme():
    # Outside `streamlit run` the calls are no-ops; they must not raise.
    try:
        theme.set_theme(page_title="Team Tasks test", page_icon="🧪")
    except Exception as e:
        assert False, f"set_theme raised an exception: {e}"


def test_set_theme_twice_is_harmless(caplog):
    with caplog.at_level(logging.WARNING, logger="teamtasks.theme"):
        theme.set_theme()
        theme.set_theme()
    assert "Theme file not found" not in caplog.text
