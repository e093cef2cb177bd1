from teamtasks.auth import SESSION_KEY, check_password, display_name, hash_password, is_logged_in


def test_password_hash_roundtrip():
    encoded = hash_password("password", iterations=1000)
    assert check_password("password", encoded)
    assert not check_password("wrongpass", encoded)
    assert not check_password("password", "not-a-hash")


def test_login_success(services, users):
    session = {}
    res = services.auth.sign_in(session, "Alice@Example.com ", "secret123")
    assert res.ok
    assert is_logged_in(session)
    assert services.auth.get_user(session)["email"] == "alice@example.com"
    assert "password_hash" not in res.data


def test_login_failure(services, users):
    session = {}
    res = services.auth.sign_in(session, "alice@example.com", "wrongpass")
    assert res.error.code == "invalid_credentials"
    assert not is_logged_in(session)


def test_sign_up_validation(services, users):
    assert services.auth.sign_up("not-an-email", "secret123").error.code == "invalid_email"
    assert services.auth.sign_up("dave@example.com", "123").error.code == "weak_password"
    assert services.auth.sign_up("alice@example.com", "secret123").error.code == "user_exists"


def test_sign_out_clears_session(services, users):
    session = {}
    services.auth.sign_in(session, "bob@example.com", "secret123")
    services.auth.sign_out(session)
    assert SESSION_KEY not in session
    assert services.auth.get_user(session) is None


def test_stale_session_is_dropped(services, users):
    session = {SESSION_KEY: "no-such-user"}
    assert services.auth.get_user(session) is None
    assert SESSION_KEY not in session


def test_display_name_fallbacks():
    assert display_name({"name": "Ada", "email": "ada@example.com"}) == "Ada"
    assert display_name({"name": "  ", "email": "grace@example.com"}) == "grace"
    assert display_name({"name": None, "email": ""}) == "User"
