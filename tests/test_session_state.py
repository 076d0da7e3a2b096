from foldseal.core import session_state as session_module
from foldseal.core.session_state import SessionState, clear_bytes


def test_cached_password_is_masked():
    state = SessionState()
    state.cache_password("hunter2")
    assert bytes(state.cached_password) != b"hunter2"
    assert state.get_cached_password_bytes() == bytearray(b"hunter2")


def test_str_password_is_normalized():
    state = SessionState()
    state.cache_password("A\u030a")
    assert state.get_cached_password_bytes() == bytearray("\u00c5".encode("utf-8"))


def test_expiry(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(session_module, "monotonic", lambda: now[0])
    state = SessionState(idle_minutes=1)
    state.cache_password(b"pw")
    assert state.has_cached_password()

    now[0] += 59
    assert state.get_cached_password_bytes() == bytearray(b"pw")

    now[0] += 61
    assert not state.has_cached_password()
    assert state.get_cached_password_bytes() is None
    assert state.cached_password is None


def test_clear():
    state = SessionState()
    state.cache_password(b"pw")
    buffer = state.cached_password
    state.clear()
    assert state.cached_password is None
    assert buffer == bytearray(len(buffer))


def test_clear_bytes_ignores_immutable():
    clear_bytes(b"immutable")
    clear_bytes(None)
