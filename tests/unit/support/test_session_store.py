import pytest

from spotify_wrapped.support import session_store as store_module
from spotify_wrapped.support import ServerSession, SessionStore


class _Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock(monkeypatch):
    fake = _Clock()
    monkeypatch.setattr(store_module.time, "time", fake)
    return fake


@pytest.mark.unit
def test_get_returns_copy():
    store = SessionStore(maxsize=4, ttl=60)
    store.set("sid", {"token_info": {"access_token": "a"}})
    snapshot = store.get("sid")
    snapshot["token_info"]["access_token"] = "mutated"
    assert store.get("sid")["token_info"]["access_token"] == "a"


@pytest.mark.unit
def test_idle_sessions_expire_and_access_slides_expiry(clock):
    store = SessionStore(maxsize=4, ttl=60)
    store.set("a", {"n": 1})
    store.set("b", {"n": 2})
    clock.now += 50
    store.set("a", {"n": 1})  # saving a session slides its expiry
    clock.now += 20
    assert store.get("b") is None
    assert store.get("a") == {"n": 1}
    assert len(store) == 1


@pytest.mark.unit
def test_lru_eviction_drops_least_recently_saved():
    store = SessionStore(maxsize=2, ttl=60)
    store.set("a", {})
    store.set("b", {})
    store.touch("a")
    store.set("c", {})
    assert "a" in store
    assert "b" not in store
    assert "c" in store


@pytest.mark.unit
def test_delete_and_clear():
    store = SessionStore(maxsize=2, ttl=60)
    store.set("a", {})
    store.delete("a")
    store.delete(None)
    assert len(store) == 0
    store.set("b", {})
    store.clear()
    assert "b" not in store


@pytest.mark.unit
@pytest.mark.parametrize("kwargs", [{"maxsize": 0}, {"ttl": 0}])
def test_invalid_bounds_rejected(kwargs):
    with pytest.raises(ValueError):
        SessionStore(**kwargs)


@pytest.mark.unit
def test_rotate_keeps_contents_under_new_id():
    session = ServerSession({"k": "v"}, sid="old")
    session.rotate()
    assert session.sid != "old"
    assert session.previous_sid == "old"
    assert session.modified is True
    assert session["k"] == "v"


@pytest.mark.unit
def test_cookie_holds_only_opaque_id(app, client):
    with client.session_transaction() as sess:
        sess["token_info"] = {"access_token": "secret-token"}
    resp = client.get('/api/health')
    cookie_headers = " ".join(resp.headers.getlist("Set-Cookie"))
    assert "secret-token" not in cookie_headers
    assert len(app.extensions['session_store']) == 1


@pytest.mark.unit
def test_touch_and_replace_never_recreate_missing_records(clock):
    store = SessionStore(maxsize=4, ttl=60)
    assert store.touch("gone") is False
    assert store.replace("gone", {"k": "v"}) is False
    assert "gone" not in store

    store.set("a", {"k": 1})
    clock.now += 50
    assert store.touch("a") is True
    clock.now += 50
    assert store.get("a") == {"k": 1}
    assert store.replace("a", {"k": 2}) is True
    assert store.get("a") == {"k": 2}


@pytest.mark.unit
def test_expired_front_entries_evicted_in_expiry_order(clock):
    store = SessionStore(maxsize=10, ttl=60)
    for sid in ("a", "b", "c"):
        store.set(sid, {})
        clock.now += 10
    store.touch("a")
    # b expires at 1070, c at 1080, a was slid to 1090
    clock.now = 1075
    assert "b" not in store
    assert "c" in store
    assert "a" in store


def _open_in_flight(app, sid):
    from flask import request

    with app.test_request_context('/api/spotify/wrapped', headers={'Cookie': f'wrapped_session={sid}'}):
        return app.session_interface.open_session(app, request)


@pytest.mark.unit
@pytest.mark.parametrize("mutate", [False, True])
def test_in_flight_request_cannot_revive_logged_out_session(app, logged_in_client, mutate):
    store = app.extensions['session_store']
    sid = logged_in_client.get_cookie('wrapped_session').value
    in_flight = _open_in_flight(app, sid)
    assert in_flight.sid == sid

    logged_in_client.get('/logout')
    assert len(store) == 0

    if mutate:
        in_flight['token_info'] = {"access_token": "refreshed"}
    app.session_interface.save_session(app, in_flight, app.response_class())
    assert len(store) == 0

    stale = app.test_client()
    stale.set_cookie('wrapped_session', sid)
    assert stale.get('/api/spotify/wrapped').status_code == 401


@pytest.mark.unit
def test_unmodified_request_does_not_overwrite_refreshed_token(app, logged_in_client):
    store = app.extensions['session_store']
    sid = logged_in_client.get_cookie('wrapped_session').value
    stale = _open_in_flight(app, sid)

    refreshing = _open_in_flight(app, sid)
    refreshing['token_info'] = dict(refreshing['token_info'], access_token="refreshed")
    app.session_interface.save_session(app, refreshing, app.response_class())

    app.session_interface.save_session(app, stale, app.response_class())
    assert store.get(sid)['token_info']['access_token'] == "refreshed"
