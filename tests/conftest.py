import os
import sys

import pytest

# Ensure project root is on sys.path so 'app', 'config', and 'spotify_wrapped' import correctly
_TESTS_DIR = os.path.dirname(__file__)
_ROOT_DIR = os.path.abspath(os.path.join(_TESTS_DIR, os.pardir))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)

from tests.support import stubs as test_stubs

TEST_SETTINGS = {
    "client_id": "test-client-id",
    "client_secret": "test-client-secret",
    "redirect_uri": "http://localhost/login/oauth2/code/spotify",
}


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep host Spotify credentials and .env values out of the tests."""
    monkeypatch.setenv("SPOTIPY_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("SPOTIPY_CLIENT_SECRET", "test-client-secret")
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    yield


@pytest.fixture
def spotify_stub():
    """Expose the Spotipy stub so tests can customise payloads and failures."""
    return test_stubs.SpotipyStub()


@pytest.fixture
def app_overrides():
    return {}


@pytest.fixture
def app(spotify_stub, app_overrides):
    import app as app_module
    from spotify_wrapped.infrastructure.spotify import SpotifyApiClient

    overrides = {
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SPOTIFY_SETTINGS": dict(TEST_SETTINGS),
    }
    overrides.update(app_overrides)
    application = app_module.create_app(overrides)
    application.extensions['spotify_auth_factory'] = test_stubs.FakeAuthManager
    application.extensions['spotify_client_factory'] = (
        lambda token: SpotifyApiClient(token, spotify_client=spotify_stub)
    )
    yield application


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, code="good-code"):
    """Walk the authorize redirect and the callback the way a browser would."""
    start = client.get('/oauth2/authorization/spotify')
    assert start.status_code == 302
    state = test_stubs.state_from_location(start.headers['Location'])
    return client.get('/login/oauth2/code/spotify', query_string={'code': code, 'state': state})


@pytest.fixture
def logged_in_client(client):
    resp = login(client)
    assert resp.status_code == 302
    return client
