import pytest
import requests
from spotipy.oauth2 import SpotifyOauthError

from tests.support import payloads
from tests.support.stubs import FakeAuthManager, spotify_http_error, state_from_location


def _start(client):
    resp = client.get('/oauth2/authorization/spotify')
    assert resp.status_code == 302
    return state_from_location(resp.headers['Location'])


@pytest.mark.unit
def test_authorize_redirects_to_spotify_with_state_and_scope(client):
    resp = client.get('/oauth2/authorization/spotify')
    assert resp.status_code == 302
    location = resp.headers['Location']
    assert location.startswith("https://accounts.spotify.com/authorize?")
    assert "user-top-read" in location
    assert state_from_location(location)


@pytest.mark.unit
def test_callback_logs_in_and_redirects_to_frontend(client):
    state = _start(client)
    resp = client.get('/login/oauth2/code/spotify', query_string={'code': 'good', 'state': state})
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/')

    home = client.get('/api/').get_json()
    assert home['authenticated'] is True
    assert home['user'] == 'Test Listener'


@pytest.mark.unit
def test_callback_rotates_session_id(app, client):
    state = _start(client)
    store = app.extensions['session_store']
    assert len(store) == 1
    client.get('/login/oauth2/code/spotify', query_string={'code': 'good', 'state': state})
    # The pre-login record is gone; only the rotated one remains
    assert len(store) == 1
    with client.session_transaction() as sess:
        assert sess['token_info']['access_token'] == 'access-good'
        assert 'oauth_state' not in sess


@pytest.mark.unit
def test_callback_with_mismatched_state_is_401(client):
    _start(client)
    resp = client.get('/login/oauth2/code/spotify', query_string={'code': 'good', 'state': 'forged'})
    assert resp.status_code == 401
    body = resp.get_json()
    assert body['error'] == 'Authentication failed'
    assert body['path'] == '/login/oauth2/code/spotify'


@pytest.mark.unit
def test_callback_without_prior_authorize_is_401(client):
    resp = client.get('/login/oauth2/code/spotify', query_string={'code': 'good', 'state': 'x'})
    assert resp.status_code == 401


@pytest.mark.unit
def test_callback_with_denied_consent_is_401(client):
    state = _start(client)
    resp = client.get('/login/oauth2/code/spotify', query_string={'error': 'access_denied', 'state': state})
    assert resp.status_code == 401
    assert client.get('/api/').get_json()['authenticated'] is False


@pytest.mark.unit
def test_callback_with_rejected_code_is_401(client):
    state = _start(client)
    resp = client.get('/login/oauth2/code/spotify', query_string={'code': 'bad-code', 'state': state})
    assert resp.status_code == 401
    assert resp.get_json()['message'] == 'Authentication with Spotify failed. Please log in again.'


@pytest.mark.unit
def test_callback_network_failure_is_503(app, client):
    app.extensions['spotify_auth_factory'] = lambda settings, cache: FakeAuthManager(
        settings, cache, exchange_error=requests.ConnectionError("down")
    )
    state = _start(client)
    resp = client.get('/login/oauth2/code/spotify', query_string={'code': 'good', 'state': state})
    assert resp.status_code == 503


@pytest.mark.unit
def test_callback_profile_failure_does_not_log_in(client, spotify_stub):
    spotify_stub.errors['current_user'] = spotify_http_error(500)
    state = _start(client)
    resp = client.get('/login/oauth2/code/spotify', query_string={'code': 'good', 'state': state})
    assert resp.status_code == 503
    assert client.get('/api/').get_json()['authenticated'] is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "app_overrides", [{"SPOTIFY_SETTINGS": {"client_id": None, "client_secret": None}}]
)
def test_authorize_without_credentials_is_503(client):
    resp = client.get('/oauth2/authorization/spotify')
    assert resp.status_code == 503
    assert resp.get_json()['error'] == 'Service Unavailable'


@pytest.mark.unit
def test_logout_clears_session(app, logged_in_client):
    resp = logged_in_client.get('/logout')
    assert resp.status_code == 302
    assert len(app.extensions['session_store']) == 0
    follow = logged_in_client.get('/api/spotify/wrapped')
    assert follow.status_code == 401


@pytest.mark.unit
def test_logout_when_anonymous_is_harmless(client):
    assert client.post('/logout').status_code == 302


@pytest.mark.unit
def test_failed_refresh_is_401(app, logged_in_client):
    app.extensions['spotify_auth_factory'] = lambda settings, cache: FakeAuthManager(
        settings, cache, refresh_error=SpotifyOauthError("invalid_grant")
    )
    resp = logged_in_client.get('/api/spotify/top/tracks')
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'Authentication failed'


@pytest.mark.unit
def test_display_name_falls_back_to_id(client, spotify_stub):
    spotify_stub.profile = payloads.profile("listener-42", None)
    state = _start(client)
    client.get('/login/oauth2/code/spotify', query_string={'code': 'good', 'state': state})
    assert client.get('/api/').get_json()['user'] == 'listener-42'
