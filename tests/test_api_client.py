# tests/test_api_client.py
from unittest.mock import MagicMock, patch

import pytest
import requests

from crm.api_client import APIError, CRMApiClient, check_api_connection, get_api_client, reset_api_client


def _response(status=200, body=None, reason="OK", invalid_json=False):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.reason = reason
    if invalid_json:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body if body is not None else {}
    return response


@pytest.fixture
def client():
    return CRMApiClient("http://crm.test/", timeout=5, api_key="secret")


def test_session_headers(client):
    assert client.base_url == "http://crm.test"
    assert client.session.headers['Authorization'] == "Bearer secret"
    assert client.session.headers['Accept'] == "application/json"


def test_get_builds_url_and_returns_body(client):
    with patch.object(client.session, 'request', return_value=_response(body={'success': True, 'deals': []})) as req:
        payload = client.get('/api/deals', params={'userRole': "manager"})

    assert payload == {'success': True, 'deals': []}
    kwargs = req.call_args.kwargs
    assert kwargs['method'] == 'GET'
    assert kwargs['url'] == "http://crm.test/api/deals"
    assert kwargs['params'] == {'userRole': "manager"}
    assert kwargs['timeout'] == 5


def test_http_error_carries_status_and_message(client):
    failing = _response(status=404, body={'error': "Deal not found"}, reason="Not Found")
    with patch.object(client.session, 'request', return_value=failing):
        with pytest.raises(APIError) as exc_info:
            client.delete('/api/deals', params={'id': "D1"})

    assert exc_info.value.status_code == 404
    assert "Deal not found" in str(exc_info.value)


def test_success_false_body_raises(client):
    with patch.object(client.session, 'request', return_value=_response(body={'success': False, 'error': "nope"})):
        with pytest.raises(APIError, match="nope"):
            client.post('/api/sales', json={})


def test_invalid_json_raises(client):
    with patch.object(client.session, 'request', return_value=_response(invalid_json=True)):
        with pytest.raises(APIError, match="Invalid JSON"):
            client.get('/api/deals')


@pytest.mark.parametrize("error, text", [
    (requests.exceptions.Timeout(), "timed out"),
    (requests.exceptions.ConnectionError(), "Could not connect"),
    (requests.exceptions.TooManyRedirects(), "Request failed"),
])
def test_transport_errors(client, error, text):
    with patch.object(client.session, 'request', side_effect=error):
        with pytest.raises(APIError, match=text) as exc_info:
            client.put('/api/callbacks', json={'id': "C1"})

    assert exc_info.value.status_code is None


def test_check_api_connection():
    healthy = MagicMock()
    with patch('crm.api_client.get_api_client', return_value=healthy):
        assert check_api_connection() == (True, None)

    unreachable = MagicMock()
    unreachable.get.side_effect = APIError("Could not connect")
    with patch('crm.api_client.get_api_client', return_value=unreachable):
        connected, message = check_api_connection()
    assert not connected
    assert "Cannot reach" in message


def test_shared_client_is_reused_until_reset():
    reset_api_client()
    first = get_api_client()
    assert get_api_client() is first

    with patch.object(first.session, 'close') as close:
        reset_api_client()
    close.assert_called_once()
    assert get_api_client() is not first
    reset_api_client()
