"""
Integration tests against an in-process fake News API.

The fake server is a requests transport adapter mounted on the client
session. It checks every HHMAC signature the way the real API does, so
these tests exercise signing, transmission and classification end to end.
"""

import base64
import hashlib
import hmac
import http.client
import io
import json
import re
from types import SimpleNamespace
from urllib.parse import urlparse

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from news_api_client import (
    NewsAPIClient,
    APIError,
    RequestTimeoutError,
    UnexpectedStatusError
)

AUTH_PATTERN = re.compile(
    r'^HHMAC; key="(?P<key>[^"]+)"; signature="(?P<signature>[^"]+)"; date="(?P<date>[^"]+)"$'
)
DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$')


class RawBody(io.BytesIO):
    """Response body that also exposes headers the way urllib3 does for cookies."""

    def __init__(self, data, headers):
        super().__init__(data)
        msg = http.client.HTTPMessage()
        for name, value in headers.items():
            msg[name] = value
        self._original_response = SimpleNamespace(msg=msg)


class FakeNewsAPI(BaseAdapter):
    """Transport adapter answering like the News API."""

    def __init__(self, api_id, secret):
        super().__init__()
        self.api_id = api_id
        self.key = base64.b64decode(secret)
        self.routes = {}
        self.received = []

    def route(self, method, path, status, body=None, headers=None):
        self.routes[(method, path)] = (status, body, headers or {})

    def _verify(self, request):
        match = AUTH_PATTERN.match(request.headers.get('Authorization', ''))
        if not match or match.group('key') != self.api_id:
            return False
        if not DATE_PATTERN.match(match.group('date')):
            return False

        url = urlparse(request.url)
        canonical = (request.method + 'https://' + url.hostname + url.path
                     + match.group('date')
                     + request.headers.get('content-type', '')).encode('utf-8')
        if request.body:
            canonical += request.body
        expected = base64.b64encode(
            hmac.new(self.key, canonical, hashlib.sha256).digest()
        ).decode('ascii')
        return hmac.compare_digest(expected, match.group('signature'))

    def _respond(self, request, status, body, headers=None):
        response = requests.Response()
        response.status_code = status
        response.headers = CaseInsensitiveDict({'Content-Type': 'application/json'})
        response.headers.update(headers or {})
        if body is None:
            raw = b''
        elif isinstance(body, bytes):
            raw = body
        else:
            raw = json.dumps(body).encode('utf-8')
        response.raw = RawBody(raw, response.headers)
        response.url = request.url
        response.request = request
        response.connection = self
        return response

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.received.append((request, {'stream': stream, 'timeout': timeout, 'verify': verify}))

        if not self._verify(request):
            return self._respond(request, 401, {
                "errors": [{"code": "UNAUTHORIZED", "message": "Invalid signature"}]
            })

        path = urlparse(request.url).path
        if (request.method, path) not in self.routes:
            return self._respond(request, 404, {"errors": [{"code": "NOT_FOUND"}]})

        status, body, headers = self.routes[(request.method, path)]
        if isinstance(status, Exception):
            raise status
        return self._respond(request, status, body, headers)

    def close(self):
        pass


class TestIntegration:
    """End-to-end tests with the fake News API."""
    API_ID = "integration-key"
    SECRET = base64.b64encode(b"integration-secret").decode('ascii')

    @pytest.fixture
    def server(self):
        return FakeNewsAPI(self.API_ID, self.SECRET)

    @pytest.fixture
    def client(self, server):
        """Create client routed to the fake server."""
        client = NewsAPIClient(self.API_ID, self.SECRET, timeout=5000)
        client.session.mount('https://', server)
        yield client
        client.close()

    def test_get_channel(self, client, server):
        server.route('GET', '/channels/c1', 200, {"data": {"id": "c1", "name": "Channel"}})

        data = client.get('/channels/c1')

        assert data == {"id": "c1", "name": "Channel"}
        request, options = server.received[0]
        assert request.headers['Accept'] == 'application/json'
        assert options['stream'] is True
        assert options['timeout'] == 5.0

    def test_create_article_multipart(self, client, server):
        server.route('POST', '/channels/c1/articles', 201, {"data": {"id": "a1", "revision": "r1"}})

        data = client.post('/channels/c1/articles', form_data={
            "metadata": {"data": {"isPreview": True}},
            "article.json": ("article.json", {"version": "1.0", "title": "Hello"}),
        })

        assert data["id"] == "a1"
        request, _ = server.received[0]
        assert request.headers['content-type'].startswith('multipart/form-data; boundary=')
        assert int(request.headers['content-length']) == len(request.body)
        assert b'"title":"Hello"' in request.body

    def test_alert_notification(self, client, server):
        server.route('POST', '/articles/a1/notifications', 201, {"data": {"id": "n1"}})

        data = client.post('/articles/a1/notifications', form_data={"data": {"alertBody": "hi"}})

        assert data == {"id": "n1"}
        request, _ = server.received[0]
        assert request.headers['content-type'] == 'application/json'
        assert json.loads(request.body) == {"data": {"alertBody": "hi"}}

    def test_delete_empty_body(self, client, server):
        server.route('DELETE', '/articles/a1', 204)

        assert client.delete('/articles/a1') is None

    def test_wrong_secret_rejected(self, server):
        client = NewsAPIClient(self.API_ID, base64.b64encode(b"wrong").decode('ascii'))
        client.session.mount('https://', server)
        server.route('GET', '/channels/c1', 200, {"data": {}})

        with pytest.raises(APIError) as exc_info:
            client.get('/channels/c1')

        assert exc_info.value.code == "UNAUTHORIZED"
        assert exc_info.value.status_code == 401
        client.close()

    def test_server_error_with_data(self, client, server):
        server.route('GET', '/channels/c1', 500, {"data": {"id": "c1"}})

        with pytest.raises(UnexpectedStatusError) as exc_info:
            client.get('/channels/c1')

        assert str(exc_info.value) == "GET /channels/c1 code 500"

    def test_unstructured_error_body(self, client, server):
        server.route('GET', '/channels/c1', 200, {"message": "unexpected"})

        with pytest.raises(APIError) as exc_info:
            client.get('/channels/c1')

        assert exc_info.value.api_error is None
        assert json.loads(str(exc_info.value)) == {"message": "unexpected"}

    def test_timeout(self, client, server):
        server.route('GET', '/channels/c1', requests.ReadTimeout("Read timed out."))

        with pytest.raises(RequestTimeoutError) as exc_info:
            client.get('/channels/c1')

        assert "5000 ms" in str(exc_info.value)

    def test_port_and_tls_relaxation(self, server):
        """The port reaches the URL but not the signature."""
        client = NewsAPIClient(self.API_ID, self.SECRET, host="localhost", port=8443, verify_ssl=False)
        client.session.mount('https://', server)
        server.route('GET', '/channels/c1', 200, {"data": {"id": "c1"}})

        assert client.get('/channels/c1') == {"id": "c1"}
        request, options = server.received[0]
        assert request.url == "https://localhost:8443/channels/c1"
        assert options['verify'] is False
        client.close()

    def test_callback_delivery(self, client, server):
        server.route('GET', '/channels/c1', 200, {"data": {"id": "c1"}})
        outcomes = []

        client.request('GET', '/channels/c1', callback=lambda error, data: outcomes.append((error, data)))

        assert outcomes == [(None, {"id": "c1"})]

    def test_netrc_does_not_replace_signature(self, client, server, tmp_path, monkeypatch):
        """Credentials from .netrc never overwrite the HHMAC header."""
        netrc = tmp_path / "netrc"
        netrc.write_text("machine news-api.apple.com login user password secret\n")
        monkeypatch.setenv("NETRC", str(netrc))
        server.route('GET', '/channels/c1', 200, {"data": {"id": "c1"}})

        assert client.get('/channels/c1') == {"id": "c1"}
        request, _ = server.received[0]
        assert request.headers['Authorization'].startswith('HHMAC; ')

    def test_cookies_not_replayed(self, client, server):
        """A cookie set by one response is not sent with the next request."""
        server.route('GET', '/channels/c1', 200, {"data": {"id": "c1"}},
                     headers={'Set-Cookie': 'session=abc; Path=/'})

        # a plain session keeps the cookie
        plain = requests.Session()
        plain.mount('https://', server)
        plain.get('https://news-api.apple.com/channels/c1')
        plain.get('https://news-api.apple.com/channels/c1')
        assert server.received[1][0].headers.get('Cookie') == 'session=abc'
        server.received.clear()

        client.get('/channels/c1')
        client.get('/channels/c1')

        assert len(client.session.cookies) == 0
        assert 'Cookie' not in server.received[1][0].headers
