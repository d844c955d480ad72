from __future__ import annotations

import pytest
import requests
from pymacaroons import Macaroon

from fatcat_cli.application.ports.catalog_port import ResponseTag, expect_success
from fatcat_cli.domain.errors import AuthError, TransportError
from fatcat_cli.infrastructure.api_clients.catalog_client import CatalogApiClient, tag_for_status

IDENT = "hsmo6p4smrganpb3fndaj2lon4"
EDITGROUP_ID = "aaaaaaaaaaaaaaaaaaaaaaaaaa"
_PATCH_TARGET = "fatcat_cli.infrastructure.api_clients.catalog_client.requests.request"
_NO_JSON = object()


class _DummyResponse:
    def __init__(self, status_code=200, payload=None, text="", headers=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.headers = headers or {}

    def json(self):
        if self._payload is _NO_JSON:
            raise ValueError("not json")
        return self._payload


def _token(*caveats):
    macaroon = Macaroon(location="api.test", identifier="key-1", key="secret")
    for caveat in caveats:
        macaroon.add_first_party_caveat(caveat)
    return macaroon.serialize()


def _install(monkeypatch, response):
    calls = []

    def _fake_request(method, url, headers=None, params=None, json=None, timeout=0):
        calls.append(
            {"method": method, "url": url, "headers": headers, "params": params, "json": json, "timeout": timeout}
        )
        return response

    monkeypatch.setattr(_PATCH_TARGET, _fake_request)
    return calls


@pytest.mark.parametrize(
    "status,tag",
    [
        (200, ResponseTag.SUCCESS),
        (201, ResponseTag.SUCCESS),
        (400, ResponseTag.BAD_REQUEST),
        (401, ResponseTag.NOT_AUTHORIZED),
        (403, ResponseTag.FORBIDDEN),
        (404, ResponseTag.NOT_FOUND),
        (409, ResponseTag.CONFLICT),
        (500, ResponseTag.GENERIC_ERROR),
        (502, ResponseTag.GENERIC_ERROR),
        (204, ResponseTag.GENERIC_ERROR),
    ],
)
def test_status_code_to_tag(status, tag):
    assert tag_for_status(status) is tag


def test_get_release_request_shape(monkeypatch):
    calls = _install(monkeypatch, _DummyResponse(200, {"ident": IDENT}))
    client = CatalogApiClient("https://api.test/", timeout_s=5.0)

    response = client.get_release(IDENT, expand="files")

    assert response.tag is ResponseTag.SUCCESS
    assert response.body == {"ident": IDENT}
    call = calls[0]
    assert call["method"] == "GET"
    assert call["url"] == f"https://api.test/v0/release/{IDENT}"
    assert call["params"] == {"expand": "files"}
    assert call["timeout"] == 5.0
    assert call["headers"]["User-Agent"].startswith("fatcat-cli/")
    assert "Authorization" not in call["headers"]


def test_lookup_sends_only_given_keys(monkeypatch):
    calls = _install(monkeypatch, _DummyResponse(200, {"ident": IDENT}))
    CatalogApiClient("https://api.test").lookup_release(doi="10.1234/abc")
    assert calls[0]["url"] == "https://api.test/v0/release/lookup"
    assert calls[0]["params"] == {"doi": "10.1234/abc"}


def test_write_paths(monkeypatch):
    calls = _install(monkeypatch, _DummyResponse(201, {"edit_id": "e1"}))
    client = CatalogApiClient("https://api.test")

    client.create_release(EDITGROUP_ID, {"title": "T"})
    client.update_container(EDITGROUP_ID, IDENT, {"name": "N"})
    client.delete_file(EDITGROUP_ID, IDENT)

    assert [(c["method"], c["url"]) for c in calls] == [
        ("POST", f"https://api.test/v0/editgroup/{EDITGROUP_ID}/release"),
        ("PUT", f"https://api.test/v0/editgroup/{EDITGROUP_ID}/container/{IDENT}"),
        ("DELETE", f"https://api.test/v0/editgroup/{EDITGROUP_ID}/file/{IDENT}"),
    ]
    assert calls[0]["json"] == {"title": "T"}
    assert calls[2]["json"] is None


def test_update_editgroup_submit_flag(monkeypatch):
    calls = _install(monkeypatch, _DummyResponse(200, {"editgroup_id": EDITGROUP_ID}))
    client = CatalogApiClient("https://api.test")

    client.update_editgroup(EDITGROUP_ID, {"editgroup_id": EDITGROUP_ID}, submit=True)
    client.update_editgroup(EDITGROUP_ID, {"editgroup_id": EDITGROUP_ID}, submit=False)

    assert calls[0]["method"] == "PUT"
    assert calls[0]["params"] == {"submit": "true"}
    assert calls[1]["params"] == {"submit": "false"}


def test_error_response_is_tagged_not_raised(monkeypatch):
    _install(
        monkeypatch,
        _DummyResponse(
            401,
            {"success": False, "error": "auth", "message": "token expired"},
            headers={"WWW-Authenticate": "Bearer"},
        ),
    )
    response = CatalogApiClient("https://api.test").auth_check()
    assert response.tag is ResponseTag.NOT_AUTHORIZED
    assert response.message == "token expired"
    assert response.www_authenticate == "Bearer"

    with pytest.raises(AuthError) as exc:
        expect_success(response, "auth check")
    assert str(exc.value) == "Not Authorized (auth): token expired [WWW-Authenticate: Bearer]"


def test_non_json_error_body_becomes_synthetic_error(monkeypatch):
    _install(monkeypatch, _DummyResponse(502, _NO_JSON, text="<html>Bad Gateway</html>"))
    response = CatalogApiClient("https://api.test").get_changelog(limit=1)
    assert response.tag is ResponseTag.GENERIC_ERROR
    assert response.error == "http-502"
    assert "Bad Gateway" in response.message


def test_non_json_success_body_is_transport_error(monkeypatch):
    _install(monkeypatch, _DummyResponse(200, _NO_JSON))
    with pytest.raises(TransportError):
        CatalogApiClient("https://api.test").get_editor(IDENT)


def test_connection_failure_is_transport_error(monkeypatch):
    def _boom(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(_PATCH_TARGET, _boom)
    with pytest.raises(TransportError) as exc:
        CatalogApiClient("http://localhost:9411").get_changelog()
    assert "connection refused" in str(exc.value)


def test_unsupported_host_prefix():
    with pytest.raises(TransportError):
        CatalogApiClient("ftp://api.test")


def test_token_sets_editor_id_and_bearer_header(monkeypatch):
    calls = _install(monkeypatch, _DummyResponse(200, {"success": True}))
    token = _token("time < 2099-01-01T00:00:00Z", f"editor_id = {IDENT}")

    client = CatalogApiClient("https://api.test", token)
    client.auth_check()

    assert client.has_api_token
    assert client.editor_id == IDENT
    assert calls[0]["headers"]["Authorization"] == f"Bearer {token}"


def test_unreadable_token_fails_construction():
    with pytest.raises(AuthError) as exc:
        CatalogApiClient("https://api.test", _token("time < 2099-01-01T00:00:00Z"))
    assert str(exc.value).startswith("parse API auth token: ")
