"""
Catalog REST API client.

Synchronous ``requests`` client for the fatcat catalog API (``/v0``). Every
call returns an :class:`ApiResponse` tagged from the HTTP status code; only
connection failures and unreadable success bodies raise (``TransportError``).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from fatcat_cli import __version__
from fatcat_cli.application.ports.catalog_port import ApiResponse, ResponseTag
from fatcat_cli.domain.errors import AuthError, TransportError
from fatcat_cli.infrastructure.auth.macaroon_token import parse_macaroon_editor_id

logger = logging.getLogger(__name__)

BASE_PATH = "/v0"

_STATUS_TAGS = {
    200: ResponseTag.SUCCESS,
    201: ResponseTag.SUCCESS,
    400: ResponseTag.BAD_REQUEST,
    401: ResponseTag.NOT_AUTHORIZED,
    403: ResponseTag.FORBIDDEN,
    404: ResponseTag.NOT_FOUND,
    409: ResponseTag.CONFLICT,
}


def tag_for_status(status: int) -> ResponseTag:
    return _STATUS_TAGS.get(status, ResponseTag.GENERIC_ERROR)


class CatalogApiClient:
    """Thin wrapper around the catalog API with one method per operation."""

    def __init__(
        self,
        api_host: str,
        api_token: Optional[str] = None,
        *,
        timeout_s: float = 30.0,
    ):
        if not api_host.startswith(("https://", "http://")):
            raise TransportError(f"unsupported API Host prefix: {api_host}")
        self.api_host = api_host.rstrip("/")
        self.base_url = f"{self.api_host}{BASE_PATH}"
        self.timeout_s = timeout_s
        self._api_token = (api_token or "").strip() or None
        self._user_agent = f"fatcat-cli/{__version__}"
        self.editor_id: Optional[str] = None
        if self._api_token:
            try:
                self.editor_id = parse_macaroon_editor_id(self._api_token)
            except AuthError as err:
                raise err.add_context("parse API auth token")

    @property
    def has_api_token(self) -> bool:
        return self._api_token is not None

    # ------------------------------------------------------------------
    # Entity reads
    # ------------------------------------------------------------------

    def get_release(self, ident, expand=None, hide=None) -> ApiResponse:
        return self._get_entity("release", ident, expand, hide)

    def get_work(self, ident, expand=None, hide=None) -> ApiResponse:
        return self._get_entity("work", ident, expand, hide)

    def get_container(self, ident, expand=None, hide=None) -> ApiResponse:
        return self._get_entity("container", ident, expand, hide)

    def get_creator(self, ident, expand=None, hide=None) -> ApiResponse:
        return self._get_entity("creator", ident, expand, hide)

    def get_file(self, ident, expand=None, hide=None) -> ApiResponse:
        return self._get_entity("file", ident, expand, hide)

    def get_fileset(self, ident, expand=None, hide=None) -> ApiResponse:
        return self._get_entity("fileset", ident, expand, hide)

    def get_webcapture(self, ident, expand=None, hide=None) -> ApiResponse:
        return self._get_entity("webcapture", ident, expand, hide)

    def get_editgroup(self, editgroup_id: str) -> ApiResponse:
        return self._request("GET", f"/editgroup/{quote(editgroup_id)}")

    def get_editor(self, editor_id: str) -> ApiResponse:
        return self._request("GET", f"/editor/{quote(editor_id)}")

    def get_changelog(self, limit: Optional[int] = None) -> ApiResponse:
        return self._request("GET", "/changelog", params={"limit": limit})

    def get_changelog_entry(self, index: int) -> ApiResponse:
        return self._request("GET", f"/changelog/{int(index)}")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def lookup_release(
        self, *, doi=None, pmid=None, pmcid=None, arxiv=None, expand=None, hide=None
    ) -> ApiResponse:
        return self._request(
            "GET",
            "/release/lookup",
            params={
                "doi": doi,
                "pmid": pmid,
                "pmcid": pmcid,
                "arxiv": arxiv,
                "expand": expand,
                "hide": hide,
            },
        )

    def lookup_container(self, *, issnl=None, expand=None, hide=None) -> ApiResponse:
        return self._request(
            "GET", "/container/lookup", params={"issnl": issnl, "expand": expand, "hide": hide}
        )

    def lookup_creator(self, *, orcid=None, expand=None, hide=None) -> ApiResponse:
        return self._request(
            "GET", "/creator/lookup", params={"orcid": orcid, "expand": expand, "hide": hide}
        )

    def lookup_file(self, *, sha1=None, sha256=None, md5=None, expand=None, hide=None) -> ApiResponse:
        return self._request(
            "GET",
            "/file/lookup",
            params={"sha1": sha1, "sha256": sha256, "md5": md5, "expand": expand, "hide": hide},
        )

    # ------------------------------------------------------------------
    # Entity writes (always inside an editgroup)
    # ------------------------------------------------------------------

    def create_release(self, editgroup_id, entity) -> ApiResponse:
        return self._create_entity("release", editgroup_id, entity)

    def create_work(self, editgroup_id, entity) -> ApiResponse:
        return self._create_entity("work", editgroup_id, entity)

    def create_container(self, editgroup_id, entity) -> ApiResponse:
        return self._create_entity("container", editgroup_id, entity)

    def create_creator(self, editgroup_id, entity) -> ApiResponse:
        return self._create_entity("creator", editgroup_id, entity)

    def create_file(self, editgroup_id, entity) -> ApiResponse:
        return self._create_entity("file", editgroup_id, entity)

    def create_fileset(self, editgroup_id, entity) -> ApiResponse:
        return self._create_entity("fileset", editgroup_id, entity)

    def create_webcapture(self, editgroup_id, entity) -> ApiResponse:
        return self._create_entity("webcapture", editgroup_id, entity)

    def update_release(self, editgroup_id, ident, entity) -> ApiResponse:
        return self._update_entity("release", editgroup_id, ident, entity)

    def update_work(self, editgroup_id, ident, entity) -> ApiResponse:
        return self._update_entity("work", editgroup_id, ident, entity)

    def update_container(self, editgroup_id, ident, entity) -> ApiResponse:
        return self._update_entity("container", editgroup_id, ident, entity)

    def update_creator(self, editgroup_id, ident, entity) -> ApiResponse:
        return self._update_entity("creator", editgroup_id, ident, entity)

    def update_file(self, editgroup_id, ident, entity) -> ApiResponse:
        return self._update_entity("file", editgroup_id, ident, entity)

    def update_fileset(self, editgroup_id, ident, entity) -> ApiResponse:
        return self._update_entity("fileset", editgroup_id, ident, entity)

    def update_webcapture(self, editgroup_id, ident, entity) -> ApiResponse:
        return self._update_entity("webcapture", editgroup_id, ident, entity)

    def delete_release(self, editgroup_id, ident) -> ApiResponse:
        return self._delete_entity("release", editgroup_id, ident)

    def delete_work(self, editgroup_id, ident) -> ApiResponse:
        return self._delete_entity("work", editgroup_id, ident)

    def delete_container(self, editgroup_id, ident) -> ApiResponse:
        return self._delete_entity("container", editgroup_id, ident)

    def delete_creator(self, editgroup_id, ident) -> ApiResponse:
        return self._delete_entity("creator", editgroup_id, ident)

    def delete_file(self, editgroup_id, ident) -> ApiResponse:
        return self._delete_entity("file", editgroup_id, ident)

    def delete_fileset(self, editgroup_id, ident) -> ApiResponse:
        return self._delete_entity("fileset", editgroup_id, ident)

    def delete_webcapture(self, editgroup_id, ident) -> ApiResponse:
        return self._delete_entity("webcapture", editgroup_id, ident)

    # ------------------------------------------------------------------
    # Editgroups and auth
    # ------------------------------------------------------------------

    def create_editgroup(self, editgroup: Dict[str, Any]) -> ApiResponse:
        return self._request("POST", "/editgroup", json_data=editgroup)

    def update_editgroup(
        self, editgroup_id: str, editgroup: Dict[str, Any], submit: Optional[bool] = None
    ) -> ApiResponse:
        params = {"submit": None if submit is None else str(bool(submit)).lower()}
        return self._request(
            "PUT", f"/editgroup/{quote(editgroup_id)}", params=params, json_data=editgroup
        )

    def accept_editgroup(self, editgroup_id: str) -> ApiResponse:
        return self._request("POST", f"/editgroup/{quote(editgroup_id)}/accept")

    def get_editor_editgroups(self, editor_id: str, limit: Optional[int] = None) -> ApiResponse:
        return self._request(
            "GET", f"/editor/{quote(editor_id)}/editgroups", params={"limit": limit}
        )

    def get_editgroups_reviewable(
        self, expand: Optional[str] = None, limit: Optional[int] = None
    ) -> ApiResponse:
        return self._request(
            "GET", "/editgroup/reviewable", params={"expand": expand, "limit": limit}
        )

    def auth_check(self, role: Optional[str] = None) -> ApiResponse:
        return self._request("GET", "/auth/check", params={"role": role})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_entity(self, kind: str, ident: str, expand, hide) -> ApiResponse:
        return self._request(
            "GET", f"/{kind}/{quote(ident)}", params={"expand": expand, "hide": hide}
        )

    def _create_entity(self, kind: str, editgroup_id: str, entity) -> ApiResponse:
        return self._request("POST", f"/editgroup/{quote(editgroup_id)}/{kind}", json_data=entity)

    def _update_entity(self, kind: str, editgroup_id: str, ident: str, entity) -> ApiResponse:
        return self._request(
            "PUT", f"/editgroup/{quote(editgroup_id)}/{kind}/{quote(ident)}", json_data=entity
        )

    def _delete_entity(self, kind: str, editgroup_id: str, ident: str) -> ApiResponse:
        return self._request("DELETE", f"/editgroup/{quote(editgroup_id)}/{kind}/{quote(ident)}")

    def _headers(self) -> Dict[str, str]:
        headers = {
            "User-Agent": self._user_agent,
            "Accept": "application/json",
        }
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_data: Any = None,
    ) -> ApiResponse:
        url = f"{self.base_url}{path}"
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = requests.request(
                method,
                url,
                headers=self._headers(),
                params=clean_params or None,
                json=json_data,
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        tag = tag_for_status(response.status_code)
        logger.debug(f"{method} {url} -> {response.status_code} ({tag.value})")
        try:
            body = response.json()
        except ValueError as exc:
            if tag is ResponseTag.SUCCESS:
                raise TransportError(f"{method} {url}: response body is not JSON") from exc
            body = {
                "success": False,
                "error": f"http-{response.status_code}",
                "message": (response.text or "")[:200],
            }
        return ApiResponse(
            tag=tag,
            body=body,
            status=response.status_code,
            www_authenticate=response.headers.get("WWW-Authenticate"),
        )
