"""
Catalog API port.

Defines the synchronous call surface the application layer needs from the
catalog API, and the tagged response every call returns. Callers branch on
``ApiResponse.tag`` and treat any tag they do not handle as an unexpected
response.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from fatcat_cli.domain.errors import (
    AuthError,
    NotFoundError,
    ServerValidationError,
    UnexpectedResponse,
)


class ResponseTag(str, Enum):
    SUCCESS = "success"
    BAD_REQUEST = "bad_request"
    NOT_AUTHORIZED = "not_authorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    GENERIC_ERROR = "generic_error"


@dataclass(frozen=True)
class ApiResponse:
    """One API answer: a tag plus the decoded body (payload or error object)."""

    tag: ResponseTag
    body: Any = None
    status: int = 0
    www_authenticate: Optional[str] = None

    @property
    def error(self) -> str:
        if isinstance(self.body, dict):
            return str(self.body.get("error") or "")
        return ""

    @property
    def message(self) -> str:
        if isinstance(self.body, dict):
            return str(self.body.get("message") or "")
        return ""

    def __repr__(self) -> str:
        if self.tag is ResponseTag.SUCCESS:
            return f"ApiResponse(tag={self.tag.value}, status={self.status})"
        return (
            f"ApiResponse(tag={self.tag.value}, status={self.status}, "
            f"error={self.error!r}, message={self.message!r})"
        )


def expect_success(
    response: ApiResponse,
    operation: str,
    *,
    specifier: Any = None,
    auth_errors: bool = True,
) -> Any:
    """Return the success payload or raise the matching error.

    With ``auth_errors=False`` (read-only calls, where auth tags cannot
    occur) not-authorized and forbidden fall through to
    :class:`UnexpectedResponse` like any other unhandled tag.
    """
    tag = response.tag
    if tag is ResponseTag.SUCCESS:
        return response.body
    if tag is ResponseTag.BAD_REQUEST:
        raise ServerValidationError(response.error, response.message)
    if tag is ResponseTag.NOT_FOUND:
        raise NotFoundError(specifier if specifier is not None else operation, response.message)
    if auth_errors and tag is ResponseTag.NOT_AUTHORIZED:
        challenge = f" [WWW-Authenticate: {response.www_authenticate}]" if response.www_authenticate else ""
        raise AuthError(f"Not Authorized ({response.error}): {response.message}{challenge}")
    if auth_errors and tag is ResponseTag.FORBIDDEN:
        raise AuthError(f"Forbidden ({response.error}): {response.message}")
    raise UnexpectedResponse(operation, response)


@runtime_checkable
class CatalogPort(Protocol):
    """Synchronous catalog API surface used by the resolver and workflows."""

    api_host: str
    editor_id: Optional[str]

    @property
    def has_api_token(self) -> bool:
        ...

    # entity reads
    def get_release(self, ident: str, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...
    def get_work(self, ident: str, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...
    def get_container(self, ident: str, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...
    def get_creator(self, ident: str, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...
    def get_file(self, ident: str, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...
    def get_fileset(self, ident: str, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...
    def get_webcapture(self, ident: str, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...
    def get_editgroup(self, editgroup_id: str) -> ApiResponse: ...
    def get_editor(self, editor_id: str) -> ApiResponse: ...
    def get_changelog(self, limit: Optional[int] = None) -> ApiResponse: ...
    def get_changelog_entry(self, index: int) -> ApiResponse: ...

    # lookups
    def lookup_release(self, *, doi: Optional[str] = None, pmid: Optional[str] = None, pmcid: Optional[str] = None, arxiv: Optional[str] = None, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...
    def lookup_container(self, *, issnl: Optional[str] = None, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...
    def lookup_creator(self, *, orcid: Optional[str] = None, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...
    def lookup_file(self, *, sha1: Optional[str] = None, sha256: Optional[str] = None, md5: Optional[str] = None, expand: Optional[str] = None, hide: Optional[str] = None) -> ApiResponse: ...

    # entity writes
    def create_release(self, editgroup_id: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def create_work(self, editgroup_id: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def create_container(self, editgroup_id: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def create_creator(self, editgroup_id: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def create_file(self, editgroup_id: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def create_fileset(self, editgroup_id: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def create_webcapture(self, editgroup_id: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def update_release(self, editgroup_id: str, ident: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def update_work(self, editgroup_id: str, ident: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def update_container(self, editgroup_id: str, ident: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def update_creator(self, editgroup_id: str, ident: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def update_file(self, editgroup_id: str, ident: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def update_fileset(self, editgroup_id: str, ident: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def update_webcapture(self, editgroup_id: str, ident: str, entity: Dict[str, Any]) -> ApiResponse: ...
    def delete_release(self, editgroup_id: str, ident: str) -> ApiResponse: ...
    def delete_work(self, editgroup_id: str, ident: str) -> ApiResponse: ...
    def delete_container(self, editgroup_id: str, ident: str) -> ApiResponse: ...
    def delete_creator(self, editgroup_id: str, ident: str) -> ApiResponse: ...
    def delete_file(self, editgroup_id: str, ident: str) -> ApiResponse: ...
    def delete_fileset(self, editgroup_id: str, ident: str) -> ApiResponse: ...
    def delete_webcapture(self, editgroup_id: str, ident: str) -> ApiResponse: ...

    # editgroups and auth
    def create_editgroup(self, editgroup: Dict[str, Any]) -> ApiResponse: ...
    def update_editgroup(self, editgroup_id: str, editgroup: Dict[str, Any], submit: Optional[bool] = None) -> ApiResponse: ...
    def accept_editgroup(self, editgroup_id: str) -> ApiResponse: ...
    def get_editor_editgroups(self, editor_id: str, limit: Optional[int] = None) -> ApiResponse: ...
    def get_editgroups_reviewable(self, expand: Optional[str] = None, limit: Optional[int] = None) -> ApiResponse: ...
    def auth_check(self, role: Optional[str] = None) -> ApiResponse: ...
