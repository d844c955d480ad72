# src/fatcat_cli/application/workflows/edit_workflow.py
"""
Entity edit workflow.

Orchestrates specifier resolution, entity records and the catalog API for
each CLI operation:

- get: resolve + fetch
- create / update / delete inside an editgroup
- edit: fetch, round-trip through an external editor, update
- editgroup lifecycle: create, list, reviewable, accept, submit, unsubmit
- status: connectivity and auth-token check

Every remote call is a single attempt; failures propagate as
``FatcatCliError`` subclasses annotated with the operation that failed.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from fatcat_cli.application.ports.catalog_port import (
    ApiResponse,
    CatalogPort,
    ResponseTag,
    expect_success,
)
from fatcat_cli.application.services.specifier_resolver import SpecifierResolver
from fatcat_cli.domain.entities import Editgroup, Editor, EntityRecord, record_from_json
from fatcat_cli.domain.errors import (
    AuthError,
    ConfigurationError,
    EditorError,
    FatcatCliError,
    TransportError,
    UnexpectedResponse,
    UnsupportedOperation,
)
from fatcat_cli.domain.mutation import Mutation
from fatcat_cli.domain.specifier import EntityKind, ExactSpecifier, Specifier
from fatcat_cli.infrastructure.files.entity_file import read_entity_file

logger = logging.getLogger(__name__)

EDITGROUP_AGENT = "fatcat-cli"


@dataclass
class ClientStatus:
    """Connectivity and account summary reported by ``status``."""

    api_host: str
    has_api_token: bool
    last_changelog: Optional[int] = None
    account: Optional[Editor] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_api_token": self.has_api_token,
            "api_host": self.api_host,
            "last_changelog": self.last_changelog,
            "account": self.account.to_dict() if self.account else None,
        }


class EditWorkflow:
    def __init__(self, api: CatalogPort, resolver: Optional[SpecifierResolver] = None):
        self.api = api
        self.resolver = resolver or SpecifierResolver(api)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(
        self, specifier: Specifier, expand: Optional[str] = None, hide: Optional[str] = None
    ) -> EntityRecord:
        return self.resolver.fetch(specifier, expand=expand, hide=hide)

    # ------------------------------------------------------------------
    # Entity writes
    # ------------------------------------------------------------------

    def create(self, kind: EntityKind, json_text: str, editgroup_id: str) -> Dict[str, Any]:
        """Create a new entity of ``kind`` from a JSON payload."""
        try:
            if not kind.is_catalog_entity:
                raise UnsupportedOperation(f"creating {kind.value} entities is not supported")
            entity = record_from_json(kind, json_text).to_dict()
            creators = {
                EntityKind.RELEASE: self.api.create_release,
                EntityKind.WORK: self.api.create_work,
                EntityKind.CONTAINER: self.api.create_container,
                EntityKind.CREATOR: self.api.create_creator,
                EntityKind.FILE: self.api.create_file,
                EntityKind.FILESET: self.api.create_fileset,
                EntityKind.WEBCAPTURE: self.api.create_webcapture,
            }
            response = creators[kind](editgroup_id, entity)
            return expect_success(response, f"create {kind.value}")
        except FatcatCliError as err:
            raise err.add_context(f"parsing and creating {kind.value} entity")

    def update(
        self,
        specifier: Specifier,
        editgroup_id: str,
        *,
        json_text: Optional[str] = None,
        mutations: Sequence[Mutation] = (),
    ) -> Dict[str, Any]:
        """Update an entity from a full JSON payload or from field mutations.

        With a payload the payload replaces the entity. With mutations only,
        the current entity is fetched, mutated and written back.
        """
        if json_text is not None:
            exact = self.resolver.resolve(specifier)
            return self.update_from_json(exact, json_text, editgroup_id)
        if not mutations:
            raise ConfigurationError("update needs an entity payload or at least one field mutation")

        record = self.resolver.fetch(specifier)
        try:
            record.mutate(mutations)
        except FatcatCliError as err:
            raise err.add_context(f"mutating {specifier}")
        return self.update_from_json(record.identify(), record.to_json(), editgroup_id)

    def update_from_json(
        self, specifier: Specifier, json_text: str, editgroup_id: str
    ) -> Dict[str, Any]:
        exact = self.resolver.resolve(specifier)
        try:
            ident = self._require_catalog_entity(exact, "updates")
            entity = record_from_json(exact.kind, json_text).to_dict()
            updaters = {
                EntityKind.RELEASE: self.api.update_release,
                EntityKind.WORK: self.api.update_work,
                EntityKind.CONTAINER: self.api.update_container,
                EntityKind.CREATOR: self.api.update_creator,
                EntityKind.FILE: self.api.update_file,
                EntityKind.FILESET: self.api.update_fileset,
                EntityKind.WEBCAPTURE: self.api.update_webcapture,
            }
            response = updaters[exact.kind](editgroup_id, ident, entity)
            return expect_success(response, f"update {exact}", specifier=exact)
        except FatcatCliError as err:
            raise err.add_context(f"failed to update {exact}")

    def delete(self, specifier: Specifier, editgroup_id: str) -> Dict[str, Any]:
        try:
            exact = self.resolver.resolve(specifier)
            ident = self._require_catalog_entity(exact, "deletion")
            deleters = {
                EntityKind.RELEASE: self.api.delete_release,
                EntityKind.WORK: self.api.delete_work,
                EntityKind.CONTAINER: self.api.delete_container,
                EntityKind.CREATOR: self.api.delete_creator,
                EntityKind.FILE: self.api.delete_file,
                EntityKind.FILESET: self.api.delete_fileset,
                EntityKind.WEBCAPTURE: self.api.delete_webcapture,
            }
            response = deleters[exact.kind](editgroup_id, ident)
            return expect_success(response, f"delete {exact}", specifier=exact)
        except FatcatCliError as err:
            raise err.add_context(f"delete entity: {specifier}")

    def edit(
        self,
        specifier: Specifier,
        editgroup_id: str,
        editing_command: str,
        *,
        json_format: bool = False,
        run_editor: Optional[Callable[[List[str]], int]] = None,
    ) -> Dict[str, Any]:
        """Edit an entity interactively in an external editor."""
        original = self.resolver.fetch(specifier)
        exact = original.identify()
        suffix = ".json" if json_format else ".toml"
        text = original.to_json() if json_format else original.to_toml()

        fd, tmp_path = tempfile.mkstemp(suffix=suffix, prefix="fatcat-edit-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.write("\n")

            argv = shlex.split(editing_command) + [tmp_path]
            returncode = (run_editor or _run_editor)(argv)
            if returncode != 0:
                raise EditorError(
                    f"editor ({editing_command}) exited with non-success status code "
                    f"({returncode}), bailing on edit"
                )
            json_text = read_entity_file(tmp_path)
        finally:
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.debug(f"could not remove temp file {tmp_path}")

        # warm-up read; its result and failure are both discarded
        try:
            self.resolver.fetch(specifier)
        except FatcatCliError as exc:
            logger.debug(f"re-fetch before update failed: {exc}")

        try:
            return self.update_from_json(exact, json_text, editgroup_id)
        except FatcatCliError as err:
            raise err.add_context("updating after edit")

    # ------------------------------------------------------------------
    # Editgroups
    # ------------------------------------------------------------------

    def create_editgroup(self, description: str) -> Editgroup:
        editgroup = Editgroup(description=description, extra={"agent": EDITGROUP_AGENT})
        try:
            response = self.api.create_editgroup(editgroup.to_dict())
            return Editgroup.from_dict(expect_success(response, "create editgroup"))
        except FatcatCliError as err:
            raise err.add_context("failed to create editgroup")

    def list_editgroups(self, editor_id: Optional[str] = None, limit: int = 20) -> List[Editgroup]:
        editor_id = editor_id or self.api.editor_id
        if not editor_id:
            raise ConfigurationError("require either working auth token or --editor-id")
        try:
            response = self.api.get_editor_editgroups(editor_id, limit=limit)
            rows = expect_success(response, "fetch editgroups")
            return [Editgroup.from_dict(row) for row in rows or []]
        except FatcatCliError as err:
            raise err.add_context(f"failed to fetch editgroups for editor_{editor_id}")

    def list_reviewable_editgroups(self, limit: int = 20) -> List[Editgroup]:
        try:
            response = self.api.get_editgroups_reviewable(expand="editors", limit=limit)
            rows = expect_success(response, "fetch reviewable editgroups")
            return [Editgroup.from_dict(row) for row in rows or []]
        except FatcatCliError as err:
            raise err.add_context("failed to fetch reviewable editgroups")

    def accept_editgroup(self, editgroup_id: str) -> Dict[str, Any]:
        try:
            response = self.api.accept_editgroup(editgroup_id)
            return expect_success(response, "accept editgroup")
        except FatcatCliError as err:
            raise err.add_context(f"failed to accept editgroup {editgroup_id}")

    def submit_editgroup(self, editgroup_id: str) -> Editgroup:
        return self.update_editgroup_submit(editgroup_id, True)

    def unsubmit_editgroup(self, editgroup_id: str) -> Editgroup:
        return self.update_editgroup_submit(editgroup_id, False)

    def update_editgroup_submit(self, editgroup_id: str, submit: bool) -> Editgroup:
        """Re-send the current editgroup with the submitted flag toggled."""
        try:
            current = expect_success(
                self.api.get_editgroup(editgroup_id), f"fetch editgroup {editgroup_id}"
            )
        except FatcatCliError as err:
            raise err.add_context(f"failed to fetch editgroup {editgroup_id}")
        try:
            response = self.api.update_editgroup(editgroup_id, current, submit=submit)
            return Editgroup.from_dict(expect_success(response, "submit editgroup"))
        except FatcatCliError as err:
            action = "submit" if submit else "unsubmit"
            raise err.add_context(f"failed to {action} editgroup {editgroup_id}")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> ClientStatus:
        last_changelog = self._last_changelog_index()
        has_api_token = self.api.has_api_token
        account: Optional[Editor] = None
        if has_api_token and last_changelog is not None:
            try:
                self._check_auth()
            except FatcatCliError as err:
                raise err.add_context("check auth token")
            try:
                editor_id = self.api.editor_id
                if not editor_id:
                    raise AuthError("API token does not name an editor")
                response = self.api.get_editor(editor_id)
                account = Editor.from_dict(expect_success(response, "editor fetch"))
            except FatcatCliError as err:
                raise err.add_context("fetching editor account info")
        return ClientStatus(
            api_host=self.api.api_host,
            has_api_token=has_api_token,
            last_changelog=last_changelog,
            account=account,
        )

    def _last_changelog_index(self) -> Optional[int]:
        try:
            response = self.api.get_changelog(limit=1)
        except TransportError as exc:
            logger.warning(f"could not connect to {self.api.api_host}: {exc}")
            return None
        if response.tag is not ResponseTag.SUCCESS or not isinstance(response.body, list) or not response.body:
            logger.warning(f"changelog fetch failed: {response!r}")
            return None
        entry = response.body[0]
        return entry.get("index") if isinstance(entry, dict) else None

    def _check_auth(self) -> None:
        response: ApiResponse = self.api.auth_check()
        if response.tag is ResponseTag.SUCCESS:
            return
        if response.tag in (ResponseTag.NOT_AUTHORIZED, ResponseTag.FORBIDDEN):
            expect_success(response, "auth check")
        raise UnexpectedResponse("auth check failed", response)

    @staticmethod
    def _require_catalog_entity(specifier: Specifier, action: str) -> str:
        if specifier.kind is EntityKind.CHANGELOG:
            raise UnsupportedOperation("mutating this entity type doesn't make sense")
        if not isinstance(specifier, ExactSpecifier) or not specifier.kind.is_catalog_entity:
            raise UnsupportedOperation(f"{action} for {specifier.kind.value} entities is not supported")
        return specifier.ident


def _run_editor(argv: List[str]) -> int:
    logger.info(f"running editor: {' '.join(argv)}")
    try:
        return subprocess.run(argv, check=False).returncode
    except OSError as exc:
        raise EditorError(f"failed to execute editor {argv[0]}: {exc}") from exc
