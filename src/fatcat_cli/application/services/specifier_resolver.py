"""Resolve specifiers against the catalog API.

``fetch`` maps every specifier variant onto exactly one API read (entity
get, external-identifier lookup, or changelog entry) and turns the tagged
response into an entity record. ``resolve`` turns lookup specifiers into
exact ones.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fatcat_cli.application.ports.catalog_port import ApiResponse, CatalogPort, expect_success
from fatcat_cli.domain.entities import EntityRecord, record_from_dict
from fatcat_cli.domain.errors import FatcatCliError, UnsupportedOperation
from fatcat_cli.domain.specifier import (
    ChangelogSpecifier,
    EditorUsernameSpecifier,
    EntityKind,
    ExactSpecifier,
    LookupSpecifier,
    Specifier,
)

logger = logging.getLogger(__name__)

_USERNAME_UNSUPPORTED = "editor lookup by username isn't implemented in fatcat-server API yet, sorry"


class SpecifierResolver:
    def __init__(self, api: CatalogPort):
        self.api = api

    def fetch(
        self,
        specifier: Specifier,
        expand: Optional[str] = None,
        hide: Optional[str] = None,
    ) -> EntityRecord:
        """Fetch the record a specifier refers to.

        Raises:
            NotFoundError: the API answered not-found (carries ``specifier``)
            ServerValidationError: the API answered bad-request
            UnexpectedResponse: any other non-success answer
            UnsupportedOperation: username specifiers
        """
        try:
            call = self._read_call(specifier, expand, hide)
            logger.debug(f"GET {specifier}")
            response = call()
            body = expect_success(
                response, f"API GET {specifier}", specifier=specifier, auth_errors=False
            )
            return record_from_dict(specifier.kind, body)
        except FatcatCliError as err:
            raise err.add_context(f"Failed to GET {specifier}")

    def resolve(self, specifier: Specifier) -> Specifier:
        """Replace a lookup specifier with the exact specifier of its target."""
        if isinstance(specifier, (ExactSpecifier, ChangelogSpecifier)):
            return specifier
        if isinstance(specifier, EditorUsernameSpecifier):
            raise UnsupportedOperation(_USERNAME_UNSUPPORTED)
        record = self.fetch(specifier)
        exact = record.identify()
        logger.info(f"resolved {specifier} to {exact}")
        return exact

    def _read_call(
        self, specifier: Specifier, expand: Optional[str], hide: Optional[str]
    ) -> Callable[[], ApiResponse]:
        api = self.api
        if isinstance(specifier, ExactSpecifier):
            ident = specifier.ident
            if specifier.kind is EntityKind.EDITGROUP:
                return lambda: api.get_editgroup(ident)
            if specifier.kind is EntityKind.EDITOR:
                return lambda: api.get_editor(ident)
            getters = {
                EntityKind.RELEASE: api.get_release,
                EntityKind.WORK: api.get_work,
                EntityKind.CONTAINER: api.get_container,
                EntityKind.CREATOR: api.get_creator,
                EntityKind.FILE: api.get_file,
                EntityKind.FILESET: api.get_fileset,
                EntityKind.WEBCAPTURE: api.get_webcapture,
            }
            getter = getters[specifier.kind]
            return lambda: getter(ident, expand=expand, hide=hide)

        if isinstance(specifier, LookupSpecifier):
            lookups = {
                EntityKind.RELEASE: api.lookup_release,
                EntityKind.CONTAINER: api.lookup_container,
                EntityKind.CREATOR: api.lookup_creator,
                EntityKind.FILE: api.lookup_file,
            }
            lookup = lookups[specifier.kind]
            params = {specifier.key.value: specifier.value}
            return lambda: lookup(expand=expand, hide=hide, **params)

        if isinstance(specifier, ChangelogSpecifier):
            index = specifier.index
            return lambda: api.get_changelog_entry(index)

        if isinstance(specifier, EditorUsernameSpecifier):
            raise UnsupportedOperation(_USERNAME_UNSUPPORTED)

        raise TypeError(f"not a specifier: {specifier!r}")
