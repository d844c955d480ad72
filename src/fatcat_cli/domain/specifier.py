"""Entity specifiers: textual references to catalog entities.

A specifier is either an exact ``<kind>_<ident>`` pair, an external
identifier lookup (``doi:10.123/abc``), an editor username, or a changelog
index. The accepted text forms are the user-facing contract of the CLI:

    release_hsmo6p4smrganpb3fndaj2lon4
    doi:10.1234/abcde
    sha1:3f242a192acc258bdfdb151943419437f440c313
    username:big-bot
    changelog_1234
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from fatcat_cli.domain.errors import InvalidEntityKind, InvalidSpecifier

_I64_MAX = 2**63 - 1

_SPEC_ENTITY_RE = re.compile(
    r"(release|work|creator|container|file|fileset|webcapture|editgroup|editor)_([2-7a-z]{26})"
)
_SPEC_LOOKUP_RE = re.compile(
    r"(doi|pmcid|pmid|arxiv|issnl|orcid|sha1|sha256|md5|username|changelog):(\S+)"
)
_SPEC_CHANGELOG_RE = re.compile(r"changelog_([0-9]+)")


class EntityKind(str, Enum):
    """Every kind of record the catalog API exposes."""

    RELEASE = "release"
    WORK = "work"
    CONTAINER = "container"
    CREATOR = "creator"
    FILE = "file"
    FILESET = "fileset"
    WEBCAPTURE = "webcapture"
    EDITOR = "editor"
    EDITGROUP = "editgroup"
    CHANGELOG = "changelog"

    @property
    def is_catalog_entity(self) -> bool:
        """Versioned entities that are created/updated/deleted inside editgroups."""
        return self in CATALOG_ENTITY_KINDS

    @classmethod
    def parse(cls, text: str) -> "EntityKind":
        """Parse a creatable entity kind name, as accepted on the command line."""
        for kind in CATALOG_ENTITY_KINDS:
            if kind.value == text:
                return kind
        raise InvalidEntityKind(text)


CATALOG_ENTITY_KINDS = (
    EntityKind.RELEASE,
    EntityKind.WORK,
    EntityKind.CONTAINER,
    EntityKind.CREATOR,
    EntityKind.FILE,
    EntityKind.FILESET,
    EntityKind.WEBCAPTURE,
)


class LookupKey(str, Enum):
    """External identifiers the catalog can look entities up by."""

    DOI = "doi"
    PMCID = "pmcid"
    PMID = "pmid"
    ARXIV = "arxiv"
    ISSNL = "issnl"
    ORCID = "orcid"
    SHA1 = "sha1"
    SHA256 = "sha256"
    MD5 = "md5"

    @property
    def kind(self) -> EntityKind:
        return _LOOKUP_KEY_KINDS[self]


_LOOKUP_KEY_KINDS = {
    LookupKey.DOI: EntityKind.RELEASE,
    LookupKey.PMCID: EntityKind.RELEASE,
    LookupKey.PMID: EntityKind.RELEASE,
    LookupKey.ARXIV: EntityKind.RELEASE,
    LookupKey.ISSNL: EntityKind.CONTAINER,
    LookupKey.ORCID: EntityKind.CREATOR,
    LookupKey.SHA1: EntityKind.FILE,
    LookupKey.SHA256: EntityKind.FILE,
    LookupKey.MD5: EntityKind.FILE,
}


@dataclass(frozen=True)
class ExactSpecifier:
    """A fully-resolved entity reference: kind plus 26-character identifier."""

    kind: EntityKind
    ident: str

    def __str__(self) -> str:
        return f"{self.kind.value}_{self.ident}"


@dataclass(frozen=True)
class LookupSpecifier:
    """External-identifier reference that needs server-side resolution."""

    key: LookupKey
    value: str

    @property
    def kind(self) -> EntityKind:
        return self.key.kind

    def __str__(self) -> str:
        return f"{self.key.value}:{self.value}"


@dataclass(frozen=True)
class EditorUsernameSpecifier:
    # the catalog API has no username lookup endpoint; always fails on use
    username: str

    @property
    def kind(self) -> EntityKind:
        return EntityKind.EDITOR

    def __str__(self) -> str:
        return f"username:{self.username}"


@dataclass(frozen=True)
class ChangelogSpecifier:
    index: int

    @property
    def kind(self) -> EntityKind:
        return EntityKind.CHANGELOG

    def __str__(self) -> str:
        return f"changelog_{self.index}"


Specifier = Union[ExactSpecifier, LookupSpecifier, EditorUsernameSpecifier, ChangelogSpecifier]


def parse_specifier(text: str) -> Specifier:
    """Parse CLI text into a specifier.

    Patterns are tried in order: exact entity identifier, ``key:value``
    lookup, then ``changelog_<index>``.

    Raises:
        InvalidSpecifier: the text matches none of the patterns
    """
    match = _SPEC_ENTITY_RE.fullmatch(text)
    if match:
        return ExactSpecifier(kind=EntityKind(match.group(1)), ident=match.group(2))

    match = _SPEC_LOOKUP_RE.fullmatch(text)
    if match:
        prefix, value = match.group(1), match.group(2)
        if prefix == "username":
            return EditorUsernameSpecifier(username=value)
        if prefix == "changelog":
            raise InvalidSpecifier(text, f"unexpected entity lookup type: {prefix}")
        return LookupSpecifier(key=LookupKey(prefix), value=value)

    match = _SPEC_CHANGELOG_RE.fullmatch(text)
    if match:
        index = int(match.group(1))
        if index > _I64_MAX:
            raise InvalidSpecifier(text, f"changelog index out of range: {text}")
        return ChangelogSpecifier(index=index)

    raise InvalidSpecifier(text)
