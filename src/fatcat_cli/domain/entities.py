"""
Catalog entity records.

One dataclass per entity kind, sharing a single interface:

- ``to_dict`` / ``to_json`` / ``to_toml``: serialization (``None`` values are
  omitted, attributes this client does not model are carried through as-is)
- ``identify``: the exact specifier of a fetched or created record
- ``mutate``: apply ``field=value`` mutations against a per-kind allow-list

Mutations are applied in order and are not rolled back: when a later
mutation is rejected, earlier ones stay applied on the record.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, FrozenSet, Iterable, List, Optional, Type

import toml

from fatcat_cli.domain.errors import (
    EntityModelError,
    InvalidFieldValue,
    MissingIdentity,
    UnknownField,
    UnsupportedOperation,
)
from fatcat_cli.domain.mutation import Mutation
from fatcat_cli.domain.specifier import ChangelogSpecifier, EntityKind, ExactSpecifier, Specifier

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


@dataclass
class EntityRecord:
    """Base for all entity records."""

    KIND: ClassVar[EntityKind]
    IDENT_FIELD: ClassVar[str] = "ident"
    MUTABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset()
    INTEGER_FIELDS: ClassVar[FrozenSet[str]] = frozenset()
    # fields that may be replaced but never cleared
    REQUIRED_FIELDS: ClassVar[FrozenSet[str]] = frozenset()

    unknown_fields: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def kind(self) -> EntityKind:
        return self.KIND

    # -- serialization -----------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntityRecord":
        """Build a record from an API payload, keeping unmodelled keys."""
        if not isinstance(data, dict):
            raise EntityModelError(f"expected a JSON object for {cls.KIND.value} entity")
        names = {f.name for f in fields(cls) if f.name != "unknown_fields"}
        known = {k: v for k, v in data.items() if k in names}
        unknown = {k: v for k, v in data.items() if k not in names}
        return cls(unknown_fields=unknown, **known)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "unknown_fields":
                continue
            value = getattr(self, f.name)
            if value is not None:
                out[f.name] = value
        for key, value in self.unknown_fields.items():
            if value is not None:
                out[key] = value
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    def to_toml(self) -> str:
        return toml.dumps(self.to_dict())

    # -- identity ----------------------------------------------------------

    def identify(self) -> Specifier:
        """Exact specifier for this record.

        Only valid on records that carry their identifier (fetched from or
        created by the API).
        """
        ident = getattr(self, self.IDENT_FIELD)
        if not ident:
            raise MissingIdentity(self.KIND)
        return ExactSpecifier(kind=self.KIND, ident=ident)

    # -- mutation ----------------------------------------------------------

    def mutate(self, mutations: Iterable[Mutation]) -> None:
        if not self.MUTABLE_FIELDS:
            raise UnsupportedOperation(f"mutating {self.KIND.value} entities is not supported")
        for m in mutations:
            if m.field not in self.MUTABLE_FIELDS:
                raise UnknownField(self.KIND, m.field)
            setattr(self, m.field, self._coerce(m))

    def _coerce(self, m: Mutation) -> Any:
        if m.value is None:
            if m.field in self.REQUIRED_FIELDS:
                raise InvalidFieldValue(self.KIND, m.field, m.value)
            return None
        if m.field in self.INTEGER_FIELDS:
            if not _INTEGER_RE.fullmatch(m.value):
                raise InvalidFieldValue(self.KIND, m.field, m.value)
            return int(m.value)
        return m.value


@dataclass
class _CatalogEntity(EntityRecord):
    """Fields shared by the seven versioned catalog entities."""

    ident: Optional[str] = None
    revision: Optional[str] = None
    redirect: Optional[str] = None
    state: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None
    edit_extra: Optional[Dict[str, Any]] = None


@dataclass
class ReleaseEntity(_CatalogEntity):
    KIND: ClassVar[EntityKind] = EntityKind.RELEASE
    MUTABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {
            "title",
            "subtitle",
            "container_id",
            "work_id",
            "release_type",
            "release_stage",
            "withdrawn_status",
            "license_slug",
            "volume",
            "issue",
            "number",
            "publisher",
            "language",
        }
    )

    title: Optional[str] = None
    subtitle: Optional[str] = None
    original_title: Optional[str] = None
    work_id: Optional[str] = None
    container_id: Optional[str] = None
    release_type: Optional[str] = None
    release_stage: Optional[str] = None
    release_date: Optional[str] = None
    release_year: Optional[int] = None
    withdrawn_status: Optional[str] = None
    ext_ids: Optional[Dict[str, Any]] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    number: Optional[str] = None
    publisher: Optional[str] = None
    language: Optional[str] = None
    license_slug: Optional[str] = None


@dataclass
class WorkEntity(_CatalogEntity):
    KIND: ClassVar[EntityKind] = EntityKind.WORK


@dataclass
class ContainerEntity(_CatalogEntity):
    KIND: ClassVar[EntityKind] = EntityKind.CONTAINER
    MUTABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"name", "container_type", "publisher", "issnl", "wikidata_qid"}
    )

    name: Optional[str] = None
    container_type: Optional[str] = None
    publisher: Optional[str] = None
    issnl: Optional[str] = None
    wikidata_qid: Optional[str] = None


@dataclass
class CreatorEntity(_CatalogEntity):
    KIND: ClassVar[EntityKind] = EntityKind.CREATOR
    MUTABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"display_name", "given_name", "surname", "orcid", "wikidata_qid"}
    )

    display_name: Optional[str] = None
    given_name: Optional[str] = None
    surname: Optional[str] = None
    orcid: Optional[str] = None
    wikidata_qid: Optional[str] = None


@dataclass
class FileEntity(_CatalogEntity):
    KIND: ClassVar[EntityKind] = EntityKind.FILE
    MUTABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"size", "mimetype", "md5", "sha1", "sha256"}
    )
    INTEGER_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"size"})

    size: Optional[int] = None
    md5: Optional[str] = None
    sha1: Optional[str] = None
    sha256: Optional[str] = None
    urls: Optional[List[Dict[str, Any]]] = None
    mimetype: Optional[str] = None
    release_ids: Optional[List[str]] = None


@dataclass
class FilesetEntity(_CatalogEntity):
    KIND: ClassVar[EntityKind] = EntityKind.FILESET

    manifest: Optional[List[Dict[str, Any]]] = None
    urls: Optional[List[Dict[str, Any]]] = None
    release_ids: Optional[List[str]] = None


@dataclass
class WebcaptureEntity(_CatalogEntity):
    KIND: ClassVar[EntityKind] = EntityKind.WEBCAPTURE

    cdx: Optional[List[Dict[str, Any]]] = None
    archive_urls: Optional[List[Dict[str, Any]]] = None
    original_url: Optional[str] = None
    timestamp: Optional[str] = None
    release_ids: Optional[List[str]] = None


@dataclass
class Editor(EntityRecord):
    KIND: ClassVar[EntityKind] = EntityKind.EDITOR
    IDENT_FIELD: ClassVar[str] = "editor_id"
    MUTABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"username"})
    REQUIRED_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"username"})

    editor_id: Optional[str] = None
    username: Optional[str] = None
    is_admin: Optional[bool] = None
    is_bot: Optional[bool] = None
    is_active: Optional[bool] = None


@dataclass
class Editgroup(EntityRecord):
    KIND: ClassVar[EntityKind] = EntityKind.EDITGROUP
    IDENT_FIELD: ClassVar[str] = "editgroup_id"
    MUTABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"description"})

    editgroup_id: Optional[str] = None
    editor_id: Optional[str] = None
    editor: Optional[Dict[str, Any]] = None
    changelog_index: Optional[int] = None
    created: Optional[str] = None
    submitted: Optional[str] = None
    description: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None
    annotations: Optional[List[Dict[str, Any]]] = None
    edits: Optional[Dict[str, Any]] = None


@dataclass
class ChangelogEntry(EntityRecord):
    KIND: ClassVar[EntityKind] = EntityKind.CHANGELOG
    IDENT_FIELD: ClassVar[str] = "index"

    index: Optional[int] = None
    editgroup_id: Optional[str] = None
    timestamp: Optional[str] = None
    editgroup: Optional[Dict[str, Any]] = None

    def identify(self) -> Specifier:
        if self.index is None:
            raise MissingIdentity(self.KIND)
        return ChangelogSpecifier(index=self.index)


RECORD_TYPES: Dict[EntityKind, Type[EntityRecord]] = {
    EntityKind.RELEASE: ReleaseEntity,
    EntityKind.WORK: WorkEntity,
    EntityKind.CONTAINER: ContainerEntity,
    EntityKind.CREATOR: CreatorEntity,
    EntityKind.FILE: FileEntity,
    EntityKind.FILESET: FilesetEntity,
    EntityKind.WEBCAPTURE: WebcaptureEntity,
    EntityKind.EDITOR: Editor,
    EntityKind.EDITGROUP: Editgroup,
    EntityKind.CHANGELOG: ChangelogEntry,
}


def record_from_dict(kind: EntityKind, data: Dict[str, Any]) -> EntityRecord:
    return RECORD_TYPES[kind].from_dict(data)


def record_from_json(kind: EntityKind, text: str) -> EntityRecord:
    """Parse user-supplied JSON (a single object) into a record of ``kind``."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise EntityModelError(f"parsing {kind.value} entity JSON: {exc}") from exc
    return record_from_dict(kind, data)
