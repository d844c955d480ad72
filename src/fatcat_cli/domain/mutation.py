from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from fatcat_cli.domain.errors import InvalidMutation

_MUTATION_RE = re.compile(r"([a-z_]+)=(.*)")


@dataclass(frozen=True)
class Mutation:
    """A single ``field=value`` edit. ``value=None`` clears the field."""

    field: str
    value: Optional[str] = None


def parse_mutation(token: str) -> Mutation:
    """Parse a ``field=value`` token; an empty value clears the field."""
    match = _MUTATION_RE.fullmatch(token)
    if not match:
        raise InvalidMutation(token)
    value = match.group(2)
    return Mutation(field=match.group(1), value=value if value else None)


def parse_mutations(tokens: Iterable[str]) -> List[Mutation]:
    return [parse_mutation(token) for token in tokens]
