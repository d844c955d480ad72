"""Editor identity from catalog API auth tokens.

API tokens are base64-encoded macaroons carrying an ``editor_id = <id>``
first-party caveat. The signature is not checked locally; the API server
verifies the token on every authenticated call.
"""

from __future__ import annotations

from typing import List

from pymacaroons import Macaroon
from pymacaroons.exceptions import MacaroonException

from fatcat_cli.domain.errors import AuthError

_EDITOR_ID_PREFIX = "editor_id = "


def _caveat_text(caveat) -> str:
    raw = caveat.caveat_id
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


def parse_macaroon_editor_id(token: str) -> str:
    """Return the editor id embedded in a macaroon token.

    Raises:
        AuthError: the token does not decode, or does not carry exactly one
            ``editor_id`` caveat
    """
    try:
        macaroon = Macaroon.deserialize(token.strip())
    except (MacaroonException, ValueError, TypeError, IndexError) as exc:
        raise AuthError(f"macaroon deserialization failed: {exc}") from exc

    editor_ids: List[str] = []
    for caveat in macaroon.first_party_caveats():
        predicate = _caveat_text(caveat)
        if predicate.startswith(_EDITOR_ID_PREFIX):
            editor_ids.append(predicate[len(_EDITOR_ID_PREFIX):].strip())

    if not editor_ids:
        raise AuthError("expected an editor_id caveat in macaroon token")
    if len(editor_ids) > 1:
        raise AuthError("expected a single editor_id caveat in macaroon token")
    if not editor_ids[0]:
        raise AuthError("empty editor_id caveat in macaroon token")
    return editor_ids[0]
