"""Client node identifiers.

Clients address not-yet-persisted nodes with client-minted tokens carrying a
reserved prefix (``temp-`` by default). On ingress every raw id is parsed
into either :class:`Ephemeral` or :class:`Persisted`, so nothing downstream
inspects string prefixes again and an ephemeral token can never be bound as
a storage key.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

DEFAULT_EPHEMERAL_PREFIX = "temp-"


@dataclass(frozen=True)
class Ephemeral:
    """Client-minted placeholder; empty token when the client sent no id."""

    client_token: str

    def __str__(self) -> str:
        return self.client_token


@dataclass(frozen=True)
class Persisted:
    """Identifier previously assigned by storage."""

    storage_id: str

    def __str__(self) -> str:
        return self.storage_id


NodeId = Union[Ephemeral, Persisted]


def parse_node_id(raw: object, *, ephemeral_prefix: str = DEFAULT_EPHEMERAL_PREFIX) -> NodeId:
    if raw is None:
        return Ephemeral("")
    token = str(raw).strip()
    if not token or token.startswith(ephemeral_prefix):
        return Ephemeral(token)
    return Persisted(token)


__all__ = [
    "DEFAULT_EPHEMERAL_PREFIX",
    "Ephemeral",
    "Persisted",
    "NodeId",
    "parse_node_id",
]
