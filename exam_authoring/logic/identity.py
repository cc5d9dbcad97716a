"""Create-or-update classification for incoming nodes."""

from __future__ import annotations

from typing import AbstractSet

from exam_authoring.models.identifiers import Ephemeral, NodeId, Persisted

CREATE = "create"
UPDATE = "update"


def classify(node_id: NodeId, known_ids: AbstractSet[str]) -> str:
    """Return CREATE or UPDATE for a node within one parent scope.

    A node is a create when its id is ephemeral (including empty) or when the
    persisted id is not among `known_ids`, the ids stored under the same
    parent at the same level. Only a persisted id found there is an update.
    """
    if isinstance(node_id, Ephemeral):
        return CREATE
    if isinstance(node_id, Persisted) and node_id.storage_id in known_ids:
        return UPDATE
    return CREATE


__all__ = ["CREATE", "UPDATE", "classify"]
