"""Context assembly: the tree neighbourhood (parent, children, siblings) of a hit."""

from __future__ import annotations

from typing import Any

MAX_CHILDREN = 3
MAX_SIBLINGS = 2


def _creation_order(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(rows, key=lambda r: (r.get("chunk_index", 0), r["id"]))


def assemble_context(hit: dict[str, Any], pool: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Gather related chunks for *hit* from the over-fetched candidate *pool*.

    Returns the parent (when present in the pool), then up to 3 children,
    then up to 2 siblings sharing the hit's parent. Each group is in
    creation order; similarity plays no part.
    """
    ordered = _creation_order(pool)
    context: list[dict[str, Any]] = []
    parent_id = hit.get("parent_chunk_id")

    if parent_id is not None:
        parent = next((r for r in ordered if r["id"] == parent_id), None)
        if parent is not None:
            context.append(parent)

    children = [r for r in ordered if r.get("parent_chunk_id") == hit["id"]]
    context.extend(children[:MAX_CHILDREN])

    if parent_id is not None:
        siblings = [
            r for r in ordered if r.get("parent_chunk_id") == parent_id and r["id"] != hit["id"]
        ]
        context.extend(siblings[:MAX_SIBLINGS])

    return context
