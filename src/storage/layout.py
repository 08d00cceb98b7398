# src/storage/layout.py - v1
"""On-disk layout for the batch and snapshot directories.

One JSON file per entry: ``{batch_dir}/analysis_<id>.json`` and
``{snapshot_dir}/merged_scores_<id>.json``. Ids are timestamp-derived, so
lexicographic file order is creation order.
"""

from __future__ import annotations

from pathlib import Path

BATCH_PREFIX = "analysis_"
SNAPSHOT_PREFIX = "merged_scores_"
SUFFIX = ".json"


def entry_path(root: Path, prefix: str, entry_id: str) -> Path:
    """Return the file path for an entry id."""
    return root / f"{prefix}{entry_id}{SUFFIX}"


def entry_id(path: Path, prefix: str) -> str | None:
    """Recover the entry id from a file name, or None if it is not an entry."""
    name = path.name
    if not (name.startswith(prefix) and name.endswith(SUFFIX)):
        return None
    return name[len(prefix):-len(SUFFIX)] or None


def list_entry_ids(root: Path, prefix: str) -> list[str]:
    """List entry ids under ``root`` in ascending id order.

    A missing directory is an empty store.
    """
    if not root.is_dir():
        return []
    ids = (entry_id(p, prefix) for p in root.iterdir() if p.is_file())
    return sorted(i for i in ids if i is not None)
