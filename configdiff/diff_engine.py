"""Key-level diff between two flattened config maps."""

import logging
from typing import List, Mapping

from configdiff.models import ChangedEntry, DiffResult, ValueEntry

logger = logging.getLogger(__name__)


def diff_entries(left: Mapping[str, str], right: Mapping[str, str]) -> DiffResult:
    """
    Partition the union of keys into added / removed / changed / unchanged.

    Keys are visited in ordinal (code point) order, so every list in the
    result is sorted the same way. Values are compared by exact string
    equality; no normalization happens here.
    """
    added: List[ValueEntry] = []
    removed: List[ValueEntry] = []
    changed: List[ChangedEntry] = []
    unchanged: List[ValueEntry] = []

    for key in sorted(set(left) | set(right)):
        in_left = key in left
        in_right = key in right

        if not in_left:
            added.append(ValueEntry(key, right[key]))
        elif not in_right:
            removed.append(ValueEntry(key, left[key]))
        elif left[key] != right[key]:
            changed.append(ChangedEntry(key, left[key], right[key]))
        else:
            unchanged.append(ValueEntry(key, left[key]))

    logger.debug(
        f"Diff: {len(added)} added, {len(removed)} removed, "
        f"{len(changed)} changed, {len(unchanged)} unchanged"
    )
    return DiffResult(
        added=tuple(added),
        removed=tuple(removed),
        changed=tuple(changed),
        unchanged=tuple(unchanged),
    )
