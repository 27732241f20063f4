"""Atomic diff-based replacement of a key's full association set."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterable

from authz.core.relation_store import RelationStore

logger = logging.getLogger(__name__)


@dataclass
class ReplaceResult:
    """Ids added, removed and left untouched by a replace."""
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)

    def to_dict(self) -> dict:
        return {"added": self.added, "removed": self.removed, "unchanged": self.unchanged}


class RelationReplacer:
    """Make the association set of one left key equal to a desired set.

    The current set is read, diffed against the desired set, and the
    resulting delete and insert are applied in the same unit of work. The
    unit of work holds the per-key lock for its whole duration, so a
    concurrent replace of the same key diffs against the state this one
    leaves behind and the final set is always exactly one caller's input.
    """

    def __init__(self, store: RelationStore):
        self.store = store

    def replace(self, left: str, desired: Iterable[str]) -> ReplaceResult:
        target = set(desired)
        domain = self.store.domain.name

        with self.store.unit_of_work(left, operation="replace") as session:
            current = self.store.rights_in(session, left)
            to_remove = current - target
            to_add = target - current

            if to_remove:
                self.store.delete_in(session, left, to_remove)
            if to_add:
                self.store.insert_in(session, left, to_add)

        result = ReplaceResult(
            added=sorted(to_add),
            removed=sorted(to_remove),
            unchanged=sorted(current & target),
        )
        if result.changed:
            logger.info(
                f"[{domain}] replaced set of {left}: "
                f"+{len(result.added)} -{len(result.removed)} ={len(result.unchanged)}"
            )
        else:
            logger.debug(f"[{domain}] replace of {left} was a no-op")
        return result
