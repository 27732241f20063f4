"""Per-domain relation service shared by the HTTP and RPC facades."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from authz.core.relation_store import RelationStore
from authz.core.replacer import RelationReplacer, ReplaceResult

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Outcome of moving one left key's associations onto another."""
    source_role_ids: list[str] = field(default_factory=list)
    moved: list[str] = field(default_factory=list)
    already_present: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sourceRoleIds": self.source_role_ids,
            "moved": self.moved,
            "alreadyPresent": self.already_present,
        }


class RelationService:
    """Entry point for one relation domain.

    Thin by intent: queries and single mutations go to the store, full-set
    replacement to the replacer. Storage failures propagate unchanged.
    """

    def __init__(self, store: RelationStore, replacer: Optional[RelationReplacer] = None):
        self.store = store
        self.replacer = replacer or RelationReplacer(store)
        self.domain = store.domain

    def __repr__(self) -> str:
        return f"<RelationService {self.domain.name}>"

    # Queries

    def list_right(self, left: str) -> list[str]:
        return self.store.list_right(left)

    def list_left(self, right: str) -> list[str]:
        return self.store.list_left(right)

    def batch_list_right(self, lefts: Iterable[str]) -> dict[str, list[str]]:
        return self.store.batch_list_right(lefts)

    def batch_list_left(self, rights: Iterable[str]) -> dict[str, list[str]]:
        return self.store.batch_list_left(rights)

    def exists(self, left: str, right: str) -> bool:
        return self.store.exists(left, right)

    def count_left_by_right(self, rights: Iterable[str]) -> dict[str, int]:
        """Number of left keys associated with each requested right key."""
        grouped = self.store.batch_list_left(rights)
        return {right: len(lefts) for right, lefts in grouped.items()}

    def count_right_by_left(self, lefts: Iterable[str]) -> dict[str, int]:
        """Number of right keys associated with each requested left key."""
        grouped = self.store.batch_list_right(lefts)
        return {left: len(rights) for left, rights in grouped.items()}

    def has_left_for_right(self, right: str) -> bool:
        """True when any left key is associated with ``right``."""
        return bool(self.store.list_left(right))

    def has_right_for_left(self, left: str) -> bool:
        """True when ``left`` is associated with any right key."""
        return bool(self.store.list_right(left))

    # Mutations

    def assign(self, left: str, right: str) -> bool:
        return self.store.insert(left, right)

    def revoke(self, left: str, right: str) -> bool:
        return self.store.delete(left, right)

    def assign_multiple(self, left: str, rights: Iterable[str]) -> dict:
        """Assign several right keys and report which were already present.

        Returns:
            ``{"success", "affected", "details": {"assigned", "skipped",
            "duplicates", "newAssignments"}}``
        """
        result = self.store.bulk_insert(left, rights)
        duplicates = sorted(result.existing_rights)
        new_assignments = sorted(result.new_rights)

        if result.already_present:
            logger.info(
                f"[{self.domain.name}] {left}: skipped {result.already_present} "
                f"already-assigned {self.domain.right_plural}"
            )

        return {
            "success": True,
            "affected": result.inserted,
            "details": {
                "assigned": result.inserted,
                "skipped": result.already_present,
                "duplicates": duplicates,
                "newAssignments": new_assignments,
            },
        }

    def revoke_multiple(self, left: str, rights: Iterable[str]) -> int:
        return self.store.bulk_delete(left, rights).removed

    def replace(self, left: str, desired: Iterable[str]) -> ReplaceResult:
        return self.replacer.replace(left, desired)

    # Account merge

    def merge(self, source: str, target: str) -> MergeResult:
        """Move every association of ``source`` onto ``target``.

        Both keys are locked for the whole unit of work; the target ends up
        with the union and the source with nothing.
        """
        if source == target:
            return MergeResult(source_role_ids=self.list_right(source))

        with self.store.unit_of_work(source, target, operation="merge") as session:
            source_rights = self.store.rights_in(session, source)
            present = self.store.rights_in(session, target, source_rights) if source_rights else set()
            moved = source_rights - present
            if moved:
                self.store.insert_in(session, target, moved)
            if source_rights:
                self.store.delete_in(session, source, source_rights)

        logger.info(
            f"[{self.domain.name}] merged {source} into {target}: "
            f"moved={len(moved)} already_present={len(present)}"
        )
        return MergeResult(
            source_role_ids=sorted(source_rights),
            moved=sorted(moved),
            already_present=sorted(present),
        )

    def rollback_merge(
        self,
        source: str,
        target: str,
        source_role_ids: Iterable[str],
        target_added: Optional[Iterable[str]] = None,
    ) -> None:
        """Compensate a merge: restore the source and undo what the target gained.

        ``target_added`` should be the ``moved`` list of the merge; without it
        every restored id is revoked from the target.
        """
        restored = set(source_role_ids)
        revoked = set(restored if target_added is None else target_added)

        with self.store.unit_of_work(source, target, operation="rollback_merge") as session:
            if restored:
                self.store.insert_in(session, source, restored)
            if revoked:
                self.store.delete_in(session, target, revoked)

        logger.info(
            f"[{self.domain.name}] rolled back merge {source} -> {target}: "
            f"restored={len(restored)} revoked={len(revoked)}"
        )
