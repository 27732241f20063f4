"""Generic composite-key association store.

One ``RelationStore`` instance serves one relation domain (user↔role,
role↔permission, service↔role). Reads go straight to the database; every
mutation runs inside ``unit_of_work`` which

1. serializes callers touching the same left key: an in-process striped lock
   for threads, plus a lock every worker process sees (``pg_advisory_xact_lock``
   on PostgreSQL, the key's ``relation_lock`` row elsewhere),
2. commits on success and rolls back on any failure,
3. converts connectivity failures and timeouts into ``StorageUnavailable``.

Duplicate inserts are resolved by the composite primary key with
upsert-or-ignore statements, so an insert racing another insert of the same
pair never reports a conflict.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from sqlalchemy import delete, insert, select, text, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session
from sqlalchemy.sql.schema import Table

from authz.core.domains import RelationDomain
from authz.core.exceptions import StorageUnavailable
from authz.core.locks import StripedLock, advisory_key
from authz.core.models import RelationLock

logger = logging.getLogger(__name__)

# Keeps multi-row statements under SQLite's bound-parameter limit
CHUNK_SIZE = 400

_STORAGE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)

_UPSERT_DIALECTS = {"postgresql", "sqlite", "mysql", "mariadb"}


@dataclass(frozen=True)
class BulkInsertResult:
    """Outcome of ``bulk_insert``."""
    inserted: int = 0
    already_present: int = 0
    new_rights: frozenset = field(default_factory=frozenset)
    existing_rights: frozenset = field(default_factory=frozenset)


@dataclass(frozen=True)
class BulkDeleteResult:
    """Outcome of ``bulk_delete``."""
    removed: int = 0


def _chunks(values: list[str], size: int = CHUNK_SIZE) -> Iterator[list[str]]:
    for start in range(0, len(values), size):
        yield values[start:start + size]


def _is_storage_failure(exc: Exception) -> bool:
    if isinstance(exc, _STORAGE_ERRORS):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


class RelationStore:
    """Durable storage of ``(left, right)`` pairs for one relation domain."""

    def __init__(
        self,
        domain: RelationDomain,
        session_factory: Callable[[], Session],
        locks: StripedLock | None = None,
    ):
        self.domain = domain
        self.table = domain.model.__table__
        self.left_col = self.table.c[domain.left_column]
        self.right_col = self.table.c[domain.right_column]
        self._session_factory = session_factory
        self._locks = locks or StripedLock()

    def __repr__(self) -> str:
        return f"<RelationStore {self.domain.name}>"

    # ─────────────────────────────────────────────────────────────────────
    # Session handling
    # ─────────────────────────────────────────────────────────────────────

    def _rollback_quietly(self, session: Session) -> None:
        try:
            session.rollback()
        except SQLAlchemyError as exc:
            logger.warning(f"[{self.domain.name}] rollback failed after storage error: {exc}")

    def _storage_unavailable(self, exc: Exception, operation: str) -> StorageUnavailable:
        logger.error(f"[{self.domain.name}] storage unavailable during {operation}: {exc}")
        return StorageUnavailable(f"Relation store unavailable during {operation}")

    @contextmanager
    def reading(self, operation: str) -> Iterator[Session]:
        """Session for a read-only query with storage errors translated."""
        session = self._session_factory()
        try:
            yield session
        except DBAPIError as exc:
            if not _is_storage_failure(exc):
                raise
            self._rollback_quietly(session)
            raise self._storage_unavailable(exc, operation) from exc
        except PoolTimeoutError as exc:
            raise self._storage_unavailable(exc, operation) from exc

    @contextmanager
    def unit_of_work(self, *lefts: str, operation: str = "mutation") -> Iterator[Session]:
        """Atomic, per-left-key serialized unit of work.

        Everything executed on the yielded session is committed together when
        the block exits normally and rolled back otherwise.
        """
        keys = [f"{self.table.name}:{left}" for left in lefts]
        with self._locks.hold(*keys):
            session = self._session_factory()
            try:
                # Earlier reads in this session (the access guard's) must not
                # pin the snapshot the mutation is computed from
                if session.in_transaction():
                    session.commit()
                self._acquire_key_locks(session, keys)
                yield session
                session.commit()
            except (DBAPIError, PoolTimeoutError) as exc:
                self._rollback_quietly(session)
                if _is_storage_failure(exc):
                    raise self._storage_unavailable(exc, operation) from exc
                raise
            except BaseException:
                self._rollback_quietly(session)
                raise

    def _dialect(self, session: Session) -> str:
        return session.get_bind().dialect.name

    def _acquire_key_locks(self, session: Session, keys: list[str]) -> None:
        """Take the cross-process lock of every key, in ascending id order.

        Both kinds of lock are released by the commit or rollback that ends
        the unit of work.
        """
        lock_ids = sorted({advisory_key(key) for key in keys})
        if self._dialect(session) == "postgresql":
            for lock_id in lock_ids:
                session.execute(text("SELECT pg_advisory_xact_lock(:lock_id)"), {"lock_id": lock_id})
            return

        # Updating the row takes its write lock (the database write lock on SQLite)
        lock_table = RelationLock.__table__
        for lock_id in lock_ids:
            bump = (
                update(lock_table)
                .where(lock_table.c.lock_id == lock_id)
                .values(generation=lock_table.c.generation + 1)
            )
            if session.execute(bump).rowcount:
                continue
            if not self._insert_ignore(session, lock_table, [{"lock_id": lock_id, "generation": 1}], ["lock_id"]):
                # Created concurrently by another writer: wait for its lock
                session.execute(bump)

    # ─────────────────────────────────────────────────────────────────────
    # Session-level primitives (used inside a unit of work)
    # ─────────────────────────────────────────────────────────────────────

    def rights_in(self, session: Session, left: str, rights: Iterable[str] | None = None) -> set[str]:
        """Right ids stored for ``left``, optionally restricted to ``rights``."""
        if rights is None:
            stmt = select(self.right_col).where(self.left_col == left)
            return set(session.execute(stmt).scalars())

        found: set[str] = set()
        for chunk in _chunks(sorted(set(rights))):
            stmt = select(self.right_col).where(self.left_col == left, self.right_col.in_(chunk))
            found.update(session.execute(stmt).scalars())
        return found

    def insert_in(self, session: Session, left: str, rights: Iterable[str]) -> int:
        """Insert-or-ignore pairs, returning how many rows were created."""
        rows = [
            {self.domain.left_column: left, self.domain.right_column: right}
            for right in sorted(set(rights))
        ]
        if not rows:
            return 0
        return self._insert_ignore(
            session, self.table, rows, [self.domain.left_column, self.domain.right_column]
        )

    def _insert_ignore(self, session: Session, table: Table, rows: list[dict], key_columns: list[str]) -> int:
        """Dialect-specific insert skipping rows whose key already exists."""
        dialect = self._dialect(session)
        if dialect not in _UPSERT_DIALECTS:
            return self._insert_with_savepoints(session, table, rows)

        inserted = 0
        for start in range(0, len(rows), CHUNK_SIZE):
            chunk = rows[start:start + CHUNK_SIZE]
            if dialect == "postgresql":
                stmt = pg_insert(table).values(chunk).on_conflict_do_nothing(index_elements=key_columns)
            elif dialect == "sqlite":
                stmt = sqlite_insert(table).values(chunk).on_conflict_do_nothing(index_elements=key_columns)
            else:
                stmt = insert(table).values(chunk).prefix_with("IGNORE")
            result = session.execute(stmt)
            inserted += result.rowcount if result.rowcount >= 0 else len(chunk)
        return inserted

    def _insert_with_savepoints(self, session: Session, table: Table, rows: list[dict]) -> int:
        inserted = 0
        for row in rows:
            try:
                with session.begin_nested():
                    session.execute(insert(table).values(**row))
                inserted += 1
            except IntegrityError:
                logger.debug(f"[{self.domain.name}] pair already present: {row}")
        return inserted

    def delete_in(self, session: Session, left: str, rights: Iterable[str]) -> int:
        """Delete pairs, returning how many rows were removed."""
        removed = 0
        for chunk in _chunks(sorted(set(rights))):
            stmt = delete(self.table).where(self.left_col == left, self.right_col.in_(chunk))
            removed += session.execute(stmt).rowcount
        return removed

    # ─────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────

    def exists(self, left: str, right: str) -> bool:
        stmt = select(self.left_col).where(self.left_col == left, self.right_col == right).limit(1)
        with self.reading("exists") as session:
            return session.execute(stmt).first() is not None

    def list_right(self, left: str) -> list[str]:
        stmt = select(self.right_col).where(self.left_col == left).order_by(self.right_col)
        with self.reading("list_right") as session:
            return list(session.execute(stmt).scalars())

    def list_left(self, right: str) -> list[str]:
        stmt = select(self.left_col).where(self.right_col == right).order_by(self.left_col)
        with self.reading("list_left") as session:
            return list(session.execute(stmt).scalars())

    def batch_list_right(self, lefts: Iterable[str]) -> dict[str, list[str]]:
        """Group right ids by left id; every requested left maps to a list."""
        return self._batch_list(lefts, by=self.left_col, value=self.right_col, operation="batch_list_right")

    def batch_list_left(self, rights: Iterable[str]) -> dict[str, list[str]]:
        """Group left ids by right id; every requested right maps to a list."""
        return self._batch_list(rights, by=self.right_col, value=self.left_col, operation="batch_list_left")

    def _batch_list(self, keys: Iterable[str], by, value, operation: str) -> dict[str, list[str]]:
        wanted = sorted(set(keys))
        grouped: dict[str, list[str]] = {key: [] for key in wanted}
        if not wanted:
            return grouped

        with self.reading(operation) as session:
            for chunk in _chunks(wanted):
                stmt = select(by, value).where(by.in_(chunk)).order_by(by, value)
                for key, item in session.execute(stmt):
                    grouped[key].append(item)
        return grouped

    # ─────────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────────

    def insert(self, left: str, right: str) -> bool:
        """Create the pair if absent. Returns True when a row was created."""
        with self.unit_of_work(left, operation="insert") as session:
            created = self.insert_in(session, left, [right]) > 0
        if created:
            logger.info(f"[{self.domain.name}] assigned {right} to {left}")
        else:
            logger.debug(f"[{self.domain.name}] {right} already assigned to {left}")
        return created

    def delete(self, left: str, right: str) -> bool:
        """Remove the pair if present. Returns True when a row was removed."""
        with self.unit_of_work(left, operation="delete") as session:
            removed = self.delete_in(session, left, [right]) > 0
        if removed:
            logger.info(f"[{self.domain.name}] revoked {right} from {left}")
        return removed

    def bulk_insert(self, left: str, rights: Iterable[str]) -> BulkInsertResult:
        wanted = set(rights)
        if not wanted:
            return BulkInsertResult()

        with self.unit_of_work(left, operation="bulk_insert") as session:
            present = self.rights_in(session, left, wanted)
            missing = wanted - present
            inserted = self.insert_in(session, left, missing)

        logger.info(
            f"[{self.domain.name}] bulk insert for {left}: "
            f"inserted={inserted} already_present={len(wanted) - inserted}"
        )
        return BulkInsertResult(
            inserted=inserted,
            already_present=len(wanted) - inserted,
            new_rights=frozenset(missing),
            existing_rights=frozenset(present),
        )

    def bulk_delete(self, left: str, rights: Iterable[str]) -> BulkDeleteResult:
        doomed = set(rights)
        if not doomed:
            return BulkDeleteResult()

        with self.unit_of_work(left, operation="bulk_delete") as session:
            removed = self.delete_in(session, left, doomed)

        logger.info(f"[{self.domain.name}] bulk delete for {left}: removed={removed}")
        return BulkDeleteResult(removed=removed)
