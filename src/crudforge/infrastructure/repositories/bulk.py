"""Bulk insert/upsert/import engine.

Input is split into ``options.batch_size`` chunks, each committed on its
own: a fault in chunk k leaves chunks 1..k applied.  After every commit the
progress observer receives a :class:`BulkProgress`, in chunk order, once per
chunk.

Row-level failures (validation, key conflicts under THROW_ERROR, store errors
isolated to one row) follow ``options.error_handling``.  Anything else aborts
the run: the result then carries one aggregate error and counts every row
that was not durably applied as errored.

Pipeline per chunk:
    1. LOOKUP    existing rows by key (when a key selector is given)
    2. RESOLVE   insert / merge / skip / fail each row
    3. COMMIT    as one transaction, or row by row
    4. ISOLATE   on a store error, replay the chunk row by row in savepoints
    5. REPORT    absorb counts, push progress
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum, auto
from typing import Any

import structlog
from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crudforge.cancellation import CancellationToken, check_cancelled
from crudforge.config.models import BulkConfig
from crudforge.domain.bulk import (
    BulkError,
    BulkErrorHandling,
    BulkInsertOptions,
    BulkProgress,
    BulkResult,
    ConflictStrategy,
    ProgressCallback,
)
from crudforge.exceptions import BulkTimeoutError, DuplicateKeyError, OperationCancelledError
from crudforge.infrastructure.repositories._columns import copy_columns, value_columns
from crudforge.infrastructure.repositories.contracts import KeySelector, key_filter, key_of
from crudforge.infrastructure.repositories.write import chunked
from crudforge.telemetry import trace_span

log = structlog.get_logger(__name__)

# Keeps IN (...) lists under SQLite's bound-parameter limit.
_LOOKUP_SLICE = 500

type MergeFunction[E] = Callable[[E, E], E | None]


class _Mode(Enum):
    BATCH = auto()  # one commit per chunk
    SAVEPOINT = auto()  # one savepoint per row, one commit per chunk
    AUTOCOMMIT = auto()  # one commit per row


class _Outcome(Enum):
    INSERTED = auto()
    UPDATED = auto()
    SKIPPED = auto()


class _RowFailure(Exception):
    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class _RunAbort(Exception):
    def __init__(self, error: BulkError) -> None:
        super().__init__(error.message)
        self.error = error


@dataclass
class _Tally:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    errors: list[BulkError] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.inserted + self.updated + self.skipped + self.errored

    def count(self, outcome: _Outcome) -> None:
        if outcome is _Outcome.INSERTED:
            self.inserted += 1
        elif outcome is _Outcome.UPDATED:
            self.updated += 1
        else:
            self.skipped += 1

    def absorb(self, other: _Tally) -> None:
        self.inserted += other.inserted
        self.updated += other.updated
        self.skipped += other.skipped
        self.errored += other.errored
        self.errors.extend(other.errors)


@dataclass
class _Run[E]:
    op: str
    total: int
    options: BulkInsertOptions
    key_selector: KeySelector | None
    merge: MergeFunction[E] | None
    upsert: bool
    progress: ProgressCallback | None
    started: float = field(default_factory=time.perf_counter)
    offset: int = 0
    tally: _Tally = field(default_factory=_Tally)

    @property
    def elapsed(self) -> timedelta:
        return timedelta(seconds=time.perf_counter() - self.started)

    def report(self) -> None:
        if self.progress is None:
            return
        self.progress(
            BulkProgress(
                total_records=self.total,
                processed_records=self.tally.processed,
                successful_records=self.tally.inserted + self.tally.updated,
                errored_records=self.tally.errored,
                elapsed=self.elapsed,
                current_operation=self.op,
            )
        )

    def result(self) -> BulkResult:
        return BulkResult(
            total_records=self.total,
            successful_inserts=self.tally.inserted,
            updated_records=self.tally.updated,
            skipped_records=self.tally.skipped,
            errored_records=self.tally.errored,
            errors=self.tally.errors,
            duration=self.elapsed,
        )

    def aborted(self, error: BulkError) -> BulkResult:
        unapplied = self.total - self.tally.processed
        return BulkResult(
            total_records=self.total,
            successful_inserts=self.tally.inserted,
            updated_records=self.tally.updated,
            skipped_records=self.tally.skipped,
            errored_records=self.tally.errored + unapplied,
            errors=[*self.tally.errors, error],
            duration=self.elapsed,
        )


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def _has_key(key: Any) -> bool:
    if isinstance(key, tuple):
        return all(part is not None for part in key)
    return key is not None


class BulkRepository[E]:
    """High-throughput insert/upsert over one entity type."""

    def __init__(
        self,
        session: Session,
        entity: type[E],
        *,
        config: BulkConfig | None = None,
    ) -> None:
        self._session = session
        self._entity = entity
        self._defaults = (config or BulkConfig()).to_options()

    @property
    def default_options(self) -> BulkInsertOptions:
        return self._defaults

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def bulk_insert(
        self,
        entities: Iterable[E],
        key_selector: KeySelector | None = None,
        options: BulkInsertOptions | None = None,
        progress: ProgressCallback | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> BulkResult:
        """Insert *entities* chunk by chunk.

        With a *key_selector*, rows whose key already exists are resolved by
        ``options.conflict_strategy``.
        """
        items = list(entities)
        run = _Run(
            op="insert",
            total=len(items),
            options=options or self._defaults,
            key_selector=key_selector,
            merge=None,
            upsert=False,
            progress=progress,
        )
        return self._execute(run, items, cancel)

    def bulk_upsert(
        self,
        entities: Iterable[E],
        key_selector: KeySelector | None,
        update: MergeFunction[E] | None = None,
        options: BulkInsertOptions | None = None,
        progress: ProgressCallback | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> BulkResult:
        """Insert new keys and merge existing ones.

        ``update(existing, incoming)`` returns the merged entity (or mutates
        *existing* and returns None).  Without it, incoming columns are
        copied according to the conflict strategy.  Without a key selector
        this is :meth:`bulk_insert`.
        """
        if key_selector is None:
            return self.bulk_insert(entities, None, options, progress, cancel=cancel)
        items = list(entities)
        run = _Run(
            op="upsert",
            total=len(items),
            options=options or self._defaults,
            key_selector=key_selector,
            merge=update,
            upsert=True,
            progress=progress,
        )
        return self._execute(run, items, cancel)

    def bulk_import_from_source[S](
        self,
        source: Iterable[S],
        mapper: Callable[[S], E],
        key_selector: KeySelector | None = None,
        options: BulkInsertOptions | None = None,
        progress: ProgressCallback | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> BulkResult:
        """Map every source item to an entity, then :meth:`bulk_insert` them.

        A mapper failure aborts before anything is written.
        """
        started = time.perf_counter()
        items = list(source)
        entities: list[E] = []
        for index, item in enumerate(items):
            try:
                entities.append(mapper(item))
            except Exception as exc:
                log.exception("bulk.aborted", op="import", stage="map", row_index=index)
                return BulkResult(
                    total_records=len(items),
                    errored_records=len(items),
                    errors=[
                        BulkError(
                            row_index=index,
                            message=f"Mapping source row {index} failed: {exc}",
                            exception=_describe(exc),
                        )
                    ],
                    duration=timedelta(seconds=time.perf_counter() - started),
                )
        return self.bulk_insert(entities, key_selector, options, progress, cancel=cancel)

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    def _execute(
        self, run: _Run[E], items: list[E], cancel: CancellationToken | None
    ) -> BulkResult:
        options = run.options
        deadline = run.started + options.timeout_seconds
        mode = _Mode.BATCH if options.use_transaction else _Mode.AUTOCOMMIT
        try:
            for chunk in chunked(items, options.batch_size):
                check_cancelled(cancel)
                if time.perf_counter() > deadline:
                    raise BulkTimeoutError(options.timeout_seconds)
                with trace_span(f"bulk.{run.op}.chunk") as span:
                    local = self._write_chunk(run, chunk, mode)
                    if span is not None:
                        span.annotate("rows", len(chunk))
                        span.annotate("errored", local.errored)
                run.tally.absorb(local)
                log.debug(
                    "bulk.chunk_committed",
                    op=run.op,
                    entity=self._entity.__name__,
                    offset=run.offset,
                    rows=len(chunk),
                )
                run.offset += len(chunk)
                run.report()
        except OperationCancelledError:
            self._session.rollback()
            raise
        except _RunAbort as abort:
            self._session.rollback()
            log.warning("bulk.aborted", op=run.op, row_index=abort.error.row_index)
            return run.aborted(abort.error)
        except Exception as exc:
            self._session.rollback()
            log.exception("bulk.aborted", op=run.op, row_index=run.offset)
            return run.aborted(
                BulkError(
                    row_index=run.offset,
                    message=f"Bulk {run.op} aborted: {exc}",
                    exception=_describe(exc),
                )
            )
        return run.result()

    def _write_chunk(self, run: _Run[E], chunk: list[E], mode: _Mode) -> _Tally:
        # Edits on tracked rows are lost when a rollback expires them; the
        # snapshot lets every attempt replay them.
        staged = _snapshot(chunk)
        if mode is not _Mode.BATCH:
            return self._apply_rows(run, chunk, mode, staged)
        try:
            local = self._apply_rows(run, chunk, mode, staged)
            self._session.commit()
            return local
        except SQLAlchemyError as exc:
            self._session.rollback()
            if run.options.error_handling is BulkErrorHandling.THROW_ON_ERROR:
                raise
            log.warning(
                "bulk.chunk_failed",
                op=run.op,
                offset=run.offset,
                error=_describe(exc),
                retry="per-row",
            )
        local = self._apply_rows(run, chunk, _Mode.SAVEPOINT, staged)
        self._session.commit()
        return local

    def _apply_rows(
        self,
        run: _Run[E],
        chunk: list[E],
        mode: _Mode,
        staged: list[dict[str, Any] | None],
    ) -> _Tally:
        local = _Tally()
        for entity, values in zip(chunk, staged, strict=True):
            _restore(entity, values)
        with self._session.no_autoflush:
            existing = self._load_existing(run.key_selector, chunk)
        if mode is not _Mode.BATCH:
            # Each row's edits are flushed only by that row's own step.
            for entity, values in zip(chunk, staged, strict=True):
                self._park(entity, values)
        pending: dict[Any, E] = {}
        rows = enumerate(zip(chunk, staged, strict=True), start=run.offset)
        try:
            for index, (entity, values) in rows:
                try:
                    if mode is _Mode.BATCH:
                        local.count(self._resolve(run, entity, existing, pending))
                    elif mode is _Mode.SAVEPOINT:
                        with self._session.begin_nested():
                            _restore(entity, values)
                            outcome = self._resolve(run, entity, existing, pending)
                            self._session.flush()
                        local.count(outcome)
                    else:
                        _restore(entity, values)
                        outcome = self._resolve(run, entity, existing, pending)
                        self._session.commit()
                        local.count(outcome)
                except _RowFailure as failure:
                    self._row_error(run, local, index, entity, failure.message, failure.cause)
                    self._park(entity, values)
                except SQLAlchemyError as exc:
                    if mode is _Mode.BATCH:
                        raise
                    if mode is _Mode.AUTOCOMMIT:
                        self._session.rollback()
                    _forget(pending, entity)
                    self._row_error(run, local, index, entity, str(exc.orig or exc), exc)
        except _RunAbort:
            if mode is _Mode.AUTOCOMMIT:
                run.tally.absorb(local)
            raise
        return local

    # ------------------------------------------------------------------
    # Row resolution
    # ------------------------------------------------------------------

    def _resolve(
        self,
        run: _Run[E],
        entity: E,
        existing: dict[Any, E],
        pending: dict[Any, E],
    ) -> _Outcome:
        options = run.options
        predicate = options.validation_predicate
        if options.validate_entities and predicate is not None and not predicate(entity):
            raise _RowFailure("Entity failed validation.")

        key = key_of(entity, run.key_selector) if run.key_selector is not None else None
        target = None
        if _has_key(key):
            target = existing.get(key) or pending.get(key)
        if target is None:
            self._session.add(entity)
            if _has_key(key):
                pending[key] = entity
            return _Outcome.INSERTED

        strategy = options.conflict_strategy
        if strategy is ConflictStrategy.THROW_ERROR:
            error = DuplicateKeyError(key)
            raise _RowFailure(str(error), error)
        if run.upsert and run.merge is not None:
            merged = run.merge(target, entity)
            if merged is not None and merged is not target:
                copy_columns(merged, target, skip_none=False)
            return _Outcome.UPDATED
        if strategy is ConflictStrategy.SKIP:
            return _Outcome.SKIPPED
        copy_columns(entity, target, skip_none=strategy is ConflictStrategy.UPDATE)
        return _Outcome.UPDATED

    def _row_error(
        self,
        run: _Run[E],
        local: _Tally,
        index: int,
        entity: E,
        message: str,
        cause: BaseException | None,
    ) -> None:
        detailed = run.options.return_detailed_results
        error = BulkError(
            row_index=index,
            message=message,
            exception=_describe(cause) if detailed and cause is not None else None,
            failed_entity=_payload(entity) if detailed else None,
        )
        handling = run.options.error_handling
        if handling is BulkErrorHandling.THROW_ON_ERROR:
            raise _RunAbort(error)
        if handling is BulkErrorHandling.SKIP_ERRORS:
            local.skipped += 1
            return
        local.errored += 1
        local.errors.append(error)

    def _park(self, entity: E, values: dict[str, Any] | None) -> None:
        """Drop *entity*'s unflushed edits; ``_restore`` puts them back."""
        if values:
            self._session.expire(entity, list(values))

    def _load_existing(self, selector: KeySelector | None, chunk: list[E]) -> dict[Any, E]:
        if selector is None:
            return {}
        candidates = (key_of(entity, selector) for entity in chunk)
        keys = list(dict.fromkeys(k for k in candidates if _has_key(k)))
        found: dict[Any, E] = {}
        for start in range(0, len(keys), _LOOKUP_SLICE):
            batch = keys[start : start + _LOOKUP_SLICE]
            stmt = select(self._entity).where(key_filter(selector, batch))
            for row in self._session.scalars(stmt):
                found[key_of(row, selector)] = row
        return found


def _forget(pending: dict[Any, Any], entity: Any) -> None:
    for key, value in list(pending.items()):
        if value is entity:
            del pending[key]


def _payload(entity: Any) -> dict[str, Any]:
    """Plain column values of *entity*, safe to hold after rollback."""
    state = inspect(entity)
    keys = [col.key for col in state.mapper.primary_key] + value_columns(state.mapper)
    return {key: state.dict.get(key) for key in keys}


def _snapshot(chunk: Sequence[Any]) -> list[dict[str, Any] | None]:
    """Loaded column values of every tracked row; None for new rows."""
    staged: list[dict[str, Any] | None] = []
    for entity in chunk:
        state = inspect(entity)
        if not state.persistent:
            staged.append(None)
            continue
        keys = value_columns(state.mapper)
        staged.append({key: state.dict[key] for key in keys if key in state.dict})
    return staged


def _restore(entity: Any, values: dict[str, Any] | None) -> None:
    for key, value in (values or {}).items():
        setattr(entity, key, value)
