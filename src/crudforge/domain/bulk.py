"""Bulk operation contracts: options, per-row errors, progress and results."""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, computed_field


class ConflictStrategy(StrEnum):
    """What to do when an incoming row's key already exists."""

    SKIP = "skip"
    UPDATE = "update"
    REPLACE = "replace"
    THROW_ERROR = "throw_error"


class BulkErrorHandling(StrEnum):
    """How row-level failures affect the rest of the run."""

    THROW_ON_ERROR = "throw_on_error"
    CONTINUE_ON_ERROR = "continue_on_error"
    SKIP_ERRORS = "skip_errors"


class BulkInsertOptions(BaseModel):
    """Configuration for one bulk run.

    Attributes:
        batch_size: Rows per chunk; each chunk commits independently.
        use_transaction: Commit a chunk as one transaction.  When False
            every row is committed on its own.
        timeout_seconds: Deadline for the whole run, checked per chunk.
        conflict_strategy: Behavior on key collisions (requires a key selector).
        validate_entities: Run ``validation_predicate`` on every row.
        validation_predicate: Row filter; a False result is a row error.
        error_handling: Row error policy.
        return_detailed_results: Attach payload and exception text to errors.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    batch_size: int = Field(default=1000, gt=0)
    use_transaction: bool = True
    timeout_seconds: float = Field(default=300, gt=0)
    conflict_strategy: ConflictStrategy = ConflictStrategy.SKIP
    validate_entities: bool = True
    validation_predicate: Callable[[Any], bool] | None = None
    error_handling: BulkErrorHandling = BulkErrorHandling.CONTINUE_ON_ERROR
    return_detailed_results: bool = False


class BulkError(BaseModel):
    """One failed row (or the aggregate failure of an aborted run)."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    row_index: int
    message: str
    exception: str | None = None
    failed_entity: Any = None


class BulkProgress(BaseModel):
    """Snapshot pushed to the progress observer after every chunk."""

    model_config = {"frozen": True}

    total_records: int
    processed_records: int
    successful_records: int
    errored_records: int = 0
    elapsed: timedelta = timedelta(0)
    current_operation: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> float:
        if self.total_records <= 0:
            return 0.0
        return self.processed_records / self.total_records * 100


type ProgressCallback = Callable[[BulkProgress], None]


class BulkResult(BaseModel):
    """Summary of a bulk run.

    ``successful_inserts + updated_records + skipped_records + errored_records``
    equals ``total_records``.
    """

    model_config = {"frozen": True}

    total_records: int = 0
    successful_inserts: int = 0
    updated_records: int = 0
    skipped_records: int = 0
    errored_records: int = 0
    errors: list[BulkError] = Field(default_factory=list)
    duration: timedelta = timedelta(0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_success(self) -> bool:
        return self.errored_records == 0
