"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, crudforge.toml only contains
overrides.  An empty file (or none at all) yields a working SQLite setup.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from crudforge.domain.bulk import BulkErrorHandling, BulkInsertOptions, ConflictStrategy

# --- crudforge.toml sections ---


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    url: str = "sqlite:///crudforge.db"
    echo: bool = False
    sqlite_wal: bool = True


class RepositoryConfig(BaseModel):
    """[repository] section."""

    model_config = {"frozen": True}

    default_page_size: int = Field(default=10, gt=0)
    max_page_size: int = Field(default=1000, gt=0)
    enable_soft_delete: bool = True
    enable_audit_logging: bool = False
    default_batch_size: int = Field(default=100, gt=0)


class BulkConfig(BaseModel):
    """[bulk] section; defaults for :class:`BulkInsertOptions`."""

    model_config = {"frozen": True}

    batch_size: int = Field(default=1000, gt=0)
    use_transaction: bool = True
    timeout_seconds: float = Field(default=300, gt=0)
    conflict_strategy: ConflictStrategy = ConflictStrategy.SKIP
    validate_entities: bool = True
    error_handling: BulkErrorHandling = BulkErrorHandling.CONTINUE_ON_ERROR
    return_detailed_results: bool = False

    def to_options(self) -> BulkInsertOptions:
        return BulkInsertOptions(**self.model_dump())


class ExportConfig(BaseModel):
    """[export] section; where CLI exports land without an explicit path."""

    model_config = {"frozen": True}

    directory: Path = Path(".")


class CrudforgeConfig(BaseModel):
    """Root config model: every section of crudforge.toml."""

    model_config = {"frozen": True}

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    bulk: BulkConfig = Field(default_factory=BulkConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
