"""
db/migrate.py -- Ordered SQL migration runner.

Applies every *.sql file in the migrations directory, in lexicographic
filename order, each file as a single script. Runs once per process start
(from the API lifespan) or standalone:

    python main.py migrate

There is no applied-migrations ledger: every run re-executes every file, so
each file must be safe to run repeatedly (CREATE TABLE IF NOT EXISTS,
ADD COLUMN IF NOT EXISTS, ...). A failing file stops the run and raises
MigrationError. Files before it stay applied; there is no rollback.

Concurrent runs are not guarded against. Start one process at a time.

Layer rule: no imports from api/, web/, or auth/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from core.config import Settings, get_settings
from core.exceptions import MigrationError, StartupError
from db.database import Database

logger = logging.getLogger("predix.migrate")

MIGRATION_SUFFIX = ".sql"


@dataclass(frozen=True)
class MigrationFile:
    name: str
    path: Path
    sql: str


def _list_migration_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and p.name.endswith(MIGRATION_SUFFIX)),
        key=lambda p: p.name,
    )


def discover_migrations(directory: Path) -> list[MigrationFile]:
    """Read every migration file in directory, sorted by filename."""
    return [MigrationFile(name=p.name, path=p, sql=p.read_text(encoding="utf-8")) for p in _list_migration_files(directory)]


def run_migrations(database: Database, directory: Path) -> list[str]:
    """Execute all migrations in directory against database, in order.

    Returns the names of the files executed. A missing directory is not an
    error: nothing runs and the database is not touched.

    Raises:
        MigrationError: On the first file that fails. Later files do not run.
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.info("Migrations directory %s not found -- skipping", directory)
        return []

    applied: list[str] = []
    for migration in discover_migrations(directory):
        try:
            database.execute_script(migration.sql)
        except Exception as exc:
            raise MigrationError(migration.name, str(exc)) from exc
        logger.info("Applied migration %s", migration.name)
        applied.append(migration.name)

    logger.info("Migrations complete (%d file(s))", len(applied))
    return applied


def main(settings: Settings | None = None) -> int:
    """Standalone entry point. Returns a process exit code (0 ok, 1 failed)."""
    try:
        if settings is None:
            settings = get_settings()
        database = Database.from_settings(settings)
    except (StartupError, ValueError) as exc:
        logger.error("Migration failed: %s", exc)
        return 1
    try:
        database.ping()
        run_migrations(database, settings.migrations_dir)
    except StartupError as exc:
        logger.error("Migration failed: %s", exc)
        return 1
    finally:
        database.close()
    return 0
