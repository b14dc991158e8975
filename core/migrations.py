"""
core/migrations.py -- Versioned SQL migration runner.

Migration files live in one directory and are named
<version>_<description>.up.sql, e.g. 1_init.up.sql. Versions are positive
integers applied in ascending order; gaps are allowed.

Applied versions are recorded in a tracking table (default
"schema_migrations") with a dirty flag:

  1. the version row is inserted with dirty=True and committed,
  2. the file's statements run in one transaction,
  3. the row is flipped to dirty=False.

SQLite runs some DDL outside the surrounding transaction, so a file that
fails halfway can leave partial schema behind. The dirty row records that;
every later run refuses to continue until an operator fixes the database
and clears the row.

Usage:
    from core.migrations import apply_migrations

    applied = apply_migrations("sqlite:///./storage/sso.db", "./migrations")
    if not applied:
        print("no migrations to apply")

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, create_engine, select
from sqlalchemy.engine import Engine

logger = logging.getLogger("sso.migrations")

_FILENAME_RE = re.compile(r"^(?P<version>\d+)_(?P<name>[\w-]+)\.up\.sql$")


class MigrationError(Exception):
    """The migration set or the tracking table is in a state we cannot apply."""


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    path: Path

    def statements(self) -> list[str]:
        """Split the file into individual statements.

        Full-line "--" comments are dropped first so a semicolon inside a
        comment does not produce a bogus statement.
        """
        text = self.path.read_text(encoding="utf-8")
        lines = [line for line in text.splitlines() if not line.lstrip().startswith("--")]
        return [chunk.strip() for chunk in "\n".join(lines).split(";") if chunk.strip()]


def discover(migrations_path: str | Path) -> list[Migration]:
    """Return every *.up.sql migration under migrations_path, sorted by version.

    Raises MigrationError if the directory does not exist or two files share
    a version number. Files that do not match the naming scheme are ignored.
    """
    root = Path(migrations_path)
    if not root.is_dir():
        raise MigrationError(f"migrations path {str(root)!r} is not a directory")

    found: dict[int, Migration] = {}
    for path in root.iterdir():
        match = _FILENAME_RE.match(path.name)
        if not match or not path.is_file():
            continue
        version = int(match.group("version"))
        if version in found:
            raise MigrationError(f"duplicate migration version {version}: {found[version].path.name}, {path.name}")
        found[version] = Migration(version=version, name=match.group("name"), path=path)
    return [found[v] for v in sorted(found)]


def _tracking_table(name: str) -> Table:
    return Table(
        name,
        MetaData(),
        Column("version", Integer, primary_key=True, autoincrement=False),
        Column("dirty", Boolean, nullable=False),
        Column("applied_at", String(32), nullable=False),
    )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def apply_migrations(
    db_url: str,
    migrations_path: str | Path,
    table: str = "schema_migrations",
) -> list[int]:
    """Apply every pending migration and return the versions applied.

    An empty list means the database was already up to date.

    Raises:
        MigrationError: missing directory, duplicate versions, or a dirty
            version left by an earlier failed run.
        sqlalchemy.exc.SQLAlchemyError: a statement failed. The version stays
            marked dirty.
    """
    migrations = discover(migrations_path)
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    try:
        return _apply(engine, migrations, _tracking_table(table))
    finally:
        engine.dispose()


def _apply(engine: Engine, migrations: list[Migration], tracking: Table) -> list[int]:
    tracking.metadata.create_all(engine)

    with engine.connect() as conn:
        rows = conn.execute(select(tracking.c.version, tracking.c.dirty)).fetchall()
    dirty = [row.version for row in rows if row.dirty]
    if dirty:
        raise MigrationError(f"database is dirty at version {dirty[0]}; fix it and clear the row in {tracking.name}")
    done = {row.version for row in rows}

    applied: list[int] = []
    for migration in migrations:
        if migration.version in done:
            continue
        logger.info("applying migration %d_%s", migration.version, migration.name)
        with engine.begin() as conn:
            conn.execute(tracking.insert().values(version=migration.version, dirty=True, applied_at=_now_iso()))
        with engine.begin() as conn:
            for statement in migration.statements():
                conn.exec_driver_sql(statement)
            conn.execute(tracking.update().where(tracking.c.version == migration.version).values(dirty=False))
        applied.append(migration.version)

    if applied:
        logger.info("applied %d migration(s): %s", len(applied), applied)
    else:
        logger.info("no migrations to apply")
    return applied
