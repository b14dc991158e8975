"""
auth/store.py -- SQLAlchemy Core persistence layer for users and apps.

Pattern: Repository + Data Mapper. Storage is the repository and satisfies
all three storage ports (UserSaver, UserProvider, AppProvider);
_row_to_user / _row_to_app are the mappers. The service never touches SQL.

Schema ownership: the tables below mirror migrations/*.up.sql and are only
used to build queries. The store never creates or alters tables -- run
`python main.py migrate` first.

Cancellation: every public method takes the caller's RequestContext and
calls ctx.check() before opening a connection.

Error mapping:
  IntegrityError on users insert  -> UserExistsError (UNIQUE(email))
  missing row                     -> UserNotFoundError / AppNotFoundError
  any other SQLAlchemyError       -> StorageError

Security:
  All queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import logging

from sqlalchemy import Boolean, Column, Integer, LargeBinary, MetaData, String, Table, create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.context import RequestContext
from auth.errors import AppNotFoundError, StorageError, UserExistsError, UserNotFoundError
from auth.models import App, User

logger = logging.getLogger("sso.auth.store")

# ---------------------------------------------------------------------------
# Schema (query-building only; see migrations/)
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String, nullable=False, unique=True),
    Column("pass_hash", LargeBinary, nullable=False),
    Column("is_admin", Boolean, nullable=False, server_default="0"),
)

_apps = Table(
    "apps",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False, unique=True),
    Column("secret", String, nullable=False, unique=True),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so logins can read while a registration writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite settings every component shares."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class Storage:
    """Repository for User and App records.

    Usage:
        store = Storage("sqlite:///./storage/sso.db")
        uid = store.save_user(ctx, "alice@example.com", pass_hash)
        user = store.user(ctx, "alice@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def save_user(self, ctx: RequestContext, email: str, pass_hash: bytes) -> int:
        """Insert a new user and return its assigned ID.

        Raises UserExistsError if the email is taken. Uniqueness is enforced
        by the database, so two concurrent registrations cannot both succeed.
        """
        ctx.check("storage.save_user")
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_users.insert().values(email=email, pass_hash=pass_hash))
                return result.inserted_primary_key[0]
        except IntegrityError as err:
            raise UserExistsError(op="storage.save_user") from err
        except SQLAlchemyError as err:
            raise StorageError(f"storage.save_user: {err}") from err

    def user(self, ctx: RequestContext, email: str) -> User:
        """Look up a user by exact email (case-sensitive)."""
        ctx.check("storage.user")
        row = self._fetch_one(select(_users).where(_users.c.email == email), "storage.user")
        if row is None:
            raise UserNotFoundError(f"storage.user: no user with email {email!r}")
        return _row_to_user(row)

    def is_admin(self, ctx: RequestContext, user_id: int) -> bool:
        """Return the stored admin flag, unchanged."""
        ctx.check("storage.is_admin")
        row = self._fetch_one(select(_users.c.is_admin).where(_users.c.id == user_id), "storage.is_admin")
        if row is None:
            raise UserNotFoundError(f"storage.is_admin: no user with id {user_id}")
        return bool(row.is_admin)

    def set_admin(self, ctx: RequestContext, user_id: int, is_admin: bool = True) -> None:
        """Grant or revoke admin. Raises UserNotFoundError for unknown ids."""
        ctx.check("storage.set_admin")
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(is_admin=is_admin))
        except SQLAlchemyError as err:
            raise StorageError(f"storage.set_admin: {err}") from err
        if result.rowcount == 0:
            raise UserNotFoundError(f"storage.set_admin: no user with id {user_id}")

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def app(self, ctx: RequestContext, app_id: int) -> App:
        """Look up a client app by ID."""
        ctx.check("storage.app")
        row = self._fetch_one(select(_apps).where(_apps.c.id == app_id), "storage.app")
        if row is None:
            raise AppNotFoundError(f"storage.app: no app with id {app_id}")
        return _row_to_app(row)

    def save_app(self, ctx: RequestContext, name: str, secret: str, app_id: int | None = None) -> int:
        """Register a client app and return its ID.

        app_id pins the ID (client apps are usually configured with a known
        one); when None the database assigns it. Raises StorageError if the
        name, secret or ID is already in use.
        """
        ctx.check("storage.save_app")
        values: dict = {"name": name, "secret": secret}
        if app_id is not None:
            values["id"] = app_id
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_apps.insert().values(**values))
                return result.inserted_primary_key[0]
        except SQLAlchemyError as err:
            raise StorageError(f"storage.save_app: {err}") from err

    # ------------------------------------------------------------------
    # Health / lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
        except SQLAlchemyError:
            logger.exception("storage ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()

    def _fetch_one(self, query, op: str):
        try:
            with self.engine.connect() as conn:
                return conn.execute(query).fetchone()
        except SQLAlchemyError as err:
            raise StorageError(f"{op}: {err}") from err


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        pass_hash=bytes(row.pass_hash),
        is_admin=bool(row.is_admin),
    )


def _row_to_app(row) -> App:
    return App(id=row.id, name=row.name, secret=row.secret)
