"""
auth/store.py -- SQLAlchemy Core persistence for user and admin principals.

Pattern: Repository + Data Mapper. UserStore and AdminStore are the
repositories; _row_to_user / _row_to_admin are the mappers. Services and routes
never touch SQL directly.

Both variants share one database (one Engine) but live in separate tables and
are reached through separate store objects. There is no query that spans both.

Security:
  All queries use bound parameters. Search terms go through LIKE with a bound
  pattern, never string-built SQL. % and _ in a term are escaped, so search
  is a literal substring match.

  UNIQUE(email) is enforced by the database on both tables. insert() and
  update() let sqlalchemy.exc.IntegrityError propagate; the registration
  service turns it into ConflictError. This is what closes the race between
  two concurrent sign-ups that both pass the find_by_email() pre-check.

Layer rule: no imports from api/, accounts/, or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, or_
from sqlalchemy.engine import Engine

from auth.models import AdminPrincipal, UserPrincipal


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(50), nullable=False),
    Column("last_name", String(50), nullable=False),
    Column("email", String(255), nullable=False, unique=True),  # normalized
    Column("phone_no", String(20), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("user_type", String(20), nullable=False, server_default="user"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_admin_users = Table(
    "admin_users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("admin_id", String(7), nullable=False),
    Column("name", String(50), nullable=False),
    Column("email", String(255), nullable=False, unique=True),  # normalized
    Column("role", Text, nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("hashed_secret_code", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str) -> Engine:
    """Build the shared Engine for every store in the process."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _contains_pattern(search: str) -> str:
    """LIKE pattern matching search as a literal substring (escape char: \\)."""
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class _CredentialStore:
    """Shared query logic for one principal table.

    Subclasses set _table, _search_columns and the two mapping hooks.
    """

    _table: Table
    _search_columns: tuple[str, ...] = ()

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        _metadata.create_all(self.engine, tables=[self._table])

    def _to_record(self, row):
        raise NotImplementedError

    def _to_values(self, record) -> dict:
        raise NotImplementedError

    def find_by_email(self, email: str):
        """Exact match on the normalized email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(self._table.select().where(self._table.c.email == email)).fetchone()
        return self._to_record(row) if row is not None else None

    def find_by_id(self, record_id: int):
        """Look up by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(self._table.select().where(self._table.c.id == record_id)).fetchone()
        return self._to_record(row) if row is not None else None

    def insert(self, record):
        """Insert record and return it as stored (id and timestamps filled in).

        Raises sqlalchemy.exc.IntegrityError if the email is already taken.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                self._table.insert().values(**self._to_values(record), created_at=now, updated_at=now)
            )
            conn.commit()
            new_id = result.inserted_primary_key[0]
        return self.find_by_id(new_id)

    def list_all(self, search: str | None = None) -> list:
        """Return all records, newest first, optionally filtered by a substring.

        The substring is matched case-insensitively (SQLite LIKE) against the
        store's search columns.
        """
        query = self._table.select()
        if search:
            pattern = _contains_pattern(search)
            columns = (self._table.c[name] for name in self._search_columns)
            query = query.where(or_(*(column.like(pattern, escape="\\") for column in columns)))
        query = query.order_by(self._table.c.created_at.desc(), self._table.c.id.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [self._to_record(r) for r in rows]

    def update(self, record_id: int, **fields) -> bool:
        """Update columns on an existing record. Returns False if id not found.

        Raises sqlalchemy.exc.IntegrityError if email collides with another row.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                self._table.update().where(self._table.c.id == record_id).values(**fields, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def update_password(self, record_id: int, hashed_password: str) -> None:
        """Replace the stored password hash (used for cost-factor upgrades)."""
        self.update(record_id, hashed_password=hashed_password)

    def delete(self, record_id: int) -> bool:
        """Permanently delete a record. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(self._table.delete().where(self._table.c.id == record_id))
            conn.commit()
        return result.rowcount > 0


class UserStore(_CredentialStore):
    """Repository for UserPrincipal records.

    Usage:
        store = UserStore(create_db_engine("sqlite:///:memory:"))
        user = store.insert(UserPrincipal(...))
        store.find_by_email("a@b.com")
    """

    _table = _users
    _search_columns = ("first_name", "last_name", "email", "phone_no")

    def _to_record(self, row) -> UserPrincipal:
        return _row_to_user(row)

    def _to_values(self, record: UserPrincipal) -> dict:
        return {
            "first_name": record.first_name,
            "last_name": record.last_name,
            "email": record.email,
            "phone_no": record.phone_no,
            "hashed_password": record.hashed_password,
            "user_type": record.user_type,
        }


class AdminStore(_CredentialStore):
    """Repository for AdminPrincipal records."""

    _table = _admin_users
    _search_columns = ("admin_id", "name", "email", "role")

    def _to_record(self, row) -> AdminPrincipal:
        return _row_to_admin(row)

    def _to_values(self, record: AdminPrincipal) -> dict:
        return {
            "admin_id": record.admin_id,
            "name": record.name,
            "email": record.email,
            "role": record.role,
            "hashed_password": record.hashed_password,
            "hashed_secret_code": record.hashed_secret_code,
        }


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> UserPrincipal:
    return UserPrincipal(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        phone_no=row.phone_no,
        hashed_password=row.hashed_password,
        user_type=row.user_type,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_admin(row) -> AdminPrincipal:
    return AdminPrincipal(
        id=row.id,
        admin_id=row.admin_id,
        name=row.name,
        email=row.email,
        role=row.role,
        hashed_password=row.hashed_password,
        hashed_secret_code=row.hashed_secret_code,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
