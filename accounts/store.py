"""
accounts/store.py -- SQLAlchemy Core persistence for directory accounts.

Pattern: Repository + Data Mapper, same as auth/store.py. The store receives
the process-wide Engine so accounts share the database with principals.

Unlike the principal tables there is no UNIQUE(email) here: a contact record is
not a login identity, and the same address may appear more than once.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, or_
from sqlalchemy.engine import Engine

from accounts.models import Account

logger = logging.getLogger("bikehub.accounts")

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", Text, nullable=False),
    Column("email", String(255), nullable=False),
    Column("phone_no", String(20), nullable=False),
    Column("user_type", String(50), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_SEARCH_COLUMNS = ("first_name", "last_name", "email", "phone_no", "user_type")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _contains_pattern(search: str) -> str:
    """LIKE pattern matching search as a literal substring (escape char: \\)."""
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class AccountStore:
    """Repository for Account records.

    Usage:
        store = AccountStore(create_db_engine(url))
        account_id = store.create(Account(...))
        store.get(account_id)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        _metadata.create_all(self.engine)

    def create(self, account: Account) -> int:
        """Insert a new account and return its assigned ID."""
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.insert().values(
                    first_name=account.first_name,
                    last_name=account.last_name,
                    email=account.email,
                    phone_no=account.phone_no,
                    user_type=account.user_type,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            account_id = result.inserted_primary_key[0]
        logger.info("Created account id=%s", account_id)
        return account_id

    def get(self, account_id: int) -> Account | None:
        """Look up an account by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def list_accounts(self, search: str | None = None) -> list[Account]:
        """Return accounts newest first, optionally filtered by substring match."""
        query = _accounts.select()
        if search:
            pattern = _contains_pattern(search)
            columns = (_accounts.c[name] for name in _SEARCH_COLUMNS)
            query = query.where(or_(*(column.like(pattern, escape="\\") for column in columns)))
        query = query.order_by(_accounts.c.created_at.desc(), _accounts.c.id.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_account(r) for r in rows]

    def update(self, account_id: int, **fields) -> bool:
        """Update fields on an existing account. Returns False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.id == account_id).values(**fields, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete(self, account_id: int) -> bool:
        """Permanently delete an account. Returns True if deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.delete().where(_accounts.c.id == account_id))
            conn.commit()
        return result.rowcount > 0


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        phone_no=row.phone_no,
        user_type=row.user_type,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
