"""
ledger/store.py -- SQLAlchemy-backed persistence for categories and expenses.

Uses SQLAlchemy Core (not ORM) so the dataclasses in ledger/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. CategoryRepository and ExpenseRepository
implement the ResourceRepository protocol from auth/ownership.py
(find_by_id / find_by_owner / save / delete). They do NOT check ownership on
find_by_id -- OwnershipGuard does. find_by_owner is the only listing query
and always filters on owner_id.

Amounts are stored as integer cents to keep SQLite from round-tripping money
through floats.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = LedgerStore()                                # SQLite default
    store = LedgerStore("postgresql://user:pw@host/db")  # PostgreSQL
    category = store.categories.save(Category(name="Food", owner_id=1))
    expenses = store.expenses.find_by_owner(1, category_id=category.id)
    store.close()
"""

import logging
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, event, func, select
from sqlalchemy.engine import Engine

from ledger.models import Category, CategoryTotal, Expense

logger = logging.getLogger("expensetracker.ledger")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'expensetracker_ledger.db'}"

_CENT = Decimal("0.01")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Integer, nullable=False, index=True),
    Column("name", String(50), nullable=False),
    Column("description", String(200)),
    Column("color", String(7)),
    Column("icon", String(50)),
    Column("created_at", String(32), nullable=False),
)

_expenses = Table(
    "expenses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Integer, nullable=False, index=True),
    Column("category_id", Integer, nullable=False, index=True),
    Column("description", String(255), nullable=False),
    Column("amount_cents", Integer, nullable=False),
    Column("date", String(10), nullable=False),  # YYYY-MM-DD
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(_CENT)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class CategoryRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def find_by_id(self, category_id: int) -> Optional[Category]:
        """Fetch a category by ID regardless of owner. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_categories.select().where(_categories.c.id == category_id)).fetchone()
        return _row_to_category(row) if row is not None else None

    def find_by_owner(self, owner_id: int, name: Optional[str] = None) -> list[Category]:
        """Return the owner's categories ordered by name.

        name narrows the result to an exact name match within the owner's rows.
        """
        query = _categories.select().where(_categories.c.owner_id == owner_id)
        if name is not None:
            query = query.where(_categories.c.name == name)
        query = query.order_by(_categories.c.name, _categories.c.id)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_category(r) for r in rows]

    def save(self, category: Category) -> Category:
        """Insert (id is None) or update the category and return the stored record."""
        values = {
            "owner_id": category.owner_id,
            "name": category.name,
            "description": category.description,
            "color": category.color,
            "icon": category.icon,
        }
        with self.engine.connect() as conn:
            if category.id is None:
                result = conn.execute(_categories.insert().values(created_at=_now_iso(), **values))
                category_id = result.inserted_primary_key[0]
            else:
                conn.execute(_categories.update().where(_categories.c.id == category.id).values(**values))
                category_id = category.id
            conn.commit()
        return self.find_by_id(category_id)

    def delete(self, category_id: int) -> bool:
        """Delete a category and every expense filed under it.

        Both deletes run in one transaction so no expense is left pointing at
        a missing category.
        """
        with self.engine.begin() as conn:
            conn.execute(_expenses.delete().where(_expenses.c.category_id == category_id))
            result = conn.execute(_categories.delete().where(_categories.c.id == category_id))
        return result.rowcount > 0


class ExpenseRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def find_by_id(self, expense_id: int) -> Optional[Expense]:
        """Fetch an expense by ID regardless of owner. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_expenses.select().where(_expenses.c.id == expense_id)).fetchone()
        return _row_to_expense(row) if row is not None else None

    def find_by_owner(
        self,
        owner_id: int,
        category_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[Expense]:
        """Return the owner's expenses, newest first.

        Optional filters narrow the result further but can never widen it past
        owner_id. start and end are inclusive.
        """
        query = _expenses.select().where(_expenses.c.owner_id == owner_id)
        if category_id is not None:
            query = query.where(_expenses.c.category_id == category_id)
        if start is not None:
            query = query.where(_expenses.c.date >= start.isoformat())
        if end is not None:
            query = query.where(_expenses.c.date <= end.isoformat())
        query = query.order_by(_expenses.c.date.desc(), _expenses.c.id.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_expense(r) for r in rows]

    def save(self, expense: Expense) -> Expense:
        """Insert (id is None) or update the expense and return the stored record."""
        values = {
            "owner_id": expense.owner_id,
            "category_id": expense.category_id,
            "description": expense.description,
            "amount_cents": _to_cents(expense.amount),
            "date": expense.date.isoformat(),
        }
        with self.engine.connect() as conn:
            if expense.id is None:
                result = conn.execute(_expenses.insert().values(created_at=_now_iso(), **values))
                expense_id = result.inserted_primary_key[0]
            else:
                conn.execute(_expenses.update().where(_expenses.c.id == expense.id).values(**values))
                expense_id = expense.id
            conn.commit()
        return self.find_by_id(expense_id)

    def delete(self, expense_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_expenses.delete().where(_expenses.c.id == expense_id))
            conn.commit()
        return result.rowcount > 0

    def summarize_by_category(
        self,
        owner_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[CategoryTotal]:
        """Return the owner's spending grouped by category, largest total first.

        percentage is each category's share of the owner's total over the same
        window. Categories with no expenses in the window are omitted.
        """
        total_col = func.sum(_expenses.c.amount_cents).label("total_cents")
        count_col = func.count(_expenses.c.id).label("expense_count")
        query = (
            select(_categories.c.id, _categories.c.name, total_col, count_col)
            .select_from(_expenses.join(_categories, _expenses.c.category_id == _categories.c.id))
            .where(_expenses.c.owner_id == owner_id)
            .group_by(_categories.c.id, _categories.c.name)
            .order_by(total_col.desc(), _categories.c.name)
        )
        if start is not None:
            query = query.where(_expenses.c.date >= start.isoformat())
        if end is not None:
            query = query.where(_expenses.c.date <= end.isoformat())

        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()

        grand_total = sum(r.total_cents for r in rows)
        return [
            CategoryTotal(
                category_id=r.id,
                category_name=r.name,
                total=_from_cents(r.total_cents),
                count=r.expense_count,
                percentage=round(r.total_cents * 100 / grand_total, 2) if grand_total else 0.0,
            )
            for r in rows
        ]


class LedgerStore:
    """Owns the ledger engine and exposes one repository per resource type."""

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # FastAPI runs sync handlers in a thread pool, so the same pooled
            # connection may be used from more than one thread.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)
        self.categories = CategoryRepository(self.engine)
        self.expenses = ExpenseRepository(self.engine)

    def delete_owner_data(self, owner_id: int) -> None:
        """Remove every category and expense belonging to owner_id.

        Called before an account is deleted.
        """
        with self.engine.begin() as conn:
            expenses = conn.execute(_expenses.delete().where(_expenses.c.owner_id == owner_id))
            categories = conn.execute(_categories.delete().where(_categories.c.owner_id == owner_id))
        logger.info(
            "Deleted ledger data for user %s (%d categories, %d expenses)",
            owner_id,
            categories.rowcount,
            expenses.rowcount,
        )

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_category(row) -> Category:
    return Category(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        description=row.description,
        color=row.color,
        icon=row.icon,
        created_at=row.created_at,
    )


def _row_to_expense(row) -> Expense:
    return Expense(
        id=row.id,
        owner_id=row.owner_id,
        category_id=row.category_id,
        description=row.description,
        amount=_from_cents(row.amount_cents),
        date=date.fromisoformat(row.date),
        created_at=row.created_at,
    )
