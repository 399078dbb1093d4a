"""Unit tests for ledger/store.py -- category and expense persistence.

Covers:
- amounts survive the cents round trip exactly
- find_by_owner() ordering and category/date filters
- deleting a category deletes its expenses
- summarize_by_category() totals, counts, percentages, and owner scoping
- delete_owner_data() removes one owner's data only
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger.models import Category, Expense
from ledger.store import LedgerStore


@pytest.fixture
def store():
    """In-memory LedgerStore with two owners.

    Owner 1: Food (3 expenses, 40.00 total) and Rent (1 expense, 60.00).
    Owner 2: Games (1 expense, 999.99).
    """
    s = LedgerStore("sqlite:///:memory:")
    food = s.categories.save(Category(name="Food", owner_id=1))
    rent = s.categories.save(Category(name="Rent", owner_id=1))
    games = s.categories.save(Category(name="Games", owner_id=2))

    for description, amount, day, category in [
        ("Lunch", "12.50", date(2024, 3, 1), food),
        ("Dinner", "20.00", date(2024, 3, 15), food),
        ("Snack", "7.50", date(2024, 4, 2), food),
        ("March rent", "60.00", date(2024, 3, 1), rent),
        ("Console", "999.99", date(2024, 3, 10), games),
    ]:
        s.expenses.save(
            Expense(
                description=description,
                amount=Decimal(amount),
                date=day,
                category_id=category.id,
                owner_id=category.owner_id,
            )
        )
    s.ids = {"food": food.id, "rent": rent.id, "games": games.id}
    yield s
    s.close()


class TestExpenses:
    def test_amount_round_trips_exactly(self, store):
        saved = store.expenses.save(
            Expense(
                description="Coffee",
                amount=Decimal("0.10"),
                date=date(2024, 5, 1),
                category_id=store.ids["food"],
                owner_id=1,
            )
        )
        assert saved.amount == Decimal("0.10")
        assert str(saved.amount) == "0.10"
        assert saved.created_at

    def test_newest_first(self, store):
        dates = [e.date for e in store.expenses.find_by_owner(1)]
        assert dates == sorted(dates, reverse=True)

    def test_owner_scope(self, store):
        assert {e.description for e in store.expenses.find_by_owner(2)} == {"Console"}

    def test_category_filter(self, store):
        rows = store.expenses.find_by_owner(1, category_id=store.ids["rent"])
        assert [e.description for e in rows] == ["March rent"]

    def test_date_range_is_inclusive(self, store):
        rows = store.expenses.find_by_owner(1, start=date(2024, 3, 1), end=date(2024, 3, 15))
        assert {e.description for e in rows} == {"Lunch", "Dinner", "March rent"}

    def test_update_keeps_created_at(self, store):
        expense = store.expenses.find_by_owner(1, category_id=store.ids["rent"])[0]
        expense.amount = Decimal("65.00")
        updated = store.expenses.save(expense)
        assert updated.amount == Decimal("65.00")
        assert updated.created_at == expense.created_at

    def test_delete(self, store):
        expense = store.expenses.find_by_owner(2)[0]
        assert store.expenses.delete(expense.id) is True
        assert store.expenses.find_by_id(expense.id) is None
        assert store.expenses.delete(expense.id) is False


class TestCategories:
    def test_listed_by_name(self, store):
        assert [c.name for c in store.categories.find_by_owner(1)] == ["Food", "Rent"]

    def test_name_filter_stays_within_owner(self, store):
        assert [c.id for c in store.categories.find_by_owner(1, name="Rent")] == [store.ids["rent"]]
        assert store.categories.find_by_owner(1, name="Games") == []

    def test_delete_cascades_to_expenses(self, store):
        assert store.categories.delete(store.ids["food"]) is True
        assert store.categories.find_by_id(store.ids["food"]) is None
        assert store.expenses.find_by_owner(1, category_id=store.ids["food"]) == []
        assert len(store.expenses.find_by_owner(1)) == 1

    def test_delete_absent(self, store):
        assert store.categories.delete(9999) is False


class TestSummary:
    def test_totals_counts_and_percentages(self, store):
        rows = store.expenses.summarize_by_category(1)
        assert [r.category_name for r in rows] == ["Rent", "Food"]

        rent, food = rows
        assert rent.total == Decimal("60.00")
        assert rent.count == 1
        assert rent.percentage == 60.0
        assert food.total == Decimal("40.00")
        assert food.count == 3
        assert food.percentage == 40.0

    def test_window(self, store):
        rows = store.expenses.summarize_by_category(1, start=date(2024, 4, 1), end=date(2024, 4, 30))
        assert len(rows) == 1
        assert rows[0].category_name == "Food"
        assert rows[0].total == Decimal("7.50")
        assert rows[0].percentage == 100.0

    def test_owner_scope(self, store):
        rows = store.expenses.summarize_by_category(2)
        assert [(r.category_name, r.total) for r in rows] == [("Games", Decimal("999.99"))]

    def test_empty(self, store):
        assert store.expenses.summarize_by_category(3) == []


class TestDeleteOwnerData:
    def test_only_that_owner(self, store):
        store.delete_owner_data(1)
        assert store.categories.find_by_owner(1) == []
        assert store.expenses.find_by_owner(1) == []
        assert len(store.categories.find_by_owner(2)) == 1
        assert len(store.expenses.find_by_owner(2)) == 1
