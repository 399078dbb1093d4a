"""Unit tests for auth/ownership.py -- owner-scoped resource access.

Covers:
- find/update/delete of another user's resource raise ResourceNotOwned,
  which is indistinguishable from ResourceNotFound
- list_owned() never returns another user's resources
- create_owned() takes the owner from the principal, not the resource
- update_owned() refuses to change id or owner_id
"""

from datetime import date
from decimal import Decimal

import pytest

from auth.errors import ResourceNotFound, ResourceNotOwned
from auth.models import Principal
from auth.ownership import OwnershipGuard
from ledger.models import Category, Expense
from ledger.store import LedgerStore

ALICE = Principal(user_id=1, email="alice@example.com")
BOB = Principal(user_id=2, email="bob@example.com")


@pytest.fixture
def ledger():
    s = LedgerStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def categories(ledger):
    return OwnershipGuard(ledger.categories, "category")


@pytest.fixture
def expenses(ledger):
    return OwnershipGuard(ledger.expenses, "expense")


@pytest.fixture
def alice_food(categories) -> Category:
    return categories.create_owned(Category(name="Food", color="#00FF00"), ALICE)


class TestFindOwned:
    def test_owner_can_read(self, categories, alice_food):
        found = categories.find_owned(alice_food.id, ALICE)
        assert found.name == "Food"
        assert found.owner_id == ALICE.user_id

    def test_other_user_gets_not_owned(self, categories, alice_food):
        with pytest.raises(ResourceNotOwned):
            categories.find_owned(alice_food.id, BOB)

    def test_absent_id_gets_not_found(self, categories):
        with pytest.raises(ResourceNotFound) as exc_info:
            categories.find_owned(9999, ALICE)
        assert not isinstance(exc_info.value, ResourceNotOwned)

    def test_not_owned_and_not_found_look_identical(self, categories, alice_food):
        """Code and message only depend on the id, never on who owns it."""
        with pytest.raises(ResourceNotFound) as foreign:
            categories.find_owned(alice_food.id, BOB)
        # Delete it so the same id is now genuinely absent.
        categories.delete_owned(alice_food.id, ALICE)
        with pytest.raises(ResourceNotFound) as absent:
            categories.find_owned(alice_food.id, BOB)

        assert foreign.value.code == absent.value.code == "category_not_found"
        assert str(foreign.value) == str(absent.value)


class TestListOwned:
    def test_only_own_resources_listed(self, categories):
        categories.create_owned(Category(name="Food"), ALICE)
        categories.create_owned(Category(name="Rent"), ALICE)
        categories.create_owned(Category(name="Games"), BOB)

        assert [c.name for c in categories.list_owned(ALICE)] == ["Food", "Rent"]
        assert [c.name for c in categories.list_owned(BOB)] == ["Games"]

    def test_filters_cannot_widen_scope(self, categories, expenses, alice_food):
        expenses.create_owned(
            Expense(description="Lunch", amount=Decimal("12.50"), date=date(2024, 3, 1), category_id=alice_food.id),
            ALICE,
        )
        assert expenses.list_owned(BOB, category_id=alice_food.id) == []

    def test_name_filter(self, categories, alice_food):
        categories.create_owned(Category(name="Rent"), ALICE)
        categories.create_owned(Category(name="Food"), BOB)

        assert [c.id for c in categories.list_owned(ALICE, name="Food")] == [alice_food.id]
        assert [c.name for c in categories.list_owned(ALICE, name=None)] == ["Food", "Rent"]
        assert categories.list_owned(ALICE, name="Games") == []


class TestCreateOwned:
    def test_owner_comes_from_principal(self, categories):
        created = categories.create_owned(Category(name="Travel", owner_id=BOB.user_id), ALICE)
        assert created.owner_id == ALICE.user_id
        with pytest.raises(ResourceNotOwned):
            categories.find_owned(created.id, BOB)

    def test_supplied_id_is_ignored(self, categories, alice_food):
        created = categories.create_owned(Category(name="Travel", id=alice_food.id), BOB)
        assert created.id != alice_food.id
        assert categories.find_owned(alice_food.id, ALICE).name == "Food"


class TestUpdateOwned:
    def test_owner_can_update(self, categories, alice_food):
        updated = categories.update_owned(alice_food.id, ALICE, name="Groceries")
        assert updated.name == "Groceries"
        assert updated.owner_id == ALICE.user_id
        assert updated.created_at == alice_food.created_at

    def test_other_user_cannot_update(self, categories, alice_food):
        with pytest.raises(ResourceNotOwned):
            categories.update_owned(alice_food.id, BOB, name="Hijacked")
        assert categories.find_owned(alice_food.id, ALICE).name == "Food"

    @pytest.mark.parametrize("field", ["id", "owner_id"])
    def test_identity_fields_are_immutable(self, categories, alice_food, field):
        with pytest.raises(ValueError):
            categories.update_owned(alice_food.id, ALICE, **{field: 99})
        assert categories.find_owned(alice_food.id, ALICE).owner_id == ALICE.user_id


class TestDeleteOwned:
    def test_owner_can_delete(self, categories, alice_food):
        categories.delete_owned(alice_food.id, ALICE)
        with pytest.raises(ResourceNotFound):
            categories.find_owned(alice_food.id, ALICE)

    def test_other_user_cannot_delete(self, categories, alice_food):
        with pytest.raises(ResourceNotOwned):
            categories.delete_owned(alice_food.id, BOB)
        assert categories.find_owned(alice_food.id, ALICE).id == alice_food.id

    def test_delete_absent(self, categories):
        with pytest.raises(ResourceNotFound):
            categories.delete_owned(9999, ALICE)
