"""
auth/ownership.py -- Per-principal scoping of resource reads and writes.

Every Category and Expense lookup in a route handler goes through an
OwnershipGuard. The guard wraps a repository that knows nothing about
principals and applies one rule: a resource is visible to, and mutable by,
its owner only.

Anti-enumeration policy:
  An id that does not exist raises ResourceNotFound. An id that exists but
  belongs to another user raises ResourceNotOwned, a subclass with the same
  code and message. Route handlers catch ResourceNotFound and answer 404 for
  both, so a caller cannot probe for other users' ids.

Ownership always comes from the authenticated Principal. create_owned()
overwrites whatever owner_id the resource was built with, and update_owned()
refuses to change id or owner_id.

Layer rule: no imports from api/, core/, or ledger/.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Generic, Protocol, TypeVar

from auth.errors import ResourceNotFound, ResourceNotOwned
from auth.models import Principal

logger = logging.getLogger("expensetracker.auth")


class OwnedResource(Protocol):
    id: int | None
    owner_id: int | None


R = TypeVar("R", bound=OwnedResource)


class ResourceRepository(Protocol[R]):
    def find_by_id(self, resource_id: int) -> R | None: ...

    # Repositories may add optional keyword filters (see ledger/store.py);
    # list_owned() forwards them unchanged.
    def find_by_owner(self, owner_id: int) -> list[R]: ...

    def save(self, resource: R) -> R: ...

    def delete(self, resource_id: int) -> bool: ...


_IMMUTABLE_FIELDS = frozenset({"id", "owner_id"})


class OwnershipGuard(Generic[R]):
    """Owner-scoped view over a ResourceRepository.

    Args:
        repository:     Storage collaborator for one resource type.
        resource_name:  Used in error codes and messages ("category" ->
                        "category_not_found").
    """

    def __init__(self, repository: ResourceRepository[R], resource_name: str) -> None:
        self.repository = repository
        self.resource_name = resource_name

    def find_owned(self, resource_id: int, principal: Principal) -> R:
        resource = self.repository.find_by_id(resource_id)
        if resource is None:
            raise ResourceNotFound(self.resource_name, resource_id)
        if resource.owner_id != principal.user_id:
            logger.info(
                "Denied %s %s to user %s (not owner)",
                self.resource_name,
                resource_id,
                principal.user_id,
            )
            raise ResourceNotOwned(self.resource_name, resource_id)
        return resource

    def list_owned(self, principal: Principal, **filters: Any) -> list[R]:
        """Return the principal's resources, narrowed by the repository's own keyword filters."""
        return self.repository.find_by_owner(principal.user_id, **filters)

    def create_owned(self, resource: R, principal: Principal) -> R:
        return self.repository.save(dataclasses.replace(resource, id=None, owner_id=principal.user_id))

    def update_owned(self, resource_id: int, principal: Principal, **changes: Any) -> R:
        """Apply changes to an owned resource and return the saved result.

        Raises ResourceNotFound (or ResourceNotOwned) before anything is
        written. Raises ValueError if changes touch id or owner_id.
        """
        forbidden = _IMMUTABLE_FIELDS & set(changes)
        if forbidden:
            raise ValueError(f"Cannot change {sorted(forbidden)!r}")
        current = self.find_owned(resource_id, principal)
        return self.repository.save(dataclasses.replace(current, **changes))

    def delete_owned(self, resource_id: int, principal: Principal) -> None:
        self.find_owned(resource_id, principal)
        if not self.repository.delete(resource_id):
            # Deleted concurrently between the check and the delete.
            raise ResourceNotFound(self.resource_name, resource_id)
