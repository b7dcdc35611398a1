"""
Which wishlist actions to offer to the current identity.

Advisory only: the server enforces access. Nothing here is cached, so callers
evaluate it again whenever the identity or the wishlist changes.
"""

from dataclasses import dataclass

from wishclient.schemas.auth import Identity
from wishclient.schemas.wishlist import Wishlist


@dataclass(frozen=True)
class AccessResult:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


def is_owner(identity: Identity | None, wishlist: Wishlist | None) -> bool:
    if identity is None or wishlist is None:
        return False
    return identity.id == wishlist.owner_id


def is_collaborator(identity: Identity | None, wishlist: Wishlist | None) -> bool:
    if identity is None or wishlist is None:
        return False
    return wishlist.has_collaborator(identity.id)


def can_manage(identity: Identity | None, wishlist: Wishlist | None) -> AccessResult:
    """Delete the wishlist or invite collaborators."""
    if is_owner(identity, wishlist):
        return AccessResult(True, "owner")
    return AccessResult(False, "not-owner")


def can_contribute(identity: Identity | None, wishlist: Wishlist | None) -> AccessResult:
    """View the wishlist and add, edit or remove its products."""
    if is_owner(identity, wishlist):
        return AccessResult(True, "owner")
    if is_collaborator(identity, wishlist):
        return AccessResult(True, "collaborator")
    return AccessResult(False, "no-access")


can_delete_wishlist = can_manage
can_invite = can_manage
can_view = can_contribute
can_add_product = can_contribute
can_edit_product = can_contribute
can_remove_product = can_contribute


@dataclass(frozen=True)
class Affordances:
    is_owner: bool = False
    can_view: bool = False
    can_delete_wishlist: bool = False
    can_invite: bool = False
    can_add_product: bool = False
    can_edit_product: bool = False
    can_remove_product: bool = False


def affordances(identity: Identity | None, wishlist: Wishlist | None) -> Affordances:
    manage = bool(can_manage(identity, wishlist))
    contribute = bool(can_contribute(identity, wishlist))
    return Affordances(
        is_owner=is_owner(identity, wishlist),
        can_view=contribute,
        can_delete_wishlist=manage,
        can_invite=manage,
        can_add_product=contribute,
        can_edit_product=contribute,
        can_remove_product=contribute,
    )
