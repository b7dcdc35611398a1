"""
State of the wishlist currently on screen.

Every mutation adopts the full wishlist returned by the server; local product
state is never patched. Responses that arrive after the view was closed or
switched to another wishlist are dropped.
"""

from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
import inspect
import logging
import math
import re

from pydantic import ValidationError as PydanticValidationError

from wishclient.api.gateway import WishlistApi
from wishclient.api.routes import Navigate, Route
from wishclient.core.access import Affordances, affordances, can_manage
from wishclient.core.errors import AuthError, RequestRejected, ValidationError, WishClientError
from wishclient.core.session import SessionContext
from wishclient.schemas.auth import Identity
from wishclient.schemas.wishlist import InviteRequest, ProductDraft, ProductPayload, Wishlist


logger = logging.getLogger("wishclient.wishlist")

Confirm = Callable[[str], bool | Awaitable[bool]]

REQUIRED_FIELDS_MESSAGE = "All product fields are required."
INVALID_PRICE_MESSAGE = "Price must be a positive number."
PRODUCT_FAILED_MESSAGE = "Failed to add/update product."
REMOVE_FAILED_MESSAGE = "Failed to remove product."
INVITE_EMPTY_MESSAGE = "Please enter an email to invite."
INVITE_INVALID_MESSAGE = "Please enter a valid email address."
INVITE_FAILED_MESSAGE = "Failed to send invite."
INVITE_ERROR = "Invitation failed."
INVITE_REFRESH_FAILED_MESSAGE = "Invitation sent, but the wishlist could not be refreshed."
DELETE_FAILED_MESSAGE = "Failed to delete wishlist. You might not be the owner."
DELETE_FORBIDDEN_MESSAGE = "Only the owner can delete this wishlist."

REMOVE_PROMPT = "Are you sure you want to remove this product?"
DELETE_PROMPT = "Are you sure you want to delete this wishlist?"

_NUMERIC = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"


@dataclass
class ActionStatus:
    message: str = ""
    error: str = ""

    def clear(self) -> None:
        self.message = ""
        self.error = ""


def parse_price(value: object) -> float | None:
    """Finite float for numeric input, None for anything else."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not _NUMERIC.match(text):
            return None
        number = float(text)
    if not math.isfinite(number):
        return None
    return number


def _blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_product(draft: ProductDraft) -> ProductPayload:
    if _blank(draft.name) or _blank(draft.image_url) or _blank(draft.price):
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)
    price = parse_price(draft.price)
    if price is None or price <= 0:
        raise ValidationError(INVALID_PRICE_MESSAGE)
    return ProductPayload(name=draft.name, image_url=draft.image_url, price=price)


async def confirmed(confirm: Confirm | None, prompt: str) -> bool:
    if confirm is None:
        return True
    answer = confirm(prompt)
    if inspect.isawaitable(answer):
        answer = await answer
    return bool(answer)


class WishlistController:
    def __init__(self, api: WishlistApi, session: SessionContext) -> None:
        self._api = api
        self._session = session
        self._view = 0
        self._in_flight = 0
        self.wishlist_id: int | str | None = None
        self.wishlist: Wishlist | None = None
        self.state = LoadState.IDLE
        self.load_error = ""
        self.navigate: Navigate | None = None
        self.product_status = ActionStatus()
        self.remove_status = ActionStatus()
        self.invite_status = ActionStatus()
        self.delete_status = ActionStatus()

    @property
    def identity(self) -> Identity | None:
        return self._session.identity

    @property
    def affordances(self) -> Affordances:
        return affordances(self._session.identity, self.wishlist)

    @property
    def busy(self) -> bool:
        return self._in_flight > 0

    def open(self, wishlist_id: int | str) -> None:
        self._reset()
        self.wishlist_id = wishlist_id

    def close(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._view += 1
        self.wishlist_id = None
        self.wishlist = None
        self.state = LoadState.IDLE
        self.load_error = ""
        self.navigate = None
        for status in (self.product_status, self.remove_status, self.invite_status, self.delete_status):
            status.clear()

    @contextmanager
    def _request(self) -> Iterator[int]:
        self._in_flight += 1
        try:
            yield self._view
        finally:
            self._in_flight -= 1

    def _is_stale(self, view: int) -> bool:
        return view != self._view

    def _note_failure(self, action: str, exc: WishClientError) -> None:
        logger.warning(
            "%s failed wishlist_id=%s kind=%s status=%s",
            action,
            self.wishlist_id,
            type(exc).__name__,
            exc.status_code,
        )
        if isinstance(exc, AuthError):
            self.navigate = Navigate.to(Route.LOGIN)

    def _require_open(self) -> int | str:
        if self.wishlist_id is None:
            raise RuntimeError("No wishlist is open")
        return self.wishlist_id

    async def load(self, wishlist_id: int | str | None = None) -> LoadState:
        if wishlist_id is not None and wishlist_id != self.wishlist_id:
            self.open(wishlist_id)
        current_id = self._require_open()

        self.navigate = None
        self.state = LoadState.LOADING
        self.load_error = ""
        with self._request() as view:
            try:
                wishlist = await self._api.get_wishlist(current_id)
            except WishClientError as exc:
                if self._is_stale(view):
                    logger.debug("Discarding stale load failure wishlist_id=%s", current_id)
                    return self.state
                self._note_failure("load", exc)
                self.load_error = exc.message
                self.state = LoadState.LOAD_FAILED
                return self.state

        if self._is_stale(view):
            logger.debug("Discarding stale load wishlist_id=%s", current_id)
            return self.state
        self.wishlist = wishlist
        self.load_error = ""
        self.state = LoadState.LOADED
        return self.state

    async def show(self, wishlist_id: int | str) -> LoadState:
        self.open(wishlist_id)
        return await self.load()

    def _adopt(self, wishlist: Wishlist) -> None:
        self.wishlist = wishlist
        self.load_error = ""
        self.state = LoadState.LOADED

    async def _submit_product(
        self,
        draft: ProductDraft,
        send: Callable[[int | str, ProductPayload], Awaitable[Wishlist]],
    ) -> bool:
        current_id = self._require_open()
        self.navigate = None
        self.product_status.clear()
        try:
            payload = validate_product(draft)
        except ValidationError as exc:
            self.product_status.error = exc.message
            return False

        with self._request() as view:
            try:
                wishlist = await send(current_id, payload)
            except WishClientError as exc:
                if self._is_stale(view):
                    return False
                self._note_failure("product", exc)
                self.product_status.error = (
                    exc.message if isinstance(exc, RequestRejected) else PRODUCT_FAILED_MESSAGE
                )
                return False

        if self._is_stale(view):
            logger.debug("Discarding stale product response wishlist_id=%s", current_id)
            return False
        self._adopt(wishlist)
        return True

    async def create_product(self, draft: ProductDraft) -> bool:
        return await self._submit_product(draft, self._api.add_product)

    async def update_product(self, product_id: int | str, draft: ProductDraft) -> bool:
        async def send(wishlist_id: int | str, payload: ProductPayload) -> Wishlist:
            return await self._api.update_product(wishlist_id, product_id, payload)

        return await self._submit_product(draft, send)

    async def remove_product(self, product_id: int | str, confirm: Confirm | None = None) -> bool:
        current_id = self._require_open()
        self.navigate = None
        self.remove_status.clear()
        if not await confirmed(confirm, REMOVE_PROMPT):
            return False

        with self._request() as view:
            try:
                wishlist = await self._api.remove_product(current_id, product_id)
            except WishClientError as exc:
                if self._is_stale(view):
                    return False
                self._note_failure("remove", exc)
                self.remove_status.error = REMOVE_FAILED_MESSAGE
                return False

        if self._is_stale(view):
            return False
        self._adopt(wishlist)
        return True

    async def delete_wishlist(self, confirm: Confirm | None = None) -> Navigate | None:
        current_id = self._require_open()
        self.navigate = None
        self.delete_status.clear()
        if not can_manage(self._session.identity, self.wishlist):
            self.delete_status.error = DELETE_FORBIDDEN_MESSAGE
            return None
        if not await confirmed(confirm, DELETE_PROMPT):
            return None

        with self._request() as view:
            try:
                await self._api.delete_wishlist(current_id)
            except WishClientError as exc:
                if self._is_stale(view):
                    return None
                self._note_failure("delete", exc)
                self.delete_status.error = DELETE_FAILED_MESSAGE
                return None

        logger.info("Wishlist deleted wishlist_id=%s", current_id)
        if self._is_stale(view):
            return None
        self.close()
        return Navigate.to(Route.DASHBOARD)

    async def invite(self, email: str) -> bool:
        current_id = self._require_open()
        self.navigate = None
        self.invite_status.clear()
        if _blank(email):
            self.invite_status.message = INVITE_EMPTY_MESSAGE
            return False
        try:
            payload = InviteRequest(email=email.strip())
        except PydanticValidationError:
            self.invite_status.message = INVITE_INVALID_MESSAGE
            return False

        with self._request() as view:
            try:
                response = await self._api.invite(current_id, payload)
            except WishClientError as exc:
                if self._is_stale(view):
                    return False
                self._note_failure("invite", exc)
                self.invite_status.message = (
                    exc.message if isinstance(exc, RequestRejected) else INVITE_FAILED_MESSAGE
                )
                self.invite_status.error = INVITE_ERROR
                return False

        if self._is_stale(view):
            return False
        self.invite_status.message = response.message
        await self._refresh_after_invite(current_id)
        return True

    async def _refresh_after_invite(self, wishlist_id: int | str) -> None:
        # the invite response carries no wishlist; a failed refresh keeps the loaded one
        with self._request() as view:
            try:
                wishlist = await self._api.get_wishlist(wishlist_id)
            except WishClientError as exc:
                if self._is_stale(view):
                    return
                self._note_failure("invite refresh", exc)
                self.invite_status.error = INVITE_REFRESH_FAILED_MESSAGE
                return

        if not self._is_stale(view):
            self._adopt(wishlist)
