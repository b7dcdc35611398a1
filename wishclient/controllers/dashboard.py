import logging

from pydantic import ValidationError as PydanticValidationError

from wishclient.api.gateway import WishlistApi
from wishclient.api.routes import Navigate, Route
from wishclient.controllers.wishlist import Confirm, DELETE_FAILED_MESSAGE, DELETE_PROMPT, confirmed
from wishclient.core.access import can_manage
from wishclient.core.errors import AuthError, WishClientError
from wishclient.core.session import SessionStore
from wishclient.schemas.wishlist import Wishlist, WishlistCreate


logger = logging.getLogger("wishclient.dashboard")

LOAD_FAILED_MESSAGE = "Failed to load wishlists."
TITLE_REQUIRED_MESSAGE = "Wishlist title cannot be empty."
CREATE_FAILED_MESSAGE = "Failed to create wishlist."


class DashboardController:
    """The signed-in user's wishlist collection."""

    def __init__(self, api: WishlistApi, session: SessionStore) -> None:
        self._api = api
        self._session = session
        self._in_flight = 0
        self.wishlists: list[Wishlist] = []
        self.loading = False
        self.error = ""
        self.navigate: Navigate | None = None

    @property
    def busy(self) -> bool:
        return self._in_flight > 0

    def can_delete(self, wishlist: Wishlist) -> bool:
        return bool(can_manage(self._session.identity, wishlist))

    def _note_failure(self, action: str, exc: WishClientError) -> None:
        logger.warning("%s failed kind=%s status=%s", action, type(exc).__name__, exc.status_code)
        if isinstance(exc, AuthError):
            self.navigate = Navigate.to(Route.LOGIN)

    async def load(self) -> bool:
        self.error = ""
        self.navigate = None
        self.loading = True
        self._in_flight += 1
        try:
            wishlists = await self._api.list_wishlists()
        except WishClientError as exc:
            self._note_failure("list_wishlists", exc)
            self.error = LOAD_FAILED_MESSAGE
            return False
        finally:
            self._in_flight -= 1
            self.loading = False
        self.wishlists = wishlists
        return True

    async def create_wishlist(self, title: str, description: str = "") -> Wishlist | None:
        self.error = ""
        try:
            payload = WishlistCreate(title=title or "", description=description or "")
        except PydanticValidationError:
            self.error = TITLE_REQUIRED_MESSAGE
            return None

        self._in_flight += 1
        try:
            created = await self._api.create_wishlist(payload)
        except WishClientError as exc:
            self._note_failure("create_wishlist", exc)
            self.error = CREATE_FAILED_MESSAGE
            return None
        finally:
            self._in_flight -= 1
        logger.info("Wishlist created wishlist_id=%s", created.id)
        await self.load()
        return created

    async def delete_wishlist(self, wishlist_id: int | str, confirm: Confirm | None = None) -> bool:
        self.error = ""
        if not await confirmed(confirm, DELETE_PROMPT):
            return False

        self._in_flight += 1
        try:
            await self._api.delete_wishlist(wishlist_id)
        except WishClientError as exc:
            self._note_failure("delete_wishlist", exc)
            self.error = DELETE_FAILED_MESSAGE
            return False
        finally:
            self._in_flight -= 1
        await self.load()
        return True

    def logout(self) -> Navigate:
        self.wishlists = []
        return self._session.terminate()
