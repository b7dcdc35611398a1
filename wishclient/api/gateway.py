"""
Typed façade over the WishShare REST API.

Every call is a single request/response pair: no retries, no batching and no
caching. The credential is read from the injected SessionContext at call time.
"""

import logging
from time import perf_counter
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from wishclient.core.config import settings
from wishclient.core.errors import (
    AuthError,
    NotFoundOrForbidden,
    RequestRejected,
    TransportError,
)
from wishclient.core.session import SessionContext
from wishclient.schemas.auth import Identity, LoginRequest, LoginResponse, SignupRequest
from wishclient.schemas.wishlist import (
    InviteRequest,
    InviteResponse,
    ProductPayload,
    Wishlist,
    WishlistCreate,
    WishlistUpdate,
)


logger = logging.getLogger("wishclient.gateway")

_wishlist_list_adapter = TypeAdapter(list[Wishlist])

_MESSAGE_KEYS = ("message", "error", "detail")


def _segment(value: int | str) -> str:
    return quote(str(value), safe="")


def _server_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in _MESSAGE_KEYS:
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class WishlistApi:
    def __init__(
        self,
        session: SessionContext,
        base_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        validate_path: str | None = None,
    ) -> None:
        self._session = session
        self._validate_path = validate_path or settings.validate_path
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.normalized_base_url).rstrip("/"),
            transport=transport,
            timeout=httpx.Timeout(timeout if timeout is not None else settings.request_timeout_seconds),
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "WishlistApi":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        authenticated: bool = True,
        token: str | None = None,
    ) -> Any:
        headers: dict[str, str] = {}
        credential = token
        if authenticated and credential is None:
            credential = self._session.credential
            if not credential:
                # no network call without a credential
                raise AuthError("Not authenticated")
        if credential:
            headers["Authorization"] = f"Bearer {credential}"

        start = perf_counter()
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Request failed method=%s path=%s error=%s", method, path, exc)
            raise TransportError() from exc
        duration_ms = (perf_counter() - start) * 1000.0
        logger.debug(
            "Request completed method=%s path=%s status=%s duration_ms=%.2f",
            method,
            path,
            response.status_code,
            duration_ms,
        )

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                logger.warning("Undecodable response method=%s path=%s", method, path)
                raise TransportError(status_code=response.status_code) from exc

        status_code = response.status_code
        message = _server_message(response)
        if status_code == 401:
            # only a credential taken from the session is reported back
            if authenticated and token is None and credential:
                self._session.report_auth_failure(credential)
            raise AuthError(message, status_code=status_code)
        if status_code in (403, 404):
            raise NotFoundOrForbidden(message, status_code=status_code)
        if message:
            raise RequestRejected(message, status_code=status_code)
        logger.warning("Unexpected status method=%s path=%s status=%s", method, path, status_code)
        raise TransportError(status_code=status_code)

    @staticmethod
    def _parse(model: Any, data: Any) -> Any:
        try:
            if isinstance(model, TypeAdapter):
                return model.validate_python(data)
            return model.model_validate(data)
        except PydanticValidationError as exc:
            logger.warning("Malformed response payload error_count=%s", exc.error_count())
            raise TransportError() from exc

    # Auth

    async def signup(self, payload: SignupRequest) -> None:
        await self._request("POST", "/auth/signup", json=payload.to_wire(), authenticated=False)

    async def login(self, payload: LoginRequest) -> LoginResponse:
        data = await self._request("POST", "/auth/login", json=payload.to_wire(), authenticated=False)
        return self._parse(LoginResponse, data)

    async def validate(self, token: str) -> Identity:
        data = await self._request("GET", self._validate_path, token=token)
        return self._parse(Identity, data)

    # Wishlists

    async def list_wishlists(self) -> list[Wishlist]:
        data = await self._request("GET", "/wishlists")
        return self._parse(_wishlist_list_adapter, data or [])

    async def get_wishlist(self, wishlist_id: int | str) -> Wishlist:
        data = await self._request("GET", f"/wishlists/{_segment(wishlist_id)}")
        return self._parse(Wishlist, data)

    async def create_wishlist(self, payload: WishlistCreate) -> Wishlist:
        data = await self._request("POST", "/wishlists", json=payload.to_wire())
        return self._parse(Wishlist, data)

    async def update_wishlist(self, wishlist_id: int | str, payload: WishlistUpdate) -> Wishlist:
        data = await self._request("PUT", f"/wishlists/{_segment(wishlist_id)}", json=payload.to_wire())
        return self._parse(Wishlist, data)

    async def delete_wishlist(self, wishlist_id: int | str) -> None:
        await self._request("DELETE", f"/wishlists/{_segment(wishlist_id)}")

    async def invite(self, wishlist_id: int | str, payload: InviteRequest) -> InviteResponse:
        data = await self._request(
            "POST",
            f"/wishlists/{_segment(wishlist_id)}/invite",
            json=payload.to_wire(),
        )
        return self._parse(InviteResponse, data or {})

    # Products

    async def add_product(self, wishlist_id: int | str, payload: ProductPayload) -> Wishlist:
        data = await self._request(
            "POST",
            f"/wishlists/{_segment(wishlist_id)}/products",
            json=payload.to_wire(),
        )
        return self._parse(Wishlist, data)

    async def update_product(
        self,
        wishlist_id: int | str,
        product_id: int | str,
        payload: ProductPayload,
    ) -> Wishlist:
        data = await self._request(
            "PUT",
            f"/wishlists/{_segment(wishlist_id)}/products/{_segment(product_id)}",
            json=payload.to_wire(),
        )
        return self._parse(Wishlist, data)

    async def remove_product(self, wishlist_id: int | str, product_id: int | str) -> Wishlist:
        data = await self._request(
            "DELETE",
            f"/wishlists/{_segment(wishlist_id)}/products/{_segment(product_id)}",
        )
        return self._parse(Wishlist, data)
