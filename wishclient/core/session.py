from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from wishclient.api.routes import Navigate, Route
from wishclient.core.config import settings
from wishclient.core.errors import RequestRejected, TransportError, WishClientError
from wishclient.schemas.auth import Identity, LoginRequest, SessionStatus, SignupRequest

if TYPE_CHECKING:
    from wishclient.api.gateway import WishlistApi
    from wishclient.core.storage import FileTokenStorage, MemoryTokenStorage


logger = logging.getLogger("wishclient.session")

LOGIN_FAILED_MESSAGE = "Login failed. Invalid credentials."
REGISTER_OK_MESSAGE = "Registration successful! Please login."
REGISTER_FAILED_MESSAGE = "Registration failed. Please try again."


class SessionContext:
    """
    Holds the installed credential and the identity it belongs to.

    One instance is shared by the session store (the only writer) and the
    gateway (reads the credential for every call, reports 401s back).
    """

    def __init__(self) -> None:
        self._credential: str | None = None
        self._identity: Identity | None = None
        self._listeners: list[Callable[[str], None]] = []

    @property
    def credential(self) -> str | None:
        return self._credential

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def install(self, credential: str, identity: Identity) -> None:
        if not credential:
            raise ValueError("credential must be a non-empty string")
        self._credential = credential
        self._identity = identity

    def clear(self) -> None:
        self._credential = None
        self._identity = None

    def add_invalidation_listener(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def report_auth_failure(self, credential: str) -> None:
        for listener in list(self._listeners):
            listener(credential)


@dataclass(frozen=True)
class AuthResult:
    ok: bool
    message: str = ""
    identity: Identity | None = None
    navigate: Navigate | None = None

    def __bool__(self) -> bool:
        return self.ok


def _first_validation_message(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return REGISTER_FAILED_MESSAGE
    first = errors[0]
    field_name = ".".join(str(part) for part in first.get("loc", ()))
    message = str(first.get("msg", "")).removeprefix("Value error, ")
    return f"{field_name}: {message}" if field_name else message


class SessionStore:
    def __init__(
        self,
        api: "WishlistApi",
        context: SessionContext,
        storage: "MemoryTokenStorage | FileTokenStorage",
        storage_key: str | None = None,
    ) -> None:
        self._api = api
        self._context = context
        self._storage = storage
        self._storage_key = storage_key or settings.token_storage_key
        self._ready = False
        context.add_invalidation_listener(self._on_auth_failure)

    @property
    def identity(self) -> Identity | None:
        return self._context.identity

    @property
    def credential(self) -> str | None:
        return self._context.credential

    @property
    def status(self) -> SessionStatus:
        if not self._ready:
            return SessionStatus.LOADING
        if self._context.is_authenticated:
            return SessionStatus.AUTHENTICATED
        return SessionStatus.UNAUTHENTICATED

    def stored_credential(self) -> str | None:
        return self._storage.get(self._storage_key)

    async def establish(self, email_or_username: str, password: str) -> AuthResult:
        try:
            request = LoginRequest(email_or_username=email_or_username, password=password)
        except PydanticValidationError:
            return AuthResult(ok=False, message=LOGIN_FAILED_MESSAGE)

        try:
            response = await self._api.login(request)
        except TransportError as exc:
            logger.warning("Login failed: transport error=%s", exc.message)
            return AuthResult(ok=False, message=exc.message)
        except WishClientError as exc:
            logger.info("Login rejected status=%s", exc.status_code)
            return AuthResult(ok=False, message=LOGIN_FAILED_MESSAGE)

        identity = response.to_identity()
        self._context.install(response.token, identity)
        try:
            self._storage.set(self._storage_key, response.token)
        except OSError as exc:
            logger.warning("Token not persisted; session kept in memory only error=%s", exc)
        logger.info("Login succeeded user_id=%s", identity.id)
        return AuthResult(ok=True, identity=identity, navigate=Navigate.to(Route.DASHBOARD))

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        try:
            request = SignupRequest(username=username, email=email, password_hash=password)
        except PydanticValidationError as exc:
            return AuthResult(ok=False, message=_first_validation_message(exc))

        try:
            await self._api.signup(request)
        except WishClientError as exc:
            logger.info("Registration failed status=%s message=%s", exc.status_code, exc.message)
            if isinstance(exc, RequestRejected):
                return AuthResult(ok=False, message=exc.message)
            return AuthResult(ok=False, message=REGISTER_FAILED_MESSAGE)

        logger.info("Registration succeeded username=%s", request.username)
        return AuthResult(ok=True, message=REGISTER_OK_MESSAGE)

    async def revalidate(self) -> Identity | None:
        token = self.stored_credential()
        if not token:
            self._ready = True
            return None

        try:
            identity = await self._api.validate(token)
        except WishClientError as exc:
            logger.warning("Token validation failed kind=%s status=%s", type(exc).__name__, exc.status_code)
            self._purge(token)
            self._ready = True
            return None

        # a login that finished while we were waiting owns the session now
        if self.stored_credential() == token:
            self._context.install(token, identity)
        self._ready = True
        return self._context.identity

    def terminate(self) -> Navigate:
        self._context.clear()
        self._forget_stored()
        logger.debug("Session terminated")
        return Navigate.to(Route.LOGIN)

    def _purge(self, token: str) -> None:
        if self._context.credential in (None, token):
            self._context.clear()
        if self.stored_credential() == token:
            self._forget_stored()

    def _forget_stored(self) -> None:
        try:
            self._storage.remove(self._storage_key)
        except OSError as exc:
            logger.warning("Stored token not removed error=%s", exc)

    def _on_auth_failure(self, credential: str) -> None:
        logger.info("Credential rejected by server; purging")
        self._purge(credential)

