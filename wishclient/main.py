import httpx

from wishclient.api.gateway import WishlistApi
from wishclient.api.routes import RouteDecision, decide
from wishclient.controllers.dashboard import DashboardController
from wishclient.controllers.login import LoginController
from wishclient.controllers.wishlist import WishlistController
from wishclient.core.config import Settings, settings as default_settings
from wishclient.core.logger import configure_logging
from wishclient.core.session import SessionContext, SessionStore
from wishclient.core.storage import FileTokenStorage, MemoryTokenStorage, build_token_storage
from wishclient.schemas.auth import Identity


logger = configure_logging()


class WishShareClient:
    """Wires the session, gateway and screen controllers together."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        storage: MemoryTokenStorage | FileTokenStorage | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.context = SessionContext()
        self.api = WishlistApi(
            self.context,
            self.settings.normalized_base_url,
            transport=transport,
            timeout=self.settings.request_timeout_seconds,
            validate_path=self.settings.validate_path,
        )
        self.storage = storage if storage is not None else build_token_storage(self.settings.token_storage_path)
        self.session = SessionStore(self.api, self.context, self.storage, self.settings.token_storage_key)
        self.login = LoginController(self.session)
        self.dashboard = DashboardController(self.api, self.session)
        self.wishlist = WishlistController(self.api, self.context)

    async def __aenter__(self) -> "WishShareClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def start(self) -> Identity | None:
        logger.info("Starting %s api=%s", self.settings.app_name, self.settings.normalized_base_url)
        return await self.session.revalidate()

    def route(self, path: str) -> RouteDecision:
        return decide(path, self.session.status)

    async def aclose(self) -> None:
        await self.api.aclose()
