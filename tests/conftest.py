import os
import warnings
from datetime import datetime, timezone
from itertools import count
from typing import Any

import pytest

# Set environment variables BEFORE importing client modules
os.environ["API_BASE_URL"] = "http://test/api"
os.environ["TOKEN_STORAGE_PATH"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

warnings.filterwarnings("ignore", category=DeprecationWarning)

import httpx
from fastapi import APIRouter, Depends, FastAPI, Header, Request, Response, status
from fastapi.responses import JSONResponse

from wishclient.core.config import Settings
from wishclient.core.storage import MemoryTokenStorage
from wishclient.main import WishShareClient


BASE_URL = "http://test/api"


class ApiFailure(Exception):
    def __init__(self, status_code: int, body: dict[str, Any] | None = None) -> None:
        self.status_code = status_code
        self.body = body


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FakeBackend:
    """In-memory stand-in for the remote WishShare REST API."""

    def __init__(self) -> None:
        self.users: dict[int, dict[str, Any]] = {}
        self.tokens: dict[str, int] = {}
        self.wishlists: dict[str, dict[str, Any]] = {}
        self.requests: list[tuple[str, str]] = []
        self._user_ids = count(1)
        self._wishlist_ids = count(1)
        self._product_ids = count(1)
        self.app = self._build_app()

    # seeding

    def add_user(self, username: str, email: str, password: str = "secret") -> dict[str, Any]:
        user_id = next(self._user_ids)
        user = {"id": user_id, "username": username, "email": email, "password": password}
        self.users[user_id] = user
        return user

    def issue_token(self, user_id: int, token: str | None = None) -> str:
        token = token or f"token-{user_id}-{len(self.tokens)}"
        self.tokens[token] = user_id
        return token

    def add_wishlist(
        self,
        owner_id: int,
        title: str = "Birthday",
        description: str = "",
        collaborators: list[int] | None = None,
    ) -> dict[str, Any]:
        wishlist_id = f"w{next(self._wishlist_ids)}"
        wishlist = {
            "id": wishlist_id,
            "title": title,
            "description": description,
            "ownerId": owner_id,
            "ownerUsername": self.users[owner_id]["username"],
            "collaboratorIds": list(collaborators or []),
            "products": [],
        }
        self.wishlists[wishlist_id] = wishlist
        return wishlist

    def add_product(self, wishlist_id: str, user_id: int, name: str, image_url: str, price: float) -> dict[str, Any]:
        stamp = _now()
        product = {
            "id": f"p{next(self._product_ids)}",
            "name": name,
            "imageUrl": image_url,
            "price": price,
            "addedByUsername": self.users[user_id]["username"],
            "createdAt": stamp,
            "lastEditedAt": stamp,
        }
        self.wishlists[wishlist_id]["products"].append(product)
        return product

    def count(self, method: str, path_prefix: str = "") -> int:
        return sum(1 for m, p in self.requests if m == method and p.startswith(path_prefix))

    # access helpers

    def _user_for(self, authorization: str | None) -> dict[str, Any]:
        if not authorization or not authorization.startswith("Bearer "):
            raise ApiFailure(status.HTTP_401_UNAUTHORIZED, {"message": "Not authenticated"})
        user_id = self.tokens.get(authorization.removeprefix("Bearer ").strip())
        if user_id is None:
            raise ApiFailure(status.HTTP_401_UNAUTHORIZED, {"message": "Invalid token"})
        return self.users[user_id]

    def _visible(self, wishlist_id: str, user: dict[str, Any]) -> dict[str, Any]:
        wishlist = self.wishlists.get(wishlist_id)
        if wishlist is None:
            raise ApiFailure(status.HTTP_404_NOT_FOUND, {"message": "Wishlist not found"})
        if user["id"] != wishlist["ownerId"] and user["id"] not in wishlist["collaboratorIds"]:
            raise ApiFailure(status.HTTP_403_FORBIDDEN, {"message": "Access denied"})
        return wishlist

    @staticmethod
    def _product_body(body: dict[str, Any]) -> tuple[str, str, float]:
        name, image_url, price = body.get("name"), body.get("imageUrl"), body.get("price")
        if not name or not image_url or not isinstance(price, (int, float)) or price <= 0:
            raise ApiFailure(status.HTTP_400_BAD_REQUEST, {"message": "Invalid product"})
        return name, image_url, float(price)

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        router = APIRouter(prefix="/api")
        backend = self

        @app.exception_handler(ApiFailure)
        async def _failure_handler(request: Request, exc: ApiFailure):
            if exc.body is None:
                return Response(status_code=exc.status_code)
            return JSONResponse(status_code=exc.status_code, content=exc.body)

        @app.middleware("http")
        async def _record(request: Request, call_next):
            backend.requests.append((request.method, request.url.path))
            return await call_next(request)

        def current_user(authorization: str | None = Header(default=None)) -> dict[str, Any]:
            return backend._user_for(authorization)

        @router.post("/auth/signup", status_code=status.HTTP_201_CREATED)
        async def signup(body: dict[str, Any]):
            if any(u["email"] == body.get("email") for u in backend.users.values()):
                raise ApiFailure(status.HTTP_400_BAD_REQUEST, {"error": "Email already registered"})
            backend.add_user(body["username"], body["email"], body["passwordHash"])
            return Response(status_code=status.HTTP_201_CREATED)

        @router.post("/auth/login")
        async def login(body: dict[str, Any]):
            login_name = body.get("emailOrUsername")
            for user in backend.users.values():
                if login_name in (user["email"], user["username"]) and user["password"] == body.get("password"):
                    token = backend.issue_token(user["id"])
                    return {"token": token, "userId": user["id"], "username": user["username"], "email": user["email"]}
            raise ApiFailure(status.HTTP_401_UNAUTHORIZED, {"message": "Invalid credentials"})

        @router.get("/auth/validate")
        async def validate(user: dict = Depends(current_user)):
            return {"id": user["id"], "username": user["username"], "email": user["email"]}

        @router.get("/wishlists")
        async def list_wishlists(user: dict = Depends(current_user)):
            return [
                w for w in backend.wishlists.values()
                if w["ownerId"] == user["id"] or user["id"] in w["collaboratorIds"]
            ]

        @router.post("/wishlists", status_code=status.HTTP_201_CREATED)
        async def create_wishlist(body: dict[str, Any], user: dict = Depends(current_user)):
            return backend.add_wishlist(user["id"], body["title"], body.get("description", ""))

        @router.get("/wishlists/{wishlist_id}")
        async def get_wishlist(wishlist_id: str, user: dict = Depends(current_user)):
            return backend._visible(wishlist_id, user)

        @router.put("/wishlists/{wishlist_id}")
        async def update_wishlist(wishlist_id: str, body: dict[str, Any], user: dict = Depends(current_user)):
            wishlist = backend._visible(wishlist_id, user)
            if wishlist["ownerId"] != user["id"]:
                raise ApiFailure(status.HTTP_403_FORBIDDEN, {"message": "Only owner can update wishlist"})
            wishlist.update(title=body["title"], description=body.get("description", ""))
            return wishlist

        @router.delete("/wishlists/{wishlist_id}", status_code=status.HTTP_204_NO_CONTENT)
        async def delete_wishlist(wishlist_id: str, user: dict = Depends(current_user)):
            wishlist = backend._visible(wishlist_id, user)
            if wishlist["ownerId"] != user["id"]:
                raise ApiFailure(status.HTTP_403_FORBIDDEN, {"message": "Only owner can delete wishlist"})
            backend.wishlists.pop(wishlist_id)
            return Response(status_code=status.HTTP_204_NO_CONTENT)

        @router.post("/wishlists/{wishlist_id}/invite")
        async def invite(wishlist_id: str, body: dict[str, Any], user: dict = Depends(current_user)):
            wishlist = backend._visible(wishlist_id, user)
            if wishlist["ownerId"] != user["id"]:
                raise ApiFailure(status.HTTP_403_FORBIDDEN, {"message": "Only owner can invite"})
            invitee = next((u for u in backend.users.values() if u["email"] == body.get("email")), None)
            if invitee is None:
                raise ApiFailure(status.HTTP_400_BAD_REQUEST, {"message": "No user with that email"})
            if invitee["id"] not in wishlist["collaboratorIds"]:
                wishlist["collaboratorIds"].append(invitee["id"])
            return {"message": f"{invitee['username']} was invited."}

        @router.post("/wishlists/{wishlist_id}/products", status_code=status.HTTP_201_CREATED)
        async def add_product(wishlist_id: str, body: dict[str, Any], user: dict = Depends(current_user)):
            wishlist = backend._visible(wishlist_id, user)
            backend.add_product(wishlist_id, user["id"], *backend._product_body(body))
            return wishlist

        @router.put("/wishlists/{wishlist_id}/products/{product_id}")
        async def update_product(
            wishlist_id: str, product_id: str, body: dict[str, Any], user: dict = Depends(current_user)
        ):
            wishlist = backend._visible(wishlist_id, user)
            product = next((p for p in wishlist["products"] if p["id"] == product_id), None)
            if product is None:
                raise ApiFailure(status.HTTP_404_NOT_FOUND, {"message": "Product not found"})
            name, image_url, price = backend._product_body(body)
            product.update(name=name, imageUrl=image_url, price=price, lastEditedAt=_now())
            return wishlist

        @router.delete("/wishlists/{wishlist_id}/products/{product_id}")
        async def remove_product(wishlist_id: str, product_id: str, user: dict = Depends(current_user)):
            wishlist = backend._visible(wishlist_id, user)
            wishlist["products"] = [p for p in wishlist["products"] if p["id"] != product_id]
            return wishlist

        app.include_router(router)
        return app


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {"api_base_url": BASE_URL, "token_storage_path": ""}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def backend() -> FakeBackend:
    fake = FakeBackend()
    fake.add_user("alice", "a@x.com", "p")
    fake.add_user("bob", "b@x.com", "p")
    fake.add_user("carol", "c@x.com", "p")
    return fake


@pytest.fixture
def storage() -> MemoryTokenStorage:
    return MemoryTokenStorage()


@pytest.fixture
async def make_client(backend):
    created: list[WishShareClient] = []

    def _make(storage: MemoryTokenStorage | None = None) -> WishShareClient:
        client = WishShareClient(
            make_settings(),
            storage=storage if storage is not None else MemoryTokenStorage(),
            transport=httpx.ASGITransport(app=backend.app),
        )
        created.append(client)
        return client

    yield _make
    for wish_client in created:
        await wish_client.aclose()


@pytest.fixture
async def client(make_client, storage):
    return make_client(storage)


@pytest.fixture
async def alice(client):
    result = await client.session.establish("a@x.com", "p")
    assert result
    return client
