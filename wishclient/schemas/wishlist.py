from datetime import datetime

from pydantic import EmailStr, Field, field_validator, model_validator

from wishclient.schemas.auth import WireModel


class Product(WireModel):
    id: int | str
    name: str
    image_url: str
    price: float
    added_by_username: str | None = None
    created_at: datetime
    last_edited_at: datetime

    @model_validator(mode="after")
    def _edit_not_before_creation(self) -> "Product":
        if self.last_edited_at < self.created_at:
            raise ValueError("lastEditedAt must not precede createdAt")
        return self

    @property
    def was_edited(self) -> bool:
        return self.last_edited_at != self.created_at


class Wishlist(WireModel):
    id: int | str
    title: str
    description: str | None = None
    owner_id: int | str
    owner_username: str | None = None
    collaborator_ids: list[int | str] = Field(default_factory=list)
    products: list[Product] = Field(default_factory=list)

    def has_collaborator(self, user_id: int | str) -> bool:
        return user_id in self.collaborator_ids

    def find_product(self, product_id: int | str) -> Product | None:
        return next((p for p in self.products if p.id == product_id), None)


class WishlistCreate(WireModel):
    title: str = Field(min_length=1, max_length=120)
    description: str = Field(default="", max_length=1000)

    @field_validator("title")
    @classmethod
    def _wishlist_title_strip(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Wishlist title cannot be empty.")
        return normalized


class WishlistUpdate(WishlistCreate):
    pass


class ProductPayload(WireModel):
    """Validated body for the add/update product endpoints."""

    name: str = Field(min_length=1)
    image_url: str = Field(min_length=1)
    price: float = Field(gt=0, allow_inf_nan=False)


class ProductDraft(WireModel):
    """Raw form input. Nothing is validated until it becomes a ProductPayload."""

    name: str | None = None
    image_url: str | None = None
    price: str | float | int | None = None

    @classmethod
    def from_product(cls, product: Product) -> "ProductDraft":
        return cls(name=product.name, image_url=product.image_url, price=str(product.price))


class InviteRequest(WireModel):
    email: EmailStr


class InviteResponse(WireModel):
    message: str = ""
