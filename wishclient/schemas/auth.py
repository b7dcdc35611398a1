from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SessionStatus(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class Identity(WireModel):
    id: int | str = Field(validation_alias=AliasChoices("id", "userId"))
    username: str
    email: str

    model_config = ConfigDict(frozen=True)


class LoginRequest(WireModel):
    email_or_username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(WireModel):
    token: str = Field(min_length=1)
    user_id: int | str
    username: str
    email: str

    def to_identity(self) -> Identity:
        return Identity(id=self.user_id, username=self.username, email=self.email)


class SignupRequest(WireModel):
    username: str = Field(min_length=1, max_length=80)
    email: EmailStr
    # the server hashes it; the field name is part of the wire contract
    password_hash: str = Field(min_length=1)

    @field_validator("username")
    @classmethod
    def _username_strip(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Username cannot be empty")
        return normalized
