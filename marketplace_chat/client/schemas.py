"""Pydantic schemas for marketplace API request and response bodies."""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base model mapping the API's camelCase JSON onto snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class LoginRequest(APIModel):
    username: str
    password: str


class RegisterRequest(APIModel):
    username: str
    email: str
    password: str


class AuthResponse(APIModel):
    token: str
    user_id: int
    username: str
    email: str
    role: str


class Session(APIModel):
    user_id: int
    username: str
    email: str
    role: str
    token: str = Field(..., min_length=1)

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"

    @classmethod
    def from_auth(cls, auth: AuthResponse) -> "Session":
        return cls(
            user_id=auth.user_id,
            username=auth.username,
            email=auth.email,
            role=auth.role,
            token=auth.token,
        )


class Category(APIModel):
    id: int
    name: str


class Listing(APIModel):
    id: int
    title: str
    description: Optional[str] = None
    price: Decimal
    location: Optional[str] = None
    image: Optional[str] = None
    created_at: datetime
    user_id: int
    username: str
    category_id: int
    category_name: str


class ListingForm(APIModel):
    """Multipart body for creating or updating a listing."""

    title: str
    description: str = ""
    price: Decimal
    location: str = ""
    category_id: int

    def problems(self) -> Dict[str, str]:
        """Advisory copy of the server's validation rules, keyed by field."""
        errors: Dict[str, str] = {}
        if not self.title.strip():
            errors["title"] = "Title is required"
        elif len(self.title) > 200:
            errors["title"] = "Title must be less than 200 characters"
        if self.price < Decimal("0.01"):
            errors["price"] = "Price must be greater than 0"
        if len(self.location) > 200:
            errors["location"] = "Location must be less than 200 characters"
        return errors

    def to_form_fields(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "description": self.description,
            "price": str(self.price),
            "location": self.location,
            "categoryId": str(self.category_id),
        }


class UserInfo(APIModel):
    id: int
    username: str
    email: str
    role: str
    created_at: datetime


class Conversation(APIModel):
    id: int
    listing_id: int
    listing_title: str
    listing_image: Optional[str] = None
    other_user_id: int
    other_username: str
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    created_at: datetime

    @property
    def last_activity(self) -> datetime:
        return self.last_message_at or self.created_at


class Message(APIModel):
    id: int
    conversation_id: int
    sender_id: int
    sender_username: str
    content: str
    sent_at: datetime

    def sort_key(self):
        """Chronological order; equal timestamps fall back to id."""
        # Naive timestamps are local wall-clock time, as the API sends them.
        return (self.sent_at.astimezone(timezone.utc), self.id)


class MessageCreate(APIModel):
    content: str


class ErrorBody(APIModel):
    timestamp: Optional[str] = None
    message: Optional[str] = None
    status: Optional[int] = None
    errors: Optional[Dict[str, str]] = None
