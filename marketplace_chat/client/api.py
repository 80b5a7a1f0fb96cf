"""HTTP API client for interacting with the marketplace server."""
import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from .config import REQUEST_TIMEOUT
from .schemas import (
    AuthResponse,
    Category,
    Conversation,
    ErrorBody,
    Listing,
    ListingForm,
    LoginRequest,
    Message,
    MessageCreate,
    RegisterRequest,
    UserInfo,
)
from .session import SessionStore


class APIError(Exception):
    """A request that did not produce a usable response."""

    def __init__(self, message: str, status: Optional[int] = None, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.field_errors = field_errors or {}


class AuthError(APIError):
    """Missing or rejected credentials (401/403)."""


class NotFoundError(APIError):
    pass


def _error_from_response(resp: requests.Response) -> APIError:
    try:
        body = ErrorBody.model_validate(resp.json())
    except (ValueError, ValidationError):
        body = ErrorBody()
    message = body.message or resp.reason or f"HTTP {resp.status_code}"
    if resp.status_code in (401, 403):
        cls = AuthError
    elif resp.status_code == 404:
        cls = NotFoundError
    else:
        cls = APIError
    return cls(message, status=resp.status_code, field_errors=body.errors)


class APIClient:
    def __init__(self, base_url: str, session: Optional[SessionStore] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        token = self.session.token if self.session else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        try:
            resp = requests.request(
                method, f"{self.base_url}{path}", headers=self._headers(), timeout=REQUEST_TIMEOUT, **kwargs
            )
        except requests.RequestException as exc:
            raise APIError(f"Could not reach server: {exc}") from exc
        if not resp.ok:
            raise _error_from_response(resp)
        return resp

    def _send_listing(self, method: str, path: str, form: ListingForm, image: Optional[Path]) -> Listing:
        # Fields go in as (None, value) parts so the body is multipart even without a file.
        parts: Dict[str, Any] = {name: (None, value) for name, value in form.to_form_fields().items()}
        if image is None:
            return Listing.model_validate(self._request(method, path, files=parts).json())
        content_type = mimetypes.guess_type(image.name)[0] or "application/octet-stream"
        with image.open("rb") as fh:
            parts["imageFile"] = (image.name, fh, content_type)
            resp = self._request(method, path, files=parts)
        return Listing.model_validate(resp.json())

    # Auth

    def login(self, username: str, password: str) -> AuthResponse:
        payload = LoginRequest(username=username, password=password).model_dump(by_alias=True)
        resp = self._request("POST", "/api/auth/login", json=payload)
        return AuthResponse.model_validate(resp.json())

    def register(self, username: str, email: str, password: str) -> AuthResponse:
        payload = RegisterRequest(username=username, email=email, password=password).model_dump(by_alias=True)
        resp = self._request("POST", "/api/auth/register", json=payload)
        return AuthResponse.model_validate(resp.json())

    # Listings and categories

    def list_listings(self, category_id: Optional[int] = None, search: Optional[str] = None) -> List[Listing]:
        params: Dict[str, Any] = {}
        if category_id:
            params["categoryId"] = category_id
        if search:
            params["search"] = search
        resp = self._request("GET", "/api/listings", params=params)
        return [Listing.model_validate(item) for item in resp.json()]

    def get_listing(self, listing_id: int) -> Listing:
        return Listing.model_validate(self._request("GET", f"/api/listings/{listing_id}").json())

    def my_listings(self) -> List[Listing]:
        resp = self._request("GET", "/api/listings/my")
        return [Listing.model_validate(item) for item in resp.json()]

    def create_listing(self, form: ListingForm, image: Optional[Path] = None) -> Listing:
        return self._send_listing("POST", "/api/listings", form, image)

    def update_listing(self, listing_id: int, form: ListingForm, image: Optional[Path] = None) -> Listing:
        return self._send_listing("PUT", f"/api/listings/{listing_id}", form, image)

    def delete_listing(self, listing_id: int) -> None:
        self._request("DELETE", f"/api/listings/{listing_id}")

    def list_categories(self) -> List[Category]:
        resp = self._request("GET", "/api/categories")
        return [Category.model_validate(item) for item in resp.json()]

    # Messaging

    def list_conversations(self) -> List[Conversation]:
        resp = self._request("GET", "/api/messages/conversations")
        return [Conversation.model_validate(item) for item in resp.json()]

    def get_conversation(self, conversation_id: int) -> Conversation:
        resp = self._request("GET", f"/api/messages/conversations/{conversation_id}")
        return Conversation.model_validate(resp.json())

    def start_conversation(self, listing_id: int) -> Conversation:
        """Open (or reuse) the conversation with the seller of a listing."""
        resp = self._request("POST", "/api/messages/conversations", params={"listingId": listing_id})
        return Conversation.model_validate(resp.json())

    def get_messages(self, conversation_id: int) -> List[Message]:
        resp = self._request("GET", f"/api/messages/conversations/{conversation_id}/messages")
        return [Message.model_validate(item) for item in resp.json()]

    def send_message(self, conversation_id: int, content: str) -> Message:
        payload = MessageCreate(content=content).model_dump(by_alias=True)
        resp = self._request("POST", f"/api/messages/conversations/{conversation_id}/messages", json=payload)
        return Message.model_validate(resp.json())

    # Admin

    def admin_list_users(self) -> List[UserInfo]:
        resp = self._request("GET", "/api/admin/users")
        return [UserInfo.model_validate(item) for item in resp.json()]

    def admin_delete_listing(self, listing_id: int) -> None:
        self._request("DELETE", f"/api/admin/listings/{listing_id}")

    # Static assets

    def image_url(self, filename: str) -> str:
        return f"{self.base_url}/uploads/{filename}"

    def fetch_image(self, filename: str) -> bytes:
        return self._request("GET", f"/uploads/{filename}").content
