"""HTTP client for the Chaos Organizer backend REST API."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from chaos_sync.config import settings
from chaos_sync.errors import TransportError
from chaos_sync.messages.models import FileBlob, MessageItem, PageResult
from chaos_sync.messages.schemas import MessagePageSchema, MessageSchema

logger = logging.getLogger(__name__)

ALL_CATEGORY = "all"
FAVORITES_CATEGORY = "favorites"

# Sidebar category -> message type filter of the search endpoint
CATEGORY_TYPES = {
    "images": "image",
    "videos": "video",
    "audio": "audio",
    "files": "file",
    "links": "link",
}


class MessagesApiClient:
    """
    Client for the message endpoints of the backend.

    Every failure (timeout, connection error, non-2xx status, bad JSON) is
    raised as TransportError so callers have a single error type to route.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Backend URL (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            transport: Custom httpx transport (for testing)
        """
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": "ChaosSync/0.1.0"},
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout on {method} {path}")
            raise TransportError(f"Timeout on {method} {path}") from e
        except httpx.HTTPError as e:
            logger.error(f"Connection error on {method} {path}: {e}")
            raise TransportError(
                f"Could not reach the server ({self.base_url}). Make sure the backend is running."
            ) from e

        if response.is_error:
            logger.error(f"{method} {path} failed: HTTP {response.status_code}")
            raise TransportError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )
        return response

    async def _request_json(self, method: str, path: str, **kwargs) -> Any:
        response = await self._request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON response from {path}") from e

    def _parse_page(self, data: Any) -> PageResult:
        try:
            return MessagePageSchema.model_validate(data).to_page()
        except ValidationError as e:
            raise TransportError(f"Unexpected page payload: {e.error_count()} validation errors") from e

    def _parse_message(self, data: Any) -> MessageItem:
        try:
            return MessageSchema.model_validate(data).to_item()
        except ValidationError as e:
            raise TransportError(f"Unexpected message payload: {e.error_count()} validation errors") from e

    async def get_messages(self, limit: int = 10, offset: int = 0) -> PageResult:
        """
        Fetch one page of the full history.

        Args:
            limit: Number of messages
            offset: Number of newest messages to skip (0 = latest)

        Returns:
            PageResult with items newest first
        """
        data = await self._request_json("GET", "/api/messages", params={"limit": limit, "offset": offset})
        return self._parse_page(data)

    async def search_messages(self, query: str = "", **filters) -> PageResult:
        """
        Search/filter messages.

        Args:
            query: Free-text query (omitted when empty)
            **filters: type, dateFrom, dateTo, favorite (empty values are dropped)
        """
        params = {}
        if query:
            params["q"] = query
        for key, value in filters.items():
            if value is not None and value != "":
                params[key] = str(value)
        data = await self._request_json("GET", "/api/search/messages", params=params)
        return self._parse_page(data)

    async def fetch_page(self, category_id: str, limit: int, offset: int) -> PageResult:
        """
        Fetch a page of a sidebar category.

        Only the full history is paginated server-side; filtered categories
        come from the search endpoint and are sliced locally.
        """
        if category_id == FAVORITES_CATEGORY:
            result = await self.search_messages("", favorite="true")
        elif category_id in CATEGORY_TYPES:
            result = await self.search_messages("", type=CATEGORY_TYPES[category_id])
        else:
            return await self.get_messages(limit, offset)

        return PageResult(items=result.items[offset:offset + limit], total=result.total)

    async def send_message(
        self,
        content: str,
        files: list[FileBlob] | None = None,
        encrypted: bool = False,
        author: str | None = None,
    ) -> MessageItem:
        """
        Post a new message as multipart form data.

        Args:
            content: Message text (ciphertext when encrypted)
            files: Attachments, uploaded under the `files` field
            encrypted: Whether content and files are encrypted
            author: Author name (defaults to settings)

        Returns:
            The message as stored by the server
        """
        fields = {
            "author": author or settings.author,
            "content": content,
            "encrypted": str(encrypted).lower(),
            "pinned": "false",
            "favorite": "false",
        }
        # Plain fields go in as filename-less parts so the body is multipart even without files
        parts = [(name, (None, value)) for name, value in fields.items()]
        parts += [("files", (f.name, f.data, f.mime_type)) for f in files or []]

        data = await self._request_json("POST", "/api/messages", files=parts)
        if isinstance(data, dict) and isinstance(data.get("message"), dict):
            # Replies that carry a bot answer wrap the sent message
            data = data["message"]
        item = self._parse_message(data)
        logger.info(f"Sent message {item.id} ({len(files or [])} files, encrypted={encrypted})")
        return item

    async def pin_message(self, message_id: Any, pinned: bool = True) -> MessageItem:
        """Pin or unpin a message; returns the server-confirmed entity."""
        data = await self._request_json("PATCH", f"/api/messages/{message_id}/pin", json={"pinned": pinned})
        return self._parse_message(data)

    async def favorite_message(self, message_id: Any, favorite: bool = True) -> MessageItem:
        """Add or remove a message from favorites; returns the server-confirmed entity."""
        data = await self._request_json(
            "PATCH", f"/api/messages/{message_id}/favorite", json={"favorite": favorite}
        )
        return self._parse_message(data)

    async def delete_message(self, message_id: Any) -> None:
        await self._request("DELETE", f"/api/messages/{message_id}")
        logger.info(f"Deleted message {message_id}")

    async def download_file(self, file_id: Any) -> bytes:
        """Download an attachment's stored bytes (ciphertext for encrypted messages)."""
        response = await self._request("GET", f"/api/files/{file_id}")
        return response.content
