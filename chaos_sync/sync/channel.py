"""
Live Update Channel - Push connection to the backend.

Receives out-of-band mutation events (created/updated/deleted) over a
websocket and hands them to the consumer through an asyncio.Queue. Reconnects
with exponential backoff when the connection drops, up to a fixed number of
attempts.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

import websockets
from pydantic import ValidationError

from chaos_sync.config import Settings, settings
from chaos_sync.messages.schemas import (
    LEGACY_EVENT_NAMES,
    MessageSchema,
    PushEvent,
    PushEventType,
    PushFrame,
)

logger = logging.getLogger(__name__)

ConnectFn = Callable[[str], Awaitable[Any]]


class ChannelState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class ReconnectPolicy:
    """Exponential backoff settings for the push channel (seconds)."""

    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0
    max_attempts: int = 10

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "ReconnectPolicy":
        source = source or settings
        return cls(
            base_delay=source.reconnect_base_delay,
            multiplier=source.reconnect_multiplier,
            max_delay=source.reconnect_max_delay,
            max_attempts=source.reconnect_max_attempts,
        )

    def delay_for(self, attempts: int) -> float:
        """Delay before the reconnect that follows `attempts` earlier attempts."""
        return min(self.base_delay * (self.multiplier ** attempts), self.max_delay)


def parse_frame(raw: str | bytes) -> PushEvent | None:
    """
    Parse a push frame into a PushEvent.

    Returns None for malformed frames and unknown event types.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Dropping push frame: not valid UTF-8")
            return None

    try:
        frame = PushFrame.model_validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Dropping malformed push frame: {e.error_count()} errors")
        return None

    try:
        event_type = PushEventType(frame.event)
    except ValueError:
        event_type = LEGACY_EVENT_NAMES.get(frame.event)
    if event_type is None:
        logger.debug(f"Ignoring unknown push event {frame.event!r}")
        return None

    payload = frame.payload
    message_id = payload.get("id") if isinstance(payload, dict) else None

    message = None
    if event_type != PushEventType.DELETED and message_id is not None:
        try:
            message = MessageSchema.model_validate(payload)
        except ValidationError:
            logger.debug(f"Push {event_type.value} payload for {message_id} is not a complete message")

    return PushEvent(type=event_type, message_id=message_id, message=message, raw_payload=payload)


class LiveUpdateChannel:
    """
    Websocket client with a connect/reconnect state machine.

    Usage:
        channel = LiveUpdateChannel(settings.ws_url)
        channel.connect()
        event = await channel.events.get()
        ...
        await channel.disconnect()
    """

    def __init__(
        self,
        url: str | None = None,
        policy: ReconnectPolicy | None = None,
        connect_fn: ConnectFn | None = None,
        on_give_up: Callable[[], None] | None = None,
    ):
        """
        Initialize the channel.

        Args:
            url: Websocket URL (defaults to settings.ws_url)
            policy: Reconnect backoff (defaults to settings)
            connect_fn: Async url -> connection; the connection must support
                `async for` over text frames and `await close()`
            on_give_up: Called once when the reconnect attempt cap is reached
        """
        self.url = url or settings.ws_url
        self.policy = policy or ReconnectPolicy.from_settings()
        self._connect_fn = connect_fn or websockets.connect
        self.on_give_up = on_give_up

        self.events: asyncio.Queue[PushEvent] = asyncio.Queue()
        self.state = ChannelState.IDLE
        self.reconnect_attempts = 0
        self.last_reconnect_delay: float | None = None

        self._ws: Any = None
        self._task: asyncio.Task | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._stopped = False
        self._gave_up = False

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    @property
    def gave_up(self) -> bool:
        return self._gave_up

    def connect(self) -> None:
        """Open the connection unless it is already connecting/open or the channel was disconnected."""
        if self._stopped:
            logger.debug("Channel disconnected, ignoring connect()")
            return
        if self.state in (ChannelState.CONNECTING, ChannelState.OPEN):
            return

        self.state = ChannelState.CONNECTING
        self._task = asyncio.create_task(self._run())

    async def _run(self):
        """Open the transport and read frames until it closes."""
        try:
            ws = await self._connect_fn(self.url)
        except Exception as e:
            logger.warning(f"Push channel connect to {self.url} failed: {e}")
            self._handle_closed()
            return

        if self._stopped:
            await ws.close()
            return

        self._ws = ws
        self.state = ChannelState.OPEN
        self.reconnect_attempts = 0
        self._gave_up = False
        logger.info(f"Push channel connected to {self.url}")

        try:
            async for raw in ws:
                event = parse_frame(raw)
                if event is not None:
                    self.events.put_nowait(event)
        except Exception as e:
            logger.warning(f"Push channel error: {e}")
        finally:
            self._ws = None

        if not self._stopped:
            logger.info("Push channel closed")
            self._handle_closed()

    def _handle_closed(self):
        self.state = ChannelState.CLOSED
        self.schedule_reconnect()

    def schedule_reconnect(self) -> None:
        """Schedule the next connect() with exponential backoff."""
        if self._stopped or self._reconnect_handle is not None:
            return

        if self.reconnect_attempts >= self.policy.max_attempts:
            if not self._gave_up:
                self._gave_up = True
                logger.warning(
                    f"Push channel gave up after {self.reconnect_attempts} reconnect attempts; "
                    "live updates are off until restart"
                )
                if self.on_give_up:
                    self.on_give_up()
            return

        delay = self.policy.delay_for(self.reconnect_attempts)
        self.reconnect_attempts += 1
        self.last_reconnect_delay = delay
        logger.info(f"Push channel reconnecting in {delay:.1f}s (attempt {self.reconnect_attempts})")

        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._on_reconnect_timer)

    def _on_reconnect_timer(self):
        self._reconnect_handle = None
        self.connect()

    async def disconnect(self) -> None:
        """Cancel any pending reconnect, close the transport, and make connect() inert."""
        self._stopped = True
        self.reconnect_attempts = self.policy.max_attempts

        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        if self._ws is not None:
            try:
                await self._ws.close()
            except Exception as e:
                logger.debug(f"Error closing push channel: {e}")

        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            self._task = None

        self.state = ChannelState.CLOSED
        logger.info("Push channel disconnected")
