"""
BlankArt Notifications

Typed, in-process event bus for issuance notifications.

    from blankart.events import EventBus, TokenMinted

    bus = EventBus()

    @bus.subscribe(TokenMinted)
    def on_mint(event: TokenMinted):
        print(event.token_id, event.token_uri)

Events are immutable facts published only after the engine has committed
the state they describe. Handlers run synchronously in priority order; a
failing handler is isolated (counted and reported to ``on_error``) and can
never roll back the operation that produced the event.

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Type

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════════════
# EVENT BASE
# ════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Event:
    """Base class for all notifications."""

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type
        return data


# ════════════════════════════════════════════════════════════════════════════
# DOMAIN EVENTS
# ════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class EngineInitialized(Event):
    """Emitted once at construction with the full initial configuration."""
    controller: str = ""
    base_uri: str = ""
    mint_price: int = 0
    max_supply: int = 0
    royalty_bps: int = 0
    active: bool = True
    public_mint_enabled: bool = False


@dataclass(frozen=True)
class TokenMinted(Event):
    """Emitted once per issued token with its URI at mint time."""
    token_id: int = 0
    recipient: str = ""
    token_uri: str = ""


@dataclass(frozen=True)
class AdminChanged(Event):
    """Emitted when the controller changes an administrative parameter."""
    setting: str = ""
    old_value: Any = None
    new_value: Any = None
    changed_by: str = ""


@dataclass(frozen=True)
class MembershipChanged(Event):
    """Emitted on a direct membership grant or revocation."""
    address: str = ""
    member: bool = False


@dataclass(frozen=True)
class EpochAdded(Event):
    """Emitted when a new base-URI epoch is appended."""
    epoch_index: int = 0
    base_uri: str = ""


@dataclass(frozen=True)
class TokenUriLocked(Event):
    """Emitted when an owner freezes a token to an epoch."""
    token_id: int = 0
    epoch_index: int = 0
    token_uri: str = ""


@dataclass(frozen=True)
class Withdrawal(Event):
    """Emitted when the controller withdraws escrow."""
    recipient: str = ""
    amount: int = 0


# ════════════════════════════════════════════════════════════════════════════
# EVENT BUS
# ════════════════════════════════════════════════════════════════════════════


EventHandler = Callable[[Event], None]


@dataclass
class EventHandlerRegistration:
    """Registration for an event handler."""
    handler: EventHandler
    event_types: Set[Type[Event]]
    priority: int = 0
    filter_func: Optional[Callable[[Event], bool]] = None


class EventHandlerError(Exception):
    """Error during event handling."""
    def __init__(self, event: Event, handler: EventHandler, cause: Exception):
        self.event = event
        self.handler = handler
        self.cause = cause
        name = getattr(handler, "__name__", repr(handler))
        super().__init__(f"Handler {name} failed for {event.event_type}: {cause}")


class EventBus:
    """
    In-memory event bus for pub/sub communication.

    Thread-safe for concurrent publishing and subscribing.
    """

    def __init__(self, on_error: Optional[Callable[[EventHandlerError], None]] = None):
        self._handlers: List[EventHandlerRegistration] = []
        self._lock = threading.RLock()
        self._on_error = on_error
        self._published_count = 0
        self._handled_count = 0
        self._error_count = 0

    def subscribe(
        self,
        *event_types: Type[Event],
        priority: int = 0,
        filter_func: Optional[Callable[[Event], bool]] = None,
    ) -> Callable[[EventHandler], EventHandler]:
        """
        Decorator to subscribe a handler to event types.

        With no event types the handler receives every event.
        """
        def decorator(handler: EventHandler) -> EventHandler:
            registration = EventHandlerRegistration(
                handler=handler,
                event_types=set(event_types) if event_types else {Event},
                priority=priority,
                filter_func=filter_func,
            )
            with self._lock:
                self._handlers.append(registration)
                self._handlers.sort(key=lambda r: -r.priority)
            return handler
        return decorator

    def unsubscribe(self, handler: EventHandler) -> bool:
        """Unsubscribe a handler."""
        with self._lock:
            original_len = len(self._handlers)
            self._handlers = [r for r in self._handlers if r.handler != handler]
            return len(self._handlers) < original_len

    def publish(self, event: Event) -> None:
        """Publish an event to all matching subscribers, in priority order."""
        with self._lock:
            self._published_count += 1
            handlers_to_call = [
                r for r in self._handlers
                if any(isinstance(event, t) for t in r.event_types)
                and (r.filter_func is None or r.filter_func(event))
            ]

        for registration in handlers_to_call:
            self._call_handler(registration.handler, event)

    def _call_handler(self, handler: EventHandler, event: Event) -> None:
        try:
            handler(event)
            with self._lock:
                self._handled_count += 1
        except Exception as e:
            with self._lock:
                self._error_count += 1
            error = EventHandlerError(event, handler, e)
            logger.error("%s", error)
            if self._on_error:
                self._on_error(error)

    @property
    def metrics(self) -> Dict[str, int]:
        """Get event bus metrics."""
        with self._lock:
            return {
                "published_count": self._published_count,
                "handled_count": self._handled_count,
                "error_count": self._error_count,
                "handler_count": len(self._handlers),
            }


class EventRecorder:
    """Subscriber that keeps every event it sees, in order."""

    def __init__(self, bus: EventBus, *event_types: Type[Event]):
        self.events: List[Event] = []
        bus.subscribe(*event_types)(self.events.append)

    def of_type(self, event_type: Type[Event]) -> List[Event]:
        return [e for e in self.events if isinstance(e, event_type)]
