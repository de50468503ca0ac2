"""
NIP-01 wire messages.

Client-to-relay messages are built as compact JSON strings:

```text
["EVENT", <event>]
["REQ", <subscription_id>, <filter>, ...]
["CLOSE", <subscription_id>]
["PING"]
```

Relay-to-client messages are parsed into small frozen dataclasses by
[parse_relay_message()][nostrkit.models.message.parse_relay_message]:

```text
["EVENT", <subscription_id>, <event>]        -> EventMessage
["NOTICE", <message>]                        -> NoticeMessage
["EOSE", <subscription_id>]                  -> EoseMessage
["OK", <event_id>, <accepted>, <message>]    -> OkMessage
["CLOSED", <subscription_id>, <message>?]    -> ClosedMessage
[<anything else>, ...]                       -> UnknownMessage
```

Anything that is not a JSON array whose first element is a string, or a
known type with missing or mistyped fields, raises
[MalformedMessageError][nostrkit.exceptions.MalformedMessageError].
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, TypeAlias

from nostrkit.exceptions import MalformedMessageError

from .constants import ClientMessageType, RelayMessageType
from .event import Event
from .filter import FilterLike, serialize_filter


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Client -> relay
# ---------------------------------------------------------------------------


def event_message(event: Event) -> str:
    """Build ``["EVENT", event]``."""
    return _dumps([ClientMessageType.EVENT.value, event.to_dict()])


def req_message(subscription_id: str, filters: Iterable[FilterLike]) -> str:
    """Build ``["REQ", subscription_id, filter, ...]``."""
    return _dumps(
        [
            ClientMessageType.REQ.value,
            subscription_id,
            *(serialize_filter(f) for f in filters),
        ]
    )


def close_message(subscription_id: str) -> str:
    """Build ``["CLOSE", subscription_id]``."""
    return _dumps([ClientMessageType.CLOSE.value, subscription_id])


def ping_message() -> str:
    """Build the keepalive probe ``["PING"]``."""
    return _dumps([ClientMessageType.PING.value])


# ---------------------------------------------------------------------------
# Relay -> client
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EventMessage:
    """An event delivered for a subscription."""

    subscription_id: str
    event: Event


@dataclass(frozen=True, slots=True)
class NoticeMessage:
    """A human-readable notice from the relay."""

    message: str


@dataclass(frozen=True, slots=True)
class EoseMessage:
    """End of stored events for a subscription."""

    subscription_id: str


@dataclass(frozen=True, slots=True)
class OkMessage:
    """Acknowledgement of a published event."""

    event_id: str
    accepted: bool
    message: str = ""


@dataclass(frozen=True, slots=True)
class ClosedMessage:
    """The relay closed a subscription on its own initiative."""

    subscription_id: str
    message: str = ""


@dataclass(frozen=True, slots=True)
class UnknownMessage:
    """A well-formed message with a type this client does not handle."""

    type: str
    args: tuple[Any, ...]


RelayMessage: TypeAlias = (
    EventMessage | NoticeMessage | EoseMessage | OkMessage | ClosedMessage | UnknownMessage
)


def _arg(args: list[Any], index: int, expected: type, name: str, msg_type: str) -> Any:
    if len(args) <= index:
        raise MalformedMessageError(f"{msg_type} message is missing {name}")
    value = args[index]
    if not isinstance(value, expected):
        raise MalformedMessageError(
            f"{msg_type} {name} must be {expected.__name__}, got {type(value).__name__}"
        )
    return value


def parse_relay_message(data: str | bytes) -> RelayMessage:
    """Parse one inbound relay payload.

    Args:
        data: Raw WebSocket text (or UTF-8 bytes).

    Returns:
        The typed message. Unknown message types yield
        [UnknownMessage][nostrkit.models.message.UnknownMessage].

    Raises:
        MalformedMessageError: If the payload is not a JSON array starting
            with a string, or a known message has missing/mistyped fields.
    """
    try:
        decoded = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise MalformedMessageError(f"invalid JSON: {e}") from None
    except RecursionError:
        raise MalformedMessageError("invalid JSON: nesting too deep") from None

    if not isinstance(decoded, list) or not decoded or not isinstance(decoded[0], str):
        raise MalformedMessageError("message must be a JSON array starting with a type string")

    msg_type, args = decoded[0], decoded[1:]

    if msg_type == RelayMessageType.EVENT:
        sub_id = _arg(args, 0, str, "subscription id", msg_type)
        if len(args) < 2:
            raise MalformedMessageError("EVENT message is missing event")
        return EventMessage(sub_id, Event.from_dict(args[1]))

    if msg_type == RelayMessageType.NOTICE:
        return NoticeMessage(_arg(args, 0, str, "message", msg_type))

    if msg_type == RelayMessageType.EOSE:
        return EoseMessage(_arg(args, 0, str, "subscription id", msg_type))

    if msg_type == RelayMessageType.OK:
        event_id = _arg(args, 0, str, "event id", msg_type)
        accepted = _arg(args, 1, bool, "accepted flag", msg_type)
        message = _arg(args, 2, str, "message", msg_type) if len(args) > 2 else ""
        return OkMessage(event_id, accepted, message)

    if msg_type == RelayMessageType.CLOSED:
        sub_id = _arg(args, 0, str, "subscription id", msg_type)
        message = _arg(args, 1, str, "message", msg_type) if len(args) > 1 else ""
        return ClosedMessage(sub_id, message)

    return UnknownMessage(msg_type, tuple(args))
