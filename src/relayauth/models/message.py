"""NIP-01 / NIP-42 wire message codec.

Every frame on the relay connection is a JSON array whose first element
names the message type. Outbound frames are produced by the ``encode_*``
functions; inbound frames are parsed by
[parse_relay_message()][relayauth.models.message.parse_relay_message] into
one of the frozen dataclasses below.

Outbound:

```text
["REQ", <subscription-id>, <filter>]
["AUTH", <signed proof record>]
["EVENT", <signed record>]
```

Inbound:

```text
["AUTH", <challenge>]                        -> AuthChallenge
["OK", <event-id>, <bool>, <message>]        -> OkResult
["CLOSED", <subscription-id>, <reason>]      -> ClosedNotice
["EOSE", <subscription-id>]                  -> EndOfStoredEvents
["EVENT", <subscription-id>, <event>]        -> EventDelivery
["NOTICE", <message>]                        -> Notice
```

Note:
    Parsing is strict about shape and lenient about trailing extras: an
    ``OK`` without the message element is accepted with an empty message
    (older relays omit it), but an ``OK`` whose success flag is not a JSON
    boolean is rejected.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .constants import AUTH_REQUIRED_PREFIX, MessageType


if TYPE_CHECKING:
    from collections.abc import Mapping

    from .record import SignedRecord


@dataclass(frozen=True, slots=True)
class AuthChallenge:
    """Relay demand for NIP-42 authentication on this connection."""

    challenge: str


@dataclass(frozen=True, slots=True)
class OkResult:
    """Relay verdict on a submitted ``EVENT`` or ``AUTH`` record.

    Attributes:
        event_id: Id of the record the verdict refers to.
        accepted: ``True`` if the relay stored or accepted the record.
        message: Machine-prefixed reason, e.g. ``"blocked: spam"``.
    """

    event_id: str
    accepted: bool
    message: str = ""


@dataclass(frozen=True, slots=True)
class ClosedNotice:
    """Relay-side termination of a subscription."""

    subscription_id: str
    reason: str = ""

    @property
    def auth_required(self) -> bool:
        return self.reason.startswith(AUTH_REQUIRED_PREFIX)


@dataclass(frozen=True, slots=True)
class EndOfStoredEvents:
    subscription_id: str


@dataclass(frozen=True, slots=True)
class EventDelivery:
    """An event delivered for a subscription (raw JSON object, unverified)."""

    subscription_id: str
    event: dict[str, Any]


@dataclass(frozen=True, slots=True)
class Notice:
    message: str


RelayMessage = AuthChallenge | OkResult | ClosedNotice | EndOfStoredEvents | EventDelivery | Notice


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------


def _dumps(payload: list[Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def encode_req(subscription_id: str, event_filter: Mapping[str, Any]) -> str:
    """Encode a ``REQ`` frame with a single filter."""
    return _dumps([MessageType.REQ.value, subscription_id, dict(event_filter)])


def encode_auth(proof: SignedRecord) -> str:
    """Encode the client ``AUTH`` frame carrying a signed kind 22242 proof."""
    return _dumps([MessageType.AUTH.value, proof.to_dict()])


def encode_event(record: SignedRecord) -> str:
    """Encode the client ``EVENT`` frame publishing a signed record."""
    return _dumps([MessageType.EVENT.value, record.to_dict()])


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------


def _require_str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{what} must be a string, got {type(value).__name__}")
    return value


def _optional_str(frame: list[Any], index: int, what: str) -> str:
    if len(frame) <= index or frame[index] is None:
        return ""
    return _require_str(frame[index], what)


def parse_relay_message(raw: str | bytes) -> RelayMessage:
    """Parse one inbound frame.

    Args:
        raw: The text (or UTF-8 bytes) of a WebSocket message.

    Returns:
        The typed message.

    Raises:
        ValueError: If the frame is not JSON, not a non-empty array, has an
            unknown type, or has the wrong shape for its type.
    """
    try:
        frame = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"frame is not valid JSON: {e}") from e

    if not isinstance(frame, list) or not frame:
        raise ValueError("frame must be a non-empty JSON array")

    tag = frame[0]
    if tag == MessageType.AUTH:
        if len(frame) < 2:
            raise ValueError("AUTH frame missing challenge")
        return AuthChallenge(_require_str(frame[1], "AUTH challenge"))

    if tag == MessageType.OK:
        if len(frame) < 3:
            raise ValueError("OK frame must have at least 3 elements")
        if not isinstance(frame[2], bool):
            raise ValueError("OK success flag must be a boolean")
        return OkResult(
            event_id=_require_str(frame[1], "OK event id"),
            accepted=frame[2],
            message=_optional_str(frame, 3, "OK message"),
        )

    if tag == MessageType.CLOSED:
        if len(frame) < 2:
            raise ValueError("CLOSED frame missing subscription id")
        return ClosedNotice(
            subscription_id=_require_str(frame[1], "CLOSED subscription id"),
            reason=_optional_str(frame, 2, "CLOSED reason"),
        )

    if tag == MessageType.EOSE:
        if len(frame) < 2:
            raise ValueError("EOSE frame missing subscription id")
        return EndOfStoredEvents(_require_str(frame[1], "EOSE subscription id"))

    if tag == MessageType.EVENT:
        if len(frame) < 3 or not isinstance(frame[2], dict):
            raise ValueError("EVENT frame must carry a subscription id and an event object")
        return EventDelivery(_require_str(frame[1], "EVENT subscription id"), frame[2])

    if tag == MessageType.NOTICE:
        return Notice(_optional_str(frame, 1, "NOTICE message"))

    raise ValueError(f"unknown message type: {tag!r}")
