"""Shared constants for the models layer.

Defines the event kinds, wire message types, and protocol defaults used
by the record builders, the wire codec, and the session. Placing them here
keeps the models layer free of imports from the rest of the package.

See Also:
    [relayauth.models.record][]: Builds records of the kinds defined here.
    [relayauth.models.message][]: Encodes and parses the message types
        defined here.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Any, Final


class EventKind(IntEnum):
    """Nostr event kinds produced by the client.

    Attributes:
        CLIENT_AUTH: Kind 22242 -- NIP-42 client authentication proof.
            Ephemeral, never stored by relays.
        APP_SPECIFIC_DATA: Kind 30078 -- NIP-78 arbitrary application data.
            Parameterized replaceable: the ``d`` tag value identifies the
            logical resource, newer ``created_at`` replaces older ones.
    """

    CLIENT_AUTH = 22_242
    APP_SPECIFIC_DATA = 30_078


class MessageType(StrEnum):
    """First element of every NIP-01 wire message.

    Attributes:
        REQ: Client subscription request.
        CLOSE: Client subscription close.
        EVENT: Client publish (2 elements) or relay delivery (3 elements).
        AUTH: Relay challenge (string) or client proof (signed event).
        OK: Relay acceptance/rejection of a submitted event.
        CLOSED: Relay-side subscription termination with a reason.
        EOSE: End of stored events for a subscription.
        NOTICE: Human-readable relay message.
    """

    REQ = "REQ"
    CLOSE = "CLOSE"
    EVENT = "EVENT"
    AUTH = "AUTH"
    OK = "OK"
    CLOSED = "CLOSED"
    EOSE = "EOSE"
    NOTICE = "NOTICE"


DEFAULT_TIMEOUT: Final[float] = 10.0
"""Seconds allowed for a whole handshake or a single publish round trip."""

DEFAULT_SUBSCRIPTION_ID: Final[str] = "auth_trigger"

DEFAULT_TRIGGER_FILTER: Final[dict[str, Any]] = {"kinds": [1], "limit": 1}
"""Filter of the trigger ``REQ``; its results are ignored."""

AUTH_REQUIRED_PREFIX: Final[str] = "auth-required:"
"""NIP-42 machine-readable prefix on ``CLOSED`` and ``OK`` messages."""

DISTINGUISHING_TAG: Final[str] = "d"
RELAY_TAG: Final[str] = "relay"
CHALLENGE_TAG: Final[str] = "challenge"
