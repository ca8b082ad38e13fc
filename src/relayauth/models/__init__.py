"""Pure frozen dataclasses with zero I/O for Nostr records and wire messages.

The models layer is the foundation of the package. It has **no
dependencies** on any other relayauth package -- only the Python standard
library. Every model uses ``@dataclass(frozen=True, slots=True)`` and all
validation happens in ``__post_init__`` so invalid instances never escape
the constructor.

Attributes:
    UnsignedRecord: Event template (kind, created_at, tags, content, pubkey).
    SignedRecord: Unsigned record plus NIP-01 ``id`` and ``sig``.
    build_proof_record: NIP-42 kind 22242 proof builder.
    build_publish_record: Kind 30078 parameterized replaceable builder.
    parse_relay_message: Inbound frame parser returning typed messages.
    EventKind: Event kinds the client produces.
    MessageType: First element of every wire frame.

See Also:
    [relayauth.models.record][]: Record models, builders and id computation.
    [relayauth.models.message][]: Wire codec.
    [relayauth.models.constants][]: Shared constants and enumerations.
"""

from .constants import (
    AUTH_REQUIRED_PREFIX,
    DEFAULT_SUBSCRIPTION_ID,
    DEFAULT_TIMEOUT,
    DEFAULT_TRIGGER_FILTER,
    EventKind,
    MessageType,
)
from .message import (
    AuthChallenge,
    ClosedNotice,
    EndOfStoredEvents,
    EventDelivery,
    Notice,
    OkResult,
    RelayMessage,
    encode_auth,
    encode_event,
    encode_req,
    parse_relay_message,
)
from .record import (
    SignedRecord,
    UnsignedRecord,
    build_proof_record,
    build_publish_record,
    compute_record_id,
)


__all__ = [
    "AUTH_REQUIRED_PREFIX",
    "DEFAULT_SUBSCRIPTION_ID",
    "DEFAULT_TIMEOUT",
    "DEFAULT_TRIGGER_FILTER",
    "AuthChallenge",
    "ClosedNotice",
    "EndOfStoredEvents",
    "EventDelivery",
    "EventKind",
    "MessageType",
    "Notice",
    "OkResult",
    "RelayMessage",
    "SignedRecord",
    "UnsignedRecord",
    "build_proof_record",
    "build_publish_record",
    "compute_record_id",
    "encode_auth",
    "encode_event",
    "encode_req",
    "parse_relay_message",
]
