"""relayauth exception hierarchy.

Every failure of the signer, the transport, or the relay surfaces as a
typed exception so callers can tell "no signer", "rejected by relay",
"timed out" and "not connected" apart without parsing messages.

Exception hierarchy:

```text
RelayAuthError (base -- never raised directly)
├── ConfigurationError        -- config validation, missing keys, bad YAML
├── SignerError
│   ├── SignerUnavailable     -- no signing capability reachable
│   └── SigningRejected       -- capability present but refused the record
├── TransportError            -- socket-level failure, connection closed
├── AuthenticationError
│   ├── AuthenticationFailed  -- relay rejected the NIP-42 proof
│   └── AuthenticationTimeout -- handshake did not finish in time
├── PublishingError
│   ├── PublishFailed         -- relay rejected the event (OK false)
│   └── PublishTimeout        -- no OK for the event in time
├── OperationInProgress       -- reentrancy guard
└── NotAuthenticated          -- publish without a live authenticated session
```

See Also:
    [RelayAuthSession][relayauth.session.session.RelayAuthSession]: Raises
        the session-level errors from
        [authenticate()][relayauth.session.session.RelayAuthSession.authenticate]
        and [publish()][relayauth.session.session.RelayAuthSession.publish].
    [SignerAdapter][relayauth.utils.signer.SignerAdapter]: Raises the
        [SignerError][relayauth.core.exceptions.SignerError] subclasses.
"""

from __future__ import annotations


class RelayAuthError(Exception):
    """Base exception for all relayauth errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(RelayAuthError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Signer
# ---------------------------------------------------------------------------


class SignerError(RelayAuthError):
    """Base for failures of the external signing capability."""


class SignerUnavailable(SignerError):
    """No signing capability is reachable, so no identity can be resolved.

    Raised before any connection is opened.
    """


class SigningRejected(SignerError):
    """The signing capability is present but refused or mangled the record.

    Also raised when the signed output does not carry exactly the fields
    that were submitted, or when its ``id`` does not match them.
    """


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportError(RelayAuthError):
    """Socket-level failure: connect refused, connection dropped, send failed.

    Always leaves the session closed and unauthenticated.
    """


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthenticationError(RelayAuthError):
    """Base for NIP-42 handshake failures."""


class AuthenticationFailed(AuthenticationError):
    """The relay answered the proof event with ``OK false``."""


class AuthenticationTimeout(AuthenticationError, TimeoutError):
    """The whole handshake, from connect to acceptance, exceeded the timeout."""


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


class PublishingError(RelayAuthError):
    """Base for event publication failures."""


class PublishFailed(PublishingError):
    """The relay answered the event with ``OK false``.

    Attributes:
        relay_message: The raw message string from the ``OK`` frame
            (e.g. ``"rate-limited"``).
    """

    def __init__(self, relay_message: str) -> None:
        self.relay_message = relay_message
        super().__init__(f"Publish rejected by relay: {relay_message or 'unknown error'}")


class PublishTimeout(PublishingError, TimeoutError):
    """No ``OK`` for the in-flight event arrived in time.

    The connection stays open and authenticated.
    """


# ---------------------------------------------------------------------------
# Session guards
# ---------------------------------------------------------------------------


class OperationInProgress(RelayAuthError):
    """A second handshake or publish was started while one is pending."""


class NotAuthenticated(RelayAuthError):
    """Publish attempted without a live authenticated connection."""
