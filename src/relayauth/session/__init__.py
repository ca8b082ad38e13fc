"""Authentication/publication session over one relay connection.

The session layer is the top of the DAG, depending on
[relayauth.core][relayauth.core], [relayauth.utils][relayauth.utils] and
[relayauth.models][relayauth.models].

Attributes:
    RelayAuthSession: NIP-42 handshake and kind 30078 publication state
        machine. See [RelayAuthSession][relayauth.session.session.RelayAuthSession].
    SessionConfig: Relay URL, timeouts and trigger subscription.
    ClientConfig: CLI configuration (session plus signing key).
    MessageDispatcher: Ordered predicate/handler routing of inbound frames.
    CorrelationSlot: Single in-flight record awaiting its ``OK``.
    AuthClient: Observable wrapper reporting failures as state.

Examples:
    ```python
    from relayauth.session import RelayAuthSession, SessionConfig
    from relayauth.utils.signer import KeysSigner, SignerAdapter

    config = SessionConfig(relay_url="wss://relay.example.com")
    async with RelayAuthSession(config, SignerAdapter(KeysSigner(keys))) as session:
        await session.authenticate()
        await session.publish('{"theme": "dark"}', d_tag="settings")
    ```
"""

from .config import ClientConfig, SessionConfig
from .correlation import CorrelationSlot
from .dispatcher import MessageDispatcher, Route
from .observable import AuthClient, AuthState
from .session import RelayAuthSession, SessionState, SessionStatus


__all__ = [
    "AuthClient",
    "AuthState",
    "ClientConfig",
    "CorrelationSlot",
    "MessageDispatcher",
    "RelayAuthSession",
    "Route",
    "SessionConfig",
    "SessionState",
    "SessionStatus",
]
