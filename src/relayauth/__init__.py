r"""relayauth -- NIP-42 relay authentication and event publication client.

Proves control of a Nostr identity to a single relay (NIP-42 challenge and
signed kind 22242 proof), then publishes kind 30078 parameterized
replaceable events on the same authenticated connection.

Imports flow strictly downward through a diamond DAG:

```text
              session          Handshake/publish state machine
             /   |   \
          core   |   utils     Exceptions, logging, YAML / signer, transport
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Records, wire codec and constants. Depends only on stdlib.
    core: Exceptions, structured logging, YAML loading.
    utils: Signer adapter, key loading, WebSocket transport.
    session: [RelayAuthSession][relayauth.session.session.RelayAuthSession],
        its configuration, and the [AuthClient][relayauth.session.observable.AuthClient]
        observable wrapper.

Note:
    Top-level imports (``from relayauth import RelayAuthSession``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("relayauth")

__all__ = [
    "AuthClient",
    "AuthState",
    "ClientConfig",
    "KeysSigner",
    "Logger",
    "RelayAuthError",
    "RelayAuthSession",
    "SessionConfig",
    "SessionState",
    "SessionStatus",
    "SignedRecord",
    "SignerAdapter",
    "UnsignedRecord",
    "WebSocketTransport",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "Logger": ("relayauth.core", "Logger"),
    "RelayAuthError": ("relayauth.core", "RelayAuthError"),
    "SignedRecord": ("relayauth.models", "SignedRecord"),
    "UnsignedRecord": ("relayauth.models", "UnsignedRecord"),
    "KeysSigner": ("relayauth.utils.signer", "KeysSigner"),
    "SignerAdapter": ("relayauth.utils.signer", "SignerAdapter"),
    "WebSocketTransport": ("relayauth.utils.transport", "WebSocketTransport"),
    "AuthClient": ("relayauth.session", "AuthClient"),
    "AuthState": ("relayauth.session", "AuthState"),
    "ClientConfig": ("relayauth.session", "ClientConfig"),
    "RelayAuthSession": ("relayauth.session", "RelayAuthSession"),
    "SessionConfig": ("relayauth.session", "SessionConfig"),
    "SessionState": ("relayauth.session", "SessionState"),
    "SessionStatus": ("relayauth.session", "SessionStatus"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'relayauth' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
