"""Signer adapter, key loading, and WebSocket transport.

The utils layer depends on [relayauth.models][relayauth.models] and on the
exception types in [relayauth.core.exceptions][relayauth.core.exceptions].
It provides the two external boundaries the session runs against.

Attributes:
    keys: Nostr key loading from environment variables (nsec1 bech32 or
        hex) with Pydantic validation.
    signer: [SignerAdapter][relayauth.utils.signer.SignerAdapter] over an
        [ExternalSigner][relayauth.utils.signer.ExternalSigner], plus the
        local [KeysSigner][relayauth.utils.signer.KeysSigner].
    transport: [Transport][relayauth.utils.transport.Transport] /
        [Connection][relayauth.utils.transport.Connection] protocols and
        the aiohttp [WebSocketTransport][relayauth.utils.transport.WebSocketTransport].

Examples:
    ```python
    from relayauth.utils.signer import KeysSigner, SignerAdapter
    from relayauth.utils.transport import WebSocketTransport
    ```
"""
