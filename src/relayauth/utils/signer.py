"""Signer Adapter around an external Nostr signing capability.

The session never touches private keys. It talks to a
[SignerAdapter][relayauth.utils.signer.SignerAdapter], which delegates to
whatever implements [ExternalSigner][relayauth.utils.signer.ExternalSigner]
(the NIP-07 shape: ``get_public_key()`` and ``sign_event(event)``) and
turns the capability's output into a checked
[SignedRecord][relayauth.models.record.SignedRecord].

The adapter holds no state of its own and performs no retries; it is safe
to share between sessions.

See Also:
    [KeysSigner][relayauth.utils.signer.KeysSigner]: Local ``ExternalSigner``
        backed by ``nostr_sdk.Keys``.
    [RelayAuthSession][relayauth.session.session.RelayAuthSession]: The
        consumer of the adapter.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from nostr_sdk import NostrSigner, UnsignedEvent

from relayauth.core.exceptions import RelayAuthError, SignerUnavailable, SigningRejected
from relayauth.models._validation import validate_hex
from relayauth.models.record import SignedRecord, UnsignedRecord, compute_record_id


if TYPE_CHECKING:
    from nostr_sdk import Keys


logger = logging.getLogger(__name__)


@runtime_checkable
class ExternalSigner(Protocol):
    """The signing capability boundary (NIP-07 ``window.nostr`` shape)."""

    async def get_public_key(self) -> str:
        """Return the hex public key of the signing identity."""
        ...

    async def sign_event(self, event: dict[str, Any]) -> dict[str, Any]:
        """Sign an event template, returning it with ``id`` and ``sig`` added."""
        ...


class KeysSigner:
    """``ExternalSigner`` backed by an in-process ``nostr_sdk.Keys``.

    Examples:
        ```python
        from relayauth.utils.keys import load_keys_from_env

        adapter = SignerAdapter(KeysSigner(load_keys_from_env("PRIVATE_KEY")))
        ```
    """

    def __init__(self, keys: Keys) -> None:
        self._keys = keys
        self._signer = NostrSigner.keys(keys)

    async def get_public_key(self) -> str:
        return self._keys.public_key().to_hex()

    async def sign_event(self, event: dict[str, Any]) -> dict[str, Any]:
        # Tags and created_at pass through verbatim.
        template = {
            "id": compute_record_id(
                event["pubkey"], event["created_at"], event["kind"], event["tags"], event["content"]
            ),
            "pubkey": event["pubkey"],
            "created_at": event["created_at"],
            "kind": event["kind"],
            "tags": [list(tag) for tag in event["tags"]],
            "content": event["content"],
        }
        unsigned = UnsignedEvent.from_json(json.dumps(template, ensure_ascii=False))
        signed = await self._signer.sign_event(unsigned)
        return json.loads(signed.as_json())


class SignerAdapter:
    """Checked access to an external signing capability.

    Args:
        signer: The capability, or ``None`` when the host has none (the
            Python equivalent of a browser without a NIP-07 extension).

    Examples:
        ```python
        adapter = SignerAdapter(KeysSigner(keys))
        identity = await adapter.get_identity()
        signed = await adapter.sign(build_publish_record(identity, "hi", "note-1"))
        ```
    """

    def __init__(self, signer: ExternalSigner | None) -> None:
        self._signer = signer

    @property
    def available(self) -> bool:
        """Whether a signing capability is present."""
        return self._signer is not None

    async def get_identity(self) -> str:
        """Return the hex public key of the signing identity.

        Raises:
            SignerUnavailable: If no capability is present, it fails, or it
                returns something other than a 64-char lowercase hex key.
        """
        if self._signer is None:
            raise SignerUnavailable(
                "No signer available: configure an external signer (NIP-07) or a local key"
            )
        try:
            pubkey = await self._signer.get_public_key()
        except RelayAuthError:
            raise
        except Exception as e:  # Intentionally broad: external capability may raise anything
            raise SignerUnavailable(f"Signer did not provide a public key: {e}") from e

        try:
            validate_hex(pubkey, "public key")
        except (TypeError, ValueError) as e:
            raise SignerUnavailable(f"Signer returned an invalid public key: {e}") from e
        return pubkey

    async def sign(self, record: UnsignedRecord) -> SignedRecord:
        """Sign *record* through the external capability.

        The capability's output must carry exactly the submitted fields and
        an ``id`` that matches them; otherwise the relay would correlate its
        answer to something other than what the caller built.

        Raises:
            SignerUnavailable: If no capability is present.
            SigningRejected: If the capability refuses or fails, or returns a
                malformed or altered record.
        """
        if self._signer is None:
            raise SignerUnavailable("No signer available to sign the record")
        try:
            result = await self._signer.sign_event(record.to_dict())
        except RelayAuthError:
            raise
        except Exception as e:  # Intentionally broad: external capability may raise anything
            raise SigningRejected(f"Signer refused to sign kind {record.kind}: {e}") from e

        try:
            signed = SignedRecord.from_dict(result)
        except (TypeError, ValueError) as e:
            raise SigningRejected(f"Signer returned a malformed record: {e}") from e

        if signed.record != record:
            raise SigningRejected("Signer returned a record that differs from the one submitted")
        if not signed.has_valid_id():
            raise SigningRejected(f"Signer returned an id that does not match the record: {signed.id}")

        logger.debug("record_signed kind=%s id=%s", record.kind, signed.id)
        return signed
