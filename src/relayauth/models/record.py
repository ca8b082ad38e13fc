"""
Immutable Nostr records before and after signing.

An [UnsignedRecord][relayauth.models.record.UnsignedRecord] carries the five
fields a signer commits to (``pubkey``, ``created_at``, ``kind``, ``tags``,
``content``). A [SignedRecord][relayauth.models.record.SignedRecord] adds
the NIP-01 ``id`` (SHA-256 of the canonical serialization) and the Schnorr
``sig``. Both are frozen, and tags are stored as nested tuples, so a record
cannot change between being built and being sent to the relay.

Two builders produce the records the session needs:

* [build_proof_record()][relayauth.models.record.build_proof_record] --
  NIP-42 kind 22242 proof binding a relay URL and a challenge.
* [build_publish_record()][relayauth.models.record.build_publish_record] --
  NIP-78 kind 30078 parameterized replaceable event with a leading ``d`` tag.

See Also:
    [relayauth.utils.signer][]: Turns an ``UnsignedRecord`` into a
        ``SignedRecord`` via an external signing capability.
    [relayauth.models.message][]: Wraps signed records into ``AUTH`` and
        ``EVENT`` wire messages.
"""

from __future__ import annotations

import hashlib
import json
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ._validation import (
    freeze_tags,
    validate_hex,
    validate_instance,
    validate_str_no_null,
    validate_str_not_empty,
    validate_tags,
    validate_timestamp,
)
from .constants import CHALLENGE_TAG, DISTINGUISHING_TAG, RELAY_TAG, EventKind


Tags = tuple[tuple[str, ...], ...]

_SIGNED_FIELDS = ("id", "pubkey", "created_at", "kind", "tags", "content", "sig")


def compute_record_id(
    pubkey: str,
    created_at: int,
    kind: int,
    tags: Iterable[Iterable[str]],
    content: str,
) -> str:
    """Compute the NIP-01 event id.

    The id is the lowercase hex SHA-256 of the UTF-8 JSON array
    ``[0, pubkey, created_at, kind, tags, content]`` serialized without
    whitespace and without escaping non-ASCII characters.
    """
    serialized = json.dumps(
        [0, pubkey, created_at, kind, [list(tag) for tag in tags], content],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class UnsignedRecord:
    """A Nostr event template awaiting a signature.

    ``tags`` may be passed as any sequence of sequences of strings; it is
    copied into nested tuples during construction.

    Attributes:
        kind: Event kind (e.g. ``EventKind.CLIENT_AUTH``).
        created_at: Unix timestamp in seconds.
        tags: Tag arrays, each starting with the tag name.
        content: Event content string.
        pubkey: Author public key as 64 lowercase hex characters.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ``pubkey`` is not hex, ``created_at`` is negative,
            a tag is empty, or any string contains null bytes.
    """

    kind: int
    created_at: int
    tags: Tags
    content: str
    pubkey: str

    def __post_init__(self) -> None:
        if isinstance(self.kind, bool) or not isinstance(self.kind, int):
            raise TypeError(f"kind must be an int, got {type(self.kind).__name__}")
        if not 0 <= self.kind <= 65_535:
            raise ValueError(f"kind out of range: {self.kind}")
        validate_timestamp(self.created_at, "created_at")
        if not isinstance(self.tags, tuple):
            object.__setattr__(self, "tags", freeze_tags(self.tags))
        validate_tags(self.tags, "tags")
        validate_str_no_null(self.content, "content")
        validate_hex(self.pubkey, "pubkey")

    def tag_value(self, name: str) -> str | None:
        """Return the first value of the first tag called *name*, if any."""
        for tag in self.tags:
            if tag[0] == name and len(tag) > 1:
                return tag[1]
        return None

    def compute_id(self) -> str:
        """Return the NIP-01 id this record will have once signed."""
        return compute_record_id(self.pubkey, self.created_at, self.kind, self.tags, self.content)

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-07 ``signEvent`` input shape (tags as lists)."""
        return {
            "kind": self.kind,
            "created_at": self.created_at,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "pubkey": self.pubkey,
        }


@dataclass(frozen=True, slots=True)
class SignedRecord:
    """A signed Nostr event ready to be sent to a relay.

    The ``id`` is the correlation identifier: a relay answers the event
    with ``["OK", id, accepted, message]``.

    Attributes:
        record: The exact fields that were signed.
        id: NIP-01 event id, 64 lowercase hex characters.
        sig: Schnorr signature, 128 lowercase hex characters.

    Note:
        Construction checks formats only. Whether ``id`` matches ``record``
        is reported by
        [has_valid_id()][relayauth.models.record.SignedRecord.has_valid_id]
        and enforced by the [SignerAdapter][relayauth.utils.signer.SignerAdapter].
    """

    record: UnsignedRecord
    id: str
    sig: str

    def __post_init__(self) -> None:
        validate_instance(self.record, UnsignedRecord, "record")
        validate_hex(self.id, "id")
        validate_hex(self.sig, "sig", length=128)

    @property
    def kind(self) -> int:
        return self.record.kind

    @property
    def created_at(self) -> int:
        return self.record.created_at

    @property
    def tags(self) -> Tags:
        return self.record.tags

    @property
    def content(self) -> str:
        return self.record.content

    @property
    def pubkey(self) -> str:
        return self.record.pubkey

    def has_valid_id(self) -> bool:
        return self.id == self.record.compute_id()

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 wire representation."""
        return {"id": self.id, **self.record.to_dict(), "sig": self.sig}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SignedRecord:
        """Build a signed record from a NIP-01 event object.

        Raises:
            ValueError: If a required key is missing or malformed.
            TypeError: If a field has the wrong type.
        """
        validate_instance(data, Mapping, "signed record")
        missing = [k for k in _SIGNED_FIELDS if k not in data]
        if missing:
            raise ValueError(f"signed record missing fields: {', '.join(missing)}")
        record = UnsignedRecord(
            kind=data["kind"],
            created_at=data["created_at"],
            tags=freeze_tags(data["tags"]),
            content=data["content"],
            pubkey=data["pubkey"],
        )
        return cls(record=record, id=data["id"], sig=data["sig"])


def _now() -> int:
    return int(time.time())


def build_proof_record(
    identity: str,
    relay_url: str,
    challenge: str,
    *,
    created_at: int | None = None,
) -> UnsignedRecord:
    """Build the NIP-42 authentication proof for one challenge.

    The relay URL and challenge are embedded verbatim; the relay compares
    them against its own URL and the challenge it issued on this connection.

    Args:
        identity: Hex public key of the acting principal.
        relay_url: URL of the relay as configured for the connection.
        challenge: The most recent challenge string received on it.
        created_at: Unix timestamp override (defaults to now).
    """
    validate_str_not_empty(relay_url, "relay_url")
    validate_str_not_empty(challenge, "challenge")
    return UnsignedRecord(
        kind=EventKind.CLIENT_AUTH.value,
        created_at=_now() if created_at is None else created_at,
        tags=((RELAY_TAG, relay_url), (CHALLENGE_TAG, challenge)),
        content="",
        pubkey=identity,
    )


def build_publish_record(
    identity: str,
    content: str,
    d_tag: str,
    extra_tags: Iterable[Iterable[str]] = (),
    *,
    created_at: int | None = None,
) -> UnsignedRecord:
    """Build a kind 30078 parameterized replaceable event.

    The ``["d", d_tag]`` tag is always first and unique. Two records with
    the same author and ``d_tag`` are revisions of the same resource.

    Args:
        identity: Hex public key of the author.
        content: Event content.
        d_tag: Distinguishing tag value (may be empty, per NIP-01).
        extra_tags: Additional tags appended after the ``d`` tag.
        created_at: Unix timestamp override (defaults to now).

    Raises:
        ValueError: If ``extra_tags`` contains another ``d`` tag.
    """
    validate_str_no_null(d_tag, "d_tag")
    extra = freeze_tags(extra_tags, "extra_tags")
    if any(tag[0] == DISTINGUISHING_TAG for tag in extra):
        raise ValueError("extra_tags must not contain a 'd' tag; pass it as d_tag")
    return UnsignedRecord(
        kind=EventKind.APP_SPECIFIC_DATA.value,
        created_at=_now() if created_at is None else created_at,
        tags=((DISTINGUISHING_TAG, d_tag), *extra),
        content=content,
        pubkey=identity,
    )
