"""Session and client configuration models.

See Also:
    [RelayAuthSession][relayauth.session.session.RelayAuthSession]: The
        session that consumes [SessionConfig][relayauth.session.config.SessionConfig].
    [relayauth.__main__][]: The CLI that loads
        [ClientConfig][relayauth.session.config.ClientConfig] from YAML.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator
from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator

from relayauth.core.yaml import load_yaml
from relayauth.models.constants import (
    DEFAULT_SUBSCRIPTION_ID,
    DEFAULT_TIMEOUT,
    DEFAULT_TRIGGER_FILTER,
)
from relayauth.utils.keys import KeysConfig


class SessionConfig(BaseModel):
    """Configuration for one relay session.

    Attributes:
        relay_url: ``ws://`` or ``wss://`` URL of the relay. Used verbatim
            both to connect and as the ``relay`` tag of the NIP-42 proof.
        timeout: Seconds allowed for the whole handshake, from connection
            attempt to the relay's acceptance.
        publish_timeout: Seconds allowed for one publish round trip.
            Defaults to ``timeout``.
        subscription_id: Id of the trigger ``REQ``.
        trigger_filter: Filter of the trigger ``REQ``; its results are ignored.
        allow_insecure: Skip TLS certificate verification.
        proxy_url: SOCKS5 proxy URL (required for ``.onion`` relays).
        heartbeat: Seconds between WebSocket pings (``None`` disables).

    Examples:
        ```python
        config = SessionConfig(relay_url="wss://relay.example.com", timeout=15)
        ```
    """

    relay_url: str = Field(description="Relay WebSocket URL")
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0.0, le=600.0)
    publish_timeout: float | None = Field(default=None, gt=0.0, le=600.0)
    subscription_id: str = Field(default=DEFAULT_SUBSCRIPTION_ID, min_length=1, max_length=64)
    trigger_filter: dict[str, Any] = Field(default_factory=lambda: dict(DEFAULT_TRIGGER_FILTER))
    allow_insecure: bool = Field(default=False)
    proxy_url: str | None = Field(default=None)
    heartbeat: float | None = Field(default=None, gt=0.0)

    @field_validator("relay_url")
    @classmethod
    def _validate_relay_url(cls, v: str) -> str:
        """Require a ``ws``/``wss`` URL with a host and no query or fragment.

        The value is returned unchanged: the proof record must carry the
        exact string the connection was opened with.
        """
        if v != v.strip():
            raise ValueError("relay_url must not have surrounding whitespace")
        uri = uri_reference(v)
        validator = (
            Validator()
            .require_presence_of("scheme", "host")
            .allow_schemes("ws", "wss")
            .check_validity_of("scheme", "host", "port", "path")
        )
        try:
            validator.validate(uri)
        except UnpermittedComponentError:
            raise ValueError("Invalid scheme: must be ws or wss") from None
        except ValidationError as e:
            raise ValueError(f"Invalid URL: {e}") from None
        if uri.query:
            raise ValueError(f"Relay URL must not contain a query string: ?{uri.query}")
        if uri.fragment:
            raise ValueError(f"Relay URL must not contain a fragment: #{uri.fragment}")
        return v

    @field_validator("proxy_url")
    @classmethod
    def _validate_proxy_url(cls, v: str | None) -> str | None:
        if v is not None and not v.startswith(("socks5://", "socks5h://", "socks4://")):
            raise ValueError("proxy_url must be a socks4/socks5 URL")
        return v

    @property
    def effective_publish_timeout(self) -> float:
        return self.publish_timeout if self.publish_timeout is not None else self.timeout

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> Self:
        """Load the configuration from a YAML file (a mapping at the root)."""
        return cls.model_validate(load_yaml(config_path))


class ClientConfig(BaseModel):
    """Configuration for the command-line client.

    The ``keys`` field is resolved from the environment at validation time
    (see [KeysConfig][relayauth.utils.keys.KeysConfig]); a missing
    ``PRIVATE_KEY`` fails here rather than at the first signature.

    Examples:
        ```yaml
        session:
          relay_url: wss://relay.example.com
          timeout: 15
        keys:
          keys_env: PRIVATE_KEY
        json_logs: false
        ```
    """

    session: SessionConfig
    keys: KeysConfig = Field(default_factory=lambda: KeysConfig.model_validate({}))
    json_logs: bool = Field(default=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls.model_validate(data)

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> Self:
        return cls.from_dict(load_yaml(config_path))
