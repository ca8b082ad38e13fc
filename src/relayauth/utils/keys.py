"""Nostr key loading for the local signer.

Provides a function and a Pydantic model for loading a Nostr private key
from an environment variable, in nsec1 (bech32) or 64-char hex form. The
loaded ``nostr_sdk.Keys`` backs [KeysSigner][relayauth.utils.signer.KeysSigner],
the in-process stand-in for a NIP-07 browser extension.

Warning:
    Private keys must **never** be stored in configuration files, source
    code, or logged. Always pass them through the environment.

Examples:
    ```python
    import os

    os.environ["PRIVATE_KEY"] = "nsec1..."  # pragma: allowlist secret
    keys = load_keys_from_env("PRIVATE_KEY")
    print(keys.public_key().to_hex())
    ```
"""

from __future__ import annotations

import os
from typing import Any

from nostr_sdk import Keys
from pydantic import BaseModel, Field, model_validator


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret  # Default env var name


def load_keys_from_env(env_var: str) -> Keys:
    """Load Nostr keys from an environment variable.

    Args:
        env_var: Name of the environment variable containing the private key.

    Returns:
        A ``nostr_sdk.Keys`` instance holding the private and public key.

    Raises:
        ValueError: If the variable is unset, blank, or not a valid key.
            The key itself never appears in the message.
    """
    value = (os.getenv(env_var) or "").strip()
    if not value:
        raise ValueError(
            f"{env_var} environment variable is required. Generate one with: openssl rand -hex 32"
        )

    try:
        return Keys.parse(value)
    except Exception as e:  # Intentionally broad: nostr_sdk FFI error types vary by release
        raise ValueError(f"{env_var} does not hold a valid nsec1 or hex private key") from e


class KeysConfig(BaseModel):
    """Pydantic model that auto-loads Nostr keys from an environment variable.

    The ``keys`` field is populated during validation from the variable
    named by ``keys_env`` unless it is passed explicitly, so a missing key
    fails at config load rather than at the first signature.

    Attributes:
        keys_env: Environment variable name for the private key.
        keys: Loaded ``nostr_sdk.Keys`` instance.

    Warning:
        ``keys`` holds a live private key. Do not serialize this model.
        ``arbitrary_types_allowed`` is needed because ``nostr_sdk.Keys``
        is a Rust-backed FFI type.
    """

    model_config = {"arbitrary_types_allowed": True}

    keys_env: str = Field(
        default=ENV_PRIVATE_KEY,
        min_length=1,
        description="Environment variable name for private key",
    )
    keys: Keys = Field(description="Keys loaded from keys_env (required)", repr=False)

    @model_validator(mode="before")
    @classmethod
    def _load_keys_from_env(cls, data: Any) -> Any:
        """Auto-populate the ``keys`` field from the environment variable."""
        if isinstance(data, dict) and "keys" not in data:
            data = dict(data)
            data["keys"] = load_keys_from_env(data.get("keys_env", ENV_PRIVATE_KEY))
        return data
