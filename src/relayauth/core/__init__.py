"""Core layer: exception hierarchy, structured logging, and YAML loading.

Depends only on the standard library and PyYAML. Imported by
``relayauth.utils`` (exceptions) and ``relayauth.session`` (everything).

Attributes:
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][relayauth.core.logger.Logger].
    StructuredFormatter: Root-handler formatter unifying ``Logger`` and
        plain ``logging`` output.
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.
        See [load_yaml()][relayauth.core.yaml.load_yaml].
"""

from .exceptions import (
    AuthenticationError,
    AuthenticationFailed,
    AuthenticationTimeout,
    ConfigurationError,
    NotAuthenticated,
    OperationInProgress,
    PublishFailed,
    PublishingError,
    PublishTimeout,
    RelayAuthError,
    SignerError,
    SignerUnavailable,
    SigningRejected,
    TransportError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .yaml import load_yaml


__all__ = [
    "AuthenticationError",
    "AuthenticationFailed",
    "AuthenticationTimeout",
    "ConfigurationError",
    "Logger",
    "NotAuthenticated",
    "OperationInProgress",
    "PublishFailed",
    "PublishTimeout",
    "PublishingError",
    "RelayAuthError",
    "SignerError",
    "SignerUnavailable",
    "SigningRejected",
    "StructuredFormatter",
    "TransportError",
    "format_kv_pairs",
    "load_yaml",
]
