"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module so that session events read
as ``event key=value ...`` lines, or as one JSON object per line when the
client runs under a log collector.

Values containing spaces, equals signs, or quotes are escaped and wrapped
in double quotes. Long values (e.g. raw relay frames) are truncated to a
configurable maximum length.

``StructuredFormatter`` is a plain ``logging.Formatter`` that reads the
``structured_kv`` extra attached by [Logger][relayauth.core.logger.Logger].
The CLI installs it on the root handler so that ``Logger`` output and the
``logging.getLogger(__name__)`` calls in the models and utils layers share
one format.

Examples:
    ```python
    from relayauth.core.logger import Logger

    logger = Logger("session")
    logger.info("auth_accepted", relay="wss://relay.example.com")
    # Output: auth_accepted relay=wss://relay.example.com

    json_logger = Logger("session", json_output=True)
    json_logger.info("publish_sent", event_id="ab12...")
    # Output: {"timestamp": "...", "level": "info", "service": "session", ...}
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any


DEFAULT_MAX_VALUE_LENGTH = 1000

_QUOTE_TRIGGERS = frozenset(" =\"'")


def _truncate(value: str, max_length: int | None) -> str:
    if not max_length or len(value) <= max_length:
        return value
    dropped = len(value) - max_length
    return f"{value[:max_length]}...<truncated {dropped} chars>"


def _render_value(value: Any, max_length: int | None) -> str:
    text = _truncate(str(value), max_length)
    if text and _QUOTE_TRIGGERS.isdisjoint(text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = DEFAULT_MAX_VALUE_LENGTH,
    prefix: str = " ",
) -> str:
    """Render *kwargs* as ``key=value`` pairs joined by spaces.

    Empty values and values containing whitespace, ``=`` or quotes are
    double-quoted with backslash escaping. ``max_value_length=None``
    disables truncation. An empty mapping renders as ``""`` (no prefix).
    """
    if not kwargs:
        return ""
    return prefix + " ".join(
        f"{key}={_render_value(value, max_value_length)}" for key, value in kwargs.items()
    )


class StructuredFormatter(logging.Formatter):
    """Formats all log records as ``level name message key=value ...``.

    Records without ``structured_kv`` (plain ``logging.getLogger()`` calls)
    are emitted with the same prefix and no trailing pairs.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        line += format_kv_pairs(getattr(record, "structured_kv", None) or {})
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class Logger:
    """Thin wrapper over ``logging.Logger`` taking structured fields as kwargs.

    In key=value mode the fields travel in the ``structured_kv`` extra and
    are rendered by [StructuredFormatter][relayauth.core.logger.StructuredFormatter].
    In JSON mode the whole event is serialized into the record message.

    Examples:
        ```python
        logger = Logger("session")
        logger.info("challenge_received", relay=url, state="awaiting_challenge")
        ```
    """

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = (
            DEFAULT_MAX_VALUE_LENGTH if max_value_length is None else max_value_length
        )

    @property
    def name(self) -> str:
        return self._logger.name

    def _fields(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        # Scalars stay typed so JSON consumers can filter on them.
        return {
            key: value
            if value is None or isinstance(value, bool | int | float)
            else _truncate(str(value), self._max_value_length)
            for key, value in kwargs.items()
        }

    def _emit(self, level: int, event: str, kwargs: dict[str, Any], exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        fields = self._fields(kwargs)
        if not self._json_output:
            extra = {"structured_kv": fields} if fields else {}
            self._logger.log(level, event, extra=extra, exc_info=exc_info)
            return
        payload = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": logging.getLevelName(level).lower(),
            "service": self.name,
            "message": event,
            **fields,
        }
        self._logger.log(level, json.dumps(payload, default=str), exc_info=exc_info)

    def debug(self, event: str, **kwargs: Any) -> None:
        self._emit(logging.DEBUG, event, kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self._emit(logging.INFO, event, kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._emit(logging.WARNING, event, kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._emit(logging.ERROR, event, kwargs)

    def exception(self, event: str, **kwargs: Any) -> None:
        """Log at ERROR with the active traceback attached."""
        self._emit(logging.ERROR, event, kwargs, exc_info=True)
