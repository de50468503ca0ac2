"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module. Event names are short
snake_case identifiers (``relay_connected``, ``event_rejected``) and all
variable data travels as keyword arguments, rendered either as
human-readable ``key=value`` pairs (default) or as one JSON object per line.

Values containing spaces, equals signs or quotes are escaped and wrapped in
double quotes. Long values (relay notices, raw payloads) are truncated to a
configurable maximum length.

[StructuredFormatter][nostrkit.core.logger.StructuredFormatter] reads the
``structured_kv`` extra attached by [Logger][nostrkit.core.logger.Logger].
Installed on the root handler by the CLI, it also formats plain
``logging.getLogger()`` calls from the models and nips layers.

Examples:
    ```python
    logger = Logger("relay_pool")
    logger.info("relay_connected", relay="wss://nos.lol")
    # info relay_pool relay_connected relay=wss://nos.lol

    relay_logger = logger.bind(relay="wss://nos.lol")
    relay_logger.warning("send_skipped", reason="not open")
    # warning relay_pool send_skipped relay=wss://nos.lol reason="not open"
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: str, max_value_length: int | None) -> str:
    if max_value_length and len(value) > max_value_length:
        return value[:max_value_length] + f"...<truncated {len(value) - max_value_length} chars>"
    return value


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            Pass None to disable truncation.
        prefix: String prepended to the output (default: single space).

    Returns:
        Formatted string, e.g. ' relay=wss://a.io reason="not open"'.
        Returns an empty string if kwargs is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = _truncate(str(v), max_value_length)
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")

    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Formats log records as ``level name message key=value ...``."""

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


class Logger:
    """Structured logger that appends keyword arguments as extra fields.

    Args:
        name: Logger name; maps to ``logging.getLogger(name)``.
        json_output: Emit JSON objects instead of key=value pairs.
        max_value_length: Maximum characters per value before truncation.
            Defaults to 1000.
        context: Fields attached to every record from this logger.
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length
        self._context: dict[str, Any] = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context: Any) -> Logger:
        """Return a logger sharing this one's settings with extra bound fields."""
        return Logger(
            self._logger.name,
            json_output=self._json_output,
            max_value_length=self._max_value_length,
            context={**self._context, **context},
        )

    def _format_json(self, msg: str, level: str, fields: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "logger": self._logger.name,
            "message": msg,
            **{k: _truncate(str(v), self._max_value_length) for k, v in fields.items()},
        }
        return json.dumps(record, default=str)

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        fields = {**self._context, **kwargs}
        if self._json_output:
            self._logger.log(
                level, self._format_json(msg, logging.getLevelName(level).lower(), fields),
                exc_info=exc_info,
            )
            return
        truncated = {k: _truncate(str(v), self._max_value_length) for k, v in fields.items()}
        extra = {"structured_kv": truncated} if truncated else {}
        self._logger.log(level, msg, extra=extra, exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
