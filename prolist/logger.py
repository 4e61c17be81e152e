"""Lightweight logging helper shared by the data-store layer."""

from __future__ import annotations

import logging
from typing import Any

_LOGGER = logging.getLogger("prolist")


def _coerce(parts: tuple[object, ...]) -> str:
    rendered = " ".join(str(part) for part in parts if part is not None)
    return rendered.strip()


def log(*parts: object, level: int = logging.INFO, **metadata: Any) -> None:
    """
    Emit a log message on the ``prolist`` logger.

    Positional parts are joined with spaces. Keyword metadata (table names,
    row ids, and so on) is appended to the message so it survives plain-text
    handlers.
    """

    message = _coerce(parts)
    if metadata:
        message = f"{message} | {metadata}"

    if not _LOGGER.handlers and not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)

    _LOGGER.log(level, message)


__all__ = ["log"]
