"""Destinations for a finished selection result."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Protocol, TextIO

from ..utils import file_tools

logger = logging.getLogger(__name__)


class ResultTransport(Protocol):
    def __call__(self, result: dict[str, Any]) -> None: ...


def serialize_result(result: dict[str, Any]) -> str:
    return json.dumps(result, indent=2)


class StdoutTransport:
    """Print the result as JSON so the invoking process can read it."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream

    def __call__(self, result: dict[str, Any]) -> None:
        stream = self.stream or sys.stdout
        stream.write(serialize_result(result) + "\n")
        stream.flush()


class FileTransport:
    """Write the result as JSON to a file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def __call__(self, result: dict[str, Any]) -> None:
        file_tools.ensure_directory(self.path.parent)
        self.path.write_text(serialize_result(result), encoding="utf-8")
        logger.info("Wrote selection to %s", self.path)


class CallbackTransport:
    """Forward the result to a callable, e.g. a server shutdown hook."""

    def __init__(self, callback: Callable[[dict[str, Any]], None]) -> None:
        self.callback = callback

    def __call__(self, result: dict[str, Any]) -> None:
        self.callback(result)
