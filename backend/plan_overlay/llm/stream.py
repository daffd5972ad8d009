"""Streaming helpers: incremental JSON object parsing and SSE framing."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class IncrementalJsonParser:
    """Pull complete top-level JSON objects out of a text stream.

    Text arrives in arbitrary chunks. Characters outside an object (prose,
    code fences) are skipped; braces inside strings are ignored. Each time a
    top-level object closes it is decoded and returned from :meth:`feed`;
    whatever follows is kept for the next chunk.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._scan = 0  # next index of _buffer to examine
        self._start = -1  # index of the current top-level "{", or -1
        self._depth = 0
        self._in_string = False
        self._escaped = False

    def feed(self, chunk: str) -> list[dict[str, Any]]:
        self._buffer += chunk
        objects: list[dict[str, Any]] = []

        i = self._scan
        while i < len(self._buffer):
            ch = self._buffer[i]
            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif ch == "\\":
                    self._escaped = True
                elif ch == '"':
                    self._in_string = False
            elif ch == '"' and self._depth > 0:
                self._in_string = True
            elif ch == "{":
                if self._depth == 0:
                    self._start = i
                self._depth += 1
            elif ch == "}" and self._depth > 0:
                self._depth -= 1
                if self._depth == 0:
                    candidate = self._buffer[self._start:i + 1]
                    try:
                        decoded = json.loads(candidate)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed JSON object: %.80s", candidate)
                    else:
                        if isinstance(decoded, dict):
                            objects.append(decoded)
                    # carry only what follows the closed object
                    self._buffer = self._buffer[i + 1:]
                    self._start = -1
                    i = 0
                    continue
            i += 1

        if self._depth == 0:
            # nothing open: drop the scanned prose
            self._buffer = ""
            self._scan = 0
        else:
            # keep from the open brace onward
            self._buffer = self._buffer[self._start:]
            self._scan = len(self._buffer)
            self._start = 0
        return objects

    @property
    def pending(self) -> str:
        """Unfinished object text carried over to the next :meth:`feed`."""
        return self._buffer


def first_json_object(text: str) -> dict[str, Any] | None:
    objects = IncrementalJsonParser().feed(text)
    return objects[0] if objects else None


def sse_event(event: str, payload: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


def sse_done() -> str:
    return sse_event("done", {"type": "done"})
