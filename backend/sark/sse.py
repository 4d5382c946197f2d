"""Decoding of chat-completion event streams.

The relay passes the provider's framing through untouched; this module turns
``data:`` lines back into document text for the materialized relay path and
for the generation client.
"""

import json
import logging
from typing import AsyncIterable, AsyncIterator, Optional

from .errors import UpstreamFailure

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


def parse_event_line(line: str) -> Optional[str]:
    """Return the content delta carried by one event-stream line, if any.

    Blank lines, comments (``: keep-alive``) and non-data fields yield None.
    A chunk carrying an ``error`` object raises UpstreamFailure.
    """
    line = line.strip()
    if not line or line.startswith(":") or not line.startswith("data:"):
        return None
    data = line[len("data:"):].strip()
    if not data or data == DONE_SENTINEL:
        return None
    try:
        chunk = json.loads(data)
    except json.JSONDecodeError:
        logger.debug("Skipping undecodable event payload")
        return None
    if not isinstance(chunk, dict):
        return None

    error = chunk.get("error")
    if error:
        if isinstance(error, dict):
            code = error.get("code")
            status = code if isinstance(code, int) and 400 <= code <= 599 else 502
            message = error.get("message") or json.dumps(error)
        else:
            status, message = 502, str(error)
        raise UpstreamFailure.from_upstream(status, message)

    try:
        return chunk["choices"][0]["delta"].get("content") or None
    except (KeyError, IndexError, TypeError, AttributeError):
        return None


async def iter_content(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    # Lines may arrive with several events joined when the transport buffers
    async for raw in lines:
        for line in raw.splitlines() or [raw]:
            piece = parse_event_line(line)
            if piece:
                yield piece
