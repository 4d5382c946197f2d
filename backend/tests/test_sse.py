import asyncio
import json

import pytest

from sark.errors import UpstreamFailure
from sark.sse import iter_content, parse_event_line


@pytest.mark.parametrize(
    "line",
    [
        "",
        ": OPENROUTER PROCESSING",
        "event: message",
        "data: [DONE]",
        "data: not-json",
        'data: {"choices":[{"delta":{}}]}',
        'data: {"choices":[]}',
    ],
)
def test_lines_without_content(line):
    assert parse_event_line(line) is None


def test_content_delta():
    assert parse_event_line('data: {"choices":[{"delta":{"content":"<html>"}}]}') == "<html>"


def test_error_chunk_raises_upstream_failure():
    with pytest.raises(UpstreamFailure) as info:
        parse_event_line('data: {"error":{"code":429,"message":"Rate limit exceeded"}}')
    assert info.value.status_code == 429
    assert "Rate limit exceeded" in info.value.message


def test_iter_content_joins_deltas():
    async def lines():
        yield 'data: {"choices":[{"delta":{"content":"<h1>"}}]}'
        yield ""
        yield ': keep-alive\ndata: {"choices":[{"delta":{"content":"Hi</h1>"}}]}'
        yield "data: [DONE]"

    async def collect():
        return [piece async for piece in iter_content(lines())]

    assert asyncio.run(collect()) == ["<h1>", "Hi</h1>"]


@pytest.mark.parametrize("code", [0, 1000, 200, "rate_limited"])
def test_error_chunk_with_non_http_code_maps_to_bad_gateway(code):
    line = 'data: {"error":{"code":%s,"message":"boom"}}' % json.dumps(code)
    with pytest.raises(UpstreamFailure) as info:
        parse_event_line(line)
    assert info.value.status_code == 502
