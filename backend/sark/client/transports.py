"""Interchangeable ways of getting a prompt turned into HTML text.

``RelayTransport`` posts to the relay service and streams its event stream.
``SDKTransport`` calls the provider directly through the OpenAI SDK, gets the
whole document at once, and replays it in slices so progress still moves.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol

import httpx
from openai import AsyncOpenAI, APIConnectionError, APIStatusError

from ..config import DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_REVISION_MARKER, DEFAULT_SYSTEM_PROMPT
from ..errors import MissingPrompt, UpstreamFailure
from ..services.conversation import build_messages, upstream_failure_from
from ..sse import iter_content

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    prior_document: Optional[str] = None

    def __post_init__(self):
        if not self.prompt or not self.prompt.strip():
            raise MissingPrompt()

    def to_payload(self) -> dict:
        payload = {"prompt": self.prompt}
        if self.prior_document:
            payload["currentHtml"] = self.prior_document
        return payload


class Reception(Protocol):
    def chunks(self) -> AsyncIterator[str]: ...

    async def aclose(self) -> None: ...


class Transport(Protocol):
    async def submit(self, request: GenerationRequest) -> Reception: ...


class StreamReception:
    def __init__(self, response: httpx.Response, client: httpx.AsyncClient):
        self._response = response
        self._client = client

    async def chunks(self) -> AsyncIterator[str]:
        try:
            async for piece in iter_content(self._response.aiter_lines()):
                yield piece
        except httpx.TimeoutException as exc:
            raise UpstreamFailure("Timed out while receiving the website", status_code=504) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Stream interrupted: {exc}", status_code=502) from exc

    async def aclose(self) -> None:
        await self._response.aclose()
        await self._client.aclose()


class SimulatedReception:
    """Replays an already materialized document in fixed slices."""

    def __init__(self, text: str, *, steps: int = 5, interval: float = 0.2):
        self._text = text
        self._steps = max(1, steps)
        self._interval = interval

    async def chunks(self) -> AsyncIterator[str]:
        size = -(-len(self._text) // self._steps) or 1
        for start in range(0, len(self._text), size):
            if self._interval:
                await asyncio.sleep(self._interval)
            yield self._text[start:start + size]

    async def aclose(self) -> None:
        return None


def _relay_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except json.JSONDecodeError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text


class RelayTransport:
    def __init__(
        self,
        endpoint: str,
        *,
        access_token: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

    async def submit(self, request: GenerationRequest) -> StreamReception:
        headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        try:
            response = await client.send(
                client.build_request("POST", self.endpoint, json=request.to_payload(), headers=headers),
                stream=True,
            )
        except httpx.TimeoutException as exc:
            await client.aclose()
            raise UpstreamFailure("Timed out contacting the generator", status_code=504) from exc
        except httpx.HTTPError as exc:
            await client.aclose()
            raise UpstreamFailure(f"Could not reach the generator: {exc}", status_code=502) from exc
        except BaseException:
            await client.aclose()
            raise

        if response.is_error:
            try:
                await response.aread()
                message = _relay_error_message(response)
            finally:
                await response.aclose()
                await client.aclose()
            logger.warning("Relay answered %s: %s", response.status_code, message)
            raise UpstreamFailure(message, status_code=response.status_code)

        return StreamReception(response, client)


class SDKTransport:
    def __init__(
        self,
        *,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        temperature: float = 0.7,
        max_tokens: int = 16384,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        revision_marker: str = DEFAULT_REVISION_MARKER,
        timeout: float = 120.0,
        steps: int = 5,
        interval: float = 0.2,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt
        self.revision_marker = revision_marker
        self.timeout = timeout
        self.steps = steps
        self.interval = interval
        self._http_client = http_client

    async def generate_text(self, request: GenerationRequest) -> str:
        messages = build_messages(
            prompt=request.prompt,
            current_html=request.prior_document,
            system_prompt=self.system_prompt,
            revision_marker=self.revision_marker,
        )
        client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
            http_client=self._http_client,
        )
        try:
            completion = await client.chat.completions.create(
                model=self.model,
                messages=[m.model_dump() for m in messages],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except (APIStatusError, APIConnectionError) as exc:
            raise upstream_failure_from(exc, timeout=self.timeout) from exc
        finally:
            # An injected http_client belongs to the caller and is reused across attempts
            if self._http_client is None:
                await client.close()

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    async def submit(self, request: GenerationRequest) -> SimulatedReception:
        text = await self.generate_text(request)
        return SimulatedReception(text, steps=self.steps, interval=self.interval)
