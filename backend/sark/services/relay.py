import logging
from contextlib import AsyncExitStack
from typing import AsyncGenerator, Optional

from openai import AsyncOpenAI, APIConnectionError, APIStatusError

from ..config import Settings, load_settings
from ..errors import InternalFault, MissingPrompt
from ..schemas import GenerateRequest
from ..sse import iter_content
from .conversation import build_messages, upstream_failure_from

logger = logging.getLogger(__name__)


class UpstreamStream:
    """An open upstream response. Consume it once, either raw or materialized."""

    def __init__(self, response, stack: AsyncExitStack):
        self._response = response
        self._stack = stack

    async def iter_bytes(self) -> AsyncGenerator[bytes, None]:
        try:
            async for chunk in self._response.iter_bytes():
                if chunk:
                    yield chunk
        finally:
            await self.aclose()

    async def read_text(self) -> str:
        try:
            parts = [piece async for piece in iter_content(self._response.iter_lines())]
        finally:
            await self.aclose()
        return "".join(parts)

    async def aclose(self) -> None:
        await self._stack.aclose()


async def open_generation_stream(*, data: GenerateRequest, settings: Optional[Settings] = None) -> UpstreamStream:
    """Send the two-message conversation upstream and return the open response.

    Raises MissingPrompt before any network traffic when the prompt is blank,
    and UpstreamFailure when the provider answers with a non-success status
    or cannot be reached. No retries are attempted.
    """
    if not data.prompt or not data.prompt.strip():
        raise MissingPrompt()

    settings = settings or load_settings()
    if not settings.api_key:
        raise InternalFault("OPENROUTER_API_KEY not configured")

    messages = build_messages(
        prompt=data.prompt,
        current_html=data.current_html,
        system_prompt=settings.system_prompt,
        revision_marker=settings.revision_marker,
    )
    logger.info(
        "Relaying generation request (prompt_chars=%d, revision=%s)",
        len(data.prompt),
        bool(data.current_html),
    )

    client = AsyncOpenAI(
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout=settings.timeout,
        max_retries=0,
    )
    stack = AsyncExitStack()
    stack.push_async_callback(client.close)
    try:
        response = await stack.enter_async_context(
            client.chat.completions.with_streaming_response.create(
                model=settings.model,
                messages=[m.model_dump() for m in messages],
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
                stream=True,
            )
        )
    except (APIStatusError, APIConnectionError) as exc:
        await stack.aclose()
        failure = upstream_failure_from(exc, timeout=settings.timeout)
        logger.error("Upstream request failed: status=%s %s", failure.status_code, failure.message)
        raise failure from exc
    except BaseException:
        await stack.aclose()
        raise
    return UpstreamStream(response, stack)
