from typing import List, Optional

from openai import APIConnectionError, APIStatusError, APITimeoutError

from ..errors import UpstreamFailure
from ..schemas import ChatMessage


def build_messages(
    *,
    prompt: str,
    current_html: Optional[str],
    system_prompt: str,
    revision_marker: str,
) -> List[ChatMessage]:
    """Exactly one system message followed by exactly one user message.

    The prior document is appended verbatim after the marker sentence.
    """
    user_input = prompt
    if current_html:
        user_input += f"\n\n{revision_marker}\n{current_html}"
    return [
        ChatMessage(role="system", content=system_prompt),
        ChatMessage(role="user", content=user_input),
    ]


def upstream_failure_from(exc: Exception, *, timeout: Optional[float] = None) -> UpstreamFailure:
    if isinstance(exc, APIStatusError):
        return UpstreamFailure.from_upstream(exc.status_code, exc.response.text)
    # APITimeoutError subclasses APIConnectionError
    if isinstance(exc, APITimeoutError):
        detail = f"upstream request timed out after {timeout:.0f}s" if timeout else "upstream request timed out"
        return UpstreamFailure.from_upstream(504, detail)
    if isinstance(exc, APIConnectionError):
        return UpstreamFailure.from_upstream(502, str(exc))
    raise TypeError(f"not an upstream error: {exc!r}")
