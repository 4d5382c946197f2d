"""Error taxonomy shared by the relay service and the generation client."""

from typing import Optional


class SarkError(Exception):
    kind = "SarkError"
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict:
        return {"error": self.message}


class MissingPrompt(SarkError):
    """The request carried no usable prompt; upstream was never contacted."""

    kind = "MissingPrompt"
    status_code = 400

    def __init__(self, message: str = "Prompt is required"):
        super().__init__(message)


class UpstreamFailure(SarkError):
    """The provider (or the relay, seen from the client) rejected or failed the request."""

    kind = "UpstreamFailure"
    status_code = 502

    @classmethod
    def from_upstream(cls, status_code: int, body: str) -> "UpstreamFailure":
        return cls(f"API request failed: {body}", status_code=status_code)


class InternalFault(SarkError):
    kind = "InternalFault"
    status_code = 500
