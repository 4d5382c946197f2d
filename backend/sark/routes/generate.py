import logging

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import ValidationError

from ..errors import InternalFault, SarkError
from ..schemas import GenerateRequest
from ..services.relay import open_generation_stream

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate")
async def generate_website(request: Request):
    try:
        payload = await request.json()
        if not isinstance(payload, dict):
            raise InternalFault("Request body must be a JSON object")
        data = GenerateRequest.model_validate(payload)

        upstream = await open_generation_stream(data=data)
        if not data.stream:
            return PlainTextResponse(await upstream.read_text())

        return StreamingResponse(
            upstream.iter_bytes(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache, no-transform",
                "X-Accel-Buffering": "no",
            },
        )
    except SarkError:
        raise
    except ValidationError as exc:
        raise InternalFault(str(exc)) from exc
    except Exception as exc:
        logger.exception("Generation relay failed")
        raise InternalFault(str(exc)) from exc
