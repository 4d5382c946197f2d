import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..errors import InternalFault, SarkError, UpstreamFailure
from .artifact import Artifact
from .stages import StageId, StageStatus, Stages, advance, initial_stages, running_stage
from .store import Store
from .transports import GenerationRequest, Transport

logger = logging.getLogger(__name__)

# Receive progress is estimated per chunk and held below 100 until the stream ends
RECEIVE_CEILING = 90


@dataclass(frozen=True)
class GenerationState:
    stages: Stages = field(default_factory=initial_stages)
    artifact: Optional[Artifact] = None
    is_generating: bool = False
    error: Optional[SarkError] = None


class GenerationClient:
    """Drives one generation attempt at a time through submit, receive and process.

    All state lives in ``store``; views subscribe to it. Failures end the
    attempt with the running stage marked ``error`` and are recorded on the
    state rather than raised.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        store: Optional[Store[GenerationState]] = None,
        timeout: float = 120.0,
        progress_step: int = 10,
    ):
        self.transport = transport
        self.store = store or Store(GenerationState())
        self.timeout = timeout
        self.progress_step = progress_step
        self._task: Optional[asyncio.Task] = None
        self._cancel_requested = False

    @property
    def state(self) -> GenerationState:
        return self.store.state

    @property
    def is_generating(self) -> bool:
        return self.store.state.is_generating

    @property
    def artifact(self) -> Optional[Artifact]:
        return self.store.state.artifact

    async def start_generation(self, prompt: str, *, revise: bool = True) -> Optional[Artifact]:
        """Run one attempt and return its artifact, or None if rejected or failed.

        With ``revise`` the currently displayed document is sent along as the
        base to improve. It is cleared from the state as soon as the attempt
        starts.
        """
        if not prompt or not prompt.strip() or self.is_generating:
            return None

        prior = self.artifact
        request = GenerationRequest(prompt, prior.content if (revise and prior) else None)

        self.store.update(stages=initial_stages(), artifact=None, is_generating=True, error=None)
        task = asyncio.ensure_future(self._attempt(request))
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            return None
        finally:
            self._task = None
            self._cancel_requested = False
            self.store.update(is_generating=False)

    def cancel(self) -> bool:
        """Abandon the in-flight attempt, closing its network operation."""
        if self._task is None or self._task.done():
            return False
        self._cancel_requested = True
        self._task.cancel()
        return True

    def clear(self) -> None:
        if not self.is_generating:
            self.store.update(artifact=None, error=None)

    async def _attempt(self, request: GenerationRequest) -> Optional[Artifact]:
        try:
            return await asyncio.wait_for(self._drive(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            self._fail(UpstreamFailure(f"Generation timed out after {self.timeout:.0f}s", status_code=504))
        except SarkError as exc:
            self._fail(exc)
        except asyncio.CancelledError:
            self._fail(None)
            logger.info("Generation attempt cancelled")
            raise
        except Exception as exc:
            logger.exception("Generation attempt failed unexpectedly")
            self._fail(InternalFault(str(exc)))
        return None

    async def _drive(self, request: GenerationRequest) -> Artifact:
        self._advance(StageId.SUBMIT, StageStatus.RUNNING)
        reception = await self.transport.submit(request)
        self._advance(StageId.SUBMIT, StageStatus.COMPLETED)

        parts = []
        try:
            self._advance(StageId.RECEIVE, StageStatus.RUNNING)
            progress = 0
            async for piece in reception.chunks():
                parts.append(piece)
                estimate = min(RECEIVE_CEILING, progress + self.progress_step)
                if estimate > progress:
                    progress = estimate
                    self._advance(StageId.RECEIVE, StageStatus.RUNNING, progress)
            self._advance(StageId.RECEIVE, StageStatus.COMPLETED)
        finally:
            await reception.aclose()

        self._advance(StageId.PROCESS, StageStatus.RUNNING)
        content = "".join(parts).strip()
        if not content:
            raise UpstreamFailure("The generator returned an empty document")
        artifact = Artifact(content)
        self._advance(StageId.PROCESS, StageStatus.COMPLETED)
        self.store.update(artifact=artifact)
        logger.info("Generated %s (%d chars)", artifact.name, len(content))
        return artifact

    def _advance(self, stage_id: StageId, status: StageStatus, progress: Optional[int] = None) -> None:
        stages = advance(self.state.stages, stage_id, status, progress)
        logger.debug("stage %s -> %s", stage_id.value, status.value)
        self.store.update(stages=stages)

    def _fail(self, error: Optional[SarkError]) -> None:
        stage = running_stage(self.state.stages)
        stages = self.state.stages
        if stage is not None:
            stages = advance(stages, stage.id, StageStatus.ERROR)
        if error is not None:
            logger.warning(
                "Generation failed at %s: %s (%s)",
                stage.id.value if stage else "start",
                error.message,
                error.kind,
            )
        self.store.update(stages=stages, error=error)
