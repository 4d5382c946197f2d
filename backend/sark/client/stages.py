"""The per-attempt progress stages and their transition function.

Stages run strictly in order. Within one attempt a stage never moves back:
``pending -> running -> completed`` with ``error`` terminal, and progress only
grows. A new attempt starts again from :func:`initial_stages`.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple


class StageId(str, Enum):
    SUBMIT = "submit"
    RECEIVE = "receive"
    PROCESS = "process"


class StageStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


STAGE_TITLES = {
    StageId.SUBMIT: "Sending request to AI",
    StageId.RECEIVE: "Receiving website code",
    StageId.PROCESS: "Preparing preview",
}

_ALLOWED = {
    StageStatus.PENDING: {StageStatus.RUNNING},
    StageStatus.RUNNING: {StageStatus.RUNNING, StageStatus.COMPLETED, StageStatus.ERROR},
    StageStatus.COMPLETED: set(),
    StageStatus.ERROR: set(),
}


class StageTransitionError(ValueError):
    pass


@dataclass(frozen=True)
class Stage:
    id: StageId
    title: str
    status: StageStatus = StageStatus.PENDING
    progress: int = 0


Stages = Tuple[Stage, ...]


def initial_stages() -> Stages:
    return tuple(Stage(id=stage_id, title=STAGE_TITLES[stage_id]) for stage_id in StageId)


def running_stage(stages: Stages) -> Optional[Stage]:
    return next((s for s in stages if s.status is StageStatus.RUNNING), None)


def advance(stages: Stages, stage_id: StageId, status: StageStatus, progress: Optional[int] = None) -> Stages:
    """Return a new stage list with ``stage_id`` moved to ``status``.

    ``progress`` defaults to 100 on completion and to the current value
    otherwise. Raises StageTransitionError on any regression, on starting a
    stage before its predecessors completed, or on progress outside [0, 100].
    """
    index = next(i for i, s in enumerate(stages) if s.id is stage_id)
    current = stages[index]

    if status not in _ALLOWED[current.status]:
        raise StageTransitionError(f"{stage_id.value}: {current.status.value} -> {status.value} is not allowed")
    if status is StageStatus.RUNNING and current.status is StageStatus.PENDING:
        blocking = [s.id.value for s in stages[:index] if s.status is not StageStatus.COMPLETED]
        if blocking:
            raise StageTransitionError(f"{stage_id.value} cannot start before {', '.join(blocking)}")

    if progress is None:
        progress = 100 if status is StageStatus.COMPLETED else current.progress
    if not 0 <= progress <= 100:
        raise StageTransitionError(f"progress {progress} outside [0, 100]")
    if status is StageStatus.COMPLETED and progress != 100:
        raise StageTransitionError("a completed stage is at 100%")
    if progress < current.progress:
        raise StageTransitionError(f"{stage_id.value}: progress {current.progress} -> {progress} regresses")

    updated = replace(current, status=status, progress=progress)
    return stages[:index] + (updated,) + stages[index + 1:]
