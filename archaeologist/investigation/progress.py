"""Progress updates — a one-way observational channel for callers."""

from __future__ import annotations

import logging
from typing import Callable, Literal

from pydantic import BaseModel

logger = logging.getLogger("archaeologist.pipeline")

InvestigationPhase = Literal[
    "initializing",
    "analyzing_blame",
    "fetching_commits",
    "searching_prs",
    "reading_issues",
    "synthesizing",
    "completed",
    "failed",
]


class ProgressUpdate(BaseModel):
    phase: InvestigationPhase
    message: str
    progress: int  # 0-100
    thinking_level: Literal["LOW", "MEDIUM", "HIGH"] | None = None


ProgressCallback = Callable[[ProgressUpdate], None]


def emit(
    callback: ProgressCallback | None,
    phase: InvestigationPhase,
    message: str,
    progress: int,
    thinking_level: str | None = None,
) -> None:
    """Deliver an update; a failing callback never affects the investigation."""
    if callback is None:
        return
    try:
        callback(ProgressUpdate(
            phase=phase, message=message, progress=progress, thinking_level=thinking_level
        ))
    except Exception:
        logger.exception("Progress callback raised for phase=%s", phase)
