"""Per-language pipeline state model."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LanguageState(str, Enum):
    """State of one language within a pipeline run."""

    PENDING = "pending"
    BUILDING = "building"
    OPTIMIZING = "optimizing"
    VERIFYING = "verifying"
    RECORDED = "recorded"
    SKIPPED = "skipped"
    FAILED = "failed"


# OPTIMIZING is bypassed when optimization is disabled.
# RECORDED, SKIPPED and FAILED are terminal.
VALID_TRANSITIONS: dict[LanguageState, set[LanguageState]] = {
    LanguageState.PENDING: {LanguageState.BUILDING, LanguageState.SKIPPED},
    LanguageState.BUILDING: {
        LanguageState.OPTIMIZING,
        LanguageState.VERIFYING,
        LanguageState.FAILED,
    },
    LanguageState.OPTIMIZING: {LanguageState.VERIFYING, LanguageState.FAILED},
    LanguageState.VERIFYING: {LanguageState.RECORDED, LanguageState.FAILED},
    LanguageState.RECORDED: set(),
    LanguageState.SKIPPED: set(),
    LanguageState.FAILED: set(),
}

TERMINAL_STATES: frozenset[LanguageState] = frozenset(
    state for state, targets in VALID_TRANSITIONS.items() if not targets
)


class LanguageTransition(BaseModel):
    """Records a single state transition for the run summary."""

    model_config = ConfigDict(frozen=True)

    language: str
    from_state: LanguageState
    to_state: LanguageState
    detail: str = ""
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
