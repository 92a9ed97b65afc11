"""Per-language state machine for a pipeline run.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Terminal states (RECORDED, SKIPPED, FAILED) are final
- Every transition is kept, in order, for the run report
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from wasmforge.models.states import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    LanguageState,
    LanguageTransition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class LanguageStateMachine:
    """Tracks the state of every configured language in one run.

    Parameters
    ----------
    languages:
        Language identifiers, in pipeline order.  All start PENDING.
    """

    def __init__(self, languages: Iterable[str]) -> None:
        self._states: dict[str, LanguageState] = {
            lang: LanguageState.PENDING for lang in languages
        }
        self._history: list[LanguageTransition] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_state(self, language: str) -> LanguageState:
        try:
            return self._states[language]
        except KeyError:
            raise KeyError(f"Unknown language: {language}") from None

    def get_all_states(self) -> dict[str, LanguageState]:
        return dict(self._states)

    @property
    def history(self) -> list[LanguageTransition]:
        return list(self._history)

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def transition(
        self, language: str, target: LanguageState, detail: str = ""
    ) -> LanguageTransition:
        current = self.get_state(language)
        if current in TERMINAL_STATES:
            raise InvalidTransitionError(
                f"{language} is already {current.value}; terminal states are final"
            )
        allowed = VALID_TRANSITIONS.get(current, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {language} from {current.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        record = LanguageTransition(
            language=language,
            from_state=current,
            to_state=target,
            detail=detail,
        )
        self._states[language] = target
        self._history.append(record)
        logger.debug("%s: %s -> %s %s", language, current.value, target.value, detail)
        return record
