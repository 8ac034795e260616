"""Package lifecycle transition table.

This module contains no I/O and no clock: it only answers "given the
current status and a trigger, what happens?". The store applies the answer.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from pywms.exceptions import WmsTransitionError
from pywms.models.package import PackageStatus


class Trigger(enum.StrEnum):
    CONFIRM_RECEIVED = "confirm_received"
    MARK_READY = "mark_ready"
    SCAN = "scan"
    LOAD = "load"
    FAIL = "fail"


@dataclass(frozen=True, slots=True)
class Transition:
    """Outcome of a trigger.

    ``stamp`` names the status whose timestamp is written, or ``None`` when
    the trigger only re-asserts the current state.
    """

    status: PackageStatus
    stamp: PackageStatus | None


def _build_table() -> dict[tuple[PackageStatus, Trigger], Transition]:
    S = PackageStatus
    T = Trigger
    live = (S.RECEIVED, S.READY_FOR_LOADING, S.SCANNED, S.LOADED)
    table: dict[tuple[PackageStatus, Trigger], Transition] = {
        (S.RECEIVED, T.CONFIRM_RECEIVED): Transition(S.RECEIVED, S.RECEIVED),
        # Already scanned: keep received earlier than the scan.
        (S.SCANNED, T.CONFIRM_RECEIVED): Transition(S.SCANNED, None),
        (S.RECEIVED, T.MARK_READY): Transition(S.READY_FOR_LOADING, S.READY_FOR_LOADING),
        (S.SCANNED, T.MARK_READY): Transition(S.READY_FOR_LOADING, S.READY_FOR_LOADING),
        # A scan on an errored package is a checkpoint only.
        (S.ERROR, T.SCAN): Transition(S.ERROR, S.SCANNED),
        (S.ERROR, T.FAIL): Transition(S.ERROR, S.ERROR),
    }
    for status in live:
        table[(status, T.SCAN)] = Transition(S.SCANNED, S.SCANNED)
        table[(status, T.LOAD)] = Transition(S.LOADED, S.LOADED)
        table[(status, T.FAIL)] = Transition(S.ERROR, S.ERROR)
    return table


TRANSITIONS: dict[tuple[PackageStatus, Trigger], Transition] = _build_table()

# Triggers that belong to the receive pipeline and are superseded once a
# package has been loaded.
_PRE_LOAD_TRIGGERS = frozenset({Trigger.CONFIRM_RECEIVED, Trigger.MARK_READY})


def resolve(
    current: PackageStatus,
    trigger: Trigger,
    *,
    history: Iterable[PackageStatus] = (),
) -> Transition:
    """Look up the transition for *trigger* from *current*.

    *history* is the set of statuses the package has ever entered.

    Raises
    ------
    WmsTransitionError
        If the trigger is not allowed.
    """
    if trigger in _PRE_LOAD_TRIGGERS and PackageStatus.LOADED in set(history):
        raise WmsTransitionError(
            "invalid_transition",
            details={"from": str(current), "trigger": str(trigger), "reason": "already_loaded"},
        )
    transition = TRANSITIONS.get((current, trigger))
    if transition is None:
        raise WmsTransitionError(
            "invalid_transition",
            details={"from": str(current), "trigger": str(trigger)},
        )
    return transition
