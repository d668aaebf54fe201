import logging
import time
from collections import deque
from datetime import datetime
from typing import Callable, Deque, Dict, Iterator, List, Optional, Protocol, Tuple

from ecoscan.core.constants import (
    DEFAULT_WASTE_ICON,
    HISTORY_CAPACITY,
    NON_RECYCLABLE_POINTS,
    RECYCLABLE_POINTS,
    WASTE_ICONS,
)
from ecoscan.core.models import ClassificationResult, ScanOutcome, Severity

logger = logging.getLogger(__name__)


class RewardSink(Protocol):
    def increment(self, points: int) -> None: ...


class Notifier(Protocol):
    def notify(self, message: str, kind: str = "info") -> None: ...


def _contains(keyword: str) -> Callable[[str], bool]:
    return lambda waste_type: keyword in waste_type


ICON_RULES: List[Tuple[Callable[[str], bool], str]] = [
    (_contains(keyword), icon) for keyword, icon in WASTE_ICONS
]


def select_icon(waste_type: str) -> str:
    lowered = waste_type.lower()
    for matches, icon in ICON_RULES:
        if matches(lowered):
            return icon
    return DEFAULT_WASTE_ICON


def default_severity(recyclable: bool) -> Severity:
    return Severity.LOW if recyclable else Severity.HIGH


class ScanHistory:
    """Newest-first, fixed-capacity list of outcomes. Prepending to a full history evicts the oldest."""

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self._items: Deque[ScanOutcome] = deque(maxlen=capacity)

    def prepend(self, outcome: ScanOutcome):
        self._items.appendleft(outcome)

    def reset(self):
        self._items.clear()

    def items(self) -> Tuple[ScanOutcome, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ScanOutcome]:
        return iter(tuple(self._items))


class ScanReconciler:
    """Turns classifier results into outcomes and applies their effects."""

    def __init__(
        self,
        rewards: RewardSink,
        notifier: Notifier,
        history_capacity: int = HISTORY_CAPACITY,
        reward_points: Optional[Dict[bool, int]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.rewards = rewards
        self.notifier = notifier
        self.history = ScanHistory(history_capacity)
        self.current: Optional[ScanOutcome] = None
        self.reward_points = reward_points or {True: RECYCLABLE_POINTS, False: NON_RECYCLABLE_POINTS}
        self.clock = clock
        self._last_id = 0

    def _next_id(self, captured_ms: int) -> int:
        # Two captures in the same millisecond still get distinct ids
        outcome_id = max(captured_ms, self._last_id + 1)
        self._last_id = outcome_id
        return outcome_id

    def derive_outcome(self, result: ClassificationResult) -> ScanOutcome:
        now = self.clock()
        return ScanOutcome(
            id=self._next_id(int(now * 1000)),
            label=result.waste_type,
            category=result.category,
            bin=result.bin,
            guidance=result.tip,
            reward_points=self.reward_points[result.recyclable],
            icon=select_icon(result.waste_type),
            severity=result.severity or default_severity(result.recyclable),
            confidence=result.confidence,
            captured_at=datetime.fromtimestamp(now),
        )

    def reconcile(self, result: ClassificationResult) -> ScanOutcome:
        # Build first so a bad result leaves history and ledger untouched
        outcome = self.derive_outcome(result)

        self.history.prepend(outcome)
        self.current = outcome
        self.rewards.increment(outcome.reward_points)
        logger.info(f"Scanned {outcome.label} -> {outcome.bin.name} (+{outcome.reward_points} coins)")

        try:
            self.notifier.notify(f"Earned {outcome.reward_points} Green Coins!", "success")
        except Exception as e:
            logger.error(f"Notification failed: {e}")

        return outcome

    def reset(self):
        self.history.reset()
        self.current = None
