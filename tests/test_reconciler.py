import pytest
from unittest.mock import MagicMock

from ecoscan.core.models import ClassificationResult, DisposalBin, Severity
from ecoscan.services.rewards import GreenCoinLedger
from ecoscan.services.scanner.reconciler import ScanHistory, ScanReconciler, select_icon


def make_result(waste_type="plastic bottle", recyclable=True, **overrides):
    payload = {
        "waste_type": waste_type,
        "category": "Recyclable",
        "bin": {"name": "Blue Bin", "color": "blue", "icon": "recycle"},
        "tip": "Rinse and flatten before disposal.",
        "recyclable": recyclable,
        "confidence": 0.93,
    }
    payload.update(overrides)
    return ClassificationResult.model_validate(payload)


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now


@pytest.fixture
def ledger():
    return GreenCoinLedger()


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def reconciler(ledger, notifier):
    return ScanReconciler(rewards=ledger, notifier=notifier, clock=FakeClock())


@pytest.mark.parametrize("waste_type, icon", [
    ("Plastic Bottle", "🧴"),
    ("metal can", "🥤"),
    ("GLASS jar", "🍾"),
    ("newspaper", "📄"),
    ("AA Battery", "🔋"),
    ("food scraps", "🍎"),
    ("styrofoam", "♻️"),
    ("", "♻️"),
])
def test_select_icon(waste_type, icon):
    assert select_icon(waste_type) == icon


def test_select_icon_first_match_wins():
    # "plastic" precedes "paper" in the table
    assert select_icon("paper with plastic lining") == "🧴"
    assert select_icon("metal and glass") == "🥤"


def test_plastic_bottle_example(reconciler, ledger, notifier):
    outcome = reconciler.reconcile(make_result("plastic bottle", recyclable=True))

    assert outcome.icon == "🧴"
    assert outcome.severity == Severity.LOW
    assert outcome.reward_points == 5
    assert outcome.bin == DisposalBin(name="Blue Bin", color="blue", icon="recycle")
    assert outcome.guidance == "Rinse and flatten before disposal."
    assert outcome.confidence == 0.93

    assert ledger.balance == 5
    assert len(reconciler.history) == 1
    assert reconciler.current == outcome
    notifier.notify.assert_called_once_with("Earned 5 Green Coins!", "success")


def test_non_recyclable_defaults(reconciler, ledger):
    outcome = reconciler.reconcile(make_result("battery", recyclable=False))
    assert outcome.reward_points == 2
    assert outcome.severity == Severity.HIGH
    assert ledger.balance == 2


def test_explicit_severity_wins(reconciler):
    outcome = reconciler.reconcile(make_result("glass", recyclable=False, severity="medium"))
    assert outcome.severity == Severity.MEDIUM


def test_configured_reward_points(ledger, notifier):
    reconciler = ScanReconciler(ledger, notifier, reward_points={True: 10, False: 1}, clock=FakeClock())
    reconciler.reconcile(make_result(recyclable=True))
    reconciler.reconcile(make_result(recyclable=False))
    assert ledger.balance == 11


def test_same_input_gives_same_outcome_except_identity(reconciler):
    result = make_result()
    first = reconciler.derive_outcome(result)
    reconciler.clock.now += 2.5
    second = reconciler.derive_outcome(result)

    assert first.id != second.id
    assert first.captured_at != second.captured_at
    strip = {"id", "captured_at"}
    assert first.model_dump(exclude=strip) == second.model_dump(exclude=strip)


def test_ids_distinct_within_same_millisecond(reconciler):
    ids = [reconciler.derive_outcome(make_result()).id for _ in range(3)]
    assert len(set(ids)) == 3
    assert ids == sorted(ids)


def test_history_bounded_newest_first(reconciler, ledger):
    outcomes = []
    for i in range(13):
        reconciler.clock.now += 1
        recyclable = i % 3 != 0
        outcomes.append(reconciler.reconcile(make_result(f"item {i}", recyclable=recyclable)))

    history = reconciler.history.items()
    assert len(history) == 10
    assert [o.label for o in history] == [f"item {i}" for i in range(12, 2, -1)]
    assert ledger.balance == sum(o.reward_points for o in outcomes)


def test_notification_failure_does_not_undo_scan(reconciler, ledger, notifier):
    notifier.notify.side_effect = RuntimeError("toast layer gone")
    outcome = reconciler.reconcile(make_result())
    assert ledger.balance == 5
    assert reconciler.history.items() == (outcome,)


def test_reset_clears_history_and_current(reconciler):
    reconciler.reconcile(make_result())
    reconciler.reset()
    assert len(reconciler.history) == 0
    assert reconciler.current is None


def test_history_capacity_must_be_positive():
    with pytest.raises(ValueError):
        ScanHistory(0)


def test_history_eviction_small_capacity(reconciler):
    history = ScanHistory(2)
    a, b, c = (reconciler.derive_outcome(make_result(name)) for name in ("a", "b", "c"))
    for outcome in (a, b, c):
        history.prepend(outcome)
    assert history.items() == (c, b)
    assert list(history) == [c, b]
