import logging
import threading
from typing import Dict

logger = logging.getLogger(__name__)


class GreenCoinLedger:
    """In-memory Green Coin balance for one browser session."""

    def __init__(self, balance: int = 0):
        self.balance = balance

    def increment(self, points: int):
        if points < 0:
            raise ValueError("Reward points cannot be negative")
        self.balance += points
        logger.info(f"Green Coins +{points} (balance {self.balance})")


class LedgerRegistry:
    """Hands out one ledger per session key, so visitors never share a balance."""

    def __init__(self):
        self._ledgers: Dict[str, GreenCoinLedger] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> GreenCoinLedger:
        with self._lock:
            ledger = self._ledgers.get(session_id)
            if ledger is None:
                ledger = GreenCoinLedger()
                self._ledgers[session_id] = ledger
                logger.debug(f"New Green Coin ledger for session {session_id}")
            return ledger

    def __len__(self):
        return len(self._ledgers)


ledger_registry = LedgerRegistry()
