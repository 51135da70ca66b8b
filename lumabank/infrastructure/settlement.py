"""Deferred settlement of external transfers"""

import logging
import random
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)


class SettlementScheduler(ABC):
    """Decides when a pending external transfer gets settled"""

    @abstractmethod
    def schedule(self, transaction_id: uuid.UUID) -> None:
        ...


class ManualSettlementScheduler(SettlementScheduler):
    """Leaves external transfers pending until an admin settles them"""

    def schedule(self, transaction_id: uuid.UUID) -> None:
        logger.info("External transfer awaiting manual settlement", extra={"transaction_id": str(transaction_id)})


class TimerSettlementScheduler(SettlementScheduler):
    """
    Simulated banking rail: completes the transfer after a random delay.

    settle is called on a daemon timer thread and must open its own database
    session. Timers do not survive a restart; transfers left pending are
    settled by an admin.
    """

    def __init__(
        self,
        settle: Callable[[uuid.UUID], object],
        min_delay_seconds: float = 1.0,
        max_delay_seconds: float = 3600.0,
    ):
        if min_delay_seconds < 0 or max_delay_seconds < min_delay_seconds:
            raise ValueError("Settlement delay bounds must satisfy 0 <= min <= max")
        self.settle = settle
        self.min_delay_seconds = min_delay_seconds
        self.max_delay_seconds = max_delay_seconds

    def schedule(self, transaction_id: uuid.UUID) -> None:
        delay = random.uniform(self.min_delay_seconds, self.max_delay_seconds)
        logger.info(
            "Scheduling external transfer completion",
            extra={"transaction_id": str(transaction_id), "delay_seconds": round(delay, 1)},
        )
        timer = threading.Timer(delay, self._run, args=(transaction_id,))
        timer.daemon = True
        timer.start()

    def _run(self, transaction_id: uuid.UUID) -> None:
        try:
            self.settle(transaction_id)
        except Exception:
            # Nothing upstream to report to on a timer thread
            logger.exception("Auto-settlement failed", extra={"transaction_id": str(transaction_id)})
