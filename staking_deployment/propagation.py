import time
from typing import Callable, NamedTuple, Optional

from ape import chain
from ape.api import ReceiptAPI

from staking_deployment.constants import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PROPAGATION_DELAY,
    DEFAULT_REQUIRED_CONFIRMATIONS,
)


class PropagationSettings(NamedTuple):
    delay: float = DEFAULT_PROPAGATION_DELAY
    confirmations: int = DEFAULT_REQUIRED_CONFIRMATIONS
    timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL


class ConfirmationTimeout(Exception):
    """Raised when a transaction does not reach the required confirmations in time."""


def _chain_height() -> int:
    return chain.blocks.height


class PropagationWait:
    """
    Blocks until a submitted transaction is final enough for a dependent
    transaction to be sent: first polls the chain until the receipt has the
    required number of confirmations, then sleeps a fixed delay.
    """

    def __init__(
        self,
        settings: PropagationSettings = PropagationSettings(),
        get_height: Callable[[], int] = _chain_height,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self._get_height = get_height
        self._sleep = sleep
        self._clock = clock

    def confirmations(self, receipt: ReceiptAPI) -> int:
        block_number: Optional[int] = getattr(receipt, "block_number", None)
        if block_number is None:
            # still pending
            return 0
        return max(self._get_height() - block_number + 1, 0)

    def await_confirmations(self, receipt: ReceiptAPI) -> int:
        required = self.settings.confirmations
        deadline = self._clock() + self.settings.timeout
        confirmations = self.confirmations(receipt)
        while confirmations < required:
            if self._clock() >= deadline:
                raise ConfirmationTimeout(
                    f"Transaction {getattr(receipt, 'txn_hash', '<unknown>')} has "
                    f"{confirmations}/{required} confirmations after {self.settings.timeout}s"
                )
            self._sleep(self.settings.poll_interval)
            confirmations = self.confirmations(receipt)
        return confirmations

    def wait(self, receipt: ReceiptAPI) -> None:
        if self.settings.confirmations > 0:
            self.await_confirmations(receipt)
        if self.settings.delay > 0:
            print(f"Sleeping for {self.settings.delay} seconds...\n")
            self._sleep(self.settings.delay)
