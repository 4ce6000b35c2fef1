"""Cumulative spend tracking against a USD cap.

The cap is advisory: each charge is applied first and checked afterwards,
so the call that crosses the cap is still accounted for.
One tracker is shared by every agent and executor of a session.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from agentloop import pricing
from agentloop.errors import BudgetExceeded
from agentloop.pricing import ModelPricing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillingSnapshot:
    """Point-in-time view of the ledger."""

    spent: float
    cap: float
    input_tokens: int
    output_tokens: int


class BudgetTracker:
    """Lock-guarded spend ledger.

    charge_input() and charge_output() are the only mutation paths. Both
    are serialized by a lock so concurrent charges from many conversations
    never interleave.
    """

    def __init__(
        self,
        cap: float,
        pricing_table: dict[str, ModelPricing] | None = None,
    ) -> None:
        self._cap = cap
        self._spent = 0.0
        self._input_tokens = 0
        self._output_tokens = 0
        self._pricing = pricing_table
        self._lock = threading.Lock()

    @property
    def cap(self) -> float:
        return self._cap

    @property
    def spent(self) -> float:
        with self._lock:
            return self._spent

    @property
    def remaining(self) -> float:
        with self._lock:
            return self._cap - self._spent

    def in_cap(self) -> bool:
        with self._lock:
            return self._spent <= self._cap

    def pricing_for(self, model: str) -> ModelPricing:
        """Price table entry for a model. Raises ConfigurationError if unknown."""
        return pricing.lookup(model, self._pricing)

    def charge_input(self, model: str, token_count: int) -> None:
        """Charge prompt tokens. Raises BudgetExceeded after applying the charge."""
        price = self.pricing_for(model).input_tokens
        self._charge(price, token_count, output=False)

    def charge_output(self, model: str, token_count: int) -> None:
        """Charge completion tokens. Raises BudgetExceeded after applying the charge."""
        price = self.pricing_for(model).output_tokens
        self._charge(price, token_count, output=True)

    def snapshot(self) -> BillingSnapshot:
        with self._lock:
            return BillingSnapshot(
                spent=self._spent,
                cap=self._cap,
                input_tokens=self._input_tokens,
                output_tokens=self._output_tokens,
            )

    def _charge(self, price: float, token_count: int, *, output: bool) -> None:
        with self._lock:
            self._spent += (price * token_count) / 1e6
            if output:
                self._output_tokens += token_count
            else:
                self._input_tokens += token_count
            spent = self._spent
        if spent > self._cap:
            logger.warning("Billing cap %s exceeded, current %s", self._cap, spent)
            raise BudgetExceeded(spent, self._cap)

    def __str__(self) -> str:
        snap = self.snapshot()
        return f"Billing({snap.spent}/{snap.cap})"
