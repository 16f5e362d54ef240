from mesa import Agent
import numpy as np
from typing import Callable, List, Optional
import logging

from amm_settlement.core.errors import AmmError
from amm_settlement.utils.math_helpers import BPS_DENOMINATOR, mul_div_ceil

logger = logging.getLogger(__name__)


class TraderAgent(Agent):
    """
    Trader that buys a random exact amount from a random pool each step.

    Attributes:
        max_trade_bps (int): Largest trade as a share of the output reserve, in bps.
        slippage_bps (int): Headroom added to the quoted input when setting ``max_in``.
        pool_selector (Callable): Returns the pools this trader may use.
        on_trade (Callable): Optional callback with each Settlement.
        _rng (np.random.Generator): Random number generator for trade choice.
    """

    def __init__(
        self,
        model,
        max_trade_bps: int = 500,
        slippage_bps: int = 100,
        pool_selector: Optional[Callable[[], List]] = None,
        on_trade: Optional[Callable] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(model)
        if not 0 < max_trade_bps <= BPS_DENOMINATOR:
            raise ValueError(f"max_trade_bps must be in (0, {BPS_DENOMINATOR}], got {max_trade_bps}")
        if slippage_bps < 0:
            raise ValueError(f"slippage_bps must be non-negative, got {slippage_bps}")
        self.max_trade_bps = int(max_trade_bps)
        self.slippage_bps = int(slippage_bps)
        self.pool_selector = pool_selector or self._default_pool_selector
        self.on_trade = on_trade
        self.trades: List = []
        self._rng = np.random.default_rng(seed if seed is not None else self.model.random.randrange(2 ** 32))

    def _default_pool_selector(self) -> List:
        """Select every pool registered on the model."""
        return list(getattr(self.model, "pools", []))

    def plan_trade(self, pool):
        """
        Pick a side and exact output size for ``pool``.

        Returns:
            Optional[tuple]: ``(want_out, max_in, out_is_a)``, or None when the
            pool is too shallow to trade or the quote cannot be priced.
        """
        out_is_a = bool(self._rng.integers(2))
        reserve_out, _ = pool.state.reserves_for(out_is_a)
        largest = min(reserve_out * self.max_trade_bps // BPS_DENOMINATOR, reserve_out - 1)
        if largest < 1:
            return None
        want_out = int(self._rng.integers(1, largest + 1, dtype=np.uint64))
        try:
            quote = pool.quote(want_out, out_is_a)
            max_in = mul_div_ceil(quote.amount_in, BPS_DENOMINATOR + self.slippage_bps, BPS_DENOMINATOR)
        except AmmError as exc:
            logger.debug("Trader %s could not price %d out: %s", self.unique_id, want_out, exc)
            return None
        return want_out, max_in, out_is_a

    def step(self):
        """Quote and submit one exact-output swap on a randomly chosen pool."""
        pools = [p for p in self.pool_selector() if not p.state.is_empty]
        if not pools:
            return
        pool = pools[int(self._rng.integers(len(pools)))]
        plan = self.plan_trade(pool)
        if plan is None:
            return
        want_out, max_in, out_is_a = plan
        settlement = pool.swap(self, want_out, max_in, out_is_a)
        self.trades.append(settlement)
        if self.on_trade:
            self.on_trade(self, settlement)
