from mesa import Agent
import numpy as np
from typing import Callable, List, Optional
import logging

from amm_settlement.utils.math_helpers import BPS_DENOMINATOR, mul_div_ceil, mul_div_floor

logger = logging.getLogger(__name__)


class LiquidityProviderAgent(Agent):
    """
    Liquidity provider that adds to or exits from a random pool each step.

    Attributes:
        lp_amount (int): LP units requested per deposit.
        initial_a (int): Token A paid when seeding an empty pool.
        initial_b (int): Token B paid when seeding an empty pool.
        slippage_bps (int): Tolerance applied to deposit maxima and withdraw minima.
        withdraw_probability (float): Chance per step of exiting a held position.
        pool_selector (Callable): Returns the pools this provider may use.
        on_action (Callable): Optional callback with each Settlement.
    """

    def __init__(
        self,
        model,
        lp_amount: int = 1_000,
        initial_a: int = 0,
        initial_b: int = 0,
        slippage_bps: int = 100,
        withdraw_probability: float = 0.1,
        pool_selector: Optional[Callable[[], List]] = None,
        on_action: Optional[Callable] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(model)
        if not 0 <= slippage_bps <= BPS_DENOMINATOR:
            raise ValueError(f"slippage_bps must be in [0, {BPS_DENOMINATOR}], got {slippage_bps}")
        if not 0.0 <= withdraw_probability <= 1.0:
            raise ValueError(f"withdraw_probability must be in [0, 1], got {withdraw_probability}")
        self.lp_amount = int(lp_amount)
        self.initial_a = int(initial_a)
        self.initial_b = int(initial_b)
        self.slippage_bps = int(slippage_bps)
        self.withdraw_probability = float(withdraw_probability)
        self.pool_selector = pool_selector or self._default_pool_selector
        self.on_action = on_action
        self.actions: List = []
        self._rng = np.random.default_rng(seed if seed is not None else self.model.random.randrange(2 ** 32))

    def _default_pool_selector(self) -> List:
        """Select every pool registered on the model."""
        return list(getattr(self.model, "pools", []))

    def add_liquidity(self, pool):
        """Deposit ``lp_amount`` into ``pool``, seeding it if empty. Returns the Settlement or None."""
        state = pool.state
        if state.is_empty:
            if self.initial_a <= 0 or self.initial_b <= 0:
                return None
            return pool.deposit(self, self.lp_amount, self.initial_a, self.initial_b)

        headroom = BPS_DENOMINATOR + self.slippage_bps
        max_a = mul_div_ceil(mul_div_ceil(self.lp_amount, state.reserve_a, state.lp_supply), headroom, BPS_DENOMINATOR)
        max_b = mul_div_ceil(mul_div_ceil(self.lp_amount, state.reserve_b, state.lp_supply), headroom, BPS_DENOMINATOR)
        return pool.deposit(self, self.lp_amount, max_a, max_b)

    def remove_liquidity(self, pool):
        """Burn this provider's whole LP position in ``pool``. Returns the Settlement or None."""
        held = pool.ledger.get_lp_balance(pool.pool_id, self.unique_id)
        if held == 0:
            return None
        state = pool.state
        floor_bps = BPS_DENOMINATOR - self.slippage_bps
        min_a = mul_div_floor(mul_div_floor(held, state.reserve_a, state.lp_supply), floor_bps, BPS_DENOMINATOR)
        min_b = mul_div_floor(mul_div_floor(held, state.reserve_b, state.lp_supply), floor_bps, BPS_DENOMINATOR)
        return pool.withdraw(self, held, min_a, min_b)

    def step(self):
        """Withdraw a held position with ``withdraw_probability``, otherwise deposit."""
        pools = self.pool_selector()
        if not pools:
            return
        pool = pools[int(self._rng.integers(len(pools)))]
        held = pool.ledger.get_lp_balance(pool.pool_id, self.unique_id)
        if held and self._rng.random() < self.withdraw_probability:
            settlement = self.remove_liquidity(pool)
        else:
            settlement = self.add_liquidity(pool)
        if settlement is None:
            logger.debug("Provider %s idle on %s", self.unique_id, pool.pool_id)
            return
        self.actions.append(settlement)
        if self.on_action:
            self.on_action(self, settlement)
