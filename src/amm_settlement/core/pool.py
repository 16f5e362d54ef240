from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Tuple
import logging

from amm_settlement.core.errors import ConfigError
from amm_settlement.utils.math_helpers import BPS_DENOMINATOR, checked_mul, require_u16

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolState:
    """
    Immutable state of a two-asset constant-product pool.

    Every mutating operation returns a new PoolState; the old value is never
    touched, so a failed operation leaves the caller's state as it was.

    Attributes:
        reserve_a (int): Units of token A held by the pool.
        reserve_b (int): Units of token B held by the pool.
        fee_bps (int): Swap fee in basis points, fixed at creation.
        lp_supply (int): Outstanding LP-token units.
    """

    reserve_a: int
    reserve_b: int
    fee_bps: int
    lp_supply: int = 0

    @property
    def k(self) -> int:
        """Return the invariant constant-product (k = a * b) at double width."""
        return checked_mul(self.reserve_a, self.reserve_b)

    @property
    def is_empty(self) -> bool:
        """True when no LP claims are outstanding."""
        return self.lp_supply == 0

    def spot_price(self) -> Fraction:
        """
        Return the exact price of token A in units of token B.

        Raises:
            ZeroDivisionError: If the pool holds no token A.
        """
        return Fraction(self.reserve_b, self.reserve_a)

    def reserves_for(self, out_is_a: bool) -> Tuple[int, int]:
        """Return ``(reserve_out, reserve_in)`` for a swap paying out A when ``out_is_a``."""
        if out_is_a:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    def with_balances(self, reserve_a: int, reserve_b: int, lp_supply: int) -> "PoolState":
        """Return a copy with new balances; the fee is carried over unchanged."""
        return replace(self, reserve_a=reserve_a, reserve_b=reserve_b, lp_supply=lp_supply)


def initialize(fee_bps: int) -> PoolState:
    """
    Create an empty pool.

    Args:
        fee_bps (int): Swap fee in basis points (30 = 0.3%).

    Returns:
        PoolState: A pool with zero reserves and zero LP supply.

    Raises:
        ConfigError: If the fee is not a u16 or is 100% or more.
    """
    require_u16(fee_bps, "fee_bps")
    if fee_bps >= BPS_DENOMINATOR:
        raise ConfigError(f"fee_bps must be below {BPS_DENOMINATOR}, got {fee_bps}")
    logger.debug("Initialized pool with fee %d bps", fee_bps)
    return PoolState(reserve_a=0, reserve_b=0, fee_bps=fee_bps, lp_supply=0)
