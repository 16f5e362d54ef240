from typing import NamedTuple
import logging

from amm_settlement.core import guard
from amm_settlement.core.errors import ValidationError
from amm_settlement.core.pool import PoolState
from amm_settlement.utils.math_helpers import (
    BPS_DENOMINATOR,
    checked_add,
    checked_mul,
    checked_sub,
    mul_div_ceil,
    require_u64,
)

logger = logging.getLogger(__name__)


class SwapQuote(NamedTuple):
    """
    Price of an exact-output swap.

    Attributes:
        want_out (int): Units the trader receives.
        out_is_a (bool): True when the trader receives token A.
        amount_in_exact (int): Input that holds k constant before fees (floored).
        amount_in (int): Input the trader pays, fee included (ceiled).
    """

    want_out: int
    out_is_a: bool
    amount_in_exact: int
    amount_in: int

    @property
    def fee_amount(self) -> int:
        return self.amount_in - self.amount_in_exact


class SwapResult(NamedTuple):
    amount_in: int
    new_reserve_a: int
    new_reserve_b: int
    pool: PoolState


def _require_side(out_is_a) -> bool:
    if not isinstance(out_is_a, bool):
        raise ValidationError(f"out_is_a must be a bool, got {type(out_is_a).__name__}")
    return out_is_a


def quote_swap(pool: PoolState, want_out: int, out_is_a: bool) -> SwapQuote:
    """
    Compute what a trader must pay to receive exactly ``want_out`` units.

    Pure and read-only: identical inputs always give an identical quote.

    Args:
        pool (PoolState): Current pool.
        want_out (int): Units of the output token to receive.
        out_is_a (bool): True to receive token A and pay token B.

    Returns:
        SwapQuote: The floored no-fee input and the fee-inclusive input.

    Raises:
        ValidationError: ``want_out`` is zero or would drain the output reserve.
        MathError: The fee-inclusive input does not fit in u64.
    """
    require_u64(want_out, "want_out")
    _require_side(out_is_a)
    reserve_out, reserve_in = pool.reserves_for(out_is_a)
    if want_out == 0:
        raise ValidationError("want_out must be positive")
    if want_out >= reserve_out:
        raise ValidationError(f"want_out {want_out} would drain reserve of {reserve_out}")

    new_out_reserve = reserve_out - want_out
    k = checked_mul(reserve_out, reserve_in)
    numerator = checked_sub(k, checked_mul(new_out_reserve, reserve_in))
    amount_in_exact = numerator // new_out_reserve
    amount_in = mul_div_ceil(amount_in_exact, BPS_DENOMINATOR + pool.fee_bps, BPS_DENOMINATOR)
    return SwapQuote(want_out, out_is_a, amount_in_exact, amount_in)


def swap(pool: PoolState, want_out: int, max_in: int, out_is_a: bool) -> SwapResult:
    """
    Execute an exact-output swap with the fee levied on the input leg.

    The trader receives ``want_out`` of the output token and pays
    ``amount_in`` of the other. The swap is rejected if the product of the
    reserves would fall.

    Returns:
        SwapResult: ``(amount_in, new_reserve_a, new_reserve_b, pool)``.

    Raises:
        ValidationError: See :func:`quote_swap`.
        SlippageExceeded: ``amount_in`` is above ``max_in``.
        MathError: The input reserve would overflow u64.
        InvariantViolation: The reserve product would decrease.
    """
    require_u64(max_in, "max_in")
    quote = quote_swap(pool, want_out, out_is_a)
    guard.check_max_bound("max_in", quote.amount_in, max_in).raise_for_failure()

    reserve_out, reserve_in = pool.reserves_for(out_is_a)
    new_in = checked_add(reserve_in, quote.amount_in)
    new_out = reserve_out - want_out
    if out_is_a:
        new_a, new_b = new_out, new_in
    else:
        new_a, new_b = new_in, new_out

    updated = pool.with_balances(reserve_a=new_a, reserve_b=new_b, lp_supply=pool.lp_supply)
    guard.check_swap(pool, updated).raise_for_failure()

    logger.debug(
        "Swap paid out %d %s for %d in (fee %d)",
        want_out,
        "A" if out_is_a else "B",
        quote.amount_in,
        quote.fee_amount,
    )
    return SwapResult(quote.amount_in, new_a, new_b, updated)
