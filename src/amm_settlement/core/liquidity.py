from typing import NamedTuple
import logging

from amm_settlement.core import guard
from amm_settlement.core.errors import ValidationError
from amm_settlement.core.pool import PoolState
from amm_settlement.utils.math_helpers import checked_add, checked_sub, mul_div_ceil, mul_div_floor, require_u64

logger = logging.getLogger(__name__)


class DepositResult(NamedTuple):
    """Amounts the depositor must transfer in, plus the pool after the deposit."""

    required_a: int
    required_b: int
    new_lp_supply: int
    pool: PoolState


class WithdrawResult(NamedTuple):
    """Amounts the pool pays out, plus the pool after the burn."""

    amount_a: int
    amount_b: int
    new_lp_supply: int
    pool: PoolState


def deposit(pool: PoolState, lp_amount_requested: int, max_a: int, max_b: int) -> DepositResult:
    """
    Mint ``lp_amount_requested`` LP units against a deposit of both tokens.

    The first deposit into an empty pool sets the reserves to exactly
    ``(max_a, max_b)`` and mints the requested amount as given. Later
    deposits are charged a proportional share of each reserve, rounded up so
    existing holders are never diluted.

    Args:
        pool (PoolState): Current pool.
        lp_amount_requested (int): LP units to mint.
        max_a (int): Most token A the depositor will pay.
        max_b (int): Most token B the depositor will pay.

    Returns:
        DepositResult: ``(required_a, required_b, new_lp_supply, pool)``.

    Raises:
        ValidationError: Zero LP amount, or a zero initial amount on an empty pool.
        SlippageExceeded: A required amount exceeds its max.
        MathError: A reserve or the supply would overflow u64.
        InvariantViolation: The resulting pool failed its post-conditions.
    """
    require_u64(lp_amount_requested, "lp_amount_requested")
    require_u64(max_a, "max_a")
    require_u64(max_b, "max_b")
    if lp_amount_requested == 0:
        raise ValidationError("lp_amount_requested must be positive")
    guard.check_pool_consistency(pool).raise_for_failure()

    if pool.is_empty:
        if max_a == 0 or max_b == 0:
            raise ValidationError("initial deposit requires both max_a and max_b to be positive")
        required_a, required_b = max_a, max_b
    else:
        required_a = mul_div_ceil(lp_amount_requested, pool.reserve_a, pool.lp_supply)
        required_b = mul_div_ceil(lp_amount_requested, pool.reserve_b, pool.lp_supply)
        guard.first_failure(
            guard.check_max_bound("max_a", required_a, max_a),
            guard.check_max_bound("max_b", required_b, max_b),
        ).raise_for_failure()

    updated = pool.with_balances(
        reserve_a=checked_add(pool.reserve_a, required_a),
        reserve_b=checked_add(pool.reserve_b, required_b),
        lp_supply=checked_add(pool.lp_supply, lp_amount_requested),
    )
    guard.check_deposit(pool, updated).raise_for_failure()

    logger.debug(
        "Deposit minted %d LP for %d A / %d B", lp_amount_requested, required_a, required_b
    )
    return DepositResult(required_a, required_b, updated.lp_supply, updated)


def withdraw(pool: PoolState, lp_amount: int, min_a: int, min_b: int) -> WithdrawResult:
    """
    Burn ``lp_amount`` LP units for a proportional share of both reserves.

    Payouts are rounded down so a withdrawer never takes more than their share.

    Returns:
        WithdrawResult: ``(amount_a, amount_b, new_lp_supply, pool)``.

    Raises:
        ValidationError: Zero LP amount or more than the outstanding supply.
        SlippageExceeded: A payout falls below its min.
    """
    require_u64(lp_amount, "lp_amount")
    require_u64(min_a, "min_a")
    require_u64(min_b, "min_b")
    if lp_amount == 0:
        raise ValidationError("lp_amount must be positive")
    if lp_amount > pool.lp_supply:
        raise ValidationError(f"lp_amount {lp_amount} exceeds lp_supply {pool.lp_supply}")
    guard.check_pool_consistency(pool).raise_for_failure()

    amount_a = mul_div_floor(lp_amount, pool.reserve_a, pool.lp_supply)
    amount_b = mul_div_floor(lp_amount, pool.reserve_b, pool.lp_supply)
    guard.first_failure(
        guard.check_min_bound("min_a", amount_a, min_a),
        guard.check_min_bound("min_b", amount_b, min_b),
    ).raise_for_failure()

    updated = pool.with_balances(
        reserve_a=checked_sub(pool.reserve_a, amount_a),
        reserve_b=checked_sub(pool.reserve_b, amount_b),
        lp_supply=checked_sub(pool.lp_supply, lp_amount),
    )
    guard.check_withdraw(pool, updated).raise_for_failure()

    logger.debug("Withdraw burned %d LP for %d A / %d B", lp_amount, amount_a, amount_b)
    return WithdrawResult(amount_a, amount_b, updated.lp_supply, updated)
