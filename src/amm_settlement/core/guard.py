"""Pre/post-condition checks applied around every pool mutation.

Checks return a :class:`GuardResult` instead of raising, so a caller can
branch on the failure kind directly. The engines turn a failed result into
the matching exception with :meth:`GuardResult.raise_for_failure`.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from amm_settlement.core.errors import ERRORS_BY_KIND, FailureKind, SlippageExceeded
from amm_settlement.core.pool import PoolState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardResult:
    """
    Outcome of a single check.

    Attributes:
        kind (Optional[FailureKind]): None when the check passed.
        detail (str): Human-readable reason for a failure.
        bound_name (Optional[str]): Name of the violated bound (slippage only).
        amount (Optional[int]): Computed amount that violated the bound.
        bound (Optional[int]): The caller's bound.
    """

    kind: Optional[FailureKind] = None
    detail: str = ""
    bound_name: Optional[str] = None
    amount: Optional[int] = None
    bound: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.kind is None

    @classmethod
    def failed(cls, kind: FailureKind, detail: str) -> "GuardResult":
        return cls(kind=kind, detail=detail)

    def raise_for_failure(self) -> None:
        """Raise the exception matching this result's kind; no-op when passed."""
        if self.ok:
            return
        if self.kind is FailureKind.SLIPPAGE:
            raise SlippageExceeded(self.bound_name, self.amount, self.bound)
        raise ERRORS_BY_KIND[self.kind](self.detail)


PASSED = GuardResult()


def first_failure(*results: GuardResult) -> GuardResult:
    """Return the first failed result, or PASSED if every check passed."""
    for result in results:
        if not result.ok:
            return result
    return PASSED


def check_max_bound(bound_name: str, amount: int, bound: int) -> GuardResult:
    """Fail with SLIPPAGE if the pool would collect more than the caller allows."""
    if amount > bound:
        return GuardResult(
            kind=FailureKind.SLIPPAGE,
            detail=f"{bound_name} exceeded",
            bound_name=bound_name,
            amount=amount,
            bound=bound,
        )
    return PASSED


def check_min_bound(bound_name: str, amount: int, bound: int) -> GuardResult:
    """Fail with SLIPPAGE if the pool would pay less than the caller requires."""
    if amount < bound:
        return GuardResult(
            kind=FailureKind.SLIPPAGE,
            detail=f"{bound_name} not met",
            bound_name=bound_name,
            amount=amount,
            bound=bound,
        )
    return PASSED


def check_pool_consistency(pool: PoolState) -> GuardResult:
    """
    Check that reserves are non-negative and that the pool holds no
    reserves exactly when it has no LP supply.
    """
    if min(pool.reserve_a, pool.reserve_b, pool.lp_supply) < 0:
        return GuardResult.failed(FailureKind.INVARIANT, f"negative balance in {pool}")
    drained = pool.reserve_a == 0 and pool.reserve_b == 0
    if drained != (pool.lp_supply == 0):
        return GuardResult.failed(
            FailureKind.INVARIANT,
            f"reserves ({pool.reserve_a}, {pool.reserve_b}) inconsistent with lp_supply {pool.lp_supply}",
        )
    return PASSED


def check_deposit(before: PoolState, after: PoolState) -> GuardResult:
    """
    Check a deposit: both reserves strictly increase and, for a non-empty
    pool, the price ratio drifts by less than one rounding unit per asset.

    With ``da = ceil(l*a/s)`` and ``db = ceil(l*b/s)`` the cross-product
    difference ``b'*a - b*a'`` lies strictly inside ``(-b, a)``.
    """
    if after.reserve_a <= before.reserve_a or after.reserve_b <= before.reserve_b:
        return GuardResult.failed(FailureKind.INVARIANT, "deposit did not increase both reserves")
    if not before.is_empty:
        drift = after.reserve_b * before.reserve_a - before.reserve_b * after.reserve_a
        if not -before.reserve_b < drift < before.reserve_a:
            return GuardResult.failed(FailureKind.INVARIANT, f"deposit moved the price ratio (drift {drift})")
    return check_pool_consistency(after)


def check_withdraw(before: PoolState, after: PoolState) -> GuardResult:
    """Check a withdrawal: reserves never grow and burning the last claim drains the pool."""
    if after.reserve_a > before.reserve_a or after.reserve_b > before.reserve_b:
        return GuardResult.failed(FailureKind.INVARIANT, "withdraw increased a reserve")
    return check_pool_consistency(after)


def check_swap(before: PoolState, after: PoolState) -> GuardResult:
    """Check that the reserve product did not decrease across a swap."""
    k_before, k_after = before.k, after.k
    if k_after < k_before:
        logger.debug("Swap rejected: k would fall from %d to %d", k_before, k_after)
        return GuardResult.failed(FailureKind.INVARIANT, f"k decreased from {k_before} to {k_after}")
    return check_pool_consistency(after)
