"""Request objects and a single settlement entry point for the calling shell.

:func:`settle` never raises an engine error. It returns a
:class:`Settlement` tagged with either success or the
:class:`~amm_settlement.core.errors.FailureKind` that stopped the operation,
so a shell can tell "market moved" (slippage) from "engine bug" (invariant)
without catching exceptions.
"""

from dataclasses import dataclass
from typing import Optional, Union
import logging

from amm_settlement.core.errors import AmmError, FailureKind
from amm_settlement.core.liquidity import DepositResult, WithdrawResult, deposit, withdraw
from amm_settlement.core.pool import PoolState
from amm_settlement.core.swap import SwapResult, swap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepositRequest:
    lp_amount: int
    max_a: int
    max_b: int


@dataclass(frozen=True)
class WithdrawRequest:
    lp_amount: int
    min_a: int
    min_b: int


@dataclass(frozen=True)
class SwapRequest:
    want_out: int
    max_in: int
    out_is_a: bool


Request = Union[DepositRequest, WithdrawRequest, SwapRequest]
Receipt = Union[DepositResult, WithdrawResult, SwapResult]


@dataclass(frozen=True)
class Settlement:
    """
    Result of settling one request against one pool.

    Attributes:
        request: The request that was settled.
        pool (PoolState): The new pool on success, the unchanged pool on failure.
        receipt: Engine result on success, else None.
        failure (Optional[FailureKind]): Why the request was rejected, else None.
        message (str): Error message on failure.
    """

    request: Request
    pool: PoolState
    receipt: Optional[Receipt] = None
    failure: Optional[FailureKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None


def _dispatch(pool: PoolState, request: Request) -> Receipt:
    if isinstance(request, DepositRequest):
        return deposit(pool, request.lp_amount, request.max_a, request.max_b)
    if isinstance(request, WithdrawRequest):
        return withdraw(pool, request.lp_amount, request.min_a, request.min_b)
    if isinstance(request, SwapRequest):
        return swap(pool, request.want_out, request.max_in, request.out_is_a)
    raise TypeError(f"Unsupported request type: {type(request).__name__}")


def settle(pool: PoolState, request: Request) -> Settlement:
    """
    Apply a request to a pool, all or nothing.

    Args:
        pool (PoolState): Pool to settle against.
        request: A DepositRequest, WithdrawRequest or SwapRequest.

    Returns:
        Settlement: Success with the receipt and new pool, or the failure kind
        with the original pool.

    Raises:
        TypeError: If ``request`` is not one of the three request types.
    """
    try:
        receipt = _dispatch(pool, request)
    except AmmError as exc:
        logger.debug("Rejected %s: %s (%s)", request, exc, exc.kind.value)
        return Settlement(request=request, pool=pool, failure=exc.kind, message=str(exc))
    return Settlement(request=request, pool=receipt.pool, receipt=receipt)
