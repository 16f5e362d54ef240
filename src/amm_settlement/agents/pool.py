from mesa import Agent
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
import logging

from amm_settlement.agents.ledger import LedgerAgent
from amm_settlement.core.engine import DepositRequest, Settlement, SwapRequest, WithdrawRequest, settle
from amm_settlement.core.errors import ConfigError, FailureKind
from amm_settlement.core.pool import PoolState, initialize
from amm_settlement.core.swap import SwapQuote, quote_swap

logger = logging.getLogger(__name__)


def holder_key(actor: Any) -> Any:
    """Ledger key for an actor: a Mesa agent's unique_id, or the value itself."""
    return getattr(actor, "unique_id", actor)


class PoolAgent(Agent):
    """
    Shell around one constant-product pool.

    Settles requests through the pure core, applies the returned transfers to
    the ledger, and commits the new PoolState only when settlement succeeds.

    Attributes:
        ledger (LedgerAgent): Ledger holding both tokens and LP claims.
        token_a (str): Symbol of the first token in the pair.
        token_b (str): Symbol of the second token in the pair.
        pool_id (str): Ledger holder key of the pool and its LP token.
        state (PoolState): Current pool state.
        on_swap (Callable): Optional hook for swap events.
        on_deposit (Callable): Optional hook for deposit events.
        on_withdraw (Callable): Optional hook for withdraw events.
    """

    def __init__(
        self,
        model,
        ledger: LedgerAgent,
        token_a: str,
        token_b: str,
        fee_bps: int = 30,
        pool_id: Optional[str] = None,
        on_swap: Optional[Callable] = None,
        on_deposit: Optional[Callable] = None,
        on_withdraw: Optional[Callable] = None,
    ):
        """Initialize an empty pool; raises ConfigError for an invalid fee or a one-token pair."""
        if token_a == token_b:
            raise ConfigError(f"Pool pair must name two distinct tokens, got {token_a}/{token_b}.")
        super().__init__(model)
        self.state: PoolState = initialize(fee_bps)
        self.ledger = ledger
        self.token_a = token_a
        self.token_b = token_b
        self.pool_id = pool_id or f"{token_a}/{token_b}/{fee_bps}"

        self.on_swap = on_swap
        self.on_deposit = on_deposit
        self.on_withdraw = on_withdraw

    @property
    def fee_bps(self) -> int:
        return self.state.fee_bps

    def get_reserves(self) -> Tuple[int, int]:
        """Return current reserves of token_a and token_b."""
        return self.state.reserve_a, self.state.reserve_b

    def get_k(self) -> int:
        """Return the invariant constant-product (k = a * b)."""
        return self.state.k

    def quote(self, want_out: int, out_is_a: bool) -> SwapQuote:
        """Price an exact-output swap against the current state without settling it."""
        return quote_swap(self.state, want_out, out_is_a)

    def _record(self, settlement: Settlement) -> None:
        metrics = getattr(self.model, "metrics", None)
        if metrics is None:
            return
        if settlement.ok:
            metrics["settled"] = metrics.get("settled", 0) + 1
        else:
            failures = metrics.setdefault("failures", {})
            failures[settlement.failure.value] = failures.get(settlement.failure.value, 0) + 1

    def _pay_in(self, holder: Any, token: str, amount: int) -> None:
        if not self.ledger.transfer_token(token, holder, self.pool_id, amount):
            raise RuntimeError(f"{holder} cannot fund {amount} {token} to {self.pool_id}")

    def _pay_out(self, holder: Any, token: str, amount: int) -> None:
        if not self.ledger.transfer_token(token, self.pool_id, holder, amount):
            raise RuntimeError(f"{self.pool_id} cannot pay {amount} {token} to {holder}")

    def _unfunded(
        self, holder: Any, settlement: Settlement, legs: Iterable[Tuple[str, int]]
    ) -> Optional[Settlement]:
        """Turn a settled request into a VALIDATION failure if the holder cannot fund every leg."""
        needs: Dict[str, int] = {}
        for token, amount in legs:
            needs[token] = needs.get(token, 0) + amount
        for token, amount in needs.items():
            balance = self.ledger.get_token_balance(token, holder)
            if balance < amount:
                return Settlement(
                    request=settlement.request,
                    pool=self.state,
                    failure=FailureKind.VALIDATION,
                    message=f"{holder} holds {balance} {token}, needs {amount}",
                )
        return None

    def _finish(self, settlement: Settlement, action: str, holder: Any) -> bool:
        self._record(settlement)
        if not settlement.ok:
            logger.debug("%s by %s on %s rejected: %s", action, holder, self.pool_id, settlement.message)
        return settlement.ok

    def deposit(self, provider: Any, lp_amount: int, max_a: int, max_b: int) -> Settlement:
        """
        Deposit both tokens and receive ``lp_amount`` LP units.

        Args:
            provider: Depositing agent (or ledger holder key).
            lp_amount (int): LP units to mint.
            max_a (int): Most token A to pay.
            max_b (int): Most token B to pay.

        Returns:
            Settlement: Success with a DepositResult, or the failure kind. A
            provider without the required balances gets a VALIDATION failure.
        """
        holder = holder_key(provider)
        settlement = settle(self.state, DepositRequest(lp_amount=lp_amount, max_a=max_a, max_b=max_b))
        if settlement.ok:
            receipt = settlement.receipt
            settlement = self._unfunded(
                holder, settlement, [(self.token_a, receipt.required_a), (self.token_b, receipt.required_b)]
            ) or settlement
        if not self._finish(settlement, "Deposit", holder):
            return settlement

        receipt = settlement.receipt
        self._pay_in(holder, self.token_a, receipt.required_a)
        self._pay_in(holder, self.token_b, receipt.required_b)
        self.ledger.mint_lp(self.pool_id, holder, lp_amount)
        self.state = settlement.pool

        logger.info(
            "Agent %s deposited %d %s + %d %s for %d LP in %s",
            holder, receipt.required_a, self.token_a, receipt.required_b, self.token_b, lp_amount, self.pool_id,
        )
        if self.on_deposit:
            self.on_deposit(self, provider, receipt)
        return settlement

    def withdraw(self, provider: Any, lp_amount: int, min_a: int = 0, min_b: int = 0) -> Settlement:
        """
        Burn LP units held by ``provider`` for a share of both reserves.

        Returns:
            Settlement: Success with a WithdrawResult, or the failure kind.
        """
        holder = holder_key(provider)
        request = WithdrawRequest(lp_amount=lp_amount, min_a=min_a, min_b=min_b)
        held = self.ledger.get_lp_balance(self.pool_id, holder)
        if isinstance(lp_amount, int) and lp_amount > held:
            settlement = Settlement(
                request=request,
                pool=self.state,
                failure=FailureKind.VALIDATION,
                message=f"{holder} holds {held} LP, cannot burn {lp_amount}",
            )
        else:
            settlement = settle(self.state, request)
        if not self._finish(settlement, "Withdraw", holder):
            return settlement

        receipt = settlement.receipt
        self.ledger.burn_lp(self.pool_id, holder, lp_amount)
        self._pay_out(holder, self.token_a, receipt.amount_a)
        self._pay_out(holder, self.token_b, receipt.amount_b)
        self.state = settlement.pool

        logger.info(
            "Agent %s withdrew %d %s + %d %s for %d LP from %s",
            holder, receipt.amount_a, self.token_a, receipt.amount_b, self.token_b, lp_amount, self.pool_id,
        )
        if self.on_withdraw:
            self.on_withdraw(self, provider, receipt)
        return settlement

    def swap(self, trader: Any, want_out: int, max_in: int, out_is_a: bool) -> Settlement:
        """
        Buy exactly ``want_out`` of one token, paying at most ``max_in`` of the other.

        Returns:
            Settlement: Success with a SwapResult, or the failure kind.
        """
        holder = holder_key(trader)
        token_out, token_in = (self.token_a, self.token_b) if out_is_a else (self.token_b, self.token_a)
        settlement = settle(self.state, SwapRequest(want_out=want_out, max_in=max_in, out_is_a=out_is_a))
        if settlement.ok:
            settlement = self._unfunded(holder, settlement, [(token_in, settlement.receipt.amount_in)]) or settlement
        if not self._finish(settlement, "Swap", holder):
            return settlement

        receipt = settlement.receipt
        self._pay_in(holder, token_in, receipt.amount_in)
        self._pay_out(holder, token_out, want_out)
        self.state = settlement.pool

        logger.info(
            "Agent %s swapped %d %s for %d %s on %s",
            holder, receipt.amount_in, token_in, want_out, token_out, self.pool_id,
        )
        if self.on_swap:
            self.on_swap(self, trader, receipt, f"{token_in}→{token_out}")
        return settlement

    def step(self):
        """Pools are reactive; no internal logic on each step."""
        pass
