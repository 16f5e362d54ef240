from mesa import Agent
from typing import Any, Dict, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


def _require_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise ValueError(f"Ledger amounts must be non-negative integers, got {amount!r}")


class LedgerAgent(Agent):
    """
    Token ledger that executes the transfers a pool settlement returns.

    The settlement core only computes amounts; this agent owns the balances.

    Supports:
        - Integer token balances per (token, holder)
        - LP claim balances per (pool_id, holder)
        - Event logging keyed by model step
    """

    def __init__(self, model):
        """Initialize an empty ledger."""
        super().__init__(model)
        self.token_balances: Dict[Tuple[str, Any], int] = {}
        self.lp_balances: Dict[Tuple[str, Any], int] = {}
        self.event_logs: Dict[int, List[Tuple[str, Any]]] = {}

    def create_account(self, holder: Any, balances: Optional[Dict[str, int]] = None) -> None:
        """Register a holder with optional starting token balances."""
        for token, amount in (balances or {}).items():
            self.credit(token, holder, amount)

    def credit(self, token: str, holder: Any, amount: int) -> None:
        """Mint ``amount`` of ``token`` to ``holder`` out of thin air (funding only)."""
        _require_amount(amount)
        key = (token, holder)
        self.token_balances[key] = self.token_balances.get(key, 0) + amount

    def get_token_balance(self, token: str, holder: Any) -> int:
        """Return token balance of a holder."""
        return self.token_balances.get((token, holder), 0)

    def total_supply(self, token: str) -> int:
        """Return the sum of all balances of ``token``."""
        return sum(v for (t, _), v in self.token_balances.items() if t == token)

    def transfer_token(self, token: str, frm: Any, to: Any, amount: int) -> bool:
        """Transfer tokens between two holders. Returns False if ``frm`` cannot cover it."""
        _require_amount(amount)
        key_from = (token, frm)
        key_to = (token, to)
        if self.token_balances.get(key_from, 0) < amount:
            logger.debug("Transfer of %d %s from %s refused", amount, token, frm)
            return False
        self.token_balances[key_from] -= amount
        self.token_balances[key_to] = self.token_balances.get(key_to, 0) + amount
        self._log_event("Transfer", {"token": token, "from": frm, "to": to, "amount": amount})
        return True

    def get_lp_balance(self, pool_id: str, holder: Any) -> int:
        """Return the LP claim of a holder in a pool."""
        return self.lp_balances.get((pool_id, holder), 0)

    def mint_lp(self, pool_id: str, holder: Any, amount: int) -> None:
        """Credit newly minted LP units to a holder."""
        _require_amount(amount)
        key = (pool_id, holder)
        self.lp_balances[key] = self.lp_balances.get(key, 0) + amount
        self._log_event("MintLP", {"pool": pool_id, "holder": holder, "amount": amount})

    def burn_lp(self, pool_id: str, holder: Any, amount: int) -> bool:
        """Burn LP units from a holder. Returns False if the holder has too few."""
        _require_amount(amount)
        key = (pool_id, holder)
        if self.lp_balances.get(key, 0) < amount:
            return False
        self.lp_balances[key] -= amount
        self._log_event("BurnLP", {"pool": pool_id, "holder": holder, "amount": amount})
        return True

    def _log_event(self, event_name: str, payload: Any) -> None:
        """Store an event in the log for the current model step."""
        self.event_logs.setdefault(self.model.steps, []).append((event_name, payload))

    def get_events(self, step: Optional[int] = None) -> List[Tuple[str, Any]]:
        """Get all events from one step or the whole run."""
        if step is None:
            all_events = []
            for ev_list in self.event_logs.values():
                all_events.extend(ev_list)
            return all_events
        return self.event_logs.get(step, [])

    def get_account_state(self, holder: Any) -> Dict[str, Dict[str, int]]:
        """Return a summary of a holder's token and LP balances."""
        tokens = {t: v for (t, h), v in self.token_balances.items() if h == holder}
        lp = {p: v for (p, h), v in self.lp_balances.items() if h == holder}
        return {"tokens": tokens, "lp": lp}

    def step(self):
        """The ledger is reactive; no internal logic on each step."""
        pass
