# src/amm_settlement/models/settlement_model.py

from typing import Dict, List, Optional, Tuple
import logging

import pandas as pd
from mesa import Model
from mesa.datacollection import DataCollector

from amm_settlement.agents.ledger import LedgerAgent
from amm_settlement.agents.pool import PoolAgent
from amm_settlement.agents.provider import LiquidityProviderAgent
from amm_settlement.agents.trader import TraderAgent
from amm_settlement.core.errors import ConfigError
from amm_settlement.utils.config_parser import validate_config

logger = logging.getLogger(__name__)

GENESIS = "genesis"
POOL_FIELDS = ("reserve_a", "reserve_b", "k", "lp_supply")


class SettlementModel(Model):
    """
    Mesa Model running traders and liquidity providers against a set of pools.

    - One LedgerAgent holds every token and LP balance.
    - Each pool is keyed by (token_a, token_b, fee_bps), so one pair may have
      several fee tiers.
    - A pool with `initial_lp` configured is seeded by the "genesis" holder
      before the first step.
    - Use model.step() to advance; per-pool reserves, k and LP supply are
      collected each step.
    """

    def __init__(self, config: dict):
        validate_config(config)
        sim_cfg = config.get("simulation", {})
        seed = sim_cfg.get("seed", None)
        super().__init__(seed=seed)

        self.num_steps = int(sim_cfg.get("steps", 100))

        # Populated by PoolAgent on every settlement
        self.metrics: Dict = {"settled": 0, "failures": {}}

        self.ledger = LedgerAgent(self)
        self.pools: List[PoolAgent] = []
        self._registry: Dict[Tuple[str, str, int], PoolAgent] = {}

        pools_cfg = config.get("pools", [])
        if not pools_cfg:
            raise ConfigError("Config must define at least one pool.")
        for pool_cfg in pools_cfg:
            self._init_pool(pool_cfg)

        tokens = sorted({t for p in self.pools for t in (p.token_a, p.token_b)})
        self._init_traders(config.get("traders", {}), tokens)
        self._init_providers(config.get("providers", {}), tokens)

        reporters = {
            "Settled": lambda m: m.metrics["settled"],
            "Failures": lambda m: sum(m.metrics["failures"].values()),
        }
        for pool in self.pools:
            for field in POOL_FIELDS:
                reporters[f"{pool.pool_id}:{field}"] = lambda m, p=pool, f=field: getattr(p.state, f)
        self.datacollector = DataCollector(model_reporters=reporters)

    def _init_pool(self, pool_cfg: dict) -> PoolAgent:
        """Create, register and optionally seed one pool."""
        token_a = pool_cfg["token_a"]
        token_b = pool_cfg["token_b"]
        fee_bps = pool_cfg.get("fee_bps", 30)
        if self.find_pool(token_a, token_b, fee_bps) is not None:
            raise ConfigError(f"Duplicate pool {token_a}/{token_b} with fee {fee_bps} bps.")

        pool = PoolAgent(self, self.ledger, token_a, token_b, fee_bps=fee_bps)
        self.pools.append(pool)
        self._registry[(token_a, token_b, pool.fee_bps)] = pool

        initial_lp = int(pool_cfg.get("initial_lp", 0))
        if initial_lp > 0:
            initial_a = int(pool_cfg.get("initial_a", 0))
            initial_b = int(pool_cfg.get("initial_b", 0))
            self.ledger.create_account(GENESIS, {token_a: initial_a, token_b: initial_b})
            settlement = pool.deposit(GENESIS, initial_lp, initial_a, initial_b)
            if not settlement.ok:
                raise ConfigError(f"Could not seed {pool.pool_id}: {settlement.message}")
        return pool

    def _init_traders(self, traders_cfg: dict, tokens: List[str]) -> None:
        """Instantiate funded TraderAgent instances (auto-registered)."""
        balance = int(traders_cfg.get("balance", 0))
        for _ in range(int(traders_cfg.get("count", 0))):
            trader = TraderAgent(
                self,
                max_trade_bps=int(traders_cfg.get("max_trade_bps", 500)),
                slippage_bps=int(traders_cfg.get("slippage_bps", 100)),
            )
            self.ledger.create_account(trader.unique_id, {t: balance for t in tokens})

    def _init_providers(self, providers_cfg: dict, tokens: List[str]) -> None:
        """Instantiate funded LiquidityProviderAgent instances (auto-registered)."""
        balance = int(providers_cfg.get("balance", 0))
        for _ in range(int(providers_cfg.get("count", 0))):
            provider = LiquidityProviderAgent(
                self,
                lp_amount=int(providers_cfg.get("lp_amount", 1_000)),
                initial_a=int(providers_cfg.get("initial_a", 0)),
                initial_b=int(providers_cfg.get("initial_b", 0)),
                slippage_bps=int(providers_cfg.get("slippage_bps", 100)),
                withdraw_probability=float(providers_cfg.get("withdraw_probability", 0.1)),
            )
            self.ledger.create_account(provider.unique_id, {t: balance for t in tokens})

    def find_pool(self, token_a: str, token_b: str, fee_bps: Optional[int] = None) -> Optional[PoolAgent]:
        """
        Return a pool for the pair in either order, or None.

        With `fee_bps` the exact fee tier is required; without it the
        lowest-fee pool for the pair is returned.
        """
        matches = [
            pool for (a, b, fee), pool in self._registry.items()
            if {a, b} == {token_a, token_b} and (fee_bps is None or fee == fee_bps)
        ]
        if not matches:
            return None
        return min(matches, key=lambda p: p.fee_bps)

    def get_pool_frame(self, pool_id: Optional[str] = None) -> pd.DataFrame:
        """
        Return collected metrics as a DataFrame.

        With `pool_id`, only that pool's columns are returned, renamed to
        reserve_a, reserve_b, k and lp_supply.
        """
        df = self.datacollector.get_model_vars_dataframe()
        if pool_id is None:
            return df
        columns = {f"{pool_id}:{field}": field for field in POOL_FIELDS}
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise KeyError(f"Unknown pool {pool_id}")
        return df[list(columns)].rename(columns=columns)

    def run(self, steps: Optional[int] = None) -> pd.DataFrame:
        """Run `steps` (default: the configured count) steps and return the collected frame."""
        for _ in range(self.num_steps if steps is None else steps):
            self.step()
        return self.get_pool_frame()

    def step(self):
        """
        Advance the model one tick:
          1. Activate every agent's step() in random order.
          2. Collect per-pool state.
        """
        self.agents.shuffle_do("step")
        self.datacollector.collect(self)
        logger.debug("Step %s: %d settled, failures %s", self.steps, self.metrics["settled"], self.metrics["failures"])
