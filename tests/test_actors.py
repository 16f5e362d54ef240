import sys
from pathlib import Path
import pytest
from mesa import Model

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from amm_settlement.agents.ledger import LedgerAgent
from amm_settlement.agents.pool import PoolAgent
from amm_settlement.agents.provider import LiquidityProviderAgent
from amm_settlement.agents.trader import TraderAgent
from amm_settlement.core.pool import PoolState


def make_pool(m, seeded=True):
    ledger = LedgerAgent(m)
    pool = PoolAgent(m, ledger, token_a="X", token_b="Y", fee_bps=30)
    if seeded:
        ledger.create_account("genesis", {"X": 1_000_000, "Y": 2_000_000})
        pool.deposit("genesis", 1_000_000, 1_000_000, 2_000_000)
    return pool


def test_trader_swaps_preserve_invariant():
    m = Model()
    pool = make_pool(m)
    trader = TraderAgent(m, max_trade_bps=300, slippage_bps=50, pool_selector=lambda: [pool], seed=1)
    pool.ledger.create_account(trader.unique_id, {"X": 10 ** 9, "Y": 10 ** 9})

    k = pool.get_k()
    for _ in range(50):
        trader.step()
        assert pool.get_k() >= k
        k = pool.get_k()

    assert len(trader.trades) == 50
    assert all(s.ok for s in trader.trades)


def test_trader_plan_respects_size_and_slippage():
    m = Model()
    pool = make_pool(m)
    trader = TraderAgent(m, max_trade_bps=100, slippage_bps=100, pool_selector=lambda: [pool], seed=5)
    for _ in range(20):
        want_out, max_in, out_is_a = trader.plan_trade(pool)
        reserve_out, _ = pool.state.reserves_for(out_is_a)
        assert 1 <= want_out <= reserve_out // 100
        assert max_in >= pool.quote(want_out, out_is_a).amount_in


def test_trader_ignores_empty_pools():
    m = Model()
    pool = make_pool(m, seeded=False)
    trader = TraderAgent(m, pool_selector=lambda: [pool], seed=2)
    trader.step()
    assert trader.trades == []


def test_trader_rejects_bad_parameters():
    with pytest.raises(ValueError):
        TraderAgent(Model(), max_trade_bps=0, seed=1)
    with pytest.raises(ValueError):
        TraderAgent(Model(), slippage_bps=-1, seed=1)


def test_provider_seeds_adds_and_exits():
    m = Model()
    pool = make_pool(m, seeded=False)
    provider = LiquidityProviderAgent(
        m, lp_amount=100, initial_a=1_000, initial_b=2_000,
        withdraw_probability=0.0, pool_selector=lambda: [pool], seed=3,
    )
    pool.ledger.create_account(provider.unique_id, {"X": 10_000, "Y": 10_000})

    provider.step()
    assert pool.state == PoolState(1_000, 2_000, 30, 100)

    provider.step()
    assert pool.state == PoolState(2_000, 4_000, 30, 200)

    assert provider.remove_liquidity(pool).ok
    assert pool.state.is_empty
    assert pool.ledger.get_token_balance("X", provider.unique_id) == 10_000
    assert pool.ledger.get_token_balance("Y", provider.unique_id) == 10_000
    assert len(provider.actions) == 2


def test_provider_withdraws_when_probability_is_one():
    m = Model()
    pool = make_pool(m)
    provider = LiquidityProviderAgent(m, lp_amount=1_000, withdraw_probability=1.0, pool_selector=lambda: [pool], seed=4)
    pool.ledger.create_account(provider.unique_id, {"X": 10_000, "Y": 10_000})

    provider.step()
    assert pool.ledger.get_lp_balance(pool.pool_id, provider.unique_id) == 1_000
    provider.step()
    assert pool.ledger.get_lp_balance(pool.pool_id, provider.unique_id) == 0
    assert pool.state == PoolState(1_000_000, 2_000_000, 30, 1_000_000)


def test_provider_without_seed_amounts_stays_idle_on_empty_pool():
    m = Model()
    pool = make_pool(m, seeded=False)
    provider = LiquidityProviderAgent(m, pool_selector=lambda: [pool], seed=6)
    provider.step()
    assert provider.actions == []
