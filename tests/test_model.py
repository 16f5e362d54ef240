import sys
from pathlib import Path
import copy
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from amm_settlement.core.errors import ConfigError, FailureKind
from amm_settlement.models.settlement_model import GENESIS, SettlementModel


@pytest.fixture
def simple_config():
    return {
        "simulation": {"steps": 5, "seed": 123},
        "pools": [
            {"token_a": "ETH", "token_b": "DAI", "fee_bps": 30,
             "initial_a": 1_000_000, "initial_b": 2_000_000_000, "initial_lp": 1_000_000},
            {"token_a": "ETH", "token_b": "DAI", "fee_bps": 100,
             "initial_a": 500_000, "initial_b": 1_000_000_000, "initial_lp": 500_000},
        ],
        "traders": {"count": 3, "balance": 10 ** 12, "max_trade_bps": 200, "slippage_bps": 50},
    }


def test_model_initialization_creates_expected_agents(simple_config):
    model = SettlementModel(simple_config)
    names = [a.__class__.__name__ for a in model.agents]
    assert names.count("LedgerAgent") == 1
    assert names.count("PoolAgent") == 2
    assert names.count("TraderAgent") == 3
    assert model.metrics["settled"] == 2

    pool = model.find_pool("ETH", "DAI", 30)
    assert pool.get_reserves() == (1_000_000, 2_000_000_000)
    assert model.ledger.get_lp_balance(pool.pool_id, GENESIS) == 1_000_000


def test_find_pool_by_pair_and_fee_tier(simple_config):
    model = SettlementModel(simple_config)
    assert model.find_pool("DAI", "ETH", 100).fee_bps == 100
    assert model.find_pool("DAI", "ETH").fee_bps == 30
    assert model.find_pool("ETH", "DAI", 500) is None
    assert model.find_pool("ETH", "WBTC") is None


@pytest.mark.parametrize(
    "pools",
    [
        [],
        [{"token_a": "ETH", "token_b": "ETH"}],
        [{"token_a": "ETH", "token_b": "DAI", "fee_bps": 10_000}],
        [{"token_a": "ETH", "token_b": "DAI"}, {"token_a": "DAI", "token_b": "ETH"}],
        [{"token_a": "ETH", "token_b": "DAI", "initial_lp": 10, "initial_a": 0, "initial_b": 5}],
    ],
)
def test_invalid_pool_config_raises(simple_config, pools):
    cfg = copy.deepcopy(simple_config)
    cfg["pools"] = pools
    with pytest.raises(ConfigError):
        SettlementModel(cfg)


def test_model_run_collects_per_pool_frames(simple_config):
    model = SettlementModel(simple_config)
    df = model.run()
    assert df.shape[0] == 5
    assert {"Settled", "Failures", "ETH/DAI/30:k"} <= set(df.columns)

    frame = model.get_pool_frame("ETH/DAI/30")
    assert list(frame.columns) == ["reserve_a", "reserve_b", "k", "lp_supply"]
    ks = list(frame["k"])
    assert all(later >= earlier for earlier, later in zip(ks, ks[1:]))
    assert model.metrics["settled"] > 2
    assert set(model.metrics["failures"]) <= {kind.value for kind in FailureKind}

    with pytest.raises(KeyError):
        model.get_pool_frame("ETH/DAI/999")


def test_model_is_deterministic_for_a_seed(simple_config):
    first = SettlementModel(simple_config).run()
    second = SettlementModel(simple_config).run()
    pd.testing.assert_frame_equal(first, second)


def test_providers_seed_an_empty_pool():
    config = {
        "simulation": {"steps": 3, "seed": 9},
        "pools": [{"token_a": "WBTC", "token_b": "USDC", "fee_bps": 30}],
        "providers": {"count": 2, "balance": 10 ** 9, "lp_amount": 1_000,
                      "initial_a": 10_000, "initial_b": 300_000_000, "withdraw_probability": 0.0},
    }
    model = SettlementModel(config)
    pool = model.pools[0]
    assert pool.state.is_empty
    model.step()
    assert pool.state.lp_supply == 2_000
    assert pool.get_reserves() == (20_000, 600_000_000)
