import random
import sys
from pathlib import Path
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from amm_settlement.core.errors import InvariantViolation, MathError, SlippageExceeded, ValidationError
from amm_settlement.core.liquidity import deposit, withdraw
from amm_settlement.core.pool import PoolState, initialize
from amm_settlement.utils.math_helpers import U64_MAX


def test_first_deposit_takes_caller_amounts_and_mints_requested_lp():
    required_a, required_b, new_lp_supply, pool = deposit(initialize(500), 625, 25, 25)
    assert (required_a, required_b, new_lp_supply) == (25, 25, 625)
    assert pool == PoolState(reserve_a=25, reserve_b=25, fee_bps=500, lp_supply=625)


def test_first_deposit_requires_both_tokens():
    with pytest.raises(ValidationError):
        deposit(initialize(30), 100, 0, 25)
    with pytest.raises(ValidationError):
        deposit(initialize(30), 100, 25, 0)


def test_deposit_rejects_zero_lp_amount():
    with pytest.raises(ValidationError):
        deposit(initialize(30), 0, 25, 25)
    with pytest.raises(ValidationError):
        deposit(PoolState(25, 25, 30, 625), 0, 25, 25)


def test_proportional_deposit_rounds_up():
    # ceil(10 / 3) = 4 and ceil(7 / 3) = 3
    result = deposit(PoolState(10, 7, 30, 3), 1, 100, 100)
    assert (result.required_a, result.required_b, result.new_lp_supply) == (4, 3, 4)
    assert result.pool == PoolState(14, 10, 30, 4)


def test_deposit_over_max_a_fails_and_leaves_pool_unchanged():
    pool = PoolState(25, 25, 500, 625)
    with pytest.raises(SlippageExceeded) as excinfo:
        deposit(pool, 100, 3, 100)
    assert excinfo.value.bound_name == "max_a"
    assert excinfo.value.amount == 4
    assert excinfo.value.bound == 3
    assert pool == PoolState(25, 25, 500, 625)


def test_deposit_over_max_b_fails():
    with pytest.raises(SlippageExceeded) as excinfo:
        deposit(PoolState(21, 30, 500, 625), 625, 21, 29)
    assert excinfo.value.bound_name == "max_b"


def test_deposit_overflow_is_arithmetic_error():
    with pytest.raises(MathError):
        deposit(PoolState(U64_MAX, 1, 30, 1), 1, U64_MAX, U64_MAX)
    with pytest.raises(MathError):
        deposit(PoolState(1, 1, 30, U64_MAX), 1, 10, 10)


def test_deposit_into_inconsistent_pool_is_invariant_violation():
    with pytest.raises(InvariantViolation):
        deposit(PoolState(0, 5, 30, 0), 10, 10, 10)


def test_deposit_keeps_price_ratio_within_one_unit():
    rng = random.Random(7)
    for _ in range(300):
        before = PoolState(
            reserve_a=rng.randint(1, 10 ** 9),
            reserve_b=rng.randint(1, 10 ** 9),
            fee_bps=30,
            lp_supply=rng.randint(1, 10 ** 9),
        )
        lp = rng.randint(1, 10 ** 9)
        after = deposit(before, lp, U64_MAX, U64_MAX).pool
        drift = after.reserve_b * before.reserve_a - before.reserve_b * after.reserve_a
        assert -before.reserve_b < drift < before.reserve_a
        assert after.reserve_a > before.reserve_a
        assert after.reserve_b > before.reserve_b


def test_withdraw_rounds_down():
    amount_a, amount_b, new_lp_supply, pool = withdraw(PoolState(10, 7, 30, 3), 1, 0, 0)
    assert (amount_a, amount_b, new_lp_supply) == (3, 2, 2)
    assert pool == PoolState(7, 5, 30, 2)


def test_withdraw_entire_supply_drains_pool():
    result = withdraw(PoolState(21, 30, 500, 625), 625, 21, 30)
    assert (result.amount_a, result.amount_b, result.new_lp_supply) == (21, 30, 0)
    assert result.pool == PoolState(0, 0, 500, 0)
    assert result.pool.is_empty


def test_drained_pool_can_be_seeded_again():
    drained = withdraw(PoolState(21, 30, 500, 625), 625, 0, 0).pool
    reseeded = deposit(drained, 50, 7, 9).pool
    assert reseeded == PoolState(7, 9, 500, 50)


@pytest.mark.parametrize("lp_amount", [0, 626])
def test_withdraw_rejects_bad_lp_amount(lp_amount):
    with pytest.raises(ValidationError):
        withdraw(PoolState(25, 25, 500, 625), lp_amount, 0, 0)


def test_withdraw_on_empty_pool_is_validation_error():
    with pytest.raises(ValidationError):
        withdraw(initialize(30), 1, 0, 0)


def test_withdraw_below_min_fails():
    with pytest.raises(SlippageExceeded) as excinfo:
        withdraw(PoolState(10, 7, 30, 3), 1, 4, 0)
    assert excinfo.value.bound_name == "min_a"
    with pytest.raises(SlippageExceeded) as excinfo:
        withdraw(PoolState(10, 7, 30, 3), 1, 0, 3)
    assert excinfo.value.bound_name == "min_b"


def test_deposit_then_withdraw_never_returns_more():
    rng = random.Random(11)
    for _ in range(300):
        pool = PoolState(
            reserve_a=rng.randint(1, 10 ** 6),
            reserve_b=rng.randint(1, 10 ** 6),
            fee_bps=30,
            lp_supply=rng.randint(1, 10 ** 6),
        )
        lp = rng.randint(1, 10 ** 6)
        deposited = deposit(pool, lp, U64_MAX, U64_MAX)
        withdrawn = withdraw(deposited.pool, lp, 0, 0)
        assert withdrawn.amount_a <= deposited.required_a
        assert withdrawn.amount_b <= deposited.required_b
        assert withdrawn.new_lp_supply == pool.lp_supply
