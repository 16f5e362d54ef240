import sys
from pathlib import Path
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from amm_settlement.core.errors import ConfigError, MathError, ValidationError
from amm_settlement.utils.math_helpers import (
    U64_MAX,
    U128_MAX,
    checked_add,
    checked_mul,
    checked_sub,
    mul_div_ceil,
    mul_div_floor,
    require_u16,
    require_u64,
)


def test_mul_div_rounds_in_opposite_directions():
    assert mul_div_floor(7, 3, 2) == 10
    assert mul_div_ceil(7, 3, 2) == 11
    # exact division is the same either way
    assert mul_div_floor(6, 4, 3) == 8
    assert mul_div_ceil(6, 4, 3) == 8
    assert mul_div_ceil(0, 5, 7) == 0


def test_mul_div_uses_double_width_product():
    # (2**64 - 1) ** 2 only fits in 128 bits
    assert mul_div_floor(U64_MAX, U64_MAX, U64_MAX) == U64_MAX
    assert mul_div_ceil(U64_MAX, U64_MAX, U64_MAX) == U64_MAX


def test_mul_div_rejects_zero_divisor():
    with pytest.raises(MathError):
        mul_div_floor(1, 1, 0)
    with pytest.raises(ArithmeticError):
        mul_div_ceil(1, 1, 0)


def test_mul_div_rejects_quotient_above_u64():
    with pytest.raises(MathError):
        mul_div_floor(U64_MAX, 2, 1)
    with pytest.raises(MathError):
        mul_div_ceil(U64_MAX, U64_MAX, 1)


def test_checked_primitives():
    assert checked_mul(U64_MAX, U64_MAX) == U64_MAX * U64_MAX
    with pytest.raises(MathError):
        checked_mul(U128_MAX, 2)
    with pytest.raises(MathError):
        checked_add(U64_MAX, 1)
    assert checked_sub(5, 5) == 0
    with pytest.raises(MathError):
        checked_sub(1, 2)


@pytest.mark.parametrize("value", [1.0, True, -1, U64_MAX + 1, "10"])
def test_require_u64_rejects_non_amounts(value):
    with pytest.raises(ValidationError):
        require_u64(value, "amount")


def test_require_u16_raises_config_error():
    assert require_u16(65535, "fee_bps") == 65535
    with pytest.raises(ConfigError):
        require_u16(65536, "fee_bps")
