from amm_settlement.core.errors import ConfigError, MathError, ValidationError

U16_MAX = (1 << 16) - 1
U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1

BPS_DENOMINATOR = 10_000


def _is_int(value) -> bool:
    # bool is an int subclass but never a valid amount
    return isinstance(value, int) and not isinstance(value, bool)


def require_u64(value, name: str) -> int:
    """
    Validate that a caller-supplied amount is an unsigned 64-bit integer.

    Parameters
    ----------
    value : int
        The amount to check.
    name : str
        Argument name used in the error message.

    Returns
    -------
    int
        The value, unchanged.

    Raises
    ------
    ValidationError
        If the value is not an int (floats are rejected outright) or lies
        outside ``[0, 2**64 - 1]``.
    """
    if not _is_int(value):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise ValidationError(f"{name} out of u64 range: {value}")
    return value


def require_u16(value, name: str) -> int:
    """Validate a u16 pool parameter; raises ConfigError since parameters are fixed at creation."""
    if not _is_int(value):
        raise ConfigError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > U16_MAX:
        raise ConfigError(f"{name} out of u16 range: {value}")
    return value


def _check_width(value: int, limit: int, what: str) -> int:
    if value < 0 or value > limit:
        raise MathError(f"{what} overflows: {value}")
    return value


def checked_mul(a: int, b: int, limit: int = U128_MAX) -> int:
    """Multiply two non-negative integers, failing if the product leaves ``[0, limit]``."""
    _check_width(a, limit, "multiplicand")
    _check_width(b, limit, "multiplier")
    return _check_width(a * b, limit, "product")


def checked_add(a: int, b: int, limit: int = U64_MAX) -> int:
    """Add two non-negative integers, failing above ``limit``."""
    return _check_width(a + b, limit, "sum")


def checked_sub(a: int, b: int) -> int:
    """Subtract, failing on underflow below zero."""
    if b > a:
        raise MathError(f"subtraction underflows: {a} - {b}")
    return a - b


def mul_div_floor(a: int, b: int, d: int) -> int:
    """
    Compute ``floor(a * b / d)`` with the product held at double width.

    Used wherever the pool pays out, so truncation favours the pool.

    Parameters
    ----------
    a, b : int
        Non-negative operands of at most 128 bits; the product must also fit
        in 128 bits.
    d : int
        The divisor.

    Returns
    -------
    int
        The floored quotient, guaranteed to fit in 64 bits.

    Raises
    ------
    MathError
        If ``d == 0``, the product overflows 128 bits, or the quotient
        exceeds the 64-bit range.
    """
    if d == 0:
        raise MathError("division by zero")
    product = checked_mul(a, b)
    return _check_width(product // d, U64_MAX, "quotient")


def mul_div_ceil(a: int, b: int, d: int) -> int:
    """
    Compute ``ceil(a * b / d)`` as ``(a * b + d - 1) // d``.

    Used wherever the pool collects, so rounding favours the pool. Fails
    under the same conditions as :func:`mul_div_floor`.
    """
    if d == 0:
        raise MathError("division by zero")
    product = checked_mul(a, b)
    return _check_width((product + d - 1) // d, U64_MAX, "quotient")
