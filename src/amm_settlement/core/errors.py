from enum import Enum


class FailureKind(str, Enum):
    """
    Enum naming each way a pool operation can fail.
    - CONFIG: Invalid immutable parameters at pool creation.
    - VALIDATION: Malformed per-call arguments.
    - ARITHMETIC: Overflow of the integer width or division by zero.
    - SLIPPAGE: A caller-supplied min/max bound was violated.
    - INVARIANT: A post-condition on the pool failed.
    """
    CONFIG = "config"
    VALIDATION = "validation"
    ARITHMETIC = "arithmetic"
    SLIPPAGE = "slippage"
    INVARIANT = "invariant"


class AmmError(Exception):
    """Base class for every error raised by the settlement core."""

    kind: FailureKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(AmmError, ValueError):
    """Invalid pool parameters at creation, e.g. a fee of 100% or more."""

    kind = FailureKind.CONFIG


class ValidationError(AmmError, ValueError):
    """Malformed call arguments. No state is produced."""

    kind = FailureKind.VALIDATION


class MathError(AmmError, ArithmeticError):
    """An intermediate result left the declared integer width, or d == 0."""

    kind = FailureKind.ARITHMETIC


class SlippageExceeded(AmmError):
    """
    The computed amount is worse than the caller's bound.

    Expected and recoverable: the caller may retry with adjusted bounds.
    """

    kind = FailureKind.SLIPPAGE

    def __init__(self, bound_name: str, amount: int, bound: int):
        super().__init__(f"{bound_name} violated: computed {amount}, bound {bound}")
        self.bound_name = bound_name
        self.amount = amount
        self.bound = bound


class InvariantViolation(AmmError):
    """A pool post-condition failed; the operation was not committed."""

    kind = FailureKind.INVARIANT


ERRORS_BY_KIND = {
    FailureKind.CONFIG: ConfigError,
    FailureKind.VALIDATION: ValidationError,
    FailureKind.ARITHMETIC: MathError,
    FailureKind.INVARIANT: InvariantViolation,
}
