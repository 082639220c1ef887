from __future__ import annotations

from datetime import timedelta
from decimal import Context, Decimal, ROUND_DOWN, localcontext
from functools import lru_cache

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

D0 = Decimal("0")
D1 = Decimal("1")

# multipliers never depend on the caller's decimal context
ORACLE_CONTEXT = Context(prec=36)


def q6(x: Decimal) -> Decimal:
    return x.quantize(Decimal("0.000001"), rounding=ROUND_DOWN)


def elapsed_seconds(elapsed) -> Decimal:
    """
    Seconds as a Decimal; accepts a timedelta or a number.
    Negative elapsed time is treated as zero.
    """
    if isinstance(elapsed, timedelta):
        elapsed = elapsed.total_seconds()
    seconds = Decimal(str(elapsed))
    if not seconds.is_finite():
        raise ValueError("Elapsed time must be finite")
    return max(D0, seconds)


class MultiplierOracle:
    """
    Deterministic, monotonically non-decreasing map from elapsed seconds to
    the multiplier. The live preview and the cash-out fraud check call the
    same instance.
    """

    def multiplier_at(self, elapsed) -> Decimal:
        raise NotImplementedError

    def __call__(self, elapsed) -> Decimal:
        with localcontext(ORACLE_CONTEXT):
            return self.multiplier_at(elapsed)


class LinearOracle(MultiplierOracle):
    """1 + growth_per_second * t"""

    def __init__(self, growth_per_second="0.15"):
        self.growth_per_second = Decimal(str(growth_per_second))
        if not self.growth_per_second.is_finite() or self.growth_per_second < 0:
            raise ValueError("growth_per_second must be a non-negative number")

    def multiplier_at(self, elapsed) -> Decimal:
        return D1 + elapsed_seconds(elapsed) * self.growth_per_second


class ExponentialOracle(MultiplierOracle):
    """base ** (ticks_per_second * t), the classic 1.0025^(100t) flight curve"""

    def __init__(self, base="1.0025", ticks_per_second=100):
        self.base = Decimal(str(base))
        self.ticks_per_second = Decimal(str(ticks_per_second))
        if self.base < D1 or self.ticks_per_second < 0:
            raise ValueError("Exponential curve must be non-decreasing")

    def multiplier_at(self, elapsed) -> Decimal:
        return q6(self.base ** (elapsed_seconds(elapsed) * self.ticks_per_second))


@lru_cache(maxsize=1)
def get_oracle() -> MultiplierOracle:
    oracle_cls = import_string(settings.CRASH_MULTIPLIER_ORACLE)
    params = settings.CRASH_MULTIPLIER_PARAMS
    if not isinstance(params, dict):
        raise ImproperlyConfigured("CRASH_MULTIPLIER_PARAMS must be a JSON object")
    try:
        return oracle_cls(**params)
    except TypeError as exc:
        raise ImproperlyConfigured(
            f"CRASH_MULTIPLIER_PARAMS do not fit {settings.CRASH_MULTIPLIER_ORACLE}: {exc}"
        ) from exc
