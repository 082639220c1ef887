from datetime import timedelta
from decimal import Decimal, localcontext

import pytest
from django.core.exceptions import ImproperlyConfigured

from crash.oracle import ExponentialOracle, LinearOracle, elapsed_seconds, get_oracle, q6


def test_linear_oracle_starts_at_one():
    assert LinearOracle("0.15")(0) == Decimal("1")


def test_linear_oracle_ten_seconds():
    assert LinearOracle("0.15")(timedelta(seconds=10)) == Decimal("2.5")


def test_negative_elapsed_is_clamped():
    assert LinearOracle("0.15")(-5) == Decimal("1")
    assert elapsed_seconds(timedelta(seconds=-3)) == Decimal("0")


def test_non_finite_elapsed_is_rejected():
    with pytest.raises(ValueError):
        elapsed_seconds(float("inf"))


@pytest.mark.parametrize("oracle", [LinearOracle("0.15"), ExponentialOracle()])
def test_oracles_are_monotonic(oracle):
    samples = [oracle(Decimal(t) / 4) for t in range(0, 400)]
    assert samples == sorted(samples)
    assert samples[0] == Decimal("1")


def test_exponential_oracle_matches_flight_curve():
    # 1.0025 ** 100 after one second
    assert ExponentialOracle()(1) == q6(Decimal("1.0025") ** 100)


def test_oracle_rejects_decreasing_parameters():
    with pytest.raises(ValueError):
        LinearOracle("-0.1")
    with pytest.raises(ValueError):
        ExponentialOracle(base="0.99")


def test_q6_rounds_down():
    assert q6(Decimal("2.6249999")) == Decimal("2.624999")


def test_get_oracle_follows_settings(settings):
    settings.CRASH_MULTIPLIER_ORACLE = "crash.oracle.ExponentialOracle"
    settings.CRASH_MULTIPLIER_PARAMS = {"base": "1.01", "ticks_per_second": 10}
    get_oracle.cache_clear()

    oracle = get_oracle()

    assert isinstance(oracle, ExponentialOracle)
    assert oracle(1) == q6(Decimal("1.01") ** 10)
    assert get_oracle() is oracle


def test_switching_oracle_path_uses_its_own_defaults(settings):
    settings.CRASH_MULTIPLIER_ORACLE = "crash.oracle.ExponentialOracle"
    get_oracle.cache_clear()

    oracle = get_oracle()

    assert isinstance(oracle, ExponentialOracle)
    assert oracle(1) == ExponentialOracle(base="1.0025", ticks_per_second=100)(1)


def test_default_params_build_the_linear_oracle(settings):
    get_oracle.cache_clear()

    assert get_oracle()(10) == Decimal("2.5")


@pytest.mark.parametrize("params", [{"growth_per_second": "0.15"}, ["1.0025"]])
def test_params_that_do_not_fit_the_oracle_are_a_config_error(settings, params):
    settings.CRASH_MULTIPLIER_ORACLE = "crash.oracle.ExponentialOracle"
    settings.CRASH_MULTIPLIER_PARAMS = params
    get_oracle.cache_clear()

    with pytest.raises(ImproperlyConfigured):
        get_oracle()


@pytest.mark.parametrize("oracle", [LinearOracle("0.15"), ExponentialOracle()])
def test_multiplier_ignores_caller_decimal_context(oracle):
    elapsed = Decimal("12.345678")
    expected = oracle(elapsed)

    with localcontext() as ctx:
        ctx.prec = 3
        assert oracle(elapsed) == expected


def test_linear_multiplier_keeps_full_precision():
    with localcontext() as ctx:
        ctx.prec = 3
        assert LinearOracle("0.15")(Decimal("12.345678")) == Decimal("2.8518517")
