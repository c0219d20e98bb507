import math

import pytest
from scipy import stats

from distribution_sampling import (
    CP_TOLERANCE,
    MAX_POISSON_RATE,
    ConfigurationError,
    CPTableEntry,
    DistributionParams,
    DistributionSampler,
    Z_TABLE,
    build_poisson_cp_table,
    lookup_cp_table,
    lookup_z,
    round_half_up,
)


@pytest.mark.parametrize("lam", [0.3, 1.0, 2.96, 10.0, 75.0, 900.0])
def test_cp_table_saturates_and_is_monotone(lam):
    table = build_poisson_cp_table(lam)
    assert [e.x for e in table] == list(range(len(table)))
    cps = [e.cp for e in table]
    assert all(b >= a for a, b in zip(cps, cps[1:]))
    assert cps[-1] <= 1.0
    assert cps[-1] >= 1.0 - CP_TOLERANCE


@pytest.mark.parametrize("lam", [0.5, 2.96, 20.0])
def test_cp_table_matches_poisson_law(lam):
    for entry in build_poisson_cp_table(lam):
        assert entry.prob == pytest.approx(stats.poisson.pmf(entry.x, lam), abs=1e-12)
        assert entry.cp == pytest.approx(min(1.0, stats.poisson.cdf(entry.x, lam)), abs=1e-9)


def test_cp_table_rejects_non_positive_rate():
    with pytest.raises(ConfigurationError):
        build_poisson_cp_table(0.0)


def test_lookup_returns_smallest_x_with_enough_cp():
    table = [CPTableEntry(0, 0.5, 0.5), CPTableEntry(1, 0.3, 0.8)]
    assert lookup_cp_table(table, 0.0) == (0, 0.5)
    assert lookup_cp_table(table, 0.5) == (0, 0.5)
    assert lookup_cp_table(table, 0.51) == (1, 0.8)
    assert lookup_cp_table(table, 0.95) == (1, 1.0)


def test_lookup_agrees_with_poisson_quantile():
    table = build_poisson_cp_table(3.0)
    for r in (0.01, 0.2, 0.6, 0.9, 0.999):
        assert lookup_cp_table(table, r)[0] == int(stats.poisson.ppf(r, 3.0))


def test_z_lookup_edges_and_interpolation():
    assert len(Z_TABLE) == 45
    assert lookup_z(0.0) == -3.72
    assert lookup_z(0.0001) == -3.72
    assert lookup_z(0.99999) == 3.72
    assert lookup_z(0.5) == pytest.approx(0.0)
    assert lookup_z(0.525) == pytest.approx(0.065)
    assert lookup_z(0.975) == pytest.approx(1.96)


def test_z_lookup_tracks_normal_quantile():
    for r in (0.03, 0.27, 0.62, 0.91):
        assert lookup_z(r) == pytest.approx(stats.norm.ppf(r), abs=0.02)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
    assert round_half_up(0.5) == 1


def test_exponential_uses_single_canonical_form(fixed_draws):
    sampler = DistributionSampler(fixed_draws([0.5, 0.0]))
    params = DistributionParams.exponential(0.2)
    value, r = sampler.sample_with_draw(params)
    assert r == 0.5
    assert value == pytest.approx(-5.0 * math.log(0.5))
    assert sampler.sample(params) == 0.0


def test_uniform_and_normal_sampling(fixed_draws):
    sampler = DistributionSampler(fixed_draws([0.25, 0.5, 0.00001]))
    assert sampler.sample(DistributionParams.uniform(2, 6)) == pytest.approx(3.0)
    assert sampler.sample(DistributionParams.normal(5, 2)) == pytest.approx(5.0)
    assert sampler.sample(DistributionParams.normal(5, 2)) == pytest.approx(0.01)


def test_poisson_sampling_uses_cached_table(fixed_draws):
    sampler = DistributionSampler(fixed_draws([0.6]))
    params = DistributionParams.poisson(3.0)
    assert sampler.sample(params) == 3.0
    assert sampler.cp_table_for(3.0) is sampler.cp_table_for(3.0)


def test_service_time_is_rounded_and_at_least_one(fixed_draws):
    sampler = DistributionSampler(fixed_draws([0.5, 0.0001, 0.3]))
    assert sampler.sample_service_time(DistributionParams.exponential(0.2)) == (3, 0.5)
    assert sampler.sample_service_time(DistributionParams.normal(1, 2))[0] == 1
    assert sampler.sample_service_time(DistributionParams.exponential(10.0))[0] == 1


@pytest.mark.parametrize("params", [
    DistributionParams.poisson(0),
    DistributionParams.exponential(-1.0),
    DistributionParams.normal(0.0, 1.0),
    DistributionParams.normal(3.0, -0.1),
    DistributionParams.uniform(5, 5),
    DistributionParams.uniform(5, 2),
    DistributionParams.poisson(MAX_POISSON_RATE * 2),
])
def test_invalid_distributions_are_rejected(params):
    with pytest.raises(ConfigurationError):
        params.validate()


def test_negative_uniform_lower_bound_only_rejected_for_arrival_gaps():
    params = DistributionParams.uniform(-1, 2)
    params.validate("service")
    with pytest.raises(ConfigurationError):
        params.validate("arrival", non_negative=True)


def test_cp_table_rate_is_bounded():
    table = build_poisson_cp_table(MAX_POISSON_RATE)
    assert table[-1].cp >= 1.0 - CP_TOLERANCE
    with pytest.raises(ConfigurationError):
        build_poisson_cp_table(MAX_POISSON_RATE + 1)
