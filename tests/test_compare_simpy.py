import pytest

pytest.importorskip("simpy")

from compare_simpy import run_head_to_head
from distribution_sampling import DistributionParams
from simulation_config import SimulationParams


@pytest.mark.parametrize("params", [
    SimulationParams(num_servers=1),
    SimulationParams(arrival=DistributionParams.poisson(1.2), num_servers=2, random_seed=3),
    SimulationParams(arrival=DistributionParams.uniform(0, 20),
                     service=DistributionParams.normal(3, 1), num_servers=3, use_lcg=True),
])
def test_engine_waits_match_simpy_per_customer(params):
    res = run_head_to_head(params)
    assert res["customers"] > 0
    assert set(res["custom_waits"]) == set(res["simpy_waits"])
    assert res["max_diff"] == pytest.approx(0.0, abs=1e-9)
    assert res["custom_wq"] == pytest.approx(res["simpy_wq"])
