"""
Validation Test: Custom Engine vs. SimPy
----------------------------------------
Runs a head-to-head comparison on one pre-generated customer sequence:
1. The custom SimulationEngine (Event-Scheduling, FIFO, priority disabled)
2. SimPy (Process-Interaction) with a c-capacity Resource

Both consume the exact same arrival and service times, so every customer's
waiting time must agree, not just the averages.
"""

import copy
from typing import Dict, List

import numpy as np
import simpy

from customer_generator import Customer, CustomerGenerator
from distribution_sampling import DistributionParams, DistributionSampler
from simulation_config import RandomGenerator, SimulationParams
from simulation_engine import SimulationEngine


class SimPyModel:
    def __init__(self, customers: List[Customer], num_servers: int):
        self.env = simpy.Environment()
        self.server = simpy.Resource(self.env, capacity=num_servers)
        self.customers = customers
        self.wait_times: Dict[int, float] = {}

    def customer_generator(self):
        for c in self.customers:
            gap = c.arrival_time - self.env.now
            if gap > 0:
                yield self.env.timeout(gap)
            self.env.process(self.customer_process(c))

    def customer_process(self, customer: Customer):
        arrival_time = self.env.now
        with self.server.request() as request:
            yield request  # Wait in queue
            self.wait_times[customer.customer_id] = self.env.now - arrival_time
            yield self.env.timeout(customer.service_time)

    def run(self) -> Dict[int, float]:
        self.env.process(self.customer_generator())
        self.env.run()
        return self.wait_times


def run_head_to_head(params: SimulationParams) -> Dict:
    """Generate one customer sequence and run it through both engines."""
    params.validate()
    sampler = DistributionSampler(RandomGenerator(params))
    customers = CustomerGenerator(params, sampler).generate()

    engine = SimulationEngine(params.num_servers, enable_priority=False)
    finished = engine.run(copy.deepcopy(customers))
    custom_waits = {c.customer_id: c.waiting_time for c in finished}

    simpy_waits = SimPyModel(copy.deepcopy(customers), params.num_servers).run()

    diffs = [abs(custom_waits[k] - simpy_waits.get(k, float("inf"))) for k in custom_waits]
    return {
        "customers": len(customers),
        "custom_wq": float(np.mean(list(custom_waits.values()))) if custom_waits else 0.0,
        "simpy_wq": float(np.mean(list(simpy_waits.values()))) if simpy_waits else 0.0,
        "max_diff": max(diffs) if diffs else 0.0,
        "custom_waits": custom_waits,
        "simpy_waits": simpy_waits,
    }


if __name__ == "__main__":
    params = SimulationParams(
        arrival=DistributionParams.poisson(2.96),
        service=DistributionParams.exponential(0.2),
        num_servers=2,
        random_seed=42,
    )

    print(f"--- SIMULATION CONFIGURATION ---")
    print(f"Arrivals: {params.arrival.to_dict()}")
    print(f"Service:  {params.service.to_dict()}")
    print(f"Servers:  {params.num_servers}")
    print("-" * 40)

    res = run_head_to_head(params)

    print("\n--- FINAL RESULTS ---")
    print(f"Customers:        {res['customers']}")
    print(f"Custom Engine Wq: {res['custom_wq']:.5f}")
    print(f"SimPy Library Wq: {res['simpy_wq']:.5f}")
    print(f"Max per-customer difference: {res['max_diff']:.6f}")

    if res['max_diff'] < 1e-9:
        print("\n✅ SUCCESS: Your custom engine matches SimPy exactly!")
    else:
        print("\n⚠️ WARNING: Significant divergence detected.")
