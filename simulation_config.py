"""
Simulation configuration and random number sources.
- SimulationParams: one run's parameter set, validated before any sampling
- LCG (Linear Congruential Generator) for reproducible hand-traceable draws
- RandomGenerator: numpy or LCG uniforms behind a single random() method
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

from distribution_sampling import ConfigurationError, DistributionParams


# --- CORE COMPONENT: Linear Congruential Generator ---
class LCG:
    def __init__(self, seed: int, a: int = 16807, c: int = 0, m: int = 2147483647):
        self.state = seed if seed != 0 else 1
        self.a = a
        self.c = c
        self.m = m

    def random(self) -> float:
        self.state = (self.a * self.state + self.c) % self.m
        return self.state / self.m


def _default_arrival() -> DistributionParams:
    return DistributionParams.poisson(2.96)


def _default_service() -> DistributionParams:
    # mean service time 5
    return DistributionParams.exponential(0.2)


@dataclass
class SimulationParams:
    arrival: DistributionParams = field(default_factory=_default_arrival)
    service: DistributionParams = field(default_factory=_default_service)
    num_servers: int = 1
    enable_priority: bool = False
    priority_levels: int = 3

    random_seed: Optional[int] = 42
    use_lcg: bool = False
    lcg_a: int = 16807
    lcg_c: int = 0
    lcg_m: int = 2147483647

    @property
    def effective_priority_levels(self) -> int:
        return self.priority_levels if self.enable_priority else 1

    def validate(self) -> None:
        self.arrival.validate("arrival", non_negative=True)
        self.service.validate("service")
        if isinstance(self.num_servers, bool) or not isinstance(self.num_servers, int) or self.num_servers < 1:
            raise ConfigurationError(f"num_servers must be an integer >= 1, got {self.num_servers!r}")
        if self.enable_priority and (
            isinstance(self.priority_levels, bool)
            or not isinstance(self.priority_levels, int)
            or self.priority_levels < 1
        ):
            raise ConfigurationError(f"priority_levels must be an integer >= 1, got {self.priority_levels!r}")
        if self.use_lcg and self.lcg_m <= 1:
            raise ConfigurationError(f"lcg_m must be > 1, got {self.lcg_m}")

    def to_dict(self) -> Dict:
        d = {k: v for k, v in self.__dict__.items() if not k.startswith('_')}
        d['arrival'] = self.arrival.to_dict()
        d['service'] = self.service.to_dict()
        return d


class RandomGenerator:
    def __init__(self, params: SimulationParams):
        self.params = params
        self.np_rng = np.random.default_rng(params.random_seed)
        if params.use_lcg:
            self.lcg = LCG(seed=params.random_seed if params.random_seed else 12345,
                           a=params.lcg_a, c=params.lcg_c, m=params.lcg_m)

    def random(self) -> float:
        if self.params.use_lcg: return self.lcg.random()
        return float(self.np_rng.random())
