"""
Customer generation.
The full arrival sequence is materialised before the event loop starts:
inter-arrival times come from the arrival CP table when the arrival process
is Poisson/Exponential, otherwise from direct sampling.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from distribution_sampling import (
    CPTableEntry,
    DistributionSampler,
    DistributionType,
    lookup_cp_table,
    round_half_up,
)
from simulation_config import SimulationParams

logger = logging.getLogger(__name__)


class CustomerState(Enum):
    NOT_ARRIVED = "NOT_ARRIVED"
    WAITING = "WAITING"
    IN_SERVICE = "IN_SERVICE"
    PREEMPTED = "PREEMPTED"
    COMPLETED = "COMPLETED"


@dataclass
class Customer:
    customer_id: int
    random_num: float
    cp: float
    inter_arrival: float
    arrival_time: float
    priority: int
    service_time: float
    remaining_service_time: float
    service_random_num: float
    first_start_time: Optional[float] = None
    completion_time: Optional[float] = None
    server_id: Optional[int] = None
    state: CustomerState = CustomerState.NOT_ARRIVED
    preemptions: int = 0

    @property
    def waiting_time(self) -> Optional[float]:
        if self.first_start_time is not None:
            return self.first_start_time - self.arrival_time
        return None

    @property
    def turnaround_time(self) -> Optional[float]:
        if self.completion_time is not None:
            return self.completion_time - self.arrival_time
        return None


def customer_count(params: SimulationParams, cp_table: List[CPTableEntry]) -> int:
    arrival = params.arrival
    if arrival.uses_cp_table:
        return len(cp_table)
    if arrival.kind == DistributionType.UNIFORM:
        return int(math.ceil((arrival.b - arrival.a) + 1))
    return max(0, round_half_up(arrival.mean))


class CustomerGenerator:
    def __init__(self, params: SimulationParams, sampler: DistributionSampler):
        self.params = params
        self.sampler = sampler

    def arrival_cp_table(self) -> List[CPTableEntry]:
        if self.params.arrival.uses_cp_table:
            return self.sampler.cp_table_for(self.params.arrival.rate)
        return []

    def generate(self) -> List[Customer]:
        params = self.params
        cp_table = self.arrival_cp_table()
        n = customer_count(params, cp_table)
        levels = params.effective_priority_levels

        customers: List[Customer] = []
        clock = 0.0
        for i in range(n):
            if i == 0:
                random_num = 0.0
                inter_arrival = 0.0
                cp = cp_table[0].cp if cp_table else 0.0
            else:
                random_num = self.sampler.draw()
                if cp_table:
                    x, cp = lookup_cp_table(cp_table, random_num)
                    inter_arrival = float(x)
                else:
                    value = self.sampler.value_for_draw(params.arrival, random_num)
                    inter_arrival = float(round_half_up(value))
                    cp = random_num
            clock += inter_arrival

            priority = 1
            if params.enable_priority:
                priority = min(levels, int(math.floor(self.sampler.draw() * levels)) + 1)

            service_time, service_r = self.sampler.sample_service_time(params.service)
            customers.append(Customer(
                customer_id=i + 1,
                random_num=random_num,
                cp=cp,
                inter_arrival=inter_arrival,
                arrival_time=clock,
                priority=priority,
                service_time=float(service_time),
                remaining_service_time=float(service_time),
                service_random_num=service_r,
            ))

        logger.debug("Generated %d customers (last arrival at %s)", len(customers), clock)
        return customers
