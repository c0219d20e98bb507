"""
Queue Simulation Engine (Preemptive Priority Edition)
Features:
- Pre-generated customers (CP-table arrivals, discretized service times)
- Event-Scheduling loop over ARRIVAL / DEPARTURE events on c servers
- Strict preemptive priority with resumable remaining work
- Per-event queue length / utilization sampling and event log
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from customer_generator import Customer, CustomerGenerator, CustomerState
from distribution_sampling import DistributionSampler
from simulation_config import RandomGenerator, SimulationParams
from simulation_metrics import (
    EventLogEntry,
    MetricsAggregator,
    QueueLengthPoint,
    SimulationResult,
    UtilizationPoint,
)

logger = logging.getLogger(__name__)


class EventType(Enum):
    ARRIVAL = "ARRIVAL"
    DEPARTURE = "DEPARTURE"


@dataclass(order=True)
class Event:
    time: float
    # arrivals sort ahead of departures at the same instant
    rank: int
    server_id: int = 0
    event_type: EventType = field(compare=False, default=EventType.ARRIVAL)

    def __repr__(self):
        return f"Event({self.time:.4f}, {self.event_type.value}, S{self.server_id})"


@dataclass
class ServiceInterval:
    customer_id: int
    start: float
    end: float
    priority: int


@dataclass
class ServerState:
    server_id: int
    busy: bool = False
    busy_until: float = 0.0
    customer: Optional[Customer] = None
    busy_time: float = 0.0
    tasks: List[ServiceInterval] = field(default_factory=list)


class WaitQueue:
    """Customers awaiting service, ascending priority number, stable within a level."""

    def __init__(self):
        self._items: List[Customer] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def append(self, customer: Customer):
        self._items.append(customer)

    def insert_by_priority(self, customer: Customer):
        for i, queued in enumerate(self._items):
            if queued.priority > customer.priority:
                self._items.insert(i, customer)
                return
        self._items.append(customer)

    def popleft(self) -> Customer:
        return self._items.pop(0)


class SimulationEngine:
    def __init__(self, num_servers: int, enable_priority: bool = False):
        self.num_servers = num_servers
        self.enable_priority = enable_priority
        self.servers: List[ServerState] = []
        self.queue = WaitQueue()
        self.customers: List[Customer] = []
        self.next_arrival = 0
        self.clock = 0.0
        self.queue_length_over_time: List[QueueLengthPoint] = []
        self.server_utilization_over_time: List[UtilizationPoint] = []
        self.event_log: List[EventLogEntry] = []
        self.event_counter = 0

    def busy_servers(self) -> int: return sum(1 for s in self.servers if s.busy)
    def customers_in_system(self) -> int: return len(self.queue) + self.busy_servers()
    def get_idle_server(self) -> Optional[ServerState]:
        for server in self.servers:
            if not server.busy: return server
        return None

    def get_next_event(self) -> Optional[Event]:
        candidates = []
        if self.next_arrival < len(self.customers):
            candidates.append(Event(self.customers[self.next_arrival].arrival_time, 0))
        for s in self.servers:
            if s.busy:
                candidates.append(Event(s.busy_until, 1, s.server_id, EventType.DEPARTURE))
        return min(candidates) if candidates else None

    def has_pending_work(self) -> bool:
        return self.next_arrival < len(self.customers) or len(self.queue) > 0 or self.busy_servers() > 0

    def sample_state(self):
        self.queue_length_over_time.append(QueueLengthPoint(self.clock, len(self.queue)))
        self.server_utilization_over_time.append(
            UtilizationPoint(self.clock, self.busy_servers() / self.num_servers))

    def log_event(self, event_type: str, customer_id: int, server_id: int, q_before: int):
        self.event_counter += 1
        self.event_log.append(EventLogEntry(
            self.event_counter, self.clock, event_type, customer_id, server_id,
            q_before, len(self.queue), self.busy_servers(), self.num_servers,
            self.customers_in_system()))

    def run(self, customers: List[Customer]) -> List[Customer]:
        """Drive the given customers (sorted by arrival time) to completion."""
        self.customers = customers
        self.servers = [ServerState(i + 1) for i in range(self.num_servers)]
        self.queue = WaitQueue()
        self.next_arrival = 0
        self.clock = 0.0
        self.queue_length_over_time = []
        self.server_utilization_over_time = []
        self.event_log = []
        self.event_counter = 0

        while self.has_pending_work():
            event = self.get_next_event()
            if event is None:
                raise RuntimeError(f"{len(self.queue)} customers queued with every server idle")
            self.clock = event.time
            self.sample_state()
            if event.event_type == EventType.ARRIVAL: self.handle_arrival()
            else: self.handle_departure(self.servers[event.server_id - 1])
        return customers

    def start_service(self, server: ServerState, customer: Customer):
        now = self.clock
        end = now + customer.remaining_service_time
        if customer.first_start_time is None:
            customer.first_start_time = now
        customer.state = CustomerState.IN_SERVICE
        customer.server_id = server.server_id
        server.busy = True
        server.busy_until = end
        server.customer = customer
        server.busy_time += customer.remaining_service_time
        server.tasks.append(ServiceInterval(customer.customer_id, now, end, customer.priority))

    def preemption_target(self, customer: Customer) -> Optional[ServerState]:
        # weakest occupant the newcomer outranks; lowest server id on ties
        target = None
        weakest = customer.priority
        for s in self.servers:
            if s.busy and s.customer is not None and s.customer.priority > weakest:
                weakest = s.customer.priority
                target = s
        return target

    def preempt(self, server: ServerState) -> Customer:
        now = self.clock
        victim = server.customer
        interval = server.tasks[-1]
        served = now - interval.start
        victim.remaining_service_time = max(1.0, victim.remaining_service_time - served)
        server.busy_time -= interval.end - now
        interval.end = now
        victim.preemptions += 1
        victim.state = CustomerState.PREEMPTED
        server.busy = False
        server.customer = None
        victim.state = CustomerState.WAITING
        self.queue.insert_by_priority(victim)
        return victim

    def handle_arrival(self):
        q_before = len(self.queue)
        customer = self.customers[self.next_arrival]
        self.next_arrival += 1

        idle_server = self.get_idle_server()
        if idle_server:
            self.start_service(idle_server, customer)
            self.log_event("ARRIVAL (SERVE)", customer.customer_id, idle_server.server_id, q_before)
        elif not self.enable_priority:
            customer.state = CustomerState.WAITING
            self.queue.append(customer)
            self.log_event("ARRIVAL (QUEUE)", customer.customer_id, -1, q_before)
        else:
            target = self.preemption_target(customer)
            if target is not None:
                victim = self.preempt(target)
                logger.debug("t=%s customer %d (p%d) preempts customer %d (p%d) on server %d",
                             self.clock, customer.customer_id, customer.priority,
                             victim.customer_id, victim.priority, target.server_id)
                self.start_service(target, customer)
                self.log_event("ARRIVAL (PREEMPT)", customer.customer_id, target.server_id, q_before)
            else:
                customer.state = CustomerState.WAITING
                self.queue.insert_by_priority(customer)
                self.log_event("ARRIVAL (QUEUE)", customer.customer_id, -1, q_before)

    def handle_departure(self, server: ServerState):
        q_before = len(self.queue)
        finished = server.customer
        finished.completion_time = self.clock
        finished.state = CustomerState.COMPLETED
        server.busy = False
        server.customer = None

        if len(self.queue) > 0:
            self.start_service(server, self.queue.popleft())
            self.log_event("DEPARTURE (NEXT)", finished.customer_id, server.server_id, q_before)
        else:
            self.log_event("DEPARTURE (IDLE)", finished.customer_id, server.server_id, q_before)


def run_simulation(params: SimulationParams, rng=None) -> SimulationResult:
    """Generate customers, run the event loop and summarise the run.

    `rng` may be any object exposing `random()`; by default a RandomGenerator
    seeded from `params.random_seed` is used.
    """
    params.validate()
    sampler = DistributionSampler(rng if rng is not None else RandomGenerator(params))
    generator = CustomerGenerator(params, sampler)
    customers = generator.generate()

    engine = SimulationEngine(params.num_servers, params.enable_priority)
    engine.run(customers)

    aggregator = MetricsAggregator(params.num_servers, params.effective_priority_levels)
    result = aggregator.aggregate(
        customers, engine.servers, generator.arrival_cp_table(),
        engine.queue_length_over_time, engine.server_utilization_over_time, engine.event_log)
    logger.info("Simulation finished: %d arrivals, %d served, %d events, avg wait %.4f",
                result.total_arrivals, result.total_served, len(result.event_log),
                result.averages.wait_time)
    return result
