"""
Result records and summary statistics for a completed run.

Everything in here is a read-only snapshot: the engine's mutable customers
and servers are copied into frozen records once the event loop has drained.
"""

import json
import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from distribution_sampling import CPTableEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerRecord:
    customer_id: int
    random_num: float
    cp: float
    inter_arrival: float
    arrival_time: float
    priority: int
    service_time: float
    service_random_num: float
    start_time: float
    end_time: float
    turnaround: float
    wait_time: float
    response_time: float
    server_id: int
    preemptions: int = 0


@dataclass(frozen=True)
class TaskRecord:
    customer_id: int
    start: float
    end: float
    priority: int


@dataclass(frozen=True)
class ServerRecord:
    server_id: int
    busy_time: float
    utilization: float          # share of all servers' work, percent
    busy_fraction: float        # busy time / makespan
    customers_served: int
    tasks: Tuple[TaskRecord, ...]


@dataclass(frozen=True)
class PriorityStats:
    priority: int
    count: int
    avg_wait: float
    avg_response: float
    avg_inter_arrival: float
    avg_turnaround: float


@dataclass(frozen=True)
class Averages:
    inter_arrival: float = 0.0
    service_time: float = 0.0
    turnaround: float = 0.0
    wait_time: float = 0.0
    response_time: float = 0.0
    # time-weighted over the run
    queue_length: float = 0.0
    busy_fraction: float = 0.0


@dataclass(frozen=True)
class QueueLengthPoint:
    time: float
    queue_length: int


@dataclass(frozen=True)
class UtilizationPoint:
    time: float
    utilization: float


@dataclass(frozen=True)
class EventLogEntry:
    event_number: int
    clock_time: float
    event_type: str
    customer_id: int
    server_id: int
    queue_length_before: int
    queue_length_after: int
    servers_busy: int
    total_servers: int
    customers_in_system: int


@dataclass(frozen=True)
class SimulationResult:
    customers: Tuple[CustomerRecord, ...]
    servers: Tuple[ServerRecord, ...]
    priority_stats: Tuple[PriorityStats, ...]
    queue_length_over_time: Tuple[QueueLengthPoint, ...]
    server_utilization_over_time: Tuple[UtilizationPoint, ...]
    averages: Averages
    total_arrivals: int
    total_served: int
    cp_table: Tuple[CPTableEntry, ...]
    event_log: Tuple[EventLogEntry, ...] = ()

    # --- Data Export Helpers ---
    def customers_dataframe(self) -> pd.DataFrame:
        if not self.customers: return pd.DataFrame()
        return pd.DataFrame([asdict(c) for c in self.customers])

    def servers_dataframe(self) -> pd.DataFrame:
        if not self.servers: return pd.DataFrame()
        data = []
        for s in self.servers:
            data.append({
                'Server ID': s.server_id, 'Customers Served': s.customers_served,
                'Total Busy Time': round(s.busy_time, 4),
                'Utilization (%)': round(s.utilization, 2),
                'Busy Fraction': round(s.busy_fraction, 4),
            })
        return pd.DataFrame(data)

    def tasks_dataframe(self) -> pd.DataFrame:
        rows = [dict(server_id=s.server_id, **asdict(t)) for s in self.servers for t in s.tasks]
        if not rows: return pd.DataFrame()
        return pd.DataFrame(rows)

    def time_series_dataframe(self) -> pd.DataFrame:
        if not self.queue_length_over_time: return pd.DataFrame()
        return pd.DataFrame({
            'time': [p.time for p in self.queue_length_over_time],
            'queue_length': [p.queue_length for p in self.queue_length_over_time],
            'server_utilization': [p.utilization for p in self.server_utilization_over_time],
        })

    def cp_table_dataframe(self) -> pd.DataFrame:
        if not self.cp_table: return pd.DataFrame()
        return pd.DataFrame([asdict(e) for e in self.cp_table])

    def event_log_dataframe(self) -> pd.DataFrame:
        if not self.event_log: return pd.DataFrame()
        return pd.DataFrame([asdict(e) for e in self.event_log])

    def to_dict(self) -> Dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) > 0 else 0.0


def _time_weighted_mean(times: Sequence[float], values: Sequence[float]) -> float:
    # values[i] holds over (times[i-1], times[i]]
    if len(times) < 2:
        return 0.0
    t = np.asarray(times, dtype=float)
    v = np.asarray(values, dtype=float)
    horizon = t[-1] - t[0]
    if horizon <= 0:
        return 0.0
    return float(np.sum(v[1:] * np.diff(t)) / horizon)


class MetricsAggregator:
    def __init__(self, num_servers: int, priority_levels: int):
        self.num_servers = num_servers
        self.priority_levels = priority_levels

    def customer_records(self, customers) -> List[CustomerRecord]:
        records = []
        for c in sorted(customers, key=lambda c: c.customer_id):
            if c.completion_time is None:
                continue
            wait = c.first_start_time - c.arrival_time
            records.append(CustomerRecord(
                customer_id=c.customer_id,
                random_num=c.random_num,
                cp=c.cp,
                inter_arrival=c.inter_arrival,
                arrival_time=c.arrival_time,
                priority=c.priority,
                service_time=c.service_time,
                service_random_num=c.service_random_num,
                start_time=c.first_start_time,
                end_time=c.completion_time,
                turnaround=c.completion_time - c.arrival_time,
                wait_time=wait,
                response_time=wait,
                server_id=c.server_id,
                preemptions=c.preemptions,
            ))
        return records

    def server_records(self, servers, records: List[CustomerRecord]) -> List[ServerRecord]:
        busy_times = [sum(t.end - t.start for t in s.tasks) for s in servers]
        total_busy = sum(busy_times)
        makespan = max((r.end_time for r in records), default=0.0)
        out = []
        for s, busy in zip(servers, busy_times):
            out.append(ServerRecord(
                server_id=s.server_id,
                busy_time=busy,
                utilization=(busy / total_busy * 100.0) if total_busy > 0 else 0.0,
                busy_fraction=(busy / makespan) if makespan > 0 else 0.0,
                customers_served=sum(1 for r in records if r.server_id == s.server_id),
                tasks=tuple(TaskRecord(t.customer_id, t.start, t.end, t.priority) for t in s.tasks),
            ))
        return out

    def priority_stats(self, records: List[CustomerRecord]) -> List[PriorityStats]:
        stats = []
        for p in range(1, self.priority_levels + 1):
            group = [r for r in records if r.priority == p]
            if not group:
                continue
            stats.append(PriorityStats(
                priority=p,
                count=len(group),
                avg_wait=_mean([r.wait_time for r in group]),
                avg_response=_mean([r.response_time for r in group]),
                avg_inter_arrival=_mean([r.inter_arrival for r in group]),
                avg_turnaround=_mean([r.turnaround for r in group]),
            ))
        return stats

    def averages(self, records: List[CustomerRecord], queue_series: Sequence[QueueLengthPoint],
                 util_series: Sequence[UtilizationPoint]) -> Averages:
        if not records:
            return Averages()
        times = [p.time for p in queue_series]
        return Averages(
            inter_arrival=_mean([r.inter_arrival for r in records]),
            service_time=_mean([r.service_time for r in records]),
            turnaround=_mean([r.turnaround for r in records]),
            wait_time=_mean([r.wait_time for r in records]),
            response_time=_mean([r.response_time for r in records]),
            queue_length=_time_weighted_mean(times, [p.queue_length for p in queue_series]),
            busy_fraction=_time_weighted_mean(times, [p.utilization for p in util_series]),
        )

    def aggregate(self, customers, servers, cp_table: Sequence[CPTableEntry],
                  queue_series: Sequence[QueueLengthPoint], util_series: Sequence[UtilizationPoint],
                  event_log: Sequence[EventLogEntry] = ()) -> SimulationResult:
        records = self.customer_records(customers)
        result = SimulationResult(
            customers=tuple(records),
            servers=tuple(self.server_records(servers, records)),
            priority_stats=tuple(self.priority_stats(records)),
            queue_length_over_time=tuple(queue_series),
            server_utilization_over_time=tuple(util_series),
            averages=self.averages(records, queue_series, util_series),
            total_arrivals=len(customers),
            total_served=len(records),
            cp_table=tuple(cp_table),
            event_log=tuple(event_log),
        )
        logger.debug("Aggregated %d/%d customers over %d servers",
                     result.total_served, result.total_arrivals, self.num_servers)
        return result
