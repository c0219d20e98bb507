"""
Closed-form M/M/c metrics (Erlang C) and a simulated-vs-theoretical table.
Independent of the event engine: a pure function of (lambda, mu, c).
"""

import math
from dataclasses import asdict, dataclass
from typing import Dict

import pandas as pd

from distribution_sampling import ConfigurationError

INF = float("inf")


@dataclass(frozen=True)
class MMcMetrics:
    rho: float
    stable: bool
    Lq: float
    L: float
    Wq: float
    W: float
    P0: float
    is_approx: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


def _check_inputs(lam: float, mu: float, c: int) -> None:
    if lam <= 0 or mu <= 0:
        raise ConfigurationError(f"lambda and mu must be > 0, got lambda={lam}, mu={mu}")
    if isinstance(c, bool) or not isinstance(c, int) or c < 1:
        raise ConfigurationError(f"c must be an integer >= 1, got {c!r}")


def calculate_mmc(lam: float, mu: float, c: int) -> MMcMetrics:
    _check_inputs(lam, mu, c)

    rho = lam / (c * mu)
    if rho >= 1:
        return MMcMetrics(rho=rho, stable=False, Lq=INF, L=INF, Wq=INF, W=INF, P0=0.0)

    a = lam / mu  # offered load
    sum_terms = sum((a ** n) / math.factorial(n) for n in range(c))
    last_term = (a ** c) / (math.factorial(c) * (1 - rho))
    P0 = 1 / (sum_terms + last_term)
    Lq = (P0 * (a ** c) * rho) / (math.factorial(c) * ((1 - rho) ** 2))
    L = Lq + a
    W = L / lam
    Wq = Lq / lam
    return MMcMetrics(rho=rho, stable=True, Lq=Lq, L=L, Wq=Wq, W=W, P0=P0)


# Lq inflation over the M/M/1-style rho^2 / (1 - rho) term
GENERAL_ARRIVAL_FACTOR = 1.2
GENERAL_SERVICE_FACTOR = 1.1


def analyze_queue(lam: float, mu: float, c: int, arrival_type: str = "M", service_type: str = "M") -> MMcMetrics:
    """Exact M/M/c metrics, or a rough approximation for M/G/c and G/G/c.

    The approximation scales rho^2 / (1 - rho) by 1.2 for general arrivals and
    1.1 for Markovian arrivals with general service; P0 is not estimated.
    """
    arrival_type = arrival_type.strip().upper()
    service_type = service_type.strip().upper()
    if arrival_type not in ("M", "G") or service_type not in ("M", "G"):
        raise ConfigurationError(f"queue type must be M or G, got {arrival_type}/{service_type}")
    if arrival_type == "M" and service_type == "M":
        return calculate_mmc(lam, mu, c)
    _check_inputs(lam, mu, c)

    rho = lam / (c * mu)
    if rho >= 1:
        return MMcMetrics(rho=rho, stable=False, Lq=INF, L=INF, Wq=INF, W=INF, P0=0.0, is_approx=True)

    factor = GENERAL_ARRIVAL_FACTOR if arrival_type == "G" else GENERAL_SERVICE_FACTOR
    Lq = (rho * rho) / (1 - rho) * factor
    L = Lq + lam / mu
    return MMcMetrics(rho=rho, stable=True, Lq=Lq, L=L, Wq=Lq / lam, W=L / lam, P0=0.0, is_approx=True)


def compare_with_theory(result, lam: float, mu: float, c: int) -> pd.DataFrame:
    """Theoretical vs simulated Lq, Wq, L, W and rho for one run.

    Simulated queue length and rho are time averages over the run; L adds the
    average number in service (rho * c) to the average queue length.
    """
    theo = calculate_mmc(lam, mu, c)
    avg = result.averages
    simulated = {
        "Lq (Queue Len)": avg.queue_length,
        "Wq (Wait Time)": avg.wait_time,
        "L (In System)": avg.queue_length + avg.busy_fraction * c,
        "W (Turnaround)": avg.turnaround,
        "Rho (Util)": avg.busy_fraction,
    }
    theoretical = [theo.Lq, theo.Wq, theo.L, theo.W, theo.rho]
    return pd.DataFrame({
        "Metric": list(simulated),
        "Theoretical": theoretical,
        "Simulated": list(simulated.values()),
        "Abs Error": [abs(s - t) for s, t in zip(simulated.values(), theoretical)],
    })
