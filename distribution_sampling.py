"""
Distribution Sampling (Cumulative-Probability Edition)
Features:
- Poisson CP table (x, P(X=x), CP(x)) with table-driven lookup
- Standard normal Z-table with linear interpolation
- Inverse Transform sampling for Exponential / Uniform / Normal
- Discretized service times (rounded, never below 1)
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Cumulative probability counts as saturated once it rounds to 1.0000
CP_TOLERANCE = 5e-5
MIN_CP_ROWS = 150
# Poisson rates above this would build thousands of rows and customers
MAX_POISSON_RATE = 5000.0
NORMAL_FLOOR = 0.01


class ConfigurationError(ValueError):
    """Raised for malformed parameters, before any random draw is made."""


class DistributionType(Enum):
    POISSON = "Poisson"
    EXPONENTIAL = "Exponential"
    NORMAL = "Normal"
    UNIFORM = "Uniform"


@dataclass(frozen=True)
class DistributionParams:
    kind: DistributionType
    rate: Optional[float] = None
    mean: Optional[float] = None
    std_dev: Optional[float] = None
    a: Optional[float] = None
    b: Optional[float] = None

    @classmethod
    def poisson(cls, rate: float) -> "DistributionParams":
        return cls(DistributionType.POISSON, rate=rate)

    @classmethod
    def exponential(cls, rate: float) -> "DistributionParams":
        return cls(DistributionType.EXPONENTIAL, rate=rate)

    @classmethod
    def normal(cls, mean: float, std_dev: float) -> "DistributionParams":
        return cls(DistributionType.NORMAL, mean=mean, std_dev=std_dev)

    @classmethod
    def uniform(cls, a: float, b: float) -> "DistributionParams":
        return cls(DistributionType.UNIFORM, a=a, b=b)

    @property
    def uses_cp_table(self) -> bool:
        return self.kind in (DistributionType.POISSON, DistributionType.EXPONENTIAL)

    def validate(self, label: str = "distribution", non_negative: bool = False) -> None:
        """`non_negative` also rejects a Uniform lower bound below 0 (arrival gaps)."""
        if self.uses_cp_table:
            if self.rate is None or self.rate <= 0:
                raise ConfigurationError(f"{label}: rate must be > 0, got {self.rate}")
            if self.rate > MAX_POISSON_RATE:
                raise ConfigurationError(f"{label}: rate must be <= {MAX_POISSON_RATE:g}, got {self.rate}")
        elif self.kind == DistributionType.NORMAL:
            if self.mean is None or self.mean <= 0:
                raise ConfigurationError(f"{label}: normal mean must be > 0, got {self.mean}")
            if self.std_dev is None or self.std_dev < 0:
                raise ConfigurationError(f"{label}: normal std_dev must be >= 0, got {self.std_dev}")
        elif self.kind == DistributionType.UNIFORM:
            if self.a is None or self.b is None:
                raise ConfigurationError(f"{label}: uniform requires both a and b")
            if non_negative and self.a < 0:
                raise ConfigurationError(f"{label}: uniform a must be >= 0, got {self.a}")
            if self.b <= self.a:
                raise ConfigurationError(f"{label}: uniform requires b > a, got a={self.a}, b={self.b}")
        else:
            raise ConfigurationError(f"{label}: unknown distribution {self.kind!r}")

    def to_dict(self) -> Dict:
        d = {'kind': self.kind.value}
        for key in ('rate', 'mean', 'std_dev', 'a', 'b'):
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        return d


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# --- CP TABLE ---
@dataclass(frozen=True)
class CPTableEntry:
    x: int
    prob: float
    cp: float


def _cp_row_cap(lam: float) -> int:
    return max(MIN_CP_ROWS, int(math.ceil(lam + 12.0 * math.sqrt(lam) + 20)))


def build_poisson_cp_table(lam: float) -> List[CPTableEntry]:
    """Rows (x, P(X=x), CP(x)) for x = 0, 1, ... until CP saturates.

    P(X=k) = e^-lam * lam^k / k! is evaluated in log space; the row cap grows
    with lam so the last CP is always within CP_TOLERANCE of 1.
    """
    if lam <= 0:
        raise ConfigurationError(f"Poisson rate must be > 0, got {lam}")
    if lam > MAX_POISSON_RATE:
        raise ConfigurationError(f"Poisson rate must be <= {MAX_POISSON_RATE:g}, got {lam}")
    table: List[CPTableEntry] = []
    cumulative = 0.0
    log_lam = math.log(lam)
    cap = _cp_row_cap(lam)
    for k in range(cap):
        pmf = math.exp(-lam + k * log_lam - math.lgamma(k + 1))
        cumulative = min(1.0, cumulative + pmf)
        table.append(CPTableEntry(k, pmf, cumulative))
        if cumulative >= 1.0 - CP_TOLERANCE:
            break
    logger.debug("CP table for lambda=%s: %d rows, final CP=%.6f", lam, len(table), cumulative)
    return table


def lookup_cp_table(table: List[CPTableEntry], r: float) -> Tuple[int, float]:
    """Smallest x whose CP >= r, with that CP. Falls back to the last row."""
    for entry in table:
        if r <= entry.cp:
            return entry.x, entry.cp
    return table[-1].x, 1.0


# --- Z TABLE ---
# Cumulative probability (area under the standard normal) -> Z score
Z_TABLE: Tuple[Tuple[float, float], ...] = (
    (0.0001, -3.72), (0.0005, -3.29), (0.001, -3.09),
    (0.005, -2.58), (0.01, -2.33), (0.02, -2.05),
    (0.025, -1.96), (0.03, -1.88), (0.04, -1.75),
    (0.05, -1.645), (0.06, -1.555), (0.07, -1.48),
    (0.08, -1.41), (0.09, -1.34), (0.10, -1.28),
    (0.15, -1.04), (0.20, -0.84), (0.25, -0.67),
    (0.30, -0.52), (0.35, -0.39), (0.40, -0.25),
    (0.45, -0.13), (0.50, 0.00), (0.55, 0.13),
    (0.60, 0.25), (0.65, 0.39), (0.70, 0.52),
    (0.75, 0.67), (0.80, 0.84), (0.85, 1.04),
    (0.90, 1.28), (0.91, 1.34), (0.92, 1.41),
    (0.93, 1.48), (0.94, 1.555), (0.95, 1.645),
    (0.96, 1.75), (0.97, 1.88), (0.975, 1.96),
    (0.98, 2.05), (0.99, 2.33), (0.995, 2.58),
    (0.999, 3.09), (0.9995, 3.29), (0.9999, 3.72),
)


def lookup_z(r: float) -> float:
    if r <= Z_TABLE[0][0]:
        return Z_TABLE[0][1]
    for (p_lo, z_lo), (p_hi, z_hi) in zip(Z_TABLE, Z_TABLE[1:]):
        if p_lo < r <= p_hi:
            ratio = (r - p_lo) / (p_hi - p_lo)
            return z_lo + ratio * (z_hi - z_lo)
    return Z_TABLE[-1][1]


# --- SAMPLER ---
class DistributionSampler:
    """Turns one uniform draw into one duration.

    `rng` is anything with a `random()` method returning a float in [0, 1):
    a numpy Generator, an LCG, or RandomGenerator. CP tables are cached per
    rate for the lifetime of the sampler (one run).
    """

    def __init__(self, rng):
        self.rng = rng
        self._cp_tables: Dict[float, List[CPTableEntry]] = {}

    def draw(self) -> float:
        return float(self.rng.random())

    def cp_table_for(self, rate: float) -> List[CPTableEntry]:
        if rate not in self._cp_tables:
            self._cp_tables[rate] = build_poisson_cp_table(rate)
        return self._cp_tables[rate]

    def value_for_draw(self, params: DistributionParams, r: float) -> float:
        if params.kind == DistributionType.POISSON:
            x, _ = lookup_cp_table(self.cp_table_for(params.rate), r)
            return float(x)
        elif params.kind == DistributionType.EXPONENTIAL:
            mean = 1.0 / params.rate
            return -mean * math.log(1.0 - r)
        elif params.kind == DistributionType.NORMAL:
            return max(NORMAL_FLOOR, params.mean + lookup_z(r) * params.std_dev)
        elif params.kind == DistributionType.UNIFORM:
            return params.a + r * (params.b - params.a)
        raise ConfigurationError(f"unknown distribution {params.kind!r}")

    def sample_with_draw(self, params: DistributionParams) -> Tuple[float, float]:
        r = self.draw()
        return self.value_for_draw(params, r), r

    def sample(self, params: DistributionParams) -> float:
        return self.sample_with_draw(params)[0]

    def sample_service_time(self, params: DistributionParams) -> Tuple[int, float]:
        """Service durations are whole time units, at least 1."""
        value, r = self.sample_with_draw(params)
        return max(1, round_half_up(value)), r
