# drainr/services/pricing.py
"""
Quote pricing.

Totals are derived server-side at publish time from the raw line items and the
configured rate card; any totals the client sends are ignored (apart from an
explicit extras_total). Every total is rounded to cents as it is produced so
the stored snapshot matches what the customer was shown.

    line_total      = meters * per_meter[size] + junctions * per_junction[size]
    pipe_work_total = sum(line_total)
    digging_total   = hours * digging_per_hour   (when digging is enabled)
    extras_total    = sum(extra.amount)          (pre-tax)
    subtotal        = setup_cost + pipe_work_total + digging_total + extras_total
    gst             = subtotal * 10%
    grand_total     = subtotal + gst
"""

import re
import sys
import math
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)

GST_RATE = 0.10
MAX_METERS = 50.0

_NON_NUMERIC = re.compile(r'[^0-9.\-]')


def round2(value) -> float:
    """
    Round to cents: ``floor((x + epsilon) * 100 + 0.5) / 100``.

    The epsilon nudge lifts values such as 1.005, stored just below the half
    cent, over it. Unreadable or non-finite input rounds to 0.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return math.floor((number + sys.float_info.epsilon) * 100 + 0.5) / 100


def parse_optional_money(value) -> Optional[float]:
    """
    Parse a loosely formatted number such as ``"$6,999.99"``.

    Everything other than digits, '.' and '-' is stripped before conversion.
    Returns None when nothing can be read as a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = _NON_NUMERIC.sub('', str(value))
        try:
            number = float(cleaned)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def parse_money(value) -> float:
    """parse_optional_money, with unreadable values resolving to 0"""
    number = parse_optional_money(value)
    return 0.0 if number is None else number


def non_negative(value) -> float:
    """parse_money, clamped at zero"""
    return max(parse_money(value), 0.0)


@dataclass(frozen=True)
class PipeRate:
    per_meter: float
    per_junction: float


@dataclass
class PricingTable:
    """Rate card used to price a quote."""
    setup_cost: float
    digging_per_hour: float
    pipe_rates: Dict[str, PipeRate] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config):
        pipe_rates = {}
        for size, rates in config['PIPE_PRICING'].items():
            pipe_rates[size] = PipeRate(
                per_meter=non_negative(rates.get('per_meter')),
                per_junction=non_negative(rates.get('per_junction')),
            )
        return cls(
            setup_cost=non_negative(config['SETUP_COST']),
            digging_per_hour=non_negative(config['DIGGING_PER_HOUR']),
            pipe_rates=pipe_rates,
        )

    @property
    def sizes(self):
        return sorted(self.pipe_rates)

    def rate_for(self, size) -> PipeRate:
        try:
            return self.pipe_rates[size]
        except KeyError:
            raise ValueError(f"No pricing configured for pipe size '{size}'")


@dataclass
class QuoteTotals:
    setup_cost: float
    pipe_work_total: float
    digging_total: float
    extras_total: float
    subtotal: float
    gst: float
    grand_total: float

    def to_dict(self):
        return asdict(self)


def line_total(size, meters, junctions, table: PricingTable) -> float:
    """Price a single relining run. Setup cost is charged once per quote, not per line."""
    rate = table.rate_for(size)
    meters = min(non_negative(meters), MAX_METERS)
    junctions = math.floor(non_negative(junctions))
    return round2(meters * rate.per_meter + junctions * rate.per_junction)


def digging_total(enabled, hours, table: PricingTable) -> float:
    if not enabled:
        return 0.0
    return round2(non_negative(hours) * table.digging_per_hour)


def extras_total(extras: Iterable, supplied=None) -> float:
    """
    Sum extra item amounts. An explicitly supplied total takes precedence;
    items with no amount contribute nothing.
    """
    if supplied is not None:
        return round2(non_negative(supplied))
    return round2(sum(non_negative(getattr(extra, 'amount', None)) for extra in extras))


def compute_totals(pipe_lines: Iterable, digging_enabled: bool, digging_hours,
                   extras: Iterable, table: PricingTable,
                   supplied_extras_total: Optional[float] = None) -> QuoteTotals:
    """
    Compute the full set of quote totals.

    Args:
        pipe_lines: items exposing ``size``, ``meters`` and ``junctions``
        digging_enabled: whether excavation is charged
        digging_hours: excavation hours
        extras: items exposing ``amount`` (pre-tax)
        table: the rate card
        supplied_extras_total: caller-supplied extras total, if any

    Returns:
        QuoteTotals
    """
    line_totals = [line_total(line.size, line.meters, line.junctions, table) for line in pipe_lines]

    setup = round2(table.setup_cost)
    pipe_work = round2(sum(line_totals))
    digging = digging_total(digging_enabled, digging_hours, table)
    extras_sum = extras_total(extras, supplied_extras_total)

    subtotal = round2(setup + pipe_work + digging + extras_sum)
    gst = round2(subtotal * GST_RATE)
    grand_total = round2(subtotal + gst)

    return QuoteTotals(
        setup_cost=setup,
        pipe_work_total=pipe_work,
        digging_total=digging,
        extras_total=extras_sum,
        subtotal=subtotal,
        gst=gst,
        grand_total=grand_total,
    )
