"""Behavioral insights over income entries: time patterns and ticket sizes."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

ZERO = Decimal("0")
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass(frozen=True)
class TimePatterns:
    day_counts: list[int]
    hour_counts: list[int]

    @property
    def busiest_day_index(self) -> int:
        return _argmax(self.day_counts)

    @property
    def busiest_hour_index(self) -> int:
        return _argmax(self.hour_counts)

    @property
    def busiest_day(self) -> str:
        return DAY_NAMES[self.busiest_day_index]

    @property
    def busiest_hour(self) -> str:
        hour = self.busiest_hour_index
        return f"{hour}:00 - {hour + 1}:00"


@dataclass(frozen=True)
class TicketDistribution:
    small: int = 0
    medium: int = 0
    large: int = 0


@dataclass(frozen=True)
class TicketSizeStats:
    average: Decimal = ZERO
    median: Decimal = ZERO
    min: Decimal = ZERO
    max: Decimal = ZERO
    count: int = 0
    distribution: TicketDistribution = field(default_factory=TicketDistribution)


def _argmax(counts: list[int]) -> int:
    # list.index returns the first maximum, so ties go to the lowest index
    return counts.index(max(counts))


def day_of_week(moment: datetime) -> int:
    """0 = Sunday .. 6 = Saturday"""
    return (moment.weekday() + 1) % 7


def time_patterns(created_ats: Iterable[datetime]) -> TimePatterns:
    days = [0] * 7
    hours = [0] * 24
    for moment in created_ats:
        days[day_of_week(moment)] += 1
        hours[moment.hour] += 1
    return TimePatterns(day_counts=days, hour_counts=hours)


def ticket_size_stats(amounts: Iterable[Decimal]) -> TicketSizeStats:
    """
    Summary of income ticket sizes.

    The median is the element at index n // 2 of the ascending list, which
    for even lengths is the upper of the two middle values. Buckets are
    relative to the mean: small < 0.5x, medium in [0.5x, 1.5x), large >= 1.5x.
    """
    values = sorted(amounts)
    if not values:
        return TicketSizeStats()

    count = len(values)
    average = sum(values, ZERO) / count
    low = average * Decimal("0.5")
    high = average * Decimal("1.5")

    small = medium = large = 0
    for value in values:
        if value < low:
            small += 1
        elif value < high:
            medium += 1
        else:
            large += 1

    return TicketSizeStats(
        average=average,
        median=values[count // 2],
        min=values[0],
        max=values[-1],
        count=count,
        distribution=TicketDistribution(small=small, medium=medium, large=large),
    )


def generate_recommendations(patterns: TimePatterns, tickets: TicketSizeStats) -> list[str]:
    if tickets.count == 0:
        return ["Not enough income records yet to derive recommendations."]

    return [
        f"Optimal staffing needed on {patterns.busiest_day}s due to high volume.",
        f"Average transaction value is {tickets.average:,.2f} - consider bundling items to increase this.",
    ]
