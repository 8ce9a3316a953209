"""
Delivery eligibility.

City strings are free text (typed or geocoded), so both sides are compared
after trimming, collapsing whitespace and case folding. A weekday with no
schedule entry is never serviced.
"""
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from services.config_service.schemas import WEEKDAYS, FreeDeliverySchedule

from .models import DeliveryType

# Upper bound for the forward scan in next_available_delivery_dates
MAX_SCAN_DAYS = 366

DateLike = Union[date, datetime, str]


def normalize_city(city: Optional[str]) -> str:
    return " ".join((city or "").split()).casefold()


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value).date()


def is_delivery_available(delivery_date: DateLike, city: str, schedule: FreeDeliverySchedule) -> bool:
    wanted = normalize_city(city)
    if not wanted:
        return False
    cities = schedule.get(weekday_name(_as_date(delivery_date))) or frozenset()
    return any(normalize_city(candidate) == wanted for candidate in cities)


def is_free_delivery_eligible(
    delivery_date: Optional[DateLike],
    city: Optional[str],
    delivery_type: DeliveryType,
    schedule: FreeDeliverySchedule,
) -> bool:
    # Pickup orders have no delivery to waive
    if delivery_type != DeliveryType.DELIVERY or delivery_date is None or not city:
        return False
    return is_delivery_available(delivery_date, city, schedule)


def next_available_delivery_dates(
    city: str,
    schedule: FreeDeliverySchedule,
    count: int = 10,
    start: Optional[date] = None,
) -> List[date]:
    """Next ``count`` serviced dates for ``city``, starting at ``start`` (today by default)."""
    day = start or date.today()
    dates: List[date] = []
    for _ in range(MAX_SCAN_DAYS):
        if len(dates) >= count:
            break
        if is_delivery_available(day, city, schedule):
            dates.append(day)
        day += timedelta(days=1)
    return dates
