import enum
import re
from datetime import date, datetime, timedelta
from typing import Tuple

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
FLAG_VALUES = {
    "true": True,
    "1": True,
    "yes": True,
    "on": True,
    "false": False,
    "0": False,
    "no": False,
    "off": False,
}
REPORT_FORMATS = ("json", "html")


class Period(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def parse_period(value: str | None) -> Period:
    if not value:
        raise ValueError("period is required")
    try:
        return Period(value)
    except ValueError as exc:
        allowed = ", ".join(period.value for period in Period)
        raise ValueError(f"period must be one of: {allowed}") from exc


def parse_report_date(value: str | None) -> date:
    if not value:
        raise ValueError("date is required")
    if not DATE_PATTERN.fullmatch(value):
        raise ValueError("date must use the YYYY-MM-DD format")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValueError("date must use the YYYY-MM-DD format") from exc


def parse_report_format(value: str | None, default: str) -> str:
    if value is None or value == "":
        return default
    if value not in REPORT_FORMATS:
        raise ValueError(f"format must be one of: {', '.join(REPORT_FORMATS)}")
    return value


def parse_flag(name: str, value: str | None) -> bool:
    if value is None or value == "":
        return False
    try:
        return FLAG_VALUES[value.lower()]
    except KeyError as exc:
        raise ValueError(f"{name} must be true or false") from exc


def bucket_bounds(reference: date, period: Period) -> Tuple[datetime, datetime]:
    """Start of the calendar unit containing ``reference`` and start of the next one.

    Weeks start on Monday.
    """
    if period == Period.DAILY:
        start = reference
        end = reference + timedelta(days=1)
    elif period == Period.WEEKLY:
        start = reference - timedelta(days=reference.weekday())
        end = start + timedelta(days=7)
    elif period == Period.MONTHLY:
        start = reference.replace(day=1)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
    else:
        raise ValueError(f"Unsupported period: {period}")
    return (
        datetime.combine(start, datetime.min.time()),
        datetime.combine(end, datetime.min.time()),
    )
