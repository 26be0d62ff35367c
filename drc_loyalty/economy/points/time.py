from __future__ import annotations

import calendar
from datetime import date, datetime
from zoneinfo import ZoneInfo

KINSHASA_TZ = ZoneInfo("Africa/Kinshasa")


def kinshasa_local_date(now_utc: datetime) -> date:
    return now_utc.astimezone(KINSHASA_TZ).date()


def add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))
