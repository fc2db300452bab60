import calendar
import datetime
import math
import pytz
from typing import Optional, Union

from quest_engine import config


def get_timezone(tz_name: Optional[str] = None) -> datetime.tzinfo:
    return pytz.timezone(tz_name or config.QUEST_TIMEZONE)


def get_now_iso(tz_name: Optional[str] = None) -> str:
    return datetime.datetime.now(get_timezone(tz_name)).isoformat()


# ==========================================
# Clock
# ==========================================

class SystemClock:
    """実時間の時計 (本番用)"""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = get_timezone(tz_name)

    def now(self) -> datetime.datetime:
        return datetime.datetime.now(self.tz)

    def today(self) -> datetime.date:
        return self.now().date()


class FixedClock:
    """
    固定日時を返す時計 (テスト用)
    date を渡した場合はその日の 0:00 (ローカル) を現在時刻とみなす。
    """

    def __init__(self, value: Union[datetime.date, datetime.datetime], tz_name: Optional[str] = None):
        self.tz = get_timezone(tz_name)
        self.set(value)

    def set(self, value: Union[datetime.date, datetime.datetime]) -> None:
        if isinstance(value, datetime.datetime):
            self._now = value.astimezone(self.tz) if value.tzinfo else localize(value, self.tz)
        else:
            self._now = start_of_day(value, self.tz)

    def now(self) -> datetime.datetime:
        return self._now

    def today(self) -> datetime.date:
        return self._now.date()


# ==========================================
# Calendar helpers
# ==========================================

def parse_date(value: Optional[str]) -> Optional[datetime.date]:
    """'YYYY-MM-DD' (またはISO日時) を date に変換"""
    if not value:
        return None
    return datetime.date.fromisoformat(value[:10])


def week_start(d: datetime.date) -> datetime.date:
    """d 以前で直近の月曜日"""
    return d - datetime.timedelta(days=d.weekday())


def month_start(d: datetime.date) -> datetime.date:
    return d.replace(day=1)


def add_months(d: datetime.date, months: int) -> datetime.date:
    """暦上の月加算 (月末は丸める: 1/31 + 1ヶ月 = 2/28 or 2/29)"""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return d.replace(year=year, month=month, day=day)


def start_of_day(d: datetime.date, tz: datetime.tzinfo) -> datetime.datetime:
    return localize(datetime.datetime.combine(d, datetime.time.min), tz)


def end_of_day(d: datetime.date, tz: datetime.tzinfo) -> datetime.datetime:
    """その日の 23:59:59.999 (ローカル)"""
    return localize(datetime.datetime.combine(d, datetime.time(23, 59, 59, 999000)), tz)


def localize(naive: datetime.datetime, tz: datetime.tzinfo) -> datetime.datetime:
    # pytz は replace(tzinfo=...) だとLMTになるため localize を使う
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def round_half_up(value: float) -> int:
    """四捨五入 (Python標準の round は偶数丸めなので使わない)"""
    return int(math.floor(value + 0.5))
