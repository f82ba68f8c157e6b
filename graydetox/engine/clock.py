import time
from datetime import date, datetime


class SystemClock:
    """ローカルタイムゾーンの壁時計."""

    def now_epoch_ms(self) -> int:
        return int(time.time() * 1000)

    def today(self) -> date:
        return date.today()

    def now(self) -> datetime:
        return datetime.now()


def start_of_day_epoch_ms(day: date) -> int:
    """``day`` の 0:00（ローカル時刻）をエポックミリ秒で返す."""
    return int(datetime(day.year, day.month, day.day).timestamp() * 1000)
