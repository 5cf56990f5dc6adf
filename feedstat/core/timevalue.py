# feedstat/core/timevalue.py
# 役割：ログ行の時刻文字列（複数レイアウト）を解析し、正規形への整形と差分計算を行う
# - 【関数】TimeValue.parse(s)：長さでレイアウトを選んで datetime にする
# - 【関数】str(TimeValue)：正規形 "YYYY-MM-DD HH:MM:SS" で出す
# - 【関数】TimeValue - TimeValue：timedelta（秒精度）
# - 【関数】format_delay(delta)：遅延を "HH:MM:SS" で表示する
from __future__ import annotations

from datetime import datetime, timedelta  # 時刻の解析と差分

from feedstat.core.errors import InvalidTimeFormat, MissingWatermark

CANONICAL_FORMAT = "%Y-%m-%d %H:%M:%S"  # 19桁レイアウト＝表示の正規形


def _parse_dow_layout(s: str) -> datetime:
    """【関数】"Fri Sep 11 07:59:55 BST 2015" を解析（TZ略称は読み捨てる）"""
    parts = s.split()
    if len(parts) != 6:
        raise ValueError(f"unexpected field count: {s!r}")
    dow, mon, day, clock, _tz, year = parts
    return datetime.strptime(f"{dow} {mon} {day} {clock} {year}", "%a %b %d %H:%M:%S %Y")


def _parse_slash_layout(s: str) -> datetime:
    """【関数】"04/09/15 22:28:10"（DD/MM/YY）を解析：年は20YY、さらに1時間戻す（TZ差）"""
    date_part, clock = s.split(" ", 1)
    day, month, year = date_part.split("/")
    if len(year) != 2 or not year.isdigit():
        raise ValueError(f"two digit year expected: {s!r}")
    t = datetime.strptime(f"20{year}-{month}-{day} {clock}", CANONICAL_FORMAT)
    return t - timedelta(hours=1)


class TimeValue:
    """ウォーターマーク/サンプル時刻の値オブジェクト

    対応レイアウト（文字列長で判定）:
      19: "2015-09-08 23:41:28"
      28: "Fri Sep 11 07:59:55 BST 2015"
      17: "20150918 02:55:33"  ／ "/" を含めば "04/09/15 22:28:10"
       0: MissingWatermark
    """

    __slots__ = ("dt",)

    def __init__(self, dt: datetime) -> None:
        self.dt = dt

    @classmethod
    def parse(cls, s: str) -> "TimeValue":
        n = len(s)
        if n == 0:
            raise MissingWatermark()
        try:
            if n == 19:
                return cls(datetime.strptime(s, CANONICAL_FORMAT))
            if n == 28:
                return cls(_parse_dow_layout(s))
            if n == 17:
                if "/" in s:
                    return cls(_parse_slash_layout(s))
                return cls(datetime.strptime(s, "%Y%m%d %H:%M:%S"))
        except ValueError as exc:
            raise InvalidTimeFormat(str(exc)) from exc
        raise InvalidTimeFormat(f"unsupported length {n}: {s!r}")

    def __str__(self) -> str:
        return self.dt.strftime(CANONICAL_FORMAT)

    def __repr__(self) -> str:
        return f"TimeValue({str(self)!r})"

    def __sub__(self, other: "TimeValue") -> timedelta:
        return self.dt - other.dt

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeValue):
            return NotImplemented
        return self.dt == other.dt

    def __hash__(self) -> int:
        return hash(self.dt)


def render_time(s: str) -> str:
    """【関数】時刻文字列を表示用に：解析できれば正規形、できなければエラー説明文"""
    try:
        return str(TimeValue.parse(s))
    except (MissingWatermark, InvalidTimeFormat) as exc:
        return str(exc)


def format_delay(delta: timedelta) -> str:
    """【関数】差分を "HH:MM:SS" に整形（時は24超もそのまま、負なら先頭に "-"）"""
    total = int(delta.total_seconds())
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
