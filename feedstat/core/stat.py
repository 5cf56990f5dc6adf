# feedstat/core/stat.py
# 役割：1バケット（時間帯 or バッチ）分の集計値と、その表示用の整形
# - 【関数】Stat.to_str(delay)：時間モードの1行（遅延は先頭行だけ出す）
# - 【関数】Stat.batch_to_str()：バッチモードの1行（経過分と分あたり件数）
# - 【関数】VolumeStat.to_str()：件数/所要時間モードの1行
from __future__ import annotations

from dataclasses import dataclass  # 集計値の入れ物
from datetime import timedelta
from typing import Any, Dict

from feedstat.core.errors import LogError
from feedstat.core.timevalue import TimeValue, format_delay, render_time


@dataclass
class Stat:
    """時間/バッチ共通の集計値"""

    duration: int = 0  # 時間モード：この時間帯で見えた最大の「分」
    last_sample_time: str = ""  # 時間モード：最新行の時刻／バッチモード：バッチ開始の印
    total: int = 0  # バッチの申告件数（時間モードは0）
    done: int = 0  # 処理済み件数
    last_time_stamp: str = ""  # 最新のウォーターマーク（バッチは最終行の時刻）

    def _span(self) -> timedelta | None:
        """サンプル時刻とウォーターマークの差（片方でも解析できなければ None）"""
        try:
            sample = TimeValue.parse(self.last_sample_time)
            mark = TimeValue.parse(self.last_time_stamp)
        except LogError:
            return None
        return sample - mark

    def delay_time(self) -> str:
        """【関数】遅延＝サンプル時刻−ウォーターマーク。情報不足なら "0" """
        span = self._span()
        return format_delay(span) if span is not None else "0"

    def efficiency(self) -> float:
        """【関数】分あたり件数（duration=0 は 1 とみなす）"""
        return self.done / (self.duration or 1)

    def to_str(self, delay: bool) -> str:
        return "{}, {}, {}, {}, {}, {:.2f}, {}".format(
            self.duration,
            self.last_sample_time,
            self.total,
            self.done,
            render_time(self.last_time_stamp),
            self.efficiency(),
            self.delay_time() if delay else "",
        )

    # ---- バッチモード：経過は逆向き（最終行 − バッチ開始） ----
    def batch_window(self) -> timedelta | None:
        span = self._span()
        return -span if span is not None else None

    def batch_minutes(self) -> int:
        window = self.batch_window()
        return int(window.total_seconds() // 60) if window is not None else 0

    def batch_efficiency(self) -> float:
        """【関数】バッチの分あたり件数（経過が取れない/0以下なら 0.0）"""
        window = self.batch_window()
        if window is None or window.total_seconds() <= 0:
            return 0.0
        return self.done / (window.total_seconds() / 60.0)

    def batch_to_str(self) -> str:
        return "{}, {}, {}, {}, {}, {:.2f}, {}".format(
            self.batch_minutes(),
            self.last_sample_time,
            self.total,
            self.done,
            render_time(self.last_time_stamp),
            self.batch_efficiency(),
            "",
        )

    def to_record(self, delay: bool = False, batch: bool = False) -> Dict[str, Any]:
        """【関数】エクスポート用の辞書（全モード共通の列）"""
        return {
            "duration": self.batch_minutes() if batch else self.duration,
            "last_sample_time": self.last_sample_time,
            "total": self.total,
            "done": self.done,
            "last_time_stamp": render_time(self.last_time_stamp),
            "efficiency": round(self.batch_efficiency() if batch else self.efficiency(), 2),
            "delay": self.delay_time() if delay else "",
            "spent": 0,
        }


@dataclass
class VolumeStat:
    """件数/所要時間モードの集計値（1時間ごとの合計）"""

    period: str = ""
    count: int = 0
    spent: int = 0

    def average(self) -> float:
        return self.spent / self.count if self.count else 0.0

    def to_str(self) -> str:
        return f"{self.period}, {self.count}, {self.spent}, {self.average():.2f}"

    def to_record(self) -> Dict[str, Any]:
        return {
            "duration": 0,
            "last_sample_time": self.period,
            "total": 0,
            "done": self.count,
            "last_time_stamp": "",
            "efficiency": round(self.average(), 2),
            "delay": "",
            "spent": self.spent,
        }
