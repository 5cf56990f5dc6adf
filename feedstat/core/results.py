# feedstat/core/results.py
# 役割：分類済みの行をバケットへ畳み込む“集計器”（時間／バッチ／件数所要時間の3種）
# - 【関数】HourResult：時間帯ごと。最新サンプルと件数を持つ
# - 【関数】BatchResult：バッチIDごと。ファイル境界をまたぐ“孤児”件数を次のバッチへ繰り越す
# - 【関数】VolumeResult：時間帯ごとに件数と所要時間を合計
# - 【関数】build_result(mode)：モード名から集計器を作る（種別は固定の3つ）
# ※ 報告は最古のバケットを1つ飛ばす（たいてい途中から読んだ不完全な時間帯/バッチのため）
from __future__ import annotations

from dataclasses import dataclass, field  # 報告行とバケット表
from typing import Any, Dict, List, Optional

from loguru import logger  # 不正な分の読み飛ばしをdebugで残す

from feedstat.core.stat import Stat, VolumeStat


MAX_UINT = 2**63 - 1  # キー/件数の上限（エクスポートの Int64 列に収まる範囲）


def parse_uint(text: str | None, default: int = 0) -> int:
    """【関数】非負整数として読む（ASCII数字のみ・先頭"+"可）。読めない/上限超えは default"""
    if text is None:
        return default
    digits = text[1:] if text.startswith("+") else text
    if not digits or not all("0" <= c <= "9" for c in digits):
        return default
    value = int(digits)
    return value if value <= MAX_UINT else default


def trim_index(index: str) -> int:
    """【関数】文字列から数字だけを拾って整数キーにする（数字が無い/桁あふれは0）"""
    digits = "".join(c for c in index if "0" <= c <= "9")
    return parse_uint(digits, 0)


def _split_hour(time: str) -> tuple[str, str] | None:
    """【関数】"YYYY-MM-DD HH:MM[:SS]" を (時間帯, 分) に分ける。形が違えば None"""
    fields = time.split(":")
    if len(fields) not in (2, 3):
        return None
    return fields[0], fields[1]


@dataclass
class ReportRow:
    """報告1行分（index=0 が最新）"""

    index: int
    key: int
    body: str
    record: Dict[str, Any]

    def line(self, name: str) -> str:
        return f"{name}-{self.index},{self.body}"


def _reportable(keys) -> List[int]:
    """最古（最小キー）を除き、新しい順に並べる"""
    return sorted(keys)[1:][::-1]


@dataclass
class HourResult:
    """時間モード：キー＝時間帯(例 2015110902)、値＝Stat"""

    mode = "hour"

    map: Dict[int, Stat] = field(default_factory=dict)

    def increase_count(self, time: str, watermark: str, count: int = 1) -> Optional[int]:
        split = _split_hour(time)
        if split is None:
            return None
        hour, minute_field = split
        minute = parse_uint(minute_field, -1)
        if minute < 0:
            logger.debug(f"hour: skip malformed minute time={time!r}")
            return None
        key = trim_index(hour)
        stat = self.map.get(key)
        if stat is None:
            stat = Stat(duration=minute, last_sample_time=time, last_time_stamp=watermark)
            self.map[key] = stat
        stat.done += 1
        if minute >= stat.duration:
            # その時間帯で一番新しい行だけを代表サンプルにする
            stat.duration = minute
            stat.last_sample_time = time
            stat.last_time_stamp = watermark
        return len(self.map)

    def process_batch(self, index: str, total: str) -> None:
        """時間モードではバッチ区切りを使わない"""

    def wrap_up_file(self) -> int:
        return len(self.map)

    def report(self) -> List[ReportRow]:
        rows: List[ReportRow] = []
        for i, key in enumerate(_reportable(self.map)):
            stat = self.map[key]
            rows.append(ReportRow(i, key, stat.to_str(i == 0), stat.to_record(delay=i == 0)))
        return rows


@dataclass
class BatchResult:
    """バッチモード：キー＝バッチ開始印の数字、値＝Stat

    ファイルは新しい順（ローテーション順）に読む。ファイル先頭でまだ区切り行を
    見ていない行は、より古いファイルにある区切り行のバッチに属するので、
    temp_count → leftover_count として次に見つかる区切り行まで持ち越す。
    """

    mode = "batch"

    map: Dict[int, Stat] = field(default_factory=dict)
    temp_count: Stat = field(default_factory=Stat)  # このファイルで区切り行より前に出た件数
    leftover_count: Stat = field(default_factory=Stat)  # 前のファイルから持ち越した件数
    current_batch: Optional[int] = None  # None＝このファイルでまだ区切り行を見ていない

    def process_batch(self, index: str, total: str) -> None:
        declared = parse_uint(total, 0)
        self.current_batch = trim_index(index)
        stat = self.map.setdefault(self.current_batch, Stat())
        stat.total = declared
        stat.last_sample_time = index

    def increase_count(self, time: str, watermark: str = "", count: int = 1) -> Optional[int]:
        if self.current_batch is not None:
            stat = self.map.setdefault(self.current_batch, Stat())
        else:
            stat = self.temp_count
        stat.done += 1
        stat.last_time_stamp = time
        return len(self.map)

    def wrap_up_file(self) -> int:
        if self.current_batch is not None:
            # 持ち越し分はこのファイルで最後に見えたバッチに属する
            stat = self.map.setdefault(self.current_batch, Stat())
            stat.done += self.leftover_count.done
            if self.leftover_count.last_time_stamp:
                stat.last_time_stamp = self.leftover_count.last_time_stamp
            self.leftover_count, self.temp_count = self.temp_count, self.leftover_count
        else:
            self.leftover_count.done += self.temp_count.done
            if not self.leftover_count.last_time_stamp:
                self.leftover_count.last_time_stamp = self.temp_count.last_time_stamp
        self.temp_count = Stat()
        self.current_batch = None
        # バッチが1つでもあれば古いファイルへ進まないよう +1 して返す
        return len(self.map) + 1

    def report(self) -> List[ReportRow]:
        rows: List[ReportRow] = []
        for i, key in enumerate(_reportable(self.map)):
            stat = self.map[key]
            rows.append(ReportRow(i, key, stat.batch_to_str(), stat.to_record(batch=True)))
        return rows


@dataclass
class VolumeResult:
    """件数/所要時間モード：キー＝時間帯、値＝VolumeStat（件数と所要時間の合計）"""

    mode = "volume"

    map: Dict[int, VolumeStat] = field(default_factory=dict)

    def increase_count(self, time: str, spent: str, count: int = 1) -> Optional[int]:
        split = _split_hour(time)
        if split is None:
            return None
        key = trim_index(split[0])
        stat = self.map.setdefault(key, VolumeStat())
        stat.period = time
        stat.count += count
        stat.spent += parse_uint(spent, 0)  # 所要時間が数値でない行は件数だけ数える
        return len(self.map)

    def process_batch(self, index: str, total: str) -> None:
        """件数/所要時間モードではバッチ区切りを使わない"""

    def wrap_up_file(self) -> int:
        return len(self.map)

    def report(self) -> List[ReportRow]:
        rows: List[ReportRow] = []
        for i, key in enumerate(_reportable(self.map)):
            stat = self.map[key]
            rows.append(ReportRow(i, key, stat.to_str(), stat.to_record()))
        return rows


# モード名→集計器クラスの対応表（設定の mode から参照）
RESULT_REGISTRY = {
    "hour": HourResult,
    "batch": BatchResult,
    "volume": VolumeResult,
}


def build_result(mode: str):
    """【関数】モード名から集計器を作る（未知のモードは ValueError）"""
    try:
        cls = RESULT_REGISTRY[mode]
    except KeyError as exc:
        raise ValueError(f"unknown result mode: {mode}") from exc
    return cls()
