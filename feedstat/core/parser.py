# feedstat/core/parser.py
# 役割：1行ずつ受け取り「何の行か」を判定して集計器へ渡す“行エンジン”
# - 【関数】extract_info(line)：主分類器で判定し (先頭時刻, cap1, cap2) を返す
# - 【関数】process_line(line)：集計器へ反映（不一致ならバッチ区切りとして再判定）
# - 【関数】wrap_up_file()：ファイル終端の後処理（戻り値で早期終了を判断）
# - 【関数】report_lines/records/print_result：報告の取り出し
from __future__ import annotations

import re  # 行頭フィールド（生成時刻）の抽出
from typing import Any, Dict, List, Optional, Tuple

from feedstat.core.errors import NoMatch
from feedstat.core.matcher import Matcher
from feedstat.core.results import ReportRow, build_result, parse_uint

# 行頭の時刻は最初の区切りまで（"2015-11-09 02:01:03,842 ..." → "2015-11-09 02:01:03"）
LEADING_FIELD_PATTERNS = {
    "comma": r"^([^,]+?),",
    "period": r"^([^,]+?)\.",
}


class LogParser:
    """分類器・集計器・行頭時刻パターンを1モニタ分まとめて持つ"""

    def __init__(
        self,
        matcher: Matcher,
        mode: str = "hour",
        batch_matcher: Matcher | None = None,
        delimiter: str = "comma",
    ) -> None:
        self.matcher = matcher
        self.batch_matcher = batch_matcher
        self.result = build_result(mode)
        try:
            self.time_regex = re.compile(LEADING_FIELD_PATTERNS[delimiter])
        except KeyError as exc:
            raise ValueError(f"unknown delimiter: {delimiter}") from exc

    @classmethod
    def from_rules(
        cls,
        regex: str | None = None,
        pattern: str | None = None,
        batch: str | None = None,
        mode: str | None = None,
        delimiter: str = "comma",
    ) -> "LogParser":
        """【関数】設定値から組み立てる（mode省略時：batch があれば batch、無ければ hour）"""
        matcher = Matcher.build(regex, pattern)
        batch_matcher = Matcher.build(batch) if batch else None
        if mode is None:
            mode = "batch" if batch_matcher is not None else "hour"
        return cls(matcher, mode=mode, batch_matcher=batch_matcher, delimiter=delimiter)

    @property
    def mode(self) -> str:
        return self.result.mode

    def get_timestamp(self, line: str) -> Optional[str]:
        """【関数】行頭の時刻フィールド（無ければ None）"""
        m = self.time_regex.match(line)
        return m.group(1) if m else None

    def extract_info(self, line: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """【関数】主分類器で判定。一致しなければ (None, None, None)"""
        try:
            cap1, cap2 = self.matcher.match_line(line)
        except NoMatch:
            return None, None, None
        return self.get_timestamp(line), cap1, cap2

    def process_line(self, line: str) -> Optional[int]:
        """【関数】1行を集計へ反映。集計したらバケット数、しなければ None"""
        time, cap1, cap2 = self.extract_info(line)
        if time is not None:
            if cap1 is not None and cap2 is not None:
                count = parse_uint(cap2, 1)
                return self.result.increase_count(time, cap1, count)
            if cap1 is not None:
                return self.result.increase_count(time, cap1, 1)
            if cap2 is None:
                return self.result.increase_count(time, "", 1)
        self.check_batch(line)
        return None

    def check_batch(self, line: str) -> None:
        """【関数】バッチ区切り行なら集計器へ通知（バッチの印は常にその行の先頭時刻。件数は最後のキャプチャ）"""
        if self.batch_matcher is None:
            return
        try:
            cap1, cap2 = self.batch_matcher.match_batch(line)
        except NoMatch:
            return
        if cap1 is not None and cap2 is not None:
            # cap1（バッチ名など）は使わない。印が無い行は空の印（キー0）になる
            self.result.process_batch(self.get_timestamp(line) or "", cap2)
            return
        if cap1 is not None and cap2 is None:
            t = self.get_timestamp(line)
            if parse_uint(cap1, 0) > 0 and t is not None:
                self.result.process_batch(t, cap1)

    def wrap_up_file(self) -> int:
        return self.result.wrap_up_file()

    def report(self) -> List[ReportRow]:
        return self.result.report()

    def report_lines(self, name: str) -> List[str]:
        return [row.line(name) for row in self.report()]

    def records(self, name: str) -> List[Dict[str, Any]]:
        """【関数】エクスポート用：報告行を辞書の列に（モニタ名/順位/キー付き）"""
        out = []
        for row in self.report():
            rec = {"monitor": name, "index": row.index, "key": row.key, "mode": self.mode}
            rec.update(row.record)
            out.append(rec)
        return out

    def print_result(self, name: str) -> None:
        for line in self.report_lines(name):
            print(line)
