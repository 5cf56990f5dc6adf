# feedstat/core/matcher.py
# 役割：ログ行の“分類器”。部分一致(pattern) か 正規表現(regex, グループ最大2つ) で行を判定する
# - 【関数】Matcher.build(regex, pattern)：設定から分類器を作る（regex優先、どちらも無ければ構成エラー）
# - 【関数】match_line(line)：一致すれば (cap1, cap2) を返し、不一致なら NoMatch
# - 【関数】match_batch(line)：バッチ区切り行の判定（regexのみ対象）
from __future__ import annotations

import re  # 行パターンの判定
from dataclasses import dataclass  # 種別＋中身を1まとまりにする
from typing import Literal, Optional, Tuple

from feedstat.core.errors import InvalidConfiguration, NoMatch

Captures = Tuple[Optional[str], Optional[str]]

MAX_GROUPS = 2  # cap1=時刻/件数, cap2=補助


@dataclass(frozen=True)
class Matcher:
    """分類器（kind="regex" なら regex を、kind="pattern" なら pattern を使う）"""

    kind: Literal["regex", "pattern"]
    regex: re.Pattern[str] | None = None
    pattern: str = ""

    @classmethod
    def build(cls, regex: str | None = None, pattern: str | None = None) -> "Matcher":
        """【関数】regex を優先して分類器を作る。どちらも無い/コンパイル不可なら InvalidConfiguration"""
        if regex:
            try:
                compiled = re.compile(regex)
            except re.error as exc:
                raise InvalidConfiguration(f"bad regex {regex!r}: {exc}") from exc
            if compiled.groups > MAX_GROUPS:
                raise InvalidConfiguration(
                    f"regex {regex!r} has {compiled.groups} groups (max {MAX_GROUPS})"
                )
            return cls(kind="regex", regex=compiled)
        if pattern:
            return cls(kind="pattern", pattern=pattern)
        raise InvalidConfiguration("monitor needs either regex or pattern")

    def _captures(self, line: str) -> Captures:
        m = self.regex.search(line) if self.regex is not None else None
        if m is None:
            raise NoMatch()
        groups = m.groups()
        cap1 = groups[0] if len(groups) > 0 else None
        cap2 = groups[1] if len(groups) > 1 else None
        return cap1, cap2

    def match_line(self, line: str) -> Captures:
        if self.kind == "regex":
            return self._captures(line)
        if self.pattern in line:
            return None, None
        raise NoMatch()

    def match_batch(self, line: str) -> Captures:
        # 部分一致はバッチ区切りとしては使わない（件数を取り出せないため）
        if self.kind == "regex":
            return self._captures(line)
        raise NoMatch()
