# feedstat/core/errors.py
# 役割：行の分類・時刻解析・モニタ構成で起きる失敗を型で区別する（上位で判別しやすくする）
from __future__ import annotations


class LogError(Exception):
    """ログ集計の一般的な失敗。str() は表示用の説明文を返す"""

    description = "LogError"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.description)

    def __str__(self) -> str:
        return self.description


class NoMatch(LogError):
    """行が分類器に一致しない（想定内：その行は読み飛ばす）"""

    description = "MisMatch"


class MissingWatermark(LogError):
    """ウォーターマークが空（watermark無しのフィードでは想定内）"""

    description = "Not Available"


class InvalidTimeFormat(LogError):
    """空でない時刻文字列がどのレイアウトにも当てはまらない"""

    description = "Invalid Time Format"


class InvalidConfiguration(LogError):
    """regex も pattern も無い、または regex が不正なモニタ構成"""

    description = "Invalid"
