# feedstat/core/export.py
# 役割：集計結果を“閲覧用”に書き出す（全モニタの報告行を CSV/NDJSON、実行要約を JSON）
# - 【関数】records_frame(monitors)：報告行を Polars DataFrame にまとめる
# - 【関数】write_records(monitors, out, fmt)：CSV または NDJSON で保存
# - 【関数】save_summary(outdir, cfg, monitors)：実行要約を data/results/ に JSON で保存
from __future__ import annotations

from pathlib import Path  # 出力先
from datetime import datetime  # 出力ファイル名と saved_at に時刻を入れる
from typing import Any, Dict, List
import polars as pl  # CSV/NDJSON 書き出し
import orjson  # 要約をJSONで高速保存する
from loguru import logger  # 保存先の通知

# 全モードで同じ列に揃える（モードによって使わない列は 0 / 空文字）
RECORD_SCHEMA = {
    "monitor": pl.Utf8,
    "index": pl.Int64,
    "key": pl.Int64,
    "mode": pl.Utf8,
    "duration": pl.Int64,
    "last_sample_time": pl.Utf8,
    "total": pl.Int64,
    "done": pl.Int64,
    "last_time_stamp": pl.Utf8,
    "efficiency": pl.Float64,
    "delay": pl.Utf8,
    "spent": pl.Int64,
}


def records_frame(monitors) -> pl.DataFrame:
    """【関数】全モニタの報告行を1つの表にする（失敗したモニタは含めない）"""
    rows: List[Dict[str, Any]] = []
    for m in monitors:
        if m.failed:
            continue
        rows.extend(m.records())
    return pl.DataFrame(rows, schema=RECORD_SCHEMA)


def write_records(monitors, out: str | Path, fmt: str = "csv") -> Path:
    """【関数】報告行を CSV / NDJSON で保存して、そのパスを返す"""
    if fmt not in ("csv", "ndjson"):
        raise ValueError("fmt must be 'csv' or 'ndjson'")
    df = records_frame(monitors)
    out = Path(out)
    out.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "csv":
        df.write_csv(out)       # CSVで保存
    else:
        df.write_ndjson(out)    # NDJSONで保存
    logger.info(f"exported rows={len(df)} → {out}")
    return out


def save_summary(outdir: str | Path, cfg, monitors) -> Path:
    """【関数】要約保存：モニタごとの走査ファイル数・バケット数・失敗を JSON で保存する"""
    outdir_path = Path(outdir)
    outdir_path.mkdir(parents=True, exist_ok=True)  # フォルダが無ければ作る

    payload = {
        "env": getattr(cfg, "env", None),
        "log_root": getattr(cfg, "log_root", None),
        "monitors": [
            {
                "name": m.name,
                "path": m.path,
                "mode": m.parser.mode,
                "files_scanned": [str(p) for p in m.files_scanned],
                "lines_read": m.lines_read,
                "buckets": len(m.parser.result.map),
                "reported": len(m.parser.report()),
                "error": str(m.error) if m.failed else None,
            }
            for m in monitors
        ],
        "saved_at": datetime.now().isoformat(timespec="seconds"),
    }

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    outpath = outdir_path / f"scan_summary_{ts}.json"
    outpath.write_bytes(orjson.dumps(payload))  # 1ファイルに保存
    logger.info(f"saved summary: {outpath}")
    return outpath
