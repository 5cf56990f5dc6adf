# feedstat/cli/scan.py
# 役割：設定のモニタ（ログ系列）を並行に走査し、時間帯/バッチごとの処理状況を表示するCLI
# - 【関数】_parse_args：引数（config/monitor/count/out/format/summary-dir）を読む
# - 【関数】_setup_logs：loguru のシンク（標準エラー＋任意でローテーション付きファイル）
# - 【関数】build_monitors：設定からモニタを組み立てる（構成不備のモニタは飛ばす）
# - 【関数】main：読込→並行走査→報告の表示→（任意）CSV/NDJSON と要約JSONの保存
from __future__ import annotations

import argparse  # CLI引数の処理
import sys  # 標準エラーへのログ出力
from pathlib import Path  # 出力先
from typing import List
from dotenv import load_dotenv, find_dotenv  # 何をするか：.env の FEEDSTAT_LOG_ROOT を読む
from loguru import logger  # 進捗ログ

from feedstat.core.errors import InvalidConfiguration
from feedstat.core.export import save_summary, write_records
from feedstat.core.monitor import Monitor, run_monitors
from feedstat.core.utils import Config, load_config

HEADER = "Name, duration, lastSampleTime, Total, Done, lastMsgTimeStamp, Efficiency(per min), Delay"


def _parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    """【関数】引数定義：どの設定で、どのモニタを、どこまで読むか"""
    p = argparse.ArgumentParser(description="Hourly / per-batch throughput and delay from rotated logs")
    p.add_argument("--config", default="configs/base.yml", help="configs/base.yml または configs/prod.yml")
    p.add_argument("--monitor", action="append", default=None,
                   help="走査するモニタ名（複数可・カンマ区切り可。省略時は enabled のもの全部）")
    p.add_argument("--count", type=int, default=None, help="早期終了のしきい値（全モニタ共通で上書き）")
    p.add_argument("--out", default=None, help="報告行の保存先（CSV/NDJSON）")
    p.add_argument("--format", choices=["csv", "ndjson"], default=None, help="--out の形式（省略時は設定値）")
    p.add_argument("--summary-dir", default=None, help="実行要約JSONを書き出すフォルダ")
    p.add_argument("--log-level", default=None, help="ログレベル（省略時は設定値）")
    return p.parse_args(argv)


def _setup_logs(cfg: Config, level: str | None = None) -> list[int]:
    """【関数】標準エラーと（設定があれば）ファイルにログを出す。戻り値は後で外すシンクID"""
    log_cfg = cfg.logging
    level = (level or log_cfg.level).upper()
    fmt_with_pid = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | pid={process.id} | {thread.name} | {message}"
    logger.remove()
    sink_ids = [logger.add(sys.stderr, level=level, format=fmt_with_pid)]
    if log_cfg.file:
        path = Path(log_cfg.file).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error(f"log_path_mkdir_failed path={path} err={exc}")
            return sink_ids
        rotation = f"{int(log_cfg.rotate_mb)} MB"
        sink_ids.append(logger.add(path, level=level, rotation=rotation, enqueue=True, format=fmt_with_pid))
    return sink_ids


def _monitor_names(raw: List[str] | None) -> List[str]:
    """何をする関数か：--monitor の複数指定/カンマ区切りを1つのリストに正規化する"""
    names: List[str] = []
    for entry in raw or []:
        for part in str(entry).split(","):
            name = part.strip()
            if name:
                names.append(name)
    return names


def build_monitors(cfg: Config, names: List[str] | None = None, count: int | None = None) -> List[Monitor]:
    """【関数】設定からモニタを組み立てる。regex/pattern 不備のモニタはログを出して除外"""
    monitors: List[Monitor] = []
    for mcfg in cfg.active_monitors(names):
        try:
            m = Monitor.from_config(cfg, mcfg)
        except InvalidConfiguration as exc:
            logger.error(f"{mcfg.name}: invalid monitor configuration → {exc.args[0]}")
            continue
        if count is not None:
            m.count = count
        monitors.append(m)
    if names:
        missing = set(names) - {m.name for m in cfg.monitors}
        for name in sorted(missing):
            logger.warning(f"unknown monitor: {name}")
    return monitors


def main(argv: List[str] | None = None) -> int:
    """【関数】本体：読込→並行走査→報告表示→保存。失敗したモニタがあれば 1 を返す"""
    load_dotenv(find_dotenv(usecwd=True))  # 何をするか：カレント配下の .env を読む（log_root 上書き用）
    args = _parse_args(argv)
    cfg = load_config(args.config)
    sink_ids = _setup_logs(cfg, args.log_level)
    try:
        monitors = build_monitors(cfg, _monitor_names(args.monitor), args.count)
        if not monitors:
            logger.error("no monitor to scan (check monitors/enabled in config)")
            return 2
        logger.info(f"env={cfg.env} log_root={cfg.log_root} monitors={[m.name for m in monitors]}")

        run_monitors(monitors)

        print(HEADER)
        for m in monitors:
            if m.failed:
                print(f"{m.name}-failed,{m.error}")
                continue
            m.print_result()

        out = args.out
        if out:
            write_records(monitors, out, args.format or cfg.output.format)
        summary_dir = args.summary_dir or cfg.output.summary_dir
        if summary_dir:
            save_summary(summary_dir, cfg, monitors)
        return 1 if any(m.failed for m in monitors) else 0
    finally:
        for sink_id in sink_ids:
            logger.remove(sink_id)


if __name__ == "__main__":
    raise SystemExit(main())
