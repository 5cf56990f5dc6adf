# feedstat/core/monitor.py
# 役割：1モニタ分のログ（ローテーション済みファイル群）を新しい順に読み、行エンジンへ流す
# - 【関数】sorted_paths：publish.log, publish.log.1, ... publish.log.10 の順に並べる（数値比較）
# - 【関数】iter_lines：ファイルを1行ずつ返す（改行は落とす）
# - 【関数】Monitor.process_directory：全ファイルを処理。十分なバケットが集まったら古いファイルは開かない
# - 【関数】run_monitors：モニタごとにスレッドを立てて並行に処理し、全員の終了を待つ
from __future__ import annotations

import threading  # モニタごとの並行処理
import time  # 処理時間の計測
from pathlib import Path  # globとファイル読み
from typing import Iterable, Iterator, List

from loguru import logger  # 進捗ログ

from feedstat.core.parser import LogParser
from feedstat.core.results import parse_uint


def _rotation_index(path: Path) -> int:
    """末尾の拡張子がASCII数字ならその値、それ以外（無印・.log・全角数字等）は 0"""
    return parse_uint(path.suffix.lstrip("."), 0)


def sorted_paths(paths: Iterable[Path]) -> List[Path]:
    """【関数】ローテーション番号の昇順（＝新しい順）に並べる。同順位は元の順を保つ"""
    return sorted((Path(p) for p in paths), key=_rotation_index)


def expand_glob(pattern: str) -> List[Path]:
    """【関数】"dir/publish.log*" のようなglobを展開（ディレクトリ部分は固定パス）"""
    p = Path(pattern)
    return sorted(q for q in p.parent.glob(p.name) if q.is_file())


def iter_lines(path: Path) -> Iterator[str]:
    """【関数】1行ずつ返す。壊れたバイトは置換して読み進める（開けなければ OSError）"""
    with path.open("r", encoding="utf-8", errors="replace", newline=None) as fh:
        for raw in fh:
            yield raw.rstrip("\r\n")


class Monitor:
    """1モニタ＝名前＋globパス＋行エンジン＋早期終了しきい値"""

    def __init__(self, name: str, path: str, parser: LogParser, count: int = 6) -> None:
        self.name = name
        self.path = path
        self.parser = parser
        self.count = count
        self.files_scanned: List[Path] = []
        self.lines_read = 0
        self.error: Exception | None = None  # ワーカーを止めた例外（ファイルを開けない等）

    @classmethod
    def from_config(cls, cfg, monitor_cfg) -> "Monitor":
        """【関数】設定（Config, MonitorCfg）から組み立てる。構成不備は InvalidConfiguration"""
        parser = LogParser.from_rules(
            regex=monitor_cfg.regex,
            pattern=monitor_cfg.pattern,
            batch=monitor_cfg.batch,
            mode=monitor_cfg.mode,
            delimiter=monitor_cfg.delimiter,
        )
        return cls(monitor_cfg.name, cfg.resolve_path(monitor_cfg), parser, cfg.threshold(monitor_cfg))

    @property
    def failed(self) -> bool:
        return self.error is not None

    def process_files(self, files: Iterable[Path]) -> None:
        """【関数】与えたファイル列を順に処理（並べ替えは呼び出し側の責任）"""
        for path in files:
            n = 0
            for line in iter_lines(path):
                self.parser.process_line(line)
                n += 1
            self.lines_read += n
            self.files_scanned.append(path)
            buckets = self.parser.wrap_up_file()
            logger.debug(f"{self.name}: scanned {path} lines={n} buckets={buckets}")
            # we have enough samples, stop!
            if buckets > self.count:
                logger.debug(f"{self.name}: enough samples ({buckets} > {self.count}); skip older files")
                return

    def process_directory(self) -> None:
        """【関数】globを展開して新しい順に処理する"""
        files = sorted_paths(expand_glob(self.path))
        if not files:
            logger.warning(f"{self.name}: no files match {self.path}")
            return
        t0 = time.perf_counter()
        self.process_files(files)
        logger.info(
            f"{self.name}: files={len(self.files_scanned)}/{len(files)} lines={self.lines_read} "
            f"elapsed={time.perf_counter() - t0:.2f}s"
        )

    def run(self) -> None:
        """【関数】スレッド本体：ファイルを開けない等の失敗はこのモニタだけ止める"""
        try:
            self.process_directory()
        except OSError as exc:
            self.error = exc
            logger.error(f"{self.name}: failed to read log file → {exc}")
        except Exception as exc:
            # 想定外の例外も self.error に残す
            self.error = exc
            logger.exception(f"{self.name}: scan aborted")

    def report_lines(self) -> List[str]:
        return self.parser.report_lines(self.name)

    def records(self):
        return self.parser.records(self.name)

    def print_result(self) -> None:
        self.parser.print_result(self.name)


def run_monitors(monitors: List[Monitor]) -> List[Monitor]:
    """【関数】モニタごとにスレッドで処理し、全スレッドの終了を待って返す（状態は共有しない）"""
    threads = [
        threading.Thread(target=m.run, name=f"monitor-{m.name}", daemon=True)
        for m in monitors
    ]
    for th in threads:
        th.start()
    for th in threads:
        th.join()
    return monitors
