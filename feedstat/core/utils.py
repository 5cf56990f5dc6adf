# feedstat/core/utils.py
# 役割：設定(YAML)の読み込み・base.ymlとの深いマージ・Pydanticでの型検査を行う“設定ローダー”
from __future__ import annotations

from pathlib import Path  # ファイルパスを安全に扱う
from typing import Any, Dict, Literal
import os  # 環境変数での上書き
import copy  # 辞書のディープコピーで安全に合成
import yaml  # YAML読取（pyyaml）
from pydantic import BaseModel, Field  # 型検査モデル（v2）

LOG_ROOT_ENV = "FEEDSTAT_LOG_ROOT"  # log_root を環境（.env含む）から差し替えるキー

# ─────────────────────────────────────────────────────────────
# Pydanticモデル定義（モニタ一覧・ログ・出力）

class MonitorCfg(BaseModel):
    """1モニタ＝1つのログ系列（ローテーションされたファイル群）"""
    name: str = Field(..., description="報告の行頭に出す名前")
    path: str = Field(..., description="ファイルのglob（相対なら log_root 基準）")
    regex: str | None = None  # 主分類器：正規表現（グループ最大2つ）
    pattern: str | None = None  # 主分類器：部分一致（regex が無いとき）
    batch: str | None = None  # バッチ区切り行の正規表現
    mode: Literal["hour", "batch", "volume"] | None = None
    delimiter: Literal["comma", "period"] = "comma"
    count: int | None = None  # 早期終了のしきい値（省略時は Config.sample_count）
    enabled: bool = True

class LoggingCfg(BaseModel):
    level: str = "INFO"
    file: str | None = None  # ファイルシンク（省略時は標準エラーのみ）
    rotate_mb: int = 32

class OutputCfg(BaseModel):
    format: Literal["csv", "ndjson"] = "csv"
    summary_dir: str | None = None

class Config(BaseModel):
    """プロジェクト共通設定：base.yml を土台に各環境の差分を上書きして出来上がる最終形"""
    env: str = Field("test", description="test | prod")
    log_root: str = "logs"
    sample_count: int = 6
    logging: LoggingCfg = Field(default_factory=LoggingCfg)
    output: OutputCfg = Field(default_factory=OutputCfg)
    monitors: list[MonitorCfg] = Field(default_factory=list)

    def resolve_path(self, monitor: MonitorCfg) -> str:
        """【関数】モニタのglobを実パスにする（絶対パスはそのまま）"""
        p = Path(monitor.path)
        if p.is_absolute():
            return str(p)
        return str(Path(self.log_root) / p)

    def threshold(self, monitor: MonitorCfg) -> int:
        return monitor.count if monitor.count is not None else self.sample_count

    def active_monitors(self, names: list[str] | None = None) -> list[MonitorCfg]:
        """【関数】有効なモニタ（names 指定時はその名前だけ、enabled に関係なく選ぶ）"""
        if names:
            wanted = set(names)
            return [m for m in self.monitors if m.name in wanted]
        return [m for m in self.monitors if m.enabled]

# ─────────────────────────────────────────────────────────────
# 【関数】YAML読取：指定パスのYAMLを辞書で返す（空は {}）
def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)  # コメント以外を読み込む
    return data or {}

# ─────────────────────────────────────────────────────────────
# 【関数】深いマージ：base の上に override を重ねる（辞書は再帰、配列/スカラは置換）
def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for k, v in override.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = deep_merge(merged[k], v)  # 再帰的に辞書を合成
        else:
            merged[k] = copy.deepcopy(v)  # 配列・数値・文字列などは上書き
    return merged

# ─────────────────────────────────────────────────────────────
# 【関数】パス解決：与えられた config から base.yml と自身のフルパスを求める
def resolve_config_paths(config_path: str | os.PathLike[str]) -> tuple[Path, Path]:
    cpath = Path(config_path).resolve()
    base = cpath.parent / "base.yml"
    if not base.is_file():
        # 別ディレクトリの設定なら、プロジェクト直下の configs/base.yml を土台にする
        root = Path(__file__).resolve().parents[2]  # .../feedstat/core/utils.py → プロジェクトルート
        alt = root / "configs" / "base.yml"
        if alt.is_file():
            base = alt
    return base, cpath

# ─────────────────────────────────────────────────────────────
# 【関数】設定ローダー：base.yml＋指定yml を合成し、Pydantic で型検査した Config を返す
def load_config(config_path: str | os.PathLike[str]) -> Config:
    """
    使い方：
      from feedstat.core.utils import load_config
      cfg = load_config("configs/prod.yml")
    効能：
      - base.yml を土台に、test/prod の差分を“深く”上書き（monitors は配列なので丸ごと置換）。
      - 環境変数 FEEDSTAT_LOG_ROOT があれば log_root をそれで上書きする。
    """
    base_path, cfg_path = resolve_config_paths(str(config_path))
    base = _read_yaml(base_path) if cfg_path != base_path and base_path.is_file() else {}
    override = _read_yaml(cfg_path)
    merged = deep_merge(base, override)
    env_root = os.getenv(LOG_ROOT_ENV)
    if env_root:
        merged["log_root"] = env_root
    return Config.model_validate(merged)
