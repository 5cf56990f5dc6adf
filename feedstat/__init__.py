"""feedstat: プロジェクトのトップレベル・パッケージ
- 役割: ローテーションされたアプリログから、時間帯/バッチごとの処理件数・遅延を集計する
- 入口: `python -m feedstat.cli.scan --config configs/base.yml`
"""
__version__ = "0.1.0"  # pyproject の version と合わせる
