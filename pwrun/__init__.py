"""
pwrun — シナリオ型 E2E ブラウザテストランナー

1つのシナリオを Playwright で実行し、ページ読み込みの揺らぎを段階的な待機で吸収しつつ、
各ステップの時刻・結果を JSON レポートとして保存する。
"""

__version__ = "0.1.0"
