"""
実行設定 — 環境変数・CLI 引数からの設定読み込み

CLI 引数 > 環境変数 > デフォルト値 の優先順位で適用される。

環境変数一覧:
  PWRUN_HEADED          : ブラウザ表示モード（true/false, デフォルト: true）
  PWRUN_REPORT_DIR      : レポート出力ディレクトリ（デフォルト: カレント）
  PWRUN_READY_TIMEOUT   : waitReady の待機予算（ミリ秒, デフォルト: 100000）
  PWRUN_VIEWPORT_WIDTH  : ビューポート幅（デフォルト: 1024）
  PWRUN_VIEWPORT_HEIGHT : ビューポート高さ（デフォルト: 768）
  PWRUN_ACTION_CACHE    : アクションキャッシュファイル（デフォルト: なし）
  PWRUN_LOG_LEVEL       : ログレベル（デフォルト: INFO）
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

_ENV_HEADED = "PWRUN_HEADED"
_ENV_REPORT_DIR = "PWRUN_REPORT_DIR"
_ENV_READY_TIMEOUT = "PWRUN_READY_TIMEOUT"
_ENV_VIEWPORT_WIDTH = "PWRUN_VIEWPORT_WIDTH"
_ENV_VIEWPORT_HEIGHT = "PWRUN_VIEWPORT_HEIGHT"
_ENV_ACTION_CACHE = "PWRUN_ACTION_CACHE"
_ENV_LOG_LEVEL = "PWRUN_LOG_LEVEL"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


# ---------------------------------------------------------------------------
# 設定データクラス
# ---------------------------------------------------------------------------

@dataclass
class RunnerConfig:
    """Runner の実行設定。

    Attributes:
        headed: ブラウザ表示モード（True=表示, False=ヘッドレス）
        report_dir: レポート出力ディレクトリ
        ready_timeout: waitReady の待機予算（ミリ秒）
        viewport_width: ビューポート幅
        viewport_height: ビューポート高さ
        action_cache: アクションキャッシュファイル（None でキャッシュを永続化しない）
        log_level: ログレベル
        print_digest: 実行後にコンソールへ要約を表示するか
    """

    headed: bool = True
    report_dir: Path = field(default_factory=lambda: Path("."))
    ready_timeout: int = 100_000
    viewport_width: int = 1024
    viewport_height: int = 768
    action_cache: Optional[Path] = None
    log_level: str = "INFO"
    print_digest: bool = True


# ---------------------------------------------------------------------------
# 環境変数からの読み込み
# ---------------------------------------------------------------------------

def _parse_bool(value: str) -> bool:
    """文字列を bool に変換する。

    Args:
        value: "true", "1", "yes" → True、それ以外 → False

    Returns:
        変換結果
    """
    return value.lower() in ("true", "1", "yes")


def _parse_positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    """環境変数を正の整数として読み込む。不正な値の場合は警告してデフォルト値を返す。"""
    raw = env[key]
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s の値が不正です: %s", key, raw)
        return default
    if value <= 0:
        logger.warning("%s には正の整数を指定してください: %s", key, raw)
        return default
    return value


def load_config_from_env(env: Optional[Mapping[str, str]] = None) -> RunnerConfig:
    """環境変数から RunnerConfig を生成する。

    設定されていない環境変数はデフォルト値を使用する。

    Args:
        env: 環境変数のマッピング（None の場合は os.environ）

    Returns:
        環境変数から読み込んだ設定
    """
    if env is None:
        env = os.environ
    config = RunnerConfig()

    if _ENV_HEADED in env:
        config.headed = _parse_bool(env[_ENV_HEADED])

    if _ENV_REPORT_DIR in env:
        config.report_dir = Path(env[_ENV_REPORT_DIR])

    if _ENV_READY_TIMEOUT in env:
        config.ready_timeout = _parse_positive_int(
            env, _ENV_READY_TIMEOUT, config.ready_timeout,
        )

    if _ENV_VIEWPORT_WIDTH in env:
        config.viewport_width = _parse_positive_int(
            env, _ENV_VIEWPORT_WIDTH, config.viewport_width,
        )

    if _ENV_VIEWPORT_HEIGHT in env:
        config.viewport_height = _parse_positive_int(
            env, _ENV_VIEWPORT_HEIGHT, config.viewport_height,
        )

    if env.get(_ENV_ACTION_CACHE):
        config.action_cache = Path(env[_ENV_ACTION_CACHE])

    if _ENV_LOG_LEVEL in env:
        level = env[_ENV_LOG_LEVEL].upper()
        if level in _LOG_LEVELS:
            config.log_level = level
        else:
            logger.warning("%s の値が不正です: %s", _ENV_LOG_LEVEL, env[_ENV_LOG_LEVEL])

    logger.debug("設定を読み込みました: %s", config)
    return config


def apply_overrides(config: RunnerConfig, **overrides: Any) -> RunnerConfig:
    """CLI 引数を RunnerConfig に適用する。

    値が None の引数は無視し、指定されたものだけ上書きする。

    Args:
        config: ベースとなる設定（環境変数から読み込み済み）
        **overrides: RunnerConfig のフィールド名と値

    Returns:
        CLI 引数が適用された設定

    Raises:
        AttributeError: 未知のフィールド名が指定された場合
    """
    for name, value in overrides.items():
        if value is None:
            continue
        if not hasattr(config, name):
            raise AttributeError(f"未知の設定項目です: {name}")
        setattr(config, name, value)
    return config
