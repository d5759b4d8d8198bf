"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

pwrun コマンドとして以下のサブコマンドを提供する:
  - run: シナリオ実行（レポート保存・要約表示）
  - validate: シナリオ YAML のスキーマ検証
  - show: 保存済みレポートの要約表示
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "pwrun — シナリオ型 E2E ブラウザテストランナー\n\n"
        "基本の流れ:\n"
        "  1. pwrun validate flows/xxx.yaml  シナリオを検証\n"
        "  2. pwrun run flows/xxx.yaml       シナリオを実行（test-report-*.json を保存）\n"
        "  3. pwrun show test-report-*.json  保存済みレポートの要約を表示\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


def _configure_logging(level: str) -> None:
    """ルートロガーを設定する。"""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(name)s - %(message)s",
    )


# ---------------------------------------------------------------------------
# run コマンド
# ---------------------------------------------------------------------------

@app.command()
def run(
    yaml_file: Path = typer.Argument(..., help="実行するシナリオ YAML ファイル"),
    headed: Optional[bool] = typer.Option(
        None, "--headed/--headless", help="ブラウザ表示モード（デフォルト: 表示）",
    ),
    report_dir: Optional[Path] = typer.Option(
        None, "--report-dir", "-o", help="レポート出力ディレクトリ",
    ),
    ready_timeout: Optional[int] = typer.Option(
        None, "--ready-timeout", min=1, help="waitReady の待機予算（ミリ秒）",
    ),
    action_cache: Optional[Path] = typer.Option(
        None, "--action-cache", help="アクションキャッシュファイル（JSON）",
    ),
) -> None:
    """シナリオを実行し、JSON レポートを保存する。失敗時は終了コード 1。"""
    import asyncio

    from .config import apply_overrides, load_config_from_env
    from .core.runner import Runner
    from .dsl.parser import DslParser

    config = apply_overrides(
        load_config_from_env(),
        headed=headed,
        report_dir=report_dir,
        ready_timeout=ready_timeout,
        action_cache=action_cache,
    )
    _configure_logging(config.log_level)

    try:
        scenario = DslParser().load(yaml_file)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    runner = Runner(config=config)
    try:
        asyncio.run(runner.run_with_browser(scenario))
    except Exception as exc:
        typer.echo(f"テスト失敗: {exc}", err=True)
        if runner.last_report_path is not None:
            typer.echo(f"レポート: {runner.last_report_path}", err=True)
        raise typer.Exit(code=1)

    if runner.last_report_path is not None:
        typer.echo(f"レポート: {runner.last_report_path}")


# ---------------------------------------------------------------------------
# validate コマンド
# ---------------------------------------------------------------------------

@app.command()
def validate(
    yaml_file: Path = typer.Argument(..., help="検証するシナリオ YAML ファイル"),
) -> None:
    """シナリオ YAML のスキーマ検証を行う。"""
    from .dsl.parser import DslParser

    errors = DslParser().validate(yaml_file)

    if not errors:
        typer.echo(f"✓ {yaml_file}: スキーマ検証 OK")
        return

    for err in errors:
        line_info = f" (行 {err.line})" if err.line else ""
        typer.echo(f"✗ {err.location}{line_info}: {err.message}", err=True)
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# show コマンド
# ---------------------------------------------------------------------------

@app.command()
def show(
    report_file: Path = typer.Argument(..., help="保存済みの test-report-*.json"),
) -> None:
    """保存済みレポートの要約とステップ一覧を表示する。"""
    from .core.reporting import Reporter

    reporter = Reporter()
    try:
        data = reporter.load_report(report_file)
    except (OSError, ValueError) as exc:
        typer.echo(f"エラー: レポートを読み込めません: {exc}", err=True)
        raise typer.Exit(code=1)

    reporter.print_digest(data)
    for index, step in enumerate(data.get("steps", [])):
        duration = step.get("duration")
        duration_text = f"{duration}ms" if duration is not None else "-"
        line = f"  [{index}] [{step.get('status')}] {step.get('step')} ({duration_text})"
        if step.get("error"):
            line += f" {step['error']}"
        typer.echo(line)
