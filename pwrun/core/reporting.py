"""
Reporter — テスト実行レポートの保存と表示

完了済みの RunReport を JSON ファイルとして保存し、コンソールに要約を表示する。

主な機能:
  - report_filename(): タイムスタンプからファイル名を生成
  - save_report(): test-report-<timestamp>.json の保存
  - print_digest(): 結果要約（テスト名、ステータス、実行時間、ステップ数）の表示
  - load_report(): 保存済みレポートの読み込み

同一ミリ秒に保存したレポートのファイル名は衝突しうる（重複回避はしない）。
書き込み失敗（OSError）は捕捉せずに呼び出し側へ伝播させる。
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import typer

from ..errors import ReportStateError
from .report import RunReport, StepRecord

logger = logging.getLogger(__name__)

_REPORT_PREFIX = "test-report-"
_DIGEST_WIDTH = 48


# ---------------------------------------------------------------------------
# タイムスタンプ整形
# ---------------------------------------------------------------------------

def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """datetime を ISO 8601（UTC、ミリ秒、末尾 Z）形式の文字列に変換する。

    例: 2024-03-15T10:30:45.123Z
    """
    if value is None:
        return None
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def report_filename(now: Optional[datetime] = None) -> str:
    """レポートファイル名を生成する。

    ISO 8601 タイムスタンプのうちファイル名に使えない ":" と "." を "-" に置換する。
    例: test-report-2024-03-15T10-30-45-123Z.json

    Args:
        now: 使用する時刻。None の場合は現在時刻

    Returns:
        ファイル名
    """
    if now is None:
        now = datetime.now(timezone.utc)
    stamp = format_timestamp(now).replace(":", "-").replace(".", "-")
    return f"{_REPORT_PREFIX}{stamp}.json"


class Reporter:
    """テスト実行レポートの保存・表示クラス。"""

    # -------------------------------------------------------------------
    # JSON レポート
    # -------------------------------------------------------------------

    def save_report(
        self,
        report: RunReport,
        output_dir: Path,
        now: Optional[datetime] = None,
    ) -> Path:
        """完了済みレポートを JSON ファイルとして保存する。

        シリアライズ前にレポートの内容を辞書として確定させ、
        以降の RunReport の変更は保存内容に影響しない。

        Args:
            report: 完了済みの RunReport
            output_dir: 出力先ディレクトリ
            now: ファイル名に使用する時刻。None の場合は現在時刻

        Returns:
            保存したファイルのパス

        Raises:
            ReportStateError: レポートが running のままの場合
            OSError: 書き込みに失敗した場合
        """
        if not report.is_finished:
            raise ReportStateError(
                f"実行中のレポートは保存できません: {report.test_name}"
            )

        report_data = self.build_report_dict(report)

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / report_filename(now)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(report_data, f, ensure_ascii=False, indent=2)

        logger.info("JSON レポートを保存しました: %s", output_path)
        return output_path

    def load_report(self, path: Path) -> dict[str, Any]:
        """保存済みの JSON レポートを読み込む。

        Args:
            path: レポートファイルのパス

        Returns:
            レポート辞書
        """
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    # -------------------------------------------------------------------
    # コンソール表示
    # -------------------------------------------------------------------

    def print_digest(self, report: RunReport | dict[str, Any]) -> None:
        """結果の要約を枠付きでコンソールに表示する。

        success は緑、それ以外の終端ステータスは赤で表示する。

        Args:
            report: RunReport または build_report_dict() 形式の辞書
        """
        if isinstance(report, dict):
            data = report
            success_count = sum(
                1 for s in data.get("steps", []) if s.get("status") == "success"
            )
        else:
            data = self.build_report_dict(report)
            success_count = report.count_by_status()["success"]
        steps = data.get("steps", [])
        duration = data.get("duration")

        lines = [
            f"Test: {data.get('testName', '')}",
            f"Status: {data.get('status', '')}",
            f"Duration: {duration if duration is not None else '-'}ms",
            f"Steps: {len(steps)} (success={success_count})",
        ]
        color = (
            typer.colors.GREEN if data.get("status") == "success"
            else typer.colors.RED
        )

        border = "─" * (_DIGEST_WIDTH - 2)
        typer.secho(f"┌{border}┐", fg=color)
        for line in lines:
            typer.secho(f"│ {line:<{_DIGEST_WIDTH - 4}} │", fg=color)
        typer.secho(f"└{border}┘", fg=color)

    # -------------------------------------------------------------------
    # 内部ヘルパー
    # -------------------------------------------------------------------

    def build_report_dict(self, report: RunReport) -> dict[str, Any]:
        """RunReport をレポート用辞書に変換する。フィールド順は固定。

        Args:
            report: 変換対象のレポート

        Returns:
            レポート用辞書
        """
        return {
            "testName": report.test_name,
            "startTime": format_timestamp(report.start_time),
            "endTime": format_timestamp(report.end_time),
            "duration": report.duration,
            "status": report.status,
            "url": report.url,
            "summary": report.summary,
            "steps": [self._build_step_dict(step) for step in report.steps],
        }

    def _build_step_dict(self, step: StepRecord) -> dict[str, Any]:
        return {
            "step": step.step,
            "startTime": format_timestamp(step.start_time),
            "endTime": format_timestamp(step.end_time),
            "duration": step.duration,
            "status": step.status,
            "details": step.details,
            "error": step.error,
        }
