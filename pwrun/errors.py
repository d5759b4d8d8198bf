"""
例外定義 — pwrun 全体で共有する例外クラス

主な例外:
  - ReportStateError: RunReport の不正な状態遷移
  - ActionResolutionError: 自然言語指示からアクションを解決できない
  - ActionExecutionError: 解決済みアクションを実行できない
  - StepAssertionError: expect 系ステップの検証失敗（ステータス failed）

Playwright 由来の例外（TimeoutError 等）はラップせずにそのまま伝播させる。
"""

from __future__ import annotations


class PwrunError(Exception):
    """pwrun の例外基底クラス。"""


class ReportStateError(PwrunError, RuntimeError):
    """RunReport / StepRecord の状態遷移が不正な場合に送出する。

    例: 完了済みレポートの再完了、running のままのレポート保存。
    """


class ActionResolutionError(PwrunError):
    """自然言語指示を ActionDescriptor に解決できなかった場合に送出する。"""

    def __init__(self, instruction: str, reason: str = "") -> None:
        self.instruction = instruction
        message = f"アクションを解決できませんでした: '{instruction}'"
        if reason:
            message = f"{message}（{reason}）"
        super().__init__(message)


class ActionExecutionError(PwrunError):
    """ActionDescriptor の実行に失敗した場合に送出する。"""


class StepAssertionError(PwrunError, AssertionError):
    """検証ステップが期待値を満たさなかった場合に送出する。

    Runner はこの例外を受けたステップとレポートを "failed" として記録する。
    """
