"""
RunReport — テスト実行レポートのデータモデル

1回の実行（Run）を表す RunReport と、その中の各ステップを表す StepRecord を定義する。

主な機能:
  - RunReport.create(): running 状態のレポートを生成
  - RunReport.add_step(): running 状態のステップを追加し、StepHandle を返す
  - RunReport.complete_step(): ステップを終端ステータスへ遷移させる
  - RunReport.complete(): レポート全体を終端ステータスへ遷移させる

状態遷移: running → {success, failed, error}。終端ステータスからの遷移はない。
タイムスタンプは UTC・ミリ秒精度で記録するため、duration は
end_time - start_time とミリ秒単位で厳密に一致する。
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional, Union

from ..errors import ReportStateError

logger = logging.getLogger(__name__)

RunStatus = Literal["running", "success", "failed", "error"]
"""レポート・ステップ共通のステータス。"""

TERMINAL_STATUSES: tuple[str, ...] = ("success", "failed", "error")


# ---------------------------------------------------------------------------
# 時刻ヘルパー
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    """現在時刻（UTC）をミリ秒精度に切り詰めて返す。"""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def _duration_ms(start: datetime, end: datetime) -> int:
    """2つの時刻の差をミリ秒の整数で返す。"""
    return (end - start) // timedelta(milliseconds=1)


def _check_terminal(status: str) -> None:
    if status not in TERMINAL_STATUSES:
        raise ValueError(
            f"終端ステータスではありません: {status!r}"
            f"（{', '.join(TERMINAL_STATUSES)} のいずれかを指定してください）"
        )


# ---------------------------------------------------------------------------
# ステップ
# ---------------------------------------------------------------------------

@dataclass
class StepRecord:
    """単一ステップの記録。

    Attributes:
        step: ステップの説明
        start_time: 開始時刻（UTC）
        end_time: 終了時刻（完了時のみ）
        duration: 実行時間（ミリ秒、完了時のみ）
        status: ステータス（running で開始し、一度だけ終端ステータスへ遷移）
        details: 補足情報（任意）
        error: エラーメッセージ（失敗時のみ）
    """

    step: str
    start_time: datetime = field(default_factory=_utcnow)
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    status: RunStatus = "running"
    details: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.status != "running"


@dataclass(frozen=True)
class StepHandle:
    """add_step() が返すステップ参照。

    呼び出し側はインデックスを自前で管理せず、このハンドルを
    complete_step() に渡す。別のレポートのハンドルは無視される。
    """

    index: int
    run_id: str


StepRef = Union[StepHandle, int]


# ---------------------------------------------------------------------------
# レポート本体
# ---------------------------------------------------------------------------

@dataclass
class RunReport:
    """1回のテスト実行のレポート。

    steps は追加順（実行順）を保持し、外部からは読み取り専用のタプルとして公開する。

    Attributes:
        test_name: テスト名（生成時に確定）
        url: 対象 URL（任意）
        start_time: 開始時刻（UTC）
        end_time: 終了時刻（complete() で一度だけ設定）
        duration: 実行時間（ミリ秒、complete() で設定）
        status: running / success / failed / error
        summary: 結果の要約（complete() で設定）
    """

    test_name: str
    url: Optional[str] = None
    start_time: datetime = field(default_factory=_utcnow)
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    status: RunStatus = "running"
    summary: Optional[str] = None
    _steps: list[StepRecord] = field(default_factory=list, repr=False)
    _run_id: str = field(default_factory=lambda: uuid.uuid4().hex, repr=False)

    @classmethod
    def create(cls, name: str, url: Optional[str] = None) -> RunReport:
        """running 状態の新しいレポートを生成する。"""
        logger.debug("レポートを生成しました: %s", name)
        return cls(test_name=name, url=url)

    # -------------------------------------------------------------------
    # 参照系
    # -------------------------------------------------------------------

    @property
    def steps(self) -> tuple[StepRecord, ...]:
        return tuple(self._steps)

    @property
    def is_finished(self) -> bool:
        return self.status != "running"

    def count_by_status(self) -> dict[str, int]:
        """ステータスごとのステップ数を返す。"""
        counts = {"running": 0, "success": 0, "failed": 0, "error": 0}
        for record in self._steps:
            counts[record.status] += 1
        return counts

    # -------------------------------------------------------------------
    # ステップ操作
    # -------------------------------------------------------------------

    def add_step(self, description: str) -> StepHandle:
        """running 状態のステップを末尾に追加する。

        Args:
            description: ステップの説明

        Returns:
            追加したステップを指す StepHandle
        """
        self._steps.append(StepRecord(step=description))
        handle = StepHandle(index=len(self._steps) - 1, run_id=self._run_id)
        logger.debug("ステップ開始 [%d]: %s", handle.index, description)
        return handle

    def complete_step(
        self,
        step: StepRef,
        status: RunStatus,
        details: Optional[str] = None,
        error: Optional[str] = None,
    ) -> Optional[StepRecord]:
        """ステップを終端ステータスへ遷移させる。

        後から追加されたステップより先に完了させてもよい。
        存在しないインデックス、他レポートのハンドル、完了済みステップに対しては
        何もしない（例外は送出しない）。

        Args:
            step: add_step() が返した StepHandle、またはインデックス
            status: success / failed / error
            details: 補足情報
            error: エラーメッセージ

        Returns:
            更新した StepRecord。何もしなかった場合は None。

        Raises:
            ValueError: 対象ステップが未完了で、status が終端ステータスでない場合
        """
        record = self._resolve(step)
        if record is None:
            logger.warning("存在しないステップの完了要求を無視しました: %r", step)
            return None
        if record.is_finished:
            logger.warning(
                "完了済みステップの再完了要求を無視しました: %s (%s)",
                record.step, record.status,
            )
            return None
        _check_terminal(status)

        end_time = _utcnow()
        record.end_time = end_time
        record.duration = _duration_ms(record.start_time, end_time)
        record.status = status
        record.details = details
        record.error = error
        logger.debug("ステップ完了: %s -> %s (%dms)", record.step, status, record.duration)
        return record

    # -------------------------------------------------------------------
    # レポート完了
    # -------------------------------------------------------------------

    def complete(self, status: RunStatus, summary: Optional[str] = None) -> None:
        """レポートを終端ステータスへ遷移させる。1回の実行につき1度だけ呼び出す。

        Args:
            status: success / failed / error
            summary: 結果の要約

        Raises:
            ValueError: status が終端ステータスでない場合
            ReportStateError: レポートが既に完了している場合
        """
        _check_terminal(status)
        if self.is_finished:
            raise ReportStateError(
                f"レポート '{self.test_name}' は既に完了しています（status={self.status}）"
            )

        end_time = _utcnow()
        self.end_time = end_time
        self.duration = _duration_ms(self.start_time, end_time)
        self.status = status
        self.summary = summary
        logger.info(
            "レポート完了: %s -> %s (%dms)", self.test_name, status, self.duration,
        )

    # -------------------------------------------------------------------
    # 内部ヘルパー
    # -------------------------------------------------------------------

    def _resolve(self, step: StepRef) -> Optional[StepRecord]:
        if isinstance(step, StepHandle):
            if step.run_id != self._run_id:
                return None
            index = step.index
        else:
            index = step
        # 負のインデックスは末尾からの参照にせず、範囲外として扱う
        if 0 <= index < len(self._steps):
            return self._steps[index]
        return None
