"""
Runner — シナリオ実行エンジン

Scenario のステップを順次実行し、各ステップの開始・完了を RunReport に記録する。

主な機能:
  - Runner.run(): AutomationDriver を使ったシナリオ実行
  - Runner.run_with_browser(): ブラウザを起動してシナリオを実行

実行の流れ:
  1. RunReport を生成（status=running）
  2. ステップごとに add_step → 実行 → complete_step
  3. 終了時（成功・失敗・例外のいずれでも）に RunReport を一度だけ完了させて保存

ステップで例外が発生した場合は後続ステップを実行せず、
現在のステップとレポートを error（検証失敗は failed）として保存した後、
例外を呼び出し元へ再送出する。リトライは行わない。
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

from ..config import RunnerConfig
from ..driver.protocol import ActionDescriptor, ActionResolver, AutomationDriver
from ..dsl.schema import (
    ActStep,
    AnyStep,
    ExpectUrlStep,
    ExpectVisibleStep,
    FillStep,
    GotoStep,
    ObserveStep,
    Scenario,
    WaitForNetworkIdleStep,
    WaitForStep,
    WaitReadyStep,
)
from ..errors import ActionExecutionError, StepAssertionError
from .report import RunReport
from .reporting import Reporter
from .waits import ReadinessProbe, wait_for_network_settle

logger = logging.getLogger(__name__)


@dataclass
class _RunState:
    """1回の実行の中だけで使う状態。

    Attributes:
        preview: 直前の observe で解決したアクション
    """

    preview: Optional[ActionDescriptor] = None


def _describe_error(exc: BaseException) -> str:
    """例外をレポート用のメッセージに変換する。"""
    message = str(exc)
    return message if message else type(exc).__name__


# ---------------------------------------------------------------------------
# Runner 本体
# ---------------------------------------------------------------------------

class Runner:
    """シナリオ実行エンジン。

    使用例::

        runner = Runner(config=RunnerConfig(report_dir=Path("reports")))
        report = await runner.run(scenario, driver)

    Attributes:
        last_report: 直近の実行の RunReport（例外終了時の参照用）
        last_report_path: 直近の実行で保存したレポートのパス（保存失敗時は None）
    """

    def __init__(
        self,
        config: Optional[RunnerConfig] = None,
        reporter: Optional[Reporter] = None,
        probe: Optional[ReadinessProbe] = None,
        resolver: Optional[ActionResolver] = None,
    ) -> None:
        """Runner を初期化する。

        Args:
            config: 実行設定（None の場合はデフォルト値）
            reporter: レポートの保存・表示を行う Reporter
            probe: waitReady ステップで使用する ReadinessProbe
            resolver: アクションキャッシュにない指示の解決に使う ActionResolver
                （run_with_browser でのみ使用。解決結果はキャッシュに保存される）
        """
        self._config = config or RunnerConfig()
        self._reporter = reporter or Reporter()
        self._probe = probe or ReadinessProbe()
        self._resolver = resolver
        self.last_report: Optional[RunReport] = None
        self.last_report_path: Optional[Path] = None

    # -------------------------------------------------------------------
    # パブリック API
    # -------------------------------------------------------------------

    async def run(self, scenario: Scenario, driver: AutomationDriver) -> RunReport:
        """シナリオを実行し、完了済みの RunReport を返す。

        Args:
            scenario: 実行対象のシナリオ
            driver: ブラウザ操作を行うドライバ

        Returns:
            完了済み（status=success）の RunReport

        Raises:
            StepAssertionError: 検証ステップが失敗した場合（レポートは failed）
            Exception: ステップ実行中の例外（レポートは error）
        """
        report = RunReport.create(scenario.title, url=scenario.url)
        self.last_report = report
        self.last_report_path = None
        state = _RunState()

        logger.info("シナリオを開始します: %s", scenario.title)
        async with self._report_scope(report):
            steps = scenario.parsed_steps()
            for step in steps:
                await self._execute_step(report, step, driver, state)

        return report

    async def run_with_browser(self, scenario: Scenario) -> RunReport:
        """ブラウザを起動し、PlaywrightDriver でシナリオを実行する。

        シナリオの actions と設定のアクションキャッシュを使って
        observe ステップの指示を解決する。
        どちらにもない指示は Runner の resolver に委譲し、結果をキャッシュに保存する。

        Args:
            scenario: 実行対象のシナリオ

        Returns:
            完了済みの RunReport
        """
        from ..driver.cache import CachedActionResolver
        from ..driver.playwright_driver import PlaywrightDriver
        from ..driver.session import BrowserSession

        resolver = CachedActionResolver(
            inner=self._resolver,
            cache_path=self._config.action_cache,
            seed=scenario.actions,
        )
        logger.info("登録済みアクション: %d 件", len(resolver))
        session = BrowserSession(
            headed=self._config.headed,
            viewport_width=self._config.viewport_width,
            viewport_height=self._config.viewport_height,
        )
        async with session:
            driver = PlaywrightDriver(session.page, resolver=resolver)
            return await self.run(scenario, driver)

    # -------------------------------------------------------------------
    # レポートの完了と保存
    # -------------------------------------------------------------------

    @asynccontextmanager
    async def _report_scope(self, report: RunReport) -> AsyncIterator[RunReport]:
        """終了経路に関わらず、レポートを一度だけ完了させて保存する。"""
        try:
            yield report
        except StepAssertionError as exc:
            self._finish(report, "failed", f"検証に失敗しました: {_describe_error(exc)}")
            raise
        except BaseException as exc:
            self._finish(
                report, "error",
                f"テスト実行中にエラーが発生しました: {_describe_error(exc)}",
            )
            raise
        else:
            self._finish(
                report, "success", f"全 {len(report.steps)} ステップが成功しました",
            )

    def _finish(self, report: RunReport, status: str, summary: str) -> None:
        """レポートを完了させ、保存・表示する。

        保存に失敗してもテスト結果には影響させない（ログに記録する）。
        """
        report.complete(status, summary)

        try:
            self.last_report_path = self._reporter.save_report(
                report, self._config.report_dir,
            )
        except OSError:
            logger.exception("レポートの保存に失敗しました: %s", self._config.report_dir)

        if self._config.print_digest:
            self._reporter.print_digest(report)

    # -------------------------------------------------------------------
    # ステップ実行
    # -------------------------------------------------------------------

    async def _execute_step(
        self,
        report: RunReport,
        step: AnyStep,
        driver: AutomationDriver,
        state: _RunState,
    ) -> None:
        """単一ステップを実行し、結果を記録する。

        例外は記録後にそのまま再送出する。
        """
        handle = report.add_step(step.describe())
        logger.info("ステップ開始 [%d]: %s", handle.index, step.describe())

        try:
            details = await self._dispatch_step(step, driver, state)
        except StepAssertionError as exc:
            report.complete_step(handle, "failed", error=_describe_error(exc))
            logger.error("ステップ '%s' (index=%d) で検証失敗: %s", step.describe(), handle.index, exc)
            raise
        except BaseException as exc:
            report.complete_step(handle, "error", error=_describe_error(exc))
            logger.error("ステップ '%s' (index=%d) でエラー: %s", step.describe(), handle.index, exc)
            raise

        report.complete_step(handle, "success", details=details)

    async def _dispatch_step(
        self,
        step: AnyStep,
        driver: AutomationDriver,
        state: _RunState,
    ) -> Optional[str]:
        """ステップ種別に応じた処理を実行し、レポートに残す補足情報を返す。"""
        if isinstance(step, GotoStep):
            await driver.navigate(step.url, wait_until=step.waitUntil, timeout=step.timeout)
            return f"Navigated to {step.url}"

        if isinstance(step, ObserveStep):
            descriptor = await driver.resolve_and_preview(step.instruction)
            state.preview = descriptor
            return descriptor.model_dump_json()

        if isinstance(step, ActStep):
            descriptor = step.descriptor or state.preview
            if descriptor is None:
                raise ActionExecutionError(
                    "実行するアクションがありません。先に observe ステップを実行してください"
                )
            await driver.perform_action(descriptor)
            return f"{descriptor.method} {descriptor.selector}"

        if isinstance(step, WaitReadyStep):
            timeout = step.timeout or self._config.ready_timeout
            await self._probe.await_ready(driver.page, timeout)
            return f"Readiness budget {timeout}ms"

        if isinstance(step, WaitForStep):
            await driver.locate_and_wait(
                step.selector, state=step.state, timeout=step.timeout, frame=step.frame,
            )
            return f"{step.selector} is {step.state}"

        if isinstance(step, FillStep):
            await driver.fill_field(
                step.selector, step.value, timeout=step.timeout, frame=step.frame,
            )
            return f"Filled {step.selector}"

        if isinstance(step, WaitForNetworkIdleStep):
            await wait_for_network_settle(driver.page, timeout=step.timeout)
            return "Network idle"

        if isinstance(step, ExpectUrlStep):
            current = driver.page.url
            if step.url not in current:
                raise StepAssertionError(
                    f"URL が一致しません: 期待値 '{step.url}' を含む URL、実際 '{current}'"
                )
            return f"URL is {current}"

        if isinstance(step, ExpectVisibleStep):
            from playwright.async_api import TimeoutError as PlaywrightTimeoutError

            try:
                await driver.locate_and_wait(
                    step.selector, state="visible", timeout=step.timeout, frame=step.frame,
                )
            except PlaywrightTimeoutError as exc:
                raise StepAssertionError(
                    f"要素が {step.timeout}ms 以内に表示されませんでした: {step.selector}"
                ) from exc
            return f"{step.selector} is visible"

        raise ValueError(f"未対応のステップです: {type(step).__name__}")
