"""
待機戦略 — ページ準備完了の判定

ロードイベントだけでは準備完了を判定できないページ（ロングポーリング、
ストリーミング等）に対して、段階的なフォールバックで「操作可能」とみなす
タイミングを決める。

主な機能:
  - Deadline: 単一の開始時刻から残り時間を計算する待機予算
  - ReadinessProbe: 段階的待機（domcontentloaded → networkidle → readyState → 描画待ち）
  - wait_for_page_ready: ReadinessProbe のデフォルト設定での呼び出し
  - wait_for_network_settle: ネットワーク安定待機（タイムアウト時は例外）

ReadinessProbe は例外を送出しない。待機が不十分だった場合は、
後続の操作ステップ側でエラーとして表面化する。
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

# document.readyState が complete / interactive になったかを判定する述語
_READY_STATE_PREDICATE = (
    "() => document.readyState === 'complete'"
    " || document.readyState === 'interactive'"
)


# ---------------------------------------------------------------------------
# 待機予算
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Deadline:
    """待機予算。全ステージで共有し、ステージごとにリセットしない。

    Attributes:
        budget_ms: 予算全体（ミリ秒）
        started_at: 開始時刻（clock の戻り値、秒）
        clock: 単調増加クロック（秒を返す関数）
    """

    budget_ms: int
    started_at: float
    clock: Callable[[], float] = time.perf_counter

    @classmethod
    def start_now(
        cls, budget_ms: int, clock: Callable[[], float] = time.perf_counter
    ) -> Deadline:
        return cls(budget_ms=budget_ms, started_at=clock(), clock=clock)

    def elapsed_ms(self) -> int:
        return int((self.clock() - self.started_at) * 1000)

    def remaining_ms(self) -> int:
        # 切り捨てにより残り時間を過大に見積もらない
        remaining = self.budget_ms - (self.clock() - self.started_at) * 1000
        return max(0, math.floor(remaining))

    @property
    def expired(self) -> bool:
        return self.remaining_ms() <= 0


# ---------------------------------------------------------------------------
# 段階的準備完了待機
# ---------------------------------------------------------------------------

class ReadinessProbe:
    """ページが操作可能になるまで段階的に待機する。

    待機の流れ（全ステージで1つの Deadline を共有）:
      1. domcontentloaded を最大 dom_timeout 待機
      2. 1 が成功した場合、networkidle を最大 network_timeout 待機
      3. 1 または 2 がタイムアウトした場合、document.readyState を
         max(min_fallback, 残り時間) / 2 だけポーリング
      4. 結果に関わらず min(settle_delay, 残り時間) だけ描画待ち（残り 0 ならスキップ）

    合計待機時間は max_timeout + settle_delay を超えない。
    呼び出し間で状態は保持しない。
    """

    def __init__(
        self,
        dom_timeout: int = 30_000,
        network_timeout: int = 20_000,
        min_fallback: int = 10_000,
        settle_delay: int = 5_000,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """ReadinessProbe を初期化する。

        Args:
            dom_timeout: domcontentloaded 待機の上限（ミリ秒）
            network_timeout: networkidle 待機の上限（ミリ秒）
            min_fallback: readyState ポーリング時間の算出に使う下限値（ミリ秒）
            settle_delay: 描画待ちの上限（ミリ秒）
            clock: 経過時間の計測に使う単調増加クロック
        """
        self._dom_timeout = dom_timeout
        self._network_timeout = network_timeout
        self._min_fallback = min_fallback
        self._settle_delay = settle_delay
        self._clock = clock

    async def await_ready(self, page: Page, max_timeout: int = 100_000) -> None:
        """ページが操作可能になるまで待機する。例外は送出しない。

        Args:
            page: Playwright の Page オブジェクト
            max_timeout: 待機予算全体（ミリ秒、デフォルト: 100000）
        """
        deadline = Deadline.start_now(max_timeout, self._clock)
        logger.info("ページ準備待機を開始します（上限 %dms）", max_timeout)

        loaded = await self._wait_for_load_signal(
            page, "domcontentloaded", self._dom_timeout, deadline,
        )
        if loaded:
            loaded = await self._wait_for_load_signal(
                page, "networkidle", self._network_timeout, deadline,
            )

        if not loaded:
            await self._poll_ready_state(page, deadline)

        await self._settle(page, deadline)
        logger.info("ページ準備待機が完了しました（%dms 経過）", deadline.elapsed_ms())

    # -------------------------------------------------------------------
    # 各ステージ
    # -------------------------------------------------------------------

    async def _wait_for_load_signal(
        self, page: Page, state: str, stage_timeout: int, deadline: Deadline
    ) -> bool:
        """ロードイベントを待機する。成功したら True を返す。"""
        # Playwright は timeout=0 を無制限とみなすため、残り 0 なら待機しない
        timeout = min(stage_timeout, deadline.remaining_ms())
        if timeout <= 0:
            logger.warning("待機予算を使い切ったため %s 待機をスキップします", state)
            return False

        logger.info("%s を待機します（最大 %dms）", state, timeout)
        try:
            await page.wait_for_load_state(state, timeout=timeout)
        except Exception as exc:
            logger.warning("%s 待機がタイムアウトしました: %s", state, exc)
            return False

        logger.info("%s を検出しました（%dms 経過）", state, deadline.elapsed_ms())
        return True

    async def _poll_ready_state(self, page: Page, deadline: Deadline) -> None:
        """document.readyState をポーリングする。失敗は握りつぶす。"""
        timeout = max(self._min_fallback, deadline.remaining_ms()) // 2
        logger.info("フォールバック: document.readyState を確認します（最大 %dms）", timeout)
        try:
            await page.wait_for_function(_READY_STATE_PREDICATE, timeout=timeout)
            logger.info("readyState が complete / interactive になりました")
        except Exception as exc:
            logger.warning("readyState の確認に失敗しました。処理を続行します: %s", exc)

    async def _settle(self, page: Page, deadline: Deadline) -> None:
        """非同期描画の完了を見込んで待機する。"""
        if deadline.expired:
            logger.info("待機予算を使い切ったため描画待ちをスキップします")
            return

        delay = min(self._settle_delay, deadline.remaining_ms())
        logger.info("描画待ち: %dms", delay)
        try:
            await page.wait_for_timeout(delay)
        except Exception as exc:
            logger.warning("描画待ち中にエラー: %s", exc)


async def wait_for_page_ready(page: Page, max_timeout: int = 100_000) -> None:
    """デフォルト設定の ReadinessProbe でページ準備完了を待機する。

    Args:
        page: Playwright の Page オブジェクト
        max_timeout: 待機予算全体（ミリ秒、デフォルト: 100000）
    """
    await ReadinessProbe().await_ready(page, max_timeout)


# ---------------------------------------------------------------------------
# ネットワーク安定待機
# ---------------------------------------------------------------------------

async def wait_for_network_settle(
    page: Page, timeout: int = 5000
) -> None:
    """ネットワークが安定するまで待機する。

    Playwright の waitForLoadState("networkidle") を使用して、
    進行中のネットワークリクエストが全て完了するまで待機する。
    ReadinessProbe と異なり、タイムアウト時は例外を送出する。

    Args:
        page: Playwright の Page オブジェクト
        timeout: タイムアウト（ミリ秒、デフォルト: 5000）

    Raises:
        TimeoutError: タイムアウト時間内にネットワークが安定しなかった場合
    """
    try:
        await page.wait_for_load_state("networkidle", timeout=timeout)
        logger.debug("ネットワークが安定しました")
    except Exception as exc:
        raise TimeoutError(
            f"ネットワークが {timeout}ms 以内に安定しませんでした: {exc}"
        ) from exc
