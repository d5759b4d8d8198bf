"""
PlaywrightDriver — AutomationDriver の Playwright 実装

Playwright の Page をラップし、Runner から利用されるナビゲーション・要素操作・
アクション実行を提供する。アクション解決は ActionResolver に委譲する。

iframe 内の要素は frame 引数（iframe のセレクタ）を指定して操作する。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ..errors import ActionExecutionError, ActionResolutionError
from .protocol import ActionDescriptor, ActionResolver

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

logger = logging.getLogger(__name__)


def to_locator_selector(selector: str) -> str:
    """ActionDescriptor のセレクタを Playwright のセレクタ文字列に変換する。

    "/" または "(" で始まるセレクタは XPath とみなして "xpath=" を付与する。
    """
    if selector.startswith("/") or selector.startswith("("):
        return f"xpath={selector}"
    return selector


class PlaywrightDriver:
    """Playwright の Page を使った AutomationDriver 実装。"""

    def __init__(
        self,
        page: Page,
        resolver: Optional[ActionResolver] = None,
        action_timeout: int = 30_000,
    ) -> None:
        """PlaywrightDriver を初期化する。

        Args:
            page: 操作対象の Page
            resolver: 自然言語指示の解決に使うリゾルバ
            action_timeout: perform_action の各操作のタイムアウト（ミリ秒）
        """
        self._page = page
        self._resolver = resolver
        self._action_timeout = action_timeout

    @property
    def page(self) -> Page:
        return self._page

    # -------------------------------------------------------------------
    # ナビゲーション
    # -------------------------------------------------------------------

    async def navigate(
        self,
        url: str,
        wait_until: str = "domcontentloaded",
        timeout: int = 60_000,
    ) -> None:
        """指定 URL に遷移する。タイムアウト・通信エラー時は Playwright の例外を送出する。"""
        logger.info("goto: %s (waitUntil=%s, timeout=%dms)", url, wait_until, timeout)
        await self._page.goto(url, wait_until=wait_until, timeout=timeout)

    # -------------------------------------------------------------------
    # アクション解決・実行
    # -------------------------------------------------------------------

    async def resolve_and_preview(self, instruction: str) -> ActionDescriptor:
        """自然言語指示を ActionDescriptor に解決する。アクションは実行しない。

        Raises:
            ActionResolutionError: リゾルバ未設定、または候補がない場合
        """
        if self._resolver is None:
            raise ActionResolutionError(instruction, "ActionResolver が設定されていません")

        candidates = await self._resolver.observe(self._page, instruction)
        if not candidates:
            raise ActionResolutionError(instruction, "候補が見つかりません")

        descriptor = candidates[0]
        logger.info(
            "アクションを解決しました: %s -> %s %s",
            instruction, descriptor.method, descriptor.selector,
        )
        return descriptor

    async def perform_action(self, descriptor: ActionDescriptor) -> None:
        """解決済みの ActionDescriptor を実行する。推論は行わない。

        Raises:
            ActionExecutionError: 未対応の操作種別、または引数不足の場合
        """
        locator = self._page.locator(to_locator_selector(descriptor.selector))
        method = descriptor.method
        args = descriptor.arguments
        timeout = self._action_timeout

        logger.info("act: %s %s %s", method, descriptor.selector, args)

        if method == "click":
            await locator.click(timeout=timeout)
        elif method == "dblclick":
            await locator.dblclick(timeout=timeout)
        elif method == "hover":
            await locator.hover(timeout=timeout)
        elif method in ("scrollIntoView", "scrollTo"):
            await locator.scroll_into_view_if_needed(timeout=timeout)
        elif method == "check":
            await locator.check(timeout=timeout)
        elif method == "uncheck":
            await locator.uncheck(timeout=timeout)
        elif method in ("fill", "type", "press", "selectOption"):
            if not args:
                raise ActionExecutionError(
                    f"操作 '{method}' には引数が必要です: {descriptor.selector}"
                )
            if method == "fill":
                await locator.fill(args[0], timeout=timeout)
            elif method == "type":
                await locator.press_sequentially(args[0], timeout=timeout)
            elif method == "press":
                await locator.press(args[0], timeout=timeout)
            else:
                await locator.select_option(args[0], timeout=timeout)
        else:
            raise ActionExecutionError(f"未対応の操作種別です: {method}")

    # -------------------------------------------------------------------
    # 要素操作
    # -------------------------------------------------------------------

    async def locate_and_wait(
        self,
        selector: str,
        state: str = "visible",
        timeout: int = 60_000,
        frame: Optional[str] = None,
    ) -> Locator:
        """要素が指定状態になるまで待機し、その Locator を返す。"""
        locator = self._locator(selector, frame)
        logger.info("waitFor: %s (state=%s, timeout=%dms)", selector, state, timeout)
        await locator.wait_for(state=state, timeout=timeout)
        return locator

    async def fill_field(
        self,
        selector: str,
        value: str,
        timeout: int = 60_000,
        frame: Optional[str] = None,
    ) -> None:
        """入力欄に値を入力する。"""
        logger.info("fill: %s", selector)
        await self._locator(selector, frame).fill(value, timeout=timeout)

    def _locator(self, selector: str, frame: Optional[str]) -> Locator:
        """frame 指定がある場合は iframe 内の Locator を返す。"""
        target = to_locator_selector(selector)
        if frame:
            return self._page.frame_locator(frame).locator(target)
        return self._page.locator(target)
