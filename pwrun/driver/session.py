"""
Session — ブラウザセッション管理

Playwright ブラウザの起動・終了・状態管理を担当する。
1回の実行の間だけブラウザを保持し、実行間で使い回さない。

主な機能:
  - ブラウザの起動（headed/headless 切り替え、ビューポート設定）
  - Page の生成と管理
  - async with による確実なクリーンアップ
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# セッション状態
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """ブラウザセッションの状態。"""

    IDLE = "idle"
    LAUNCHING = "launching"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# BrowserSession 本体
# ---------------------------------------------------------------------------

class BrowserSession:
    """Playwright ブラウザセッションの管理クラス。

    使用例::

        async with BrowserSession(headed=False) as session:
            await session.page.goto("https://example.com")
    """

    def __init__(
        self,
        headed: bool = True,
        viewport_width: int = 1024,
        viewport_height: int = 768,
    ) -> None:
        """BrowserSession を初期化する。

        Args:
            headed: True でブラウザウィンドウを表示
            viewport_width: ビューポート幅
            viewport_height: ビューポート高さ
        """
        self._headed = headed
        self._viewport = {"width": viewport_width, "height": viewport_height}
        self._state: SessionState = SessionState.IDLE
        self._pw_instance: Optional[object] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def state(self) -> SessionState:
        """現在のセッション状態を返す。"""
        return self._state

    @property
    def is_active(self) -> bool:
        """セッションがアクティブかどうかを返す。"""
        return self._state == SessionState.ACTIVE

    @property
    def page(self) -> Page:
        """現在の Page オブジェクトを返す。

        Raises:
            RuntimeError: セッションがアクティブでない場合
        """
        if not self.is_active or self._page is None:
            raise RuntimeError(
                "アクティブなセッションがありません。"
                "先に launch() を呼んでください。"
            )
        return self._page

    async def __aenter__(self) -> BrowserSession:
        await self.launch()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def launch(self) -> None:
        """ブラウザを起動し、Page を生成する。

        Raises:
            RuntimeError: 既にアクティブなセッションがある場合
        """
        if self._state == SessionState.ACTIVE:
            raise RuntimeError(
                "既にアクティブなセッションがあります。"
                "先に close() を呼んでください。"
            )

        self._state = SessionState.LAUNCHING
        logger.info("ブラウザを起動しています... (headed=%s)", self._headed)

        try:
            from playwright.async_api import async_playwright

            pw = await async_playwright().start()
            self._pw_instance = pw

            self._browser = await pw.chromium.launch(
                headless=not self._headed,
            )
            self._context = await self._browser.new_context(viewport=self._viewport)
            self._page = await self._context.new_page()
            self._state = SessionState.ACTIVE
            logger.info("ブラウザを起動しました")

        except Exception:
            self._state = SessionState.IDLE
            logger.exception("ブラウザの起動に失敗しました")
            raise

    async def close(self) -> None:
        """ブラウザを終了し、リソースをクリーンアップする。"""
        if self._state in (SessionState.IDLE, SessionState.CLOSED, SessionState.CLOSING):
            return

        self._state = SessionState.CLOSING
        logger.info("ブラウザを終了しています...")

        try:
            if self._browser is not None:
                await self._browser.close()
            if self._pw_instance is not None and hasattr(self._pw_instance, "stop"):
                await self._pw_instance.stop()
        except Exception:
            logger.exception("ブラウザの終了中にエラーが発生しました")
        finally:
            self._browser = None
            self._context = None
            self._page = None
            self._pw_instance = None
            self._state = SessionState.CLOSED
            logger.info("ブラウザを終了しました")
