"""
ブラウザ操作インターフェース — Runner が利用する外部コラボレータの抽象

Runner はブラウザ操作とアクション解決をこのモジュールの Protocol 経由でのみ利用する。
テスト時にはモックやスタブを注入できる。

- ActionDescriptor: 解決済みの再実行可能なアクション（対象要素、操作、引数）
- ActionResolver: 自然言語指示を ActionDescriptor に解決する
- AutomationDriver: ナビゲーション・要素操作・待機プリミティブ
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page


# ---------------------------------------------------------------------------
# アクション記述子
# ---------------------------------------------------------------------------

class ActionDescriptor(BaseModel):
    """自然言語指示から一度だけ解決された、再実行可能なアクション。

    例::

        {
            "description": "The quickstart link",
            "method": "click",
            "selector": "/html/body/div[1]/div[1]/a",
            "arguments": []
        }
    """

    description: str = Field(default="", description="対象要素の説明")
    method: str = Field(..., description="操作種別（click, fill, scrollIntoView 等）")
    selector: str = Field(..., description="対象要素のセレクタ（/ で始まる場合は XPath）")
    arguments: list[str] = Field(default_factory=list, description="操作の引数")


# ---------------------------------------------------------------------------
# アクション解決 Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class ActionResolver(Protocol):
    """自然言語指示を ActionDescriptor に解決するインターフェース。

    副作用を持たない（アクションは実行しない）。
    """

    async def observe(
        self, page: Any, instruction: str
    ) -> list[ActionDescriptor]:
        """指示に対応するアクション候補を返す。

        Args:
            page: 対象ページ
            instruction: 自然言語の指示

        Returns:
            アクション候補のリスト（先頭が最有力）
        """
        ...


# ---------------------------------------------------------------------------
# ブラウザ操作 Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class AutomationDriver(Protocol):
    """Runner が利用するブラウザ操作インターフェース。"""

    @property
    def page(self) -> Page:
        """待機プリミティブ（wait_for_load_state 等）を持つ Page を返す。"""
        ...

    async def navigate(
        self,
        url: str,
        wait_until: str = "domcontentloaded",
        timeout: int = 60_000,
    ) -> None:
        ...

    async def resolve_and_preview(self, instruction: str) -> ActionDescriptor:
        ...

    async def perform_action(self, descriptor: ActionDescriptor) -> None:
        ...

    async def locate_and_wait(
        self,
        selector: str,
        state: str = "visible",
        timeout: int = 60_000,
        frame: Optional[str] = None,
    ) -> Locator:
        ...

    async def fill_field(
        self,
        selector: str,
        value: str,
        timeout: int = 60_000,
        frame: Optional[str] = None,
    ) -> None:
        ...
