"""
ブラウザ操作モジュール

Runner が利用するブラウザ操作インターフェースと、その Playwright 実装を提供する。

- AutomationDriver / ActionResolver: 外部コラボレータの Protocol 定義
- ActionDescriptor: 解決済みの再実行可能なアクション
- PlaywrightDriver: Playwright による AutomationDriver 実装
- CachedActionResolver: 解決済みアクションのキャッシュ
- BrowserSession: ブラウザの起動・終了
"""

from .cache import CachedActionResolver
from .playwright_driver import PlaywrightDriver
from .protocol import ActionDescriptor, ActionResolver, AutomationDriver
from .session import BrowserSession, SessionState

__all__ = [
    "ActionDescriptor",
    "ActionResolver",
    "AutomationDriver",
    "BrowserSession",
    "CachedActionResolver",
    "PlaywrightDriver",
    "SessionState",
]
