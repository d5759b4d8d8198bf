"""
CachedActionResolver — 解決済みアクションのキャッシュ

同じ自然言語指示に対して毎回推論を行わないよう、解決結果を指示文字列をキーに
保持する。キャッシュファイルを指定した場合は JSON として永続化し、
次回以降の実行では推論なしで同じアクションを再実行できる。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..errors import ActionResolutionError
from .protocol import ActionDescriptor, ActionResolver

logger = logging.getLogger(__name__)


class CachedActionResolver:
    """キャッシュ付きのアクション解決。

    キャッシュにない指示は inner に委譲し、先頭の候補を保存する。
    inner が未指定でキャッシュにもない場合は ActionResolutionError を送出する。
    """

    def __init__(
        self,
        inner: Optional[ActionResolver] = None,
        cache_path: Optional[Path] = None,
        seed: Optional[dict[str, ActionDescriptor]] = None,
    ) -> None:
        """CachedActionResolver を初期化する。

        Args:
            inner: キャッシュミス時に委譲するリゾルバ
            cache_path: キャッシュファイルのパス（None で永続化しない）
            seed: 事前に登録するアクション（シナリオの actions 定義）
        """
        self._inner = inner
        self._cache_path = Path(cache_path) if cache_path is not None else None
        self._entries: dict[str, ActionDescriptor] = {}

        if self._cache_path is not None and self._cache_path.exists():
            self._entries.update(self._load(self._cache_path))
        if seed:
            self._entries.update(seed)

    def __len__(self) -> int:
        return len(self._entries)

    async def observe(
        self, page: Any, instruction: str
    ) -> list[ActionDescriptor]:
        """指示に対応するアクションを返す。キャッシュを優先する。

        Raises:
            ActionResolutionError: キャッシュミスかつ委譲先がない、
                または委譲先が候補を返さなかった場合
        """
        cached = self._entries.get(instruction)
        if cached is not None:
            logger.info("キャッシュ済みアクションを使用します: %s", instruction)
            return [cached]

        if self._inner is None:
            raise ActionResolutionError(instruction, "キャッシュに存在しません")

        logger.info("アクションを解決します: %s", instruction)
        candidates = await self._inner.observe(page, instruction)
        if not candidates:
            raise ActionResolutionError(instruction, "候補が見つかりません")

        self._entries[instruction] = candidates[0]
        self._save()
        return candidates

    # -------------------------------------------------------------------
    # 永続化
    # -------------------------------------------------------------------

    def _load(self, path: Path) -> dict[str, ActionDescriptor]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            entries = {
                key: ActionDescriptor.model_validate(value)
                for key, value in raw.items()
            }
        except (OSError, ValueError, AttributeError, ValidationError) as exc:
            logger.warning("アクションキャッシュを読み込めません（無視します）: %s: %s", path, exc)
            return {}

        logger.info("アクションキャッシュを読み込みました: %s（%d 件）", path, len(entries))
        return entries

    def _save(self) -> None:
        if self._cache_path is None:
            return

        self._cache_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            key: descriptor.model_dump(mode="json")
            for key, descriptor in self._entries.items()
        }
        with open(self._cache_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        logger.debug("アクションキャッシュを保存しました: %s", self._cache_path)
