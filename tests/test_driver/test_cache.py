"""
CachedActionResolver のユニットテスト

キャッシュファイルは tmp_path に作成する。
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from pwrun.driver.cache import CachedActionResolver
from pwrun.driver.protocol import ActionDescriptor
from pwrun.errors import ActionResolutionError


_LINK = ActionDescriptor(
    description="iframe link",
    method="scrollIntoView",
    selector="/html/body/div[1]/a",
)


def _inner(*candidates: ActionDescriptor) -> MagicMock:
    inner = MagicMock()
    inner.observe = AsyncMock(return_value=list(candidates))
    return inner


class TestCachedActionResolver:
    """キャッシュの参照・委譲・永続化テスト。"""

    async def test_seed_hit_skips_inner(self) -> None:
        """事前登録済みの指示は委譲先を呼ばないこと。"""
        inner = _inner()
        resolver = CachedActionResolver(inner=inner, seed={"Scroll to link": _LINK})

        result = await resolver.observe(MagicMock(), "Scroll to link")

        assert result == [_LINK]
        inner.observe.assert_not_called()

    async def test_miss_without_inner_raises(self) -> None:
        resolver = CachedActionResolver()

        with pytest.raises(ActionResolutionError, match="キャッシュに存在しません") as exc_info:
            await resolver.observe(MagicMock(), "Unknown")

        assert exc_info.value.instruction == "Unknown"

    async def test_miss_delegates_and_caches(self) -> None:
        """キャッシュミス時は委譲し、先頭の候補を保存すること。"""
        other = ActionDescriptor(method="click", selector="#other")
        inner = _inner(_LINK, other)
        resolver = CachedActionResolver(inner=inner)
        page = MagicMock()

        first = await resolver.observe(page, "Scroll to link")
        second = await resolver.observe(page, "Scroll to link")

        assert first == [_LINK, other]
        assert second == [_LINK]
        inner.observe.assert_awaited_once_with(page, "Scroll to link")
        assert "Scroll to link" in resolver._entries
        assert len(resolver) == 1

    async def test_empty_candidates_raise(self) -> None:
        resolver = CachedActionResolver(inner=_inner())

        with pytest.raises(ActionResolutionError, match="候補が見つかりません"):
            await resolver.observe(MagicMock(), "x")

        assert "x" not in resolver._entries

    async def test_persisted_to_file(self, tmp_path: Path) -> None:
        """解決結果がキャッシュファイルに保存され、次回読み込まれること。"""
        cache_path = tmp_path / "cache" / "actions.json"
        resolver = CachedActionResolver(inner=_inner(_LINK), cache_path=cache_path)

        await resolver.observe(MagicMock(), "Scroll to link")

        data = json.loads(cache_path.read_text(encoding="utf-8"))
        assert data["Scroll to link"]["selector"] == "/html/body/div[1]/a"

        reloaded = CachedActionResolver(cache_path=cache_path)
        assert await reloaded.observe(MagicMock(), "Scroll to link") == [_LINK]

    def test_seed_overrides_file(self, tmp_path: Path) -> None:
        cache_path = tmp_path / "actions.json"
        cache_path.write_text(
            json.dumps({"Scroll to link": {"method": "click", "selector": "#old"}}),
            encoding="utf-8",
        )

        resolver = CachedActionResolver(cache_path=cache_path, seed={"Scroll to link": _LINK})

        assert resolver._entries["Scroll to link"] == _LINK

    @pytest.mark.parametrize("content", ["{broken", "[]", '{"x": {"method": "click"}}'])
    def test_corrupt_file_ignored(self, tmp_path: Path, content: str) -> None:
        """壊れたキャッシュファイルは無視されること。"""
        cache_path = tmp_path / "actions.json"
        cache_path.write_text(content, encoding="utf-8")

        resolver = CachedActionResolver(cache_path=cache_path)

        assert len(resolver) == 0
