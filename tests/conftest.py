"""
テスト共通フィクスチャ

全テストモジュールで共有するフィクスチャとヘルパーを提供する。
Playwright の Page はモック（unittest.mock）を使用し、実際のブラウザは起動しない。
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest


# ---------------------------------------------------------------------------
# 擬似クロック
# ---------------------------------------------------------------------------

class FakeClock:
    """Deadline / ReadinessProbe に注入する擬似クロック（秒を返す）。"""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0

    @property
    def elapsed_ms(self) -> int:
        return round(self.now * 1000)


@pytest.fixture
def fake_clock() -> FakeClock:
    """時間を進めない擬似クロック。"""
    return FakeClock()


# ---------------------------------------------------------------------------
# モック Page / Driver
# ---------------------------------------------------------------------------

def make_mock_page(url: str = "https://example.com/") -> MagicMock:
    """待機プリミティブを持つモック Page を生成する。"""
    page = MagicMock()
    page.url = url
    page.goto = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.wait_for_function = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    return page


def make_mock_driver(page: MagicMock | None = None) -> MagicMock:
    """AutomationDriver のモックを生成する。"""
    driver = MagicMock()
    driver.page = page or make_mock_page()
    driver.navigate = AsyncMock()
    driver.resolve_and_preview = AsyncMock()
    driver.perform_action = AsyncMock()
    driver.locate_and_wait = AsyncMock()
    driver.fill_field = AsyncMock()
    return driver


@pytest.fixture
def mock_page() -> MagicMock:
    return make_mock_page()


@pytest.fixture
def mock_driver() -> MagicMock:
    return make_mock_driver()


# ---------------------------------------------------------------------------
# サンプルシナリオ
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_scenario_dict() -> dict:
    """サンプルのシナリオ辞書データ。"""
    return {
        "title": "iframe practice",
        "url": "https://selectorshub.com/xpath-practice-page/",
        "actions": {
            "Scroll to the iframe link": {
                "description": "iframe link",
                "method": "scrollIntoView",
                "selector": "/html/body/div[1]/a",
                "arguments": [],
            },
        },
        "steps": [
            {"goto": {"url": "https://selectorshub.com/xpath-practice-page/"}},
            {"observe": "Scroll to the iframe link"},
            {"act": {"name": "scroll-to-link"}},
            {"waitReady": {"timeout": 100000}},
            {"waitFor": {"selector": "//iframe[@id='pact']", "state": "visible"}},
            {"fill": {"selector": "#tea", "value": "Chamoment", "frame": "iframe#pact"}},
        ],
    }


@pytest.fixture
def sample_yaml_content() -> str:
    """サンプルのシナリオ YAML 文字列。"""
    return """\
title: iframe practice
url: https://selectorshub.com/xpath-practice-page/
actions:
  "Scroll to the iframe link":
    description: iframe link
    method: scrollIntoView
    selector: /html/body/div[1]/a
    arguments: []
steps:
  - goto:
      url: https://selectorshub.com/xpath-practice-page/
      timeout: 60000
  - observe: "Scroll to the iframe link"
  - act: {}
  - waitReady:
      timeout: 100000
  - waitFor:
      selector: "//iframe[@id='pact']"
  - fill:
      selector: "#tea"
      value: Chamoment
      frame: iframe#pact
"""


@pytest.fixture
def sample_yaml_file(tmp_path: Path, sample_yaml_content: str) -> Path:
    """サンプルのシナリオ YAML ファイル。"""
    path = tmp_path / "scenario.yaml"
    path.write_text(sample_yaml_content, encoding="utf-8")
    return path
