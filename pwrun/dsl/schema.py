"""
DSL スキーマ定義 — シナリオ YAML の Pydantic v2 モデル

シナリオは title / url / actions / steps で構成される。
各ステップは { "stepType": params } 形式の辞書で記述し、
parse_step() でステップ種別ごとのモデルに変換する。

ステップ種別:
  - goto: URL への遷移
  - observe: 自然言語指示をアクションに解決（実行はしない）
  - act: 解決済みアクションの実行（推論なし）
  - waitReady: ページ準備完了の段階的待機
  - waitFor: 要素の状態待機
  - fill: 入力欄への入力
  - expectUrl / expectVisible: 検証
  - waitForNetworkIdle: ネットワーク安定待機
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ..driver.protocol import ActionDescriptor


# ---------------------------------------------------------------------------
# ナビゲーション・アクションステップ
# ---------------------------------------------------------------------------

class GotoStep(BaseModel):
    """指定 URL へ遷移するステップ。"""

    url: str = Field(..., description="遷移先 URL")
    waitUntil: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="domcontentloaded", description="遷移完了とみなすロード状態",
    )
    timeout: int = Field(default=60_000, ge=0, description="タイムアウト（ミリ秒）")
    name: Optional[str] = Field(default=None, description="ステップ名（任意）")

    def describe(self) -> str:
        return self.name or f"Navigate to {self.url}"


class ObserveStep(BaseModel):
    """自然言語指示をアクションに解決するステップ。

    解決結果は次の act ステップで使用される。
    """

    instruction: str = Field(..., min_length=1, description="自然言語の指示")
    name: Optional[str] = Field(default=None, description="ステップ名（任意）")

    def describe(self) -> str:
        return self.name or f"Observe: {self.instruction}"


class ActStep(BaseModel):
    """解決済みアクションを推論なしで実行するステップ。

    descriptor 未指定の場合は直前の observe の結果を実行する。
    """

    descriptor: Optional[ActionDescriptor] = Field(
        default=None, description="実行するアクション（省略時は直前の observe 結果）",
    )
    name: Optional[str] = Field(default=None, description="ステップ名（任意）")

    def describe(self) -> str:
        if self.name:
            return self.name
        if self.descriptor is not None:
            return f"Act: {self.descriptor.method} {self.descriptor.selector}"
        return "Act on observed action"


# ---------------------------------------------------------------------------
# 待機ステップ
# ---------------------------------------------------------------------------

class WaitReadyStep(BaseModel):
    """ページが操作可能になるまで段階的に待機するステップ。失敗しない。"""

    timeout: Optional[int] = Field(
        default=None, gt=0, description="待機予算（ミリ秒）。None で設定値を使用",
    )
    name: Optional[str] = Field(default=None, description="ステップ名（任意）")

    def describe(self) -> str:
        return self.name or "Wait for page readiness"


class WaitForStep(BaseModel):
    """要素が指定状態になるまで待機するステップ。"""

    selector: str = Field(..., description="待機対象のセレクタ")
    state: Literal["visible", "hidden", "attached", "detached"] = Field(
        default="visible", description="待機する状態",
    )
    timeout: int = Field(default=60_000, ge=0, description="タイムアウト（ミリ秒）")
    frame: Optional[str] = Field(default=None, description="iframe セレクタ（iframe 内操作時）")
    name: Optional[str] = Field(default=None, description="ステップ名（任意）")

    def describe(self) -> str:
        return self.name or f"Wait for {self.selector} ({self.state})"


class WaitForNetworkIdleStep(BaseModel):
    """ネットワークがアイドル状態になるまで待機するステップ。タイムアウト時は失敗する。"""

    timeout: int = Field(default=5000, gt=0, description="タイムアウト（ミリ秒）")
    name: Optional[str] = Field(default=None, description="ステップ名（任意）")

    def describe(self) -> str:
        return self.name or "Wait for network idle"


# ---------------------------------------------------------------------------
# 入力ステップ
# ---------------------------------------------------------------------------

class FillStep(BaseModel):
    """入力欄に値を入力するステップ。"""

    selector: str = Field(..., description="入力対象のセレクタ")
    value: str = Field(..., description="入力値")
    timeout: int = Field(default=60_000, ge=0, description="タイムアウト（ミリ秒）")
    frame: Optional[str] = Field(default=None, description="iframe セレクタ（iframe 内操作時）")
    secret: bool = Field(default=False, description="True の場合、レポートに値を残さない")
    name: Optional[str] = Field(default=None, description="ステップ名（任意）")

    def describe(self) -> str:
        if self.name:
            return self.name
        shown = "***" if self.secret else self.value
        return f"Fill {self.selector} with '{shown}'"


# ---------------------------------------------------------------------------
# 検証ステップ
# ---------------------------------------------------------------------------

class ExpectUrlStep(BaseModel):
    """現在の URL が指定文字列を含むことを検証するステップ。"""

    url: str = Field(..., description="期待する URL（部分一致）")
    name: Optional[str] = Field(default=None, description="ステップ名（任意）")

    def describe(self) -> str:
        return self.name or f"Expect URL contains {self.url}"


class ExpectVisibleStep(BaseModel):
    """要素が可視状態であることを検証するステップ。"""

    selector: str = Field(..., description="検証対象のセレクタ")
    timeout: int = Field(default=5000, ge=0, description="タイムアウト（ミリ秒）")
    frame: Optional[str] = Field(default=None, description="iframe セレクタ（iframe 内操作時）")
    name: Optional[str] = Field(default=None, description="ステップ名（任意）")

    def describe(self) -> str:
        return self.name or f"Expect {self.selector} visible"


AnyStep = Union[
    GotoStep,
    ObserveStep,
    ActStep,
    WaitReadyStep,
    WaitForStep,
    WaitForNetworkIdleStep,
    FillStep,
    ExpectUrlStep,
    ExpectVisibleStep,
]

STEP_MODELS: dict[str, type[BaseModel]] = {
    "goto": GotoStep,
    "observe": ObserveStep,
    "act": ActStep,
    "waitReady": WaitReadyStep,
    "waitFor": WaitForStep,
    "waitForNetworkIdle": WaitForNetworkIdleStep,
    "fill": FillStep,
    "expectUrl": ExpectUrlStep,
    "expectVisible": ExpectVisibleStep,
}

# 文字列で省略記述した場合に値を割り当てるフィールド
_SHORTHAND_FIELDS: dict[str, str] = {
    "goto": "url",
    "observe": "instruction",
    "expectUrl": "url",
}


def parse_step(step: dict) -> AnyStep:
    """{ "stepType": params } 形式のステップ辞書をステップモデルに変換する。

    goto / observe / expectUrl は文字列での省略記述を受け付ける。
    例: {"goto": "https://example.com"}

    Args:
        step: ステップ辞書

    Returns:
        ステップ種別に対応するモデル

    Raises:
        ValueError: 空の辞書、複数キー、未知のステップ種別、パラメータ不正の場合
    """
    if not isinstance(step, dict) or len(step) != 1:
        raise ValueError(f"ステップは1つのキーを持つ辞書で記述してください: {step!r}")

    step_type, params = next(iter(step.items()))
    model = STEP_MODELS.get(step_type)
    if model is None:
        raise ValueError(
            f"未知のステップ種別です: {step_type}"
            f"（使用可能: {', '.join(STEP_MODELS)}）"
        )

    if params is None:
        params = {}
    elif isinstance(params, str) and step_type in _SHORTHAND_FIELDS:
        params = {_SHORTHAND_FIELDS[step_type]: params}
    elif not isinstance(params, dict):
        raise ValueError(f"ステップ '{step_type}' のパラメータが不正です: {params!r}")

    return model(**params)


# ---------------------------------------------------------------------------
# Scenario 定義
# ---------------------------------------------------------------------------

class Scenario(BaseModel):
    """シナリオ YAML のルートモデル。1つのテストシナリオを表現する。"""

    title: str = Field(..., min_length=1, description="テスト名")
    url: Optional[str] = Field(default=None, description="対象 URL（レポートに記録）")
    actions: dict[str, ActionDescriptor] = Field(
        default_factory=dict,
        description="解決済みアクション（指示文字列 → ActionDescriptor）",
    )
    steps: list[dict] = Field(
        ..., min_length=1, description="ステップ配列（{ stepType: params } 形式）",
    )

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, v: list[dict]) -> list[dict]:
        """各ステップがステップモデルに変換できることを検証する。"""
        for index, step in enumerate(v):
            try:
                parse_step(step)
            except ValueError as exc:
                raise ValueError(f"steps[{index}]: {exc}") from exc
        return v

    def parsed_steps(self) -> list[AnyStep]:
        """ステップ辞書をモデルに変換したリストを返す。"""
        return [parse_step(step) for step in self.steps]
