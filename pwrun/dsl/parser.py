"""
DSL パーサー — シナリオ YAML の読み込み・検証

ruamel.yaml で YAML ファイルを読み込み、Pydantic の Scenario モデルに変換する。
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .schema import Scenario


# ---------------------------------------------------------------------------
# バリデーションエラー表現
# ---------------------------------------------------------------------------

@dataclass
class DslValidationError:
    """シナリオ YAML のスキーマ検証で検出されたエラー。

    Attributes:
        message: エラーメッセージ
        location: エラー箇所（フィールドパス等）
        line: YAML ファイル内の行番号（取得可能な場合）
    """

    message: str
    location: str = ""
    line: Optional[int] = None


# ---------------------------------------------------------------------------
# DslParser 本体
# ---------------------------------------------------------------------------

class DslParser:
    """シナリオ YAML の読み込み・検証を担当するパーサー。"""

    def __init__(self) -> None:
        """ruamel.yaml インスタンスを初期化する。"""
        self._yaml = YAML(typ="safe")

    # ----- load -----

    def load(self, path: Path) -> Scenario:
        """YAML ファイルを読み込み、Scenario モデルに変換する。

        Args:
            path: 読み込む YAML ファイルのパス

        Returns:
            パース済みの Scenario オブジェクト

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            ValueError: YAML 構文エラーまたはスキーマ検証エラーの場合
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"YAML ファイルが見つかりません: {path}")

        try:
            data = self._read(path)
        except YAMLError as e:
            line = _error_line(e)
            line_info = f" (行 {line})" if line is not None else ""
            raise ValueError(f"YAML 構文エラー{line_info}: {e}") from e

        if data is None:
            raise ValueError("YAML ファイルが空です")
        if not isinstance(data, dict):
            raise ValueError("YAML のルートはマッピングで記述してください")

        try:
            return Scenario(**data)
        except PydanticValidationError as e:
            raise ValueError(f"スキーマ検証エラー: {e}") from e

    # ----- validate -----

    def validate(self, path: Path) -> list[DslValidationError]:
        """YAML ファイルのスキーマ検証を行い、違反箇所を報告する。

        エラーがない場合は空リストを返す。

        Args:
            path: 検証する YAML ファイルのパス

        Returns:
            検出されたバリデーションエラーのリスト
        """
        path = Path(path)

        if not path.exists():
            return [DslValidationError(
                message=f"YAML ファイルが見つかりません: {path}",
                location="file",
            )]

        try:
            data = self._read(path)
        except YAMLError as e:
            return [DslValidationError(
                message=f"YAML 構文エラー: {e}",
                location="yaml",
                line=_error_line(e),
            )]

        if data is None:
            return [DslValidationError(message="YAML ファイルが空です", location="file")]
        if not isinstance(data, dict):
            return [DslValidationError(
                message="YAML のルートはマッピングで記述してください",
                location="root",
            )]

        errors: list[DslValidationError] = []
        try:
            Scenario(**data)
        except PydanticValidationError as e:
            for err in e.errors():
                loc_parts = [str(part) for part in err.get("loc", [])]
                location = " -> ".join(loc_parts) if loc_parts else "unknown"
                errors.append(DslValidationError(
                    message=err.get("msg", "不明なエラー"),
                    location=location,
                ))

        return errors

    # ----- ユーティリティ -----

    def _read(self, path: Path) -> object:
        with open(path, "r", encoding="utf-8") as f:
            return self._yaml.load(f)


def _error_line(error: YAMLError) -> Optional[int]:
    """YAMLError から 1 始まりの行番号を取り出す。"""
    mark = getattr(error, "problem_mark", None)
    if mark is None:
        return None
    return mark.line + 1
