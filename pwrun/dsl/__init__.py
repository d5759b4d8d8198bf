"""
シナリオ DSL モジュール

シナリオ YAML のスキーマ定義とパーサーを提供する。
"""

from .parser import DslParser, DslValidationError
from .schema import STEP_MODELS, Scenario, parse_step

__all__ = [
    "DslParser",
    "DslValidationError",
    "STEP_MODELS",
    "Scenario",
    "parse_step",
]
