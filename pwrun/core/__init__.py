# コアモジュール
# 実行レポート、レポート保存、待機戦略、シナリオ実行エンジンを提供

from .report import RunReport, StepHandle, StepRecord
from .reporting import Reporter, report_filename
from .runner import Runner
from .waits import Deadline, ReadinessProbe, wait_for_network_settle, wait_for_page_ready

__all__ = [
    "Deadline",
    "ReadinessProbe",
    "Reporter",
    "RunReport",
    "Runner",
    "StepHandle",
    "StepRecord",
    "report_filename",
    "wait_for_network_settle",
    "wait_for_page_ready",
]
