"""
CLI テスト — typer.testing.CliRunner を使用した CLI コマンドのテスト

実際のブラウザ起動は行わず、Runner.run_with_browser をモックで代替する。
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from pwrun.cli import app
from pwrun.core.report import RunReport
from pwrun.core.reporting import Reporter
from pwrun.core.runner import Runner
from pwrun.errors import StepAssertionError

runner = CliRunner()


INVALID_YAML = """\
title: ""
steps: "not a list"
"""

MALFORMED_YAML = """\
title: テスト
  invalid_indent: true
"""


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """PWRUN_* 環境変数の影響を受けないようにする。"""
    for key in (
        "PWRUN_HEADED", "PWRUN_REPORT_DIR", "PWRUN_READY_TIMEOUT",
        "PWRUN_ACTION_CACHE", "PWRUN_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)


# ===========================================================================
# 1. run コマンド
# ===========================================================================

class TestRunCommand:
    """run コマンドのテスト。"""

    def test_run_success(self, sample_yaml_file: Path, tmp_path: Path, clean_env) -> None:
        """成功時は終了コード 0 で、保存したレポートのパスが表示される。"""
        report_path = tmp_path / "test-report-x.json"
        captured = {}

        async def fake_run(self: Runner, scenario):
            captured["config"] = self._config
            captured["title"] = scenario.title
            self.last_report_path = report_path
            return RunReport.create(scenario.title)

        with patch.object(Runner, "run_with_browser", autospec=True, side_effect=fake_run):
            result = runner.invoke(app, [
                "run", str(sample_yaml_file),
                "--headless", "--report-dir", str(tmp_path), "--ready-timeout", "5000",
            ])

        assert result.exit_code == 0, result.output
        assert f"レポート: {report_path}" in result.output
        assert captured["title"] == "iframe practice"
        assert captured["config"].headed is False
        assert captured["config"].report_dir == tmp_path
        assert captured["config"].ready_timeout == 5000

    def test_env_used_when_no_option(
        self, sample_yaml_file: Path, tmp_path: Path, clean_env, monkeypatch,
    ) -> None:
        """CLI 引数がない項目は環境変数の値を使用する。"""
        monkeypatch.setenv("PWRUN_HEADED", "false")
        monkeypatch.setenv("PWRUN_REPORT_DIR", str(tmp_path))
        captured = {}

        async def fake_run(self: Runner, scenario):
            captured["config"] = self._config

        with patch.object(Runner, "run_with_browser", autospec=True, side_effect=fake_run):
            result = runner.invoke(app, ["run", str(sample_yaml_file)])

        assert result.exit_code == 0, result.output
        assert captured["config"].headed is False
        assert captured["config"].report_dir == tmp_path

    def test_run_failure_exit_code(
        self, sample_yaml_file: Path, tmp_path: Path, clean_env,
    ) -> None:
        """テスト失敗時は終了コード 1 で、失敗理由とレポートのパスが表示される。"""
        report_path = tmp_path / "test-report-y.json"

        async def fake_run(self: Runner, scenario):
            self.last_report_path = report_path
            raise StepAssertionError("URL が一致しません")

        with patch.object(Runner, "run_with_browser", autospec=True, side_effect=fake_run):
            result = runner.invoke(app, ["run", str(sample_yaml_file)])

        assert result.exit_code == 1
        assert "テスト失敗: URL が一致しません" in result.output
        assert str(report_path) in result.output

    def test_run_missing_file(self, tmp_path: Path, clean_env) -> None:
        with patch.object(Runner, "run_with_browser", autospec=True) as mock_run:
            result = runner.invoke(app, ["run", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "エラー" in result.output
        mock_run.assert_not_called()

    def test_run_invalid_yaml(self, tmp_path: Path, clean_env) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(INVALID_YAML, encoding="utf-8")

        result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 1
        assert "スキーマ検証エラー" in result.output


# ===========================================================================
# 2. validate コマンド
# ===========================================================================

class TestValidateCommand:
    """validate コマンドのテスト。"""

    def test_validate_ok(self, sample_yaml_file: Path) -> None:
        result = runner.invoke(app, ["validate", str(sample_yaml_file)])

        assert result.exit_code == 0
        assert "スキーマ検証 OK" in result.output

    def test_validate_invalid(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(INVALID_YAML, encoding="utf-8")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "✗ title" in result.output
        assert "✗ steps" in result.output

    def test_validate_malformed(self, tmp_path: Path) -> None:
        path = tmp_path / "malformed.yaml"
        path.write_text(MALFORMED_YAML, encoding="utf-8")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "YAML 構文エラー" in result.output
        assert "行" in result.output


# ===========================================================================
# 3. show コマンド
# ===========================================================================

class TestShowCommand:
    """show コマンドのテスト。"""

    def test_show_report(self, tmp_path: Path) -> None:
        """要約とステップ一覧が表示される。"""
        report = RunReport.create("Checkout")
        report.complete_step(report.add_step("Navigate"), "success")
        report.complete_step(report.add_step("Click buy"), "error", error="timeout")
        report.add_step("Verify receipt")
        report.complete("error", "aborted")
        path = Reporter().save_report(report, tmp_path)

        result = runner.invoke(app, ["show", str(path)])

        assert result.exit_code == 0
        assert "Test: Checkout" in result.output
        assert "Status: error" in result.output
        assert "[1] [error] Click buy" in result.output
        assert "timeout" in result.output
        assert "[2] [running] Verify receipt (-)" in result.output

    def test_show_missing(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["show", str(tmp_path / "missing.json")])

        assert result.exit_code == 1
        assert "レポートを読み込めません" in result.output

    def test_show_broken_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        result = runner.invoke(app, ["show", str(path)])

        assert result.exit_code == 1
