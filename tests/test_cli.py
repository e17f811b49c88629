"""Smoke tests for the CLI."""

import json
import re
from pathlib import Path

import pytest
from ambassador import __version__
from ambassador.cli import app
from typer.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for key in ("AMBASSADOR_STORE_DIR", "AMBASSADOR_TIMEZONE", "AMBASSADOR_RULE_SET", "AMBASSADOR_POLICY"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def plan_file(tmp_path: Path) -> Path:
    path = tmp_path / "plan.json"
    path.write_text(
        json.dumps(
            [
                {
                    "id": "knee",
                    "category": "정형",
                    "topics": [
                        {"kind": "pillar", "title": "무릎 통증의 원인"},
                        {"kind": "satellite", "title": "무릎 스트레칭"},
                    ],
                }
            ],
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )
    return path


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


class TestCLI:
    """Tests for the CLI entry point."""

    def test_main_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "check" in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestCheck:
    def test_clean_text_passes(self, runner: CliRunner, tmp_path: Path) -> None:
        source = _write(tmp_path, "ok.txt", "도움이 될 수 있습니다")

        result = runner.invoke(app, ["check", str(source)])

        assert result.exit_code == 0
        assert "Passed" in result.output

    def test_violation_exits_nonzero(self, runner: CliRunner, tmp_path: Path) -> None:
        source = _write(tmp_path, "bad.txt", "100% 완치")

        result = runner.invoke(app, ["check", str(source)])

        assert result.exit_code == 1
        assert "HIGH" in result.output

    def test_fix_prints_redacted_text(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["check", "-", "--fix"], input="이 치료는 완치 보장")

        assert result.exit_code == 1
        assert "보호된 표현" in result.output

    def test_finance_pack(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["check", "-", "--rule-set", "finance"], input="원금 보장")
        assert result.exit_code == 1

    def test_unknown_rule_set(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["check", "-", "-r", "astrology"], input="x")

        assert result.exit_code == 1
        assert "Unknown rule set" in result.output

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(app, ["check", str(tmp_path / "nope.txt")])

        assert result.exit_code == 1
        assert "File not found" in result.output


class TestPermissions:
    def test_pro_step_two(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["permissions", "--tier", "PRO", "--step", "2"])

        assert result.exit_code == 0
        assert "edit_title_partial" in result.output
        assert "granted" in result.output
        assert "PLAN" in result.output

    def test_step_out_of_range(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["permissions", "--step", "4"])
        assert result.exit_code != 0


class TestSlotFlow:
    def _create(self, runner: CliRunner, store: Path) -> str:
        result = runner.invoke(
            app,
            ["--store-dir", str(store), "slot", "create", "blog", "-t", "acme", "--tier", "PRO"],
        )
        assert result.exit_code == 0, result.output
        match = re.search(r"slot-[0-9a-f]{12}", result.output)
        assert match is not None
        return match.group(0)

    def test_status_without_slots(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--store-dir", str(tmp_path), "slot", "status", "-t", "acme"])

        assert result.exit_code == 0
        assert "No slots" in result.output

    def test_create_plan_publish(self, runner: CliRunner, tmp_path: Path, plan_file: Path) -> None:
        store = tmp_path / "store"
        slot_id = self._create(runner, store)
        base = ["--store-dir", str(store), "slot"]

        result = runner.invoke(app, [*base, "plan", slot_id, str(plan_file), "-t", "acme"])
        assert result.exit_code == 0, result.output
        assert "2 topic(s)" in result.output

        article = _write(tmp_path, "article.txt", "무릎 건강에 도움이 될 수 있습니다.")
        result = runner.invoke(app, [*base, "publish", slot_id, str(article), "-t", "acme"])
        assert result.exit_code == 0, result.output
        assert "Published day 1" in result.output
        assert "Next: day 2" in result.output

        result = runner.invoke(app, [*base, "publish", slot_id, str(article), "-t", "acme"])
        assert result.exit_code == 1
        assert "Already published today" in result.output

        result = runner.invoke(app, [*base, "status", "-t", "acme"])
        assert result.exit_code == 0
        assert "1/2" in result.output

    def test_publish_rejects_violation(
        self, runner: CliRunner, tmp_path: Path, plan_file: Path
    ) -> None:
        store = tmp_path / "store"
        slot_id = self._create(runner, store)
        base = ["--store-dir", str(store), "slot"]
        runner.invoke(app, [*base, "plan", slot_id, str(plan_file), "-t", "acme"])
        article = _write(tmp_path, "bad.txt", "부작용 없음")

        result = runner.invoke(app, [*base, "publish", slot_id, str(article), "-t", "acme"])
        assert result.exit_code == 1
        assert "Violations" in result.output

        result = runner.invoke(
            app,
            [*base, "publish", slot_id, str(article), "-t", "acme", "--policy", "auto_correct"],
        )
        assert result.exit_code == 0, result.output
        assert "redacted" in result.output

    def test_publish_feature_denied(
        self, runner: CliRunner, tmp_path: Path, plan_file: Path
    ) -> None:
        store = tmp_path / "store"
        slot_id = self._create(runner, store)
        base = ["--store-dir", str(store), "slot"]
        runner.invoke(app, [*base, "plan", slot_id, str(plan_file), "-t", "acme"])
        article = _write(tmp_path, "ok.txt", "안녕하세요")

        result = runner.invoke(
            app,
            [*base, "publish", slot_id, str(article), "-t", "acme", "--feature", "edit_slug"],
        )

        assert result.exit_code == 1
        assert "Denied" in result.output

    def test_invalid_plan(self, runner: CliRunner, tmp_path: Path) -> None:
        store = tmp_path / "store"
        slot_id = self._create(runner, store)
        bad = _write(tmp_path, "bad.json", '[{"id": "x", "topics": [{"kind": "satellite", "title": "t"}]}]')

        result = runner.invoke(
            app, ["--store-dir", str(store), "slot", "plan", slot_id, str(bad), "-t", "acme"]
        )

        assert result.exit_code == 1
        assert "Invalid plan" in result.output

    def test_reset_and_delete_need_confirmation(self, runner: CliRunner, tmp_path: Path) -> None:
        store = tmp_path / "store"
        slot_id = self._create(runner, store)
        base = ["--store-dir", str(store), "slot"]

        assert runner.invoke(app, [*base, "reset", slot_id, "-t", "acme"]).exit_code == 1
        assert runner.invoke(app, [*base, "delete", slot_id, "-t", "acme"]).exit_code == 1

        result = runner.invoke(app, [*base, "delete", slot_id, "-t", "acme", "--yes"])
        assert result.exit_code == 0
        assert "purged 0" in result.output

    def test_unknown_slot(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["--store-dir", str(tmp_path), "slot", "reset", "slot-missing", "-t", "acme", "--yes"]
        )

        assert result.exit_code == 1
        assert "Unknown slot" in result.output
