"""Tests for the aihelper command-line option handling."""

from click.testing import CliRunner

from aihelper.cli import main


class TestPageOption:
    def test_missing_page_file_is_usage_error(self, tmp_path):
        result = CliRunner().invoke(
            main, ["--page", str(tmp_path / "missing.txt"), "hi"],
        )
        assert result.exit_code == 2
        assert "does not exist" in result.output

    def test_directory_rejected(self, tmp_path):
        result = CliRunner().invoke(main, ["--page", str(tmp_path), "hi"])
        assert result.exit_code == 2
        assert "is a directory" in result.output


class TestConfigChecks:
    def test_missing_token_is_usage_error(self, tmp_path, monkeypatch):
        monkeypatch.delenv("AIHELPER_TOKEN", raising=False)
        config = tmp_path / "aihelper.yaml"
        config.write_text("model: gpt-test\n")
        result = CliRunner().invoke(main, ["--config", str(config), "hi"])
        assert result.exit_code == 2
        assert "Missing configuration: token" in result.output

    def test_quick_actions_disabled_by_default(self, tmp_path):
        config = tmp_path / "aihelper.yaml"
        config.write_text("token: sk-test\n")
        result = CliRunner().invoke(
            main, ["--config", str(config), "--translate", "hello"],
        )
        assert result.exit_code == 2
        assert "Quick actions are disabled" in result.output
