from click.testing import CliRunner

import hostupdater.cli as cli_module


def _fake_updater(captured, exit_code=0):
    class FakeUpdater:
        def __init__(self, config, **kwargs):
            captured["config"] = config

        def run(self):
            return exit_code

    return FakeUpdater


def test_cli_maps_flags_to_run_config(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "HostUpdater", _fake_updater(captured))
    log_file = tmp_path / "logs" / "update.log"

    result = CliRunner().invoke(
        cli_module.main,
        [
            "--no-flatpak",
            "--security-only",
            "--dry-run",
            "--backup-etc",
            "--min-free-mb",
            "2048",
            "--timeout",
            "30",
            "--journal-days",
            "0",
            "--logfile",
            str(log_file),
            "--backup-dir",
            str(tmp_path),
        ],
    )

    assert result.exit_code == 0
    config = captured["config"]
    assert config.skip_flatpak is True
    assert config.security_only is True
    assert config.dry_run is True
    assert config.backup_etc is True
    assert config.min_free_mb == 2048
    assert config.lock_timeout == 30
    assert config.journal_days == 0
    assert config.logfile == str(log_file)
    assert log_file.exists()
    assert (log_file.stat().st_mode & 0o777) == 0o640


def test_cli_uses_config_and_allows_cli_override(tmp_path, monkeypatch):
    config_file = tmp_path / "hostupdater.yml"
    config_file.write_text(
        "security_only: true\n" "timeout: 120\n" "journal_days: 7\n",
        encoding="utf-8",
    )
    captured = {}
    monkeypatch.setattr(cli_module, "HostUpdater", _fake_updater(captured))

    result = CliRunner().invoke(
        cli_module.main,
        [
            "--config",
            str(config_file),
            "--timeout",
            "45",
            "--logfile",
            str(tmp_path / "update.log"),
        ],
    )

    assert result.exit_code == 0
    config = captured["config"]
    assert config.security_only is True
    assert config.lock_timeout == 45
    assert config.journal_days == 7
    assert config.min_free_mb == 1024


def test_cli_skip_flatpak_alias(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(cli_module, "HostUpdater", _fake_updater(captured))

    result = CliRunner().invoke(
        cli_module.main,
        ["--skip-flatpak", "--logfile", str(tmp_path / "update.log")],
    )

    assert result.exit_code == 0
    assert captured["config"].skip_flatpak is True


def test_cli_unknown_option_exits_with_usage_error(monkeypatch):
    monkeypatch.setattr(cli_module, "HostUpdater", _fake_updater({}))

    result = CliRunner().invoke(cli_module.main, ["--bogus"])

    assert result.exit_code == 2
    assert "No such option" in result.output


def test_cli_rejects_negative_numbers(monkeypatch):
    monkeypatch.setattr(cli_module, "HostUpdater", _fake_updater({}))

    result = CliRunner().invoke(cli_module.main, ["--timeout", "-5"])

    assert result.exit_code == 2


def test_cli_help_exits_zero():
    result = CliRunner().invoke(cli_module.main, ["--help"])

    assert result.exit_code == 0
    assert "--security-only" in result.output


def test_cli_propagates_fatal_exit_code(tmp_path, monkeypatch):
    monkeypatch.setattr(cli_module, "HostUpdater", _fake_updater({}, exit_code=1))

    result = CliRunner().invoke(cli_module.main, ["--logfile", str(tmp_path / "update.log")])

    assert result.exit_code == 1


def test_cli_reports_invalid_config_values(tmp_path, monkeypatch):
    config_file = tmp_path / "hostupdater.yml"
    config_file.write_text("journal_days: -3\n", encoding="utf-8")
    monkeypatch.setattr(cli_module, "HostUpdater", _fake_updater({}))

    result = CliRunner().invoke(cli_module.main, ["--config", str(config_file)])

    assert result.exit_code == 1
    assert "non-negative integer" in result.output


def test_cli_rejects_quoted_boolean_in_config(tmp_path, monkeypatch):
    config_file = tmp_path / "hostupdater.yml"
    config_file.write_text('dry_run: "false"\n', encoding="utf-8")
    captured = {}
    monkeypatch.setattr(cli_module, "HostUpdater", _fake_updater(captured))

    result = CliRunner().invoke(cli_module.main, ["--config", str(config_file)])

    assert result.exit_code == 1
    assert "must be true or false" in result.output
    assert "config" not in captured
