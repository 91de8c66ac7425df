from click.testing import CliRunner

import pgbackuper.cli as cli_module

REQUIRED_ARGS = [
    "--endpoint",
    "minio:9000",
    "--access-key",
    "key",
    "--secret-key",
    "secret",
    "--bucket",
    "backups",
]


def _fake_backuper(captured, exit_code=0):
    class FakeBackuper:
        def __init__(self, options):
            captured["options"] = options

        def verify_storage(self):
            captured["verified"] = True

        def run_once(self):
            captured["mode"] = "once"
            return exit_code

        def run(self, shutdown):
            captured["mode"] = "scheduled"
            captured["shutdown"] = shutdown
            return exit_code

    return FakeBackuper


class FakeShutdown:
    def __init__(self, logger):
        self.installed = False

    def install(self):
        self.installed = True


def test_cli_one_shot_uses_defaults(monkeypatch, tmp_path):
    captured = {}
    monkeypatch.setattr(cli_module, "Backuper", _fake_backuper(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, REQUIRED_ARGS + ["--do"])

    assert result.exit_code == 0
    options = captured["options"]
    assert captured["mode"] == "once"
    assert captured["verified"] is True
    assert options.one_shot is True
    assert options.schedule == "@daily"
    assert options.exec_timeout == 30.0
    assert options.poll_interval == 0.25
    assert options.storage.secure is True
    assert options.storage.bucket == "backups"


def test_cli_reads_environment_variables(monkeypatch, tmp_path):
    captured = {}
    monkeypatch.setattr(cli_module, "Backuper", _fake_backuper(captured))
    monkeypatch.setattr(cli_module, "ShutdownSignal", FakeShutdown)
    monkeypatch.chdir(tmp_path)

    env = {
        "PB_ENDPOINT": "minio:9000",
        "PB_ACCESS_KEY": "env-key",
        "PB_SECRET_KEY": "env-secret",
        "PB_BUCKET": "env-bucket",
        "PB_USE_SSL": "false",
        "PB_SCHEDULE": "0 3 * * *",
    }
    result = CliRunner().invoke(cli_module.main, [], env=env)

    assert result.exit_code == 0
    options = captured["options"]
    assert captured["mode"] == "scheduled"
    assert captured["shutdown"].installed is True
    assert options.storage.access_key == "env-key"
    assert options.storage.secure is False
    assert options.schedule == "0 3 * * *"


def test_cli_uses_config_and_allows_cli_override(monkeypatch, tmp_path):
    config_file = tmp_path / "backuper.yml"
    config_file.write_text(
        "endpoint: config:9000\n"
        "access_key: config-key\n"
        "secret_key: config-secret\n"
        "bucket: config-bucket\n"
        "use_ssl: false\n"
        "exec_timeout: 60\n",
        encoding="utf-8",
    )
    captured = {}
    monkeypatch.setattr(cli_module, "Backuper", _fake_backuper(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(
        cli_module.main,
        ["--config", str(config_file), "--bucket", "cli-bucket", "--do"],
    )

    assert result.exit_code == 0
    options = captured["options"]
    assert options.storage.endpoint == "config:9000"
    assert options.storage.bucket == "cli-bucket"
    assert options.storage.secure is False
    assert options.exec_timeout == 60.0


def test_cli_uses_default_config_file_when_present(monkeypatch, tmp_path):
    (tmp_path / ".postgres-backuper.yml").write_text(
        "endpoint: minio:9000\naccess_key: k\nsecret_key: s\nbucket: b\ndo: true\n",
        encoding="utf-8",
    )
    captured = {}
    monkeypatch.setattr(cli_module, "Backuper", _fake_backuper(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, [])

    assert result.exit_code == 0
    assert captured["mode"] == "once"
    assert captured["options"].storage.bucket == "b"


def test_cli_reports_missing_required_option(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("PB_ENDPOINT", "PB_ACCESS_KEY", "PB_SECRET_KEY", "PB_BUCKET"):
        monkeypatch.delenv(name, raising=False)

    result = CliRunner().invoke(cli_module.main, ["--endpoint", "minio:9000"])

    assert result.exit_code != 0
    assert "Missing required option `--access-key`" in result.output
    assert "PB_ACCESS_KEY" in result.output


def test_cli_propagates_one_shot_failure_exit_code(monkeypatch, tmp_path):
    captured = {}
    monkeypatch.setattr(cli_module, "Backuper", _fake_backuper(captured, exit_code=1))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, REQUIRED_ARGS + ["--do"])

    assert result.exit_code == 1


def test_cli_turns_startup_errors_into_click_errors(monkeypatch, tmp_path):
    class FailingBackuper:
        def __init__(self, options):
            raise cli_module.BackuperError("Could not create Docker client: no socket")

    monkeypatch.setattr(cli_module, "Backuper", FailingBackuper)
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, REQUIRED_ARGS + ["--do"])

    assert result.exit_code == 1
    assert "Could not create Docker client" in result.output
