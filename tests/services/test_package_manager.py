import pytest

from hostupdater.models import ToolResult, ToolStatus
from hostupdater.services.package_manager import AptService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class FakeRunner:
    def __init__(self, available=(), results=None):
        self.available = set(available)
        self.results = results or {}
        self.calls = []

    def is_available(self, command):
        return command in self.available

    def invoke(self, cmd, capture_output=False, env=None):
        self.calls.append((cmd, env))
        return self.results.get(cmd[0], ToolResult(ToolStatus.SUCCESS, 0))


def test_apt_get_calls_are_noninteractive_with_lock_timeout():
    runner = FakeRunner()
    service = AptService(runner, DummyLogger(), lock_timeout=45)

    service.upgrade("full")

    cmd, env = runner.calls[0]
    assert cmd == ["apt-get", "--option=DPkg::Lock::Timeout=45", "dist-upgrade", "-y"]
    assert env == {"DEBIAN_FRONTEND": "noninteractive"}


def test_conservative_upgrade_uses_plain_upgrade():
    runner = FakeRunner()

    AptService(runner, DummyLogger()).upgrade("conservative")

    assert runner.calls[0][0][2:] == ["upgrade", "-y"]


def test_unknown_upgrade_strategy_is_rejected():
    with pytest.raises(ValueError):
        AptService(FakeRunner(), DummyLogger()).upgrade("aggressive")


def test_security_upgrade_installs_tool_when_absent():
    runner = FakeRunner(available=())
    service = AptService(runner, DummyLogger())

    result = service.security_upgrade()

    assert result.ok
    assert runner.calls[0][0][-3:] == ["install", "-y", "unattended-upgrades"]
    assert runner.calls[1][0] == ["unattended-upgrade", "-v"]


def test_security_upgrade_reports_failed_install():
    runner = FakeRunner(results={"apt-get": ToolResult(ToolStatus.FAILED, 100)})
    service = AptService(runner, DummyLogger())

    result = service.security_upgrade()

    assert result.status == ToolStatus.FAILED
    assert len(runner.calls) == 1


def test_security_upgrade_skips_install_when_present():
    runner = FakeRunner(available={"unattended-upgrade"})

    AptService(runner, DummyLogger()).security_upgrade()

    assert [cmd[0] for cmd, _ in runner.calls] == ["unattended-upgrade"]


def test_list_upgradable_drops_listing_header():
    output = "Listing... Done\nbash/stable 5.2-3 amd64 [upgradable from: 5.2-2]\n\n"
    runner = FakeRunner(results={"apt": ToolResult(ToolStatus.SUCCESS, 0, output)})

    pending = AptService(runner, DummyLogger()).list_upgradable()

    assert pending == ["bash/stable 5.2-3 amd64 [upgradable from: 5.2-2]"]


def test_query_installed_uses_tab_separated_format():
    runner = FakeRunner()

    AptService(runner, DummyLogger()).query_installed()

    cmd, _ = runner.calls[0]
    assert cmd == [
        "dpkg-query",
        "-W",
        "-f=${db:Status-Abbrev}\\t${binary:Package}\\t${Version}\\n",
    ]
