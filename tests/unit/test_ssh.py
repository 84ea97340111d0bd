# tests/unit/test_ssh.py

"""Unit tests for ssh argument assembly."""

from lode.config import SshConfig
from lode.runners.ssh import DEFAULT_SSH_OPTIONS, SSH_EXECUTABLE, SshOptions


class TestSshOptions:
    def test_full_argv(self):
        options = SshOptions(host="ci.example.com", user="ci", port=2222, identity="~/.ssh/ci", remote_path="/srv/app")

        argv = options.argv(["python", "-m", "pytest"])

        assert argv[:4] == [SSH_EXECUTABLE, "-S", "none", "ci.example.com"]
        assert argv[-2:] == ["-tt", "cd /srv/app && python -m pytest"]
        assert argv[argv.index("-l") + 1] == "ci"
        assert argv[argv.index("-p") + 1] == "2222"
        assert argv[argv.index("-i") + 1] == "~/.ssh/ci"

    def test_default_options_are_passed(self):
        argv = SshOptions(host="box").argv(["true"])

        passed = [argv[i + 1] for i, arg in enumerate(argv) if arg == "-o"]
        assert passed == [f"{key}={value}" for key, value in DEFAULT_SSH_OPTIONS.items()]
        assert "-l" not in argv
        assert "-p" not in argv

    def test_options_override_defaults(self):
        options = SshOptions(host="box", options={"ConnectTimeout": 3, "ServerAliveInterval": 15})

        argv = options.argv(["true"])

        assert "ConnectTimeout=3" in argv
        assert "ConnectTimeout=10" not in argv
        assert "ServerAliveInterval=15" in argv

    def test_remote_command_quotes_arguments(self):
        options = SshOptions(host="box", remote_path="/srv/my app")

        command = options.remote_command(["pytest", "tests/a b.py::test_x[1-2]"])

        assert command == "cd '/srv/my app' && pytest 'tests/a b.py::test_x[1-2]'"

    def test_from_config(self):
        config = SshConfig(host="box", user="me", port=22, options={"LogLevel": "ERROR"})

        options = SshOptions.from_config(config)

        assert options.host == "box"
        assert options.merged_options()["LogLevel"] == "ERROR"
