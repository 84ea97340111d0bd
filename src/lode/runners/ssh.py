#
# src/lode/runners/ssh.py
#
"""
Argument assembly for running test commands on a remote host through ssh.
"""

import shlex
from collections.abc import Mapping, Sequence

from attrs import define, field

from lode.config.models import SshConfig

SSH_EXECUTABLE = "ssh"

# Exit status ssh uses for its own failures (unreachable host, auth...).
SSH_FAILURE_EXIT_CODE = 255

DEFAULT_SSH_OPTIONS: Mapping[str, str | int] = {
    "BatchMode": "yes",
    "Compression": "yes",
    "DSAAuthentication": "yes",
    "LogLevel": "FATAL",
    "StrictHostKeyChecking": "no",
    "UserKnownHostsFile": "/dev/null",
    "ForwardAgent": "yes",
    "IdentitiesOnly": "yes",
    "ControlMaster": "no",
    "ExitOnForwardFailure": "yes",
    "ConnectTimeout": 10,
}


@define(frozen=True, slots=True)
class SshOptions:
    """Connection settings; `options` are merged over the defaults key by key."""

    host: str = field()
    user: str | None = field(default=None)
    port: int | None = field(default=None)
    identity: str | None = field(default=None)
    remote_path: str | None = field(default=None)
    options: Mapping[str, str | int] = field(factory=dict)

    @classmethod
    def from_config(cls, config: SshConfig) -> "SshOptions":
        return cls(
            host=config.host,
            user=config.user,
            port=config.port,
            identity=config.identity,
            remote_path=config.remote_path,
            options=config.options,
        )

    def merged_options(self) -> dict[str, str | int]:
        return {**DEFAULT_SSH_OPTIONS, **self.options}

    def remote_command(self, args: Sequence[str]) -> str:
        command = shlex.join(args)
        if self.remote_path:
            command = f"cd {shlex.quote(self.remote_path)} && {command}"
        return command

    def command_args(self, args: Sequence[str]) -> list[str]:
        """Arguments for the ssh executable that run `args` on the remote host."""
        argv = ["-S", "none", self.host]
        for key, value in self.merged_options().items():
            argv.extend(["-o", f"{key}={value}"])
        if self.user:
            argv.extend(["-l", self.user])
        if self.port:
            argv.extend(["-p", str(self.port)])
        if self.identity:
            argv.extend(["-i", self.identity])
        argv.extend(["-tt", self.remote_command(args)])
        return argv

    def argv(self, args: Sequence[str]) -> list[str]:
        """Full argv, executable included."""
        return [SSH_EXECUTABLE, *self.command_args(args)]


# 🔼⚙️
