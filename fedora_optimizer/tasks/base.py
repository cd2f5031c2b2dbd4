import pwd
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from fedora_optimizer.config import Context
from fedora_optimizer.network import NetworkChecker
from fedora_optimizer.results import Reason, TaskResult
from fedora_optimizer.runner import CommandRecord, CommandRunner
from fedora_optimizer.services import ServiceManager
from fedora_optimizer.ui import print_error, print_message, print_success, print_warning
from fedora_optimizer.writers import ConfigWriter


@dataclass
class Toolkit:
    """The collaborators every task works through, built once per run."""

    ctx: Context
    runner: CommandRunner
    services: ServiceManager
    writer: ConfigWriter
    network: NetworkChecker

    @classmethod
    def build(cls, ctx: Context) -> "Toolkit":
        runner = CommandRunner(ctx)
        services = ServiceManager(ctx, runner)
        return cls(
            ctx=ctx,
            runner=runner,
            services=services,
            writer=ConfigWriter(ctx),
            network=NetworkChecker(ctx, runner, services),
        )

    # Console shorthands so task bodies read like the operator sees them
    def info(self, text: str) -> None:
        print_message(self.ctx, text)

    def success(self, text: str) -> None:
        print_success(self.ctx, text)

    def warning(self, text: str) -> None:
        print_warning(self.ctx, text)

    def error(self, text: str) -> None:
        print_error(self.ctx, text)

    def run(self, description: str, argv: Sequence[str], suppress: bool = False) -> CommandRecord:
        return self.runner.run(description, argv, suppress=suppress)

    def dnf_install(self, packages: Sequence[str], description: Optional[str] = None) -> CommandRecord:
        return self.run(
            description or f"Install {', '.join(packages)}",
            ["dnf", "install", "-y", *packages],
        )

    def sysctl_apply(self, target: str) -> CommandRecord:
        return self.run(f"Apply {target}", ["sysctl", "-p", target], suppress=True)

    def require_network(self, host: str) -> Optional[TaskResult]:
        """None when ``host`` is usable, else the RECOVERABLE result the task should return."""
        check = self.network.ensure_connectivity(host)
        if check.ok:
            return None
        self.error(check.message)
        return TaskResult.recoverable(Reason.NETWORK_UNREACHABLE, check.message)

    # Desktop-session helpers
    def desktop_user(self) -> Optional[str]:
        user = self.ctx.config.DESKTOP_USER
        return user if user and user != "root" else None

    def desktop_home(self) -> Optional[Path]:
        user = self.desktop_user()
        if user is None:
            return None
        try:
            return Path(pwd.getpwnam(user).pw_dir)
        except KeyError:
            return None

    def as_desktop_user(self, argv: Sequence[str]) -> Optional[List[str]]:
        """Wrap ``argv`` to run inside the invoking user's session bus, or None without one."""
        user = self.desktop_user()
        if user is None:
            return None
        try:
            uid = pwd.getpwnam(user).pw_uid
        except KeyError:
            return None
        return [
            "sudo",
            "-u",
            user,
            "env",
            f"DBUS_SESSION_BUS_ADDRESS=unix:path=/run/user/{uid}/bus",
            *argv,
        ]

    def gsettings(self, schema: str, key: str, value: str) -> Optional[CommandRecord]:
        argv = self.as_desktop_user(["gsettings", "set", schema, key, value])
        if argv is None:
            self.ctx.logger.warning(f"No desktop user; skipped gsettings {schema} {key}")
            return None
        return self.run(f"gsettings {schema} {key}", argv, suppress=True)


def failed_steps(records: Sequence[CommandRecord]) -> List[str]:
    return [r.description for r in records if not r.ok]


def summarize(tk: Toolkit, records: Sequence[CommandRecord], done: str) -> TaskResult:
    """SUCCESS when every step passed; otherwise RECOVERABLE naming the failed steps."""
    failures = failed_steps(records)
    if not failures:
        tk.success(done)
        return TaskResult.success(done)
    message = f"{len(failures)} step(s) failed: {', '.join(failures)}"
    tk.warning(message)
    return TaskResult.recoverable(Reason.COMMAND_FAILED, message)
