from typing import Optional

from fedora_optimizer.config import Context
from fedora_optimizer.runner import CommandRecord, CommandRunner


class ServiceManager:
    """systemctl wrapper with bounded readiness polling after restarts."""

    def __init__(self, ctx: Context, runner: CommandRunner):
        self.ctx = ctx
        self.runner = runner

    def _systemctl(self, description: str, *args: str, suppress: bool = True) -> CommandRecord:
        return self.runner.run(description, ["systemctl", *args], suppress=suppress)

    def daemon_reload(self) -> CommandRecord:
        return self._systemctl("Reload systemd units", "daemon-reload")

    def restart(self, unit: str) -> CommandRecord:
        return self._systemctl(f"Restart {unit}", "restart", unit)

    def enable_now(self, unit: str) -> CommandRecord:
        return self._systemctl(f"Enable and start {unit}", "enable", "--now", unit)

    def stop(self, unit: str) -> CommandRecord:
        return self._systemctl(f"Stop {unit}", "stop", unit)

    def disable(self, unit: str) -> CommandRecord:
        return self._systemctl(f"Disable {unit}", "disable", unit)

    def is_active(self, unit: str) -> bool:
        code, _ = self.runner.capture(["systemctl", "is-active", "--quiet", unit])
        return code == 0

    def wait_until_active(self, unit: str, timeout: Optional[float] = None) -> bool:
        """Poll the service manager until ``unit`` reports active or the timeout elapses."""
        config = self.ctx.config
        timeout = config.SERVICE_READY_TIMEOUT if timeout is None else timeout
        deadline = self.ctx.clock() + timeout
        while True:
            if self.is_active(unit):
                self.ctx.logger.debug(f"{unit} is active")
                return True
            if self.ctx.clock() >= deadline:
                self.ctx.logger.warning(f"{unit} not active after {timeout:.0f}s")
                return False
            self.ctx.sleep(config.SERVICE_POLL_INTERVAL)

    def restart_and_wait(self, unit: str) -> bool:
        if not self.restart(unit).ok:
            return False
        return self.wait_until_active(unit)
