import re
from typing import Optional

from fedora_optimizer.config import Context
from fedora_optimizer.results import PreconditionResult
from fedora_optimizer.runner import CommandRunner
from fedora_optimizer.services import ServiceManager

RESOLVED_UNIT = "systemd-resolved"
NETWORK_MANAGER_UNIT = "NetworkManager"


class NetworkChecker:
    """Reachability probe with a single diagnose-remediate-recheck pass per stage."""

    def __init__(self, ctx: Context, runner: CommandRunner, services: ServiceManager):
        self.ctx = ctx
        self.runner = runner
        self.services = services

    def probe(self, host: str) -> bool:
        timeout = str(self.ctx.config.PROBE_TIMEOUT)
        code, _ = self.runner.capture(["ping", "-c", "1", "-W", timeout, host])
        self.ctx.logger.debug(f"Probe {host}: {'reachable' if code == 0 else 'unreachable'}")
        return code == 0

    def _resolv_conf_usable(self) -> bool:
        resolv = self.ctx.path("/etc/resolv.conf")
        try:
            return any(
                line.strip().startswith("nameserver")
                for line in resolv.read_text().splitlines()
            )
        except OSError:
            return False

    def repair_dns(self) -> None:
        """Restart the resolver if it looks broken, then the network management service."""
        logger = self.ctx.logger
        if not self._resolv_conf_usable() or not self.services.is_active(RESOLVED_UNIT):
            logger.warning("Local DNS resolution looks broken; restarting systemd-resolved")
            self.services.restart_and_wait(RESOLVED_UNIT)
        logger.warning("Restarting NetworkManager")
        self.services.restart_and_wait(NETWORK_MANAGER_UNIT)

    def default_interface(self) -> Optional[str]:
        code, output = self.runner.capture(["ip", "route", "show", "default"])
        if code != 0:
            return None
        match = re.search(r"\bdev\s+(\S+)", output)
        return match.group(1) if match else None

    def is_wireless(self, interface: str) -> bool:
        return self.ctx.path(f"/sys/class/net/{interface}/wireless").exists()

    def repair_interface(self) -> bool:
        interface = self.default_interface()
        if interface is None:
            self.ctx.logger.error("No default route; cannot pick an interface to reset")
            return False
        self.ctx.logger.warning(f"Resetting network interface {interface}")
        self.runner.run(f"Bring {interface} down", ["ip", "link", "set", interface, "down"], suppress=True)
        self.runner.run(f"Bring {interface} up", ["ip", "link", "set", interface, "up"], suppress=True)
        if self.is_wireless(interface):
            self.runner.run(
                f"Disable WiFi power saving on {interface}",
                ["iw", "dev", interface, "set", "power_save", "off"],
                suppress=True,
            )
        return self.services.wait_until_active(NETWORK_MANAGER_UNIT)

    def ensure_connectivity(self, target_host: str) -> PreconditionResult:
        """
        Check that the network is usable for work against ``target_host``.

        Stage one probes a general-purpose host and, on failure, repairs local
        DNS and restarts NetworkManager before probing again. If that still
        fails, stage two probes the target host itself and, on failure, resets
        the default interface before one final probe.
        """
        general = self.ctx.config.PROBE_HOST
        if self.probe(general):
            return PreconditionResult(True, f"{general} is reachable")

        self.ctx.logger.warning(f"Cannot reach {general}; attempting DNS and network repair")
        self.repair_dns()
        if self.probe(general):
            return PreconditionResult(True, f"{general} reachable after DNS repair")

        if self.probe(target_host):
            return PreconditionResult(True, f"{target_host} is reachable")

        self.ctx.logger.warning(f"Cannot reach {target_host}; attempting interface repair")
        self.repair_interface()
        if self.probe(target_host):
            return PreconditionResult(True, f"{target_host} reachable after interface reset")
        return PreconditionResult(
            False, f"Cannot reach {target_host}. Please check your network connection."
        )
