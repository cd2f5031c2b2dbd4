"""DNS, TCP stack and WiFi tasks."""

from typing import List

from fedora_optimizer.network import NETWORK_MANAGER_UNIT, RESOLVED_UNIT
from fedora_optimizer.results import Reason, TaskResult
from fedora_optimizer.tasks.base import Toolkit, summarize
from fedora_optimizer.writers import IniFile, SysctlFile

NM_CONF = "/etc/NetworkManager/NetworkManager.conf"
RESOLVED_CONF = "/etc/systemd/resolved.conf"
NETWORK_SYSCTL = "/etc/sysctl.d/99-network.conf"
WIFI_POWERSAVE_CONF = "/etc/NetworkManager/conf.d/99-wifi-powersave.conf"

NETWORK_TUNING = {
    "net.core.rmem_max": 16777216,
    "net.core.wmem_max": 16777216,
    "net.ipv4.tcp_rmem": "4096 87380 16777216",
    "net.ipv4.tcp_wmem": "4096 87380 16777216",
    "net.ipv4.tcp_congestion_control": "cubic",
    "net.ipv4.tcp_fastopen": 3,
    "net.ipv4.tcp_slow_start_after_idle": 0,
    "net.ipv4.tcp_no_metrics_save": 1,
    "net.ipv4.tcp_moderate_rcvbuf": 1,
    "net.ipv4.tcp_mtu_probing": 1,
    "net.ipv4.tcp_timestamps": 1,
    "net.ipv4.tcp_sack": 1,
    "net.ipv4.tcp_dsack": 1,
    "net.ipv4.tcp_ecn": 1,
    "net.ipv4.tcp_reordering": 3,
    "net.ipv4.tcp_retries2": 8,
    "net.ipv4.tcp_syn_retries": 3,
    "net.ipv4.tcp_synack_retries": 3,
    "net.ipv4.tcp_max_syn_backlog": 4096,
    "net.ipv4.tcp_max_tw_buckets": 180000,
    "net.ipv4.tcp_tw_reuse": 1,
    "net.ipv4.tcp_keepalive_time": 60,
    "net.ipv4.tcp_keepalive_intvl": 10,
    "net.ipv4.tcp_keepalive_probes": 6,
    "net.ipv4.tcp_fin_timeout": 10,
    "net.ipv4.tcp_adv_win_scale": 1,
    "net.ipv4.tcp_app_win": 31,
    "net.ipv4.tcp_rfc1337": 1,
    "net.ipv4.tcp_syncookies": 1,
    "net.ipv4.tcp_window_scaling": 1,
    "net.ipv4.tcp_workaround_signed_windows": 1,
    "net.ipv4.tcp_abort_on_overflow": 0,
    "net.ipv4.tcp_stdurg": 0,
}


def network_manager_conf(servers: List[str]) -> IniFile:
    return IniFile(
        {
            "main": {"dns": "systemd-resolved", "systemd-resolved": "false"},
            "global-dns-domain-*": {"servers": ",".join(servers)},
        }
    )


def resolved_conf(primary: List[str], fallback: List[str]) -> IniFile:
    return IniFile(
        {
            "Resolve": {
                "DNS": " ".join(primary),
                "FallbackDNS": " ".join(fallback),
                "DNSSEC": "yes",
                "DNSOverTLS": "opportunistic",
                "Cache": "yes",
                "Domains": "~.",
            }
        }
    )


def parse_global_dns(resolvectl_output: str) -> List[str]:
    """DNS servers listed in the Global block of ``resolvectl status``."""
    lines = resolvectl_output.splitlines()
    for i, line in enumerate(lines):
        if line.strip() == "Global":
            for candidate in lines[i + 1 : i + 5]:
                key, _, value = candidate.partition(":")
                if key.strip() in ("DNS Servers", "Current DNS Server"):
                    return value.split()
            break
    return []


def _restore_dns(tk: Toolkit, reason: str) -> TaskResult:
    tk.error(f"{reason} Restoring backup configuration...")
    tk.writer.restore(NM_CONF)
    tk.services.restart(NETWORK_MANAGER_UNIT)
    return TaskResult.recoverable(Reason.SERVICE_NOT_READY, reason)


def configure_dns(tk: Toolkit) -> TaskResult:
    """Route DNS through systemd-resolved with Cloudflare malware blocking and fallbacks."""
    config = tk.ctx.config
    tk.info("Configuring DNS via NetworkManager...")

    tk.writer.write(
        NM_CONF,
        network_manager_conf(config.PRIMARY_DNS + config.FALLBACK_DNS),
        backup=True,
    )
    tk.services.restart_and_wait(NETWORK_MANAGER_UNIT)

    tk.writer.write(RESOLVED_CONF, resolved_conf(config.PRIMARY_DNS, config.FALLBACK_DNS))
    tk.services.restart_and_wait(RESOLVED_UNIT)

    if not (
        tk.services.is_active(RESOLVED_UNIT)
        and tk.services.is_active(NETWORK_MANAGER_UNIT)
    ):
        return _restore_dns(tk, "One or both services could not be started.")

    _, status = tk.runner.capture(["resolvectl", "status"])
    servers = parse_global_dns(status)
    if not servers:
        return _restore_dns(tk, "Could not verify active DNS servers.")

    message = f"DNS configuration completed. Active DNS servers: {' '.join(servers)}"
    tk.success(message)
    if tk.network.probe("cloudflare.com"):
        tk.success("DNS functionality confirmed.")
    else:
        tk.info("DNS is configured, but could not connect to cloudflare.com.")
    return TaskResult.success(message)


def optimize_network(tk: Toolkit) -> TaskResult:
    """Write and apply the TCP/IP stack tuning profile."""
    tk.info("Optimizing network stack...")
    tk.writer.write(NETWORK_SYSCTL, SysctlFile(NETWORK_TUNING, "Network stack optimizations"))
    return summarize(tk, [tk.sysctl_apply(NETWORK_SYSCTL)], "Network stack optimized.")


def wireless_interfaces(tk: Toolkit) -> List[str]:
    net = tk.ctx.path("/sys/class/net")
    if not net.is_dir():
        return []
    return sorted(p.name for p in net.iterdir() if (p / "wireless").exists())


def optimize_wifi(tk: Toolkit) -> TaskResult:
    """Disable WiFi power saving now and across NetworkManager restarts."""
    tk.info("Optimizing WiFi...")
    interfaces = wireless_interfaces(tk)
    if not interfaces:
        tk.info("No wireless interfaces found. Skipping WiFi optimization.")
        return TaskResult.skipped("No wireless interfaces", Reason.NOT_APPLICABLE)

    # 2 = disable in NetworkManager's wifi.powersave enum
    tk.writer.write(WIFI_POWERSAVE_CONF, IniFile({"connection": {"wifi.powersave": 2}}))
    records = [
        tk.run(
            f"Disable power saving on {iface}",
            ["iw", "dev", iface, "set", "power_save", "off"],
            suppress=True,
        )
        for iface in interfaces
    ]
    records.append(tk.services.restart(NETWORK_MANAGER_UNIT))
    if not tk.services.wait_until_active(NETWORK_MANAGER_UNIT):
        tk.error("NetworkManager did not come back after the WiFi change.")
        return TaskResult.recoverable(Reason.SERVICE_NOT_READY, "NetworkManager not active")
    return summarize(
        tk, records, f"WiFi power saving disabled on {', '.join(interfaces)}."
    )
