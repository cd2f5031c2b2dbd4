"""The optimization catalogue as it appears in the menu."""

from fedora_optimizer.orchestrator import TaskRegistry, run_aggregate
from fedora_optimizer.tasks.desktop import configure_chrome, configure_gnome, optimize_gnome
from fedora_optimizer.tasks.network import configure_dns, optimize_network, optimize_wifi
from fedora_optimizer.tasks.repositories import (
    add_flathub,
    add_rpm_fusion,
    install_preload,
    optimize_repositories,
    resolve_package_conflicts,
)
from fedora_optimizer.tasks.security import configure_security, optimize_security
from fedora_optimizer.tasks.system import (
    adjust_kernel_parameters,
    cleanup_system,
    configure_zram,
    optimize_maintenance,
    optimize_system_performance,
)
from fedora_optimizer.tasks.uninstall import uninstall_flm

CATALOGUE = [
    ("1", "Configure DNS (Cloudflare Malware Blocking & Fallback)", configure_dns),
    ("2", "Add RPM Fusion Repositories", add_rpm_fusion),
    ("3", "Add Flathub Repository", add_flathub),
    ("4", "Install preload", install_preload),
    ("5", "Adjust kernel parameters (swappiness & vfs_cache_pressure)", adjust_kernel_parameters),
    ("6", "Configure zram (compressed swap in RAM)", configure_zram),
    ("7", "Perform system cleanup", cleanup_system),
    ("8", "Configure antivirus and anti-malware protection", configure_security),
    ("9", "Configure GNOME and Wayland optimization", configure_gnome),
    ("10", "Optimize Chrome for Wayland and performance", configure_chrome),
    ("11", "Optimize system performance", optimize_system_performance),
    ("12", "Optimize system security", optimize_security),
    ("13", "Optimize software repositories", optimize_repositories),
    ("14", "Optimize system maintenance", optimize_maintenance),
    ("15", "Optimize GNOME", optimize_gnome),
    ("16", "Optimize network stack", optimize_network),
    ("17", "Optimize WiFi", optimize_wifi),
    ("18", "Resolve package conflicts", resolve_package_conflicts),
    ("19", "Uninstall FLM (Fedora LEMP Multisite) - DESTRUCTIVE", uninstall_flm),
]

COMPLETE_KEY = "20"
COMPLETE_LABEL = "Perform complete optimization (recommended)"

# Network tuning runs twice: security hardening rewrites overlapping TCP keys.
AGGREGATE_SEQUENCE = [
    "1", "2", "3", "4", "5", "6", "8", "9", "10", "11",
    "16", "12", "13", "18", "14", "15", "17", "16", "7",
]


def build_registry() -> TaskRegistry:
    registry = TaskRegistry()
    for key, label, func in CATALOGUE:
        registry.register(key, label, func)
    steps = registry.sequence(AGGREGATE_SEQUENCE)
    registry.register(COMPLETE_KEY, COMPLETE_LABEL, lambda tk: run_aggregate(tk, steps))
    return registry
