"""Kernel, memory, scheduler, cleanup and maintenance tasks."""

from fedora_optimizer.results import Reason, TaskResult
from fedora_optimizer.tasks.base import Toolkit, summarize
from fedora_optimizer.writers import SysctlFile, SystemdUnit, UdevRule, UdevRules

KERNEL_SYSCTL = "/etc/sysctl.d/99-kernel-parameters.conf"
SCHEDULER_SYSCTL = "/etc/sysctl.d/99-scheduler.conf"
MEMORY_SYSCTL = "/etc/sysctl.d/99-memory.conf"
IO_SCHEDULER_RULES = "/etc/udev/rules.d/60-io-scheduler.rules"
MAINTENANCE_SERVICE = "/etc/systemd/system/optimize-maintenance.service"
MAINTENANCE_TIMER = "/etc/systemd/system/optimize-maintenance.timer"

SCHEDULER_TUNING = {
    "kernel.sched_min_granularity_ns": 1000000,
    "kernel.sched_wakeup_granularity_ns": 2000000,
    "kernel.sched_latency_ns": 4000000,
    "kernel.sched_migration_cost_ns": 500000,
    "kernel.sched_rt_runtime_us": 950000,
    "kernel.sched_rt_period_us": 1000000,
    "kernel.sched_autogroup_enabled": 1,
}

MEMORY_TUNING = {
    "vm.swappiness": 10,
    "vm.vfs_cache_pressure": 50,
    "vm.dirty_ratio": 10,
    "vm.dirty_background_ratio": 5,
    "vm.dirty_expire_centisecs": 500,
    "vm.dirty_writeback_centisecs": 100,
    "vm.min_free_kbytes": 65536,
    "vm.zone_reclaim_mode": 1,
    "vm.page-cluster": 0,
    "vm.overcommit_memory": 1,
    "vm.overcommit_ratio": 100,
}


def adjust_kernel_parameters(tk: Toolkit) -> TaskResult:
    tk.info("Adjusting kernel parameters...")
    tk.writer.write(
        KERNEL_SYSCTL,
        SysctlFile({"vm.swappiness": 10, "vm.vfs_cache_pressure": 50}, "Swap behaviour"),
    )
    return summarize(
        tk,
        [tk.sysctl_apply(KERNEL_SYSCTL)],
        "Kernel parameters (vm.swappiness and vm.vfs_cache_pressure) have been adjusted.",
    )


def configure_zram(tk: Toolkit) -> TaskResult:
    tk.info("Configuring zram...")
    if not tk.dnf_install(["zram-generator-defaults"]).ok:
        tk.error("There was an error installing zram-generator-defaults.")
        return TaskResult.recoverable(Reason.NOT_INSTALLED, "zram-generator-defaults install failed")
    if tk.ctx.path("/sys/block/zram0").is_dir():
        tk.success(
            "zram-generator-defaults installed and zram devices appear active (e.g. /sys/block/zram0)."
        )
    else:
        tk.info(
            "zram-generator-defaults installed. Zram devices will likely be activated on the next restart."
        )
    return TaskResult.success("zram configured")


def cleanup_system(tk: Toolkit) -> TaskResult:
    tk.info("Performing system cleanup and cleaning...")
    records = [
        tk.run("Remove unused packages", ["dnf", "autoremove", "-y"]),
        tk.run("Clean DNF cache", ["dnf", "clean", "all"]),
        tk.run("Vacuum journal", ["journalctl", "--vacuum-time=3days"]),
    ]
    return summarize(tk, records, "Cleanup and cleaning completed.")


def io_scheduler_rules() -> UdevRules:
    return UdevRules(
        [
            UdevRule(
                {"ACTION": "add|change", "KERNEL": "sd[a-z]"},
                {"ATTR{queue/scheduler}": "bfq"},
            ),
            UdevRule(
                {"ACTION": "add|change", "KERNEL": "nvme[0-9]n[0-9]"},
                {"ATTR{queue/scheduler}": "none"},
            ),
        ],
        "I/O scheduler optimizations",
    )


def optimize_system_performance(tk: Toolkit) -> TaskResult:
    tk.info("Optimizing system performance...")
    writer = tk.writer
    writer.write(SCHEDULER_SYSCTL, SysctlFile(SCHEDULER_TUNING, "CPU scheduler optimizations"))
    writer.write(IO_SCHEDULER_RULES, io_scheduler_rules())
    writer.write(MEMORY_SYSCTL, SysctlFile(MEMORY_TUNING, "Memory management optimizations"))

    records = [
        tk.sysctl_apply(SCHEDULER_SYSCTL),
        tk.sysctl_apply(MEMORY_SYSCTL),
        tk.run("Reload udev rules", ["udevadm", "control", "--reload-rules"], suppress=True),
        tk.run("Trigger udev", ["udevadm", "trigger"], suppress=True),
    ]
    result = summarize(tk, records, "System performance optimization completed.")
    tk.info("Restart your system to fully activate all changes.")
    return result


def maintenance_units():
    service = SystemdUnit(
        "System Optimization and Maintenance",
        unit={"After": "network.target"},
        service={
            "Type": "oneshot",
            "ExecStart": [
                "/usr/bin/dnf autoremove -y",
                "/usr/bin/dnf clean all",
                "/usr/bin/journalctl --vacuum-time=3days",
                "/usr/sbin/fstrim -av",
                "-/usr/bin/updatedb",
            ],
        },
    )
    timer = SystemdUnit(
        "Run system optimization and maintenance weekly",
        timer={"OnCalendar": "weekly", "Persistent": "true"},
        install={"WantedBy": "timers.target"},
    )
    return service, timer


def optimize_maintenance(tk: Toolkit) -> TaskResult:
    tk.info("Optimizing system maintenance...")
    service, timer = maintenance_units()
    tk.writer.write(MAINTENANCE_SERVICE, service)
    tk.writer.write(MAINTENANCE_TIMER, timer)
    records = [
        tk.services.daemon_reload(),
        tk.services.enable_now("optimize-maintenance.timer"),
    ]
    result = summarize(tk, records, "System maintenance optimization completed.")
    if result.ok:
        tk.info("The system will be automatically optimized weekly.")
    return result
