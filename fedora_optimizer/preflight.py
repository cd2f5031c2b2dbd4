import os
from pathlib import Path
from typing import Callable, Optional

from fedora_optimizer.errors import PrivilegeError
from fedora_optimizer.results import PreconditionResult


def check_root(geteuid: Callable[[], int] = os.geteuid) -> None:
    """
    Ensure the tool runs as root.

    Raises:
        PrivilegeError: If not running as root
    """
    if geteuid() != 0:
        raise PrivilegeError("This tool must be run as root. Use sudo.")


def calling_user() -> str:
    """Name of the operator who invoked the tool through sudo, else the current user."""
    user = os.environ.get("SUDO_USER") or os.environ.get("USER")
    if user:
        return user
    try:
        return os.getlogin()
    except OSError:
        return "root"


def available_memory_mb(meminfo: Path = Path("/proc/meminfo")) -> Optional[float]:
    """MemAvailable from /proc/meminfo in MB (the "available" column of free -m)."""
    try:
        with open(meminfo) as f:
            for line in f:
                if line.startswith("MemAvailable:"):
                    return int(line.split()[1]) / 1024
    except (OSError, ValueError, IndexError):
        return None
    return None


def free_disk_mb(mount: str = "/") -> Optional[float]:
    try:
        stat = os.statvfs(mount)
    except OSError:
        return None
    return (stat.f_bavail * stat.f_frsize) / (1024 * 1024)


def check_resources(
    min_memory_mb: int = 1024,
    min_disk_mb: int = 5120,
    memory_reader: Callable[[], Optional[float]] = available_memory_mb,
    disk_reader: Callable[[], Optional[float]] = free_disk_mb,
) -> PreconditionResult:
    """
    Verify there is enough free memory and root-filesystem space for package work.

    Returns:
        A failing result names the required and available amounts of each
        resource that fell short.
    """
    memory = memory_reader()
    disk = disk_reader()
    problems = []

    if memory is None:
        problems.append("Could not determine available memory")
    elif memory < min_memory_mb:
        problems.append(
            f"Insufficient memory: {memory:.0f} MB available, {min_memory_mb} MB required"
        )
    if disk is None:
        problems.append("Could not determine free disk space on /")
    elif disk < min_disk_mb:
        problems.append(
            f"Insufficient disk space: {disk:.0f} MB available, {min_disk_mb} MB required"
        )

    if problems:
        return PreconditionResult(False, "; ".join(problems))
    return PreconditionResult(
        True, f"Resources OK: {memory:.0f} MB memory, {disk:.0f} MB disk available"
    )
