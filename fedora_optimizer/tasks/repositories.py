"""Package repository and package-manager tasks."""

from fedora_optimizer.preflight import check_resources
from fedora_optimizer.results import Reason, TaskResult
from fedora_optimizer.tasks.base import Toolkit, summarize
from fedora_optimizer.writers import IniFile

RPMFUSION_HOST = "download1.rpmfusion.org"
RPMFUSION_URL = "https://download1.rpmfusion.org/{tier}/fedora/rpmfusion-{tier}-release-{release}.noarch.rpm"
FLATHUB_HOST = "flathub.org"
FLATHUB_REPO = "https://flathub.org/repo/flathub.flatpakrepo"
STEAM_REPO = "https://negativo17.org/repos/fedora-steam.repo"
DNF_CONF = "/etc/dnf/dnf.conf"


def fedora_release(tk: Toolkit) -> str:
    code, output = tk.runner.capture(["rpm", "-E", "%fedora"])
    return output if code == 0 and output.isdigit() else ""


def add_rpm_fusion(tk: Toolkit) -> TaskResult:
    tk.info("Adding RPM Fusion repositories...")
    blocked = tk.require_network(RPMFUSION_HOST)
    if blocked:
        return blocked

    release = fedora_release(tk)
    if not release:
        tk.error("Could not determine the Fedora release.")
        return TaskResult.recoverable(Reason.COMMAND_FAILED, "rpm -E %fedora failed")

    urls = [RPMFUSION_URL.format(tier=tier, release=release) for tier in ("free", "nonfree")]
    record = tk.runner.run_with_retry(
        "Install RPM Fusion release packages",
        ["dnf", "install", "-y", "--nogpgcheck", *urls],
    )
    if record.ok:
        tk.success("RPM Fusion repositories (free and nonfree) have been added.")
        return TaskResult.success("RPM Fusion added")
    tk.error("Failed to add RPM Fusion repositories after multiple attempts.")
    return TaskResult.recoverable(Reason.NETWORK_UNREACHABLE, "RPM Fusion install failed")


def add_flathub(tk: Toolkit) -> TaskResult:
    tk.info("Adding Flathub repository...")
    if not tk.runner.command_exists("flatpak"):
        tk.info("Installing flatpak...")
        if not tk.dnf_install(["flatpak"]).ok:
            return TaskResult.recoverable(Reason.NOT_INSTALLED, "flatpak install failed")

    blocked = tk.require_network(FLATHUB_HOST)
    if blocked:
        return blocked

    record = tk.runner.run_with_retry(
        "Add Flathub remote",
        ["flatpak", "remote-add", "--if-not-exists", "flathub", FLATHUB_REPO],
    )
    if record.ok:
        tk.success("Flathub repository has been added.")
        return TaskResult.success("Flathub added")
    tk.error("Failed to add Flathub repository after multiple attempts.")
    return TaskResult.recoverable(Reason.NETWORK_UNREACHABLE, "flatpak remote-add failed")


def install_preload(tk: Toolkit) -> TaskResult:
    tk.info("Enabling the elxreno/preload COPR repository...")
    if not tk.runner.run_with_retry(
        "Enable elxreno/preload COPR", ["dnf", "copr", "enable", "-y", "elxreno/preload"]
    ).ok:
        tk.error("There was an error enabling the elxreno/preload COPR repository.")
        return TaskResult.recoverable(Reason.COMMAND_FAILED, "COPR enable failed")

    tk.info("COPR repository enabled. Installing preload...")
    if not tk.dnf_install(["preload"]).ok:
        tk.error("There was an error installing preload from the COPR repository.")
        return TaskResult.recoverable(Reason.NOT_INSTALLED, "preload install failed")

    if not tk.services.enable_now("preload").ok:
        tk.error(
            "preload installed, but there was an error starting the service. "
            "Check preload status with 'systemctl status preload'."
        )
        return TaskResult.recoverable(Reason.SERVICE_NOT_READY, "preload not started")
    tk.success("preload installed and started.")
    return TaskResult.success("preload running")


def dnf_conf() -> IniFile:
    return IniFile(
        {
            "main": {
                "gpgcheck": 1,
                "installonly_limit": 3,
                "clean_requirements_on_remove": "True",
                "best": "False",
                "skip_if_unavailable": "True",
                "fastestmirror": "True",
                "max_parallel_downloads": 10,
                "defaultyes": "True",
                "keepcache": "True",
            }
        }
    )


def optimize_repositories(tk: Toolkit) -> TaskResult:
    tk.info("Optimizing software repositories...")
    tk.writer.write(DNF_CONF, dnf_conf(), backup=True)

    records = [
        tk.run("Add Steam repository", ["dnf", "config-manager", "--add-repo", STEAM_REPO]),
    ]
    if tk.runner.command_exists("flatpak"):
        records.append(
            tk.runner.run_with_retry(
                "Add Flathub remote",
                ["flatpak", "remote-add", "--if-not-exists", "flathub", FLATHUB_REPO],
            )
        )
        records.append(tk.run("Update Flatpak apps", ["flatpak", "update", "-y"], suppress=True))
    else:
        tk.warning("flatpak is not installed; skipping Flatpak configuration.")

    result = summarize(tk, records, "Software repositories optimization completed.")
    tk.info("Run 'sudo dnf update' to synchronize the repositories.")
    return result


def resolve_package_conflicts(tk: Toolkit) -> TaskResult:
    """Repair the RPM database state: duplicates, broken dependencies, version skew."""
    config = tk.ctx.config
    tk.info("Resolving package conflicts...")
    resources = check_resources(config.MIN_MEMORY_MB, config.MIN_DISK_MB)
    if not resources.ok:
        tk.error(resources.message)
        return TaskResult.recoverable(Reason.INSUFFICIENT_RESOURCES, resources.message)
    tk.ctx.logger.info(resources.message)

    records = [
        tk.run("Clean DNF metadata", ["dnf", "clean", "all"], suppress=True),
        tk.run("Check RPM database", ["dnf", "check"]),
        tk.run("Remove duplicate packages", ["dnf", "remove", "--duplicates", "-y"]),
        tk.run("Synchronize package versions", ["dnf", "distro-sync", "-y", "--allowerasing"]),
    ]
    return summarize(tk, records, "Package conflicts resolved.")
