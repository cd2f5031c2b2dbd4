"""
FLM (Fedora LEMP Multisite) uninstaller.

Removes the Nginx, MariaDB, PHP-FPM and WordPress multisite stack set up by
the companion installer. Every irreversible deletion sits behind its own
exact-phrase gate; nothing here uses the y/N gate.
"""

from typing import List

from rich.panel import Panel
from rich.text import Text

from fedora_optimizer.config import NordColors
from fedora_optimizer.prompts import confirm_phrase
from fedora_optimizer.results import Reason, TaskResult
from fedora_optimizer.runner import CommandRecord
from fedora_optimizer.tasks.base import Toolkit, failed_steps
from fedora_optimizer.ui import print_section

UNINSTALL_LOG = "/var/log/flm_uninstaller.log"

WORDPRESS_ROOT = "/var/www/wordpress"
WP_CONTENT_DIR = f"{WORDPRESS_ROOT}/wp-content"
MARIADB_DATA_DIR = "/var/lib/mysql"
PHP_EXTENSIONS_DIR = "/etc/php.d"
INSTALLER_LOG = "/var/log/lemp_wp_ms_optimized_apcu_install.log"

PROCEED_PHRASE = "PROCEED"
WP_FILES_PHRASE = "DELETE WP FILES"
DATABASES_PHRASE = "DELETE DATABASES"

SERVICES = ["nginx.service", "mariadb.service", "php-fpm.service"]

PHP_PACKAGES = [
    "php", "php-common", "php-fpm", "php-mysqlnd", "php-gd", "php-json",
    "php-mbstring", "php-xml", "php-curl", "php-zip", "php-intl", "php-imagick",
    "php-opcache", "php-soap", "php-bcmath", "php-sodium", "php-exif",
    "php-fileinfo", "php-pecl-apcu", "php-pecl-apcu-devel",
]
OTHER_PACKAGES = ["nginx", "mariadb-server", "phpmyadmin", "curl", "wget", "ImageMagick"]
CERTBOT_PACKAGES = ["certbot", "python3-certbot-nginx"]
CORE_UTILS = [
    "policycoreutils", "policycoreutils-python-utils", "util-linux-user",
    "openssl", "dnf-utils",
]

# (description, paths, recursive)
LEFTOVER_FILES = [
    ("Remove Nginx WP conf", ["/etc/nginx/conf.d/wordpress.conf"], False),
    ("Remove MariaDB opt conf", ["/etc/my.cnf.d/99-wordpress-optimizations.cnf"], False),
    ("Remove phpMyAdmin config dir", ["/etc/phpMyAdmin"], True),
    ("Remove phpMyAdmin lib dir", ["/var/lib/phpmyadmin"], True),
    ("Remove custom OPcache conf", [f"{PHP_EXTENSIONS_DIR}/99-wp-optimized-opcache.ini"], False),
    ("Remove custom APCu conf", [f"{PHP_EXTENSIONS_DIR}/40-apcu.ini"], False),
    ("Remove WP-CLI", ["/usr/local/bin/wp"], False),
    (
        "Remove Nginx WP logs",
        ["/var/log/nginx/wordpress.access.log", "/var/log/nginx/wordpress.error.log"],
        False,
    ),
    ("Remove PHP-FPM error log", ["/var/log/php-fpm/error.log"], False),
    ("Remove main script log", [INSTALLER_LOG], False),
]
LOG_DIRS = ["/var/log/nginx", "/var/log/php-fpm"]


def _warning_panel(tk: Toolkit) -> None:
    body = Text()
    body.append("This will attempt to completely remove:\n", style=NordColors.YELLOW)
    body.append("  - Nginx, MariaDB, PHP-FPM, phpMyAdmin, WP-CLI\n")
    body.append("  - Associated PHP modules (apcu, gd, curl, imagick, etc.)\n")
    body.append(f"  - All WordPress files in {WORDPRESS_ROOT}\n")
    body.append(f"  - All MariaDB databases and data in {MARIADB_DATA_DIR}\n")
    body.append("  - Specific configuration files and logs.\n\n")
    body.append(
        "THIS ACTION CANNOT BE UNDONE. MAKE SURE YOU HAVE BACKUPS!",
        style=f"bold {NordColors.RED}",
    )
    tk.ctx.console.print(
        Panel(
            body,
            title=f"[bold {NordColors.RED}]EXTREME WARNING: DESTRUCTIVE ACTION AHEAD![/]",
            subtitle="FLM Uninstaller (Fedora LEMP Multisite)",
            border_style=NordColors.RED,
        )
    )


def _rm(tk: Toolkit, description: str, paths: List[str], recursive: bool = False) -> CommandRecord:
    flag = "-rf" if recursive else "-f"
    return tk.run(description, ["rm", flag, *(str(tk.ctx.path(p)) for p in paths)])


def _gated_removal(tk: Toolkit, phrase: str, what: str, path: str) -> List[CommandRecord]:
    logger = tk.ctx.logger
    logger.warning(f"Prompting for {what} removal confirmation.")
    message = (
        f"[bold {NordColors.RED}]!! FINAL WARNING: {what.upper()} DELETION !![/]\n"
        f"This will permanently delete all {what} in: [{NordColors.FROST_2}]{path}[/]"
    )
    if not confirm_phrase(tk.ctx, phrase, message):
        logger.info(f"{what} deletion skipped by user.")
        tk.success(f"Skipping {what} deletion.")
        return []
    logger.warning(f"User confirmed {what} deletion.")
    record = _rm(tk, f"Removing {what}", [path], recursive=True)
    if record.ok:
        tk.warning(f"{what} removed.")
    return [record]


def _stop_services(tk: Toolkit) -> None:
    print_section(tk.ctx, "Stopping and disabling services")
    # Units that are already gone or stopped are fine here
    for unit in SERVICES:
        tk.services.stop(unit)
        tk.services.disable(unit)
    tk.ctx.logger.info("Services stopped/disabled (or already were).")
    tk.info("Services stopped/disabled.")


def _remove_firewall_rules(tk: Toolkit) -> None:
    print_section(tk.ctx, "Removing firewall rules")
    for service in ("http", "https"):
        tk.run(
            f"Remove FW {service.upper()}",
            ["firewall-cmd", "--permanent", f"--remove-service={service}"],
            suppress=True,
        )
    tk.run("Reload FW", ["firewall-cmd", "--reload"], suppress=True)
    tk.info("Firewall rules removed.")


def removal_packages(tk: Toolkit) -> List[str]:
    packages = OTHER_PACKAGES + PHP_PACKAGES + CERTBOT_PACKAGES + CORE_UTILS
    code, _ = tk.runner.capture(["rpm", "-q", "remi-release"])
    if code == 0:
        tk.ctx.logger.info("Adding remi-release to removal list.")
        packages.append("remi-release")
    return packages


def _remove_packages(tk: Toolkit) -> List[CommandRecord]:
    print_section(tk.ctx, "Removing installed packages")
    packages = removal_packages(tk)
    tk.ctx.logger.info(f"Packages to remove: {' '.join(packages)}")
    records = [
        tk.run("Remove packages via DNF", ["dnf", "remove", "-y", *packages]),
        tk.run("Autoremove dependencies", ["dnf", "autoremove", "-y"]),
    ]
    tk.info("Packages removed.")
    return records


def _remove_leftovers(tk: Toolkit) -> List[CommandRecord]:
    print_section(tk.ctx, "Removing configuration files and remaining data")
    records = [_rm(tk, description, paths, recursive) for description, paths, recursive in LEFTOVER_FILES]
    records.append(
        tk.run(
            "Remove php.ini backups",
            ["find", str(tk.ctx.path("/etc")), "-name", "php.ini.bak.*", "-delete"],
        )
    )
    records.append(
        tk.run(
            "Remove ext .ini backups",
            ["find", str(tk.ctx.path(PHP_EXTENSIONS_DIR)), "-name", "*.ini.bak*", "-delete"],
        )
    )
    for log_dir in LOG_DIRS:
        path = tk.ctx.path(log_dir)
        if path.is_dir() and not any(path.iterdir()):
            records.append(tk.run(f"Remove {log_dir}", ["rmdir", str(path)]))
        else:
            tk.ctx.logger.info(f"{log_dir} not empty or doesn't exist.")
    tk.info("Configuration files and remaining data removed.")
    return records


def _remove_selinux_context(tk: Toolkit) -> None:
    if not tk.runner.command_exists("semanage"):
        tk.ctx.logger.warning("semanage command not found, skipping SELinux context removal.")
        return
    print_section(tk.ctx, "Removing SELinux file context")
    record = tk.run(
        "Remove SELinux fcontext for wp-content",
        ["semanage", "fcontext", "-d", f"{WP_CONTENT_DIR}(/.*)?"],
        suppress=True,
    )
    if not record.ok:
        tk.ctx.logger.warning("Failed to remove SELinux context (might not have existed).")
    tk.info("SELinux context removal attempted.")


def uninstall_flm(tk: Toolkit) -> TaskResult:
    """Tear down the FLM stack; only ``PROCEED`` typed exactly lets it start."""
    logger = tk.ctx.logger
    logger.info("================ Starting Uninstallation Process ================")
    _warning_panel(tk)
    if not confirm_phrase(tk.ctx, PROCEED_PHRASE):
        logger.info("Uninstallation aborted by user at initial prompt.")
        tk.success("Uninstallation aborted.")
        return TaskResult.skipped("Uninstallation aborted")

    _stop_services(tk)
    _remove_firewall_rules(tk)

    records: List[CommandRecord] = []
    records += _gated_removal(tk, WP_FILES_PHRASE, "WordPress files", WORDPRESS_ROOT)
    records += _gated_removal(tk, DATABASES_PHRASE, "MariaDB data", MARIADB_DATA_DIR)
    records += _remove_packages(tk)
    records += _remove_leftovers(tk)
    _remove_selinux_context(tk)

    print_section(tk.ctx, "System cleanup and update")
    records.append(tk.run("DNF Clean All", ["dnf", "clean", "all"]))
    records.append(tk.run("DNF Update System", ["dnf", "update", "-y"]))

    tk.success("FLM Uninstallation Complete")
    log_hint = f" and the log file ({tk.ctx.log_file})" if tk.ctx.log_file else ""
    tk.info(f"Please review the output above{log_hint} for any errors.")
    tk.warning("It's strongly recommended to reboot the server now for a completely clean state.")
    logger.info("================ Uninstallation Process Finished ================")

    failures = failed_steps(records)
    if failures:
        return TaskResult.recoverable(
            Reason.COMMAND_FAILED, f"{len(failures)} step(s) failed: {', '.join(failures)}"
        )
    return TaskResult.success("FLM stack removed")
