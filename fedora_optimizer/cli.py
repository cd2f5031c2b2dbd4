"""Console entry points: the optimizer menu and the standalone FLM uninstaller."""

import signal
import sys
from pathlib import Path
from typing import Any, Callable, Optional

from fedora_optimizer.config import AppConfig, Context, build_console
from fedora_optimizer.errors import OptimizerError, PrivilegeError
from fedora_optimizer.log import setup_logging
from fedora_optimizer.orchestrator import Menu, Task, run_task
from fedora_optimizer.preflight import calling_user, check_root
from fedora_optimizer.tasks import build_registry
from fedora_optimizer.tasks.base import Toolkit
from fedora_optimizer.tasks.uninstall import UNINSTALL_LOG, uninstall_flm
from fedora_optimizer.ui import print_error, print_warning


def build_context(config: AppConfig) -> Context:
    console = build_console()
    err_console = build_console(stderr=True)
    log_file = config.log_path()
    # A fixed log file shares its directory with other programs' logs
    max_size = config.MAX_LOG_SIZE if config.LOG_FILE is None else None
    logger = setup_logging(log_file, console, max_size, f"{config.LOG_PREFIX}_*.log")
    return Context(
        config=config,
        console=console,
        err_console=err_console,
        logger=logger,
        log_file=log_file,
    )


def install_signal_handlers(ctx: Context) -> None:
    def signal_handler(signum: int, frame: Optional[Any]) -> None:
        try:
            sig_name = signal.Signals(signum).name
        except ValueError:
            sig_name = f"signal {signum}"
        print_warning(ctx, f"Process interrupted by {sig_name}. No changes were rolled back.")
        ctx.logger.warning(f"Interrupted by {sig_name}")
        sys.exit(128 + signum)

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, signal_handler)


def _run(config: AppConfig, body: Callable[[Toolkit], int]) -> int:
    try:
        check_root()
    except PrivilegeError as e:
        build_console(stderr=True).print(f"[bold red]ERROR: {e}[/]")
        return 1

    ctx = build_context(config)
    ctx.logger.info(f"Started by {calling_user()} on {config.HOSTNAME}, logging to {ctx.log_file}")
    install_signal_handlers(ctx)
    tk = Toolkit.build(ctx)
    try:
        return body(tk)
    except KeyboardInterrupt:
        # SIGINT exits through signal_handler; this is Ctrl-C read by prompt_toolkit
        ctx.logger.warning("Interrupted by SIGINT")
        print_warning(ctx, "Operation cancelled by user")
        return 130
    except OptimizerError as e:
        ctx.logger.error(str(e))
        print_error(ctx, str(e))
        return 1


def main() -> int:
    def menu(tk: Toolkit) -> int:
        tk.ctx.console.clear()
        return Menu(tk, build_registry()).run()

    return _run(AppConfig.from_env(), menu)


def uninstaller_main() -> int:
    def uninstall(tk: Toolkit) -> int:
        result = run_task(tk, Task("flm", "FLM Uninstaller (Fedora LEMP Multisite)", uninstall_flm))
        return 1 if result.fatal else 0

    return _run(AppConfig.from_env(LOG_FILE=Path(UNINSTALL_LOG)), uninstall)


if __name__ == "__main__":
    sys.exit(main())
