import datetime
import logging
import os
import socket
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from prompt_toolkit import prompt as pt_prompt
from prompt_toolkit.history import InMemoryHistory
from rich.console import Console
from rich.theme import Theme

from fedora_optimizer.retry import RetryPolicy


# ----------------------------------------------------------------
# Nord-Themed Colors
# ----------------------------------------------------------------
class NordColors:
    """Nord color palette for consistent theming throughout the application."""

    # Polar Night (dark background)
    POLAR_NIGHT_1: str = "#2E3440"
    POLAR_NIGHT_4: str = "#4C566A"

    # Snow Storm (light text)
    SNOW_STORM_1: str = "#D8DEE9"
    SNOW_STORM_2: str = "#E5E9F0"

    # Frost (blue accents)
    FROST_1: str = "#8FBCBB"
    FROST_2: str = "#88C0D0"
    FROST_3: str = "#81A1C1"
    FROST_4: str = "#5E81AC"

    # Aurora (other accents)
    RED: str = "#BF616A"
    ORANGE: str = "#D08770"
    YELLOW: str = "#EBCB8B"
    GREEN: str = "#A3BE8C"
    PURPLE: str = "#B48EAD"


NORD_THEME = Theme(
    {
        "info": f"bold {NordColors.FROST_2}",
        "warning": f"bold {NordColors.YELLOW}",
        "error": f"bold {NordColors.RED}",
        "success": f"bold {NordColors.GREEN}",
        "header": f"{NordColors.FROST_2} bold",
        "section": f"{NordColors.FROST_3} bold",
        "step": f"{NordColors.FROST_2}",
        "prompt": f"bold {NordColors.PURPLE}",
        "command": f"bold {NordColors.FROST_4}",
        "path": f"italic {NordColors.FROST_1}",
    }
)


def build_console(stderr: bool = False, file=None) -> Console:
    return Console(theme=NORD_THEME, stderr=stderr, file=file)


# ----------------------------------------------------------------
# Application Configuration
# ----------------------------------------------------------------
@dataclass
class AppConfig:
    """Settings for one run of the optimizer or the uninstaller."""

    HOSTNAME: str = field(default_factory=socket.gethostname)
    LOG_DIR: Path = Path("/var/log/fot")
    LOG_PREFIX: str = "fot"
    # Fixed log path for the standalone uninstaller; None means timestamped.
    LOG_FILE: Optional[Path] = None
    MAX_LOG_SIZE: int = 10 * 1024 * 1024  # 10 MB across all run logs
    ROOT: Path = Path("/")

    COMMAND_TIMEOUT: int = 1800  # seconds; dnf transactions can be slow
    RETRY: RetryPolicy = field(default_factory=RetryPolicy)

    # Resource thresholds
    MIN_MEMORY_MB: int = 1024
    MIN_DISK_MB: int = 5120

    # Network probing
    PROBE_HOST: str = "1.1.1.1"
    PROBE_TIMEOUT: int = 3  # seconds per ping
    SERVICE_READY_TIMEOUT: float = 15.0
    SERVICE_POLL_INTERVAL: float = 0.5

    # DNS
    PRIMARY_DNS: List[str] = field(default_factory=lambda: ["1.1.1.2", "1.0.0.2"])
    FALLBACK_DNS: List[str] = field(default_factory=lambda: ["8.8.8.8", "9.9.9.9"])

    # Desktop user (for gsettings and browser profiles)
    DESKTOP_USER: Optional[str] = field(
        default_factory=lambda: os.environ.get("SUDO_USER")
    )

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides) -> "AppConfig":
        env = os.environ if environ is None else environ
        config = cls(**overrides)
        if env.get("FOT_LOG_DIR"):
            config.LOG_DIR = Path(env["FOT_LOG_DIR"])
        if env.get("FOT_ROOT"):
            config.ROOT = Path(env["FOT_ROOT"])
        return config

    def log_path(self) -> Path:
        if self.LOG_FILE is not None:
            return self.LOG_FILE
        ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.LOG_DIR / f"{self.LOG_PREFIX}_{ts}.log"


# ----------------------------------------------------------------
# Run Context
# ----------------------------------------------------------------
def _default_prompt() -> Callable[[str], str]:
    history = InMemoryHistory()

    def ask(message: str) -> str:
        return pt_prompt(message, history=history)

    return ask


@dataclass
class Context:
    """Everything a task needs, passed explicitly instead of module globals."""

    config: AppConfig
    console: Console
    err_console: Console
    logger: logging.Logger
    log_file: Optional[Path] = None
    prompt: Callable[[str], str] = field(default_factory=_default_prompt)
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic

    def path(self, target: Union[str, Path]) -> Path:
        """Map an absolute system path onto the configured root."""
        target = Path(target)
        if target.is_absolute():
            target = target.relative_to(target.anchor)
        return self.config.ROOT / target
