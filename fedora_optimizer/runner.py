import datetime
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from fedora_optimizer.config import Context, NordColors
from fedora_optimizer.log import FILE_ONLY
from fedora_optimizer.retry import RetryPolicy, retry_operation

EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


@dataclass(frozen=True)
class CommandRecord:
    """One external command invocation. Never mutated after creation."""

    description: str
    argv: Tuple[str, ...]
    exit_code: int
    output: str
    timestamp: datetime.datetime = field(default_factory=datetime.datetime.now)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner:
    """Runs collaborator commands, logging every invocation to the run log."""

    def __init__(self, ctx: Context):
        self.ctx = ctx
        self.history: List[CommandRecord] = []

    def _execute(self, argv: Sequence[str]) -> Tuple[int, str]:
        timeout = self.ctx.config.COMMAND_TIMEOUT
        try:
            result = subprocess.run(
                list(argv),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=timeout,
            )
            return result.returncode, (result.stdout or "").rstrip("\n")
        except FileNotFoundError:
            return EXIT_NOT_FOUND, f"Command not found: {argv[0]}"
        except subprocess.TimeoutExpired as e:
            partial = e.output if isinstance(e.output, str) else ""
            return EXIT_TIMEOUT, f"{partial}\nCommand timed out after {timeout} seconds".strip()

    def run(self, description: str, argv: Sequence[str], suppress: bool = False) -> CommandRecord:
        """
        Run one command with stdout and stderr merged.

        Args:
            description: Human-readable step name for the log
            argv: Argument vector, executed without a shell
            suppress: Keep captured output off the console (it is still logged)

        Returns:
            The immutable record of the invocation.
        """
        logger = self.ctx.logger
        logger.info(f"Starting: {description}")
        logger.debug(f"Executing: {' '.join(argv)}")
        exit_code, output = self._execute(argv)
        record = CommandRecord(description, tuple(argv), exit_code, output)
        self.history.append(record)

        if record.ok:
            logger.info(f"Success: {description}")
            if output:
                logger.info(output, extra=FILE_ONLY)
                if not suppress:
                    self.ctx.console.print(output, markup=False, highlight=False)
            return record

        logger.error(f"Failed (Exit Code: {exit_code}): {description}.")
        logger.error(f"Output:\n{output}", extra=FILE_ONLY)
        if not suppress:
            err = self.ctx.err_console
            err.print(f"[{NordColors.RED}]---- ERROR Output ----[/]")
            err.print(output, markup=False, highlight=False)
            err.print(f"[{NordColors.RED}]---------------------[/]")
        if self.ctx.log_file is not None:
            logger.error(f"See log file: {self.ctx.log_file}")
        return record

    def run_with_retry(
        self,
        description: str,
        argv: Sequence[str],
        policy: Optional[RetryPolicy] = None,
        suppress: bool = False,
    ) -> CommandRecord:
        """Run a network-facing command, backing off between failed attempts."""
        attempts: List[CommandRecord] = []

        def attempt() -> bool:
            attempts.append(self.run(description, argv, suppress=suppress))
            return attempts[-1].ok

        retry_operation(
            attempt,
            policy or self.ctx.config.RETRY,
            sleep=self.ctx.sleep,
            operation_name=description,
            logger=self.ctx.logger,
        )
        return attempts[-1]

    def capture(self, argv: Sequence[str]) -> Tuple[int, str]:
        """Run a read-only query; nothing is echoed and only the debug log sees it."""
        exit_code, output = self._execute(argv)
        self.ctx.logger.debug(f"Query {' '.join(argv)} -> {exit_code}")
        return exit_code, output.strip()

    @staticmethod
    def command_exists(cmd: str) -> bool:
        return shutil.which(cmd) is not None
