"""
Task registry, the interactive menu loop and the complete-optimization run.

Tasks are plain callables taking the run's toolkit and returning a
TaskResult. The menu dispatches one task at a time and always comes back
to the selection prompt, whatever the task reported.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from rich.align import Align
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text

from fedora_optimizer.config import NordColors
from fedora_optimizer.errors import ConfigWriteError
from fedora_optimizer.prompts import confirm
from fedora_optimizer.results import Reason, ResultKind, TaskResult
from fedora_optimizer.ui import (
    create_header,
    print_error,
    print_message,
    print_section,
    print_step,
    print_success,
    status_report,
)

TaskFunc = Callable[[Any], TaskResult]


@dataclass(frozen=True)
class Task:
    key: str
    label: str
    func: TaskFunc


class TaskRegistry:
    """Numbered tasks in menu order."""

    def __init__(self) -> None:
        self._tasks: Dict[str, Task] = {}

    def register(self, key: str, label: str, func: TaskFunc) -> Task:
        if key in self._tasks:
            raise ValueError(f"Duplicate menu key: {key}")
        task = Task(key, label, func)
        self._tasks[key] = task
        return task

    def get(self, key: str) -> Optional[Task]:
        return self._tasks.get(key)

    def sequence(self, keys: Sequence[str]) -> List[Task]:
        """Resolve an ordered list of keys; repeated keys stay repeated."""
        missing = [key for key in keys if key not in self._tasks]
        if missing:
            raise KeyError(f"Unknown task keys: {', '.join(missing)}")
        return [self._tasks[key] for key in keys]

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)


def run_task(tk, task: Task) -> TaskResult:
    """Run one task; failures to write configuration and unexpected errors become FATAL."""
    ctx = tk.ctx
    print_section(ctx, task.label)
    ctx.logger.info(f"Task {task.key} started: {task.label}")
    try:
        result = task.func(tk)
    except ConfigWriteError as e:
        ctx.logger.error(f"Task {task.key} could not write configuration: {e}")
        print_error(ctx, str(e))
        result = TaskResult.fatal_failure(Reason.WRITE_FAILED, str(e))
    except Exception as e:
        ctx.logger.exception(f"Task {task.key} raised an unexpected error")
        print_error(ctx, f"An unexpected error occurred: {e}")
        result = TaskResult.fatal_failure(Reason.UNEXPECTED, str(e))
    ctx.logger.info(
        f"Task {task.key} finished: {result.kind.value} ({result.reason.value}) {result.message}".rstrip()
    )
    return result


def run_sequence(tk, tasks: Sequence[Task]) -> List[Tuple[Task, TaskResult]]:
    """Run ``tasks`` in order; RECOVERABLE and SKIPPED continue, FATAL stops."""
    outcomes: List[Tuple[Task, TaskResult]] = []
    for position, task in enumerate(tasks, 1):
        print_step(tk.ctx, f"Step {position}/{len(tasks)}: {task.label}")
        result = run_task(tk, task)
        outcomes.append((task, result))
        if result.fatal:
            tk.ctx.logger.error(f"Stopping after fatal failure in: {task.label}")
            print_error(tk.ctx, f"Stopping: '{task.label}' failed fatally.")
            break
    return outcomes


def run_aggregate(tk, tasks: Sequence[Task]) -> TaskResult:
    ctx = tk.ctx
    if not confirm(ctx, "Are you sure you want to perform all optimizations?"):
        print_message(ctx, "Optimization cancelled.")
        return TaskResult.skipped("Optimization cancelled")

    print_message(ctx, "Performing complete system optimization...")
    outcomes = run_sequence(tk, tasks)
    status_report(
        ctx,
        "Complete Optimization",
        [(f"{task.key}. {task.label}", result) for task, result in outcomes],
    )

    kinds = {result.kind for _, result in outcomes}
    if ResultKind.FATAL in kinds:
        return TaskResult.fatal_failure(outcomes[-1][1].reason, "Complete optimization stopped early")
    if ResultKind.RECOVERABLE in kinds:
        failed = sum(1 for _, result in outcomes if result.kind is ResultKind.RECOVERABLE)
        return TaskResult.recoverable(
            Reason.COMMAND_FAILED, f"{failed} of {len(outcomes)} steps need attention"
        )
    print_success(ctx, "Complete system optimization completed. All improvements have been applied.")
    print_message(ctx, "Restart your system to fully activate all changes.")
    return TaskResult.success("All optimizations applied")


class Menu:
    """Numbered menu loop: render, read one selection, dispatch, repeat."""

    EXIT_KEY = "0"

    def __init__(self, tk, registry: TaskRegistry):
        self.tk = tk
        self.registry = registry

    def render(self) -> None:
        ctx = self.tk.ctx
        console = ctx.console
        console.print(create_header())
        now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        console.print(
            Align.center(
                f"[{NordColors.SNOW_STORM_1}]Current Time: {now}[/] | "
                f"[{NordColors.SNOW_STORM_1}]Host: {ctx.config.HOSTNAME}[/]"
            )
        )
        console.print()
        table = Table(show_header=True, header_style=f"bold {NordColors.FROST_3}", expand=True)
        table.add_column("Option", style="bold", width=8)
        table.add_column("Description", style="bold")
        for task in self.registry:
            table.add_row(task.key, task.label)
        table.add_row(self.EXIT_KEY, "Exit")
        console.print(table)

    def read_choice(self) -> Optional[str]:
        """The operator's selection, or None once input is exhausted."""
        try:
            return self.tk.ctx.prompt(f"Select an option [{self.EXIT_KEY}-{len(self.registry)}]: ").strip()
        except EOFError:
            return None

    def run(self) -> int:
        ctx = self.tk.ctx
        while True:
            self.render()
            choice = self.read_choice()
            if choice is None or choice == self.EXIT_KEY:
                ctx.logger.info("Menu exited by user")
                ctx.console.print(
                    Panel(
                        Text("Script is exiting.", style=f"bold {NordColors.FROST_2}"),
                        border_style=Style(color=NordColors.FROST_1),
                        padding=(1, 2),
                    )
                )
                return 0
            task = self.registry.get(choice)
            if task is None:
                print_error(ctx, "Invalid choice. Please try again.")
                continue
            run_task(self.tk, task)
            ctx.console.print()
