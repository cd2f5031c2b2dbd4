import pytest

from conftest import log_of, stderr_of, stdout_of

from fedora_optimizer.errors import ConfigWriteError
from fedora_optimizer.orchestrator import Menu, TaskRegistry, run_aggregate, run_task
from fedora_optimizer.results import Reason, ResultKind, TaskResult
from fedora_optimizer.tasks import AGGREGATE_SEQUENCE, COMPLETE_KEY, build_registry
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


class Recorder:
    """Builds tasks that note their name when called and return a scripted result."""

    def __init__(self):
        self.calls = []

    def task(self, name, result=None):
        def func(tk):
            self.calls.append(name)
            return result if result is not None else TaskResult.success(name)

        return func


def test_aggregate_declares_every_step_in_order():
    steps = build_registry().sequence(AGGREGATE_SEQUENCE)

    assert [step.func for step in steps] == [
        configure_dns,
        add_rpm_fusion,
        add_flathub,
        install_preload,
        adjust_kernel_parameters,
        configure_zram,
        configure_security,
        configure_gnome,
        configure_chrome,
        optimize_system_performance,
        optimize_network,
        optimize_security,
        optimize_repositories,
        resolve_package_conflicts,
        optimize_maintenance,
        optimize_gnome,
        optimize_wifi,
        optimize_network,
        cleanup_system,
    ]


def test_menu_keys_are_contiguous():
    registry = build_registry()
    assert [task.key for task in registry] == [str(n) for n in range(1, 21)]
    assert registry.get(COMPLETE_KEY).label.startswith("Perform complete optimization")


def test_aggregate_runs_in_order_including_repeats(tk):
    recorder = Recorder()
    registry = TaskRegistry()
    for name in ("a", "b", "c"):
        registry.register(name, name.upper(), recorder.task(name))
    tk.ctx.prompt.feed("y")

    result = run_aggregate(tk, registry.sequence(["a", "b", "a", "c", "a"]))

    assert result.kind is ResultKind.SUCCESS
    assert recorder.calls == ["a", "b", "a", "c", "a"]
    assert "Complete Optimization" in stdout_of(tk.ctx)


def test_aggregate_continues_past_recoverable_and_stops_at_fatal(tk):
    recorder = Recorder()
    registry = TaskRegistry()
    registry.register("1", "one", recorder.task("one", TaskResult.recoverable(Reason.COMMAND_FAILED, "x")))
    registry.register("2", "two", recorder.task("two", TaskResult.skipped("no wifi", Reason.NOT_APPLICABLE)))
    registry.register("3", "three", recorder.task("three", TaskResult.fatal_failure(Reason.WRITE_FAILED, "disk")))
    registry.register("4", "four", recorder.task("four"))
    tk.ctx.prompt.feed("y")

    result = run_aggregate(tk, registry.sequence(["1", "2", "3", "4"]))

    assert recorder.calls == ["one", "two", "three"]
    assert result.fatal
    assert "Stopping after fatal failure in: three" in log_of(tk.ctx)


def test_aggregate_declined(tk):
    recorder = Recorder()
    registry = TaskRegistry()
    registry.register("1", "one", recorder.task("one"))
    tk.ctx.prompt.feed("n")

    result = run_aggregate(tk, registry.sequence(["1"]))

    assert result.kind is ResultKind.SKIPPED
    assert recorder.calls == []
    assert "Optimization cancelled." in stdout_of(tk.ctx)


def test_config_write_error_becomes_fatal(tk):
    def broken(tk):
        raise ConfigWriteError("Failed to write /etc/x: read-only")

    registry = TaskRegistry()
    result = run_task(tk, registry.register("1", "broken", broken))

    assert result.fatal
    assert result.reason is Reason.WRITE_FAILED


def test_unexpected_error_is_logged_with_traceback(tk):
    def buggy(tk):
        raise RuntimeError("kaboom")

    registry = TaskRegistry()
    result = run_task(tk, registry.register("1", "buggy", buggy))

    assert result.fatal
    assert result.reason is Reason.UNEXPECTED
    log = log_of(tk.ctx)
    assert "Traceback" in log
    assert "kaboom" in log


def test_duplicate_key_rejected():
    registry = TaskRegistry()
    registry.register("1", "one", lambda tk: TaskResult.success())
    with pytest.raises(ValueError):
        registry.register("1", "again", lambda tk: TaskResult.success())


def test_unknown_sequence_key_rejected():
    with pytest.raises(KeyError):
        TaskRegistry().sequence(["9"])


def test_menu_dispatches_then_exits(tk):
    recorder = Recorder()
    registry = TaskRegistry()
    registry.register("1", "One", recorder.task("one"))
    tk.ctx.prompt.feed("1", "1", "0")

    assert Menu(tk, registry).run() == 0
    assert recorder.calls == ["one", "one"]
    assert tk.ctx.prompt.messages == ["Select an option [0-1]: "] * 3


def test_menu_rejects_unknown_choice(tk):
    recorder = Recorder()
    registry = TaskRegistry()
    registry.register("1", "One", recorder.task("one"))
    tk.ctx.prompt.feed("99", "", "0")

    assert Menu(tk, registry).run() == 0
    assert recorder.calls == []
    assert stderr_of(tk.ctx).count("Invalid choice. Please try again.") == 2


def test_menu_exits_at_end_of_input(tk):
    registry = TaskRegistry()
    registry.register("1", "One", lambda tk: TaskResult.success())

    assert Menu(tk, registry).run() == 0
    assert "Script is exiting." in stdout_of(tk.ctx)


def test_menu_survives_a_crashing_task(tk):
    calls = []

    def crash(tk):
        calls.append("crash")
        raise RuntimeError("boom")

    registry = TaskRegistry()
    registry.register("1", "Crash", crash)
    tk.ctx.prompt.feed("1", "1", "0")

    assert Menu(tk, registry).run() == 0
    assert calls == ["crash", "crash"]
