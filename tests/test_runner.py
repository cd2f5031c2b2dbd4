import subprocess

from conftest import log_of, stderr_of, stdout_of

from fedora_optimizer.retry import RetryPolicy
from fedora_optimizer.runner import EXIT_NOT_FOUND, EXIT_TIMEOUT, CommandRunner


def test_success_is_logged_and_echoed(ctx, processes):
    processes.on("echo", output="hello-from-child\n")
    record = CommandRunner(ctx).run("Say hello", ["echo", "hello"])

    assert record.ok
    assert record.output == "hello-from-child"
    log = log_of(ctx)
    assert "Starting: Say hello" in log
    assert "[INFO] Success: Say hello" in log
    assert "hello-from-child" in log
    assert "hello-from-child" in stdout_of(ctx)
    assert stderr_of(ctx) == ""


def test_suppressed_output_only_reaches_the_log(ctx, processes):
    processes.on("echo", output="hello-from-child")
    CommandRunner(ctx).run("Say hello", ["echo", "hello"], suppress=True)

    assert "hello-from-child" in log_of(ctx)
    assert "hello-from-child" not in stdout_of(ctx)


def test_failure_logs_exit_code_and_output_to_stderr(ctx, processes):
    processes.on("false", code=2, output="something broke\nsecond line")
    record = CommandRunner(ctx).run("Break things", ["false"])

    assert not record.ok
    assert record.exit_code == 2
    log = log_of(ctx)
    assert "[ERROR] Failed (Exit Code: 2): Break things." in log
    assert "something broke\nsecond line" in log
    assert f"See log file: {ctx.log_file}" in log
    err = stderr_of(ctx)
    assert "something broke" in err
    assert "second line" in err
    assert "something broke" not in stdout_of(ctx)


def test_suppressed_failure_stays_off_stderr(ctx, processes):
    processes.on("false", code=1, output="quiet failure")
    CommandRunner(ctx).run("Quiet", ["false"], suppress=True)

    assert "quiet failure" in log_of(ctx)
    assert stderr_of(ctx) == ""


def test_missing_executable_is_a_failure(ctx, processes):
    processes.on("no-such-tool", raises=FileNotFoundError())
    record = CommandRunner(ctx).run("Missing", ["no-such-tool"])

    assert record.exit_code == EXIT_NOT_FOUND
    assert "Failed (Exit Code: 127): Missing." in log_of(ctx)


def test_timeout_is_a_failure(ctx, processes):
    processes.on("sleep", raises=subprocess.TimeoutExpired(["sleep"], 5))
    record = CommandRunner(ctx).run("Slow", ["sleep", "100"])

    assert record.exit_code == EXIT_TIMEOUT
    assert "timed out" in record.output


def test_history_keeps_every_invocation(ctx, processes):
    runner = CommandRunner(ctx)
    runner.run("One", ["true"])
    runner.run("Two", ["true"])

    assert [r.description for r in runner.history] == ["One", "Two"]
    assert runner.history[0].argv == ("true",)


def test_run_with_retry_backs_off_until_success(ctx, processes):
    processes.on("dnf", codes=[1, 1, 0])
    record = CommandRunner(ctx).run_with_retry("Install", ["dnf", "install", "-y", "x"])

    assert record.ok
    assert len(processes.ran("dnf")) == 3
    assert ctx.clock.sleeps == [5.0, 10.0]


def test_run_with_retry_returns_last_failure(ctx, processes):
    processes.on("flatpak", code=1, output="network down")
    policy = RetryPolicy(max_attempts=2, base_delay=1.0, max_delay=1.0)
    record = CommandRunner(ctx).run_with_retry("Remote", ["flatpak", "remote-add"], policy=policy)

    assert not record.ok
    assert len(processes.ran("flatpak")) == 2
    assert "Remote failed after 2 attempts" in log_of(ctx)


def test_capture_strips_output_and_echoes_nothing(ctx, processes):
    processes.on("rpm", output="  40\n")
    code, output = CommandRunner(ctx).capture(["rpm", "-E", "%fedora"])

    assert (code, output) == (0, "40")
    assert "40" not in stdout_of(ctx)
