import io
import subprocess

import pytest
from rich.console import Console

from fedora_optimizer.config import NORD_THEME, AppConfig, Context
from fedora_optimizer.log import setup_logging
from fedora_optimizer.runner import CommandRunner
from fedora_optimizer.tasks.base import Toolkit


class FakeProcesses:
    """Stands in for subprocess.run; later rules win over earlier ones."""

    def __init__(self):
        self.calls = []
        self._rules = []

    def on(self, *prefix, code=0, output="", codes=None, raises=None):
        self._rules.insert(
            0,
            {
                "prefix": tuple(prefix),
                "code": code,
                "output": output,
                "codes": list(codes) if codes else [],
                "raises": raises,
            },
        )

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        for rule in self._rules:
            if tuple(argv[: len(rule["prefix"])]) != rule["prefix"]:
                continue
            if rule["raises"] is not None:
                raise rule["raises"]
            code = rule["codes"].pop(0) if rule["codes"] else rule["code"]
            return subprocess.CompletedProcess(argv, code, stdout=rule["output"])
        return subprocess.CompletedProcess(argv, 0, stdout="")

    def ran(self, *prefix):
        return [c for c in self.calls if tuple(c[: len(prefix)]) == tuple(prefix)]

    def commands(self):
        return [" ".join(c) for c in self.calls]


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedPrompt:
    """Answers prompts from a queue; an empty queue behaves like Ctrl-D.

    A queued exception instance is raised instead of answered.
    """

    def __init__(self):
        self.answers = []
        self.messages = []

    def feed(self, *answers):
        self.answers.extend(answers)

    def __call__(self, message):
        self.messages.append(message)
        if not self.answers:
            raise EOFError
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer


@pytest.fixture
def processes(monkeypatch):
    fake = FakeProcesses()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


@pytest.fixture
def available(monkeypatch):
    """Executables command_exists() reports as installed."""
    names = set()
    monkeypatch.setattr(CommandRunner, "command_exists", staticmethod(lambda cmd: cmd in names))
    return names


@pytest.fixture
def root(tmp_path):
    path = tmp_path / "root"
    path.mkdir()
    return path


@pytest.fixture
def ctx(tmp_path, root, processes, available, monkeypatch):
    monkeypatch.delenv("SUDO_USER", raising=False)
    config = AppConfig(
        HOSTNAME="testhost",
        ROOT=root,
        LOG_DIR=tmp_path / "logs",
        DESKTOP_USER=None,
    )
    console = Console(file=io.StringIO(), theme=NORD_THEME, width=200)
    err_console = Console(file=io.StringIO(), theme=NORD_THEME, width=200)
    log_file = config.LOG_DIR / "run.log"
    logger = setup_logging(log_file, console)
    clock = FakeClock()
    return Context(
        config=config,
        console=console,
        err_console=err_console,
        logger=logger,
        log_file=log_file,
        prompt=ScriptedPrompt(),
        sleep=clock.sleep,
        clock=clock,
    )


@pytest.fixture
def tk(ctx):
    return Toolkit.build(ctx)


def stdout_of(ctx):
    return ctx.console.file.getvalue()


def stderr_of(ctx):
    return ctx.err_console.file.getvalue()


def log_of(ctx):
    return ctx.log_file.read_text()
