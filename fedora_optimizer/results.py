from dataclasses import dataclass
from enum import Enum


class ResultKind(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


class Reason(Enum):
    NONE = "none"
    DECLINED = "declined"
    COMMAND_FAILED = "command_failed"
    NETWORK_UNREACHABLE = "network_unreachable"
    INSUFFICIENT_RESOURCES = "insufficient_resources"
    NOT_INSTALLED = "not_installed"
    NOT_APPLICABLE = "not_applicable"
    SERVICE_NOT_READY = "service_not_ready"
    WRITE_FAILED = "write_failed"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class TaskResult:
    """Outcome of one task invocation."""

    kind: ResultKind
    reason: Reason = Reason.NONE
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.kind in (ResultKind.SUCCESS, ResultKind.SKIPPED)

    @property
    def fatal(self) -> bool:
        return self.kind is ResultKind.FATAL

    @classmethod
    def success(cls, message: str = "") -> "TaskResult":
        return cls(ResultKind.SUCCESS, Reason.NONE, message)

    @classmethod
    def skipped(cls, message: str = "", reason: Reason = Reason.DECLINED) -> "TaskResult":
        return cls(ResultKind.SKIPPED, reason, message)

    @classmethod
    def recoverable(cls, reason: Reason, message: str = "") -> "TaskResult":
        return cls(ResultKind.RECOVERABLE, reason, message)

    @classmethod
    def fatal_failure(cls, reason: Reason, message: str = "") -> "TaskResult":
        return cls(ResultKind.FATAL, reason, message)


@dataclass(frozen=True)
class PreconditionResult:
    ok: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok
