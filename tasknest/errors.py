from __future__ import annotations


class TaskNestError(RuntimeError):
    """Base for every recoverable failure raised by the core."""

    kind = "Error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.kind)
        self.detail = detail


class InvalidParent(TaskNestError):
    kind = "InvalidParent"


class EmptyTitle(TaskNestError):
    kind = "EmptyTitle"


class NotFound(TaskNestError):
    kind = "NotFound"


class NotATask(TaskNestError):
    kind = "NotATask"


class NotAWorkspace(TaskNestError):
    kind = "NotAWorkspace"


class InvalidDate(TaskNestError):
    kind = "InvalidDate"


class CorruptData(TaskNestError):
    kind = "CorruptData"


class IoFailure(TaskNestError):
    kind = "IoFailure"
