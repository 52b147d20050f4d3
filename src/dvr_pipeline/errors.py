from __future__ import annotations

from collections.abc import Sequence

GENERIC_EXIT = 1
INTERRUPTED_EXIT = 130


def exit_status_for(code: int | None) -> int:
    """
    Map a child exit code onto a usable process exit status.
    Negative codes (killed by signal N) become 128+N, like a shell reports them.
    """
    if code is None:
        return GENERIC_EXIT
    if 0 < code <= 255:
        return code
    if code < 0:
        return 128 + (-code)
    return GENERIC_EXIT


class PipelineError(RuntimeError):
    """Fatal condition that aborts the job; the coordinator still finalizes."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        suggestions: Sequence[str] = (),
        ref: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.suggestions = tuple(suggestions)
        self.ref = ref

    @property
    def exit_code(self) -> int:
        return exit_status_for(self.code)


class SpawnFailure(PipelineError):
    def __init__(self, tool: str, reason: str) -> None:
        super().__init__(
            f"{tool} could not be started: {reason}",
            suggestions=[f"Check that {tool} is installed and its location is configured."],
        )
        self.tool = tool


class ToolExitFailure(PipelineError):
    def __init__(
        self,
        tool: str,
        code: int | None,
        message: str | None = None,
        *,
        suggestions: Sequence[str] = (),
        ref: str | None = None,
    ) -> None:
        super().__init__(
            message or f"{tool} exited with code {code}",
            code=code,
            suggestions=suggestions,
            ref=ref,
        )
        self.tool = tool


class FilesystemFailure(PipelineError):
    pass


class LockAcquireError(FilesystemFailure):
    pass


class InterruptedFailure(PipelineError):
    def __init__(self, signame: str = "SIGINT") -> None:
        super().__init__(f"Interrupted by {signame}")
        self.signame = signame

    @property
    def exit_code(self) -> int:
        return INTERRUPTED_EXIT
