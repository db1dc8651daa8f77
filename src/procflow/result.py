"""Process invocation result."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidResultError

__all__ = ["ProcessResult"]


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one process invocation.

    Attributes:
        exit_code: Exit code reported by the process
        output: Lines captured from every stream configured with CAPTURE,
            in the order the process produced them
    """

    exit_code: int
    output: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def validate(self) -> tuple[str, ...]:
        """Ensure the invocation concluded successfully.

        Returns:
            The captured output

        Raises:
            InvalidResultError: If the exit code is not 0
        """
        if self.exit_code != 0:
            raise InvalidResultError(self.exit_code)
        return self.output
