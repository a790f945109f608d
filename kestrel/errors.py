# kestrel/errors.py
from __future__ import annotations

from typing import Optional


class FormatError(ValueError):
    """A map file does not match its grammar. Fatal for that file."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        line: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> None:
        self.message = message
        self.source = source
        self.line = line
        self.offset = offset
        super().__init__(self._describe())

    def _describe(self) -> str:
        where = self.source or "<data>"
        if self.line is not None:
            where += f":{self.line}"
        if self.offset is not None:
            where += f" @0x{self.offset:x}"
        return f"{where}: {self.message}"


class ResolutionError(LookupError):
    """
    A reference could not be resolved (unknown model, unknown id, missing texture).
    Recoverable: the loader records it and drops the offending reference.
    """

    def __init__(self, message: str, *, subject: str = "") -> None:
        self.subject = subject
        super().__init__(message)


class ResourceError(OSError):
    """Fetching an asset failed. Aborts scene construction."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load {path}: {reason}")
