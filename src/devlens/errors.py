"""Exceptions raised by devlens."""

from typing import Optional


class DevlensError(RuntimeError):
    """Base class for devlens failures."""


class MalformedEntry(DevlensError):
    """A tree listing entry is missing a required field or has a bad value."""

    def __init__(self, index: int, reason: str = "missing 'path'"):
        self.index = index
        self.reason = reason
        super().__init__(f"Malformed tree entry at index {index}: {reason}")


class InvalidInput(DevlensError):
    """A component received input it cannot treat as text."""

    def __init__(self, component: str, detail: Optional[str] = None):
        self.component = component
        message = f"Invalid input for {component}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class InsightsError(DevlensError):
    """The LLM collaborator returned an unusable reply."""
