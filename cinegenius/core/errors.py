from typing import Optional


class GenerationError(Exception):
    """A task-level failure, tagged with the label of the task that failed."""

    def __init__(self, message: str, task: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.task = task

    def __str__(self) -> str:
        return self.message


class InvalidInput(GenerationError):
    """The caller's input cannot be used for this task."""


class EmptyInput(InvalidInput):
    """The caller supplied nothing usable (no script, blank question)."""


class TransportFailure(GenerationError):
    """The generative backend could not be reached or rejected the request."""


class EmptyOutput(GenerationError):
    """The backend answered successfully but with no text or no image."""

    @classmethod
    def for_task(cls, task: str) -> "EmptyOutput":
        return cls(f"Received an empty response from the AI for {task}.", task=task)


class MalformedOutput(GenerationError):
    """The backend returned text that does not parse into the expected shape."""

    def __init__(self, message: str, task: Optional[str] = None, raw_text: str = ""):
        super().__init__(message, task=task)
        self.raw_text = raw_text
