import logging
import re
from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter, ValidationError

from cinegenius.core.errors import EmptyOutput, MalformedOutput

logger = logging.getLogger(__name__)

_LEADING_FENCE = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?[ \t]*```$")


def strip_code_fences(raw_text: str) -> str:
    """Removes the ```json ... ``` wrapper some backends put around JSON output."""
    text = raw_text.strip()
    text = _LEADING_FENCE.sub("", text, count=1)
    text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


@lru_cache(maxsize=None)
def _adapter_for(schema: Any) -> TypeAdapter:
    return TypeAdapter(schema)


def extract(raw_text: str, task_label: str, schema: Any) -> Any:
    """
    Parses backend output into the shape registered for a task.

    Args:
        raw_text: Text exactly as the backend returned it.
        task_label: Human-readable task name used in error messages.
        schema: The registered shape (a model class or ``List[Model]``).

    Returns:
        The validated model instance or list of instances.

    Raises:
        EmptyOutput: raw_text is empty or only whitespace.
        MalformedOutput: the text is not JSON of the expected shape.
    """
    if raw_text is None or not raw_text.strip():
        raise EmptyOutput.for_task(task_label)

    clean_text = strip_code_fences(raw_text)
    try:
        return _adapter_for(schema).validate_json(clean_text)
    except ValidationError as e:
        logger.error(f"Failed to parse JSON for {task_label}: {raw_text[:200]}... ({e.error_count()} errors)")
        raise MalformedOutput(
            f"The AI returned an invalid format for {task_label}.",
            task=task_label,
            raw_text=raw_text,
        ) from e
