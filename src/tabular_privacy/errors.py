"""
Error taxonomy for the anonymization engine.

Every error carries enough context to diagnose a failed run without
re-running it: the pipeline stage, the attribute and the offending value or
equivalence class, whichever apply. Errors subclass the builtin exception
that describes their concern so that callers catching ``ValueError`` or
``RuntimeError`` continue to work.
"""

from typing import Any, Optional


class AnonymizationError(Exception):
    """
    Base class for all errors raised by tabular_privacy.

    Parameters
    ----------
    message : str
        Human readable description of the failure.
    stage : Optional[str], default=None
        Name of the pipeline stage that failed. The pipeline fills this in
        when the error escapes a stage.
    attribute : Optional[str], default=None
        Attribute (column) involved in the failure.
    value : Any, default=None
        Offending value or equivalence class key.
    """

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        attribute: Optional[str] = None,
        value: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.attribute = attribute
        self.value = value

    def __str__(self) -> str:
        context = []
        if self.stage is not None:
            context.append(f"stage={self.stage}")
        if self.attribute is not None:
            context.append(f"attribute={self.attribute}")
        if self.value is not None:
            context.append(f"value={self.value!r}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class ConfigurationError(AnonymizationError, ValueError):
    """Invalid parameters, detected before any transform runs."""


class DomainError(AnonymizationError, ValueError):
    """A record's value is outside the domain a transform is defined over."""


class SchemaError(AnonymizationError, ValueError):
    """A referenced attribute is absent from the table, or would collide with one."""


class InternalConsistencyError(AnonymizationError, RuntimeError):
    """An engine invariant was violated; this is a bug, not a user error."""
