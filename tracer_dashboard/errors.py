"""Error types raised or returned by the dashboard engine.

- ValidationError: a raw record breaks a Trace/Span invariant. Fatal for the
  whole batch.
- InconsistentDurationWarning: a span's timestamps disagree with its
  duration_ms. Reported, never raised.
- FetchError / FetchResult: explicit outcome of the transport boundary, so a
  failed fetch is never confused with real data.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class ValidationError(ValueError):
    """A raw trace or span record failed validation.

    Attributes
    ----------
    record_index : Optional[int]
        Position of the offending trace in the input batch.
    record_id : Optional[str]
        trace_id (or span_id) of the offending record, when known.
    field : Optional[str]
        Dotted path of the invalid field, e.g. "spans.2.duration_ms".
    """

    def __init__(
        self,
        message: str,
        record_index: Optional[int] = None,
        record_id: Optional[str] = None,
        field: Optional[str] = None,
    ):
        self.message = message
        self.record_index = record_index
        self.record_id = record_id
        self.field = field
        super().__init__(self._describe())

    def _describe(self) -> str:
        context = []
        if self.record_index is not None:
            context.append(f"record {self.record_index}")
        if self.record_id:
            context.append(f"id={self.record_id}")
        if self.field:
            context.append(f"field={self.field}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class InconsistentDurationWarning(BaseModel):
    """A span whose end_time - start_time differs from its duration_ms."""

    model_config = ConfigDict(frozen=True)

    trace_id: str
    span_id: str
    declared_ms: int
    observed_ms: float

    @property
    def delta_ms(self) -> float:
        return self.observed_ms - self.declared_ms


class FetchError(BaseModel):
    """Why a fetch from the tracer API failed.

    kind is one of "http", "transport", "decode" or "validation".
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    message: str
    status_code: Optional[int] = None


class FetchResult(BaseModel, Generic[T]):
    """Either a fetched value or a FetchError, never both."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: Optional[T] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: FetchError) -> "FetchResult[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value, or raise RuntimeError carrying the fetch error."""
        if self.error is not None:
            raise RuntimeError(f"{self.error.kind} error: {self.error.message}")
        return self.value
