"""Trace and Span models and the batch validator.

Records arrive already deserialized from the tracer API. They are validated
into immutable pydantic models once, and every engine component reads from
those models only.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from .errors import ValidationError
from .formatting import parse_timestamp
from .tree import find_cycle

logger = logging.getLogger(__name__)

TRACE_STATUSES = ("success", "error", "timeout", "partial")
STATUS_PATTERN = "^(" + "|".join(TRACE_STATUSES) + ")$"


def _parse_datetime(v: Any) -> Any:
    """Parse ISO strings into aware datetimes; invalid strings fail validation."""
    if v is None:
        return v
    return parse_timestamp(v)


def _empty_to_none(v: Any) -> Any:
    """Upstream sends "" for absent optional ids."""
    if isinstance(v, str) and not v.strip():
        return None
    return v


class Span(BaseModel):
    """A single model invocation or sub-operation within a trace."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    span_id: str = Field(..., min_length=1)
    trace_id: Optional[str] = None
    parent_span_id: Optional[str] = None
    name: str = ""
    model: str = ""
    provider: str = ""
    start_time: datetime
    end_time: datetime
    duration_ms: int = Field(..., ge=0)
    prompt_tokens: int = Field(0, ge=0)
    completion_tokens: int = Field(0, ge=0)
    total_tokens: int = Field(0, ge=0)
    cost_usd: float = Field(0.0, ge=0, validation_alias=AliasChoices("cost_usd", "cost"))
    status: str = Field(..., pattern=STATUS_PATTERN)
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_datetime(cls, v):
        return _parse_datetime(v)

    @field_validator("parent_span_id", "error_message", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        return _empty_to_none(v)

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v):
        return v if v is not None else {}

    @model_validator(mode="after")
    def check_error_message(self) -> "Span":
        """error_message is only meaningful on failed spans."""
        if self.error_message and self.status == "success":
            raise ValueError("error_message is only allowed when status is not 'success'")
        return self

    @property
    def observed_duration_ms(self) -> float:
        """end_time - start_time in milliseconds."""
        return (self.end_time - self.start_time).total_seconds() * 1000


class Trace(BaseModel):
    """One end-to-end unit of LLM work and its spans.

    Span order is the order they were discovered in, not necessarily start
    time order.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    trace_id: str = Field(..., min_length=1)
    organization_id: str = ""
    project_id: str = ""
    timestamp: datetime
    duration_ms: int = Field(..., ge=0)
    status: str = Field(..., pattern=STATUS_PATTERN)
    total_cost_usd: float = Field(
        0.0, ge=0, validation_alias=AliasChoices("total_cost_usd", "total_cost")
    )
    total_tokens: int = Field(0, ge=0)
    model: str = ""
    provider: str = ""
    trace_type: Optional[str] = None
    user_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    spans: Tuple[Span, ...] = ()

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_datetime(cls, v):
        return _parse_datetime(v)

    @field_validator("user_id", "trace_type", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        return _empty_to_none(v)

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v):
        return v if v is not None else {}

    @field_validator("spans", mode="before")
    @classmethod
    def default_spans(cls, v):
        return v if v is not None else ()

    @model_validator(mode="after")
    def check_span_relations(self) -> "Trace":
        """Span ids must be unique and parent links must not form a cycle."""
        seen = set()
        for span in self.spans:
            if span.span_id in seen:
                raise ValueError(f"duplicate span_id {span.span_id!r} in spans")
            seen.add(span.span_id)

        cycle = find_cycle(self.spans)
        if cycle:
            raise ValueError(f"parent_span_id cycle in spans: {' -> '.join(cycle)}")
        return self

    @property
    def span_count(self) -> int:
        return len(self.spans)

    @property
    def is_success(self) -> bool:
        return self.status == "success"


def _error_field(loc: Tuple[Union[int, str], ...]) -> Optional[str]:
    """Turn a pydantic error location into a dotted field path."""
    parts = [str(p) for p in loc]
    return ".".join(parts) if parts else None


def validate_trace(record: Union[Mapping[str, Any], Trace], index: Optional[int] = None) -> Trace:
    """Validate a single raw trace record.

    Raises
    ------
    ValidationError
        With the record index, trace_id and failing field.
    """
    if isinstance(record, Trace):
        return record

    record_id = record.get("trace_id") if isinstance(record, Mapping) else None
    try:
        return Trace.model_validate(record)
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise ValidationError(
            first["msg"],
            record_index=index,
            record_id=str(record_id) if record_id is not None else None,
            field=_error_field(first["loc"]),
        ) from e


def validate_traces(records: Iterable[Union[Mapping[str, Any], Trace]]) -> List[Trace]:
    """Validate a batch of raw trace records.

    The batch is rejected as a whole: the first invalid record raises and no
    partial result is returned.

    Parameters
    ----------
    records : Iterable[Union[Mapping[str, Any], Trace]]
        Deserialized trace dicts (already validated Trace objects pass through).

    Returns
    -------
    List[Trace]
        Validated traces, in input order.

    Raises
    ------
    ValidationError
        If any record breaks a Trace or Span invariant.
    """
    traces = [validate_trace(record, index) for index, record in enumerate(records)]
    logger.debug(f"Validated batch of {len(traces)} traces")
    return traces
