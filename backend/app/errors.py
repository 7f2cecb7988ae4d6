"""Error taxonomy for the generation pipeline.

Components raise these; the Controller turns them into PipelineOutcome values
so nothing in the pipeline aborts the caller.
"""
from typing import Optional


class PipelineError(Exception):
    """Base class for every failure the pipeline reports to its caller."""

    def operator_message(self) -> str:
        return str(self)


class InsufficientHistory(PipelineError):
    """Not enough distinct sales dates to ask for a forecast."""

    def __init__(self, points: int, required: int):
        self.points = points
        self.required = required
        super().__init__(
            f"Not enough sales history to forecast: found {points} daily point(s), "
            f"need at least {required}. Import more history in the data center and retry."
        )


class LinkError(PipelineError):
    """The inference endpoint could not produce an answer."""

    def operator_message(self) -> str:
        return f"AI link interrupted: {self}"


class TransportError(LinkError):
    """The endpoint was unreachable (DNS, refused connection, timeout)."""


class EndpointError(LinkError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"endpoint returned HTTP {status}: {message}")


class EmptyResponseError(LinkError):
    """The endpoint answered 2xx but carried no usable content."""


class SchemaViolation(PipelineError):
    """The model answered, but the answer does not honour the output contract."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

    def operator_message(self) -> str:
        return f"The model answered but the answer was malformed ({self.field}: {self.reason})"


class KnowledgeBaseError(Exception):
    """Raised by knowledge-base maintenance helpers (duplicate or unknown ids)."""

    def __init__(self, message: str, entry_id: Optional[str] = None):
        self.entry_id = entry_id
        super().__init__(message)
