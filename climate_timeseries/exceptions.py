"""
Error taxonomy for the regional time-series pipeline.

Every error carries the source it came from and the pipeline step that
raised it, so the CLI/report layer can surface both verbatim. None of
these errors are retryable: input files are static.
"""

from enum import Enum
from typing import Any, Dict, Optional


class PipelineStep(str, Enum):
    """Pipeline steps where an error can originate."""
    READ = "read"
    CALENDAR = "calendar"
    CONCATENATE = "concatenate"
    REGION = "region"
    RESAMPLE = "resample"


class SeriesPipelineError(Exception):
    """Base class for all pipeline errors."""

    default_step: Optional[PipelineStep] = None

    def __init__(self, message: str, source: Optional[str] = None,
                 step: Optional[PipelineStep] = None):
        self.message = message
        self.source = source
        self.step = step or self.default_step
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.step:
            context.append(f"step={self.step.value}")
        if self.source:
            context.append(f"source={self.source}")
        if context:
            return f"{self.message} [{', '.join(context)}]"
        return self.message

    def with_source(self, source: str, replace: bool = False) -> "SeriesPipelineError":
        """Attach a source identifier if none was recorded at the point of origin."""
        if self.source is None or replace:
            self.source = source
            self.args = (self._format(),)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serializable error summary for reports."""
        return {
            "error_type": type(self).__name__,
            "error_message": self.message,
            "source": self.source,
            "step": self.step.value if self.step else None,
        }


class SourceUnavailable(SeriesPipelineError):
    """The source locator cannot be opened."""
    default_step = PipelineStep.READ


class VariableNotFound(SeriesPipelineError):
    """A named coordinate or variable is absent from the source."""
    default_step = PipelineStep.READ


class MalformedTimeUnits(SeriesPipelineError):
    """Time units do not match '<unit> since <YYYY>-<MM>-<DD>' or the calendar is unknown."""
    default_step = PipelineStep.CALENDAR


class AxisMismatch(SeriesPipelineError):
    """Spatial axes differ between sources."""
    default_step = PipelineStep.CONCATENATE


class ChronologyError(AxisMismatch):
    """Stitched time axis is not strictly increasing."""


class ShapeError(SeriesPipelineError):
    """A field does not have the expected (time, lat, lon) rank/shape."""
    default_step = PipelineStep.CONCATENATE


class EmptyRegion(SeriesPipelineError):
    """Region bounds select no grid cells."""
    default_step = PipelineStep.REGION


class AllMissing(SeriesPipelineError):
    """Every selected cell is missing at some time step."""
    default_step = PipelineStep.REGION

    def __init__(self, message: str, source: Optional[str] = None,
                 step: Optional[PipelineStep] = None, time_index: Optional[int] = None):
        self.time_index = time_index
        super().__init__(message, source, step)
