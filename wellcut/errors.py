"""Exception types raised by the analysis and render pipeline."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wellcut.models import TimeRange


class WellcutError(Exception):
    """Base error carrying the pipeline stage and time range it came from."""

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        time_range: "TimeRange | None" = None,
    ):
        self.stage = stage
        self.time_range = time_range
        super().__init__(message)

    def __str__(self) -> str:
        msg = super().__str__()
        context = []
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.time_range is not None:
            context.append(f"range={self.time_range.start:.3f}-{self.time_range.end:.3f}s")
        if context:
            return f"{msg} [{', '.join(context)}]"
        return msg


class InputError(WellcutError, ValueError):
    """Empty or non-finite buffer, invalid range, or invalid option."""


class ProcessingError(WellcutError, RuntimeError):
    """A stage produced unusable output or the filter graph failed to render."""


class CapabilityGap(WellcutError):
    """The requested output format cannot actually be encoded."""

    def __init__(self, requested_format: str, actual_format: str = "wav"):
        self.requested_format = requested_format
        self.actual_format = actual_format
        super().__init__(
            f"{requested_format} encoding is not implemented; output would be {actual_format}",
            stage="encoding",
        )


class BatchAbort(WellcutError):
    """A clip failed (or the batch was cancelled) and the whole batch was abandoned."""

    def __init__(self, message: str, index: int, time_range: "TimeRange | None" = None):
        self.index = index
        super().__init__(message, stage="batch", time_range=time_range)
