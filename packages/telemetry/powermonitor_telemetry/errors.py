"""Fatal measurement errors and the powermetrics failure classifier."""

from __future__ import annotations


PERMISSION_SIGNATURE = "must be invoked as the superuser"
PERMISSION_HINT = "Please run 'sudo powermetrics' in terminal first to grant permissions"


class MeasurementError(Exception):
    """Base error for a measurement that could not produce a snapshot."""

    code = "measurement_failed"

    def __init__(self, message: str = "") -> None:
        self.message = message or "Measurement failed"
        super().__init__(self.message)


class SamplerLaunchError(MeasurementError):
    code = "launch_failed"


class SamplerPermissionError(MeasurementError):
    """powermetrics refused to run without superuser rights."""

    code = "permission_denied"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or PERMISSION_HINT)


class SamplerFailedError(MeasurementError):
    code = "sampler_failed"


class EmptyOutputError(MeasurementError):
    code = "empty_output"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or "powermetrics produced no output")


class ClockError(MeasurementError):
    code = "clock_failed"


def classify_sampler_failure(stderr: str, stdout: str = "") -> MeasurementError:
    """Map a non-zero powermetrics exit to an actionable error."""
    if PERMISSION_SIGNATURE in stderr:
        return SamplerPermissionError()
    if stderr:
        return SamplerFailedError(f"powermetrics failed: {stderr}")
    if stdout:
        return SamplerFailedError(f"powermetrics failed: {stdout}")
    return SamplerFailedError("powermetrics failed with no output")
