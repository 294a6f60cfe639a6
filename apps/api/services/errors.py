"""Pipeline error taxonomy."""


class PipelineError(RuntimeError):
    """Base class for failures that end a transcript job."""

    code = "pipeline_failed"


class ResolutionError(PipelineError):
    """Raised when every media extraction strategy failed."""

    code = "resolution_failed"


class TranscriptionError(PipelineError):
    """Raised on a remote transcription error, HTTP failure or polling timeout."""

    code = "transcription_failed"


class ConfigurationError(PipelineError):
    """Raised at the point of use when a required credential is missing."""

    code = "configuration_missing"
