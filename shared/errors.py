"""
Error taxonomy for the reel pipeline.

Only ``InvalidInput`` is allowed to escape a session. Every other error is
caught at a stage or per-highlight boundary and turned into degraded output.
"""


class ReelPipelineError(Exception):
    """Base class for pipeline errors."""


class InvalidInput(ReelPipelineError):
    """Bad URL or request parameters; rejected before any pipeline work."""


class UpstreamUnavailable(ReelPipelineError):
    """Metadata, stream, AI or encode provider is down or missing."""


class StreamUnavailable(UpstreamUnavailable):
    """No downloadable stream candidate exists for the source."""


class ResourceExhausted(ReelPipelineError):
    """A download or encode exceeded its size or time budget."""

    def __init__(self, message: str, limit: int = 0, observed: int = 0):
        self.limit = limit
        self.observed = observed
        super().__init__(message)
