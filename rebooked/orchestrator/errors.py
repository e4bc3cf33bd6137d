"""Error taxonomy for the bursary pack pipeline.

Every error carries the HTTP status the API layer answers with and a
message that is shown to the student as-is.
"""


class PackPipelineError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class Unauthorized(PackPipelineError):
    status_code = 401


class Forbidden(PackPipelineError):
    status_code = 403


class FeatureDisabled(PackPipelineError):
    status_code = 503


class RateLimited(PackPipelineError):
    """Provider throttled us — the caller may retry later."""
    status_code = 429


class QuotaExhausted(PackPipelineError):
    """Provider credits are used up — needs operator action, not a retry."""
    status_code = 402


class UpstreamError(PackPipelineError):
    status_code = 500


class DataAccessError(UpstreamError):
    pass


class CompletionTimeout(UpstreamError):
    pass
