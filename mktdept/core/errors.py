"""Exceptions raised across the pipeline layers."""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(PipelineError):
    """A required API key, agent or profile is missing."""


class ProjectNotFoundError(PipelineError):
    pass


class PostNotFoundError(PipelineError):
    pass


class StageNotFoundError(PipelineError):
    pass


class DuplicateStageError(PipelineError, ValueError):
    pass


class StageLockedError(PipelineError):
    """Gatekeeper stages have not completed yet."""


class StageBusyError(PipelineError):
    """The stage is already in progress for this post."""


class StageDisabledError(PipelineError):
    pass


class AiServiceError(PipelineError):
    """Non-success response from an AI provider."""

    def __init__(self, message: str, status_code: int, error_detail: str,
                 request_body: str = "", response_body: str = ""):
        super().__init__(f"{message} (HTTP {status_code}): {error_detail}")
        self.status_code = status_code
        self.error_detail = error_detail
        self.request_body = request_body
        self.response_body = response_body

    def full_details(self) -> str:
        return (
            "=== AI SERVICE ERROR ===\n\n"
            f"Status Code: {self.status_code}\n"
            f"Error: {self.error_detail}\n\n"
            "=== REQUEST ===\n"
            f"{self.request_body}\n\n"
            "=== RESPONSE ===\n"
            f"{self.response_body}"
        )
