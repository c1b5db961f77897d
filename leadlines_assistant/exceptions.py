"""Error taxonomy for the conversation core."""

from __future__ import annotations

from typing import Any


class LeadlinesError(Exception):
    """Base exception for the assistant core.

    ``http_status`` is the status the HTTP surface answers with; it is unrelated
    to any status code returned by the assistant provider.
    """

    def __init__(
        self,
        message: str,
        http_status: int = 500,
        code: str = "E5000",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.http_status = http_status
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": {
                "code": self.code,
                "message": self.message,
                "request_id": request_id,
            }
        }
        if self.details:
            payload["error"]["details"] = self.details
        return payload


class IdentityResolutionError(LeadlinesError):
    """The external subject could not be mapped to a local owner."""

    def __init__(self, message: str = "Could not resolve user identity"):
        super().__init__(message, http_status=401, code="E2100")


class NotFoundError(LeadlinesError):
    """A targeted single-record read matched zero rows."""

    def __init__(self, message: str = "Resource not found", **details: Any):
        super().__init__(message, http_status=404, code="E4040", details=details)


class ConflictError(LeadlinesError):
    """A uniqueness rule was violated."""

    def __init__(self, message: str = "Resource already exists", **details: Any):
        super().__init__(message, http_status=409, code="E4090", details=details)


class InvalidRequestError(LeadlinesError):
    def __init__(self, message: str, **details: Any):
        super().__init__(message, http_status=400, code="E4000", details=details)


class ProviderError(LeadlinesError):
    """The assistant provider rejected a request or answered with garbage.

    ``status_code`` is the provider's HTTP status, or ``None`` when the request
    never got a response (connection refused, read timeout, ...).
    """

    def __init__(self, status_code: int | None, provider_message: str, step: str | None = None):
        self.status_code = status_code
        self.provider_message = provider_message
        details: dict[str, Any] = {"status_code": status_code}
        if step:
            details["step"] = step
        super().__init__(
            f"Assistant provider error: {provider_message}",
            http_status=502,
            code="E3000",
            details=details,
        )

    @property
    def step(self) -> str | None:
        return self.details.get("step")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class RunFailedError(LeadlinesError):
    """A run reached a terminal state other than ``completed``."""

    def __init__(self, status: str, provider_error: dict[str, Any] | None = None):
        self.status = status
        self.provider_error = provider_error
        super().__init__(
            f"Assistant run ended with status '{status}'",
            http_status=502,
            code="E3100",
            details={"status": status, "provider_error": provider_error},
        )


class RunTimeoutError(LeadlinesError):
    """A run was still non-terminal when the polling bound elapsed."""

    def __init__(self, timeout: float, elapsed: float, polls: int):
        self.timeout = timeout
        self.elapsed = elapsed
        self.polls = polls
        super().__init__(
            f"Assistant run did not finish within {timeout:g}s",
            http_status=504,
            code="E3200",
            details={"timeout": timeout, "elapsed": round(elapsed, 3), "polls": polls},
        )


class PartialWriteError(LeadlinesError):
    """A multi-step operation stopped after some steps had already taken effect.

    ``step`` names the step that failed; ``completed_steps`` lists what had
    already succeeded and was left in place.
    """

    def __init__(
        self,
        step: str,
        completed_steps: list[str],
        cause: Exception,
        **resources: Any,
    ):
        self.step = step
        self.completed_steps = list(completed_steps)
        self.cause = cause
        self.resources = resources
        super().__init__(
            f"Operation failed at step '{step}': {cause}",
            http_status=500,
            code="E5100",
            details={
                "step": step,
                "completed_steps": self.completed_steps,
                "resources": resources,
                "cause": type(cause).__name__,
            },
        )
