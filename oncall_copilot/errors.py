from __future__ import annotations


class CopilotError(Exception):
    """Base class for failures raised by the copilot."""


class DecodeError(CopilotError):
    """The oracle's text payload could not be turned into the declared shape."""


class EmptyResponseError(DecodeError):
    def __init__(self) -> None:
        super().__init__(
            "The model returned an empty response. This can happen when safety filters "
            "are triggered; retry the request or pick a different alert."
        )


class UnparsableResponseError(DecodeError):
    def __init__(self, excerpt: str, reason: str = "no valid JSON object found") -> None:
        self.excerpt = excerpt
        self.reason = reason
        super().__init__(f"Model did not return valid JSON ({reason}). Text received: {excerpt}...")


class RateLimitedError(CopilotError):
    def __init__(self, message: str = "rate limited", status_code: int = 429) -> None:
        self.status_code = status_code
        super().__init__(message)


class UnknownAlertError(CopilotError):
    def __init__(self, alert_id: str) -> None:
        self.alert_id = alert_id
        super().__init__(f"unknown alert: {alert_id}")
