"""Errors raised by provider adapters and the chat pipeline."""


class ChatError(Exception):
    """A chat request failed. Terminal: nothing is retried or rerouted."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class ProviderNotConfiguredError(ChatError):
    """The resolved provider has no API key. Raised before any network call."""

    def __init__(self, provider: str) -> None:
        super().__init__(provider, f"{provider} API key not configured")


class ProviderHTTPError(ChatError):
    """The provider answered with a non-2xx status."""

    def __init__(self, provider: str, status_code: int, body: str) -> None:
        super().__init__(provider, f"{provider} API error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


class ProviderTransportError(ChatError):
    """The request never produced an HTTP response (connection, timeout)."""


class EmptyResponseError(ChatError):
    """A successful response carried no extractable text."""

    def __init__(self, provider: str) -> None:
        super().__init__(provider, f"Empty response from {provider}")
