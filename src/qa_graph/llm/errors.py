from __future__ import annotations

import openai


class LLMError(Exception):
    """Base error of the Model Client layer."""
    code: str = "LLM_ERROR"
    retryable: bool = False

    def __init__(self, message: str, *, code: str | None = None, retryable: bool | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable

class LLMTimeout(LLMError):
    code = "LLM_TIMEOUT"
    retryable = True

class LLMRateLimited(LLMError):
    code = "LLM_RATE_LIMIT"
    retryable = True

class LLMUnavailable(LLMError):
    code = "LLM_UNAVAILABLE"
    retryable = True

class LLMAuthError(LLMError):
    code = "LLM_AUTH"
    retryable = False

class LLMInvalidRequest(LLMError):
    code = "LLM_INVALID_REQUEST"
    retryable = False

class LLMMalformedResponse(LLMError):
    code = "LLM_MALFORMED_RESPONSE"
    retryable = False

class LLMProviderError(LLMError):
    code = "LLM_PROVIDER_ERROR"
    retryable = True



def map_provider_error(exc: Exception) -> LLMError:
    """Translate openai SDK exceptions raised under LangChain into our taxonomy."""
    if isinstance(exc, LLMError):
        return exc
    # APITimeoutError subclasses APIConnectionError, so it goes first
    if isinstance(exc, openai.APITimeoutError):
        return LLMTimeout(str(exc))
    if isinstance(exc, openai.RateLimitError):
        return LLMRateLimited(str(exc))
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return LLMAuthError(str(exc))
    if isinstance(exc, (openai.BadRequestError, openai.NotFoundError, openai.UnprocessableEntityError)):
        return LLMInvalidRequest(str(exc))
    if isinstance(exc, (openai.APIConnectionError, openai.InternalServerError)):
        return LLMUnavailable(str(exc))

    msg = str(exc).lower()
    if "rate limit" in msg or "429" in msg:
        return LLMRateLimited(str(exc))
    if "timeout" in msg or "timed out" in msg:
        return LLMTimeout(str(exc))
    return LLMProviderError(str(exc))
