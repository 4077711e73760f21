import httpx
import openai
import pytest

from qa_graph.llm.errors import (
    LLMAuthError,
    LLMInvalidRequest,
    LLMProviderError,
    LLMRateLimited,
    LLMTimeout,
    LLMUnavailable,
    map_provider_error,
)

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status: int):
    return cls("provider said no", response=httpx.Response(status, request=_REQUEST), body=None)


@pytest.mark.parametrize(
    "exc, expected",
    [
        (openai.APITimeoutError(request=_REQUEST), LLMTimeout),
        (openai.APIConnectionError(request=_REQUEST), LLMUnavailable),
        (_status_error(openai.RateLimitError, 429), LLMRateLimited),
        (_status_error(openai.AuthenticationError, 401), LLMAuthError),
        (_status_error(openai.BadRequestError, 400), LLMInvalidRequest),
        (_status_error(openai.InternalServerError, 500), LLMUnavailable),
        (RuntimeError("request timed out"), LLMTimeout),
        (RuntimeError("something odd"), LLMProviderError),
    ],
)
def test_map_provider_error(exc, expected):
    mapped = map_provider_error(exc)
    assert type(mapped) is expected


def test_retryable_flags():
    assert LLMTimeout("t").retryable is True
    assert LLMRateLimited("r").retryable is True
    assert LLMAuthError("a").retryable is False
    assert LLMInvalidRequest("i").retryable is False
