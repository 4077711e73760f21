from qa_graph.llm.base import ModelClient
from qa_graph.llm.errors import LLMError, map_provider_error
from qa_graph.llm.retry import RetryPolicy, with_retries

__all__ = ["ModelClient", "LLMError", "map_provider_error", "RetryPolicy", "with_retries"]
