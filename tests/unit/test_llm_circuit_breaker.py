from qa_graph.llm.circuit_breaker import CircuitBreaker
from qa_graph.llm.errors import LLMInvalidRequest, LLMTimeout


def test_circuit_breaker_opens_after_threshold():
    br = CircuitBreaker(failure_threshold=3, reset_timeout_s=9999)
    assert br.allow() is True

    br.record_failure(LLMTimeout("t1"))
    br.record_failure(LLMTimeout("t2"))
    assert br.allow() is True

    br.record_failure(LLMTimeout("t3"))
    assert br.allow() is False
    assert br.is_open is True


def test_circuit_breaker_does_not_count_invalid_request():
    br = CircuitBreaker(failure_threshold=1, reset_timeout_s=9999)
    br.record_failure(LLMInvalidRequest("bad"))
    assert br.allow() is True


def test_circuit_breaker_resets_on_success():
    br = CircuitBreaker(failure_threshold=2, reset_timeout_s=9999)
    br.record_failure(LLMTimeout("t1"))
    br.record_success()
    br.record_failure(LLMTimeout("t2"))
    assert br.allow() is True


def test_circuit_breaker_half_opens_after_timeout():
    br = CircuitBreaker(failure_threshold=1, reset_timeout_s=0)
    br.record_failure(LLMTimeout("t1"))
    assert br.allow() is True
