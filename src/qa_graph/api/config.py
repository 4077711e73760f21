from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


def _env_float(name: str, default: Optional[float] = None) -> Optional[float]:
    raw = (os.getenv(name) or "").strip()
    return float(raw) if raw else default


@dataclass(frozen=True)
class APISettings:
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
    debug: bool = False
    coordinator_model: str = "gpt-4o-mini"
    rag_model: str = "gpt-4o-mini"
    tavily_model: str = "gpt-4o-mini"
    llm_temperature: Optional[float] = 0.0
    llm_timeout_s: Optional[float] = 60.0
    llm_retries: int = 3
    llm_max_inflight: int = 5
    graph_recursion_limit: int = 25
    run_timeout_s: Optional[float] = None
    require_specialist_answers: bool = False
    embedding_provider: str = "openai"
    embedding_model: Optional[str] = None
    kb_chunk_size: int = 1000
    kb_chunk_overlap: int = 200
    kb_top_k: int = 1
    tavily_max_results: int = 5
    tavily_base_url: str = "https://api.tavily.com"
    debug_logging: bool = False

    @classmethod
    def from_env(cls) -> "APISettings":
        load_dotenv()
        return cls(
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=int(os.getenv("API_PORT", "8000")),
            log_level=os.getenv("API_LOG_LEVEL", "info"),
            debug=_env_bool("API_DEBUG"),
            coordinator_model=os.getenv("COORDINATOR_MODEL", "gpt-4o-mini"),
            rag_model=os.getenv("RAG_MODEL", "gpt-4o-mini"),
            tavily_model=os.getenv("TAVILY_MODEL", "gpt-4o-mini"),
            llm_temperature=_env_float("LLM_TEMPERATURE", 0.0),
            llm_timeout_s=_env_float("LLM_TIMEOUT_S", 60.0),
            llm_retries=int(os.getenv("LLM_RETRIES", "3")),
            llm_max_inflight=int(os.getenv("LLM_MAX_INFLIGHT", "5")),
            graph_recursion_limit=int(os.getenv("GRAPH_RECURSION_LIMIT", "25")),
            run_timeout_s=_env_float("RUN_TIMEOUT_S"),
            require_specialist_answers=_env_bool("REQUIRE_SPECIALIST_ANSWERS"),
            embedding_provider=os.getenv("EMBEDDING_PROVIDER", "openai"),
            embedding_model=os.getenv("EMBEDDING_MODEL") or None,
            kb_chunk_size=int(os.getenv("KB_CHUNK_SIZE", "1000")),
            kb_chunk_overlap=int(os.getenv("KB_CHUNK_OVERLAP", "200")),
            kb_top_k=int(os.getenv("KB_TOP_K", "1")),
            tavily_max_results=int(os.getenv("TAVILY_MAX_RESULTS", "5")),
            tavily_base_url=os.getenv("TAVILY_BASE_URL", "https://api.tavily.com"),
            debug_logging=_env_bool("QA_GRAPH_DEBUG_LOGGING"),
        )


@lru_cache
def get_settings() -> APISettings:
    return APISettings.from_env()
