from __future__ import annotations

from contextlib import asynccontextmanager
import json
import logging

from fastapi import FastAPI

from qa_graph.api.config import get_settings
from qa_graph.api.deps import get_orchestrator
from qa_graph.api.exception_handlers import register_exception_handlers
from qa_graph.api.middleware import setup_middlewares
from qa_graph.api.routes import router

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    # build the graph up front so bad configuration fails at startup
    logging.info(json.dumps({"event": "startup", "message": "Building agent graph..."}, ensure_ascii=False))
    orchestrator = get_orchestrator()
    logging.info(
        json.dumps(
            {
                "event": "startup",
                "message": "Agent graph ready",
                "nodes": orchestrator.graph.node_names(),
                "recursion_limit": orchestrator.graph.recursion_limit,
            },
            ensure_ascii=False,
        )
    )
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="qa-graph",
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    setup_middlewares(app)
    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("qa_graph.main:app", host=settings.host, port=settings.port, log_level=settings.log_level)
