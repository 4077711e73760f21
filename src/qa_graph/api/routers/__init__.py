from qa_graph.api.routers.health import router as health_router
from qa_graph.api.routers.knowledge import router as knowledge_router
from qa_graph.api.routers.state_graph import router as state_graph_router

__all__ = [
    "health_router",
    "knowledge_router",
    "state_graph_router",
]
