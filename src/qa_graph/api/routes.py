from fastapi import APIRouter

from qa_graph.api.routers import health_router, knowledge_router, state_graph_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(state_graph_router)
router.include_router(knowledge_router)
