from qa_graph.rag.knowledge import IngestReport, KnowledgeService
from qa_graph.rag.loaders import DocumentLike, load_documents, load_url

__all__ = ["IngestReport", "KnowledgeService", "DocumentLike", "load_documents", "load_url"]
