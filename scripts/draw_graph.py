import argparse
from pathlib import Path

from qa_graph.graph.builder import build_qa_agents, build_qa_graph
from qa_graph.llm.client import ChatModelClient
from qa_graph.tools.dispatcher import ToolDispatcher
from qa_graph.tools.knowledge import RAG_SEARCH_TOOL
from qa_graph.tools.registry import ToolRegistry, ToolSpec
from qa_graph.tools.web_search import TAVILY_SEARCH_TOOL


def main():
    parser = argparse.ArgumentParser(description="Write the agent graph topology as a Mermaid diagram.")
    parser.add_argument("--out", type=str, default="graphState.mmd")
    args = parser.parse_args()

    # topology only: nothing is invoked, so no keys or index are needed
    registry = ToolRegistry(
        [
            ToolSpec(name=RAG_SEARCH_TOOL, description="Search in the knowledge base."),
            ToolSpec(name=TAVILY_SEARCH_TOOL, description="Search the web."),
        ]
    )
    client = ChatModelClient()
    agents = build_qa_agents(
        coordinator_client=client,
        rag_client=client,
        tavily_client=client,
        rag_tool=registry.get(RAG_SEARCH_TOOL),
        tavily_tool=registry.get(TAVILY_SEARCH_TOOL),
    )
    graph = build_qa_graph(agents, ToolDispatcher(registry))
    Path(args.out).write_text(graph.draw_mermaid(), encoding="utf-8")
    print(f"Wrote {args.out}")


if __name__ == "__main__":
    main()
