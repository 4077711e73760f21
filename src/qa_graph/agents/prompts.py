from __future__ import annotations

from typing import Sequence

from qa_graph.graph.router import FINAL_ANSWER_SENTINEL

AGENT_PREAMBLE = (
    "You are a helpful AI assistant, collaborating with other assistants."
    " Use the provided tools to progress towards answering the question."
    " You have access to the following tools: {tool_names}.\n{system_message}"
)

COORDINATOR_INSTRUCTION = f"""Your role is to coordinate the flow between the user and the specialized agents.
First, take the user's question and forward it as-is to the research agents.
Then, wait for both responses.
Once you have both, merge the information in a clear and structured way:
- first section should be "Documents" present the answer from the RAG agent,
- then should be a section "Web" the one from the Tavily agent,
- and finally provide a short summary or conclusion synthesizing both sources.

add {FINAL_ANSWER_SENTINEL} to the answer
Do not try to answer the question yourself before querying the agents."""

RAG_INSTRUCTION = "Your role is to search in the knowledge base to answer to the question."

TAVILY_INSTRUCTION = (
    "Your role is to search online. You are given a question and you need to search the web for the answer."
)


def compose_system_prompt(system_message: str, tool_names: Sequence[str]) -> str:
    return AGENT_PREAMBLE.format(tool_names=", ".join(tool_names), system_message=system_message)
