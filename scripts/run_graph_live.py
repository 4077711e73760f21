import argparse
import asyncio
import json
import logging

from qa_graph.api.config import get_settings
from qa_graph.api.deps import get_knowledge_service, get_orchestrator


async def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    parser = argparse.ArgumentParser(description="Run the agent graph against OpenAI and Tavily.")
    parser.add_argument("--question", type=str, default="What is the capital of France?")
    parser.add_argument("--file", action="append", default=[], help="Document to ingest first (txt/md/json/jsonl/pdf).")
    parser.add_argument("--url", action="append", default=[], help="Web page to ingest first.")
    parser.add_argument("--timeout", type=float, default=None)
    args = parser.parse_args()

    knowledge = get_knowledge_service()
    for path in args.file:
        report = await knowledge.ingest_file(path)
        print(json.dumps({"ingested": report.to_dict()}, ensure_ascii=False))
    for url in args.url:
        report = await knowledge.ingest_url(url)
        print(json.dumps({"ingested": report.to_dict()}, ensure_ascii=False))

    settings = get_settings()
    answer = await get_orchestrator().run(args.question, timeout_s=args.timeout or settings.run_timeout_s)
    print(json.dumps(answer.to_dict(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
