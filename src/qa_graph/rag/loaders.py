from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, TypedDict


class DocumentLike(TypedDict):
    text: str
    metadata: Dict[str, Any]


TEXT_SUFFIXES = {".txt", ".md", ".json", ".jsonl"}
SUPPORTED_SUFFIXES = TEXT_SUFFIXES | {".pdf"}


def _doc(text: str, metadata: Dict[str, Any]) -> DocumentLike:
    return {"text": text, "metadata": metadata}


def load_text_from_file(path: str | Path) -> str:
    file_path = Path(path)
    text = _decode_bytes(file_path.read_bytes())

    suffix = file_path.suffix.lower()
    if suffix == ".json":
        return _json_to_text(text)
    if suffix == ".jsonl":
        return _jsonl_to_text(text)
    return text


def _decode_bytes(data: bytes) -> str:
    for encoding in ("utf-8", "cp1251"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode("latin-1")


def _jsonl_to_text(text: str) -> str:
    lines = []
    for raw in text.splitlines():
        raw = raw.strip()
        if not raw:
            continue
        try:
            obj = json.loads(raw)
        except json.JSONDecodeError:
            lines.append(raw)
            continue
        lines.append(_extract_text(obj))
    return "\n".join([line for line in lines if line])


def _json_to_text(text: str) -> str:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError:
        return text
    return _extract_text(obj)


def _extract_text(obj: Any) -> str:
    if isinstance(obj, str):
        return obj
    if isinstance(obj, dict):
        parts = [_extract_text(v) for v in obj.values()]
        return "\n".join([p for p in parts if p])
    if isinstance(obj, Iterable):
        parts = [_extract_text(v) for v in obj]
        return "\n".join([p for p in parts if p])
    return str(obj)


def _load_pdf(path: Path, source: str) -> List[DocumentLike]:
    try:
        from langchain_community.document_loaders import PyPDFLoader  # type: ignore
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("langchain-community and pypdf are required for PDF loading") from exc

    out: List[DocumentLike] = []
    for doc in PyPDFLoader(str(path)).load():
        metadata = dict(getattr(doc, "metadata", {}) or {})
        metadata["source"] = source
        if "page_number" not in metadata and "page" in metadata:
            metadata["page_number"] = int(metadata["page"]) + 1
        out.append(_doc(doc.page_content, metadata))
    return out


def load_documents(path: str | Path, *, source: str | None = None) -> List[DocumentLike]:
    """Load a local file into documents; `source` overrides the recorded origin (e.g. the upload name)."""
    file_path = Path(path)
    source = source or str(file_path)
    suffix = Path(source).suffix.lower() or file_path.suffix.lower()

    if suffix == ".pdf":
        return _load_pdf(file_path, source)
    if suffix not in TEXT_SUFFIXES:
        raise ValueError(f"Unsupported file type: {suffix or '<none>'}")
    return [_doc(load_text_from_file(file_path), {"source": source})]


def load_url(url: str) -> List[DocumentLike]:
    try:
        from langchain_community.document_loaders import WebBaseLoader  # type: ignore
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("langchain-community and beautifulsoup4 are required for URL loading") from exc

    out: List[DocumentLike] = []
    for doc in WebBaseLoader(url).load():
        metadata = dict(getattr(doc, "metadata", {}) or {})
        metadata.setdefault("source", url)
        out.append(_doc(doc.page_content, metadata))
    return out
