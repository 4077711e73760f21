from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Dict, Sequence

if TYPE_CHECKING:
    from qa_graph.graph.messages import Message


def hash_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_text_short(text: str) -> str:
    return hash_text(text)[:12]


def messages_fingerprint(messages: Sequence["Message"]) -> Dict[str, object]:
    """Loggable summary of a prompt: sizes, roles and a digest, never the content itself."""
    total_chars = 0
    roles = []
    parts = []
    for m in messages:
        content = m.content or ""
        total_chars += len(content)
        roles.append(m.role)
        parts.append(f"{m.role}:{m.name or ''}:{content}")
    digest = hash_text_short("|".join(parts))
    return {"count": len(messages), "total_chars": total_chars, "roles": roles, "digest": digest}
