"""Context assembler: the context window handed to the answer synthesizer.

Takes the first ``context_window`` ranked results (the smallest distances)
and joins their texts with newlines. An optional character cap truncates
the joined context.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from archivist.rag.retriever import RankedResult


@dataclass
class AssembledContext:
    results: list[RankedResult] = field(default_factory=list)
    text: str = ""


def assemble(
    ranked: list[RankedResult],
    context_window: int = 3,
    max_context_chars: int | None = None,
) -> AssembledContext:
    """Build the context from the top *context_window* of *ranked*.

    *ranked* must already be ordered best-first (see retriever.rank).
    """
    if context_window < 1:
        raise ValueError("context_window must be >= 1")

    selected = ranked[:context_window]
    text = "\n".join(r.text for r in selected)
    if max_context_chars is not None and len(text) > max_context_chars:
        text = text[:max_context_chars]
    return AssembledContext(results=selected, text=text)
