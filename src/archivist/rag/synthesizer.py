"""Answer synthesizer — natural-language answer from a question and context."""

from __future__ import annotations

from dataclasses import dataclass

from archivist.rag.llm_client import complete

_SYSTEM_PROMPT = (
    "You are a helpful assistant for question answering over documents. "
    "Do not make it seem like you are reading from the documents; answer the "
    "question directly, using the context."
)


@dataclass
class SynthesizedAnswer:
    answer: str


class AnswerSynthesizer:
    """Answer questions with a LiteLLM chat model.

    Args:
        model: LiteLLM model string (provider/model format).
        max_tokens: Maximum answer tokens.
        temperature: Sampling temperature.
        timeout: Seconds before the completion call is abandoned.
        num_retries: Retries on transient provider errors.
    """

    def __init__(
        self,
        model: str = "openai/gpt-4o-mini",
        max_tokens: int = 256,
        temperature: float = 0.2,
        timeout: float = 60.0,
        num_retries: int = 3,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.num_retries = num_retries

    def answer(self, question: str, context: str) -> SynthesizedAnswer:
        """Return the model's answer to *question* given *context*.

        Raises:
            UpstreamServiceError: If the completion call fails.
        """
        content = complete(
            model=self.model,
            messages=build_messages(question, context),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout=self.timeout,
            num_retries=self.num_retries,
        )
        return SynthesizedAnswer(answer=content.strip())


def build_messages(question: str, context: str) -> list[dict]:
    return [
        {"role": "system", "content": _SYSTEM_PROMPT},
        {"role": "user", "content": f"Context:\n{context}\n\nQuestion: {question}"},
    ]
