"""LLM-generated context prefixes for chunks ("contextual retrieval").

Each chunk is sent to the LLM together with the surrounding document and
the model answers with a one- or two-sentence description situating the
chunk in the document.  The prefix is prepended to the chunk before
embedding so fragments like "It was raised to 3% in 2021." become
retrievable by the subject they refer to.

The enrichment flow:
1. Pick the English or Korean prompt (Korean when > 30% of non-space
   characters are Hangul)
2. Cut a ``max_document_length`` window centred on the chunk when the
   document is longer than that
3. Call the LLM for ``batch_size`` chunks in parallel, pausing
   ``batch_delay_ms`` between batches, and report progress after each batch

Per-chunk failures are logged but never block ingestion -- the chunk
simply gets an empty prefix and is embedded from its content alone.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Awaitable, Callable

import structlog

from chunkwise.models.ingestion import ContextResult, EnrichmentOptions, SegmentedChunk
from chunkwise.utils.concurrency import run_in_batches

if TYPE_CHECKING:
    from chunkwise.interfaces.llm_provider import ILLMProvider

logger = structlog.get_logger(logger_name=__name__)

ProgressCallback = Callable[[int, int], Awaitable[None] | None]

_CONTEXT_PROMPT_EN = """\
<document>
{document}
</document>

Here is the chunk we want to situate within the whole document:
<chunk>
{chunk}
</chunk>

Please give a short succinct context to situate this chunk within the overall \
document for the purposes of improving search retrieval of the chunk. Answer \
only with the succinct context and nothing else."""

_CONTEXT_PROMPT_KO = """\
<document>
{document}
</document>

다음은 위 문서에서 추출한 청크입니다:
<chunk>
{chunk}
</chunk>

이 청크가 전체 문서에서 어떤 맥락에 있는지 간결하게 설명해주세요.
검색 시 이 청크를 더 잘 찾을 수 있도록 도움이 되는 컨텍스트만 작성하세요.
컨텍스트만 응답하고 다른 설명은 하지 마세요."""

_HANGUL_SYLLABLE = re.compile(r"[가-힣]")
_WHITESPACE = re.compile(r"\s")
_KOREAN_RATIO_THRESHOLD = 0.3


def is_korean_document(text: str) -> bool:
    total = len(_WHITESPACE.sub("", text))
    return total > 0 and len(_HANGUL_SYLLABLE.findall(text)) / total > _KOREAN_RATIO_THRESHOLD


def document_window(full_text: str, chunk: str, max_length: int) -> str:
    """Return the part of *full_text* shown to the LLM for *chunk*.

    Documents within *max_length* are returned whole.  Longer ones are cut
    to a window centred on the chunk, with ``...`` marking elided ends; a
    chunk that cannot be located falls back to the document's head.
    """
    if len(full_text) <= max_length:
        return full_text

    position = full_text.find(chunk)
    if position == -1:
        return full_text[:max_length] + "..."

    half = max_length // 2
    start = max(0, position - half)
    end = min(len(full_text), position + len(chunk) + half)
    window = full_text[start:end]
    if start > 0:
        window = "..." + window
    if end < len(full_text):
        window = window + "..."
    return window


def build_prompt(full_text: str, chunk: str, max_document_length: int) -> str:
    template = _CONTEXT_PROMPT_KO if is_korean_document(full_text) else _CONTEXT_PROMPT_EN
    return template.format(
        document=document_window(full_text, chunk, max_document_length),
        chunk=chunk,
    )


def build_contextual_content(content: str, context_prefix: str | None) -> str:
    """Return the text that gets embedded for a chunk."""
    if not context_prefix:
        return content
    return f"{context_prefix}\n\n{content}"


class ContextualEnricher:
    """Generates a retrieval context prefix for every chunk of a document.

    Parameters
    ----------
    llm:
        The LLM provider used for context prompts (injected, swappable).
    options:
        Batching, window and prompt-retention settings.
    """

    def __init__(self, llm: ILLMProvider, options: EnrichmentOptions | None = None) -> None:
        self._llm = llm
        self._options = options or EnrichmentOptions()

    @property
    def provider_name(self) -> str:
        return self._llm.get_provider_name()

    async def enrich(
        self,
        full_text: str,
        chunks: list[SegmentedChunk],
        on_progress: ProgressCallback | None = None,
    ) -> list[ContextResult]:
        """Generate one :class:`ContextResult` per chunk, in chunk order.

        Parameters
        ----------
        full_text:
            The complete parsed document.
        chunks:
            Segmented chunks of that document.
        on_progress:
            Called with ``(completed, total)`` after every batch.

        Returns
        -------
        list[ContextResult]
            Same length and order as *chunks*.  Failed chunks carry an
            empty ``context_prefix``.
        """
        opts = self._options
        logger.info(
            "context_generation_started",
            total_chunks=len(chunks),
            provider=self.provider_name,
            batch_size=opts.batch_size,
        )

        async def _worker(chunk: SegmentedChunk) -> ContextResult:
            return await self._enrich_single(full_text, chunk)

        results = await run_in_batches(
            chunks,
            _worker,
            batch_size=opts.batch_size,
            delay_seconds=opts.batch_delay_ms / 1000,
            on_batch_done=on_progress,
        )

        succeeded = sum(1 for r in results if r.context_prefix)
        logger.info(
            "context_generation_complete",
            total_chunks=len(chunks),
            success_count=succeeded,
            failure_count=len(chunks) - succeeded,
            avg_context_length=(
                round(sum(len(r.context_prefix) for r in results) / len(results))
                if results
                else 0
            ),
        )
        return results

    async def _enrich_single(self, full_text: str, chunk: SegmentedChunk) -> ContextResult:
        opts = self._options
        prompt = build_prompt(full_text, chunk.content, opts.max_document_length)
        kept_prompt = prompt if opts.save_prompt else None
        try:
            completion = await self._llm.complete(
                system_prompt="",
                user_prompt=prompt,
                temperature=0.0,
                max_tokens=opts.max_context_tokens,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "context_generation_failed",
                chunk_index=chunk.index,
                error=str(exc),
                chunk_preview=chunk.content[:100],
            )
            return ContextResult(chunk_index=chunk.index, context_prefix="", prompt=kept_prompt)

        return ContextResult(
            chunk_index=chunk.index,
            context_prefix=completion.strip(),
            prompt=kept_prompt,
        )
