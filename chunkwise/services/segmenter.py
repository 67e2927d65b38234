"""Structure-aware text segmentation with sentence-boundary overlap.

Splits parsed document text into ordered :class:`SegmentedChunk` objects
sized for embedding models.

Segmentation runs in three passes:

1. **Semantic units** -- when ``preserve_structure`` is on, the text is cut
   into Q&A pairs, markdown-header sections, or paragraphs (first match
   wins, in that order) so no unit straddles a structural boundary.
2. **Size control** -- units longer than ``max_chunk_size`` are split at the
   last sentence end inside the window (Korean sentence endings and general
   punctuation both count).  The next window starts at a sentence boundary
   roughly ``overlap`` characters before the cut, so context carries over
   in whole sentences instead of half-words.
3. **Cleanup** -- chunks holding only headers or separators are dropped,
   indices are re-numbered from 0, and each survivor is annotated with text
   statistics and scored by the injected :class:`QualityScorer`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import structlog

from chunkwise.models.ingestion import SegmentationConfig, SegmentedChunk
from chunkwise.services.quality_scorer import (
    HeuristicQualityScorer,
    QualityScorer,
    detect_language,
    readability_score,
    sentence_boundaries,
)

logger = structlog.get_logger(logger_name=__name__)

_QA_PRESENT = re.compile(r"(?:Q|질문|문)[:：].*\n(?:A|답변|답)[:：]", re.IGNORECASE)
_QA_PAIR = re.compile(
    r"(?:Q|질문|문)[:：][^\n]+(?:\n(?:A|답변|답)[:：][^\n]+)+", re.IGNORECASE
)
_HEADER = re.compile(r"^(?:#{1,6}\s.+|.+\n={3,})", re.MULTILINE)
_PARAGRAPH_SPLIT = re.compile(r"\n{2,}")
_TABLE = re.compile(r"\|.*\|.*\|")
_LIST = re.compile(r"^(?:[-*•]\s|\d+[.)]\s)", re.MULTILINE)

_MARKDOWN_HEADER_LINE = re.compile(r"^#{1,6}\s+.+$")
_SEPARATOR_LINE = re.compile(r"^(?:[-*_=]{3,}|<hr\s*/?>)$", re.IGNORECASE)
_MIN_MEANINGFUL_CHARS = 20


@dataclass
class _Unit:
    """A semantic unit and where it starts in the source text."""

    text: str
    offset: int
    flags: dict[str, bool] = field(default_factory=dict)


def is_header_or_separator_only(content: str) -> bool:
    """Return ``True`` for chunks with no retrievable body text.

    Markdown headers, rules (``---``, ``***``, ``<hr>``) and blank lines do
    not count as content; fewer than 20 remaining characters also count as
    empty.
    """
    meaningful = [
        line.strip()
        for line in content.strip().splitlines()
        if line.strip()
        and not _MARKDOWN_HEADER_LINE.match(line.strip())
        and not _SEPARATOR_LINE.match(line.strip())
    ]
    return len(" ".join(meaningful)) < _MIN_MEANINGFUL_CHARS


class ChunkSegmenter:
    """Splits text into bounded, overlapping, scored fragments.

    Parameters
    ----------
    scorer:
        Quality scoring strategy.  Defaults to :class:`HeuristicQualityScorer`.
    """

    def __init__(self, scorer: QualityScorer | None = None) -> None:
        self._scorer = scorer or HeuristicQualityScorer()

    def segment(self, text: str, config: SegmentationConfig | None = None) -> list[SegmentedChunk]:
        """Split *text* into an ordered, zero-indexed list of chunks.

        Parameters
        ----------
        text:
            Full plain text of the document.
        config:
            Size, overlap and structure settings.  Defaults to 500/50/on.

        Returns
        -------
        list[SegmentedChunk]
            Chunks in document order.  Empty or whitespace-only input yields
            an empty list.
        """
        config = config or SegmentationConfig()
        if not text or not text.strip():
            return []

        units = self._split_semantic_units(text, config.preserve_structure)

        pieces: list[tuple[str, int, int, dict[str, bool]]] = []
        for unit in units:
            pieces.extend(self._split_with_overlap(unit, config.max_chunk_size, config.overlap))

        chunks: list[SegmentedChunk] = []
        for content, start, end, flags in pieces:
            if is_header_or_separator_only(content):
                continue
            metadata = self._build_metadata(content, start, end, flags)
            score = self._scorer.score(content, metadata)
            chunks.append(
                SegmentedChunk(
                    index=len(chunks),
                    content=content,
                    quality_score=max(0.0, min(100.0, float(score))),
                    metadata=metadata,
                )
            )

        logger.debug(
            "segmentation_complete",
            units=len(units),
            chunks=len(chunks),
            dropped=len(pieces) - len(chunks),
        )
        return chunks

    # ------------------------------------------------------------------
    # Pass 1: semantic units
    # ------------------------------------------------------------------

    def _split_semantic_units(self, text: str, preserve_structure: bool) -> list[_Unit]:
        if not preserve_structure:
            return [_trimmed_unit(text, 0)]

        if _QA_PRESENT.search(text):
            units = self._split_qa(text)
            if units:
                return units

        if _HEADER.search(text):
            units = self._split_headers(text)
            if units:
                return units

        units = []
        position = 0
        for match in _PARAGRAPH_SPLIT.finditer(text):
            units.append(_trimmed_unit(text[position : match.start()], position))
            position = match.end()
        units.append(_trimmed_unit(text[position:], position))
        return [u for u in units if u.text]

    @staticmethod
    def _split_qa(text: str) -> list[_Unit]:
        units: list[_Unit] = []
        position = 0
        for match in _QA_PAIR.finditer(text):
            if match.start() > position:
                units.append(_trimmed_unit(text[position : match.start()], position))
            units.append(_trimmed_unit(match.group(0), match.start(), is_qa_pair=True))
            position = match.end()
        if position < len(text):
            units.append(_trimmed_unit(text[position:], position))
        return [u for u in units if u.text]

    @staticmethod
    def _split_headers(text: str) -> list[_Unit]:
        starts = [m.start() for m in _HEADER.finditer(text)]
        bounds = ([0] if starts[0] > 0 else []) + starts + [len(text)]
        units = [
            _trimmed_unit(text[a:b], a, has_header=a in starts)
            for a, b in zip(bounds, bounds[1:])
        ]
        return [u for u in units if u.text]

    # ------------------------------------------------------------------
    # Pass 2: size control with sentence overlap
    # ------------------------------------------------------------------

    @staticmethod
    def _split_with_overlap(
        unit: _Unit,
        max_size: int,
        overlap: int,
    ) -> list[tuple[str, int, int, dict[str, bool]]]:
        content = unit.text
        flags = {
            "has_header": unit.flags.get("has_header", False),
            "is_qa_pair": unit.flags.get("is_qa_pair", False),
            "is_table": bool(_TABLE.search(content)),
            "is_list": bool(_LIST.search(content)),
        }
        if len(content) <= max_size:
            return [(content, unit.offset, unit.offset + len(content), flags)]

        pieces: list[tuple[str, int, int, dict[str, bool]]] = []
        position = 0
        while position < len(content):
            end = min(position + max_size, len(content))
            if end < len(content):
                window_ends = sentence_boundaries(content[position:end])
                if window_ends and window_ends[-1] > max_size * 0.5:
                    end = position + window_ends[-1]

            piece = content[position:end].strip()
            if piece:
                pieces.append((piece, unit.offset + position, unit.offset + end, flags))
            if end >= len(content):
                break

            next_start = position + _overlap_start(content[position:end], overlap)
            position = next_start if next_start > position else end

        return pieces

    @staticmethod
    def _build_metadata(
        content: str,
        start: int,
        end: int,
        flags: dict[str, bool],
    ) -> dict[str, Any]:
        sentence_count = max(1, len(sentence_boundaries(content)))
        return {
            "start_offset": start,
            "end_offset": end,
            **flags,
            "sentence_count": sentence_count,
            "avg_sentence_length": round(len(content) / sentence_count),
            "language": detect_language(content),
            "readability_score": readability_score(content),
        }


def _trimmed_unit(raw: str, offset: int, **flags: bool) -> _Unit:
    stripped = raw.lstrip()
    return _Unit(text=stripped.rstrip(), offset=offset + len(raw) - len(stripped), flags=flags)


def _overlap_start(window: str, overlap: int) -> int:
    """Return where the next window should start inside *window*.

    Picks the last sentence boundary at least *overlap* characters before
    the window's end, so the carried-over text is made of whole sentences.
    Without any boundary, falls back to a plain character overlap; when
    every boundary lies inside the overlap zone there is no overlap at all.
    """
    boundaries = sentence_boundaries(window)
    target = len(window) - overlap
    if not boundaries:
        return max(0, target)

    candidates = [b for b in boundaries if b <= target]
    if candidates:
        return candidates[-1]
    return 0
