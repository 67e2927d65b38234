"""Provisional quality scoring for segmented chunks.

The segmenter delegates scoring to a :class:`QualityScorer` strategy so the
heuristic can be swapped (e.g. for an LLM-graded scorer) without touching
segmentation.  Every scorer must return a value in ``[0, 100]``.

:class:`HeuristicQualityScorer` starts from 100 and applies penalties and
bonuses:

- length: < 50 chars -30, < 100 -20; > 1000 -15, > 800 -10
- does not end on a complete sentence: -15
- question without answer -30, answer without question -20
- letters make up < 20% of the text -30, < 30% -25
- structure: Q&A pair +10, header +5, list +3, table +3
- readability: < 50 -10, < 70 -5, >= 90 +5
- one long sentence (> 200 chars) -10; 3-10 sentences +3
- average sentence > 100 chars -5; < 10 chars over several sentences -5
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any

# Korean sentence-final endings: formal (습니다, 입니다 ...), polite (요, 죠 ...)
# and plain (다, 냐 ...) speech levels.
_KOREAN_ENDINGS = (
    "습니다", "입니다", "됩니다", "합니다", "습니까", "입니까",
    "네요", "군요", "거든요", "잖아요", "나요", "가요", "을까요",
    "세요", "어요", "아요", "죠", "요", "다", "냐", "니", "자",
)

_KOREAN_SENTENCE_END = re.compile(
    r"(?:습니다|입니다|됩니다|합니다|습니까|입니까|네요|군요|거든요|잖아요|나요|가요"
    r"|을까요|ㄹ까요|세요|어요|아요|죠|요|다|냐|니|자)[.!?。！？]?\s+"
)
_GENERAL_SENTENCE_END = re.compile(r"[.!?。！？]\s+")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_TERMINAL_PUNCTUATION = re.compile(r"[.!?。！？]$")

_HANGUL = re.compile(r"[가-힣ㄱ-ㅎㅏ-ㅣ]")
_LATIN = re.compile(r"[a-zA-Z]")
_LETTER = re.compile(r"[가-힣a-zA-Z]")
_ALNUM = re.compile(r"[a-zA-Z가-힣ㄱ-ㅎㅏ-ㅣ0-9]")

_QUESTION_MARKERS = ("Q:", "질문:", "문:")
_ANSWER_MARKERS = ("A:", "답변:", "답:")


def sentence_boundaries(text: str) -> list[int]:
    """Return sorted end offsets of every sentence or paragraph in *text*."""
    ends: set[int] = set()
    for pattern in (_KOREAN_SENTENCE_END, _GENERAL_SENTENCE_END, _PARAGRAPH_BREAK):
        ends.update(m.end() for m in pattern.finditer(text))
    return sorted(ends)


def ends_with_complete_sentence(text: str) -> bool:
    trimmed = text.strip()
    if _TERMINAL_PUNCTUATION.search(trimmed):
        return True
    return trimmed.endswith(_KOREAN_ENDINGS)


def detect_language(text: str) -> str:
    """Classify *text* as ``"ko"``, ``"en"`` or ``"mixed"`` by word majority.

    Counting words rather than characters keeps the comparison fair between
    scripts: "Hello" and "안녕" are both one word.
    """
    korean_words = english_words = 0
    for word in text.split():
        hangul = len(_HANGUL.findall(word))
        latin = len(_LATIN.findall(word))
        if hangul and hangul >= latin:
            korean_words += 1
        elif latin:
            english_words += 1

    total = korean_words + english_words
    if total == 0:
        return "mixed"
    if korean_words / total >= 0.6:
        return "ko"
    if english_words / total >= 0.6:
        return "en"
    return "mixed"


def readability_score(text: str) -> int:
    """Score readability in ``[0, 100]`` from sentence length and vocabulary."""
    if not text.strip():
        return 0

    score = 100
    sentence_count = max(1, len(sentence_boundaries(text)))
    avg_sentence_length = len(text) / sentence_count

    if avg_sentence_length < 10:
        score -= 15
    elif avg_sentence_length > 100:
        score -= 30
    elif avg_sentence_length > 80:
        score -= 20
    elif avg_sentence_length > 50:
        score -= 10

    words = [w for w in text.split() if len(w) > 1]
    if len(words) > 5:
        diversity = len({w.lower() for w in words}) / len(words)
        if diversity < 0.3:
            score -= 15
        elif diversity < 0.5:
            score -= 5

    if len(_ALNUM.findall(text)) / len(text) < 0.5:
        score -= 15

    if ends_with_complete_sentence(text):
        score += 5

    return max(0, min(100, score))


class QualityScorer(ABC):
    """Strategy that grades a chunk's usefulness for retrieval."""

    @abstractmethod
    def score(self, content: str, metadata: dict[str, Any]) -> float:
        """Return a score in ``[0, 100]`` for *content*.

        *metadata* carries the segmenter's structural flags
        (``is_qa_pair``, ``has_header``, ``is_list``, ``is_table``) and
        text statistics (``sentence_count``, ``avg_sentence_length``,
        ``readability_score``).
        """


class HeuristicQualityScorer(QualityScorer):
    """Rule-based scorer; see the module docstring for the rules."""

    def score(self, content: str, metadata: dict[str, Any]) -> float:
        score = 100
        length = len(content)

        if length < 50:
            score -= 30
        elif length < 100:
            score -= 20
        if length > 1000:
            score -= 15
        elif length > 800:
            score -= 10

        if not ends_with_complete_sentence(content):
            score -= 15

        has_question = any(m in content for m in _QUESTION_MARKERS)
        has_answer = any(m in content for m in _ANSWER_MARKERS)
        if has_question and not has_answer:
            score -= 30
        elif has_answer and not has_question:
            score -= 20

        letter_ratio = len(_LETTER.findall(content)) / length if length else 0.0
        if letter_ratio < 0.2:
            score -= 30
        elif letter_ratio < 0.3:
            score -= 25

        if metadata.get("is_qa_pair"):
            score += 10
        if metadata.get("has_header"):
            score += 5
        if metadata.get("is_list"):
            score += 3
        if metadata.get("is_table"):
            score += 3

        readability = metadata.get("readability_score")
        if readability is not None:
            if readability < 50:
                score -= 10
            elif readability < 70:
                score -= 5
            elif readability >= 90:
                score += 5

        sentence_count = metadata.get("sentence_count")
        if sentence_count is not None:
            if sentence_count == 1 and length > 200:
                score -= 10
            elif 3 <= sentence_count <= 10:
                score += 3

        avg_sentence_length = metadata.get("avg_sentence_length")
        if avg_sentence_length is not None:
            if avg_sentence_length > 100:
                score -= 5
            elif avg_sentence_length < 10 and (sentence_count or 0) > 1:
                score -= 5

        return float(max(0, min(100, score)))
