"""Document -> Passage chunker.

Breaks a page into an ordered list of scored passages:

1. Locate the main content root (semantic containers, configured selectors,
   then the whole body), accepting the first candidate with enough text.
2. Walk the tree bottom-up. Short leaf text is dropped; a block whose children
   yielded nothing becomes passages of its own; otherwise child passages
   propagate upward.
3. Greedily merge adjacent sibling passages up to the word limit, allowing a
   single bounded overshoot so that tiny tails are absorbed.
4. Split long text into several passages, snapping each cut to a sentence or
   paragraph end when one lies close enough to the target size.

Malformed or empty input yields an empty list; the chunker never raises.
"""

from __future__ import annotations

import itertools
import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterator

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag
from soupsieve import SelectorSyntaxError

from passage_search.core.settings import ChunkerSettings
from passage_search.core.text_processing import normalize_whitespace
from passage_search.core.types import Document, ElementInfo, Passage
from passage_search.ingestion.chunking.content_selectors import (
    AD_TOKENS,
    BLOCK_TAGS,
    EXCLUDE_PATTERNS,
    SEMANTIC_CONTAINER_TAGS,
    UNWANTED_ROLES,
    UNWANTED_TAGS,
)
from passage_search.ingestion.chunking.passage_quality import passage_quality
from passage_search.observability.logger import get_logger

logger = get_logger(__name__)

_HTML_TAG_RE = re.compile(r"<[a-zA-Z][^>]*>")
_WORD_RE = re.compile(r"\S+")
_PARAGRAPH_BREAK_RE = re.compile(r"\n[ \t\r\f\v]*\n")
_SENTENCE_END_RE = re.compile(r"[.!?][\"'”’)\]]*$")
_CLASS_PART_RE = re.compile(r"[-_\s]+")


@dataclass
class _Draft:
    """Passage under construction; positions are renumbered at the end."""

    text: str
    word_count: int
    position: int
    quality: float
    element: ElementInfo | None = None


@dataclass
class _Frame:
    """One open element of the walk and the passages its children produced."""

    node: Tag
    children: Iterator[Any]
    passages: list[_Draft] = field(default_factory=list)


_BLOCK_END = object()


class PassageChunker:
    """Converts documents into ordered, quality-scored passages."""

    def __init__(self, settings: Any | None = None, **overrides: Any) -> None:
        chunker_settings = getattr(settings, "chunker", None)
        if not isinstance(chunker_settings, ChunkerSettings):
            chunker_settings = ChunkerSettings()
        if overrides:
            chunker_settings = replace(chunker_settings, **overrides)
        self.config = chunker_settings

    @property
    def max_passage_words(self) -> int:
        """Hard upper bound on any passage's word count."""

        return math.floor(self.config.max_words_per_passage * self.config.overshoot_ratio)

    def chunk(self, document: Document) -> list[Passage]:
        """Chunk ``document.raw_text`` (HTML or plain text) into passages."""

        raw = document.raw_text
        if not isinstance(raw, str) or not raw.strip():
            return []
        try:
            if _HTML_TAG_RE.search(raw):
                passages = self.chunk_html(raw, document_id=document.id)
            else:
                passages = self.chunk_text(raw, document_id=document.id)
        except Exception:  # noqa: BLE001 - malformed input must not fail ingestion
            logger.warning("Chunking failed for document %s", document.id, exc_info=True)
            return []
        logger.debug("Chunked document %s into %d passages", document.id, len(passages))
        return passages

    def chunk_html(self, html: str, document_id: str = "passage") -> list[Passage]:
        if not isinstance(html, str) or not html.strip():
            return []
        soup = BeautifulSoup(html, "html.parser")
        root = self._find_main_content(soup)
        positions = itertools.count()
        drafts = self._walk(root, positions)
        if not drafts:
            # lists, tables and <br> runs whose lines are each below the minimum
            root_text = self._visible_text(root)
            if len(root_text) > self.config.min_content_chars and self._meets_minimum(root_text):
                logger.debug("No block passages found; chunking the whole content root")
                drafts = self._passages_from_text(root_text, self._element_info(root), positions)
        return self._finalize(drafts, document_id)

    def chunk_text(self, text: str, document_id: str = "passage") -> list[Passage]:
        """Chunk plain text; blank-line separated paragraphs are sibling blocks."""

        if not isinstance(text, str) or not text.strip():
            return []
        positions = itertools.count()
        drafts: list[_Draft] = []
        for paragraph in _PARAGRAPH_BREAK_RE.split(text):
            if self._meets_minimum(paragraph):
                drafts.extend(self._passages_from_text(paragraph, None, positions))
        if self.config.aggregate_siblings:
            drafts = self._aggregate_siblings(drafts, None)
        return self._finalize(drafts, document_id)

    # ------------------------------------------------------------------
    # main content detection
    # ------------------------------------------------------------------

    def _find_main_content(self, soup: BeautifulSoup) -> Tag:
        for tag_name in SEMANTIC_CONTAINER_TAGS:
            element = soup.find(tag_name)
            if isinstance(element, Tag) and self._has_substantial_content(element):
                logger.debug("Using <%s> as content root", tag_name)
                return element

        for selector in self.config.content_selectors:
            try:
                element = soup.select_one(selector)
            except SelectorSyntaxError:
                logger.warning("Ignoring invalid content selector: %s", selector)
                continue
            if isinstance(element, Tag) and self._has_substantial_content(element):
                logger.debug("Using selector %s as content root", selector)
                return element

        logger.debug("Falling back to <body> as content root")
        body = soup.body
        return body if isinstance(body, Tag) else soup

    def _has_substantial_content(self, element: Tag) -> bool:
        return len(element.get_text().strip()) > self.config.min_content_chars

    # ------------------------------------------------------------------
    # bottom-up walk
    # ------------------------------------------------------------------

    def _walk(self, root: Tag, positions: Iterator[int]) -> list[_Draft]:
        """Post-order walk with an explicit stack, so nesting depth is unbounded."""

        stack = [_Frame(root, iter(root.children))]
        while True:
            frame = stack[-1]
            child = next(frame.children, None)
            if child is not None:
                if isinstance(child, NavigableString):
                    frame.passages.extend(self._passages_from_string(child, positions))
                elif isinstance(child, Tag) and not self._is_unwanted(child):
                    stack.append(_Frame(child, iter(child.children)))
                continue

            stack.pop()
            drafts = self._close_element(frame.node, frame.passages, positions)
            if not stack:
                return drafts
            stack[-1].passages.extend(drafts)

    def _passages_from_string(
        self, node: NavigableString, positions: Iterator[int]
    ) -> list[_Draft]:
        if isinstance(node, PreformattedString):
            return []
        text = str(node)
        if len(text.split()) >= self.config.min_word_count and len(text.strip()) > (
            self.config.min_word_count * 3
        ):
            return self._passages_from_text(text, None, positions)
        return []

    def _close_element(
        self, node: Tag, child_passages: list[_Draft], positions: Iterator[int]
    ) -> list[_Draft]:
        if node.name in BLOCK_TAGS and (
            not child_passages or not self._has_block_descendant(node)
        ):
            own_text = self._visible_text(node)
            if self._meets_minimum(own_text):
                return self._passages_from_text(own_text, self._element_info(node), positions)

        if child_passages and self.config.aggregate_siblings:
            return self._aggregate_siblings(child_passages, node)
        return child_passages

    def _is_unwanted(self, element: Tag) -> bool:
        if element.name in UNWANTED_TAGS:
            return True
        role = element.get("role")
        if isinstance(role, str) and role.lower() in UNWANTED_ROLES:
            return True

        markers: list[str] = []
        classes = element.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        markers.extend(str(c).lower() for c in classes)
        element_id = element.get("id")
        if isinstance(element_id, str):
            markers.append(element_id.lower())

        for marker in markers:
            if any(pattern in marker for pattern in EXCLUDE_PATTERNS):
                return True
            if any(part in AD_TOKENS for part in _CLASS_PART_RE.split(marker)):
                return True
        return False

    def _visible_text(self, element: Tag) -> str:
        parts: list[str] = []
        stack: list[Iterator[Any]] = [iter(element.children)]
        while stack:
            child = next(stack[-1], None)
            if child is None:
                stack.pop()
            elif child is _BLOCK_END:
                parts.append(" ")
            elif isinstance(child, NavigableString):
                if not isinstance(child, PreformattedString):
                    parts.append(str(child))
            elif isinstance(child, Tag) and not self._is_unwanted(child):
                if child.name in BLOCK_TAGS or child.name == "br":
                    # block boundaries separate words on both sides
                    parts.append(" ")
                    stack.append(iter((_BLOCK_END,)))
                stack.append(iter(child.children))
        return normalize_whitespace("".join(parts))

    @staticmethod
    def _has_block_descendant(element: Tag) -> bool:
        return any(
            isinstance(descendant, Tag) and descendant.name in BLOCK_TAGS
            for descendant in element.descendants
        )

    @staticmethod
    def _element_info(element: Tag) -> ElementInfo:
        classes = element.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        element_id = element.get("id")
        return ElementInfo(
            tag_name=element.name,
            class_name=" ".join(str(c) for c in classes),
            element_id=element_id if isinstance(element_id, str) else "",
        )

    def _meets_minimum(self, text: str) -> bool:
        return len(text.split()) >= self.config.min_word_count and len(text.strip()) > 20

    # ------------------------------------------------------------------
    # passage construction
    # ------------------------------------------------------------------

    def _passages_from_text(
        self, text: str, element: ElementInfo | None, positions: Iterator[int]
    ) -> list[_Draft]:
        matches = list(_WORD_RE.finditer(text))
        words = [m.group() for m in matches]
        if not words:
            return []

        max_words = self.config.max_words_per_passage
        if len(words) <= max_words:
            return [self._draft(words, element, positions)]

        paragraph_ends = [
            bool(_PARAGRAPH_BREAK_RE.search(text, matches[i].end(), matches[i + 1].start()))
            for i in range(len(matches) - 1)
        ] + [True]

        drafts: list[_Draft] = []
        start = 0
        total = len(words)
        while start < total:
            remaining = total - start
            if remaining <= max_words or (drafts and remaining <= self.max_passage_words):
                end = total
            else:
                end = start + max_words
                if self.config.prefer_semantic_boundaries:
                    end = self._snap_to_boundary(words, paragraph_ends, start, end)
            drafts.append(self._draft(words[start:end], element, positions))
            start = end
        return drafts

    def _snap_to_boundary(
        self, words: list[str], paragraph_ends: list[bool], start: int, end: int
    ) -> int:
        """Move ``end`` back to the last sentence/paragraph end within the allowed window."""

        min_end = start + max(1, math.ceil((end - start) * self.config.min_boundary_fraction))
        for candidate in range(end, min_end - 1, -1):
            last = candidate - 1
            if paragraph_ends[last] or _SENTENCE_END_RE.search(words[last]):
                return candidate
        return end

    @staticmethod
    def _draft(words: list[str], element: ElementInfo | None, positions: Iterator[int]) -> _Draft:
        text = " ".join(words)
        return _Draft(
            text=text,
            word_count=len(words),
            position=next(positions),
            quality=passage_quality(text),
            element=element,
        )

    def _aggregate_siblings(self, drafts: list[_Draft], parent: Tag | None) -> list[_Draft]:
        if len(drafts) < 2:
            return drafts

        max_words = self.config.max_words_per_passage
        aggregated: list[_Draft] = []
        current: list[_Draft] = []
        current_words = 0

        for draft in drafts:
            if not current:
                current, current_words = [draft], draft.word_count
                continue
            potential = current_words + draft.word_count
            if potential <= max_words:
                current.append(draft)
                current_words = potential
            elif potential <= self.max_passage_words:
                # one bounded overshoot, then the group is closed
                current.append(draft)
                aggregated.append(self._merge(current, parent))
                current, current_words = [], 0
            else:
                aggregated.append(self._merge(current, parent))
                current, current_words = [draft], draft.word_count

        if current:
            aggregated.append(self._merge(current, parent))
        return aggregated

    def _merge(self, drafts: list[_Draft], parent: Tag | None) -> _Draft:
        if len(drafts) == 1:
            return drafts[0]
        total_words = sum(d.word_count for d in drafts)
        weighted_quality = sum(d.quality * d.word_count for d in drafts) / total_words
        return _Draft(
            text=" ".join(d.text for d in drafts),
            word_count=total_words,
            position=drafts[0].position,
            quality=max(0.0, min(1.0, round(weighted_quality, 6))),
            element=self._element_info(parent) if isinstance(parent, Tag) else drafts[0].element,
        )

    def _finalize(self, drafts: list[_Draft], document_id: str) -> list[Passage]:
        ordered = sorted(drafts, key=lambda d: d.position)[: self.config.max_passages]
        return [
            Passage(
                id=f"{document_id}-p{index:03d}",
                text=draft.text,
                word_count=draft.word_count,
                position=index,
                quality=draft.quality,
                element=draft.element,
            )
            for index, draft in enumerate(ordered)
        ]


def chunk_document(document: Document, settings: Any | None = None) -> Document:
    """Return a copy of ``document`` whose passages are rebuilt from its raw text."""

    passages = PassageChunker(settings).chunk(document)
    return replace(document, passages=passages)
