"""Lexicon and heuristic entity extraction from documents."""

import asyncio
import logging
import re
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from entity_graph.config import Settings
from entity_graph.models import (
    Document,
    DocumentFailure,
    DocumentSection,
    EntityMention,
    EntityType,
    ResolvedEntityKey,
    Sentiment,
)
from entity_graph.utils.cache import ExtractionCache

from .lexicon import (
    CONTEXT_CUES,
    GAZETTEER,
    NEGATIVE_WORDS,
    POSITIVE_WORDS,
    STOPWORDS,
    TAG_TAXONOMY,
    LexiconEntry,
)
from .normalization import NormalizationResolver

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[^\W\d_][\w'’-]*")
_CUE_WORD = re.compile(r"[a-z]+")
_SENTIMENT_WORD = re.compile(r"[a-z']+")
_SENTENCE_END = ".!?:;\"“(\n"
_TAG_SEPARATORS = re.compile(r"[-_#/]+")
_SPACES = re.compile(r"\s+")

_SECTION_ORDER = {
    DocumentSection.TITLE: 0,
    DocumentSection.EXCERPT: 1,
    DocumentSection.CONTENT: 2,
    DocumentSection.TAGS: 3,
}


@dataclass
class _Candidate:
    """One raw match before in-document collapsing."""

    key: ResolvedEntityKey
    name: str
    confidence: float
    category: str | None
    section: DocumentSection
    start: int
    context: str


@dataclass
class _Aggregate:
    name: str
    confidence: float
    category: str | None
    section: DocumentSection
    contexts: list[str] = field(default_factory=list)
    count: int = 0
    weight: float = 0.0


@dataclass
class BatchExtraction:
    """Result of extracting a batch of documents."""

    entities: dict[str, list[EntityMention]] = field(default_factory=dict)
    failures: list[DocumentFailure] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    failed_ids: set[str] = field(default_factory=set)

    def successful(self) -> dict[str, list[EntityMention]]:
        """Mentions of the documents whose extraction succeeded."""
        return {
            identifier: mentions
            for identifier, mentions in self.entities.items()
            if identifier not in self.failed_ids
        }


def _display_name(text: str) -> str:
    """Title-case lowercase lexicon terms; keep names that carry their own casing."""
    text = _SPACES.sub(" ", text).strip()
    if text != text.lower():
        return text
    return " ".join(word[:1].upper() + word[1:] for word in text.split(" "))


class EntityExtractor:
    """Extract typed entity mentions from article-like documents.

    Three layers are combined per document section:
    1. Gazetteer lookups (confidence >= 0.8)
    2. Capitalized-phrase heuristic for unknown proper nouns (0.4-0.7)
    3. Declared tags (confidence 1.0)
    """

    MAX_PHRASE_WORDS = 4

    def __init__(
        self,
        resolver: NormalizationResolver | None = None,
        cache: ExtractionCache | None = None,
        min_confidence: float = 0.3,
        context_window: int = 50,
        max_context_snippets: int = 5,
        batch_concurrency: int = 10,
        gazetteer: list[LexiconEntry] | None = None,
    ):
        """Initialize entity extractor.

        Args:
            resolver: Name normalizer shared with graph building
            cache: Optional extraction cache consulted before extracting
            min_confidence: Mentions below this confidence are discarded
            context_window: Characters of context on each side of a match
            max_context_snippets: Context windows kept per collapsed mention
            batch_concurrency: Documents extracted concurrently in a batch
            gazetteer: Lexicon entries (defaults to the built-in gazetteer)

        Raises:
            ValueError: If a numeric setting is out of range
        """
        if not 0.0 <= min_confidence <= 1.0:
            raise ValueError(f"min_confidence must be within [0, 1], got {min_confidence}")
        if context_window < 0:
            raise ValueError(f"context_window must be >= 0, got {context_window}")
        if max_context_snippets < 1 or batch_concurrency < 1:
            raise ValueError("max_context_snippets and batch_concurrency must be positive")

        self.resolver = resolver or NormalizationResolver()
        self.cache = cache
        self.min_confidence = min_confidence
        self.context_window = context_window
        self.max_context_snippets = max_context_snippets
        self.batch_concurrency = batch_concurrency

        self.gazetteer = list(gazetteer if gazetteer is not None else GAZETTEER)
        self._patterns = [(entry, self._compile_entry(entry)) for entry in self.gazetteer]
        self._terms: dict[str, LexiconEntry] = {}
        for entry in self.gazetteer:
            if entry.pattern is None:
                for term in entry.terms:
                    self._terms.setdefault(self.resolver.normalize(term), entry)

        logger.debug(f"Initialized {len(self._patterns)} entity patterns")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        resolver: NormalizationResolver | None = None,
        cache: ExtractionCache | None = None,
    ) -> "EntityExtractor":
        """Create an extractor configured from settings."""
        return cls(
            resolver=resolver,
            cache=cache,
            min_confidence=settings.min_confidence,
            context_window=settings.context_window,
            max_context_snippets=settings.max_context_snippets,
            batch_concurrency=settings.batch_concurrency,
        )

    @property
    def total_patterns(self) -> int:
        return len(self._patterns)

    @staticmethod
    def _compile_entry(entry: LexiconEntry) -> re.Pattern[str]:
        if entry.pattern is not None:
            return re.compile(entry.pattern, re.IGNORECASE)

        terms = sorted(entry.terms, key=len, reverse=True)
        alternation = "|".join(re.escape(term).replace(r"\ ", r"\s+") for term in terms)
        # a trailing possessive stays outside the match so "Tokyo's" resolves to Tokyo
        return re.compile(
            rf"(?<![\w'’-])(?:{alternation})(?=(?:['’]s)?(?![\w'’-]))", re.IGNORECASE
        )

    # Public API

    def extract_entities(self, document: Document | Mapping[str, Any]) -> list[EntityMention]:
        """Extract entities from a document.

        Never raises: malformed or empty documents yield an empty list.

        Args:
            document: Document or mapping with document fields

        Returns:
            Mentions ordered by first occurrence
        """
        try:
            doc = self._coerce(document)
        except (ValidationError, TypeError) as e:
            logger.warning(f"Skipping malformed document: {e}")
            return []

        try:
            return self._extract_cached(doc)
        except Exception as e:
            logger.error(f"Entity extraction failed for {doc.identifier}: {e}")
            return []

    async def batch_extract_entities(
        self,
        documents: Iterable[Document | Mapping[str, Any]],
    ) -> BatchExtraction:
        """Extract entities from many documents concurrently.

        A failing document maps to an empty list and is reported in
        ``failures``; the batch never aborts. A repeated identifier keeps its
        first document and reports the later ones as failures.

        Args:
            documents: Documents or mappings with document fields

        Returns:
            BatchExtraction keyed by document identifier, in input order
        """
        docs = list(documents)
        start_time = time.perf_counter()
        semaphore = asyncio.Semaphore(self.batch_concurrency)

        result = BatchExtraction()
        pending: list[tuple[str, Any]] = []
        for index, raw in enumerate(docs):
            identifier = self._identifier_of(raw, index)
            if identifier in result.entities:
                logger.warning(f"Skipping document {index}: identifier {identifier} repeats in batch")
                result.failures.append(
                    DocumentFailure(identifier=identifier, error=f"Duplicate identifier in batch (position {index})")
                )
                continue
            result.entities[identifier] = []
            pending.append((identifier, raw))

        async def run(identifier: str, raw: Any) -> tuple[str, list[EntityMention], DocumentFailure | None]:
            async with semaphore:
                try:
                    doc = self._coerce(raw)
                    mentions = await asyncio.to_thread(self._extract_cached, doc)
                except Exception as e:
                    logger.warning(f"Failed to extract entities from {identifier}: {e}")
                    return identifier, [], DocumentFailure(identifier=identifier, error=str(e))
            return identifier, mentions, None

        outcomes = await asyncio.gather(*(run(identifier, raw) for identifier, raw in pending))

        for identifier, mentions, failure in outcomes:
            result.entities[identifier] = mentions
            if failure is not None:
                result.failed_ids.add(identifier)
                result.failures.append(failure)

        result.elapsed_seconds = time.perf_counter() - start_time
        logger.info(
            f"Batch entity extraction: {len(docs)} documents, "
            f"{len(result.failures)} failures in {result.elapsed_seconds:.2f}s"
        )
        return result

    # Pipeline

    @staticmethod
    def _coerce(document: Document | Mapping[str, Any]) -> Document:
        if isinstance(document, Document):
            return document
        if isinstance(document, Mapping):
            return Document.model_validate(dict(document))
        raise TypeError(f"Unsupported document type: {type(document).__name__}")

    @staticmethod
    def _identifier_of(document: Any, index: int) -> str:
        if isinstance(document, Document):
            return document.identifier
        if isinstance(document, Mapping) and document.get("identifier"):
            return str(document["identifier"])
        return f"document_{index}"

    def _extract_cached(self, doc: Document) -> list[EntityMention]:
        if self.cache is None:
            return self._extract_document(doc)

        fingerprint = self.cache.fingerprint(doc)
        cached = self.cache.get(fingerprint)
        if cached is not None:
            logger.debug(f"Extraction cache hit for {doc.identifier}")
            return cached

        mentions = self._extract_document(doc)
        self.cache.put(fingerprint, mentions)
        return mentions

    def _extract_document(self, doc: Document) -> list[EntityMention]:
        """Run every extraction layer over one document."""
        candidates: list[_Candidate] = []

        for section, text in (
            (DocumentSection.TITLE, doc.title),
            (DocumentSection.EXCERPT, doc.excerpt),
            (DocumentSection.CONTENT, doc.content),
        ):
            if not text or not text.strip():
                continue
            taken = self._match_gazetteer(section, text, candidates)
            self._match_proper_nouns(section, text, taken, candidates)

        candidates.extend(self._match_tags(doc.tags))

        mentions = [
            mention
            for mention in self._collapse(candidates)
            if mention.confidence >= self.min_confidence
        ]
        logger.debug(f"Extracted {len(mentions)} entities from {doc.identifier}")
        return mentions

    def _match_gazetteer(
        self,
        section: DocumentSection,
        text: str,
        candidates: list[_Candidate],
    ) -> list[tuple[int, int]]:
        """Add gazetteer matches; longer matches win over overlapping shorter ones."""
        matches = []
        for entry, regex in self._patterns:
            for match in regex.finditer(text):
                matches.append((match.start(), match.end(), entry, match.group(0)))

        matches.sort(key=lambda m: (-(m[1] - m[0]), m[0]))

        taken: list[tuple[int, int]] = []
        for start, end, entry, matched in matches:
            if any(start < t_end and t_start < end for t_start, t_end in taken):
                continue
            taken.append((start, end))

            if entry.pattern is not None:
                name = _display_name(matched.lower())
                key = self.resolver.resolve(entry.type, matched)
            else:
                name = _display_name(entry.name)
                key = self.resolver.resolve(entry.type, entry.name)

            candidates.append(
                _Candidate(
                    key=key,
                    name=name,
                    confidence=entry.confidence,
                    category=entry.category,
                    section=section,
                    start=start,
                    context=self._context(text, start, end),
                )
            )

        return taken

    def _match_proper_nouns(
        self,
        section: DocumentSection,
        text: str,
        taken: list[tuple[int, int]],
        candidates: list[_Candidate],
    ) -> None:
        """Add capitalized word runs that the gazetteer did not claim."""
        for run in self._capitalized_runs(text, taken):
            while run and run[0].group(0).lower() in STOPWORDS:
                run = run[1:]
            while run and run[-1].group(0).lower() in STOPWORDS:
                run = run[:-1]
            if not run:
                continue

            start, end = run[0].start(), run[-1].end()
            surface = text[start:end]
            if len(surface) < 2:
                continue

            key_name = self.resolver.normalize(surface)
            if not key_name:
                continue

            preceding = text[max(0, start - 100):start].rstrip(" \t")
            sentence_initial = not preceding or preceding[-1] in _SENTENCE_END
            if len(run) == 1 and sentence_initial:
                confidence = 0.4
            else:
                confidence = 0.5
                if len(run) > 1:
                    confidence += 0.1
                if not sentence_initial:
                    confidence += 0.1

            entity_type = self._infer_type(text, start, end)
            candidates.append(
                _Candidate(
                    key=ResolvedEntityKey(entity_type, key_name),
                    name=_SPACES.sub(" ", surface),
                    confidence=round(min(confidence, 0.7), 2),
                    category=None,
                    section=section,
                    start=start,
                    context=self._context(text, start, end),
                )
            )

    def _capitalized_runs(self, text: str, taken: list[tuple[int, int]]) -> list[list[re.Match[str]]]:
        runs: list[list[re.Match[str]]] = []
        current: list[re.Match[str]] = []

        for word in _WORD.finditer(text):
            overlaps = any(word.start() < t_end and t_start < word.end() for t_start, t_end in taken)
            capitalized = word.group(0)[0].isupper() and not overlaps
            contiguous = bool(current) and text[current[-1].end():word.start()] in (" ", "\t")

            if capitalized and contiguous and len(current) < self.MAX_PHRASE_WORDS:
                current.append(word)
                continue

            if current:
                runs.append(current)
            current = [word] if capitalized else []

        if current:
            runs.append(current)
        return runs

    def _infer_type(self, text: str, start: int, end: int) -> EntityType:
        """Pick a type from cue words three before and two after the phrase."""
        before = _CUE_WORD.findall(text[max(0, start - 40):start].lower())[-3:]
        after = _CUE_WORD.findall(text[end:end + 30].lower())[:2]
        nearby = before + after

        best_type, best_hits = EntityType.THING, 0
        for entity_type, cues in CONTEXT_CUES.items():
            hits = sum(1 for word in nearby if word in cues)
            if hits > best_hits:
                best_type, best_hits = entity_type, hits
        return best_type

    def _match_tags(self, tags: list[str]) -> list[_Candidate]:
        candidates = []
        for index, tag in enumerate(tags):
            readable = _SPACES.sub(" ", _TAG_SEPARATORS.sub(" ", tag)).strip()
            normalized = self.resolver.normalize(readable)
            if not normalized:
                continue

            entry = self._terms.get(normalized)
            if entry is not None:
                name = _display_name(entry.name)
                key = self.resolver.resolve(entry.type, entry.name)
                category = entry.category
            else:
                entity_type = self._tag_type(normalized)
                name = _display_name(readable)
                key = ResolvedEntityKey(entity_type, normalized)
                category = "Tag"

            candidates.append(
                _Candidate(
                    key=key,
                    name=name,
                    confidence=1.0,
                    category=category,
                    section=DocumentSection.TAGS,
                    start=index,
                    context=f"#{tag.strip()}",
                )
            )
        return candidates

    @staticmethod
    def _tag_type(normalized_tag: str) -> EntityType:
        for word in normalized_tag.split(" "):
            for variant in (word, word.rstrip("s")):
                if variant in TAG_TAXONOMY:
                    return TAG_TAXONOMY[variant]
        return EntityType.THING

    def _context(self, text: str, start: int, end: int) -> str:
        window = text[max(0, start - self.context_window):min(len(text), end + self.context_window)]
        return _SPACES.sub(" ", window).strip()

    def _collapse(self, candidates: list[_Candidate]) -> list[EntityMention]:
        """Merge repeated matches of one key into a single mention."""
        ordered = sorted(candidates, key=lambda c: (_SECTION_ORDER[c.section], c.start))

        aggregates: dict[ResolvedEntityKey, _Aggregate] = {}
        for candidate in ordered:
            agg = aggregates.get(candidate.key)
            if agg is None:
                agg = _Aggregate(
                    name=candidate.name,
                    confidence=candidate.confidence,
                    category=candidate.category,
                    section=candidate.section,
                )
                aggregates[candidate.key] = agg
            else:
                agg.confidence = max(agg.confidence, candidate.confidence)
                agg.category = agg.category or candidate.category

            agg.count += 1
            agg.weight = max(agg.weight, candidate.section.weight)
            if candidate.context not in agg.contexts and len(agg.contexts) < self.max_context_snippets:
                agg.contexts.append(candidate.context)

        mentions = []
        for key, agg in aggregates.items():
            relevance = (
                0.5 * agg.confidence
                + 0.3 * min(1.0, agg.count / 3)
                + 0.2 * agg.weight
            )
            mentions.append(
                EntityMention(
                    type=key.type,
                    name=agg.name,
                    normalized_name=key.normalized_name,
                    confidence=agg.confidence,
                    context=" ... ".join(agg.contexts),
                    category=agg.category,
                    sentiment=self._classify_sentiment(" ".join(agg.contexts)),
                    relevance=min(1.0, relevance),
                    mention_count=agg.count,
                    section=agg.section,
                )
            )
        return mentions

    @staticmethod
    def _classify_sentiment(context: str) -> Sentiment:
        words = _SENTIMENT_WORD.findall(context.lower())
        positive = sum(1 for word in words if word in POSITIVE_WORDS)
        negative = sum(1 for word in words if word in NEGATIVE_WORDS)

        if positive > negative:
            return Sentiment.POSITIVE
        if negative > positive:
            return Sentiment.NEGATIVE
        return Sentiment.NEUTRAL
