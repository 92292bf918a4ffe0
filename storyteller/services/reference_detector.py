"""
Entity reference detection.

Decides which known characters and settings a chapter mentions, with graded
confidence. Matching is literal substring search over the chapter body using
an ordered list of matcher strategies:

    binding patterns   confidence from the *.binding.yaml file
    exact name         1.0
    display names      0.9
    detection hints    hint confidence (default 0.9)
    aliases            0.8
    pronouns           0.6

Per pattern the highest confidence wins; per entity the reported confidence
is the maximum over its matched patterns. Entities listed in the frontmatter
are always part of the result.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from storyteller.schemas.binding import BindingFile, clamp_confidence
from storyteller.schemas.entity import DetectableEntity, EntityKind
from storyteller.schemas.meta import (
    ChapterFrontmatter,
    DetectedEntityRef,
    DetectionResult,
    MatchTier,
    PatternMatch,
    PatternStats,
)
from storyteller.services.frontmatter_parser import strip_frontmatter
from storyteller.storage.bindings import BindingLoader, binding_path_for
from storyteller.storage.entities import EntityLoader
from storyteller.utils.logger import get_logger
from storyteller.utils.text import dedupe, find_occurrences

logger = get_logger(__name__)

EXACT_CONFIDENCE = 1.0
DISPLAY_NAME_CONFIDENCE = 0.9
HINT_CONFIDENCE = 0.9
ALIAS_CONFIDENCE = 0.8
PRONOUN_CONFIDENCE = 0.6
FRONTMATTER_CONFIDENCE = 1.0

Candidate = Tuple[str, float, MatchTier]
Matcher = Callable[[DetectableEntity, Optional[BindingFile]], Iterable[Candidate]]


def _binding_matcher(entity: DetectableEntity, binding: Optional[BindingFile]) -> Iterable[Candidate]:
    for pattern in binding.patterns if binding else []:
        yield pattern.text, pattern.confidence, MatchTier.BINDING


def _exact_matcher(entity: DetectableEntity, binding: Optional[BindingFile]) -> Iterable[Candidate]:
    if entity.name:
        yield entity.name, EXACT_CONFIDENCE, MatchTier.EXACT


def _display_name_matcher(entity: DetectableEntity, binding: Optional[BindingFile]) -> Iterable[Candidate]:
    for name in entity.display_names:
        yield name, DISPLAY_NAME_CONFIDENCE, MatchTier.DISPLAY_NAME


def _hint_matcher(entity: DetectableEntity, binding: Optional[BindingFile]) -> Iterable[Candidate]:
    hints = entity.detection_hints
    if hints is None:
        return
    confidence = clamp_confidence(hints.confidence if hints.confidence is not None else HINT_CONFIDENCE)
    for pattern in hints.common_patterns:
        yield pattern, confidence, MatchTier.HINT


def _alias_matcher(entity: DetectableEntity, binding: Optional[BindingFile]) -> Iterable[Candidate]:
    for alias in entity.aliases:
        yield alias, ALIAS_CONFIDENCE, MatchTier.ALIAS


def _pronoun_matcher(entity: DetectableEntity, binding: Optional[BindingFile]) -> Iterable[Candidate]:
    for pronoun in entity.pronouns:
        yield pronoun, PRONOUN_CONFIDENCE, MatchTier.PRONOUN


MATCHERS: Tuple[Matcher, ...] = (
    _binding_matcher,
    _exact_matcher,
    _display_name_matcher,
    _hint_matcher,
    _alias_matcher,
    _pronoun_matcher,
)


def collect_candidates(entity: DetectableEntity, binding: Optional[BindingFile]) -> Dict[str, Tuple[float, MatchTier]]:
    """Fold every matcher's output into pattern -> (best confidence, tier)."""
    best: Dict[str, Tuple[float, MatchTier]] = {}
    for matcher in MATCHERS:
        for pattern, confidence, tier in matcher(entity, binding):
            if not pattern:
                continue
            current = best.get(pattern)
            if current is None or confidence > current[0]:
                best[pattern] = (confidence, tier)
    return best


def excluded_positions(body: str, pattern: str, excludes: Iterable[str]) -> set:
    """Start offsets of *pattern* that fall inside an exclude context.

    An exclude string only applies to patterns it contains; e.g. exclude
    "勇者という存在" covers the "勇者" at the start of each of its occurrences.
    """
    covered = set()
    for exclude in excludes:
        if not exclude or pattern not in exclude:
            continue
        offsets = [idx for idx in range(len(exclude)) if exclude.startswith(pattern, idx)]
        for start in find_occurrences(body, exclude):
            covered.update(start + offset for offset in offsets)
    return covered


def match_entity(body: str, entity: DetectableEntity, binding: Optional[BindingFile]) -> List[PatternMatch]:
    """Return the surviving pattern matches of one entity in *body*."""
    excludes: List[str] = []
    if entity.detection_hints is not None:
        excludes.extend(entity.detection_hints.exclude_patterns)
    if binding is not None:
        excludes.extend(binding.exclude_patterns)

    matches: List[PatternMatch] = []
    for pattern, (confidence, tier) in collect_candidates(entity, binding).items():
        positions = find_occurrences(body, pattern)
        if not positions:
            continue
        if excludes:
            covered = excluded_positions(body, pattern, excludes)
            positions = [pos for pos in positions if pos not in covered]
        if positions:
            matches.append(
                PatternMatch(pattern=pattern, occurrences=len(positions), confidence=confidence, tier=tier)
            )
    return matches


def default_patterns(entity: DetectableEntity, binding: Optional[BindingFile]) -> Dict[str, float]:
    """Patterns recorded for a frontmatter-declared entity, with tier confidence."""
    patterns: Dict[str, float] = {}

    def add(pattern: str, confidence: float) -> None:
        if pattern:
            patterns[pattern] = max(patterns.get(pattern, 0.0), confidence)

    if entity.display_names:
        for name in entity.display_names:
            add(name, DISPLAY_NAME_CONFIDENCE)
    else:
        add(entity.name, EXACT_CONFIDENCE)
    for alias in entity.aliases:
        add(alias, ALIAS_CONFIDENCE)
    for pattern in binding.patterns if binding else []:
        add(pattern.text, pattern.confidence)
    if entity.name in patterns:
        patterns[entity.name] = EXACT_CONFIDENCE
    return patterns


def _to_ref(entity: DetectableEntity, matches: List[PatternMatch]) -> DetectedEntityRef:
    return DetectedEntityRef(
        kind=entity.kind,
        id=entity.id,
        export_name=entity.export_name,
        file_path=entity.file_path,
        matched_patterns=[m.pattern for m in matches],
        occurrences=sum(m.occurrences for m in matches),
        confidence=max(m.confidence for m in matches),
        pattern_matches={
            m.pattern: PatternStats(occurrences=m.occurrences, confidence=m.confidence) for m in matches
        },
    )


def _merge_frontmatter(
    entity: DetectableEntity,
    binding: Optional[BindingFile],
    body_ref: Optional[DetectedEntityRef],
) -> DetectedEntityRef:
    defaults = default_patterns(entity, binding)
    if body_ref is None:
        return DetectedEntityRef(
            kind=entity.kind,
            id=entity.id,
            export_name=entity.export_name,
            file_path=entity.file_path,
            matched_patterns=list(defaults),
            occurrences=0,
            confidence=FRONTMATTER_CONFIDENCE,
            pattern_matches={p: PatternStats(occurrences=0, confidence=c) for p, c in defaults.items()},
        )

    # Body evidence decides the confidence; declared patterns are still listed.
    stats: Dict[str, PatternStats] = {
        p: PatternStats(occurrences=0, confidence=c) for p, c in defaults.items()
    }
    stats.update(body_ref.pattern_matches or {})
    return body_ref.model_copy(
        update={
            "matched_patterns": dedupe([*body_ref.matched_patterns, *defaults]),
            "pattern_matches": stats,
        }
    )


def _frontmatter_ids(frontmatter: Any, key: str) -> List[str]:
    if frontmatter is None:
        return []
    if isinstance(frontmatter, ChapterFrontmatter):
        value = getattr(frontmatter, key)
    elif isinstance(frontmatter, Mapping):
        value = frontmatter.get(key)
    else:
        value = getattr(frontmatter, key, None)
    if isinstance(value, str):
        return [value]
    return dedupe(value or [])


class ReferenceDetector:
    """
    参照検出器

    Detects entity references in a chapter. Entity lists are cached per
    ``(project path, kind)`` for the lifetime of the instance; binding files
    are re-read on every call. Use :meth:`refresh` or a fresh instance when
    the project's entity files change.

    Not safe for concurrent ``detect()`` calls on the same uncached project.
    """

    def __init__(
        self,
        entity_loader: Optional[EntityLoader] = None,
        binding_loader: Optional[BindingLoader] = None,
    ) -> None:
        self.entity_loader = entity_loader or EntityLoader()
        self.binding_loader = binding_loader or BindingLoader()
        self._cache: Dict[Tuple[str, EntityKind], List[DetectableEntity]] = {}

    @staticmethod
    def _project_key(project_path: str | Path) -> str:
        return str(Path(project_path).resolve())

    async def get_entities(self, project_path: str | Path, kind: EntityKind) -> List[DetectableEntity]:
        """Return the (cached) entities of *kind* for a project."""
        key = (self._project_key(project_path), kind)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Entity cache hit: %s %s", kind.value, key[0])
            return cached
        logger.debug("Entity cache miss: %s %s", kind.value, key[0])
        entities = await self.entity_loader.load_entities(project_path, kind)
        self._cache[key] = entities
        return entities

    def refresh(self, project_path: Optional[str | Path] = None) -> None:
        """Drop cached entities for one project, or for all projects."""
        if project_path is None:
            self._cache.clear()
            return
        project_key = self._project_key(project_path)
        for key in [k for k in self._cache if k[0] == project_key]:
            del self._cache[key]

    def clear(self) -> None:
        self.refresh()

    async def _load_bindings(
        self, project_path: str | Path, entities: List[DetectableEntity]
    ) -> Dict[Tuple[EntityKind, str], Optional[BindingFile]]:
        root = Path(project_path)
        loaded = await asyncio.gather(
            *(
                self.binding_loader.load(binding_path_for(root / entity.file_path, entity.id))
                for entity in entities
            )
        )
        return {(entity.kind, entity.id): binding for entity, binding in zip(entities, loaded)}

    async def detect(
        self,
        markdown_content: str,
        frontmatter: Any,
        project_path: str | Path,
    ) -> DetectionResult:
        """Detect referenced characters and settings.

        Args:
            markdown_content: Manuscript text; a leading frontmatter block is ignored.
            frontmatter: Mapping or :class:`ChapterFrontmatter` with optional
                ``characters`` / ``settings`` id lists.
            project_path: Project root containing ``src/``.

        Returns:
            Detection result; empty lists when nothing matched.

        Raises:
            BindingLoadError: A binding file is malformed.
            EntityLoadError: An entity file cannot be read.
        """
        characters, settings = await asyncio.gather(
            self.get_entities(project_path, EntityKind.CHARACTER),
            self.get_entities(project_path, EntityKind.SETTING),
        )
        bindings = await self._load_bindings(project_path, [*characters, *settings])
        body = strip_frontmatter(markdown_content)

        detected_characters = self._detect_kind(
            body, characters, bindings, _frontmatter_ids(frontmatter, "characters")
        )
        detected_settings = self._detect_kind(
            body, settings, bindings, _frontmatter_ids(frontmatter, "settings")
        )

        refs = [*detected_characters, *detected_settings]
        confidence = sum(ref.confidence for ref in refs) / len(refs) if refs else 0.0
        return DetectionResult(
            characters=detected_characters,
            settings=detected_settings,
            confidence=confidence,
        )

    def _detect_kind(
        self,
        body: str,
        entities: List[DetectableEntity],
        bindings: Dict[Tuple[EntityKind, str], Optional[BindingFile]],
        declared_ids: List[str],
    ) -> List[DetectedEntityRef]:
        by_id = {entity.id: entity for entity in entities}
        detected: Dict[str, DetectedEntityRef] = {}

        for entity in entities:
            matches = match_entity(body, entity, bindings.get((entity.kind, entity.id)))
            if matches:
                detected[entity.id] = _to_ref(entity, matches)

        for entity_id in declared_ids:
            entity = by_id.get(entity_id)
            if entity is None:
                logger.warning("Unknown frontmatter reference skipped: %s", entity_id)
                continue
            detected[entity_id] = _merge_frontmatter(
                entity, bindings.get((entity.kind, entity.id)), detected.get(entity_id)
            )

        return [detected[key] for key in sorted(detected)]
