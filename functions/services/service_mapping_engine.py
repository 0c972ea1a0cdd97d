"""Service mapping engine for LandQuote.

Recognizes catalog services in a normalized message by synonym matching,
scores each match, and reads a quantity for every recognized service.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import structlog

from models.service_catalog import ServiceCatalog
from models.service_request import RawService, ServiceMappingResult
from services.quantity_extraction import QuantityExtractor, Span
from services.text_normalizer import NormalizedText, canonicalize_phrase, normalize

logger = structlog.get_logger()


@dataclass(frozen=True)
class ServiceMatch:
    """A synonym hit inside one segment."""

    service_name: str
    phrase: str
    span: Span
    confidence: float


class ServiceMappingEngine:
    """Maps free text to catalog services with quantities.

    The catalog is injected and only read, so one engine per catalog can be
    shared across concurrent requests.
    """

    CONFIDENCE_THRESHOLD = 0.7
    IMPLICIT_UNIT_DISCOUNT = 0.9

    BASE_CONFIDENCE = 0.8
    WHOLE_WORD_BOOST = 0.15
    SPECIFICITY_BOOST = 0.05
    SPECIFICITY_LENGTH = 10

    MULTI_SERVICE_BONUS = 0.05
    MAX_MULTI_SERVICE_BONUS = 0.15

    MAX_SUGGESTIONS = 5

    def __init__(
        self,
        catalog: ServiceCatalog,
        confidence_threshold: Optional[float] = None,
        implicit_unit_discount: Optional[float] = None,
        quantity_extractor: Optional[QuantityExtractor] = None
    ):
        """Initialize ServiceMappingEngine.

        Args:
            catalog: Service catalog with synonyms.
            confidence_threshold: Minimum match confidence (default 0.7).
            implicit_unit_discount: Confidence factor for bare-number quantities.
            quantity_extractor: Extraction chain (default dimension/unit/bare).
        """
        self.catalog = catalog
        self.confidence_threshold = (
            confidence_threshold if confidence_threshold is not None
            else self.CONFIDENCE_THRESHOLD
        )
        self.implicit_unit_discount = (
            implicit_unit_discount if implicit_unit_discount is not None
            else self.IMPLICIT_UNIT_DISCOUNT
        )
        self.quantity_extractor = quantity_extractor or QuantityExtractor()
        self._phrases = self._build_phrase_index(catalog)

    @staticmethod
    def _build_phrase_index(catalog: ServiceCatalog) -> List[Tuple[str, str]]:
        """(phrase, service) pairs, longest phrase first, catalog order on ties.

        Canonical service names are indexed too, so summaries such as
        "Paver Patio: 120 sqft" map back to the same service.
        """
        owners: Dict[str, str] = {}
        for service_name, phrases in catalog.get_synonyms().items():
            for phrase in phrases:
                phrase = phrase.strip().lower()
                if phrase:
                    owners.setdefault(phrase, service_name)
        for service_name in catalog.get_all_services():
            owners.setdefault(canonicalize_phrase(service_name), service_name)

        # sorted() is stable, so equal lengths keep insertion order
        return sorted(owners.items(), key=lambda pair: -len(pair[0]))

    # =========================================================================
    # MATCHING
    # =========================================================================

    def calculate_synonym_confidence(self, segment: str, phrase: str) -> float:
        """Score a synonym hit: base, whole-word boost, specificity boost."""
        confidence = self.BASE_CONFIDENCE

        words = segment.split()
        if all(word in words for word in phrase.split()):
            confidence += self.WHOLE_WORD_BOOST

        if len(phrase) > self.SPECIFICITY_LENGTH:
            confidence += self.SPECIFICITY_BOOST

        return min(confidence, 1.0)

    def find_service_matches(self, segment: str) -> List[ServiceMatch]:
        """Scan one segment for synonyms.

        Longer phrases claim their span first; a shorter phrase lying inside
        a claimed span is not a separate mention. Matches for the same
        service collapse to the highest-confidence one.
        """
        claimed: List[Span] = []
        best: Dict[str, ServiceMatch] = {}

        for phrase, service_name in self._phrases:
            start = segment.find(phrase)
            while start != -1:
                end = start + len(phrase)
                if not any(c_start <= start and end <= c_end for c_start, c_end in claimed):
                    break
                start = segment.find(phrase, start + 1)
            if start == -1:
                continue

            span = (start, start + len(phrase))
            claimed.append(span)
            match = ServiceMatch(
                service_name=service_name,
                phrase=phrase,
                span=span,
                confidence=self.calculate_synonym_confidence(segment, phrase)
            )
            current = best.get(service_name)
            if current is None or match.confidence > current.confidence:
                best[service_name] = match

        return sorted(best.values(), key=lambda m: m.span[0])

    # =========================================================================
    # MAPPING
    # =========================================================================

    def map_services(self, message: str) -> ServiceMappingResult:
        """Normalize and map a raw message."""
        return self.map_normalized(normalize(message))

    def map_normalized(self, normalized: NormalizedText) -> ServiceMappingResult:
        """Map every segment of an already-normalized message.

        Args:
            normalized: Normalizer output.

        Returns:
            ServiceMappingResult with one RawService per recognized service.
        """
        services: Dict[str, RawService] = {}
        unmapped: List[str] = []

        for segment in normalized.segments:
            segment_services = self._map_segment(segment)
            if not segment_services:
                unmapped.append(segment)
                continue
            for service in segment_services:
                current = services.get(service.name)
                if current is None or self._prefer(service, current):
                    services[service.name] = service

        result = ServiceMappingResult(
            services=list(services.values()),
            unmapped_text=unmapped,
            confidence=self.calculate_overall_confidence(
                [service.confidence for service in services.values()]
            )
        )

        logger.info(
            "services_mapped",
            service_count=len(result.services),
            unmapped_count=len(unmapped),
            confidence=result.confidence
        )
        return result

    @staticmethod
    def _prefer(candidate: RawService, current: RawService) -> bool:
        """Repeated mention: one with a quantity wins, then higher confidence."""
        if (candidate.quantity > 0) != (current.quantity > 0):
            return candidate.quantity > 0
        return candidate.confidence > current.confidence

    def _map_segment(self, segment: str) -> List[RawService]:
        matches = self.find_service_matches(segment)
        claimed = [match.span for match in matches]
        services: List[RawService] = []

        for match in matches:
            if match.confidence < self.confidence_threshold:
                logger.debug(
                    "service_match_dropped",
                    service=match.service_name,
                    confidence=match.confidence
                )
                continue

            config = self.catalog.get_service_by_name(match.service_name)
            if config is None:
                continue

            unit = config.unit.value
            confidence = match.confidence
            quantity = 0.0
            implicit_unit = False

            extracted = self.quantity_extractor.extract(segment, unit, claimed)
            if extracted is not None:
                quantity = extracted.quantity
                implicit_unit = extracted.implicit_unit
                if implicit_unit:
                    confidence *= self.implicit_unit_discount
                    logger.info(
                        "implicit_unit_assumed",
                        service=match.service_name,
                        quantity=quantity,
                        unit=unit
                    )

            services.append(RawService(
                name=match.service_name,
                quantity=quantity,
                unit=unit,
                confidence=confidence,
                original_text=segment,
                implicit_unit=implicit_unit
            ))
            logger.debug(
                "service_mapped",
                service=match.service_name,
                phrase=match.phrase,
                quantity=quantity,
                confidence=confidence
            )

        return services

    @classmethod
    def calculate_overall_confidence(cls, confidences: List[float]) -> float:
        """Mean confidence plus a bonus for recognizing several services."""
        if not confidences:
            return 0.0
        mean = sum(confidences) / len(confidences)
        bonus = min(cls.MULTI_SERVICE_BONUS * len(confidences), cls.MAX_MULTI_SERVICE_BONUS)
        return min(mean + bonus, 1.0)

    # =========================================================================
    # SUGGESTIONS
    # =========================================================================

    def get_service_suggestions(self, partial: str) -> List[str]:
        """Services whose synonyms overlap a partial phrase (max 5)."""
        text = canonicalize_phrase(partial)
        if not text:
            return []

        suggestions: List[str] = []
        for service_name, phrases in self.catalog.get_synonyms().items():
            if any(text in phrase or phrase in text for phrase in phrases):
                suggestions.append(service_name)
            if len(suggestions) >= self.MAX_SUGGESTIONS:
                break
        return suggestions
