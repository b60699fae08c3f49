"""Relevance scoring service.

Scores a candidate against a discovery pattern:
- Keyword coverage
- Popularity (stars, log scale)
- Language allow-list
- Age gate
- Author / repo-name / description patterns

The weighted rule score is optionally blended with the confidence of the
active scoring model. Scoring is deterministic: it reads no clock and no
randomness, so the same event, pattern, thresholds and model always give
the same verdict.
"""

import math
import re
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from scout.config import RelevanceSettings, ScoringConfig
from scout.core.exceptions import ScoringUnavailableError
from scout.core.logging import get_logger
from scout.models.pattern import DiscoveryPattern, default_pattern
from scout.models.scoring_model import ScoringModel
from scout.services.discovery.base import (
    CandidateEvent,
    CandidateMetadata,
    RecommendedPriority,
    RelevanceVerdict,
)

if TYPE_CHECKING:
    from scout.services.stores.model_registry import ModelRegistry

logger = get_logger(__name__)


class RuleFeatures(BaseModel):
    """Rule feature values before weighting (each 0-1)."""

    keyword: float = Field(ge=0.0, le=1.0)
    stars: float = Field(ge=0.0, le=1.0)
    language: float = Field(ge=0.0, le=1.0)
    age: float = Field(ge=0.0, le=1.0)
    patterns: float = Field(ge=0.0, le=1.0)


def contains_term(text: str, term: str) -> bool:
    """Check whether a term occurs in text as a whole word or phrase.

    "spark" matches "apache spark engine" but not "sparkle".

    Args:
        text: Lowercased text
        term: Lowercased term (may contain spaces or hyphens)

    Returns:
        True if the term occurs with non-alphanumeric boundaries
    """
    if not term:
        return False
    return re.search(rf"(?<![a-z0-9]){re.escape(term)}(?![a-z0-9])", text) is not None


class RelevanceScorer:
    """Scores candidate events against discovery patterns.

    Scoring formula:
        rule = 100 * pattern.weight * sum(feature * weight)
        score = rule_weight * rule + model_weight * 100 * confidence   (model usable)
        score = rule                                                   (otherwise)

    An exclude-keyword hit or an age over the pattern's limit vetoes the
    candidate: the score is capped just below the minimum threshold.

    Attributes:
        config: Scoring configuration
        registry: Model registry used to resolve predictors
    """

    def __init__(
        self,
        config: ScoringConfig | None = None,
        registry: "ModelRegistry | None" = None,
    ):
        """Initialize scorer.

        Args:
            config: Scoring configuration (uses defaults if not provided)
            registry: Model registry (model blending disabled if not provided)
        """
        self.config = config or ScoringConfig()
        self.registry = registry
        self._default_pattern = default_pattern()

    @property
    def default_pattern(self) -> DiscoveryPattern:
        """Built-in fallback pattern."""
        return self._default_pattern

    def score(
        self,
        event: CandidateEvent,
        pattern: DiscoveryPattern | None,
        thresholds: RelevanceSettings,
        model: ScoringModel | None = None,
    ) -> RelevanceVerdict:
        """Score a candidate event.

        Args:
            event: Candidate to score
            pattern: Pattern to score against (built-in default if None)
            thresholds: Current relevance thresholds and switches
            model: Active scoring model, if any

        Returns:
            RelevanceVerdict for the candidate
        """
        used_default = pattern is None
        pattern = pattern or self._default_pattern
        meta = event.metadata
        criteria: list[str] = []

        features = RuleFeatures(
            keyword=self._calc_keyword(meta, pattern, criteria),
            stars=self._calc_stars(meta, pattern, criteria),
            language=self._calc_language(meta, pattern, criteria),
            age=self._calc_age(meta, pattern, criteria),
            patterns=self._calc_patterns(meta, pattern, criteria),
        )

        weights = self.config.weights
        weighted = (
            features.keyword * weights.keyword
            + features.stars * weights.stars
            + features.language * weights.language
            + features.age * weights.age
            + features.patterns * weights.patterns
        )
        rule_score = self._clamp(100.0 * weighted * pattern.weight)

        score = rule_score
        confidence = None
        if model is not None and thresholds.use_model_scoring and model.is_usable:
            try:
                confidence = self._predict(model, features)
            except ScoringUnavailableError as e:
                logger.warning(
                    "Scoring model unavailable, using rule score",
                    model_id=model.id,
                    error=str(e),
                )
            else:
                blend = self.config.blend
                score = self._clamp(
                    blend.rule_weight * rule_score + blend.model_weight * 100.0 * confidence
                )
                criteria.append(f"model:{model.name}")

        veto = self._veto_reason(meta, pattern)
        if veto is not None:
            score = min(score, max(0.0, thresholds.minimum_relevance_score - 1))

        verdict = RelevanceVerdict(
            score=score,
            rule_score=rule_score,
            matched_criteria=criteria,
            model_confidence=confidence,
            recommended_priority=self._recommend(score, veto is not None, thresholds),
            pattern_id=None if used_default else pattern.id,
            vetoed=veto is not None,
        )

        logger.debug(
            "Candidate scored",
            source_url=event.source_url,
            pattern_id=verdict.pattern_id,
            score=round(score, 2),
            rule_score=round(rule_score, 2),
            confidence=confidence,
            veto=veto,
            priority=verdict.recommended_priority.value,
        )
        return verdict

    def score_best(
        self,
        event: CandidateEvent,
        patterns: list[DiscoveryPattern],
        thresholds: RelevanceSettings,
        model: ScoringModel | None = None,
    ) -> RelevanceVerdict:
        """Score against several patterns and keep the best verdict.

        Ties go to the earlier pattern. With no patterns the built-in
        default pattern is used.

        Args:
            event: Candidate to score
            patterns: Candidate patterns, in store order
            thresholds: Current relevance thresholds and switches
            model: Active scoring model, if any

        Returns:
            Highest-scoring verdict
        """
        if not patterns:
            return self.score(event, None, thresholds, model)

        best: RelevanceVerdict | None = None
        for pattern in patterns:
            verdict = self.score(event, pattern, thresholds, model)
            if best is None or verdict.score > best.score:
                best = verdict
        return best

    # =========================================================================
    # Features
    # =========================================================================

    def _calc_keyword(
        self, meta: CandidateMetadata, pattern: DiscoveryPattern, criteria: list[str]
    ) -> float:
        """Fraction of include keywords found, saturating at keyword_saturation hits."""
        if not pattern.keywords:
            return 0.0
        text = meta.searchable_text()
        matched = [kw for kw in pattern.keywords if contains_term(text, kw)]
        criteria.extend(f"keyword:{kw}" for kw in matched)
        needed = min(len(pattern.keywords), self.config.keyword_saturation)
        return min(1.0, len(matched) / needed)

    def _calc_stars(
        self, meta: CandidateMetadata, pattern: DiscoveryPattern, criteria: list[str]
    ) -> float:
        """Star credit on a log scale between min_stars and min_stars * star_cap_factor."""
        if meta.star_count < pattern.min_stars:
            return 0.0
        baseline = max(pattern.min_stars, 1)
        if meta.star_count <= baseline:
            ratio = 0.0
        else:
            ratio = math.log10(meta.star_count / baseline) / math.log10(self.config.star_cap_factor)
        criteria.append(f"stars>={pattern.min_stars}")
        return 0.5 + 0.5 * min(1.0, ratio)

    def _calc_language(
        self, meta: CandidateMetadata, pattern: DiscoveryPattern, criteria: list[str]
    ) -> float:
        if not pattern.allows_language(meta.language):
            return 0.0
        if pattern.language_filters:
            criteria.append(f"language:{meta.language}")
        return 1.0

    def _calc_age(
        self, meta: CandidateMetadata, pattern: DiscoveryPattern, criteria: list[str]
    ) -> float:
        # Unknown age passes the gate
        if pattern.max_age_days is None or meta.age_days is None:
            return 1.0
        if meta.age_days > pattern.max_age_days:
            return 0.0
        criteria.append(f"age<={pattern.max_age_days}d")
        return 1.0

    def _calc_patterns(
        self, meta: CandidateMetadata, pattern: DiscoveryPattern, criteria: list[str]
    ) -> float:
        """Fraction of defined pattern groups (author, repo name, description) that matched."""
        groups = 0
        hits = 0

        if pattern.author_patterns:
            groups += 1
            owner = (meta.owner or "").lower()
            hit = next(
                (p for p in pattern.author_patterns if owner and fnmatchcase(owner, p)), None
            )
            if hit:
                hits += 1
                criteria.append(f"author:{hit}")

        if pattern.repo_name_patterns:
            groups += 1
            name = (meta.repo_name or "").lower()
            hit = next(
                (p for p in pattern.repo_name_patterns if name and fnmatchcase(name, p)), None
            )
            if hit:
                hits += 1
                criteria.append(f"repo_name:{hit}")

        if pattern.description_patterns:
            groups += 1
            text = (meta.description or "").lower()
            hit = next((p for p in pattern.description_patterns if contains_term(text, p)), None)
            if hit:
                hits += 1
                criteria.append(f"description:{hit}")

        return hits / groups if groups else 1.0

    # =========================================================================
    # Helpers
    # =========================================================================

    def _veto_reason(self, meta: CandidateMetadata, pattern: DiscoveryPattern) -> str | None:
        """Why the candidate is disqualified, or None."""
        text = meta.searchable_text()
        excluded = next((kw for kw in pattern.exclude_keywords if contains_term(text, kw)), None)
        if excluded:
            return f"exclude_keyword:{excluded}"
        if (
            pattern.max_age_days is not None
            and meta.age_days is not None
            and meta.age_days > pattern.max_age_days
        ):
            return "max_age_exceeded"
        return None

    def _predict(self, model: ScoringModel, features: RuleFeatures) -> float:
        """Ask the model's predictor for a confidence.

        Raises:
            ScoringUnavailableError: If no predictor is available or it fails
        """
        if self.registry is None:
            raise ScoringUnavailableError("No model registry configured", model_id=model.id)
        predictor = self.registry.predictor_for(model)
        try:
            confidence = float(predictor.predict(features.model_dump()))
        except ScoringUnavailableError:
            raise
        except Exception as e:
            raise ScoringUnavailableError(f"Predictor failed: {e}", model_id=model.id) from e
        if math.isnan(confidence):
            raise ScoringUnavailableError("Predictor returned NaN", model_id=model.id)
        return max(0.0, min(1.0, confidence))

    @staticmethod
    def _recommend(
        score: float, vetoed: bool, thresholds: RelevanceSettings
    ) -> RecommendedPriority:
        if vetoed or score < thresholds.minimum_relevance_score:
            return RecommendedPriority.SKIP
        if score >= thresholds.priority_threshold:
            return RecommendedPriority.HIGH
        return RecommendedPriority.NORMAL

    @staticmethod
    def _clamp(value: float) -> float:
        return max(0.0, min(100.0, value))


__all__ = ["RelevanceScorer", "RuleFeatures", "contains_term"]
