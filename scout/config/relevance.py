"""Relevance scoring and threshold configuration models."""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from scout.config.validators import validate_non_decreasing, validate_weights_sum
from scout.core.config_loader import load_section


class ScoringWeights(BaseModel):
    """Weights for each rule feature.

    All weights must sum to 1.0. Defaults are provided.
    """

    keyword: float = Field(default=0.40, ge=0, le=1)
    stars: float = Field(default=0.25, ge=0, le=1)
    language: float = Field(default=0.15, ge=0, le=1)
    age: float = Field(default=0.10, ge=0, le=1)
    patterns: float = Field(default=0.10, ge=0, le=1)

    @model_validator(mode="after")
    def check_weights_sum(self) -> "ScoringWeights":
        """Validate that all weights sum to 1.0."""
        validate_weights_sum(self.model_dump())
        return self


class BlendConfig(BaseModel):
    """Blend ratio between rule score and model confidence.

    Attributes:
        rule_weight: Share of the rule score in the final score
        model_weight: Share of the model confidence (scaled to 0-100)
    """

    rule_weight: float = Field(default=0.6, ge=0, le=1)
    model_weight: float = Field(default=0.4, ge=0, le=1)

    @model_validator(mode="after")
    def check_weights_sum(self) -> "BlendConfig":
        """Validate that the two shares sum to 1.0."""
        validate_weights_sum({"rule_weight": self.rule_weight, "model_weight": self.model_weight})
        return self


class ScoringConfig(BaseModel):
    """Configuration for relevance scoring.

    All fields have defaults - can be used without any configuration.
    """

    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    blend: BlendConfig = Field(default_factory=BlendConfig)
    keyword_saturation: int = Field(
        default=3, ge=1, description="Keyword hits needed for full keyword credit"
    )
    star_cap_factor: float = Field(
        default=50.0, gt=1, description="Multiple of min_stars that earns full star credit"
    )

    @classmethod
    def from_defaults(cls) -> "ScoringConfig":
        """Build from the scoring section of defaults.yaml."""
        return cls.model_validate(load_section("scoring"))


class RelevanceSettings(BaseModel):
    """Relevance thresholds and global scoring switches.

    Ordering invariant: minimum <= auto-collect <= priority.

    Attributes:
        minimum_relevance_score: Below this a candidate is rejected
        auto_collect_threshold: At or above this admitted jobs are auto-dispatched
        priority_threshold: At or above this admitted jobs take the high lane
        auto_collect_enabled: Global switch for auto-dispatch
        use_model_scoring: Global switch for blending the scoring model
        version: Incremented by the store on every write
    """

    minimum_relevance_score: float = Field(default=60, ge=0, le=100)
    auto_collect_threshold: float = Field(default=75, ge=0, le=100)
    priority_threshold: float = Field(default=85, ge=0, le=100)
    auto_collect_enabled: bool = Field(default=True)
    use_model_scoring: bool = Field(default=True)
    version: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def check_threshold_order(self) -> "RelevanceSettings":
        """Validate minimum <= auto-collect <= priority."""
        validate_non_decreasing(
            [
                ("minimum_relevance_score", self.minimum_relevance_score),
                ("auto_collect_threshold", self.auto_collect_threshold),
                ("priority_threshold", self.priority_threshold),
            ]
        )
        return self

    @classmethod
    def from_defaults(cls, **overrides: Any) -> "RelevanceSettings":
        """Build from the relevance section of defaults.yaml."""
        return cls.model_validate({**load_section("relevance"), **overrides})


__all__ = ["ScoringWeights", "BlendConfig", "ScoringConfig", "RelevanceSettings"]
