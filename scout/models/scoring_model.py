"""Scoring model record.

This module defines the ScoringModel record held by the model registry.
The record carries metadata and learned parameters only; the predictor
that turns features into a confidence lives in the discovery service.
"""

import enum
from datetime import datetime
from typing import Any

from pydantic import Field, model_validator

from scout.models.base import RecordModel

DEFAULT_MODEL_ROLE = "relevance-scorer"


class ModelStatus(str, enum.Enum):
    """Scoring model lifecycle status."""

    TRAINING = "training"  # Not usable yet
    READY = "ready"  # Usable for scoring
    DEPLOYING = "deploying"  # Being rolled out
    ERROR = "error"  # Broken, never consulted


class ModelType(str, enum.Enum):
    """Kind of model, informational."""

    CLASSIFICATION = "classification"
    REGRESSION = "regression"
    RANKING = "ranking"


class ScoringModel(RecordModel):
    """Registered scoring model.

    Attributes:
        name: Display name
        model_type: Kind of model
        role: Registry slot; at most one active model per role
        version: Model version string
        status: Lifecycle status
        accuracy: Evaluation accuracy (percent, 0-100)
        precision: Evaluation precision (percent, 0-100)
        recall: Evaluation recall (percent, 0-100)
        f1: F1 score, derived from precision and recall when omitted
        training_sample_count: Samples the model was trained on
        features: Feature names the model reads
        parameters: Learned parameters (weights and bias for logistic models)
        is_active: Whether the model is the active one for its role
        last_trained_at: Time of last training run
    """

    name: str = Field(..., min_length=1, max_length=200)
    model_type: ModelType = Field(default=ModelType.CLASSIFICATION)
    role: str = Field(default=DEFAULT_MODEL_ROLE, min_length=1)
    version: str = Field(default="1.0.0")
    status: ModelStatus = Field(default=ModelStatus.TRAINING)
    accuracy: float = Field(default=0.0, ge=0, le=100)
    precision: float = Field(default=0.0, ge=0, le=100)
    recall: float = Field(default=0.0, ge=0, le=100)
    f1: float | None = Field(default=None, ge=0, le=100)
    training_sample_count: int = Field(default=0, ge=0)
    features: list[str] = Field(default_factory=list)
    parameters: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = Field(default=False)
    last_trained_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def derive_f1(cls, data: Any) -> Any:
        """Fill f1 from precision and recall when not given."""
        if isinstance(data, dict) and data.get("f1") is None:
            precision = float(data.get("precision") or 0.0)
            recall = float(data.get("recall") or 0.0)
            total = precision + recall
            data = {**data, "f1": 2 * precision * recall / total if total else 0.0}
        return data

    @property
    def is_usable(self) -> bool:
        """Whether the scorer may consult this model."""
        return self.status == ModelStatus.READY and self.is_active


__all__ = ["DEFAULT_MODEL_ROLE", "ModelStatus", "ModelType", "ScoringModel"]
