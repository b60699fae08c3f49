"""Scoring model predictors.

A predictor turns the rule feature vector of a candidate into a relevance
confidence in [0, 1]. The registry pairs each ScoringModel record with a
predictor; the scorer never needs to know how the model was trained.
"""

import math
from typing import Protocol, runtime_checkable

from scout.core.exceptions import ScoringUnavailableError
from scout.models.scoring_model import ScoringModel


@runtime_checkable
class RelevancePredictor(Protocol):
    """Interface for model-based relevance prediction."""

    def predict(self, features: dict[str, float]) -> float:
        """Predict relevance confidence.

        Args:
            features: Feature name -> value (each in [0, 1])

        Returns:
            Confidence in [0, 1]

        Raises:
            ScoringUnavailableError: If the model cannot produce a prediction
        """
        ...


class LogisticPredictor:
    """Logistic regression over the rule features.

    confidence = sigmoid(bias + sum(weight_i * feature_i))

    Attributes:
        model_id: ID of the ScoringModel the parameters belong to
        weights: Feature name -> weight
        bias: Intercept
    """

    def __init__(self, weights: dict[str, float], bias: float = 0.0, model_id: str | None = None):
        """Initialize predictor.

        Args:
            weights: Feature name -> weight
            bias: Intercept
            model_id: Owning model ID (for error context)
        """
        self.weights = dict(weights)
        self.bias = bias
        self.model_id = model_id

    @classmethod
    def from_model(cls, model: ScoringModel) -> "LogisticPredictor":
        """Build from a model's parameters.

        Expects parameters like {"weights": {"keyword": 2.0, ...}, "bias": -1.0}.

        Raises:
            ScoringUnavailableError: If the parameters are missing or malformed
        """
        raw_weights = model.parameters.get("weights")
        if not isinstance(raw_weights, dict) or not raw_weights:
            raise ScoringUnavailableError(
                "Model has no logistic weights", model_id=model.id
            )
        try:
            weights = {str(k): float(v) for k, v in raw_weights.items()}
            bias = float(model.parameters.get("bias", 0.0))
        except (TypeError, ValueError) as e:
            raise ScoringUnavailableError(
                f"Malformed model parameters: {e}", model_id=model.id
            ) from e
        return cls(weights=weights, bias=bias, model_id=model.id)

    def predict(self, features: dict[str, float]) -> float:
        """Predict relevance confidence.

        Raises:
            ScoringUnavailableError: If a weighted feature is missing
        """
        missing = [name for name in self.weights if name not in features]
        if missing:
            raise ScoringUnavailableError(
                f"Missing features: {', '.join(sorted(missing))}", model_id=self.model_id
            )
        z = self.bias + sum(w * features[name] for name, w in self.weights.items())
        # Clamp to keep exp() in range
        z = max(-60.0, min(60.0, z))
        return 1.0 / (1.0 + math.exp(-z))


__all__ = ["RelevancePredictor", "LogisticPredictor"]
