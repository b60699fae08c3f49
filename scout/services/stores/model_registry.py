"""Scoring model registry.

Keeps ScoringModel records and the predictors that serve them. Each role
has at most one active model; promotion swaps the active model atomically
so a reader sees either the old model or the new one, never neither.
"""

import threading
from datetime import datetime

from scout.core.exceptions import (
    ConfigValidationError,
    RecordNotFoundError,
)
from scout.core.logging import get_logger
from scout.models.scoring_model import DEFAULT_MODEL_ROLE, ModelStatus, ScoringModel
from scout.services.discovery.predictor import LogisticPredictor, RelevancePredictor

logger = get_logger(__name__)


class ModelRegistry:
    """Thread-safe registry of scoring models and their predictors."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._models: dict[str, ScoringModel] = {}
        self._predictors: dict[str, RelevancePredictor] = {}

    def register(
        self,
        model: ScoringModel,
        predictor: RelevancePredictor | None = None,
    ) -> ScoringModel:
        """Register a model.

        A model registered as active demotes the current active model of its
        role, provided it is ready.

        Args:
            model: Model record
            predictor: Predictor serving the model (built from parameters if omitted)

        Returns:
            Stored model

        Raises:
            ConfigValidationError: If the ID is taken or an active model is not ready
        """
        if model.is_active and model.status != ModelStatus.READY:
            raise ConfigValidationError(
                field="is_active",
                value=model.status.value,
                reason="only ready models can be active",
            )

        with self._lock:
            if model.id in self._models:
                raise ConfigValidationError(
                    field="id", value=model.id, reason="model already registered"
                )
            stored = model.model_copy(deep=True)
            if stored.is_active:
                self._demote_role(stored.role)
            self._models[stored.id] = stored
            if predictor is not None:
                self._predictors[stored.id] = predictor

        logger.info(
            "Scoring model registered",
            model_id=stored.id,
            role=stored.role,
            status=stored.status.value,
            active=stored.is_active,
        )
        return stored.model_copy(deep=True)

    def get(self, model_id: str) -> ScoringModel:
        """Get a model by ID.

        Raises:
            RecordNotFoundError: If no such model exists
        """
        with self._lock:
            return self._require(model_id).model_copy(deep=True)

    def list_models(self) -> list[ScoringModel]:
        """All registered models."""
        with self._lock:
            return [m.model_copy(deep=True) for m in self._models.values()]

    def active(self, role: str = DEFAULT_MODEL_ROLE) -> ScoringModel | None:
        """Get the active model for a role, if any."""
        with self._lock:
            for model in self._models.values():
                if model.role == role and model.is_active:
                    return model.model_copy(deep=True)
        return None

    def predictor_for(self, model: ScoringModel) -> RelevancePredictor:
        """Get the predictor serving a model.

        Falls back to a logistic predictor built from the model's parameters.

        Raises:
            ScoringUnavailableError: If no predictor can be produced
        """
        with self._lock:
            predictor = self._predictors.get(model.id)
        if predictor is not None:
            return predictor

        predictor = LogisticPredictor.from_model(model)
        with self._lock:
            self._predictors.setdefault(model.id, predictor)
        return predictor

    def promote(self, model_id: str) -> ScoringModel:
        """Make a ready model the active one for its role.

        Raises:
            RecordNotFoundError: If no such model exists
            ConfigValidationError: If the model is not ready
        """
        with self._lock:
            model = self._require(model_id)
            if model.status != ModelStatus.READY:
                raise ConfigValidationError(
                    field="status",
                    value=model.status.value,
                    reason="only ready models can be promoted",
                )
            self._demote_role(model.role)
            model.is_active = True
            promoted = model.model_copy(deep=True)

        logger.info("Scoring model promoted", model_id=model_id, role=promoted.role)
        return promoted

    def replace_active(
        self,
        model: ScoringModel,
        predictor: RelevancePredictor | None = None,
    ) -> ScoringModel:
        """Register a ready model and make it active in one step."""
        if model.status != ModelStatus.READY:
            raise ConfigValidationError(
                field="status",
                value=model.status.value,
                reason="only ready models can be promoted",
            )
        return self.register(model.model_copy(update={"is_active": True}), predictor)

    def update_metrics(
        self,
        model_id: str,
        accuracy: float | None = None,
        precision: float | None = None,
        recall: float | None = None,
        training_sample_count: int | None = None,
        trained_at: datetime | None = None,
    ) -> ScoringModel:
        """Record new evaluation metrics; f1 is recomputed.

        Raises:
            RecordNotFoundError: If no such model exists
            ConfigValidationError: If a metric is out of range
        """
        with self._lock:
            current = self._require(model_id)
            values = current.model_dump()
            for key, value in (
                ("accuracy", accuracy),
                ("precision", precision),
                ("recall", recall),
                ("training_sample_count", training_sample_count),
                ("last_trained_at", trained_at),
            ):
                if value is not None:
                    values[key] = value
            values["f1"] = None
            try:
                updated = ScoringModel.model_validate(values)
            except ValueError as e:
                raise ConfigValidationError(f"Invalid metrics for model {model_id}: {e}") from e
            self._models[model_id] = updated

        logger.info(
            "Scoring model metrics updated",
            model_id=model_id,
            accuracy=updated.accuracy,
            f1=round(updated.f1 or 0.0, 3),
        )
        return updated.model_copy(deep=True)

    def set_status(self, model_id: str, status: ModelStatus) -> ScoringModel:
        """Change a model's status.

        A model leaving READY is deactivated; the scorer then falls back to
        rule-only scoring for its role.
        """
        with self._lock:
            model = self._require(model_id)
            model.status = status
            if status != ModelStatus.READY and model.is_active:
                model.is_active = False
                logger.warning(
                    "Active scoring model deactivated",
                    model_id=model_id,
                    status=status.value,
                )
            return model.model_copy(deep=True)

    # =========================================================================
    # Internal helpers (caller holds the lock)
    # =========================================================================

    def _require(self, model_id: str) -> ScoringModel:
        model = self._models.get(model_id)
        if model is None:
            raise RecordNotFoundError("ScoringModel", model_id)
        return model

    def _demote_role(self, role: str) -> None:
        for other in self._models.values():
            if other.role == role and other.is_active:
                other.is_active = False


__all__ = ["ModelRegistry"]
