"""Editing session for one measurement (reading → analysis → commit).

The session holds the pending recommendation and the manual adjustments for a
single reading being edited. Each analysis request takes a new generation
token; a response that arrives after a newer request (or after a commit) is
discarded so it can never be committed.
"""

from __future__ import annotations

import logging
from typing import Sequence

from core.domain.errors import PrecommitError, ValidationError
from core.domain.models import (
    AppState,
    ChemicalAdjustment,
    ChemicalReading,
    InventoryItem,
    LogEntry,
    ManualAdjustment,
    PoolData,
    RecommendationResult,
    User,
    WaterEvents,
)
from core.interfaces.recommender import AdjustmentRecommender
from core.services.reconciliation import commit_log

logger = logging.getLogger(__name__)


class MeasurementSession:
    def __init__(
        self,
        recommender: AdjustmentRecommender | None,
        *,
        pool: PoolData | None,
        user: User | None,
    ) -> None:
        self._recommender = recommender
        self.pool = pool
        self.user = user
        self._generation = 0
        self.recommendation: RecommendationResult | None = None
        self.manual_adjustments: list[ManualAdjustment] = []

    @property
    def generation(self) -> int:
        return self._generation

    async def analyze(
        self,
        *,
        reading: ChemicalReading,
        inventory: Sequence[InventoryItem],
        water_events: WaterEvents,
    ) -> RecommendationResult | None:
        """Request a fresh recommendation.

        Supersedes any pending recommendation and clears manual adjustments.
        Returns None when a newer request (or a commit) overtook this one.
        Errors from the current request propagate; nothing is retried.
        """

        if self.pool is None:
            raise PrecommitError("No pool selected: cannot request an analysis.")
        if self._recommender is None:
            raise PrecommitError("No recommender configured for this session.")

        self._generation += 1
        token = self._generation
        self.recommendation = None
        self.manual_adjustments = []
        logger.debug("Analysis request #%d for pool %s", token, self.pool.id)

        try:
            result = await self._recommender.recommend(
                pool=self.pool.config,
                reading=reading,
                inventory=inventory,
                water_events=water_events,
            )
        except Exception:
            if token != self._generation:
                logger.info("Discarding failure of superseded analysis request #%d", token)
                return None
            raise

        if token != self._generation:
            logger.info("Discarding stale analysis result #%d (current #%d)", token, self._generation)
            return None
        self.recommendation = result
        return result

    def add_manual_adjustment(self, name: str, amount: float | None, unit: str = "lbs") -> ManualAdjustment:
        name = (name or "").strip()
        if not name or amount is None:
            raise ValidationError("Chemical name and amount are required")
        if amount < 0:
            raise ValidationError("Amount must be zero or more")
        adjustment = ManualAdjustment(chemical_name=name, amount=amount, unit=unit or "lbs")
        self.manual_adjustments = [*self.manual_adjustments, adjustment]
        return adjustment

    def remove_manual_adjustment(self, adjustment_id: str) -> None:
        self.manual_adjustments = [a for a in self.manual_adjustments if a.id != adjustment_id]

    def final_adjustments(self) -> list[ChemicalAdjustment]:
        """Recommended adjustments first, then manual ones."""

        recommended = list(self.recommendation.adjustments) if self.recommendation else []
        return [*recommended, *self.manual_adjustments]

    def commit(
        self,
        state: AppState,
        *,
        reading: ChemicalReading,
        water_events: WaterEvents,
        notes: str = "",
    ) -> tuple[AppState, LogEntry]:
        new_state, entry = commit_log(
            state,
            pool=self.pool,
            user=self.user,
            reading=reading,
            adjustments=self.final_adjustments(),
            water_events=water_events,
            notes=notes,
        )
        self.reset()
        return new_state, entry

    def reset(self) -> None:
        # Bumping the generation invalidates any request still in flight.
        self._generation += 1
        self.recommendation = None
        self.manual_adjustments = []
