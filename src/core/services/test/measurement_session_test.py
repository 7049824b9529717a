import asyncio
import unittest

from hamcrest import assert_that, contains_exactly, equal_to, has_length, instance_of, none

from core.domain.errors import PrecommitError, RecommendationError, ValidationError
from core.domain.models import (
    AppState,
    ChemicalReading,
    InventoryItem,
    ManualAdjustment,
    PoolConfig,
    PoolData,
    RecommendationResult,
    RecommendedAdjustment,
    User,
    WaterEvents,
)
from core.interfaces.recommender import AdjustmentRecommender
from core.services.measurement_session import MeasurementSession

READING = ChemicalReading(ph=7.9, free_chlorine=1, total_alkalinity=90, cyanuric_acid=30)
POOL = PoolData(id="pool-1", config=PoolConfig(name="Backyard", volume=15000))
TECH = User(id="2", username="tech", password_hash="x")


def result(name, amount=1.0, unit="gal"):
    return RecommendationResult(
        analysis=f"add {name}",
        adjustments=[RecommendedAdjustment(chemical_name=name, amount=amount, unit=unit, reason="balance")],
    )


class FakeRecommender:
    """Returns queued results; each call can be held until released."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []
        self.gates = []

    async def recommend(self, *, pool, reading, inventory, water_events):
        gate = asyncio.Event()
        self.gates.append(gate)
        self.calls.append(reading)
        await gate.wait()
        outcome = self.results.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def release_all(self):
        for gate in self.gates:
            gate.set()


class AutoRecommender(FakeRecommender):
    async def recommend(self, *, pool, reading, inventory, water_events):
        self.calls.append(reading)
        outcome = self.results.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class MeasurementSessionTestCase(unittest.IsolatedAsyncioTestCase):

    async def analyze(self, session):
        return await session.analyze(reading=READING, inventory=[], water_events=WaterEvents())

    def test_fake_satisfies_protocol(self):
        assert_that(AutoRecommender(), instance_of(AdjustmentRecommender))

    async def test_analysis_result_is_held(self):
        session = MeasurementSession(AutoRecommender(result("Acid")), pool=POOL, user=TECH)
        res = await self.analyze(session)
        assert_that(session.recommendation, equal_to(res))
        assert_that([a.chemical_name for a in session.final_adjustments()], contains_exactly("Acid"))

    async def test_newer_request_supersedes_older(self):
        fake = FakeRecommender(result("Old"), result("New"))
        session = MeasurementSession(fake, pool=POOL, user=TECH)
        first = asyncio.create_task(self.analyze(session))
        await asyncio.sleep(0)
        second = asyncio.create_task(self.analyze(session))
        await asyncio.sleep(0)
        fake.release_all()
        stale, fresh = await asyncio.gather(first, second)
        assert_that(stale, none())
        assert_that(fresh.analysis, equal_to("add New"))
        assert_that(session.recommendation.analysis, equal_to("add New"))

    async def test_failure_of_superseded_request_is_dropped(self):
        fake = FakeRecommender(RecommendationError("old request failed"), result("New"))
        session = MeasurementSession(fake, pool=POOL, user=TECH)
        first = asyncio.create_task(self.analyze(session))
        await asyncio.sleep(0)
        second = asyncio.create_task(self.analyze(session))
        await asyncio.sleep(0)
        fake.release_all()
        stale, fresh = await asyncio.gather(first, second)
        assert_that(stale, none())
        assert_that(fresh.analysis, equal_to("add New"))
        assert_that(session.recommendation.analysis, equal_to("add New"))

    async def test_result_arriving_after_commit_is_discarded(self):
        fake = FakeRecommender(result("Late"))
        session = MeasurementSession(fake, pool=POOL, user=TECH)
        pending = asyncio.create_task(self.analyze(session))
        await asyncio.sleep(0)
        state, entry = session.commit(AppState(), reading=READING, water_events=WaterEvents())
        fake.release_all()
        assert_that(await pending, none())
        assert_that(session.recommendation, none())
        assert_that(entry.adjustments, has_length(0))

    async def test_error_propagates_and_nothing_is_held(self):
        session = MeasurementSession(AutoRecommender(RecommendationError("boom")), pool=POOL, user=TECH)
        with self.assertRaises(RecommendationError):
            await self.analyze(session)
        assert_that(session.recommendation, none())

    async def test_retry_after_failure_uses_fresh_call(self):
        fake = AutoRecommender(RecommendationError("boom"), result("Acid"))
        session = MeasurementSession(fake, pool=POOL, user=TECH)
        with self.assertRaises(RecommendationError):
            await self.analyze(session)
        res = await self.analyze(session)
        assert_that(res.analysis, equal_to("add Acid"))
        assert_that(fake.calls, has_length(2))

    async def test_new_analysis_clears_manual_adjustments(self):
        session = MeasurementSession(AutoRecommender(result("Acid")), pool=POOL, user=TECH)
        session.add_manual_adjustment("Soda Ash", 2, "lbs")
        await self.analyze(session)
        assert_that(session.manual_adjustments, has_length(0))

    async def test_analysis_requires_pool(self):
        session = MeasurementSession(AutoRecommender(), pool=None, user=TECH)
        with self.assertRaises(PrecommitError):
            await self.analyze(session)


class ManualAdjustmentTestCase(unittest.TestCase):

    def test_manual_adjustment_is_tagged(self):
        session = MeasurementSession(None, pool=POOL, user=TECH)
        adj = session.add_manual_adjustment("Soda Ash", 2, "lbs")
        assert_that(adj, instance_of(ManualAdjustment))
        assert_that(adj.source, equal_to("manual"))
        assert_that(adj.reason, equal_to("Manual Addition"))

    def test_manual_requires_name_and_amount(self):
        session = MeasurementSession(None, pool=POOL, user=TECH)
        with self.assertRaises(ValidationError):
            session.add_manual_adjustment("", 2)
        with self.assertRaises(ValidationError):
            session.add_manual_adjustment("Soda Ash", None)
        assert_that(session.manual_adjustments, has_length(0))

    def test_remove_manual_adjustment(self):
        session = MeasurementSession(None, pool=POOL, user=TECH)
        keep = session.add_manual_adjustment("Soda Ash", 2)
        drop = session.add_manual_adjustment("Acid", 1, "gal")
        session.remove_manual_adjustment(drop.id)
        assert_that(session.manual_adjustments, contains_exactly(keep))

    def test_commit_merges_and_reconciles(self):
        state = AppState(
            pools=[POOL],
            users=[TECH],
            inventory=[InventoryItem(name="Acid", quantity=2, unit="gal")],
        )
        session = MeasurementSession(None, pool=POOL, user=TECH)
        session.recommendation = result("Muriatic Acid", 5, "gal")
        session.add_manual_adjustment("Soda Ash", 2, "lbs")
        new_state, entry = session.commit(state, reading=READING, water_events=WaterEvents(), notes="n")
        assert_that([a.source for a in entry.adjustments], contains_exactly("ai", "manual"))
        assert_that(new_state.inventory[0].quantity, equal_to(0))
        assert_that(new_state.logs, contains_exactly(entry))
        assert_that(session.final_adjustments(), has_length(0))

    def test_commit_without_user(self):
        session = MeasurementSession(None, pool=POOL, user=None)
        with self.assertRaises(PrecommitError):
            session.commit(AppState(), reading=READING, water_events=WaterEvents())


if __name__ == '__main__':
    unittest.main()
