import unittest
from datetime import datetime, timezone

from hamcrest import assert_that, equal_to, has_length, is_, same_instance

from core.domain.errors import PrecommitError
from core.domain.models import (
    AppState,
    ChemicalReading,
    InventoryItem,
    ManualAdjustment,
    PoolConfig,
    PoolData,
    RecommendedAdjustment,
    User,
    WaterEvents,
)
from core.services.reconciliation import commit_log, find_inventory_match, names_match, reconcile_inventory

READING = ChemicalReading(ph=7.5, free_chlorine=3, total_alkalinity=100, cyanuric_acid=40)
POOL = PoolData(id="pool-1", config=PoolConfig(name="Backyard", volume=15000))
TECH = User(id="2", username="tech", password_hash="x")


def adjustment(name, amount, unit):
    return RecommendedAdjustment(chemical_name=name, amount=amount, unit=unit, reason="test")


def commit(state, adjustments, **kwargs):
    return commit_log(
        state,
        pool=kwargs.pop("pool", POOL),
        user=kwargs.pop("user", TECH),
        reading=READING,
        adjustments=adjustments,
        water_events=WaterEvents(),
        **kwargs,
    )


class NameMatchTestCase(unittest.TestCase):

    def test_adjustment_contains_item_name(self):
        assert_that(names_match("Muriatic Acid", "Acid"), is_(True))

    def test_item_contains_adjustment_name(self):
        assert_that(names_match("Tabs", "Chlorine Tabs"), is_(True))

    def test_case_insensitive(self):
        assert_that(names_match("SODA ASH", "soda ash"), is_(True))

    def test_unrelated(self):
        assert_that(names_match("Baking Soda", "Muriatic Acid"), is_(False))

    def test_first_match_in_stored_order(self):
        items = [
            InventoryItem(name="Liquid Chlorine", quantity=1, unit="gal"),
            InventoryItem(name="Chlorine", quantity=1, unit="gal"),
        ]
        assert_that(find_inventory_match(items, adjustment("Chlorine", 1, "gal")), equal_to(0))

    def test_no_match(self):
        items = [InventoryItem(name="Acid", quantity=1, unit="gal")]
        assert_that(find_inventory_match(items, adjustment("Stabilizer", 1, "lbs")), equal_to(None))


class ReconcileInventoryTestCase(unittest.TestCase):

    def test_decrement_by_fuzzy_match(self):
        items = [InventoryItem(name="Chlorine Tabs", quantity=10, unit="tabs")]
        result = reconcile_inventory(items, [adjustment("Tabs", 3, "tabs")])
        assert_that(result[0].quantity, equal_to(7))

    def test_clamped_at_zero(self):
        items = [InventoryItem(name="Acid", quantity=2, unit="gal")]
        result = reconcile_inventory(items, [adjustment("Muriatic Acid", 5, "gal")])
        assert_that(result[0].quantity, equal_to(0))

    def test_unit_mismatch_is_skipped(self):
        items = [InventoryItem(name="Shock", quantity=4, unit="lbs")]
        result = reconcile_inventory(items, [adjustment("Shock", 8, "oz")])
        assert_that(result[0].quantity, equal_to(4))

    def test_unit_comparison_is_case_sensitive(self):
        items = [InventoryItem(name="Shock", quantity=4, unit="lbs")]
        result = reconcile_inventory(items, [adjustment("Shock", 1, "LBS")])
        assert_that(result[0].quantity, equal_to(4))

    def test_only_first_match_is_checked(self):
        # The first match has the wrong unit; the second is never considered.
        items = [
            InventoryItem(name="Chlorine", quantity=5, unit="lbs"),
            InventoryItem(name="Chlorine Liquid", quantity=5, unit="gal"),
        ]
        result = reconcile_inventory(items, [adjustment("Chlorine", 1, "gal")])
        assert_that([i.quantity for i in result], equal_to([5, 5]))

    def test_multiple_adjustments_accumulate(self):
        items = [InventoryItem(name="Acid", quantity=3, unit="gal")]
        result = reconcile_inventory(
            items,
            [adjustment("Acid", 1, "gal"), ManualAdjustment(chemical_name="Muriatic Acid", amount=1.5, unit="gal")],
        )
        assert_that(result[0].quantity, equal_to(0.5))

    def test_input_is_not_mutated(self):
        items = [InventoryItem(name="Acid", quantity=3, unit="gal")]
        reconcile_inventory(items, [adjustment("Acid", 1, "gal")])
        assert_that(items[0].quantity, equal_to(3))


class CommitLogTestCase(unittest.TestCase):

    def setUp(self):
        self.state = AppState(
            pools=[POOL],
            users=[TECH],
            inventory=[InventoryItem(name="Chlorine Tabs", quantity=10, unit="tabs")],
        )

    def test_appends_exactly_one_entry_last(self):
        first, _ = commit(self.state, [])
        second, entry = commit(first, [adjustment("Tabs", 3, "tabs")], notes="weekly")
        assert_that(second.logs, has_length(2))
        assert_that(second.logs[-1], same_instance(entry))
        assert_that(entry.notes, equal_to("weekly"))
        assert_that(entry.user, equal_to("tech"))
        assert_that(entry.pool_id, equal_to("pool-1"))

    def test_reconciles_inventory_in_same_transition(self):
        new_state, _ = commit(self.state, [adjustment("Tabs", 3, "tabs")])
        assert_that(new_state.inventory[0].quantity, equal_to(7))
        assert_that(self.state.inventory[0].quantity, equal_to(10))
        assert_that(self.state.logs, has_length(0))

    def test_copies_fields_verbatim(self):
        stamp = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        adjustments = [adjustment("Tabs", 3, "tabs"), ManualAdjustment(chemical_name="Soda Ash", amount=1, unit="lbs")]
        _, entry = commit(self.state, adjustments, timestamp=stamp)
        assert_that(entry.timestamp, equal_to(stamp))
        assert_that(entry.readings, equal_to(READING))
        assert_that(entry.adjustments, equal_to(tuple(adjustments)))

    def test_missing_pool(self):
        with self.assertRaises(PrecommitError):
            commit(self.state, [], pool=None)

    def test_missing_user(self):
        with self.assertRaises(PrecommitError):
            commit(self.state, [], user=None)


if __name__ == '__main__':
    unittest.main()
