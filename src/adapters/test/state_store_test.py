import json
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from hamcrest import assert_that, contains_exactly, equal_to, has_key, instance_of, is_, not_

from adapters.state_store import JsonStateStore, deserialize_state, serialize_state
from core.domain.errors import StateLoadError
from core.domain.models import (
    AppState,
    ChemicalReading,
    InventoryItem,
    LogEntry,
    ManualAdjustment,
    PoolCategory,
    PoolConfig,
    PoolData,
    RecommendedAdjustment,
    Role,
    SanitizerType,
    Surface,
    User,
    WaterEvents,
)


def full_state():
    stamp = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
    return AppState(
        users=[
            User(id="1", username="admin", password_hash="h1", role=Role.ADMIN),
            User(id="2", username="tech", password_hash="h2", assigned_pools=["p1"]),
        ],
        pools=[
            PoolData(
                id="p1",
                config=PoolConfig(
                    name="Salt Pool",
                    volume=12000,
                    sanitizer=SanitizerType.SALT,
                    surface=Surface.VINYL,
                    category=PoolCategory.POOL,
                ),
                notes="gate code 1234",
            )
        ],
        inventory=[
            InventoryItem(id="i1", name="Acid", quantity=2.5, unit="gal", vendor="PoolCo",
                          vendor_url="https://example.com", last_purchased=stamp, min_threshold=1),
            InventoryItem(id="i2", name="Salt", quantity=40, unit="lbs"),
        ],
        logs=[
            LogEntry(
                id="l1",
                pool_id="p1",
                timestamp=stamp,
                user="tech",
                readings=ChemicalReading(ph=7.6, free_chlorine=4, total_alkalinity=90, cyanuric_acid=60,
                                         salt_level=3100),
                adjustments=[
                    RecommendedAdjustment(id="a1", chemical_name="Muriatic Acid", amount=8, unit="oz",
                                          reason="Lower pH"),
                    ManualAdjustment(id="a2", chemical_name="Salt", amount=20, unit="lbs"),
                ],
                water_events=WaterEvents(added=True, drained_half=True),
                notes="topped up",
            ),
            LogEntry(
                id="l2",
                pool_id="deleted-pool",
                timestamp=stamp,
                user="tech",
                readings=ChemicalReading(ph=7.4, free_chlorine=3, total_alkalinity=100, cyanuric_acid=30),
            ),
        ],
    )


class SerializationTestCase(unittest.TestCase):

    def test_round_trip_through_json(self):
        state = full_state()
        text = json.dumps(serialize_state(state))
        assert_that(deserialize_state(json.loads(text)), equal_to(state))

    def test_optional_fields_stay_undefined(self):
        data = serialize_state(full_state())
        assert_that(data["inventory"][1], not_(has_key("vendor")))
        assert_that(data["logs"][1]["readings"], not_(has_key("calciumHardness")))
        restored = deserialize_state(data)
        assert_that(restored.inventory[1].vendor, is_(None))
        assert_that(restored.logs[1].readings.temperature, is_(None))

    def test_adjustment_variants_survive(self):
        restored = deserialize_state(serialize_state(full_state()))
        adjustments = restored.logs[0].adjustments
        assert_that(adjustments[0], instance_of(RecommendedAdjustment))
        assert_that(adjustments[1], instance_of(ManualAdjustment))

    def test_camel_case_layout(self):
        data = serialize_state(full_state())
        assert_that(data["users"][1], has_key("assignedPools"))
        assert_that(data["pools"][0]["config"], has_key("type"))
        assert_that(data["logs"][0]["adjustments"][0], has_key("chemicalName"))

    def test_incompatible_shape(self):
        with self.assertRaises(StateLoadError):
            deserialize_state({"users": "nope"})
        with self.assertRaises(StateLoadError):
            deserialize_state({"users": [], "pools": [], "inventory": [], "logs": [], "extra": 1})


class JsonStateStoreTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "nested" / "state.json"
        self.store = JsonStateStore(self.path, key="neuPoolState")

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_file_gives_demo_state(self):
        state = self.store.load()
        assert_that([p.id for p in state.pools], contains_exactly("pool-1", "pool-2"))
        assert_that(self.path.exists(), is_(False))

    def test_save_then_load(self):
        state = full_state()
        self.store.save(state)
        assert_that(JsonStateStore(self.path).load(), equal_to(state))
        document = json.loads(self.path.read_text(encoding="utf-8"))
        assert_that(document, has_key("neuPoolState"))

    def test_save_rewrites_whole_snapshot(self):
        self.store.save(full_state())
        self.store.save(AppState())
        assert_that(self.store.load(), equal_to(AppState()))

    def test_other_keys_are_preserved(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
        self.store.save(AppState())
        document = json.loads(self.path.read_text(encoding="utf-8"))
        assert_that(document["theme"], equal_to("dark"))

    def test_unreadable_file_is_fatal(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(StateLoadError):
            self.store.load()

    def test_incompatible_blob_is_fatal(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({"neuPoolState": {"pools": [{"id": "x"}]}}), encoding="utf-8")
        with self.assertRaises(StateLoadError):
            self.store.load()

    def test_no_temp_files_left(self):
        self.store.save(full_state())
        assert_that([p.name for p in self.path.parent.iterdir()], contains_exactly("state.json"))


if __name__ == '__main__':
    unittest.main()
