"""Unit tests for EntryStore against the in-memory store"""
import pytest

from journal_api.db import keys
from journal_api.exceptions import RecordNotFoundError, ValidationError
from journal_api.models import DeletedElements, FieldValue


def value(field_type_id, val, field_id="f-water"):
    return FieldValue(group_id="g-health", field_id=field_id, field_type_id=field_type_id, value=val)


@pytest.fixture
async def structure(registry, test_user_id, sample_groups):
    saved, _ = await registry.save_structure(test_user_id, sample_groups, as_of_date="2024-01-01")
    return saved


class TestGetOrCreateEntry:
    """Test lazy entry creation"""

    async def test_missing_entry_is_template(self, entry_store, store, test_user_id):
        entry, is_new = await entry_store.get_or_create_entry(test_user_id, "2024-05-01")

        assert is_new is True
        assert entry.values == []
        assert entry.date == "2024-05-01"
        assert await store.get(keys.entries_pk(test_user_id), keys.entry_sk("2024-05-01")) is None

    async def test_existing_entry(self, entry_store, structure, test_user_id):
        await entry_store.save_entry(test_user_id, "2024-05-01", [value("ft-water-amount", 8)])

        entry, is_new = await entry_store.get_or_create_entry(test_user_id, "2024-05-01")
        assert is_new is False
        assert entry.values[0].value == 8

    async def test_get_entry_template_has_structure(self, entry_store, structure, test_user_id):
        entry = await entry_store.get_entry(test_user_id, "2024-05-01")
        assert entry.structure_id == structure.structure_id
        assert entry.values == []

    async def test_get_entry_without_structure(self, entry_store, store, test_user_id):
        entry = await entry_store.get_entry(test_user_id, "2024-05-01")

        assert entry.structure_id is None
        assert entry.values == []
        assert entry.date == "2024-05-01"
        assert await store.get(keys.entries_pk(test_user_id), keys.entry_sk("2024-05-01")) is None


class TestSaveEntry:
    """Test entry upsert"""

    async def test_insert(self, entry_store, structure, test_user_id):
        entry, created = await entry_store.save_entry(
            test_user_id, "2024-05-01", [value("ft-water-amount", 8)]
        )

        assert created is True
        assert entry.structure_id == structure.structure_id
        assert entry.user_id == test_user_id
        assert entry.id
        assert entry.values[0].created_at is not None

    async def test_save_twice_is_idempotent(self, entry_store, store, structure, test_user_id):
        values = [value("ft-water-amount", 8), value("ft-mood-severity", 2, field_id="f-mood")]

        await entry_store.save_entry(test_user_id, "2024-05-01", values)
        saved, created = await entry_store.save_entry(test_user_id, "2024-05-01", values)

        assert created is False
        stored = await store.query(keys.entries_pk(test_user_id), keys.ENTRY_PREFIX)
        assert len(stored) == 1
        assert [(v.field_type_id, v.value) for v in saved.values] == [
            ("ft-water-amount", 8),
            ("ft-mood-severity", 2),
        ]

    async def test_update_keeps_structure_and_created_at(self, entry_store, registry, structure, test_user_id, sample_groups):
        first, _ = await entry_store.save_entry(test_user_id, "2024-05-01", [value("ft-water-amount", 8)])

        await registry.save_structure(
            test_user_id, sample_groups, deleted_elements=DeletedElements(fields=["f-old"]), as_of_date="2024-05-01"
        )
        second, created = await entry_store.save_entry(test_user_id, "2024-05-01", [value("ft-water-amount", 16)])

        assert created is False
        assert second.id == first.id
        assert second.structure_id == first.structure_id
        assert second.created_at == first.created_at
        assert second.values[0].value == 16

    async def test_null_value_survives_save(self, entry_store, store, structure, test_user_id):
        await entry_store.save_entry(test_user_id, "2024-05-01", [value("ft-water-amount", None)])

        item = await store.get(keys.entries_pk(test_user_id), keys.entry_sk("2024-05-01"))
        assert item["values"][0]["value"] is None

        entry, _ = await entry_store.save_entry(test_user_id, "2024-05-01", [value("ft-water-amount", None)])
        item = await store.get(keys.entries_pk(test_user_id), keys.entry_sk("2024-05-01"))
        assert "value" in item["values"][0]
        assert entry.values[0].value is None

    async def test_explicit_structure_id(self, entry_store, structure, test_user_id):
        entry, _ = await entry_store.save_entry(test_user_id, "2024-05-01", [], structure_id="s-explicit")
        assert entry.structure_id == "s-explicit"

    async def test_duplicate_values_rejected(self, entry_store, store, structure, test_user_id):
        with pytest.raises(ValidationError):
            await entry_store.save_entry(
                test_user_id, "2024-05-01", [value("ft-water-amount", 8), value("ft-water-amount", 9)]
            )
        assert await store.get(keys.entries_pk(test_user_id), keys.entry_sk("2024-05-01")) is None

    async def test_new_entry_requires_structure(self, entry_store, test_user_id):
        with pytest.raises(RecordNotFoundError):
            await entry_store.save_entry(test_user_id, "2024-05-01", [value("ft-water-amount", 8)])


class TestFirstEntryDate:

    async def test_none_without_entries(self, entry_store, test_user_id):
        assert await entry_store.get_first_entry_date(test_user_id) is None

    async def test_earliest_date(self, entry_store, structure, test_user_id):
        for date in ["2024-05-03", "2024-04-28", "2024-05-01"]:
            await entry_store.save_entry(test_user_id, date, [])
        assert await entry_store.get_first_entry_date(test_user_id) == "2024-04-28"


class TestQuickFill:
    """Test carrying values forward"""

    async def test_copies_previous_day(self, entry_store, structure, test_user_id):
        await entry_store.save_entry(
            test_user_id, "2024-04-30", [value("ft-water-amount", 24), value("f-water-CHECK", True)]
        )

        filled = await entry_store.quick_fill(test_user_id, "2024-05-01")

        assert filled.date == "2024-05-01"
        assert {v.field_type_id: v.value for v in filled.values} == {
            "ft-water-amount": 24,
            "f-water-CHECK": True,
        }

    async def test_drops_removed_field_types(self, entry_store, registry, structure, test_user_id, sample_groups):
        await entry_store.save_entry(
            test_user_id,
            "2024-04-30",
            [value("ft-water-amount", 24), value("ft-water-time", 480)],
        )

        water = sample_groups[0].fields[0]
        water.field_types = [ft for ft in water.field_types if ft.id == "ft-water-amount"]
        await registry.save_structure(
            test_user_id,
            sample_groups,
            deleted_elements=DeletedElements(field_types=["ft-water-time"]),
            as_of_date="2024-05-01",
        )

        filled = await entry_store.quick_fill(test_user_id, "2024-05-01")
        assert [v.field_type_id for v in filled.values] == ["ft-water-amount"]

    async def test_replaces_existing_target_values(self, entry_store, structure, test_user_id):
        await entry_store.save_entry(test_user_id, "2024-04-30", [value("ft-water-amount", 24)])
        existing, _ = await entry_store.save_entry(test_user_id, "2024-05-01", [value("ft-water-time", 600)])

        filled = await entry_store.quick_fill(test_user_id, "2024-05-01")
        assert filled.id == existing.id
        assert [v.field_type_id for v in filled.values] == ["ft-water-amount"]

    async def test_missing_previous_day(self, entry_store, structure, test_user_id):
        with pytest.raises(RecordNotFoundError):
            await entry_store.quick_fill(test_user_id, "2024-05-01")
