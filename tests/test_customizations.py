"""Tests for persisted middleware customizations and the file stores."""
import json

import pytest

from core.customizations import CustomizationStore
from core.models import ChannelType, Middleware
from storage.file_store import JSONFileStore


class TestCustomizationStore:
    def test_creates_empty_file_on_first_use(self, tmp_path):
        path = tmp_path / "data" / "middlewares.json"
        store = CustomizationStore(str(path))
        assert path.exists()
        assert json.loads(path.read_text()) == {}
        assert store.as_dict() == {}

    def test_loads_existing_file(self, tmp_path):
        path = tmp_path / "middlewares.json"
        path.write_text(json.dumps({"a": {"order": 3, "enabled": False}}))
        store = CustomizationStore(str(path))
        assert store.get("a") == {"order": 3, "enabled": False}

    def test_set_upserts_and_rewrites_file(self, tmp_path):
        path = tmp_path / "middlewares.json"
        store = CustomizationStore(str(path))
        store.set_customizations([{"name": "a", "order": 1, "enabled": True}])
        store.set_customizations(
            [{"name": "a", "order": 2, "enabled": False}, {"name": "b", "order": 0, "enabled": True}]
        )
        assert json.loads(path.read_text()) == {
            "a": {"order": 2, "enabled": False},
            "b": {"order": 0, "enabled": True},
        }

    def test_accepts_middleware_objects(self, store):
        m = Middleware("a", ChannelType.OUTGOING, print, order=7, enabled=False)
        store.set_customizations([m])
        assert store.get("a") == {"order": 7, "enabled": False}

    def test_entry_without_name_changes_nothing(self, tmp_path):
        path = tmp_path / "middlewares.json"
        store = CustomizationStore(str(path))
        with pytest.raises(ValueError):
            store.set_customizations([{"name": "a", "order": 1}, {"order": 2}])
        assert store.as_dict() == {}
        assert json.loads(path.read_text()) == {}

    def test_reset_persists_empty_mapping(self, tmp_path):
        path = tmp_path / "middlewares.json"
        store = CustomizationStore(str(path))
        store.set_customizations([{"name": "a", "order": 1, "enabled": True}])
        store.reset_customizations()
        assert store.as_dict() == {}
        assert json.loads(path.read_text()) == {}

    def test_survives_restart(self, tmp_path):
        path = str(tmp_path / "middlewares.json")
        CustomizationStore(path).set_customizations([{"name": "a", "order": 4, "enabled": True}])
        assert CustomizationStore(path).get("a") == {"order": 4, "enabled": True}

    def test_malformed_file_read_as_empty(self, tmp_path):
        path = tmp_path / "middlewares.json"
        path.write_text("[1, 2")
        assert CustomizationStore(str(path)).as_dict() == {}


class TestJSONFileStore:
    def test_write_leaves_no_temp_file(self, tmp_path):
        path = tmp_path / "store.json"
        JSONFileStore(str(path)).write({"k": 1})
        assert json.loads(path.read_text()) == {"k": 1}
        assert not (tmp_path / "store.json.tmp").exists()

    def test_missing_file_reads_empty(self, tmp_path):
        store = JSONFileStore(str(tmp_path / "absent.json"))
        assert store.exists() is False
        assert store.read() == {}


class TestCustomizationValidation:
    @pytest.mark.parametrize(
        "entry",
        [
            {"name": "a", "order": "first"},
            {"name": "a", "order": 2.5},
            {"name": "a", "order": True},
            {"name": "a", "order": 1, "enabled": "yes"},
        ],
    )
    def test_invalid_values_change_nothing(self, tmp_path, entry):
        path = tmp_path / "middlewares.json"
        store = CustomizationStore(str(path))
        store.set_customizations([{"name": "b", "order": 1, "enabled": True}])
        with pytest.raises(ValueError):
            store.set_customizations([{"name": "c", "order": 0}, entry])
        assert store.as_dict() == {"b": {"order": 1, "enabled": True}}
        assert json.loads(path.read_text()) == {"b": {"order": 1, "enabled": True}}

    def test_invalid_persisted_values_dropped_on_load(self, tmp_path, caplog):
        path = tmp_path / "middlewares.json"
        path.write_text(json.dumps({
            "a": {"order": "first", "enabled": False},
            "b": {"order": 2, "enabled": "no"},
            "c": "junk",
        }))
        store = CustomizationStore(str(path))
        assert store.as_dict() == {
            "a": {"order": None, "enabled": False},
            "b": {"order": 2, "enabled": None},
        }
        assert len([r for r in caplog.records if "customization" in r.getMessage()]) == 3
