"""Unit tests for StateStore."""

import json
from pathlib import Path
from unittest.mock import patch

from syncdns.cli import RewriteRule, StateStore

APP = RewriteRule(domain="app.local", answer="10.0.0.5")
API = RewriteRule(domain="api.local", answer="10.0.0.6")


class TestStateStoreLoad:
    """Tests for StateStore load functionality."""

    def test_load_initializes_missing_file(self, tmp_path: Path) -> None:
        """Test load creates an empty document when the file doesn't exist."""
        state_file = tmp_path / "nonexistent" / "state.json"
        store = StateStore(str(state_file))

        state = store.load()

        assert state == {}
        assert state_file.exists()
        assert json.loads(state_file.read_text()) == {}

    def test_load_returns_file_contents(self, tmp_path: Path) -> None:
        """Test load returns parsed content from valid JSON file."""
        state_file = tmp_path / "state.json"
        state_file.write_text(
            json.dumps(
                {
                    "c1": [
                        {"domain": "app.local", "answer": "10.0.0.5"},
                        {"domain": "api.local", "answer": "10.0.0.6"},
                    ]
                }
            )
        )

        store = StateStore(str(state_file))
        state = store.load()

        assert state == {"c1": [APP, API]}
        assert store.get("c1") == [APP, API]

    def test_load_keeps_empty_entries(self, tmp_path: Path) -> None:
        state_file = tmp_path / "state.json"
        state_file.write_text(json.dumps({"c1": []}))

        store = StateStore(str(state_file))
        store.load()

        assert "c1" in store
        assert store.get("c1") == []

    def test_load_returns_empty_on_invalid_json(self, tmp_path: Path) -> None:
        """Test load starts empty on corrupted/invalid JSON file."""
        state_file = tmp_path / "state.json"
        state_file.write_text("not valid json {{{")

        store = StateStore(str(state_file))
        state = store.load()

        assert state == {}
        # The corrupted file is left alone until the next mutation.
        assert state_file.read_text() == "not valid json {{{"

    def test_load_returns_empty_when_document_is_not_an_object(self, tmp_path: Path) -> None:
        state_file = tmp_path / "state.json"
        state_file.write_text(json.dumps([1, 2, 3]))

        store = StateStore(str(state_file))

        assert store.load() == {}

    def test_load_skips_malformed_records(self, tmp_path: Path) -> None:
        state_file = tmp_path / "state.json"
        state_file.write_text(
            json.dumps(
                {
                    "c1": [
                        {"domain": "app.local", "answer": "10.0.0.5"},
                        {"domain": "missing-answer.local"},
                        "not_a_dict",
                    ],
                    "c2": "not_a_list",
                }
            )
        )

        store = StateStore(str(state_file))
        state = store.load()

        assert state == {"c1": [APP]}


class TestStateStoreOwnership:
    """Tests for StateStore get/has/append/remove."""

    def test_get_unknown_container_returns_empty_list(self, tmp_path: Path) -> None:
        store = StateStore(str(tmp_path / "state.json"))

        assert store.get("unknown") == []
        assert "unknown" not in store

    def test_get_returns_copy(self, tmp_path: Path) -> None:
        store = StateStore(str(tmp_path / "state.json"))
        store.append("c1", APP)

        store.get("c1").append(API)

        assert store.get("c1") == [APP]

    def test_has_matches_domain_and_answer_exactly(self, tmp_path: Path) -> None:
        store = StateStore(str(tmp_path / "state.json"))
        store.append("c1", APP)

        assert store.has("c1", APP) is True
        assert store.has("c1", RewriteRule(domain="app.local", answer="10.0.0.9")) is False
        assert store.has("c1", RewriteRule(domain="APP.local", answer="10.0.0.5")) is False
        assert store.has("c2", APP) is False

    def test_append_preserves_declaration_order(self, tmp_path: Path) -> None:
        store = StateStore(str(tmp_path / "state.json"))

        store.append("c1", API)
        store.append("c1", APP)

        assert store.get("c1") == [API, APP]

    def test_append_persists_immediately(self, tmp_path: Path) -> None:
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))

        store.append("c1", APP)

        assert json.loads(state_file.read_text()) == {
            "c1": [{"domain": "app.local", "answer": "10.0.0.5"}]
        }

    def test_remove_deletes_entry_and_persists(self, tmp_path: Path) -> None:
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))
        store.append("c1", APP)
        store.append("c2", API)

        store.remove("c1")

        assert "c1" not in store
        assert json.loads(state_file.read_text()) == {
            "c2": [{"domain": "api.local", "answer": "10.0.0.6"}]
        }

    def test_remove_unknown_container_does_not_write(self, tmp_path: Path) -> None:
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))

        store.remove("unknown")

        assert not state_file.exists()

    def test_container_ids(self, tmp_path: Path) -> None:
        store = StateStore(str(tmp_path / "state.json"))
        store.append("c1", APP)
        store.append("c2", API)

        assert store.container_ids() == ["c1", "c2"]


class TestStateStorePersistence:
    """Tests for StateStore durability."""

    def test_reload_matches_in_memory_state(self, tmp_path: Path) -> None:
        """Test a fresh store loaded from disk sees exactly what was written."""
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))
        store.load()
        store.append("c1", APP)
        store.append("c1", API)
        store.append("c2", APP)
        store.remove("c2")

        reloaded = StateStore(str(state_file))
        reloaded.load()

        assert reloaded.snapshot() == store.snapshot()
        assert reloaded.get("c1") == [APP, API]

    def test_persist_atomic_via_temp_file(self, tmp_path: Path) -> None:
        """Test persist uses temp file + rename for atomic writes."""
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))

        store.append("c1", APP)

        assert state_file.exists()
        assert not state_file.with_suffix(".json.tmp").exists()

    def test_persist_creates_parent_directories(self, tmp_path: Path) -> None:
        state_file = tmp_path / "nested" / "path" / "state.json"
        store = StateStore(str(state_file))

        assert store.persist() is True
        assert state_file.exists()

    def test_persist_sorts_container_ids(self, tmp_path: Path) -> None:
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))
        store.append("zzz", APP)
        store.append("aaa", API)

        content = state_file.read_text()

        assert content.find('"aaa"') < content.find('"zzz"')
        assert "\n" in content

    def test_persist_failure_keeps_in_memory_state(self, tmp_path: Path) -> None:
        """Test a failed write is reported but the mutation is not rolled back."""
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))
        store.load()

        with patch.object(Path, "write_text", side_effect=OSError("disk full")):
            store.append("c1", APP)
            assert store.persist() is False

        assert store.has("c1", APP)
        assert json.loads(state_file.read_text()) == {}

    def test_store_path_is_pathlib_path(self, tmp_path: Path) -> None:
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))

        assert isinstance(store.path, Path)
        assert store.path == state_file
