import orjson

from uspto_monitor.src.processing.state_manager import StateManager


def test_missing_file_loads_empty(tmp_path):
    assert StateManager(tmp_path / "state.json").load() == {}


def test_corrupt_file_loads_empty_and_is_set_aside(tmp_path):
    path = tmp_path / "state.json"
    path.write_bytes(b"{not json")

    assert StateManager(path).load() == {}
    assert not path.exists()
    assert (tmp_path / "state.json.bad").read_bytes() == b"{not json"


def test_non_mapping_content_loads_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_bytes(b'["97123456"]')

    assert StateManager(path).load() == {}
    assert (tmp_path / "state.json.bad").exists()


def test_save_then_load_round_trip(tmp_path):
    manager = StateManager(tmp_path / "nested" / "state.json")
    manager.save({"97123456": "2024-03-05"})
    assert manager.load() == {"97123456": "2024-03-05"}
    assert not (tmp_path / "nested" / "state.json.tmp").exists()


def test_commit_keeps_later_date_per_key(tmp_path):
    path = tmp_path / "state.json"
    manager = StateManager(path)
    manager.save({"A": "2024-03-05", "C": "2024-01-01"})

    merged = manager.commit({"A": "2024-03-01", "B": "2024-02-01", "C": "2024-01-02"})

    assert merged == {"A": "2024-03-05", "B": "2024-02-01", "C": "2024-01-02"}
    assert orjson.loads(path.read_bytes()) == merged


def test_advance_is_monotonic():
    state = {"A": "2024-03-01"}
    assert not StateManager.advance(state, "A", "2024-03-01")
    assert not StateManager.advance(state, "A", "2024-02-01")
    assert state["A"] == "2024-03-01"
    assert StateManager.advance(state, "A", "2024-03-02")
    assert StateManager.advance(state, "B", "2024-01-01")
    assert state == {"A": "2024-03-02", "B": "2024-01-01"}
