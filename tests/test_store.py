import json

from refund_calc.calculator import calculate_refund
from refund_calc.config import DARK_MODE_KEY, HISTORY_KEY, TEMPLATES_KEY
from refund_calc.models import CalculationInput, HistoryItem, Template
from refund_calc.store import (
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    RecordStore,
    StoreError,
    prepend_history,
)


def make_item(n: int) -> HistoryItem:
    inp = CalculationInput(amount_paid=100 + n, weeks_paid=4, weeks_received=1)
    res = calculate_refund(inp, clock=lambda: n, id_factory=lambda: f"r{n}")
    return HistoryItem(id=f"h{n}", timestamp=n, result=res)


class FailingStore(KeyValueStore):
    """Reads like an empty store, every write fails."""

    def get(self, key):
        return None

    def set(self, key, value):
        raise StoreError("quota exceeded")

    def remove(self, key):
        raise StoreError("quota exceeded")


def test_prepend_history_evicts_oldest_at_cap():
    full = [make_item(n) for n in (3, 2, 1)]  # most recent first
    got = prepend_history(full, make_item(4), limit=3)
    assert [h.id for h in got] == ["h4", "h3", "h2"]
    # input list untouched
    assert [h.id for h in full] == ["h3", "h2", "h1"]


def test_history_round_trip_and_cap_on_save():
    rs = RecordStore(MemoryStore())
    items = [make_item(n) for n in range(5, 0, -1)]
    assert rs.save_history(items, limit=3)
    loaded = rs.load_history()
    assert [h.id for h in loaded] == ["h5", "h4", "h3"]
    assert loaded[0] == items[0]


def test_templates_keep_insertion_order():
    rs = RecordStore(MemoryStore())
    t1 = Template(id="t1", name="First", input=CalculationInput(amount_paid=1), created_at=1)
    t2 = Template(id="t2", name="Second", input=CalculationInput(amount_paid=2), created_at=2)
    assert rs.save_templates([t1, t2])
    assert [t.name for t in rs.load_templates()] == ["First", "Second"]
    assert rs.clear_templates()
    assert rs.load_templates() == []


def test_corrupt_blob_reads_as_no_data():
    kv = MemoryStore({HISTORY_KEY: "{not json", TEMPLATES_KEY: json.dumps({"a": 1})})
    rs = RecordStore(kv)
    assert rs.load(HISTORY_KEY) is None
    assert rs.load_history() == []
    assert rs.load(TEMPLATES_KEY) is None


def test_malformed_records_read_as_no_data():
    kv = MemoryStore({HISTORY_KEY: json.dumps([{"id": "x"}])})
    assert RecordStore(kv).load_history() == []


def test_failed_write_returns_false():
    rs = RecordStore(FailingStore())
    assert rs.save_history([make_item(1)]) is False
    assert rs.clear_history() is False
    assert rs.save_dark_mode(True) is False
    assert rs.save_session({"form": {}}) is False


def test_preferences():
    kv = MemoryStore()
    rs = RecordStore(kv)
    assert rs.load_dark_mode() is False
    rs.save_dark_mode(True)
    assert kv.get(DARK_MODE_KEY) == "true"
    assert rs.load_dark_mode() is True

    assert rs.load_currency("USD") == "USD"
    rs.save_currency("EUR")
    assert rs.load_currency("USD") == "EUR"

    assert rs.load_history_limit(10) == 10
    rs.save_history_limit(25)
    assert rs.load_history_limit(10) == 25
    kv.set("historyLimit", "lots")
    assert rs.load_history_limit(10) == 10


def test_json_file_store(tmp_path):
    path = tmp_path / "sub" / "store.json"
    kv = JsonFileStore(path)
    assert kv.get("a") is None
    kv.set("a", "1")
    kv.set("b", "2")
    kv.remove("a")
    assert json.loads(path.read_text(encoding="utf-8")) == {"b": "2"}
    # a second instance sees the same data
    assert JsonFileStore(path).get("b") == "2"


def test_json_file_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("garbage", encoding="utf-8")
    kv = JsonFileStore(path)
    assert kv.get("a") is None
    kv.set("a", "1")
    assert kv.get("a") == "1"


def test_json_file_store_write_error(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    rs = RecordStore(JsonFileStore(blocker / "store.json"))
    assert rs.save_history([make_item(1)]) is False


def test_json_file_store_removes_temp_file_when_replace_fails(tmp_path, monkeypatch):
    path = tmp_path / "store.json"
    kv = JsonFileStore(path)
    kv.set("a", "1")

    def broken_replace(src, dst):
        raise OSError("device busy")

    monkeypatch.setattr("refund_calc.store.os.replace", broken_replace)
    assert RecordStore(kv).save_history([make_item(1)]) is False
    assert sorted(p.name for p in tmp_path.iterdir()) == ["store.json"]
    assert json.loads(path.read_text(encoding="utf-8")) == {"a": "1"}


def test_rollback_restores_snapshot():
    kv = MemoryStore({HISTORY_KEY: "[]", DARK_MODE_KEY: "false"})
    rs = RecordStore(kv)
    before = rs.snapshot([HISTORY_KEY, TEMPLATES_KEY, DARK_MODE_KEY])
    rs.save_history([make_item(1)])
    rs.save_templates([])
    rs.clear(DARK_MODE_KEY)
    assert rs.rollback(before) is True
    assert kv.data == {HISTORY_KEY: "[]", DARK_MODE_KEY: "false"}
