from refund_calc.undo import UndoRedoManager


def test_undo_redo_walk():
    m = UndoRedoManager("a")
    m.add_state("b")
    m.add_state("c")
    assert m.undo() == "b"
    assert m.undo() == "a"
    assert m.undo() is None
    assert m.redo() == "b"
    assert m.current() == "b"


def test_add_after_undo_discards_redo_branch():
    m = UndoRedoManager("a")
    m.add_state("b")
    m.add_state("c")
    m.undo()
    m.add_state("d")
    assert not m.can_redo()
    assert m.undo() == "b"


def test_max_size_drops_oldest():
    m = UndoRedoManager(0, max_size=3)
    for n in range(1, 6):
        m.add_state(n)
    assert m.states == [3, 4, 5]
    assert m.current() == 5
    m.undo()
    m.undo()
    assert not m.can_undo()
    assert m.current() == 3


def test_clear_keeps_current():
    m = UndoRedoManager("a")
    m.add_state("b")
    m.clear()
    assert m.current() == "b"
    assert not m.can_undo() and not m.can_redo()


def test_dict_round_trip_keeps_position():
    m = UndoRedoManager({"x": 1}, max_size=10)
    m.add_state({"x": 2})
    m.add_state({"x": 3})
    m.undo()
    m2 = UndoRedoManager.from_dict(m.to_dict())
    assert m2.current() == {"x": 2}
    assert m2.can_redo() and m2.can_undo()
    assert m2.max_size == 10
