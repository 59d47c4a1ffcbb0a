from dirlistener.rules import Watch
from dirlistener.watchtable import WatchTable


def _watches():
    return [Watch(target="/a", wd=1), Watch(target="/b", wd=2), Watch(target="/c", wd=5)]


def test_get_returns_registered_watch():
    watches = _watches()
    table = WatchTable(watches)
    assert table.get(1) is watches[0]
    assert table.get(5) is watches[2]


def test_get_unknown_returns_none():
    table = WatchTable(_watches())
    assert table.get(3) is None


def test_len_and_contains():
    table = WatchTable(_watches())
    assert len(table) == 3
    assert 2 in table
    assert 4 not in table


def test_empty_table():
    table = WatchTable([])
    assert len(table) == 0
    assert table.get(1) is None


def test_duplicate_descriptor_later_entry_wins():
    first = Watch(target="/a", wd=7)
    second = Watch(target="/b", wd=7)
    table = WatchTable([first, second])
    assert len(table) == 1
    assert table.get(7) is second


def test_accepts_generator():
    table = WatchTable(Watch(target=f"/d{n}", wd=n) for n in range(4))
    assert len(table) == 4
    assert table.get(3).target == "/d3"