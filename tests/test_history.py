from datetime import datetime

import pytest

from sandbot.history import HistoryLedger, playlist_filename, playlist_text, to_playlist


def test_replays_create_distinct_entries_newest_first():
    ledger = HistoryLedger()
    when = datetime(2026, 10, 18, 9, 0, 0)
    first = ledger.record("a.thr", when)
    second = ledger.record("a.thr", when)

    entries = ledger.entries
    assert [e.file_name for e in entries] == ["a.thr", "a.thr"]
    assert entries[0] is second
    assert entries[1] is first
    assert first.entry_id != second.entry_id


def test_playlist_is_oldest_first():
    ledger = HistoryLedger()
    for name in ("one.thr", "two.thr", "three.thr"):
        ledger.record(name)
    assert [e.file_name for e in ledger] == ["three.thr", "two.thr", "one.thr"]
    assert ledger.to_playlist() == ["one.thr", "two.thr", "three.thr"]
    assert playlist_text(ledger.entries) == "one.thr\ntwo.thr\nthree.thr"


def test_playlist_of_repeated_file():
    ledger = HistoryLedger()
    ledger.record("a.thr")
    ledger.record("a.thr")
    assert to_playlist(ledger.entries) == ["a.thr", "a.thr"]


def test_entries_are_immutable():
    entry = HistoryLedger().record("a.thr")
    with pytest.raises(AttributeError):
        entry.file_name = "b.thr"


def test_entries_snapshot_does_not_leak_internal_list():
    ledger = HistoryLedger()
    ledger.record("a.thr")
    ledger.entries.clear()
    assert len(ledger) == 1


def test_record_requires_a_name():
    with pytest.raises(ValueError):
        HistoryLedger().record("")


def test_playlist_filename_appends_suffix_once():
    assert playlist_filename("evening") == "evening.seq"
    assert playlist_filename("evening.seq") == "evening.seq"
    with pytest.raises(ValueError):
        playlist_filename("  ")
