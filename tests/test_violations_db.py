import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import violations_db
from violations_db import init_db, load_counters, reset_counters, save_counter


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    # Point DB to a temp file for isolation
    db_file = tmp_path / "violations_test.db"
    monkeypatch.setattr(violations_db, "DB_PATH", str(db_file))
    init_db()
    yield str(db_file)


def test_save_and_load_counters(temp_db):
    save_counter("1", "Flood", 1)
    save_counter("1", "Flood", 2)
    save_counter("2", "Caps", 5)

    assert load_counters() == {("1", "Flood"): 2, ("2", "Caps"): 5}


def test_reset_counters(temp_db):
    save_counter("1", "Flood", 3)
    save_counter("1", "Caps", 4)
    save_counter("2", "Caps", 1)

    assert reset_counters("1", "Caps") == 1
    assert load_counters() == {("1", "Flood"): 3, ("2", "Caps"): 1}
    assert reset_counters("1") == 1
    assert load_counters() == {("2", "Caps"): 1}


def test_init_db_is_idempotent(temp_db):
    save_counter("1", "Flood", 3)
    init_db()
    assert load_counters() == {("1", "Flood"): 3}
