"""Tests for ID generation."""

from datetime import datetime, timezone

from tic.id_gen import (
    generate_hash_id, is_temp_id, make_item_id,
)


def test_generate_hash_id_deterministic():
    """Same inputs should produce same hash."""
    ts = datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
    h1 = generate_hash_id("Title", "Desc", ts, "ws1")
    h2 = generate_hash_id("Title", "Desc", ts, "ws1")
    assert h1 == h2
    assert len(h1) == 64  # Full SHA256 hex


def test_generate_hash_id_differs():
    ts = datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
    h1 = generate_hash_id("Title A", "Desc", ts, "ws1")
    h2 = generate_hash_id("Title B", "Desc", ts, "ws1")
    assert h1 != h2


def test_generate_hash_id_salt_matters():
    ts = datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
    assert generate_hash_id("T", "", ts, "ws1") != generate_hash_id("T", "", ts, "ws1:1")


def test_make_item_id():
    assert make_item_id("tic", "abcdef1234567890", 6) == "tic-abcdef"
    assert make_item_id("tic", "abcdef1234567890", 8) == "tic-abcdef12"


def test_is_temp_id():
    assert is_temp_id("local-a3f2dd")
    assert not is_temp_id("tic-a3f2dd")
    assert not is_temp_id("localhost-1")
