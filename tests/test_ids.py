"""
Tests for utils/ids.py.

Covers:
- IdGenerator: second resolution, same-second suffixes, clock stepping back
- validation and normalization
- duplicate detection across files
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from org_gtd.utils.ids import (
    IdGenerator,
    _suffix,
    find_all_duplicates,
    index_task_ids,
    is_valid_task_id,
    normalize_task_id,
    task_id_timestamp,
)


NOON = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class TestIdGenerator:
    def test_format(self):
        assert IdGenerator().generate(NOON) == "20250101120000"

    def test_same_second_gets_suffixes(self):
        gen = IdGenerator()
        ids = [gen.generate(NOON) for _ in range(28)]
        assert ids[0] == "20250101120000"
        assert ids[1] == "20250101120000a"
        assert ids[26] == "20250101120000z"
        assert ids[27] == "20250101120000aa"
        assert len(set(ids)) == 28

    def test_new_second_resets_suffix(self):
        gen = IdGenerator()
        gen.generate(NOON)
        gen.generate(NOON)
        assert gen.generate(NOON.replace(second=1)) == "20250101120001"

    def test_clock_stepping_back_stays_unique(self):
        gen = IdGenerator()
        first = gen.generate(NOON.replace(second=1))
        second = gen.generate(NOON)
        assert first == "20250101120001"
        assert second == "20250101120001a"

    def test_converted_to_utc(self):
        cet = timezone(timedelta(hours=1))
        local = datetime(2025, 1, 1, 13, 0, 0, tzinfo=cet)
        assert IdGenerator().generate(local) == "20250101120000"

    def test_generated_ids_are_valid(self):
        gen = IdGenerator()
        for _ in range(30):
            assert is_valid_task_id(gen.generate(NOON))


class TestSuffix:
    def test_sequence(self):
        assert _suffix(0) == ""
        assert _suffix(1) == "a"
        assert _suffix(26) == "z"
        assert _suffix(27) == "aa"
        assert _suffix(28) == "ab"
        assert _suffix(702) == "zz"

    def test_exhausted(self):
        with pytest.raises(ValueError):
            _suffix(703)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidation:
    @pytest.mark.parametrize("task_id", ["20250101120000", "20250101120000a", "20250101120000zz", "20250101120000-x7Q"])
    def test_valid(self, task_id):
        assert is_valid_task_id(task_id)

    @pytest.mark.parametrize("task_id", ["", None, "2025010112000", "20250101120000abc", "abc123", "20250101120000A"])
    def test_invalid(self, task_id):
        assert not is_valid_task_id(task_id)

    def test_normalize_strips_link(self):
        assert normalize_task_id("[[zk:20250101120000a]]") == "20250101120000a"
        assert normalize_task_id("  20250101120000 ") == "20250101120000"

    def test_normalize_rejects_garbage(self):
        assert normalize_task_id("[[zk:not-an-id]]") is None
        assert normalize_task_id(None) is None

    def test_timestamp(self):
        assert task_id_timestamp("20250101120000b") == NOON
        assert task_id_timestamp("20251301120000") is None


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------

def _task(title: str, task_id: str) -> str:
    return f"* TODO {title}\n:PROPERTIES:\n:TASK_ID: {task_id}\n:END:\n"


class TestDuplicates:
    def test_same_id_in_two_files(self, tmp_path):
        (tmp_path / "a.org").write_text(_task("One", "20250101120000"), encoding="utf-8")
        (tmp_path / "b.org").write_text(
            _task("Two", "20250101120000") + _task("Three", "20250101120001"), encoding="utf-8"
        )

        dups = find_all_duplicates(tmp_path)

        assert list(dups) == ["20250101120000"]
        entries = dups["20250101120000"]
        assert len(entries) == 2
        assert {e["file"] for e in entries} == {str(tmp_path / "a.org"), str(tmp_path / "b.org")}
        assert all(e["line"] == 1 for e in entries)
        assert {e["title"] for e in entries} == {"One", "Two"}

    def test_no_duplicates(self, tmp_path):
        (tmp_path / "a.org").write_text(
            _task("One", "20250101120000") + _task("Two", "20250101120001"), encoding="utf-8"
        )
        assert find_all_duplicates(tmp_path) == {}

    def test_index_skips_excluded_dirs(self, tmp_path):
        (tmp_path / "a.org").write_text(_task("One", "20250101120000"), encoding="utf-8")
        hidden = tmp_path / ".trash"
        hidden.mkdir()
        (hidden / "old.org").write_text(_task("Old", "20250101120000"), encoding="utf-8")

        index = index_task_ids(tmp_path, exclude_dirs={".trash"})

        assert len(index["20250101120000"]) == 1
        assert find_all_duplicates(tmp_path, exclude_dirs={".trash"}) == {}
