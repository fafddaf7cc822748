"""Tests for the edit usage tracker."""

import json
from datetime import date

from latex_assist.usage import UsageTracker


class _Clock:
    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


def _tracker(tmp_path, clock=None, **kwargs):
    return UsageTracker(
        str(tmp_path / "usage" / "usage.json"),
        today=clock or _Clock(date(2026, 1, 1)),
        **kwargs,
    )


def test_fresh_user_can_edit(tmp_path):
    tracker = _tracker(tmp_path)
    status = tracker.status()

    assert tracker.can_edit() is True
    assert status.edit_count == 0
    assert status.remaining_edits == 5
    assert status.monthly_reset_date == "2026-01-31"


def test_free_limit(tmp_path):
    tracker = _tracker(tmp_path, free_limit=2)
    tracker.record_edit()
    status = tracker.record_edit()

    assert status.can_edit is False
    assert status.remaining_edits == 0
    assert tracker.can_edit() is False


def test_counts_persist_between_instances(tmp_path):
    _tracker(tmp_path).record_edit()

    assert _tracker(tmp_path).status().edit_count == 1


def test_pro_uses_monthly_quota(tmp_path):
    tracker = _tracker(tmp_path, free_limit=1, pro_monthly_limit=3)
    tracker.record_edit()
    assert tracker.can_edit() is False

    tracker.set_pro(True)
    assert tracker.can_edit() is True

    tracker.record_edit()
    tracker.record_edit()
    assert tracker.can_edit() is False


def test_monthly_reset(tmp_path):
    clock = _Clock(date(2026, 1, 1))
    tracker = _tracker(tmp_path, clock=clock, pro_monthly_limit=1)
    tracker.set_pro(True)
    tracker.record_edit()
    assert tracker.can_edit() is False

    clock.today = date(2026, 1, 31)
    status = tracker.status()

    assert status.can_edit is True
    assert status.monthly_edit_count == 0
    assert status.edit_count == 1
    assert status.monthly_reset_date == "2026-03-02"


def test_corrupt_file_starts_fresh(tmp_path):
    path = tmp_path / "usage" / "usage.json"
    path.parent.mkdir()
    path.write_text("{not json")

    assert _tracker(tmp_path).status().edit_count == 0


def test_unknown_keys_ignored(tmp_path):
    path = tmp_path / "usage" / "usage.json"
    path.parent.mkdir()
    path.write_text(json.dumps({"edit_count": 4, "subscription_status": "inactive"}))

    assert _tracker(tmp_path).status().remaining_edits == 1


def test_non_object_file_starts_fresh(tmp_path):
    path = tmp_path / "usage" / "usage.json"
    path.parent.mkdir()
    path.write_text("[1, 2]")

    assert _tracker(tmp_path).status().edit_count == 0


def test_bad_reset_date_starts_fresh(tmp_path):
    path = tmp_path / "usage" / "usage.json"
    path.parent.mkdir()
    path.write_text(json.dumps({"edit_count": 2, "monthly_reset_date": "soon"}))
    tracker = _tracker(tmp_path)

    assert tracker.can_edit() is True
    assert tracker.status().monthly_reset_date == "2026-01-31"
