from datetime import datetime, timedelta, timezone

from matchday_sync.models.sync_models import FreshnessRecord, SyncResult, TickReport, _fmt_age

T0 = datetime(2024, 8, 16, 12, 0, tzinfo=timezone.utc)


def test_record_staleness_boundary():
    record = FreshnessRecord("standings", "PL", T0, T0 + timedelta(minutes=15))
    assert record.is_stale(T0 + timedelta(minutes=15)) is False
    assert record.is_stale(T0 + timedelta(minutes=15, microseconds=1)) is True


def test_record_dict_roundtrip():
    record = FreshnessRecord("team", "57", T0, T0 + timedelta(hours=12), "abc")
    assert FreshnessRecord.from_dict(record.to_dict()) == record


def test_tick_report_counts():
    report = TickReport(started_at=T0, results=[
        SyncResult("competition", "PL", "synced", changed=True),
        SyncResult("match", "PL", "failed", error="boom"),
        SyncResult("standings", "PL", "skipped"),
    ])
    d = report.to_dict()
    assert (d["synced"], d["failed"], d["skipped"]) == (1, 1, 1)
    assert d["finished_at"] is None


def test_fmt_age():
    assert _fmt_age(300) == "5m"
    assert _fmt_age(7200) == "2h"
    assert _fmt_age(3 * 86400) == "3d"
