from datetime import datetime, timedelta, timezone

from clinical_sync.shared.utils.datetime_utils import DateTimeUtils, ensure_utc


def test_ensure_utc_assumes_naive_is_utc():
    naive = datetime(2026, 1, 1, 12, 0)
    assert ensure_utc(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_ensure_utc_converts_offsets():
    # 09:00 en UTC-3 son las 12:00 UTC
    local = datetime(2026, 1, 1, 9, 0, tzinfo=timezone(timedelta(hours=-3)))
    assert ensure_utc(local).hour == 12


def test_from_iso_string_accepts_z_suffix():
    parsed = DateTimeUtils.from_iso_string("2026-03-01T10:30:00Z")
    assert parsed == datetime(2026, 3, 1, 10, 30, tzinfo=timezone.utc)


def test_from_iso_string_returns_none_on_garbage():
    assert DateTimeUtils.from_iso_string("ayer") is None
    assert DateTimeUtils.from_iso_string(None) is None


def test_to_upstream_since_drops_microseconds():
    dt = datetime(2026, 3, 1, 10, 30, 15, 999999, tzinfo=timezone(timedelta(hours=2)))
    assert DateTimeUtils.to_upstream_since(dt) == "2026-03-01T08:30:15Z"


def test_elapsed_ms_mixes_naive_and_aware():
    start = datetime(2026, 1, 1, 0, 0, 0)
    end = datetime(2026, 1, 1, 0, 0, 1, 500000, tzinfo=timezone.utc)
    assert DateTimeUtils.elapsed_ms(start, end) == 1500
