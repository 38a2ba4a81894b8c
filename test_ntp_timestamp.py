# test_ntp_timestamp.py
import pytest

import ntp_timestamp
from ntp_errors import InvalidTime
from ntp_timestamp import NTP_DELTA, NTPTimestamp, decode_q16_16


def test_from_wall_clock_unix_epoch():
    ts = NTPTimestamp.from_wall_clock(0, 0)
    assert ts == NTPTimestamp(NTP_DELTA, 0)


def test_from_wall_clock_half_second():
    ts = NTPTimestamp.from_wall_clock(1, 500_000)
    assert ts.seconds == NTP_DELTA + 1
    assert ts.fraction == 2**31


@pytest.mark.parametrize("sec,usec", [
    (0, 0),
    (1_234_567_890, 123_456),
    (1_700_000_000, 1),
    (1_700_000_000, 999_999),
    (2_000_000_000, 500_000),
])
def test_wall_clock_round_trip_within_one_microsecond(sec, usec):
    back_sec, back_usec = NTPTimestamp.from_wall_clock(sec, usec).to_wall_clock()
    assert back_sec == sec
    assert abs(back_usec - usec) <= 1


@pytest.mark.parametrize("usec", [-1, 1_000_000])
def test_from_wall_clock_rejects_bad_microseconds(usec):
    with pytest.raises(ValueError):
        NTPTimestamp.from_wall_clock(0, usec)


@pytest.mark.parametrize("seconds,fraction", [(2**32, 0), (-1, 0), (0, 2**32)])
def test_fields_must_fit_unsigned_32_bits(seconds, fraction):
    with pytest.raises(ValueError):
        NTPTimestamp(seconds, fraction)


def test_now_wraps_into_next_era_after_2036(monkeypatch):
    monkeypatch.setattr(ntp_timestamp.time, "time_ns", lambda: 2_100_000_000 * 1_000_000_000)
    ts = NTPTimestamp.now()
    assert ts.seconds == 2_100_000_000 + NTP_DELTA - 2**32
    assert ts.fraction == 0


def test_now_uses_wall_clock(monkeypatch):
    monkeypatch.setattr(ntp_timestamp.time, "time_ns", lambda: 1_700_000_000_123_456_789)
    assert NTPTimestamp.now() == NTPTimestamp.from_wall_clock(1_700_000_000, 123_456)


def test_to_float_seconds_exact_binary_fraction():
    ts = NTPTimestamp(1000, 2**31)
    assert ts.to_float_seconds() == 1000.5
    assert ts.to_float_seconds(truncate_to_microseconds=True) == 1000.5


def test_to_float_seconds_full_precision_keeps_sub_microsecond():
    ts = NTPTimestamp(1000, 1)
    assert ts.to_float_seconds() > 1000.0
    # マイクロ秒経由だと 1/2^32 秒は消える
    assert ts.to_float_seconds(truncate_to_microseconds=True) == 1000.0


def test_to_float_seconds_truncated_path():
    ts = NTPTimestamp(10, 0xFFFFFFFF)
    truncated = ts.to_float_seconds(truncate_to_microseconds=True)
    assert truncated == pytest.approx(10.999999, abs=1e-12)
    assert ts.to_float_seconds() - truncated > 9e-7


def test_from_float_seconds():
    ts = NTPTimestamp.from_float_seconds(1000.05)
    assert ts.seconds == 1000
    assert ts.to_float_seconds() == pytest.approx(1000.05, abs=1e-9)


def test_from_float_seconds_carries_into_seconds():
    assert NTPTimestamp.from_float_seconds(5.9999999999999) == NTPTimestamp(6, 0)


def test_from_float_seconds_rejects_negative():
    with pytest.raises(ValueError):
        NTPTimestamp.from_float_seconds(-0.5)


def test_to_components_ntp_epoch():
    assert NTPTimestamp(0, 0).to_components() == (1900, 1, 1, 0, 0, 0, 0)


def test_to_components_utc():
    ts = NTPTimestamp.from_wall_clock(1_000_000_000, 250_000)
    assert ts.to_components(local=False) == (2001, 9, 9, 1, 46, 40, 250_000)
    assert ts.to_string(local=False) == "2001-09-09 01:46:40.250000"


def test_to_components_local_matches_datetime():
    from datetime import datetime

    ts = NTPTimestamp.from_wall_clock(1_000_000_000, 0)
    dt = datetime.fromtimestamp(1_000_000_000)
    assert ts.to_components(local=True) == (
        dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second, 0
    )


def test_to_components_unrepresentable_raises_invalid_time(monkeypatch):
    class _Broken:
        @staticmethod
        def fromtimestamp(*args, **kwargs):
            raise OverflowError("timestamp out of range for platform time_t")

    monkeypatch.setattr(ntp_timestamp, "datetime", _Broken)
    with pytest.raises(InvalidTime):
        NTPTimestamp.from_wall_clock(0, 0).to_components(local=True)


@pytest.mark.parametrize("raw,expected", [
    (0, 0.0),
    (65536, 1.0),
    (-65536, -1.0),
    (0x8000, 0.5),
    (0xFFFF0000, -1.0),  # 受信したままの符号なし表現
])
def test_decode_q16_16(raw, expected):
    assert decode_q16_16(raw) == expected


@pytest.mark.parametrize("raw", [2**32, -(2**31) - 1])
def test_decode_q16_16_out_of_range(raw):
    with pytest.raises(ValueError):
        decode_q16_16(raw)
