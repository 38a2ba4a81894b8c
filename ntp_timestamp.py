"""
NTP タイムスタンプ（64bit 固定小数点）モジュール

- NTPTimestamp    : 32bit 秒 + 32bit 小数部（単位 1/2^32 秒）、起点は 1900-01-01 00:00:00 UTC
- decode_q16_16() : root delay / root dispersion 用の 16.16 固定小数点デコード

to_float_seconds() は既定で seconds + fraction / 2^32 の全精度で計算する。
truncate_to_microseconds=True のときだけ、マイクロ秒を経由した（1µs未満を切り捨てる）旧方式で計算する。
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Tuple

from ntp_errors import InvalidTime

NTP_DELTA = 2208988800  # 1900年〜1970年の秒数
EPOCH_OFFSET = NTP_DELTA

FRACTION_SCALE = 2**32
Q16_SCALE = 65536.0
MICROS_PER_SECOND = 1_000_000

U32_MAX = 0xFFFFFFFF

NTP_EPOCH = datetime(1900, 1, 1, tzinfo=timezone.utc)

Components = Tuple[int, int, int, int, int, int, int]


def decode_q16_16(raw: int) -> float:
    """
    16.16 固定小数点（符号付き32bit）を秒に変換する。
    2^31 以上の値は受信したままの符号なし表現とみなし、2の補数として解釈し直す。
    """
    if not -(2**31) <= raw < 2**32:
        raise ValueError(f"Q16.16 value out of 32-bit range: {raw}")
    if raw >= 2**31:
        raw -= 2**32
    return raw / Q16_SCALE


@dataclass(frozen=True)
class NTPTimestamp:
    seconds: int = 0
    fraction: int = 0

    def __post_init__(self):
        for name in ("seconds", "fraction"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= U32_MAX:
                raise ValueError(f"NTP timestamp {name} must be an unsigned 32-bit int: {value!r}")

    # --- 生成 ---------------------------------------------------------------

    @classmethod
    def from_wall_clock(cls, seconds_since_1970: int, microseconds: int) -> NTPTimestamp:
        """
        Unix 時刻（秒 + マイクロ秒）から生成。小数部は四捨五入。
        秒は 2^32 で折り返す（2036-02-07 以降は NTP era 1）。
        """
        if not 0 <= microseconds < MICROS_PER_SECOND:
            raise ValueError(f"microseconds out of range: {microseconds}")
        seconds = (int(seconds_since_1970) + EPOCH_OFFSET) & U32_MAX
        fraction = (int(microseconds) * FRACTION_SCALE + MICROS_PER_SECOND // 2) // MICROS_PER_SECOND
        return cls(seconds, fraction)

    @classmethod
    def now(cls) -> NTPTimestamp:
        """現在の壁時計時刻"""
        sec, ns = divmod(time.time_ns(), 1_000_000_000)
        return cls.from_wall_clock(sec, ns // 1000)

    @classmethod
    def from_float_seconds(cls, value: float) -> NTPTimestamp:
        """1900年起点の浮動小数点秒から生成"""
        if value < 0:
            raise ValueError(f"NTP time cannot be negative: {value}")
        seconds = int(value)
        fraction = int(round((value - seconds) * FRACTION_SCALE))
        # 丸めで 2^32 に届いたら秒へ繰り上げ
        if fraction >= FRACTION_SCALE:
            seconds += 1
            fraction = 0
        return cls(seconds, fraction)

    # --- 変換 ---------------------------------------------------------------

    @property
    def microseconds(self) -> int:
        """小数部をマイクロ秒に変換（切り捨て）"""
        return self.fraction * MICROS_PER_SECOND // FRACTION_SCALE

    def to_float_seconds(self, truncate_to_microseconds: bool = False) -> float:
        if truncate_to_microseconds:
            return self.seconds + self.microseconds / float(MICROS_PER_SECOND)
        return self.seconds + self.fraction / FRACTION_SCALE

    def to_wall_clock(self) -> Tuple[int, int]:
        """(Unix秒, マイクロ秒) を返す。1970年より前なら Unix秒は負になる"""
        return self.seconds - EPOCH_OFFSET, self.microseconds

    def to_components(self, local: bool = False) -> Components:
        """
        (year, month, day, hour, minute, second, microseconds) に分解する。
        local=True ならローカルタイムゾーン、False なら UTC。
        暦で表現できない場合は InvalidTime を送出（部分的な結果は返さない）。
        """
        try:
            if local:
                unix_seconds, _ = self.to_wall_clock()
                dt = datetime.fromtimestamp(unix_seconds)
            else:
                dt = NTP_EPOCH + timedelta(seconds=self.seconds)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidTime(f"NTP time {self.seconds}.{self.fraction:08x} is not representable") from e

        return dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second, self.microseconds

    def to_string(self, local: bool = False) -> str:
        year, month, day, hour, minute, second, micros = self.to_components(local)
        return f"{year:04d}-{month:02d}-{day:02d} {hour:02d}:{minute:02d}:{second:02d}.{micros:06d}"
