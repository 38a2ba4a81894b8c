"""
NTP パケット（48バイト固定長）モジュール

- NTPPacket     : パケットの各フィールド（ホスト側の値）
- to_wire()     : NTPPacket -> 48バイト（ネットワークバイトオーダー = big-endian）
- to_host()     : 48バイト -> NTPPacket
- build_request(): クライアント要求パケットの生成

オフセット  サイズ  フィールド
  0          1      LI(2bit) / VN(3bit) / Mode(3bit)
  1          1      stratum
  2          1      poll（符号付き指数）
  3          1      precision（符号付き指数）
  4          4      root delay（符号付き 16.16）
  8          4      root dispersion（符号なし 16.16）
 12          4      reference id
 16          8      reference timestamp
 24          8      origin timestamp  (T1)
 32          8      receive timestamp (T2)
 40          8      transmit timestamp(T3)
"""
from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field, replace
from typing import Optional

from ntp_errors import MalformedReply
from ntp_timestamp import NTPTimestamp

logger = logging.getLogger(__name__)

NTP_PORT = 123
PACKET_SIZE = 48

# 全フィールドをまとめて変換する（一部だけ変換された状態を作らない）
_WIRE = struct.Struct("!BBbbiII8I")

LEAP_NONE = 0
LEAP_UNSYNCHRONIZED = 3
NTP_VERSION = 4

MODE_CLIENT = 3
MODE_SERVER = 4
MODE_BROADCAST = 5

DEFAULT_POLL = 6
DEFAULT_PRECISION = -20

# status byte: LI=bit7-6, VN=bit5-3, Mode=bit2-0
_LI_SHIFT, _LI_MASK = 6, 0x03
_VN_SHIFT, _VN_MASK = 3, 0x07
_MODE_SHIFT, _MODE_MASK = 0, 0x07


def _check_subfield(name, value, mask):
    if not 0 <= value <= mask:
        raise ValueError(f"{name} out of range: {value}")


def _get_bits(status, shift, mask):
    return (status >> shift) & mask


def _set_bits(status, shift, mask, value):
    return (status & ~(mask << shift) & 0xFF) | ((value & mask) << shift)


def pack_status(li: int, vn: int, mode: int) -> int:
    """LI / VN / Mode から status byte を組み立てる"""
    _check_subfield("leap indicator", li, _LI_MASK)
    _check_subfield("version", vn, _VN_MASK)
    _check_subfield("mode", mode, _MODE_MASK)
    return (li << _LI_SHIFT) | (vn << _VN_SHIFT) | (mode << _MODE_SHIFT)


def get_leap(status: int) -> int:
    return _get_bits(status, _LI_SHIFT, _LI_MASK)


def get_version(status: int) -> int:
    return _get_bits(status, _VN_SHIFT, _VN_MASK)


def get_mode(status: int) -> int:
    return _get_bits(status, _MODE_SHIFT, _MODE_MASK)


def set_leap(status: int, li: int) -> int:
    _check_subfield("leap indicator", li, _LI_MASK)
    return _set_bits(status, _LI_SHIFT, _LI_MASK, li)


def set_version(status: int, vn: int) -> int:
    _check_subfield("version", vn, _VN_MASK)
    return _set_bits(status, _VN_SHIFT, _VN_MASK, vn)


def set_mode(status: int, mode: int) -> int:
    _check_subfield("mode", mode, _MODE_MASK)
    return _set_bits(status, _MODE_SHIFT, _MODE_MASK, mode)


_RANGES = {
    "li_vn_mode": (0, 0xFF),
    "stratum": (0, 0xFF),
    "poll": (-128, 127),
    "precision": (-128, 127),
    "root_delay": (-(2**31), 2**31 - 1),
    "root_dispersion": (0, 0xFFFFFFFF),
    "reference_id": (0, 0xFFFFFFFF),
}


@dataclass(frozen=True)
class NTPPacket:
    li_vn_mode: int = 0
    stratum: int = 0
    poll: int = 0
    precision: int = 0
    root_delay: int = 0
    root_dispersion: int = 0
    reference_id: int = 0
    ref_time: NTPTimestamp = field(default_factory=NTPTimestamp)
    orig_time: NTPTimestamp = field(default_factory=NTPTimestamp)
    recv_time: NTPTimestamp = field(default_factory=NTPTimestamp)
    xmit_time: NTPTimestamp = field(default_factory=NTPTimestamp)

    def __post_init__(self):
        for name, (lo, hi) in _RANGES.items():
            value = getattr(self, name)
            if not isinstance(value, int) or not lo <= value <= hi:
                raise ValueError(f"{name} out of range [{lo}, {hi}]: {value!r}")
        for name in ("ref_time", "orig_time", "recv_time", "xmit_time"):
            if not isinstance(getattr(self, name), NTPTimestamp):
                raise TypeError(f"{name} must be an NTPTimestamp")

    @property
    def leap(self) -> int:
        return get_leap(self.li_vn_mode)

    @property
    def version(self) -> int:
        return get_version(self.li_vn_mode)

    @property
    def mode(self) -> int:
        return get_mode(self.li_vn_mode)

    def with_status(self, li: Optional[int] = None, vn: Optional[int] = None,
                    mode: Optional[int] = None) -> NTPPacket:
        """指定したサブフィールドだけを書き換えたコピーを返す"""
        status = self.li_vn_mode
        if li is not None:
            status = set_leap(status, li)
        if vn is not None:
            status = set_version(status, vn)
        if mode is not None:
            status = set_mode(status, mode)
        return replace(self, li_vn_mode=status)


def to_wire(packet: NTPPacket) -> bytes:
    """NTPPacket を送信用の48バイトに変換"""
    return _WIRE.pack(
        packet.li_vn_mode,
        packet.stratum,
        packet.poll,
        packet.precision,
        packet.root_delay,
        packet.root_dispersion,
        packet.reference_id,
        packet.ref_time.seconds, packet.ref_time.fraction,
        packet.orig_time.seconds, packet.orig_time.fraction,
        packet.recv_time.seconds, packet.recv_time.fraction,
        packet.xmit_time.seconds, packet.xmit_time.fraction,
    )


def to_host(data: bytes) -> NTPPacket:
    """受信した48バイトを NTPPacket に変換。長さが違えば MalformedReply"""
    if len(data) != PACKET_SIZE:
        raise MalformedReply(f"NTP packet must be {PACKET_SIZE} bytes, got {len(data)}")

    (status, stratum, poll, precision, root_delay, root_dispersion, reference_id,
     ref_s, ref_f, orig_s, orig_f, recv_s, recv_f, xmit_s, xmit_f) = _WIRE.unpack(data)

    return NTPPacket(
        li_vn_mode=status,
        stratum=stratum,
        poll=poll,
        precision=precision,
        root_delay=root_delay,
        root_dispersion=root_dispersion,
        reference_id=reference_id,
        ref_time=NTPTimestamp(ref_s, ref_f),
        orig_time=NTPTimestamp(orig_s, orig_f),
        recv_time=NTPTimestamp(recv_s, recv_f),
        xmit_time=NTPTimestamp(xmit_s, xmit_f),
    )


def decode_reply(data: bytes, strict: bool = False) -> NTPPacket:
    """
    サーバー応答をデコードする。
    strict=True のときは version (1-4) と mode (server=4) も検証する。
    """
    packet = to_host(data)
    if strict:
        if not 1 <= packet.version <= NTP_VERSION:
            raise MalformedReply(f"Unsupported NTP version in reply: {packet.version}")
        if packet.mode != MODE_SERVER:
            raise MalformedReply(f"Unexpected mode in reply: {packet.mode}")
    logger.debug(
        "reply: li=%d vn=%d mode=%d stratum=%d",
        packet.leap, packet.version, packet.mode, packet.stratum,
    )
    return packet


def build_request(now: Optional[NTPTimestamp] = None) -> NTPPacket:
    """
    クライアント要求パケットを生成。
    LI=3 (未同期), VN=4, Mode=3 (client) → 0xE3、transmit timestamp 以外は 0。
    """
    if now is None:
        now = NTPTimestamp.now()
    return NTPPacket(
        li_vn_mode=pack_status(LEAP_UNSYNCHRONIZED, NTP_VERSION, MODE_CLIENT),
        poll=DEFAULT_POLL,
        precision=DEFAULT_PRECISION,
        xmit_time=now,
    )
