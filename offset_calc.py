"""
クロックオフセット / 往復遅延の算出（RFC 5905）

  T1: クライアント送信時刻（サーバーが origin timestamp として返す）
  T2: サーバー受信時刻
  T3: サーバー送信時刻
  T4: クライアント受信時刻（応答到着直後に取得）

  delay  = (T4 - T1) - (T3 - T2)
  offset = ((T2 - T1) + (T3 - T4)) / 2

offset > 0 : ローカル時計がサーバーより遅れている
offset < 0 : ローカル時計がサーバーより進んでいる
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ntp_errors import InvalidInput
from ntp_packet import NTPPacket
from ntp_timestamp import NTPTimestamp, decode_q16_16


@dataclass(frozen=True)
class NTPResult:
    offset: float            # 秒
    delay: float             # 秒
    final_dispersion: float  # 秒
    server_time: NTPTimestamp  # T3
    client_time: NTPTimestamp  # T4

    @property
    def offset_ms(self) -> float:
        return self.offset * 1000.0

    @property
    def delay_ms(self) -> float:
        return self.delay * 1000.0

    @property
    def dispersion_ms(self) -> float:
        return self.final_dispersion * 1000.0


def compute(
    t1: Optional[NTPTimestamp],
    t2: Optional[NTPTimestamp],
    t3: Optional[NTPTimestamp],
    t4: Optional[NTPTimestamp],
    *,
    root_delay: int,
    root_dispersion: int,
) -> NTPResult:
    """
    4つのタイムスタンプから offset / delay / final_dispersion を求める。
    root_delay / root_dispersion はサーバー応答の 16.16 固定小数点の生値。
    負の delay（交換中に時計が戻った等）はエラーにせずそのまま返す。
    """
    for name, ts in (("T1", t1), ("T2", t2), ("T3", t3), ("T4", t4)):
        if not isinstance(ts, NTPTimestamp):
            raise InvalidInput(f"{name} timestamp is missing")

    f1, f2, f3, f4 = (ts.to_float_seconds() for ts in (t1, t2, t3, t4))

    delay = (f4 - f1) - (f3 - f2)
    offset = ((f2 - f1) + (f3 - f4)) / 2.0
    final_dispersion = (
        decode_q16_16(root_dispersion) + decode_q16_16(root_delay) / 2.0 + delay / 2.0
    )

    return NTPResult(
        offset=offset,
        delay=delay,
        final_dispersion=final_dispersion,
        server_time=t3,
        client_time=t4,
    )


def compute_from_reply(reply: Optional[NTPPacket], recv_time: Optional[NTPTimestamp]) -> NTPResult:
    """デコード済みの応答パケットと受信時刻 (T4) から計算"""
    if reply is None:
        raise InvalidInput("reply packet was not decoded")
    return compute(
        reply.orig_time,
        reply.recv_time,
        reply.xmit_time,
        recv_time,
        root_delay=reply.root_delay,
        root_dispersion=reply.root_dispersion,
    )
