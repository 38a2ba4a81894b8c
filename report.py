"""
表示用フォーマット（CLI 出力）

各関数は行のリストを返すだけで、print はしない（出力先は main 側で決める）。
"""
from __future__ import annotations

import math
from typing import List

from ntp_errors import InvalidTime
from ntp_packet import NTPPacket, to_wire
from ntp_timestamp import EPOCH_OFFSET, NTPTimestamp, decode_q16_16
from offset_calc import NTPResult
from reference_id import decode_reference_id

INVALID_TIME = "INVALID"


def format_time(ts: NTPTimestamp, local: bool = True) -> str:
    """暦に変換できない場合は部分的な出力ではなく INVALID を返す"""
    try:
        text = ts.to_string(local)
    except InvalidTime:
        text = INVALID_TIME
    suffix = "local time" if local else "UTC"
    return f"{text} ({suffix})"


def format_packet_info(packet: NTPPacket, label: str, local: bool = True) -> List[str]:
    return [
        f"--- {label} Packet ---",
        f"Leap Indicator: {packet.leap}",
        f"Version: {packet.version}",
        f"Mode: {packet.mode}",
        f"Stratum: {packet.stratum}",
        f"Poll: {packet.poll}",
        f"Precision: {packet.precision}",
        f"Reference ID: {decode_reference_id(packet.stratum, packet.reference_id)}",
        f"Root Delay: {decode_q16_16(packet.root_delay):f}",
        f"Root Dispersion: {decode_q16_16(packet.root_dispersion):f}",
        f"Reference Time: {format_time(packet.ref_time, local)}",
        f"Origin Time: {format_time(packet.orig_time, local)}",
        f"Receive Time: {format_time(packet.recv_time, local)}",
        f"Transmit Time: {format_time(packet.xmit_time, local)}",
    ]


def format_results(server: str, result: NTPResult, local: bool = True) -> List[str]:
    lines = [
        "=== NTP Time Synchronization Results ===",
        f"Server: {server}",
        f"Server Time: {format_time(result.server_time, local)}",
        f"Local Time:  {format_time(result.client_time, local)}",
        f"Round Trip Delay: {result.delay:f} seconds",
        f"Time Offset: {result.offset:f} seconds",
        f"Final Dispersion: {result.final_dispersion:f} seconds",
        "",
    ]
    # offset > 0: ローカル時計が遅れている
    if math.isnan(result.offset):
        lines.append(f"Your clock offset could not be determined (offset={result.offset})")
    elif result.offset > 0:
        lines.append(f"Your clock is running BEHIND by {result.offset_ms:.2f}ms")
    elif result.offset < 0:
        lines.append(f"Your clock is running AHEAD by {-result.offset_ms:.2f}ms")
    else:
        lines.append("Your clock matches the server")
    lines.append(f"Your estimated time error will be +/- {abs(result.dispersion_ms):.2f}ms")
    return lines


def format_status_bits(packet: NTPPacket) -> List[str]:
    """status byte の内訳（デバッグ用）"""
    li, vn, mode = packet.leap, packet.version, packet.mode
    return [
        f"li_vn_mode byte = 0x{packet.li_vn_mode:02X}",
        f"  Leap Indicator = {li}",
        f"  Version = {vn}",
        f"  Mode = {mode}",
        f"  Binary breakdown: LI={li:02b} VN={vn:03b} Mode={mode:03b}",
    ]


def format_wire_bits(packet: NTPPacket) -> List[str]:
    """送信バイト列を4バイトずつ2進表示（デバッグ用）"""
    data = to_wire(packet)
    return [
        f"{offset:2d}: " + " ".join(f"{b:08b}" for b in data[offset:offset + 4])
        for offset in range(0, len(data), 4)
    ]


def format_epoch_demo(now: NTPTimestamp) -> List[str]:
    unix_seconds, _ = now.to_wall_clock()
    return [
        "=== EPOCH CONVERSION EXAMPLE ===",
        f"Current Unix time: {unix_seconds} seconds since 1970",
        f"Same time in NTP:  {now.seconds} seconds since 1900",
        f"Difference:        {EPOCH_OFFSET} seconds (70 years)",
        f"Human readable:    {format_time(now, local=False)}",
        f"NTP fraction:      {now.fraction} (= {now.microseconds} microseconds)",
    ]
