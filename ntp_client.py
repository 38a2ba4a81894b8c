"""
NTP クライアントモジュール（48バイト NTPv4 要求 + RFC5905 offset/delay算出版）

query()    -> NTPExchange（要求・応答パケットと計算結果）

再送はしない（失敗時は例外を送出し、呼び出し側で判断する）。
"""
from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Tuple

from ntp_errors import MalformedReply, NoReply, ResolveError
from ntp_packet import NTP_PORT, PACKET_SIZE, NTPPacket, build_request, decode_reply, to_wire
from ntp_timestamp import NTPTimestamp
from offset_calc import NTPResult, compute_from_reply

logger = logging.getLogger(__name__)

DEFAULT_SERVER = 'pool.ntp.org'
DEFAULT_TIMEOUT = 5.0
RECV_BUFSIZE = 512


@dataclass(frozen=True)
class NTPExchange:
    server: str
    address: str
    request: NTPPacket
    reply: NTPPacket
    result: NTPResult


class NTPClient:
    def __init__(self, server=DEFAULT_SERVER, port=NTP_PORT, timeout=DEFAULT_TIMEOUT, strict=False):
        self.server = server
        self.port = port
        self.timeout = timeout
        self.strict = strict

    def resolve(self):
        """サーバー名を解決し (family, sockaddr) を返す"""
        try:
            infos = socket.getaddrinfo(self.server, self.port, 0, socket.SOCK_DGRAM)
        except socket.gaierror as e:
            raise ResolveError(f"DNS resolution failed for NTP server {self.server}") from e
        if not infos:
            raise ResolveError(f"DNS resolution failed for NTP server {self.server}")

        family, socktype, proto, canonname, sockaddr = infos[0]
        return family, sockaddr

    def _exchange(self, family, sockaddr, payload) -> Tuple[bytes, NTPTimestamp]:
        """1パケット送信 → 1パケット受信。受信直後に T4 を取得して返す"""
        try:
            with socket.socket(family, socket.SOCK_DGRAM) as s:
                s.settimeout(self.timeout)
                s.sendto(payload, sockaddr)
                data, _ = s.recvfrom(RECV_BUFSIZE)
                # T4 はデコード等の処理より前に取得する（遅延の過大評価を防ぐ）
                t4 = NTPTimestamp.now()
        except socket.timeout as e:
            raise NoReply(f"NTP request to {self.server} timed out after {self.timeout}s") from e
        except OSError as e:
            raise NoReply(f"NTP exchange with {self.server} failed: {e}") from e

        if len(data) < PACKET_SIZE:
            raise NoReply(f"Invalid NTP response (too short: {len(data)} bytes)")
        if len(data) > PACKET_SIZE:
            # 拡張フィールド / MAC は扱わない
            logger.debug("ignoring %d trailing bytes in reply", len(data) - PACKET_SIZE)
        return data[:PACKET_SIZE], t4

    def query(self) -> NTPExchange:
        """
        NTPサーバーへ1回問い合わせる。
        失敗時は NTPError のサブクラスを送出（呼び出し側でキャッチすること）。
        """
        family, sockaddr = self.resolve()
        address = sockaddr[0]
        logger.info("querying %s (%s) port %s", self.server, address, self.port)

        request = build_request()
        data, t4 = self._exchange(family, sockaddr, to_wire(request))

        reply = decode_reply(data, strict=self.strict)
        if self.strict and reply.orig_time != request.xmit_time:
            raise MalformedReply("Origin timestamp in reply does not match our transmit timestamp")

        result = compute_from_reply(reply, t4)
        logger.info(
            "%s: offset=%+.6fs delay=%.6fs dispersion=%.6fs",
            self.server, result.offset, result.delay, result.final_dispersion,
        )
        return NTPExchange(self.server, address, request, reply, result)
