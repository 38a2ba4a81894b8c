"""
ChronoNTP: NTP 時刻オフセット測定ツール
メインエントリポイント

サーバーへ1回だけ問い合わせ、offset / delay / 推定誤差を表示する。
システム時刻は変更しない（報告のみ）。
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from config import DEFAULT_CONFIG_FILE, Config
from ntp_client import NTPClient
from ntp_errors import NTPError
from ntp_packet import build_request
from ntp_timestamp import NTPTimestamp
from report import (
    format_epoch_demo,
    format_packet_info,
    format_results,
    format_status_bits,
    format_wire_bits,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _setup_logging(level: str = "WARNING", log_file: Optional[str] = None) -> None:
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """
    引数解析
    - 未指定の値は None のままにして、設定ファイルの値を優先させる
    """
    p = argparse.ArgumentParser(prog="chrono-ntp", description="Query an NTP server and report clock offset.")
    p.add_argument("-s", "--server", default=None, help="NTP server to query (default: pool.ntp.org)")
    p.add_argument("-p", "--port", type=int, default=None, help="UDP port (default: 123)")
    p.add_argument("-t", "--timeout", type=float, default=None, help="receive timeout in seconds (default: 5)")
    p.add_argument("-d", "--debug", action="store_true", help="show epoch conversion and packet bit layout")
    p.add_argument("--utc", action="store_true", help="display times in UTC instead of local time")
    p.add_argument("--strict", action="store_true", help="reject replies with bad version/mode/origin")
    p.add_argument("-c", "--config", default=DEFAULT_CONFIG_FILE, help="JSON config file")
    p.add_argument("--save-config", action="store_true", help="write the effective settings to the config file")
    p.add_argument("--reset-config", action="store_true", help="restore the config file to defaults before applying flags")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return p.parse_args(argv)


def _apply_overrides(config: Config, ns: argparse.Namespace) -> None:
    """コマンドライン引数で設定を上書き"""
    if ns.server is not None:
        config.set('ntp', 'server', value=ns.server)
    if ns.port is not None:
        config.set('ntp', 'port', value=ns.port)
    if ns.timeout is not None:
        config.set('ntp', 'timeout', value=ns.timeout)
    if ns.strict:
        config.set('ntp', 'strict', value=True)
    if ns.utc:
        config.set('display', 'local_time', value=False)
    if ns.debug:
        config.set('debug', value=True)
    if ns.verbose:
        config.set('logging', 'level', value='DEBUG')


def _emit(lines) -> None:
    for line in lines:
        print(line)


def main(argv: Optional[list[str]] = None) -> int:
    ns = parse_args(argv)
    config = Config(ns.config)
    reset_ok = config.reset() if ns.reset_config else True
    _apply_overrides(config, ns)

    log_file = config.get('logging', 'log_file') if config.get('logging', 'save_to_file') else None
    _setup_logging(config.get('logging', 'level'), log_file)
    log = logging.getLogger("chrono_ntp.main")

    if not reset_ok:
        log.error("failed to reset config file %s", ns.config)
        return 1
    if ns.save_config and not config.save():
        return 1

    local = bool(config.get('display', 'local_time'))
    server = config.get('ntp', 'server')

    if config.get('debug'):
        now = NTPTimestamp.now()
        _emit(format_epoch_demo(now))
        print()
        request = build_request(now)
        _emit(format_status_bits(request))
        _emit(format_wire_bits(request))
        print()

    client = NTPClient(
        server=server,
        port=int(config.get('ntp', 'port')),
        timeout=float(config.get('ntp', 'timeout')),
        strict=bool(config.get('ntp', 'strict')),
    )

    print(f"Querying NTP server: {server}")
    try:
        exchange = client.query()
    except NTPError as e:
        log.error("failed to query %s: %s", server, e)
        return 1

    print(f"Server IP: {exchange.address}")
    print()
    _emit(format_packet_info(exchange.request, "Request", local))
    print()
    _emit(format_packet_info(exchange.reply, "Response", local))
    print()
    _emit(format_results(server, exchange.result, local))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
