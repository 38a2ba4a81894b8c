"""
Reference ID のデコード

stratum によって 32bit の意味が変わる:
- stratum 0/1 : 参照クロックの識別子（ASCII 4文字、例 "GPS", "NIST"）
- stratum 2以上: 上位サーバーの IPv4 アドレス
"""
import ipaddress


def decode_reference_id(stratum: int, ref_id: int) -> str:
    if ref_id == 0:
        return "NONE"
    if stratum >= 2:
        return str(ipaddress.IPv4Address(ref_id))
    # 上位バイトから順に ASCII として読み、末尾の NUL を削る
    raw = ref_id.to_bytes(4, "big").rstrip(b"\x00")
    return raw.decode("ascii", errors="replace")
