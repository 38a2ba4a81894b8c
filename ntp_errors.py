"""
NTP クライアントの例外定義

いずれも回復可能なエラー。報告して続行するか中断するかは呼び出し側（main / 表示層）が決める。
"""


class NTPError(Exception):
    """ChronoNTP の全例外の基底クラス"""


class MalformedReply(NTPError):
    """応答パケットの長さ不正、またはデコード後のフィールドが不正"""


class InvalidInput(NTPError):
    """offset 計算に必要なタイムスタンプが欠けている"""


class InvalidTime(NTPError):
    """タイムスタンプが暦（カレンダー）で表現できる範囲外"""


class NoReply(NTPError):
    """タイムアウト / ソケットエラー / 短すぎる応答（トランスポート層の失敗）"""


class ResolveError(NTPError):
    """ホスト名の名前解決に失敗"""
