"""
設定管理モジュール
JSON形式で設定を保存/読み込み
"""
import json
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = 'chrono_ntp_config.json'


class Config:
    def __init__(self, config_file=DEFAULT_CONFIG_FILE):
        self.config_file = config_file
        self.settings = self._load_default_settings()
        self.load()

    def _load_default_settings(self):
        """デフォルト設定"""
        return {
            # NTP設定
            'ntp': {
                'server': 'pool.ntp.org',
                'port': 123,
                'timeout': 5.0,
                'strict': False,  # 応答の version/mode/origin を検証する
            },

            # 表示設定
            'display': {
                'local_time': True,  # False なら UTC で表示
            },

            # デバッグモード
            'debug': False,

            # ログ設定
            'logging': {
                'level': 'WARNING',
                'save_to_file': False,
                'log_file': 'chrono_ntp.log',
            },
        }

    def load(self):
        """設定をファイルから読み込み"""
        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                    # デフォルト設定にマージ（未知のキーは無視）
                    self._merge_settings(self.settings, loaded)
                    return True
        except (OSError, ValueError) as e:
            logger.warning("config load failed (%s): %s", self.config_file, e)
        return False

    def _merge_settings(self, default, loaded):
        """デフォルト設定に読み込んだ設定をマージ（型が既定値と違う値は無視）"""
        for key, value in loaded.items():
            if key not in default:
                continue
            current = default[key]
            if isinstance(current, dict):
                if isinstance(value, dict):
                    self._merge_settings(current, value)
                else:
                    logger.warning("config: ignoring non-object value for %r", key)
            elif isinstance(current, float) and isinstance(value, int) and not isinstance(value, bool):
                default[key] = float(value)
            elif type(value) is type(current):
                default[key] = value
            else:
                logger.warning("config: ignoring %r=%r (expected %s)", key, value, type(current).__name__)

    def save(self):
        """設定をファイルに保存"""
        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self.settings, f, indent=4, ensure_ascii=False)
            return True
        except OSError as e:
            logger.error("config save failed (%s): %s", self.config_file, e)
            return False

    def get(self, *keys):
        """設定を取得（ネストされたキーに対応）"""
        value = self.settings
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return None
        return value

    def set(self, *keys, value):
        """設定を変更（ネストされたキーに対応）"""
        if len(keys) == 0:
            return False

        settings = self.settings
        for key in keys[:-1]:
            if key not in settings:
                settings[key] = {}
            settings = settings[key]

        settings[keys[-1]] = value
        return True

    def reset(self):
        """設定をデフォルトに戻す"""
        self.settings = self._load_default_settings()
        return self.save()
