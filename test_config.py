# test_config.py
import json

from config import Config


def test_defaults_when_file_missing(tmp_path):
    c = Config(str(tmp_path / "missing.json"))
    assert c.get('ntp', 'server') == 'pool.ntp.org'
    assert c.get('ntp', 'port') == 123
    assert c.get('ntp', 'timeout') == 5.0
    assert c.get('display', 'local_time') is True
    assert c.get('no', 'such', 'key') is None


def test_load_merges_over_defaults_and_ignores_unknown_keys(tmp_path):
    path = tmp_path / "c.json"
    path.write_text(json.dumps({
        'ntp': {'server': 'time.nist.gov'},
        'gps': {'com_port': 'COM3'},
    }), encoding='utf-8')

    c = Config(str(path))
    assert c.get('ntp', 'server') == 'time.nist.gov'
    assert c.get('ntp', 'port') == 123       # 既定値は残る
    assert c.get('gps') is None


def test_broken_json_falls_back_to_defaults(tmp_path):
    path = tmp_path / "c.json"
    path.write_text("{not json", encoding='utf-8')
    c = Config(str(path))
    assert c.load() is False
    assert c.get('ntp', 'server') == 'pool.ntp.org'


def test_set_save_and_reload(tmp_path):
    path = str(tmp_path / "c.json")
    c = Config(path)
    assert c.set('ntp', 'server', value='time.google.com')
    assert c.set() is False
    assert c.save()

    c2 = Config(path)
    assert c2.get('ntp', 'server') == 'time.google.com'


def test_wrongly_typed_values_keep_defaults(tmp_path):
    path = tmp_path / "c.json"
    path.write_text(json.dumps({
        'ntp': {'timeout': None, 'port': True, 'strict': "yes"},
        'display': "utc",
    }), encoding='utf-8')

    c = Config(str(path))
    assert c.get('ntp', 'timeout') == 5.0
    assert c.get('ntp', 'port') == 123
    assert c.get('ntp', 'strict') is False
    assert c.get('display', 'local_time') is True


def test_integer_timeout_is_accepted_as_float(tmp_path):
    path = tmp_path / "c.json"
    path.write_text(json.dumps({'ntp': {'timeout': 2}}), encoding='utf-8')
    timeout = Config(str(path)).get('ntp', 'timeout')
    assert timeout == 2.0
    assert isinstance(timeout, float)


def test_reset_restores_defaults(tmp_path):
    path = str(tmp_path / "c.json")
    c = Config(path)
    c.set('debug', value=True)
    assert c.reset()
    assert c.get('debug') is False
    assert Config(path).get('debug') is False
