# test_reference_id.py
import pytest

from reference_id import decode_reference_id


@pytest.mark.parametrize("stratum,ref_id,expected", [
    (1, 0, "NONE"),
    (3, 0, "NONE"),
    (1, 0x4E495354, "NIST"),
    (1, 0x47505300, "GPS"),      # 末尾の NUL は削る
    (0, 0x52415445, "RATE"),     # Kiss-o'-Death コード
    (2, 0xCF424F67, "207.66.79.103"),
    (15, 0xC0A80001, "192.168.0.1"),
])
def test_decode_reference_id(stratum, ref_id, expected):
    assert decode_reference_id(stratum, ref_id) == expected
