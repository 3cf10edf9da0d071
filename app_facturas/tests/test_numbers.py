import pytest

from app_facturas.numbers import round2, safe_int, safe_number


@pytest.mark.parametrize('value', [None, '', '   ', 'abc', 'abc12', True, False, float('nan'), float('inf')])
def test_safe_number_returns_zero_for_garbage(value):
    assert safe_number(value) == 0


def test_safe_number_parses_numbers_and_text():
    assert safe_number(7) == 7.0
    assert safe_number(12.5) == 12.5
    assert safe_number(' 12.3 ') == pytest.approx(12.3)
    assert safe_number('1e3') == 1000.0
    assert safe_number('-4') == -4.0


def test_safe_number_accepts_decimal_comma():
    # sheet cells typed with a latin locale
    assert safe_number('15,50') == pytest.approx(15.5)
    assert safe_number('0,5') == pytest.approx(0.5)


def test_safe_int_truncates():
    assert safe_int('3,9') == 3
    assert safe_int(None) == 0


def test_round2_rounds_half_up():
    assert round2(2.675) == 2.68
    assert round2(1.005) == 1.01
    assert round2(62) == 62.0
    assert round2('x') == 0.0


def test_round2_returns_huge_values_unchanged():
    assert round2(1e27) == 1e27
    assert round2(-1e30) == -1e30
