"""RUT check digit validation and formatting."""

import pytest

from homecare.rut import clean_rut, compute_check_digit, format_rut, validate_rut


class TestValidateRut:
    @pytest.mark.parametrize(
        "rut",
        ["12.345.678-5", "12345678-5", "123456785", "11.111.111-1", "1.000.000-9", "10000004-0"],
    )
    def test_valid(self, rut):
        assert validate_rut(rut)

    def test_check_digit_k_is_case_insensitive(self):
        assert validate_rut("10.000.013-K")
        assert validate_rut("10000013-k")

    @pytest.mark.parametrize(
        "rut",
        ["12.345.678-4", "12345678-K", "11.111.111-2", "10000004-1"],
    )
    def test_wrong_check_digit(self, rut):
        assert not validate_rut(rut)

    @pytest.mark.parametrize("rut", [None, "", "1234-5", "1234567890-1", "ABCDEFGH-1", 12345678])
    def test_malformed(self, rut):
        assert not validate_rut(rut)


class TestCheckDigit:
    def test_weights_cycle_after_seven(self):
        # 8 digits exercise the 2..7 weights wrapping back to 2
        assert compute_check_digit("12345678") == "5"

    def test_eleven_maps_to_zero(self):
        assert compute_check_digit("10000004") == "0"

    def test_ten_maps_to_k(self):
        assert compute_check_digit("10000013") == "K"


class TestFormatRut:
    def test_clean(self):
        assert clean_rut(" 12.345.678-k ") == "12345678K"

    def test_formats_with_dots_and_dash(self):
        assert format_rut("123456785") == "12.345.678-5"
        assert format_rut("1000000-9") == "1.000.000-9"

    def test_uppercases_k(self):
        assert format_rut("10000013k") == "10.000.013-K"

    @pytest.mark.parametrize("rut", ["123456785", "12.345.678-5", "1000000-9", "10000013-k"])
    def test_idempotent(self, rut):
        assert format_rut(format_rut(rut)) == format_rut(rut)
