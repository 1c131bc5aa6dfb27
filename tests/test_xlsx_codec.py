"""Tests for the xlsx codec."""

import pytest

from staybook.infra.xlsx_codec import CodecError, XlsxCodec

COLUMNS = ("Date", "Status", "Price", "MaxBookings", "Notes")


@pytest.fixture
def codec():
    return XlsxCodec()


class TestXlsxCodec:
    def test_encode_decode(self, codec):
        rows = [
            {"Date": "1/10/2024", "Status": "Closed", "Price": None, "MaxBookings": 0, "Notes": "x"},
            {"Date": "1/11/2024", "Status": "Limited", "Price": 15000, "MaxBookings": 3, "Notes": None},
        ]
        data = codec.encode(rows, COLUMNS, "Availability")
        decoded = codec.decode(data)

        assert len(decoded) == 2
        assert decoded[0]["Date"] == "1/10/2024"
        assert decoded[0]["MaxBookings"] == 0
        assert decoded[0]["Price"] is None
        assert decoded[1]["Price"] == 15000

    def test_header_only(self, codec):
        assert codec.decode(codec.encode([], COLUMNS, "Availability")) == []

    def test_empty_bytes(self, codec):
        assert codec.decode(b"") == []

    def test_garbage_raises_codec_error(self, codec):
        with pytest.raises(CodecError):
            codec.decode(b"this is not a workbook")

    def test_missing_cells_left_out_of_row(self, codec):
        data = codec.encode([{"Date": "1/10/2024"}], COLUMNS, "Availability")
        (row,) = codec.decode(data)
        assert row["Date"] == "1/10/2024"
        assert row.get("Status") is None
