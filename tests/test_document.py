"""Tests for document.py — the openpyxl sheet document."""

import io
import logging

import pytest
from openpyxl import load_workbook

from foxsheet.document import (
    CHECK_FAILED_STYLE,
    DEFAULT_COLUMN_WIDTH,
    SheetDocument,
    open_source,
    read_source_bytes,
)


@pytest.fixture
def document():
    return SheetDocument(comment_author="tester")


class TestSelectSheet:
    def test_renames_first_sheet(self, document):
        document.select_sheet(0, "人员信息")
        assert document.workbook.sheetnames == ["人员信息"]
        assert document.sheet.title == "人员信息"

    def test_creates_missing_sheets(self, document):
        document.select_sheet(2, "职位信息")
        assert document.workbook.sheetnames == ["Sheet", "sheet1", "职位信息"]

    def test_reselect_existing(self, document):
        document.select_sheet(1, "B")
        document.select_sheet(0, "A")
        document.select_sheet(1, "B")
        assert document.workbook.sheetnames == ["A", "B"]
        assert document.sheet.title == "B"


class TestCells:
    def test_zero_based_columns(self, document):
        document.write_cell(0, 1, "姓名")
        assert document.sheet["A1"].value == "姓名"
        assert document.read_cell(0, 1) == "姓名"

    def test_comment_author(self, document):
        document.set_comment(1, 2, "必填")
        comment = document.sheet["B2"].comment
        assert comment.text == "必填"
        assert comment.author == "tester"

    def test_comment_is_replaced(self, document):
        document.set_comment(0, 1, "first")
        document.set_comment(0, 1, "second")
        assert document.sheet["A1"].comment.text == "second"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_blank_comment_skipped(self, document, text):
        document.set_comment(0, 1, text)
        assert document.sheet["A1"].comment is None

    def test_mark_failed(self, document):
        document.mark_failed(0, 2)
        document.mark_failed(1, 2)
        cell = document.sheet["A2"]
        assert cell.style == CHECK_FAILED_STYLE
        assert cell.fill.fgColor.rgb == "FFFF0000"
        assert cell.font.name == "Consolas"
        assert cell.border.left.style == "thin"
        assert cell.alignment.horizontal == "center"
        assert document.workbook.named_styles.count(CHECK_FAILED_STYLE) == 1


class TestDropdown:
    def test_list_validation(self, document):
        validation = document.add_dropdown(2, 2, 5, ["运行中", "成功"])
        assert validation.formula1 == '"运行中,成功"'
        assert str(validation.sqref) == "C2:C5"
        assert validation in document.sheet.data_validations.dataValidation

    def test_comma_in_option_skipped(self, document, caplog):
        with caplog.at_level(logging.WARNING, logger="foxsheet.document"):
            assert document.add_dropdown(0, 2, 5, ["a,b", "c"]) is None
        assert "comma" in caplog.text
        assert document.sheet.data_validations.dataValidation == []

    def test_list_over_inline_limit_skipped(self, document, caplog):
        options = [f"option-{n:03d}" for n in range(30)]  # 30 * 10 chars + commas
        with caplog.at_level(logging.WARNING, logger="foxsheet.document"):
            assert document.add_dropdown(0, 2, 5, options) is None
        assert "inline formula limit" in caplog.text

    def test_list_at_inline_limit_kept(self, document):
        options = ["x" * 127, "y" * 127]  # 255 chars with the comma
        assert document.add_dropdown(0, 2, 5, options) is not None

    def test_no_options(self, document):
        assert document.add_dropdown(0, 2, 5, []) is None
        assert document.sheet.data_validations.dataValidation == []


class TestAutoSize:
    def test_uses_utf8_byte_length(self, document):
        document.write_cell(0, 1, "一二三四五六")  # 18 bytes
        document.auto_size()
        assert document.column_width(0) == 18

    def test_never_shrinks(self, document):
        document.set_column_width(0, 40)
        document.write_cell(0, 1, "short")
        document.auto_size()
        assert document.column_width(0) == 40

    def test_narrow_text_keeps_default(self, document):
        document.write_cell(0, 1, "abc")
        document.auto_size()
        assert document.column_width(0) == DEFAULT_COLUMN_WIDTH

    def test_all_sheets(self, document):
        document.select_sheet(0, "A")
        document.write_cell(0, 1, "x" * 20)
        document.select_sheet(1, "B")
        document.write_cell(0, 1, "y" * 30)
        document.auto_size_all()
        assert document.column_width(0, document.workbook["A"]) == 20
        assert document.column_width(0, document.workbook["B"]) == 30


class TestSave:
    def test_save_to_path_creates_parents(self, document, tmp_path):
        document.write_cell(0, 1, "姓名")
        target = tmp_path / "out" / "book.xlsx"
        document.save(target)
        assert load_workbook(target).active["A1"].value == "姓名"

    def test_save_to_stream(self, document):
        document.write_cell(0, 1, "姓名")
        fp = io.BytesIO()
        document.save(fp)
        assert load_workbook(io.BytesIO(fp.getvalue())).active["A1"].value == "姓名"

    def test_to_bytes_round_trip(self, document):
        document.write_cell(1, 3, 7)
        wb = open_source(document.to_bytes())
        assert next(wb.active.iter_rows(min_row=3, max_row=3, values_only=True))[1] == 7


class TestReadSourceBytes:
    def test_bytes(self):
        assert read_source_bytes(b"abc") == b"abc"

    def test_path(self, tmp_path):
        path = tmp_path / "book.xlsx"
        path.write_bytes(b"data")
        assert read_source_bytes(path) == b"data"
        assert read_source_bytes(str(path)) == b"data"

    def test_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_source_bytes(tmp_path / "missing.xlsx")

    def test_binary_stream(self):
        assert read_source_bytes(io.BytesIO(b"data")) == b"data"

    def test_text_stream_rejected(self):
        with pytest.raises(ValueError, match="binary input"):
            read_source_bytes(io.StringIO("data"))
