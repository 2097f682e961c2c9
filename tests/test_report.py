"""Tests for report.py — the annotated error workbook."""

import io
from datetime import date

import pytest

from foxsheet import SheetExporter, SheetImporter, build_sheet_schema
from foxsheet.config import ExcelSettings
from foxsheet.report import ErrorReportBuilder

from staff_rows import (
    PERSON_HEADERS,
    POSITION_HEADERS,
    JobState,
    PersonRow,
    PositionRow,
    make_registry,
    open_bytes,
    workbook_bytes,
)


def _error_workbook(content, *models):
    result = SheetImporter(content, make_registry()).import_data(models)
    assert result.error_report is not None
    return open_bytes(result.error_report)


def _rows(ws):
    return [list(row) for row in ws.iter_rows(values_only=True)]


def _to_bytes(wb) -> bytes:
    fp = io.BytesIO()
    wb.save(fp)
    return fp.getvalue()


class TestErrorWorkbook:
    def test_invalid_rows_are_dense(self):
        content = workbook_bytes(
            (
                "人员信息",
                [
                    PERSON_HEADERS,
                    ["a", 10, None],
                    ["b", 200, None],
                    ["c", 20, None],
                    ["d", 300, None],
                    ["e", 30, None],
                    ["f", "abc", None],
                ],
            )
        )
        ws = _error_workbook(content, PersonRow)["人员信息"]
        assert _rows(ws) == [
            PERSON_HEADERS,
            ["b", 200, None],
            ["d", 300, None],
            ["f", "abc", None],
        ]

    def test_failing_cells_annotated(self):
        content = workbook_bytes(("人员信息", [PERSON_HEADERS, ["Zhang", 188, "2020-01-01"]]))
        ws = _error_workbook(content, PersonRow)["人员信息"]
        assert "100" in ws["B2"].comment.text
        assert ws["B2"].fill.fgColor.rgb == "FFFF0000"
        assert ws["A2"].comment is None
        assert ws["C2"].value == "2020-01-01"

    def test_multiple_messages_joined(self):
        builder = ErrorReportBuilder(SheetExporter())
        schema = build_sheet_schema(PersonRow)
        builder.begin_sheet(schema)
        record = PersonRow.model_construct(name="张三", age=188)
        row = builder.add_row(schema, record, {"age": ["too old", "check id"]}, 1)
        assert row == 2
        assert builder.document.sheet["B2"].comment.text == "too old\ncheck id"

    def test_unmapped_field_folded_into_first_column(self):
        builder = ErrorReportBuilder(SheetExporter())
        schema = build_sheet_schema(PersonRow)
        builder.begin_sheet(schema)
        record = PersonRow.model_construct(name="张三", age=20)
        builder.add_row(schema, record, {"name": ["name taken"], "source": ["unknown source"]}, 1)
        cell = builder.document.sheet["A2"]
        assert cell.comment.text == "name taken\nsource: unknown source"
        assert cell.style == "check_failed"

    def test_comment_author_from_settings(self):
        builder = ErrorReportBuilder(SheetExporter(ExcelSettings(comment_author="系统提示")))
        schema = build_sheet_schema(PersonRow)
        builder.begin_sheet(schema)
        builder.add_row(schema, PersonRow.model_construct(name="x", age=101), {"age": ["max 100"]}, 1)
        assert builder.document.sheet["B2"].comment.author == "系统提示"

    def test_row_for_follows_data_row_start(self):
        builder = ErrorReportBuilder(SheetExporter(ExcelSettings(header_row=2)))
        assert builder.row_for(1) == 3
        assert builder.row_for(4) == 6

    def test_every_sheet_gets_header(self):
        content = workbook_bytes(
            ("人员信息", [PERSON_HEADERS, ["张三", 120, None]]),
            ("职位信息", [POSITION_HEADERS, ["001", "工程师", "成功"]]),
        )
        wb = _error_workbook(content, PersonRow, PositionRow)
        assert wb.sheetnames == ["人员信息", "职位信息"]
        assert _rows(wb["职位信息"]) == [POSITION_HEADERS]

    def test_dropdown_on_error_rows(self):
        content = workbook_bytes(
            ("Sheet", [["x"]]),
            ("职位信息", [POSITION_HEADERS, ["001", "工程师", "暂停"], ["001", "经理", "成功"]]),
        )
        wb = _error_workbook(content, PositionRow)
        ws = wb["职位信息"]
        assert ws["C2"].value == "暂停"
        assert ws["C3"].value == "成功"
        ranges = sorted(str(dv.sqref) for dv in ws.data_validations.dataValidation)
        assert ranges == ["C2", "C3"]

    def test_undecodable_enum_code_written_as_read(self):
        content = workbook_bytes(
            ("Sheet", [["x"]]),
            ("职位信息", [POSITION_HEADERS, ["001", "dev", "1"]]),
        )
        ws = _error_workbook(content, PositionRow)["职位信息"]
        assert ws["C2"].value == "1"
        assert "not a valid choice" in ws["C2"].comment.text

    def test_undecodable_cell_reimports_as_invalid(self):
        content = workbook_bytes(
            ("Sheet", [["x"]]),
            ("职位信息", [POSITION_HEADERS, ["001", "dev", "1"]]),
        )
        first = SheetImporter(content, make_registry()).import_data([PositionRow])
        second = SheetImporter(first.error_report, make_registry()).import_data([PositionRow])
        assert second.sheet(PositionRow).valid == ()
        assert "state" in second.sheet(PositionRow).failures[0]

    def test_rows_written_counter(self):
        content = workbook_bytes(("人员信息", [PERSON_HEADERS, ["a", 101, None], ["b", 102, None]]))
        importer = SheetImporter(content, make_registry())
        importer.import_data([PersonRow])
        assert importer.error_report.rows_written == 2


class TestReimport:
    def test_corrected_error_workbook_imports_cleanly(self):
        content = workbook_bytes(
            ("人员信息", [PERSON_HEADERS, ["a", 101, None], ["b", "abc", "2020-02-30"]])
        )
        first = SheetImporter(content, make_registry()).import_data([PersonRow])
        assert len(first.sheet(PersonRow).invalid) == 2

        wb = open_bytes(first.error_report)
        ws = wb["人员信息"]
        ws["B2"] = 40
        ws["B3"] = 50
        ws["C3"] = "2020-02-28"
        fixed = _to_bytes(wb)

        second = SheetImporter(fixed, make_registry()).import_data([PersonRow])
        assert second.succeeded
        assert [r.name for r in second.sheet(PersonRow).valid] == ["a", "b"]

    def test_header_only_template_round_trip(self):
        exporter = SheetExporter().export([(PersonRow, []), (PositionRow, [])])
        result = SheetImporter(exporter.to_bytes(), make_registry()).import_data(
            [PersonRow, PositionRow]
        )
        assert result.succeeded
        assert all(sheet.total_rows == 0 for sheet in result.sheets)


@pytest.mark.parametrize("header_row", [1, 3])
def test_export_then_import_round_trip(header_row):
    config = ExcelSettings(header_row=header_row)
    people = [PersonRow(name="张三", age=30, joined=date(2020, 5, 1))]
    positions = [PositionRow(staff_code="001", title="工程师", state=JobState.FAILED)]
    exporter = SheetExporter(config).export([(PersonRow, people), (PositionRow, positions)])

    result = SheetImporter(exporter.to_bytes(), make_registry(), config=config).import_data(
        [PersonRow, PositionRow]
    )
    assert result.succeeded
    (person,) = result.sheet(PersonRow).valid
    assert (person.name, person.age, person.joined) == ("张三", 30, date(2020, 5, 1))
    assert result.sheet(PositionRow).valid[0].state is JobState.FAILED
