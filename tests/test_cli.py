"""Tests for cli.py — template and check commands."""

import pytest
from click.testing import CliRunner

from foxsheet.cli import EXIT_FATAL, EXIT_INVALID_ROWS, EXIT_OK, foxsheet_group, resolve_object

from staff_rows import PERSON_HEADERS, PersonRow, open_bytes, workbook_bytes


@pytest.fixture
def runner():
    return CliRunner()


class TestResolveObject:
    def test_resolves_attribute(self):
        assert resolve_object("staff_rows:PersonRow") is PersonRow

    @pytest.mark.parametrize("path", ["staff_rows", "staff_rows:", ":PersonRow"])
    def test_malformed_path(self, path):
        with pytest.raises(ValueError, match="package.module:attribute"):
            resolve_object(path)

    def test_missing_attribute(self):
        with pytest.raises(ValueError, match="no attribute 'Nope'"):
            resolve_object("staff_rows:Nope")


class TestTemplate:
    def test_writes_header_only_workbook(self, runner, tmp_path):
        output = tmp_path / "template.xlsx"
        result = runner.invoke(
            foxsheet_group,
            ["template", str(output), "staff_rows:PersonRow", "staff_rows:PositionRow"],
        )
        assert result.exit_code == 0, result.output
        wb = open_bytes(output.read_bytes())
        assert wb.sheetnames == ["人员信息", "职位信息"]
        assert [c.value for c in wb["人员信息"][1]] == PERSON_HEADERS
        assert wb["人员信息"].max_row == 1

    def test_unknown_model(self, runner, tmp_path):
        result = runner.invoke(
            foxsheet_group, ["template", str(tmp_path / "t.xlsx"), "no_such_module:Row"]
        )
        assert result.exit_code == EXIT_FATAL


class TestCheck:
    def _source(self, tmp_path, *rows):
        source = tmp_path / "staff.xlsx"
        source.write_bytes(workbook_bytes(("人员信息", [PERSON_HEADERS, *rows])))
        return source

    def test_clean_import(self, runner, tmp_path):
        source = self._source(tmp_path, ["张三", 20, None])
        result = runner.invoke(
            foxsheet_group,
            ["check", str(source), "staff_rows:PersonRow", "--registry", "staff_rows:registry"],
        )
        assert result.exit_code == EXIT_OK, result.output
        assert "人员信息: 1 valid, 0 invalid" in result.output
        assert "Import accepted" in result.output

    def test_invalid_rows(self, runner, tmp_path):
        source = self._source(tmp_path, ["张三", 20, None], ["李四", 130, None])
        error_output = tmp_path / "errors" / "out.xlsx"
        result = runner.invoke(
            foxsheet_group,
            [
                "check",
                str(source),
                "staff_rows:PersonRow",
                "--registry",
                "staff_rows:registry",
                "--error-output",
                str(error_output),
            ],
        )
        assert result.exit_code == EXIT_INVALID_ROWS
        assert "1 valid, 1 invalid" in result.output
        assert "invalid rows found" in result.output
        assert open_bytes(error_output.read_bytes())["人员信息"]["A2"].value == "李四"

    def test_default_error_output_next_to_source(self, runner, tmp_path):
        source = self._source(tmp_path, ["李四", 130, None])
        result = runner.invoke(
            foxsheet_group,
            ["check", str(source), "staff_rows:PersonRow", "--registry", "staff_rows:registry"],
        )
        assert result.exit_code == EXIT_INVALID_ROWS
        assert (tmp_path / "error-staff.xlsx").exists()

    def test_header_mismatch_is_fatal(self, runner, tmp_path):
        source = tmp_path / "staff.xlsx"
        source.write_bytes(workbook_bytes(("人员信息", [["姓名", "工号", "入职日期"]])))
        result = runner.invoke(
            foxsheet_group,
            ["check", str(source), "staff_rows:PersonRow", "--registry", "staff_rows:registry"],
        )
        assert result.exit_code == EXIT_FATAL
        assert "should be '年龄'" in result.output

    def test_registry_must_be_registry(self, runner, tmp_path):
        source = self._source(tmp_path)
        result = runner.invoke(
            foxsheet_group,
            ["check", str(source), "staff_rows:PersonRow", "--registry", "staff_rows:PersonRow"],
        )
        assert result.exit_code == EXIT_FATAL
        assert "is not a HandlerRegistry" in result.output

    def test_missing_source(self, runner, tmp_path):
        result = runner.invoke(
            foxsheet_group,
            [
                "check",
                str(tmp_path / "missing.xlsx"),
                "staff_rows:PersonRow",
                "--registry",
                "staff_rows:registry",
            ],
        )
        assert result.exit_code != 0
