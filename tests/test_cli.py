"""Tests for CLI module."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from schedule_engine.cli import app


runner = CliRunner()


@pytest.fixture
def minimal_input_data() -> dict:
    """One class, one subject, one teacher, one room and a two-day grid."""
    return {
        "academicYear": "2025",
        "teachers": [
            {"id": "t1", "name": "Ana Silva"},
        ],
        "classes": [
            {"id": "c1", "name": "6A", "shift": "morning", "studentsCount": 30, "academicYear": "2025"},
        ],
        "subjects": [
            {"id": "mat", "name": "Mathematics", "weeklyHours": 2},
        ],
        "classrooms": [
            {"id": "r1", "name": "Room 101", "capacity": 30, "type": "regular"},
        ],
        "timeSlots": [
            {"id": "mon1", "dayOfWeek": 1, "startMinutes": "07:30", "endMinutes": "08:20", "order": 0},
            {"id": "mon2", "dayOfWeek": 1, "startMinutes": "08:20", "endMinutes": "09:10", "order": 1},
            {"id": "tue1", "dayOfWeek": 2, "startMinutes": "07:30", "endMinutes": "08:20", "order": 0},
        ],
        "sessionRequirements": [
            {"id": "req1", "classId": "c1", "subjectId": "mat", "teacherId": "t1"},
        ],
    }


def write_json(path: Path, data: dict) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def input_file(minimal_input_data, tmp_path) -> Path:
    return write_json(tmp_path / "input.json", minimal_input_data)


@pytest.fixture
def output_file(input_file, tmp_path) -> Path:
    """A schedule generated from input_file."""
    path = tmp_path / "output.json"
    result = runner.invoke(app, ["generate", str(input_file), "-o", str(path), "--seed", "1"])
    assert result.exit_code == 0, result.output
    return path


@pytest.fixture
def conflicted_output_file(minimal_input_data, tmp_path) -> Path:
    """A schedule where every session stayed unassigned."""
    minimal_input_data["classes"][0]["studentsCount"] = 35
    source = write_json(tmp_path / "big_class.json", minimal_input_data)
    path = tmp_path / "conflicted.json"
    runner.invoke(app, ["generate", str(source), "-o", str(path), "--seed", "1"])
    return path


class TestHelp:
    """Tests for CLI help."""

    def test_main_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("generate", "validate", "view", "conflicts", "audit", "sample"):
            assert command in result.output

    def test_generate_help(self):
        result = runner.invoke(app, ["generate", "--help"])
        assert result.exit_code == 0
        assert "--seed" in result.output


class TestGenerate:
    """Tests for the generate command."""

    def test_writes_output(self, input_file, tmp_path):
        path = tmp_path / "out" / "schedule.json"
        result = runner.invoke(app, ["generate", str(input_file), "-o", str(path), "--seed", "3"])

        assert result.exit_code == 0, result.output
        assert "Schedule saved to:" in result.output
        assert "COMPLETED" in result.output

        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["status"] == "completed"
        assert document["seed"] == 3
        assert len(document["sessions"]) == 2
        assert document["statistics"]["satisfactionRate"] == 100

    def test_without_output_file(self, input_file):
        result = runner.invoke(app, ["generate", str(input_file)])
        assert result.exit_code == 0
        assert "Schedule saved to:" not in result.output

    def test_with_settings(self, minimal_input_data, tmp_path):
        minimal_input_data["classes"][0]["studentsCount"] = 35
        source = write_json(tmp_path / "input.json", minimal_input_data)
        settings = write_json(tmp_path / "settings.json", {"enforceRoomCapacity": False})
        path = tmp_path / "output.json"

        result = runner.invoke(app, ["generate", str(source), "-s", str(settings), "-o", str(path)])

        assert result.exit_code == 0, result.output
        assert len(json.loads(path.read_text(encoding="utf-8"))["sessions"]) == 2

    def test_invalid_settings(self, input_file, tmp_path):
        settings = write_json(tmp_path / "settings.json", {"unknownFlag": True})
        result = runner.invoke(app, ["generate", str(input_file), "-s", str(settings)])
        assert result.exit_code == 1
        assert "Invalid settings" in result.output

    def test_strict_exit_code(self, minimal_input_data, tmp_path):
        minimal_input_data["classes"][0]["studentsCount"] = 35
        source = write_json(tmp_path / "input.json", minimal_input_data)

        relaxed = runner.invoke(app, ["generate", str(source)])
        strict = runner.invoke(app, ["generate", str(source), "--strict"])

        assert relaxed.exit_code == 0
        assert strict.exit_code == 2

    def test_failed_run(self, minimal_input_data, tmp_path):
        minimal_input_data["classrooms"] = []
        source = write_json(tmp_path / "input.json", minimal_input_data)

        result = runner.invoke(app, ["generate", str(source)])

        assert result.exit_code == 1
        assert "Generation failed" in result.output
        assert "No classrooms found" in result.output

    def test_invalid_input(self, tmp_path):
        source = write_json(tmp_path / "input.json", {"teachers": [{"id": "t1"}]})
        result = runner.invoke(app, ["generate", str(source)])
        assert result.exit_code == 1
        assert "Error loading input" in result.output

    def test_missing_input(self, tmp_path):
        result = runner.invoke(app, ["generate", str(tmp_path / "nope.json")])
        assert result.exit_code != 0


class TestValidate:
    """Tests for the validate command."""

    def test_valid_input(self, input_file):
        result = runner.invoke(app, ["validate", str(input_file)])

        assert result.exit_code == 0
        assert "JSON syntax is valid" in result.output
        assert "Schema validation passed" in result.output
        assert "No consistency issues" in result.output
        assert "Validation complete." in result.output

    def test_verbose(self, input_file):
        result = runner.invoke(app, ["validate", str(input_file), "-v"])
        assert result.exit_code == 0
        assert "Monday: 2 schedulable slots" in result.output

    def test_warnings(self, minimal_input_data, tmp_path):
        minimal_input_data["sessionRequirements"][0]["teacherId"] = "t9"
        source = write_json(tmp_path / "input.json", minimal_input_data)

        result = runner.invoke(app, ["validate", str(source)])

        assert result.exit_code == 0
        assert "Warnings found" in result.output
        assert "t9" in result.output

    def test_invalid_json(self, tmp_path):
        source = tmp_path / "broken.json"
        source.write_text("{ invalid json }", encoding="utf-8")

        result = runner.invoke(app, ["validate", str(source)])

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_schema_error(self, minimal_input_data, tmp_path):
        minimal_input_data["timeSlots"][0]["dayOfWeek"] = 9
        source = write_json(tmp_path / "input.json", minimal_input_data)

        result = runner.invoke(app, ["validate", str(source)])

        assert result.exit_code == 1
        assert "Schema validation failed" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
        assert "File not found" in result.output


class TestView:
    """Tests for the view command."""

    def test_overview(self, output_file):
        result = runner.invoke(app, ["view", str(output_file)])
        assert result.exit_code == 0
        assert "Weekly Overview" in result.output

    def test_teacher_view(self, output_file):
        result = runner.invoke(app, ["view", str(output_file), "--teacher", "t1"])
        assert result.exit_code == 0
        assert "Ana Silva" in result.output
        assert "Mathematics" in result.output

    def test_class_view(self, output_file):
        result = runner.invoke(app, ["view", str(output_file), "--class", "c1"])
        assert result.exit_code == 0
        assert "Class Schedule" in result.output

    def test_room_view(self, output_file):
        result = runner.invoke(app, ["view", str(output_file), "--room", "r1"])
        assert result.exit_code == 0
        assert "Room Schedule" in result.output

    def test_day_view(self, output_file):
        result = runner.invoke(app, ["view", str(output_file), "--day", "monday"])
        assert result.exit_code == 0
        assert "Daily Schedule" in result.output

    def test_unknown_teacher(self, output_file):
        result = runner.invoke(app, ["view", str(output_file), "--teacher", "t9"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_invalid_day(self, output_file):
        result = runner.invoke(app, ["view", str(output_file), "--day", "someday"])
        assert result.exit_code == 1
        assert "Invalid day" in result.output


class TestConflicts:
    """Tests for the conflicts command."""

    def test_no_conflicts(self, output_file):
        result = runner.invoke(app, ["conflicts", str(output_file)])
        assert result.exit_code == 0
        assert "No conflicts." in result.output

    def test_lists_conflicts(self, conflicted_output_file):
        result = runner.invoke(app, ["conflicts", str(conflicted_output_file)])
        assert result.exit_code == 0
        assert "unassigned_class" in result.output
        assert "2 conflict(s)" in result.output

    def test_severity_filter(self, conflicted_output_file):
        result = runner.invoke(app, ["conflicts", str(conflicted_output_file), "--severity", "critical"])
        assert result.exit_code == 0
        assert "No conflicts." in result.output

    def test_invalid_severity(self, conflicted_output_file):
        result = runner.invoke(app, ["conflicts", str(conflicted_output_file), "--severity", "urgent"])
        assert result.exit_code == 1
        assert "Invalid severity" in result.output


class TestAudit:
    """Tests for the audit command."""

    def test_clean_schedule(self, input_file, output_file):
        result = runner.invoke(app, ["audit", str(input_file), str(output_file)])
        assert result.exit_code == 0
        assert "No violations in 2 sessions." in result.output

    def test_edited_schedule(self, input_file, output_file):
        document = json.loads(output_file.read_text(encoding="utf-8"))
        document["sessions"][1]["timeSlotId"] = document["sessions"][0]["timeSlotId"]
        document["sessions"][1]["dayOfWeek"] = document["sessions"][0]["dayOfWeek"]
        output_file.write_text(json.dumps(document), encoding="utf-8")

        result = runner.invoke(app, ["audit", str(input_file), str(output_file)])

        assert result.exit_code == 1
        assert "Violations" in result.output
        assert "violation(s) found" in result.output


class TestSample:
    """Tests for the sample command."""

    def test_writes_school(self, tmp_path):
        path = tmp_path / "school.json"
        result = runner.invoke(app, ["sample", str(path), "--size", "small", "--seed", "5"])

        assert result.exit_code == 0, result.output
        assert "School data saved to:" in result.output

        validated = runner.invoke(app, ["validate", str(path)])
        assert validated.exit_code == 0

    def test_invalid_size(self, tmp_path):
        result = runner.invoke(app, ["sample", str(tmp_path / "school.json"), "--size", "huge"])
        assert result.exit_code == 1
        assert "Invalid size" in result.output
