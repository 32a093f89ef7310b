"""Tests for the knight roster text format and the roster import/export commands."""

import pytest

from knightbus.errors import ImportFormatError
from knightbus.member import IN_PARTY, OFF_DUTY, WAITING
from knightbus.roster import Roster
from knightbus.roster_format import ESCAPED_MARKER, parse_knight_line, parse_roster


class TestParseKnightLine:

    def test_valid_line(self):
        assert parse_knight_line(" Hong : Rogue :50000:3", 1) == {
            "name": "Hong",
            "job": "Rogue",
            "power": 50000,
            "relay_count": 3,
        }

    @pytest.mark.parametrize(
        "line,reason",
        [
            ("BAD_LINE", "expected 4 fields, found 1"),
            ("a:b:c:d:e", "expected 4 fields, found 5"),
            ("  :Rogue:1:0", "name is empty"),
            ("Hong: :1:0", "job is empty"),
            ("Hong:Rogue:lots:0", "power 'lots' is not an integer"),
            ("Hong:Rogue:1:1.5", "relay count '1.5' is not an integer"),
            ("Hong:Rogue:1:-1", "relay count is negative"),
            ("Hong:Rogue:1_000:0", "power '1_000' is not an integer"),
            ("Hong:Rogue:\u0661\u0662:0", "power '\u0661\u0662' is not an integer"),
            ("Hong:Rogue:1:0x1", "relay count '0x1' is not an integer"),
            ("", "expected 4 fields, found 1"),
        ],
    )
    def test_rejected_lines(self, line, reason):
        with pytest.raises(ImportFormatError) as exc:
            parse_knight_line(line, 3)
        assert exc.value.reason == reason
        assert exc.value.line_number == 3
        assert exc.value.line == line


class TestParseRoster:

    def test_good_and_bad_lines(self):
        records, errors = parse_roster("A:B:1000:2\nBAD_LINE\nC:D:3000:0")
        assert [r["name"] for r in records] == ["A", "C"]
        assert [e.line_number for e in errors] == [2]

    def test_blank_text(self):
        assert parse_roster("   \n  ") == ([], [])

    def test_blank_line_inside_counts_as_skipped(self):
        records, errors = parse_roster("A:B:1:0\n\nC:D:2:0\n")
        assert len(records) == 2
        assert len(errors) == 1

    def test_windows_line_endings(self):
        records, errors = parse_roster("A:B:1:0\r\nC:D:2:0")
        assert [r["name"] for r in records] == ["A", "C"]
        assert errors == []

    def test_embedded_colon_breaks_plain_line(self):
        records, errors = parse_roster("Dr: Who:Mage:1:0")
        assert records == []
        assert len(errors) == 1

    def test_escaped_format(self):
        text = f"{ESCAPED_MARKER}\nDr\\: Who:Back\\\\slash:10:1\nBAD"
        records, errors = parse_roster(text)
        assert records == [{"name": "Dr: Who", "job": "Back\\slash", "power": 10, "relay_count": 1}]
        assert [e.line_number for e in errors] == [3]


class TestRosterImportExport:

    def test_import_example(self, roster):
        summary = roster.import_knight_roster("A:B:1000:2\nBAD_LINE\nC:D:3000:0")

        assert summary.imported == 2
        assert summary.skipped == 1
        assert [(k.name, k.power, k.relay_count, k.status) for k in summary.knights] == [
            ("A", 1000, 2, OFF_DUTY),
            ("C", 3000, 0, OFF_DUTY),
        ]
        assert len({k.id for k in summary.knights}) == 2
        assert len(roster.knights) == 2

    def test_import_can_start_waiting(self):
        roster = Roster(imported_knight_status=WAITING)
        summary = roster.import_knight_roster("A:B:1000:2")
        assert summary.knights[0].status == WAITING

    def test_import_status_must_be_pool_status(self):
        with pytest.raises(ValueError):
            Roster(imported_knight_status=IN_PARTY)

    def test_export_follows_display_order(self, roster):
        a = roster.add_knight("A", "Rogue", 1)
        roster.add_knight("B", "Mage", 2)
        roster.toggle_knight_duty(a.id)
        a.relay_count = 4

        assert roster.export_knight_roster() == "B:Mage:2000:0\nA:Rogue:1000:4"

    def test_export_empty_roster(self, roster):
        assert roster.export_knight_roster() == ""

    def test_round_trip(self, roster):
        roster.add_knight("Hong", "Rogue", 50)
        lee = roster.add_knight("Lee", "Cleric", 12)
        roster.toggle_knight_duty(lee.id)

        other = Roster()
        other.import_knight_roster(roster.export_knight_roster())

        def fields(r):
            return [(k.name, k.job, k.power, k.relay_count) for k in r.sorted_knights()]

        assert fields(other) == fields(roster)
        assert all(k.status == OFF_DUTY for k in other.knights.values())

    def test_escaped_round_trip_keeps_colons(self, roster):
        roster.add_knight("Dr: Who", "Time:Lord", 3)

        text = roster.export_knight_roster(escaped=True)
        other = Roster()
        summary = other.import_knight_roster(text)

        assert text.startswith(ESCAPED_MARKER)
        assert summary.skipped == 0
        assert (summary.knights[0].name, summary.knights[0].job) == ("Dr: Who", "Time:Lord")
