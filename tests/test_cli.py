"""Tests for the command line and the interactive operator console."""

import pytest
import questionary
import yaml
from click.testing import CliRunner

from knightbus.cli import _parse_power, cli, interactive_loop


def write_config(tmp_path, **data):
    config_path = tmp_path / "roster.yaml"
    config_path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return config_path


class TestCLI:

    def test_export_from_config_and_file(self, tmp_path):
        (tmp_path / "knights.txt").write_text("Lee:Cleric:12000:4\nnot a knight\n", encoding="utf-8")
        config_path = write_config(
            tmp_path,
            name="night-shift",
            knights_file="knights.txt",
            knights=["Hong:Rogue:50000:2"],
            clients=[{"name": "Kim", "job": "Mage", "power": 30, "notes": "urgent"}],
        )

        result = CliRunner().invoke(
            cli, ["--config", str(config_path), "--interactive", "false", "--export"]
        )

        assert result.exit_code == 0, result.output
        assert "Roster night-shift loaded: 2 knights, 1 clients" in result.output
        assert "Skipped 1 malformed lines" in result.output
        assert "30000" in result.output
        assert "urgent" in result.output
        assert result.output.rstrip().endswith("Hong:Rogue:50000:2\nLee:Cleric:12000:4")

    def test_import_file_option(self, tmp_path):
        knights_path = tmp_path / "extra.txt"
        knights_path.write_text("A:B:1000:2\nBAD_LINE\nC:D:3000:0", encoding="utf-8")

        result = CliRunner().invoke(
            cli, ["--import-file", str(knights_path), "--interactive", "false"]
        )

        assert result.exit_code == 0, result.output
        assert "Imported 2 knights from extra.txt" in result.output
        assert "Skipped 1 malformed lines" in result.output
        assert "off duty" in result.output

    def test_escaped_export(self, tmp_path):
        config_path = write_config(
            tmp_path,
            roster_format="escaped",
            knights=[{"name": "Dr: Who", "job": "Mage", "power": 5}],
        )

        result = CliRunner().invoke(
            cli, ["--config", str(config_path), "--interactive", "false", "--export"]
        )

        assert result.exit_code == 0, result.output
        assert "#knightbus-roster:2\nDr\\: Who:Mage:5:0" in result.output

    def test_invalid_config(self, tmp_path):
        config_path = write_config(tmp_path, power_scale=-5)

        result = CliRunner().invoke(cli, ["--config", str(config_path), "--interactive", "false"])

        assert result.exit_code != 0
        assert "Invalid config" in result.output

    def test_missing_knights_file(self, tmp_path):
        config_path = write_config(tmp_path, knights_file="nope.txt")

        result = CliRunner().invoke(cli, ["--config", str(config_path), "--interactive", "false"])

        assert result.exit_code != 0
        assert "knights_file does not exist" in result.output


class FakePrompt:
    """Stands in for a questionary question; `ask` returns the queued answer."""

    def __init__(self, answers, calls, message, kwargs):
        self.answers = answers
        calls.append((message, kwargs))

    def ask(self):
        return self.answers.pop(0)


@pytest.fixture
def prompts(monkeypatch):
    """Queue answers per questionary prompt type and record how each was asked."""

    answers = {"select": [], "text": [], "path": [], "confirm": []}
    calls = {name: [] for name in answers}

    def factory(name):
        return lambda message, **kwargs: FakePrompt(answers[name], calls[name], message, kwargs)

    for name in answers:
        monkeypatch.setattr(questionary, name, factory(name))
    return answers, calls


class TestParsePower:

    @pytest.mark.parametrize(
        "text,expected",
        [("50", 50), ("1e3", 1000), ("1.5", 1.5), ("-2", -2), (" 7 ", 7)],
    )
    def test_numbers(self, text, expected):
        power = _parse_power(text)
        assert power == expected
        assert type(power) is type(expected)

    @pytest.mark.parametrize("text", ["nan", "inf", "-inf", "lots", ""])
    def test_rejected(self, text):
        assert _parse_power(text) is None


class TestInteractiveLoop:

    def test_exponent_power_is_accepted(self, roster, prompts):
        answers, _ = prompts
        answers["select"] += ["Add a Knight", "Quit"]
        answers["text"] += ["Hong", "Rogue", "1e3"]

        interactive_loop(roster)

        (knight,) = roster.knights.values()
        assert knight.power == 1_000_000

    def test_edit_prefills_current_power(self, roster, hong_and_kim, prompts):
        hong, _ = hong_and_kim
        answers, calls = prompts
        answers["select"] += ["Edit a Knight", hong.id, "Quit"]
        answers["text"] += ["Hong", "Rogue", "50"]

        interactive_loop(roster)

        power_prompt = calls["text"][2]
        assert power_prompt[1]["default"] == "50"
        assert hong.power == 50000

    def test_non_utf8_import_keeps_console_running(self, roster, prompts, tmp_path, capsys):
        bad_file = tmp_path / "knights.txt"
        bad_file.write_bytes(b"\xff\xfe:B:1:0")
        answers, _ = prompts
        answers["select"] += ["Import Knights", "Quit"]
        answers["path"] += [str(bad_file)]

        interactive_loop(roster)

        output = capsys.readouterr().out
        assert "not UTF-8 text" in output
        assert "Program terminated" in output
        assert not roster.knights
