import logging
import math
from pathlib import Path

import click
import questionary
import yaml
from pydantic import ValidationError as ConfigValidationError

from knightbus import utils
from knightbus.app import import_knights_file, load_roster, print_import_summary
from knightbus.config import Config, resolve_config_paths
from knightbus.errors import RosterError
from knightbus.member import CLIENT, KNIGHT


def load_config(ctx, param, value: Path) -> Config:
    if value is None:
        return Config()
    try:
        with open(value, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        config = Config(**resolve_config_paths(data, value))
        config.validate_paths()
        return config
    except (ConfigValidationError, FileNotFoundError, ValueError) as e:
        raise click.BadParameter(f"Invalid config: {e}")
    except yaml.YAMLError as e:
        raise click.BadParameter(f"Failed to load config: {e}")


def print_roster(roster):
    """Print knights (display order), clients, and live parties."""

    knights = roster.sorted_knights()
    clients = list(roster.clients.values())
    width = utils.get_max_name_length(knights + clients)

    header = f"Roster {roster} ({len(knights)} knights, {len(clients)} clients, {len(roster.parties)} parties)"
    print(f"\n  {header}")
    print(f"  {'-' * len(header)}")

    print("\n  Knights\n")
    for k in knights:
        mark = "*" if k.id in roster.selected_knight_ids else " "
        print(
            f"  {mark} {k.name.ljust(width)}  {k.job:<10} {k.power:>8}  relays {k.relay_count:<3} {roster.knight_status_label(k)}"
        )
    print("    (none)") if not knights else None

    print("\n  Clients\n")
    for c in clients:
        mark = "*" if c.id in roster.selected_client_ids else " "
        notes = f"  [{c.notes}]" if c.notes else ""
        print(
            f"  {mark} {c.name.ljust(width)}  {c.job:<10} {c.power:>8}  {roster.client_status_label(c)}{notes}"
        )
    print("    (none)") if not clients else None

    print("\n  Parties\n")
    for party in roster.parties.values():
        rows = party.describe()
        print(f"    Party {party}")
        [print(f"      knight  {row}") for row in rows["knights"]]
        [print(f"      client  {row}") for row in rows["clients"]]
    print("    (none)") if not roster.parties else None


def _parse_power(value: str):
    """Returns typed power as an int or float, or None if it is not a finite number."""
    try:
        power = float(value)
    except ValueError:
        return None
    if not math.isfinite(power):
        return None
    return int(power) if power.is_integer() else power


def _ask_member_fields(kind, member=None, power_scale=utils.DEFAULT_POWER_SCALE):
    """Ask for a member's fields. Returns None when the prompt is cancelled."""

    answers = {}
    answers["name"] = questionary.text(
        "\nName:",
        default=member.name if member else "",
        qmark="",
        validate=lambda val: bool(val.strip()) or "Name is required",
    ).ask()
    if answers["name"] is None:
        return None
    answers["job"] = questionary.text(
        "\nJob:",
        default=member.job if member else "",
        qmark="",
        validate=lambda val: bool(val.strip()) or "Job is required",
    ).ask()
    if answers["job"] is None:
        return None
    current_power = _parse_power(str(member.power / power_scale)) if member else None
    power = questionary.text(
        "\nPower:",
        default=str(current_power) if current_power is not None else "",
        qmark="",
        validate=lambda val: _parse_power(val) is not None or "Power must be a number",
    ).ask()
    if power is None:
        return None
    answers["power"] = _parse_power(power)
    if kind == CLIENT:
        answers["notes"] = questionary.text(
            "\nNotes:", default=member.notes if member else "", qmark=""
        ).ask()
    return answers


def _pick_member(roster, kind, statuses=None):
    """Let the operator pick a member by name. Returns the member or None."""

    members = roster.sorted_knights() if kind == KNIGHT else list(roster.clients.values())
    if statuses:
        members = [m for m in members if m.status in statuses]
    if not members:
        print(f"\n  No matching {kind}s.")
        return None

    choices = [
        questionary.Choice(f"{m.name} ({m.job}, {m.status})", value=m.id) for m in members
    ]
    member_id = questionary.select(
        f"\n{kind.capitalize()}:", choices=choices, qmark="", instruction=" "
    ).ask()
    if member_id is None:
        return None
    return roster.get_knight(member_id) if kind == KNIGHT else roster.get_client(member_id)


def _select_members(roster):
    for kind in (KNIGHT, CLIENT):
        members = roster.sorted_knights() if kind == KNIGHT else list(roster.clients.values())
        selected = roster.selected_knight_ids if kind == KNIGHT else roster.selected_client_ids
        choices = [
            questionary.Choice(
                f"{m.name} ({m.job})", value=m.id, checked=m.id in selected
            )
            for m in members
            if m.is_selectable
        ]
        if not choices:
            print(f"\n  No waiting {kind}s to select.")
            continue
        picked = questionary.checkbox(f"\nSelect {kind}s:", choices=choices, qmark="").ask()
        if picked is None:
            return
        for member_id in set(picked) ^ set(selected):
            roster.toggle_selection(member_id, kind)


def interactive_loop(roster, roster_format="plain"):
    """Menu-driven operator console over the roster commands."""

    choices = [
        "Add a Knight",
        "Add a Client",
        "Edit a Knight",
        "Edit a Client",
        "Delete a Knight",
        "Delete a Client",
        "Select members",
        "Form a Party",
        "Complete a Mission",
        "Toggle Knight duty",
        "Import Knights",
        "Export Knights",
        "Show roster",
        "Quit",
    ]

    while True:

        print(f"\n---")

        choice = questionary.select(
            "\nAction:",
            choices=choices,
            qmark="",
            instruction=" ",
        ).ask()

        try:
            if choice == "Add a Knight":
                fields = _ask_member_fields(KNIGHT, power_scale=roster.power_scale)
                if fields:
                    knight = roster.add_knight(**fields)
                    print(f"\n  Knight {knight} added (power {knight.power})")

            if choice == "Add a Client":
                fields = _ask_member_fields(CLIENT, power_scale=roster.power_scale)
                if fields:
                    client = roster.add_client(**fields)
                    print(f"\n  Client {client} added (power {client.power})")

            if choice in ("Edit a Knight", "Edit a Client"):
                kind = KNIGHT if choice == "Edit a Knight" else CLIENT
                member = _pick_member(roster, kind)
                fields = _ask_member_fields(kind, member, roster.power_scale) if member else None
                if fields:
                    update = roster.update_knight if kind == KNIGHT else roster.update_client
                    update(member.id, **fields)
                    print(f"\n  {kind.capitalize()} {member} updated")

            if choice in ("Delete a Knight", "Delete a Client"):
                kind = KNIGHT if choice == "Delete a Knight" else CLIENT
                member = _pick_member(roster, kind)
                if member and questionary.confirm(
                    f"\nDelete {kind} {member}?", default=False, qmark=""
                ).ask():
                    delete = roster.delete_knight if kind == KNIGHT else roster.delete_client
                    delete(member.id)
                    print(f"\n  {kind.capitalize()} {member} deleted")

            if choice == "Select members":
                _select_members(roster)
                print(
                    f"\n  Selected: {len(roster.selected_knight_ids)} knights, {len(roster.selected_client_ids)} clients"
                )

            if choice == "Form a Party":
                party = roster.form_party()
                print(
                    f"\n  Party {party} formed with {len(party.knights)} knights and {len(party.clients)} clients"
                )

            if choice == "Complete a Mission":
                if not roster.parties:
                    print("\n  No live parties.")
                    continue
                party_id = questionary.select(
                    "\nParty:",
                    choices=[str(p.id) for p in roster.parties.values()],
                    qmark="",
                    instruction=" ",
                ).ask()
                if party_id and questionary.confirm(
                    f"\nComplete the mission of party {party_id}?", default=False, qmark=""
                ).ask():
                    party = roster.complete_mission(int(party_id))
                    print(f"\n  Party {party} mission complete")

            if choice == "Toggle Knight duty":
                knight = _pick_member(roster, KNIGHT)
                if knight:
                    status = roster.toggle_knight_duty(knight.id)
                    print(f"\n  Knight {knight} is {status}")

            if choice == "Import Knights":
                path = questionary.path("\nRoster file:", qmark="").ask()
                if path:
                    import_knights_file(roster, Path(path), verbose=True)

            if choice == "Export Knights":
                print()
                print(roster.export_knight_roster(escaped=roster_format == "escaped"))

            if choice == "Show roster":
                print_roster(roster)

        except RosterError as e:
            print(f"\n  {e}")
        except OSError as e:
            print(f"\n  Could not read file: {e}")
        except UnicodeDecodeError as e:
            print(f"\n  Roster file is not UTF-8 text: {e}")

        if choice == "Quit" or choice is None:
            print(f"\nProgram terminated.\n")
            return


@click.command(context_settings={"max_content_width": 120})
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    callback=load_config,
    help="Path to roster configuration file.",
)
@click.option(
    "--import-file",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    help="Knight roster text file to import at startup.",
)
@click.option(
    "--export/--no-export",
    default=False,
    help="Print the knight roster export (non-interactive mode).",
)
@click.option(
    "--interactive",
    type=click.BOOL,
    default=True,
    help="Enable the interactive operator console.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured logging level.",
)
def cli(config: Config, import_file: Path, export: bool, interactive: bool, log_level: str):
    """Manage knights, clients, and parties for the bus service."""

    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        roster = load_roster(config, verbose=True)
        if import_file:
            summary = roster.import_knight_roster(import_file.read_text(encoding="utf-8"))
            print_import_summary(summary, source=import_file.name)
    except (RosterError, ValueError) as e:
        raise click.ClickException(str(e))

    if not interactive:
        print_roster(roster)
        if export:
            click.echo("")
            click.echo(roster.export_knight_roster(escaped=config.roster_format == "escaped"))
        return

    interactive_loop(roster, roster_format=config.roster_format)


if __name__ == "__main__":
    cli()
