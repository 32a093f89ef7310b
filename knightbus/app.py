from pathlib import Path

from knightbus.config import Config
from knightbus.roster import Roster
from knightbus.utils import normalize_knight_records


def load_roster(config: Config, id_clock=None, verbose=False) -> Roster:
    """Build a Roster from configuration.

    Seed knights and clients are added first, then `knights_file` is imported
    on top of them.

    Args:
        config: Validated configuration.
        id_clock: Optional id source, mainly for tests.
        verbose: Print a short report of what was loaded.

    Returns:
        Roster: The initialized roster.
    """
    roster = Roster(
        name=config.name,
        power_scale=config.power_scale,
        imported_knight_status=config.imported_knight_status,
        id_clock=id_clock,
    )

    roster.seed_knights(normalize_knight_records(config.knights))
    for c in config.clients:
        roster.add_client(c.name, c.job, c.power, c.notes)

    if config.knights_file is not None:
        import_knights_file(roster, config.knights_file, verbose=verbose)

    if verbose:
        print(
            f"\n  Roster {roster.name} loaded: {len(roster.knights)} knights, {len(roster.clients)} clients"
        )
    return roster


def import_knights_file(roster: Roster, path: Path, verbose=False):
    """Import a roster text file into `roster` and optionally report skipped lines.

    Returns:
        ImportSummary: The import result.
    """
    text = Path(path).read_text(encoding="utf-8")
    summary = roster.import_knight_roster(text)
    if verbose:
        print_import_summary(summary, source=Path(path).name)
    return summary


def print_import_summary(summary, source="input"):
    print(f"\n  Imported {summary.imported} knights from {source}")
    if summary.skipped:
        print(f"  Skipped {summary.skipped} malformed lines:\n")
        [print(f"  - {e}") for e in summary.errors]
