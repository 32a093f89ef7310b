"""Text format for exporting and importing knight rosters.

One knight per line, fields joined by ``:``::

    name:job:power:relayCount

``power`` is the stored (already scaled) value and ``relayCount`` the number
of completed missions, both plain base-10 integers.

The plain format has no escaping, so a colon inside a name or job breaks the
line. That format stays the default so rosters can be pasted between tools.
The escaped format starts with a version marker line and writes ``\\`` and
``\\:`` inside fields; ``parse_roster`` detects the marker on its own.
"""

import logging
import re

from knightbus.errors import ImportFormatError

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = ":"
ESCAPE = "\\"
ESCAPED_MARKER = "#knightbus-roster:2"
FIELD_COUNT = 4
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def _parse_integer(value: str):
    """Parse a plain base-10 integer; None for anything else (underscores, non-ASCII digits)."""
    value = value.strip()
    if not INTEGER_PATTERN.fullmatch(value):
        return None
    return int(value)


def _escape(value: str) -> str:
    return value.replace(ESCAPE, ESCAPE * 2).replace(FIELD_SEPARATOR, ESCAPE + FIELD_SEPARATOR)


def _split_escaped(line: str) -> list[str]:
    """Split a line on unescaped separators, removing escapes from each field."""
    fields = []
    current = []
    chars = iter(line)
    for char in chars:
        if char == ESCAPE:
            # a trailing lone backslash is kept as-is
            current.append(next(chars, ESCAPE))
        elif char == FIELD_SEPARATOR:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


def format_knight_line(knight, escaped=False) -> str:
    """
    Serializes one knight.

    Args:
        knight (Knight): The knight to write.
        escaped (bool): Escape separators inside fields.

    Returns:
        str: The roster line.
    """
    fields = knight.to_line_fields()
    if escaped:
        fields = [_escape(f) for f in fields]
    return FIELD_SEPARATOR.join(fields)


def export_roster(knights, escaped=False) -> str:
    """
    Serializes knights in the given order, one per line.

    Args:
        knights (list[Knight]): Knights, usually in display order.
        escaped (bool): Write the escaped format with its version marker.

    Returns:
        str: Roster text. Empty string for an empty plain roster.
    """
    lines = [format_knight_line(k, escaped=escaped) for k in knights]
    if escaped:
        lines.insert(0, ESCAPED_MARKER)
    return "\n".join(lines)


def parse_knight_line(line: str, line_number: int, escaped=False) -> dict:
    """
    Parses one roster line.

    Args:
        line (str): Raw line text.
        line_number (int): 1-based position in the imported text, for error reports.
        escaped (bool): Whether the line uses the escaped format.

    Returns:
        dict: Record with name, job, power and relay_count.

    Raises:
        ImportFormatError: If the line is not exactly four valid fields.
    """
    parts = _split_escaped(line) if escaped else line.split(FIELD_SEPARATOR)
    if len(parts) != FIELD_COUNT:
        raise ImportFormatError(
            line_number, line, f"expected {FIELD_COUNT} fields, found {len(parts)}"
        )

    name, job, power_string, relay_count_string = parts
    name = name.strip()
    job = job.strip()
    if not name:
        raise ImportFormatError(line_number, line, "name is empty")
    if not job:
        raise ImportFormatError(line_number, line, "job is empty")

    power = _parse_integer(power_string)
    if power is None:
        raise ImportFormatError(line_number, line, f"power {power_string!r} is not an integer")
    relay_count = _parse_integer(relay_count_string)
    if relay_count is None:
        raise ImportFormatError(
            line_number, line, f"relay count {relay_count_string!r} is not an integer"
        )
    if relay_count < 0:
        raise ImportFormatError(line_number, line, "relay count is negative")

    return {"name": name, "job": job, "power": power, "relay_count": relay_count}


def parse_roster(text: str) -> tuple[list[dict], list[ImportFormatError]]:
    """
    Parses roster text, keeping every good line and recording every bad one.

    A bad line never stops the import. Whitespace around the whole text is
    ignored; blank lines inside it count as bad lines.

    Args:
        text (str): Roster text in the plain or escaped format.

    Returns:
        tuple[list[dict], list[ImportFormatError]]: Parsed records and per-line errors.
    """
    records = []
    errors = []

    text = text.strip() if text else ""
    if not text:
        return records, errors

    lines = text.splitlines()
    escaped = lines[0].strip() == ESCAPED_MARKER
    first_line_number = 1
    if escaped:
        lines = lines[1:]
        first_line_number = 2

    for line_number, line in enumerate(lines, start=first_line_number):
        try:
            records.append(parse_knight_line(line, line_number, escaped=escaped))
        except ImportFormatError as e:
            logger.warning("Skipping roster line: %s", e)
            errors.append(e)

    return records, errors
