class RosterError(Exception):
    """Base class for every error raised by a roster command."""


class ValidationError(RosterError):
    """A command was rejected because its inputs or the current selection are invalid."""


class NotFoundError(RosterError, KeyError):
    """A command targeted a knight, client, or party id that does not exist."""

    def __init__(self, kind: str, id):
        self.kind = kind
        self.id = id
        super().__init__(f"{kind.capitalize()} ID {id} not found")

    def __str__(self):
        # KeyError quotes its argument; keep the plain message
        return self.args[0]


class ImportFormatError(RosterError, ValueError):
    """A single roster line could not be parsed. Collected per line, never fatal."""

    def __init__(self, line_number: int, line: str, reason: str):
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(f"Line {line_number}: {reason} ({line!r})")
