from knightbus.client import Client
from knightbus.errors import (
    ImportFormatError,
    NotFoundError,
    RosterError,
    ValidationError,
)
from knightbus.knight import Knight
from knightbus.party import Party
from knightbus.roster import ImportSummary, Roster

__all__ = [
    "Client",
    "ImportFormatError",
    "ImportSummary",
    "Knight",
    "NotFoundError",
    "Party",
    "Roster",
    "RosterError",
    "ValidationError",
]
