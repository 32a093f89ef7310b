import copy

from knightbus.member import KNIGHT


class Party:
    """
    A group of knights and clients bound together for one mission.

    Members are copied at formation time, so later edits or deletes on the
    roster never change what the party shows.

    Attributes:
        id (int): Party number, counted up from 1.
        knights (tuple[Knight]): Knight snapshots.
        clients (tuple[Client]): Client snapshots.
        is_completed (bool): Always False while the party is live.
    """

    def __init__(self, id: int, knights, clients):
        self.id = id
        self.knights = tuple(copy.copy(k) for k in knights)
        self.clients = tuple(copy.copy(c) for c in clients)
        self.is_completed = False

    def __repr__(self):
        return f"{self.id}"

    @property
    def knight_ids(self):
        return {k.id for k in self.knights}

    @property
    def client_ids(self):
        return {c.id for c in self.clients}

    def has_member(self, member_id: int, kind: str) -> bool:
        """Checks whether a knight or client id is part of this party's snapshot."""
        ids = self.knight_ids if kind == KNIGHT else self.client_ids
        return member_id in ids

    def describe(self):
        """
        Returns the party roster as display rows of "job | name".

        Returns:
            dict[str, list[str]]: Rows keyed by "knights" and "clients".
        """
        return {
            "knights": [f"{k.job} | {k.name}" for k in self.knights],
            "clients": [f"{c.job} | {c.name}" for c in self.clients],
        }
