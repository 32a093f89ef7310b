from knightbus.member import CLIENT, COMPLETED, IN_PARTY, WAITING, Member


class Client(Member):
    """
    A one-shot request. Clients join a single party and are then completed for good.

    Attributes:
        notes (str): Free-text remarks from the operator.
    """

    kind = CLIENT
    statuses = (WAITING, IN_PARTY, COMPLETED)
    transitions = {
        (WAITING, IN_PARTY),
        (IN_PARTY, COMPLETED),
    }

    def __init__(
        self,
        id: int,
        name: str,
        job: str,
        power: int,
        notes: str = "",
        status: str = WAITING,
    ):
        super().__init__(id, name, job, power, status)
        self.notes = notes
