from knightbus.member import IN_PARTY, KNIGHT, OFF_DUTY, WAITING, Member


class Knight(Member):
    """
    A reusable service provider. Knights return to the pool after every mission.

    Attributes:
        relay_count (int): Number of completed missions.
    """

    kind = KNIGHT
    statuses = (WAITING, IN_PARTY, OFF_DUTY)
    transitions = {
        (WAITING, IN_PARTY),
        (IN_PARTY, WAITING),
        (WAITING, OFF_DUTY),
        (OFF_DUTY, WAITING),
    }

    def __init__(
        self,
        id: int,
        name: str,
        job: str,
        power: int,
        relay_count: int = 0,
        status: str = WAITING,
    ):
        super().__init__(id, name, job, power, status)
        self.relay_count = relay_count

    def to_line_fields(self):
        """Returns the fields written to the roster text format."""
        return [self.name, self.job, str(self.power), str(self.relay_count)]
