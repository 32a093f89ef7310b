WAITING = "waiting"
IN_PARTY = "in-party"
OFF_DUTY = "off-duty"
COMPLETED = "completed"

KNIGHT = "knight"
CLIENT = "client"

# display order for knights; clients keep insertion order
STATUS_RANK = {WAITING: 1, IN_PARTY: 2, OFF_DUTY: 3, COMPLETED: 3}


class Member:
    """
    Base class for anyone listed on the roster.

    Attributes:
        id (int): Unique numeric identifier, never reused.
        name (str): Display name.
        job (str): In-game job.
        power (int): Stored (already scaled) combat power.
        status (str): Current lifecycle status.
    """

    kind = None
    statuses = ()
    transitions = set()

    def __init__(self, id: int, name: str, job: str, power: int, status: str = WAITING):
        self.id = id
        self.name = name
        self.job = job
        self.power = power
        self.status = status

    def __repr__(self):
        return f"{self.name}"

    @property
    def is_selectable(self):
        """Only waiting members can be picked for a new party."""
        return self.status == WAITING

    def set_status(self, status: str):
        """
        Moves the member to a new status.

        Args:
            status (str): The target status.

        Raises:
            ValueError: If the move is not one of the member's allowed transitions.
        """
        if status not in self.statuses:
            raise ValueError(f"{status!r} is not a {self.kind} status")
        if status != self.status and (self.status, status) not in self.transitions:
            raise ValueError(
                f"{self.kind.capitalize()} {self} cannot move from {self.status} to {status}"
            )

        self.status = status
