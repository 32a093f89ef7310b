import logging
import math
import threading
from functools import wraps
from types import MappingProxyType

from knightbus import roster_format, utils
from knightbus.client import Client
from knightbus.errors import NotFoundError, ValidationError
from knightbus.knight import Knight
from knightbus.member import CLIENT, COMPLETED, IN_PARTY, KNIGHT, OFF_DUTY, WAITING
from knightbus.party import Party

logger = logging.getLogger(__name__)

UNKNOWN_PARTY = "?"
KINDS = (KNIGHT, CLIENT)

STATUS_LABELS = {
    WAITING: "waiting",
    OFF_DUTY: "off duty",
    COMPLETED: "completed",
}


def _command(method):
    """Run a roster command under the roster lock."""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class ImportSummary:
    """
    Result of importing roster text.

    Attributes:
        knights (list[Knight]): Knights created by the import.
        errors (list[ImportFormatError]): One entry per rejected line.
    """

    def __init__(self, knights, errors):
        self.knights = knights
        self.errors = errors

    def __repr__(self):
        return f"ImportSummary(imported={self.imported}, skipped={self.skipped})"

    @property
    def imported(self):
        return len(self.knights)

    @property
    def skipped(self):
        return len(self.errors)


class Roster:
    """
    Holds every knight, client, and live party, plus the current selection.

    All changes go through the command methods. Each command runs to
    completion under one lock and either applies fully or raises without
    touching any state. Observers are notified after a command has been
    applied; an observer error reaches the caller but does not undo the
    command.

    Attributes:
        name (str): Roster name, shown in the console.
        power_scale (int): Multiplier from typed power to stored power.
        imported_knight_status (str): Status given to knights created by import.
        party_id_counter (int): Id the next party will get.
    """

    def __init__(
        self,
        name: str = "knightbus",
        power_scale: int = utils.DEFAULT_POWER_SCALE,
        imported_knight_status: str = OFF_DUTY,
        id_clock: utils.IdClock | None = None,
    ):
        if imported_knight_status not in (WAITING, OFF_DUTY):
            raise ValueError(
                f"Imported knights must start waiting or off-duty, not {imported_knight_status!r}"
            )
        self.name = name
        self.power_scale = power_scale
        self.imported_knight_status = imported_knight_status
        self.party_id_counter = 1
        self._id_clock = id_clock or utils.IdClock()
        self._knights: dict[int, Knight] = {}
        self._clients: dict[int, Client] = {}
        self._parties: dict[int, Party] = {}
        self._selected = {KNIGHT: [], CLIENT: []}
        self._lock = threading.RLock()
        # observers receive (event_type, payload) after every successful command
        self.observers = []

    def __repr__(self):
        return f"{self.name}"

    # read-only views ----------------------------------------------------------------------

    @property
    def knights(self):
        return MappingProxyType(self._knights)

    @property
    def clients(self):
        return MappingProxyType(self._clients)

    @property
    def parties(self):
        return MappingProxyType(self._parties)

    @property
    def selected_knight_ids(self):
        return tuple(self._selected[KNIGHT])

    @property
    def selected_client_ids(self):
        return tuple(self._selected[CLIENT])

    def get_knight(self, id: int) -> Knight:
        """
        Returns the knight with the specified ID.

        Raises:
            NotFoundError: If no knight with the given ID exists.
        """
        try:
            return self._knights[id]
        except KeyError:
            raise NotFoundError(KNIGHT, id) from None

    def get_client(self, id: int) -> Client:
        """
        Returns the client with the specified ID.

        Raises:
            NotFoundError: If no client with the given ID exists.
        """
        try:
            return self._clients[id]
        except KeyError:
            raise NotFoundError(CLIENT, id) from None

    def get_party(self, id: int) -> Party:
        try:
            return self._parties[id]
        except KeyError:
            raise NotFoundError("party", id) from None

    def get_members_by_status(self, kind: str, status: str) -> tuple:
        members = self._collection(kind).values()
        return tuple(m for m in members if m.status == status)

    # observers ----------------------------------------------------------------------------

    def add_observer(self, observer):
        """Register a roster observer callback.

        Observers are how a user interface learns that the roster changed.
        The callback receives `(event_type, payload)` after each successful
        command; exceptions raised by an observer propagate to the caller.

        Args:
            observer: Callable accepting (event_type: str, payload: dict).
        """
        self.observers.append(observer)

    def _notify(self, event_type: str, payload: dict):
        logger.debug("%s: %s", event_type, payload)
        for observer in self.observers:
            observer(event_type, payload)

    # helpers ------------------------------------------------------------------------------

    def _collection(self, kind: str) -> dict:
        if kind == KNIGHT:
            return self._knights
        if kind == CLIENT:
            return self._clients
        raise ValidationError(f"Unknown member kind {kind!r}; expected one of {KINDS}")

    def _get_member(self, kind: str, id: int):
        return self.get_knight(id) if kind == KNIGHT else self.get_client(id)

    @staticmethod
    def _require_text(field: str, value) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{field} is required")
        return value.strip()

    @staticmethod
    def _require_number(field: str, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{field} must be a number, got {value!r}")
        if not math.isfinite(value):
            raise ValidationError(f"{field} must be a finite number, got {value!r}")
        return value

    # commands: add / update / delete ------------------------------------------------------

    @_command
    def add_knight(self, name: str, job: str, power) -> Knight:
        """
        Adds a waiting knight.

        Args:
            name (str): Knight name.
            job (str): Knight job.
            power (int | float): Power as typed; stored as power * power_scale.

        Returns:
            Knight: The new knight.
        """
        knight = Knight(
            id=self._id_clock.next_id(),
            name=self._require_text("name", name),
            job=self._require_text("job", job),
            power=utils.scale_power(self._require_number("power", power), self.power_scale),
        )
        self._knights[knight.id] = knight
        self._notify("knight_added", {"id": knight.id, "name": knight.name})
        return knight

    @_command
    def add_client(self, name: str, job: str, power, notes: str = "") -> Client:
        """
        Adds a waiting client.

        Args:
            name (str): Client name.
            job (str): Client job.
            power (int | float): Power as typed; stored as power * power_scale.
            notes (str): Optional remarks.

        Returns:
            Client: The new client.
        """
        client = Client(
            id=self._id_clock.next_id(),
            name=self._require_text("name", name),
            job=self._require_text("job", job),
            power=utils.scale_power(self._require_number("power", power), self.power_scale),
            notes=notes or "",
        )
        self._clients[client.id] = client
        self._notify("client_added", {"id": client.id, "name": client.name})
        return client

    def _validated_fields(self, name, job, power) -> dict:
        fields = {}
        if name is not None:
            fields["name"] = self._require_text("name", name)
        if job is not None:
            fields["job"] = self._require_text("job", job)
        if power is not None:
            fields["power"] = utils.scale_power(
                self._require_number("power", power), self.power_scale
            )
        return fields

    @_command
    def update_knight(self, id: int, name=None, job=None, power=None) -> Knight:
        """
        Replaces a knight's name, job, and/or power. Status is never changed.

        Raises:
            NotFoundError: If the knight does not exist.
        """
        knight = self.get_knight(id)
        fields = self._validated_fields(name, job, power)
        for key, value in fields.items():
            setattr(knight, key, value)
        self._notify("knight_updated", {"id": id, "fields": sorted(fields)})
        return knight

    @_command
    def update_client(self, id: int, name=None, job=None, power=None, notes=None) -> Client:
        """
        Replaces a client's name, job, power, and/or notes. Status is never changed.

        Raises:
            NotFoundError: If the client does not exist.
        """
        client = self.get_client(id)
        fields = self._validated_fields(name, job, power)
        if notes is not None:
            fields["notes"] = notes
        for key, value in fields.items():
            setattr(client, key, value)
        self._notify("client_updated", {"id": id, "fields": sorted(fields)})
        return client

    def _delete(self, kind: str, id: int):
        member = self._get_member(kind, id)
        del self._collection(kind)[id]
        if id in self._selected[kind]:
            self._selected[kind].remove(id)
        # parties keep their snapshot of the deleted member
        self._notify(f"{kind}_deleted", {"id": id, "name": member.name, "status": member.status})
        return member

    @_command
    def delete_knight(self, id: int) -> Knight:
        """Removes a knight in any status. Live parties keep their snapshot."""
        return self._delete(KNIGHT, id)

    @_command
    def delete_client(self, id: int) -> Client:
        """Removes a client in any status. Live parties keep their snapshot."""
        return self._delete(CLIENT, id)

    # commands: selection and parties ------------------------------------------------------

    @_command
    def toggle_selection(self, id: int, kind: str) -> bool:
        """
        Adds or removes a member from the current selection.

        Members that are not waiting cannot be selected; the call is then a no-op.

        Args:
            id (int): Member id.
            kind (str): "knight" or "client".

        Returns:
            bool: Whether the member is selected after the call.
        """
        collection = self._collection(kind)
        if id not in collection:
            raise NotFoundError(kind, id)
        selection = self._selected[kind]

        if not collection[id].is_selectable:
            logger.debug("%s %s is %s; selection unchanged", kind, id, collection[id].status)
            return id in selection

        if id in selection:
            selection.remove(id)
            selected = False
        else:
            selection.append(id)
            selected = True

        self._notify("selection_changed", {"kind": kind, "id": id, "selected": selected})
        return selected

    @_command
    def clear_selection(self):
        self._selected[KNIGHT].clear()
        self._selected[CLIENT].clear()
        self._notify("selection_cleared", {})

    @_command
    def form_party(self) -> Party:
        """
        Binds the selected knights and clients into a new party.

        Everything is checked before anything is written, so a rejected call
        leaves the roster exactly as it was.

        Returns:
            Party: The new party.

        Raises:
            ValidationError: If either selection is empty.
        """
        knights = [self._knights[i] for i in self._selected[KNIGHT] if i in self._knights]
        clients = [self._clients[i] for i in self._selected[CLIENT] if i in self._clients]

        if not knights or not clients:
            raise ValidationError("Select at least one knight and one client to form a party.")
        for member in knights + clients:
            if not member.is_selectable:
                raise ValidationError(
                    f"{member.kind.capitalize()} {member} is {member.status} and cannot join a party."
                )

        party = Party(self.party_id_counter, knights, clients)
        self._parties[party.id] = party
        self.party_id_counter += 1

        for member in knights + clients:
            member.set_status(IN_PARTY)
        self._selected[KNIGHT].clear()
        self._selected[CLIENT].clear()

        self._notify(
            "party_formed",
            {
                "id": party.id,
                "knights": [k.id for k in knights],
                "clients": [c.id for c in clients],
            },
        )
        return party

    @_command
    def complete_mission(self, party_id: int) -> Party:
        """
        Completes a party's mission and removes the party.

        Knights go back to waiting with one more relay; clients are completed
        for good. Members deleted since the party formed are skipped.

        Returns:
            Party: The removed party.

        Raises:
            NotFoundError: If no live party has that id (for example, it was already completed).
        """
        party = self.get_party(party_id)

        knights = [self._knights[i] for i in party.knight_ids if i in self._knights]
        clients = [self._clients[i] for i in party.client_ids if i in self._clients]

        for knight in knights:
            knight.set_status(WAITING)
            knight.relay_count += 1
        for client in clients:
            client.set_status(COMPLETED)
        del self._parties[party_id]

        self._notify(
            "mission_completed",
            {
                "id": party_id,
                "knights": [k.id for k in knights],
                "clients": [c.id for c in clients],
            },
        )
        return party

    @_command
    def toggle_knight_duty(self, id: int) -> str:
        """
        Switches a knight between waiting and off-duty.

        A knight in a party is left alone.

        Returns:
            str: The knight's status after the call.
        """
        knight = self.get_knight(id)
        if knight.status == WAITING:
            knight.set_status(OFF_DUTY)
            if id in self._selected[KNIGHT]:
                self._selected[KNIGHT].remove(id)
        elif knight.status == OFF_DUTY:
            knight.set_status(WAITING)
        else:
            logger.debug("Knight %s is %s; duty unchanged", id, knight.status)
            return knight.status

        self._notify("knight_duty_changed", {"id": id, "status": knight.status})
        return knight.status

    # import / export ----------------------------------------------------------------------

    def sorted_knights(self) -> list:
        """Knights in display order: waiting, then in-party, then off-duty."""
        return utils.sort_by_status_rank(list(self._knights.values()))

    def export_knight_roster(self, escaped=False) -> str:
        """
        Serializes every knight in display order.

        Args:
            escaped (bool): Use the escaped format.

        Returns:
            str: Roster text.
        """
        return roster_format.export_roster(self.sorted_knights(), escaped=escaped)

    @_command
    def import_knight_roster(self, text: str) -> ImportSummary:
        """
        Creates knights from roster text.

        Good lines become knights (off-duty by default, with fresh ids); bad
        lines are counted and skipped. The whole batch is added in one step.

        Args:
            text (str): Roster text.

        Returns:
            ImportSummary: Created knights and per-line errors.
        """
        records, errors = roster_format.parse_roster(text)
        knights = [
            Knight(
                id=self._id_clock.next_id(),
                status=self.imported_knight_status,
                **record,
            )
            for record in records
        ]
        for knight in knights:
            self._knights[knight.id] = knight

        summary = ImportSummary(knights, errors)
        self._notify(
            "knights_imported", {"imported": summary.imported, "skipped": summary.skipped}
        )
        return summary

    @_command
    def seed_knights(self, records: list) -> list:
        """
        Adds knights from normalized seed records (see `utils.normalize_knight_records`).

        Power is stored verbatim. Inactive records start off-duty.

        Returns:
            list[Knight]: The new knights.
        """
        knights = [
            Knight(
                id=self._id_clock.next_id(),
                name=r["name"],
                job=r["job"],
                power=r["power"],
                relay_count=r["relay_count"],
                status=WAITING if r["is_active"] else OFF_DUTY,
            )
            for r in records
        ]
        for knight in knights:
            self._knights[knight.id] = knight
        self._notify("knights_seeded", {"count": len(knights)})
        return knights

    # display ------------------------------------------------------------------------------

    def party_of(self, member_id: int, kind: str):
        """
        Finds the live party holding a member.

        Returns:
            Party | None: The party, or None if no live party lists the member.
        """
        self._collection(kind)
        for party in self._parties.values():
            if not party.is_completed and party.has_member(member_id, kind):
                return party
        return None

    def _status_label(self, member) -> str:
        if member.status == IN_PARTY:
            party = self.party_of(member.id, member.kind)
            return f"party {party.id if party else UNKNOWN_PARTY}"
        return STATUS_LABELS.get(member.status, "unknown")

    def knight_status_label(self, knight: Knight) -> str:
        """Human-readable status, e.g. "waiting", "party 3", or "off duty"."""
        return self._status_label(knight)

    def client_status_label(self, client: Client) -> str:
        """Human-readable status, e.g. "waiting", "party 3", or "completed"."""
        return self._status_label(client)

    def summary(self) -> dict:
        """
        Counts members by status.

        Returns:
            dict: {"knights": {status: count}, "clients": {status: count}, "parties": int}
        """
        return {
            "knights": {s: len(self.get_members_by_status(KNIGHT, s)) for s in Knight.statuses},
            "clients": {s: len(self.get_members_by_status(CLIENT, s)) for s in Client.statuses},
            "parties": len(self._parties),
        }
