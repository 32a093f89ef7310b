import time

from knightbus.member import STATUS_RANK

DEFAULT_POWER_SCALE = 1000


class IdClock:
    """
    Hands out member ids from a millisecond clock.

    Ids are strictly increasing: if the clock has not moved since the last id
    (or went backwards), the next id is the previous one plus one.
    """

    def __init__(self, clock=None):
        self._clock = clock or (lambda: time.time_ns() // 1_000_000)
        self._last = 0

    def next_id(self) -> int:
        now = int(self._clock())
        self._last = now if now > self._last else self._last + 1
        return self._last


def scale_power(power, power_scale: int = DEFAULT_POWER_SCALE) -> int:
    """
    Converts user-facing power (e.g. 50, or 1.5) into the stored integer value.

    Args:
        power (int | float): Power as typed by the operator.
        power_scale (int): Multiplier applied before storing.

    Returns:
        int: The scaled power.
    """
    return int(round(power * power_scale))


def sort_by_status_rank(members: list) -> list:
    """
    Sorts members by status rank (waiting, in-party, off-duty).

    Python's sort is stable, so members with the same status keep their
    insertion order.

    Args:
        members (list[Member]): Members to sort.

    Returns:
        list[Member]: New sorted list.
    """
    return sorted(members, key=lambda m: STATUS_RANK.get(m.status, len(STATUS_RANK) + 1))


def get_max_name_length(members, default=20):
    """
    Finds the length of the longest member name.

    Returns:
        int: Length of the longest name, or `default` for an empty roster.
    """
    max_length = 0 if members else default
    for m in members:
        max_length = len(m.name) if len(m.name) > max_length else max_length
    return max_length


def normalize_knight_records(knights: list | None) -> list[dict[str, object]]:
    """Normalize seed knights from a config into structured records.

    A seed knight may be written either as a roster line
    ("name:job:power:relayCount") or as a record of
    {name, job, power, relay_count, is_active}. Roster lines are the quick way
    to paste an exported roster into a config file; records allow marking a
    knight inactive so it starts off-duty instead of waiting.

    Power in a seed knight is the stored value, used verbatim.

    Args:
        knights: Raw knight entries from config.

    Returns:
        list[dict[str, object]]: Records with name, job, power, relay_count
        and is_active keys.

    Raises:
        ValueError: If an entry cannot be understood.
    """
    records: list[dict[str, object]] = []

    if not knights:
        return records

    for index, entry in enumerate(knights, start=1):
        if isinstance(entry, str):
            parts = entry.split(":")
            if len(parts) != 4:
                raise ValueError(
                    f"Seed knight {index} must look like name:job:power:relayCount, got {entry!r}"
                )
            name, job, power, relay_count = parts
            is_active = True
        elif isinstance(entry, dict):
            name = entry.get("name", "")
            job = entry.get("job", "")
            power = entry.get("power", 0)
            relay_count = entry.get("relay_count", 0)
            is_active = bool(entry.get("is_active", True))
        elif hasattr(entry, "name"):
            name = getattr(entry, "name", "")
            job = getattr(entry, "job", "")
            power = getattr(entry, "power", 0)
            relay_count = getattr(entry, "relay_count", 0)
            is_active = bool(getattr(entry, "is_active", True))
        else:
            raise ValueError(f"Seed knight {index} has an unsupported type: {entry!r}")

        name = str(name).strip()
        job = str(job).strip()
        if not name or not job:
            raise ValueError(f"Seed knight {index} needs both a name and a job")
        try:
            power = int(power)
            relay_count = int(relay_count)
        except (TypeError, ValueError):
            raise ValueError(f"Seed knight {index} has a non-integer power or relay count")
        if relay_count < 0:
            raise ValueError(f"Seed knight {index} has a negative relay count")

        records.append(
            {
                "name": name,
                "job": job,
                "power": power,
                "relay_count": relay_count,
                "is_active": is_active,
            }
        )

    return records
