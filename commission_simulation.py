from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Sequence, Tuple, Union

import pandas as pd

DAY_LABEL_FORMAT = "%a %b %d %Y"
SIMULATION_COLUMNS = ["Day", "Commission"]


@dataclass
class StaffMember:
    id: str
    name: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "StaffMember":
        return cls(id=str(data.get("_id", data.get("id"))), name=data.get("name", ""))


def staff_options(staff_members: List[StaffMember]) -> Dict[str, str]:
    """id -> display name, in the order received"""
    return {member.id: member.name for member in staff_members}


def to_iso_utc(value: datetime) -> str:
    """2024-01-01T00:00:00.000Z; naive values are taken as local time"""
    if value.tzinfo is None:
        value = value.astimezone()
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def range_bounds(selection: Union[date, Sequence[date]]) -> Tuple[datetime, datetime]:
    """Turn a date_input range (possibly half picked) into start/end datetimes."""
    if isinstance(selection, date):
        selection = (selection,)
    if len(selection) == 0:
        raise ValueError("A start date is required")
    start = selection[0]
    end = selection[1] if len(selection) > 1 else start
    return datetime.combine(start, time.min), datetime.combine(end, time.min)


def build_simulation_request(start: datetime, end: datetime, staff_member_id: str) -> Dict[str, str]:
    return {
        "startDate": to_iso_utc(start),
        "endDate": to_iso_utc(end),
        "staffMemberId": staff_member_id,
    }


def simulation_rows(start: Union[date, datetime], result: Dict[str, Any]) -> List[Tuple[str, Any]]:
    """
    One row per day of the result, ordered by day offset.
    The label is the start date shifted by the offset, e.g. "Mon Jan 01 2024".
    """
    if isinstance(start, datetime):
        start = start.date()
    if not isinstance(result, dict):
        raise ValueError(f"Unexpected simulation result: {type(result).__name__}")
    entries = []
    for key, commission in result.items():
        try:
            offset = int(key)
        except (TypeError, ValueError):
            raise ValueError(f"Unexpected day offset in simulation result: {key!r}") from None
        if not isinstance(commission, dict):
            raise ValueError(f"Unexpected commission for day {key!r} in simulation result: {commission!r}")
        entries.append((offset, commission.get("sumCommissions")))
    entries.sort(key=lambda entry: entry[0])
    return [((start + timedelta(days=offset)).strftime(DAY_LABEL_FORMAT), amount) for offset, amount in entries]


def simulation_frame(start: Union[date, datetime], result: Dict[str, Any]) -> pd.DataFrame:
    return pd.DataFrame(simulation_rows(start, result), columns=SIMULATION_COLUMNS)
