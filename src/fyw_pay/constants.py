"""
Event week constants: day keys, labels and package access rules
"""
import enum
from typing import Dict, List


class EventDay(str, enum.Enum):
    """The five days of Final Year Week"""
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"


EVENT_DAY_KEYS: List[str] = [day.value for day in EventDay]

EVENT_DAY_LABELS: Dict[str, str] = {
    EventDay.MONDAY.value: "Monday - Corporate Day",
    EventDay.TUESDAY.value: "Tuesday - Denim Day",
    EventDay.WEDNESDAY.value: "Wednesday - Costume Day",
    EventDay.THURSDAY.value: "Thursday - Jersey Day",
    EventDay.FRIDAY.value: "Friday - Cultural Day/Owambe",
}


class PackageType(str, enum.Enum):
    """Package access tiers"""
    FULL = "FULL"
    TWO_DAY = "TWO_DAY"
    CORPORATE_OWAMBE = "CORPORATE_OWAMBE"
    CORPORATE_PLUS = "CORPORATE_PLUS"


# Number of days a student must pick; FULL always gets every day
REQUIRED_DAY_COUNT: Dict[str, int] = {
    PackageType.TWO_DAY.value: 2,
    PackageType.CORPORATE_OWAMBE.value: 2,
    PackageType.CORPORATE_PLUS.value: 2,
}


def day_label(day: str) -> str:
    return EVENT_DAY_LABELS.get(day, day)
