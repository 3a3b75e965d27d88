import re
import unicodedata
from typing import List, Tuple

from booking import time_window
from booking.policy import EXCLUSIVITY_DAY, EXCLUSIVITY_SLOT
from booking.types import Program, Slot


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^[0-9()+\s-]{8,}$")
KANA_RE = re.compile(r"^[ぁ-んー　\s]+$")

MAX_LENGTHS = {
    "name": 191,
    "last_name": 191,
    "first_name": 191,
    "kana": 191,
    "email": 191,
    "phone": 32,
    "contact": 191,
    "notebook_type": 32,
    "note": 2000,
}


def validate_slot(program: Program, slot: Slot, exclusivity: str = EXCLUSIVITY_DAY) -> List[str]:
    if not time_window.allows(program, slot):
        return [f"{program.value} does not offer the {slot.value} slot"]
    # a per-slot key cannot see a slot that spans others (full vs am/pm)
    if exclusivity == EXCLUSIVITY_SLOT and time_window.spanned(program, slot):
        return [f"The {slot.value} slot is not offered while reservations are exclusive per slot"]
    return []


def validate_date(day, today, lead_days: int, override=None) -> List[str]:
    """
    Same-day and past dates are never bookable; neither is anything inside
    the lead time unless an override has opened that date.
    """
    if day <= today:
        return ["Same-day or past dates cannot be booked"]
    if override is True:
        return []
    if (day - today).days < lead_days:
        return [f"Reservations must be made at least {lead_days} day(s) in advance"]
    return []


def validate_profile(profile: dict) -> Tuple[dict, List[str]]:
    """
    Returns (cleaned_profile, errors). Only known keys are kept; strings are
    trimmed, the phone number is folded to half-width before matching.
    """
    profile = profile or {}
    clean = {}
    errors = []

    for key, limit in MAX_LENGTHS.items():
        if key not in profile or profile[key] is None:
            continue
        value = profile[key]
        if not isinstance(value, str):
            errors.append(f"{key} must be a string")
            continue
        value = value.strip()
        if key == "phone":
            value = unicodedata.normalize("NFKC", value)
        if not value:
            clean[key] = None
            continue
        if len(value) > limit:
            errors.append(f"{key} must be at most {limit} characters")
            continue
        clean[key] = value

    if clean.get("email") and not EMAIL_RE.match(clean["email"]):
        errors.append("Invalid email")
    if clean.get("phone") and not PHONE_RE.match(clean["phone"]):
        errors.append("Invalid phone number")
    if clean.get("kana") and not KANA_RE.match(clean["kana"]):
        errors.append("kana must be hiragana")

    if "has_certificate" in profile:
        flag = profile["has_certificate"]
        if flag is None:
            clean["has_certificate"] = False
        elif isinstance(flag, bool):
            clean["has_certificate"] = flag
        elif flag in (0, 1, "0", "1", "true", "false"):
            clean["has_certificate"] = flag in (1, "1", "true")
        else:
            errors.append("has_certificate must be a boolean")

    return clean, errors
