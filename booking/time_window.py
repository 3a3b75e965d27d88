from datetime import date, datetime, time

import pytz

from booking.types import Program, Slot


# Business-local clock ranges per program. Catalogs may differ between
# programs; "full" exists only where a program offers it.
SLOT_CATALOG = {
    Program.TOUR: {
        Slot.AM: (time(10, 30), time(12, 0)),
        Slot.PM: (time(13, 30), time(15, 0)),
    },
    Program.EXPERIENCE: {
        Slot.AM: (time(10, 0), time(12, 0)),
        Slot.PM: (time(13, 0), time(15, 0)),
        Slot.FULL: (time(10, 0), time(15, 0)),
    },
}


class UnsupportedSlot(KeyError):
    pass


def slots_for(program: Program):
    return list(SLOT_CATALOG.get(program, {}).keys())


def allows(program: Program, slot: Slot) -> bool:
    return slot in SLOT_CATALOG.get(program, {})


def local_range(program: Program, slot: Slot):
    try:
        return SLOT_CATALOG[program][slot]
    except KeyError:
        raise UnsupportedSlot(f"{program.value} has no {slot.value} slot") from None


def window(program: Program, slot: Slot, day: date, tz) -> tuple:
    """
    (start, end) of the slot on `day` as naive UTC datetimes.

    `tz` is a pytz timezone (or its name). localize() picks the offset that
    is in force on that calendar day, so DST zones come out right.
    """
    if isinstance(tz, str):
        tz = pytz.timezone(tz)
    start_local, end_local = local_range(program, slot)

    start = tz.localize(datetime.combine(day, start_local))
    end = tz.localize(datetime.combine(day, end_local))
    return (
        start.astimezone(pytz.UTC).replace(tzinfo=None),
        end.astimezone(pytz.UTC).replace(tzinfo=None),
    )


def overlapping(program: Program, slot: Slot):
    """Catalog slots whose local ranges intersect `slot` (including itself)."""
    start, end = local_range(program, slot)
    out = []
    for other, (o_start, o_end) in SLOT_CATALOG[program].items():
        if o_start < end and start < o_end:
            out.append(other)
    return out


def spanned(program: Program, slot: Slot):
    """Other catalog slots lying wholly inside `slot` (am and pm for full)."""
    start, end = local_range(program, slot)
    return [
        other for other, (o_start, o_end) in SLOT_CATALOG[program].items()
        if other is not slot and start <= o_start and o_end <= end
    ]
