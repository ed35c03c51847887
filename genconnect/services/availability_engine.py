"""
Availability Engine

Computes bookable time slots for a tutor on a calendar date from the tutor's
availability windows minus already-booked sessions, and manages the windows
themselves (creation with recurrence expansion, update, delete).

Slot computation assumes validated window times; malformed ``HH:MM`` values
are rejected when a window is created or updated.
"""
import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from genconnect.clock import TimeProvider, default_time_provider
from genconnect.exceptions import (
    AvailabilityOverlapException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from genconnect.models.availability import AvailabilityWindow, RECURRING_PATTERNS
from genconnect.models.session import (
    Session,
    SESSION_DURATIONS,
    DEFAULT_DURATION_MINUTES,
    STATUS_CANCELLED,
)
from genconnect.services.auth_service import CurrentUser

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Gap left after each 20-minute slot; 40-minute slots are back to back
SHORT_SESSION_GAP_MINUTES = 10

# One recurring series never creates more windows than this
MAX_RECURRING_OCCURRENCES = 52


@dataclass(frozen=True)
class Slot:
    """A concrete bookable sub-interval of one availability window"""
    id: str
    start: datetime
    end: datetime
    duration_minutes: int
    window_id: int
    topics: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start_time": self.start.strftime("%H:%M"),
            "end_time": self.end.strftime("%H:%M"),
            "starts_at": self.start.isoformat(),
            "duration_minutes": self.duration_minutes,
            "window_id": self.window_id,
            "topics": self.topics,
        }


def parse_hhmm(value: str) -> time:
    """
    Parse a 24-hour ``H:MM``/``HH:MM`` string.

    Raises:
        ValidationException: If the value is not a valid 24-hour time
    """
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValidationException(
            "Invalid time format. Use HH:MM format",
            code="INVALID_TIME_FORMAT",
            details={"value": value},
        )
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def normalize_hhmm(value: str) -> str:
    """Validate and zero-pad a time string ("9:05" -> "09:05")"""
    return parse_hhmm(value).strftime("%H:%M")


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` date string"""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValidationException(
            "Invalid date format. Use YYYY-MM-DD format",
            code="INVALID_DATE_FORMAT",
            details={"value": value},
        )
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationException(
            "Invalid date format. Use YYYY-MM-DD format",
            code="INVALID_DATE_FORMAT",
            details={"value": value},
        )


def day_of_week(on_date: date) -> int:
    """Day of week with 0=Sunday .. 6=Saturday"""
    return (on_date.weekday() + 1) % 7


def validate_duration(duration_minutes: int) -> int:
    if duration_minutes not in SESSION_DURATIONS:
        raise ValidationException(
            f"Session duration must be one of {list(SESSION_DURATIONS)} minutes",
            code="INVALID_DURATION",
            details={"duration_minutes": duration_minutes},
        )
    return duration_minutes


def validate_day_of_week(value: int) -> int:
    if value is None or not 0 <= value <= 6:
        raise ValidationException(
            "Day of week must be between 0 (Sunday) and 6 (Saturday)",
            code="INVALID_DAY_OF_WEEK",
            details={"day_of_week": value},
        )
    return value


def slot_step_minutes(duration_minutes: int) -> int:
    """Distance between consecutive slot starts"""
    if duration_minutes == 20:
        return duration_minutes + SHORT_SESSION_GAP_MINUTES
    return duration_minutes


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open interval overlap; touching endpoints do not overlap"""
    return start_a < end_b and end_a > start_b


def slot_id(window_id: int, start: datetime) -> str:
    epoch_ms = int(start.replace(tzinfo=timezone.utc).timestamp() * 1000)
    return f"{window_id}_{epoch_ms}"


def booked_interval(booking: Any) -> Tuple[datetime, datetime]:
    """(start, end) of a booked session using its own stored duration"""
    duration = booking.duration_minutes or DEFAULT_DURATION_MINUTES
    return booking.session_date, booking.session_date + timedelta(minutes=duration)


def compute_slots(
    windows: Iterable[Any],
    booked: Iterable[Any],
    on_date: date,
    duration_minutes: int,
) -> List[Slot]:
    """
    Walk each window from its start in steps of the slot size (plus the gap for
    20-minute sessions) and keep every candidate that fits inside the window and
    does not overlap a booked session.

    Args:
        windows: Objects with ``id``, ``start_time``, ``end_time``, ``topics``
        booked: Objects with ``session_date`` and ``duration_minutes``
        on_date: Calendar date the slots are for
        duration_minutes: Requested session length

    Returns:
        Slots in window order, ascending start time within each window
    """
    length = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=slot_step_minutes(duration_minutes))
    booked_ranges = [booked_interval(b) for b in booked]

    slots: List[Slot] = []
    for window in windows:
        window_start = datetime.combine(on_date, parse_hhmm(window.start_time))
        window_end = datetime.combine(on_date, parse_hhmm(window.end_time))

        current = window_start
        while current + length <= window_end:
            candidate_end = current + length
            conflict = any(
                overlaps(current, candidate_end, b_start, b_end)
                for b_start, b_end in booked_ranges
            )
            if not conflict:
                slots.append(Slot(
                    id=slot_id(window.id, current),
                    start=current,
                    end=candidate_end,
                    duration_minutes=duration_minutes,
                    window_id=window.id,
                    topics=window.topics,
                ))
            current += step

    return slots


def _add_months(anchor: date, months: int) -> date:
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor.day, last_day))


def expand_recurrence(start: date, pattern: str, until: date) -> List[date]:
    """All occurrence dates from ``start`` through ``until`` inclusive"""
    if pattern not in RECURRING_PATTERNS:
        raise ValidationException(
            f"Recurring pattern must be one of {list(RECURRING_PATTERNS)}",
            code="INVALID_RECURRING_PATTERN",
            details={"recurring_pattern": pattern},
        )
    if until < start:
        raise ValidationException(
            "Recurring end date must not be before the start date",
            code="INVALID_RECURRING_END_DATE",
        )

    dates = []
    n = 0
    while True:
        if pattern == "weekly":
            occurrence = start + timedelta(weeks=n)
        elif pattern == "biweekly":
            occurrence = start + timedelta(weeks=2 * n)
        else:
            occurrence = _add_months(start, n)
        if occurrence > until:
            break
        if len(dates) == MAX_RECURRING_OCCURRENCES:
            raise ValidationException(
                f"A recurring series may create at most {MAX_RECURRING_OCCURRENCES} windows",
                code="TOO_MANY_OCCURRENCES",
                details={"recurring_end_date": until.isoformat()},
            )
        dates.append(occurrence)
        n += 1
    return dates


def _minutes(hhmm: str) -> int:
    parsed = parse_hhmm(hhmm)
    return parsed.hour * 60 + parsed.minute


class AvailabilityEngine:
    """Slot computation and availability window management"""

    def __init__(self, time_provider: TimeProvider = default_time_provider):
        self.time_provider = time_provider

    async def get_available_slots(
        self,
        db: AsyncSession,
        tutor_id: int,
        on_date: date,
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> List[Slot]:
        """
        Bookable slots for a tutor on a date.

        Windows are those repeating on the date's weekday plus those set for
        that exact date. Every non-cancelled session of the tutor on that
        calendar date blocks the slots it overlaps.
        """
        validate_duration(duration_minutes)

        windows = await self._windows_for_date(db, tutor_id, on_date)
        if not windows:
            return []

        day_start = datetime.combine(on_date, time.min)
        result = await db.execute(
            select(Session.session_date, Session.duration_minutes).where(
                Session.tutor_id == tutor_id,
                Session.status != STATUS_CANCELLED,
                Session.session_date >= day_start,
                Session.session_date < day_start + timedelta(days=1),
            )
        )
        booked = result.all()

        slots = compute_slots(windows, booked, on_date, duration_minutes)
        logger.debug(
            f"Slots for tutor {tutor_id} on {on_date}: {len(windows)} windows, "
            f"{len(booked)} booked, {len(slots)} available"
        )
        return slots

    async def _windows_for_date(
        self, db: AsyncSession, tutor_id: int, on_date: date
    ) -> Sequence[AvailabilityWindow]:
        result = await db.execute(
            select(AvailabilityWindow)
            .where(
                AvailabilityWindow.tutor_id == tutor_id,
                or_(
                    AvailabilityWindow.day_of_week == day_of_week(on_date),
                    AvailabilityWindow.date == on_date,
                ),
            )
            .order_by(AvailabilityWindow.start_time, AvailabilityWindow.id)
        )
        return result.scalars().all()

    async def list_windows(self, db: AsyncSession, tutor_id: int) -> Sequence[AvailabilityWindow]:
        result = await db.execute(
            select(AvailabilityWindow)
            .where(AvailabilityWindow.tutor_id == tutor_id)
            .order_by(
                AvailabilityWindow.date,
                AvailabilityWindow.day_of_week,
                AvailabilityWindow.start_time,
            )
        )
        return result.scalars().all()

    def _check_times(self, start_time: str, end_time: str) -> Tuple[str, str]:
        start = normalize_hhmm(start_time)
        end = normalize_hhmm(end_time)
        if start >= end:
            raise ValidationException(
                "Start time must be before end time",
                code="INVALID_TIME_RANGE",
                details={"start_time": start, "end_time": end},
            )
        return start, end

    def _check_not_past(self, on_date: date) -> None:
        if on_date < self.time_provider.now().date():
            raise ValidationException(
                "Cannot set availability for past dates",
                code="PAST_DATE",
                details={"date": on_date.isoformat()},
            )

    def _require_tutor(self, user: CurrentUser) -> None:
        if not user.is_tutor:
            raise ForbiddenException("Only tutors can manage availability", code="TUTOR_ONLY")

    async def _find_overlap(
        self,
        db: AsyncSession,
        tutor_id: int,
        start: str,
        end: str,
        weekday: Optional[int] = None,
        on_date: Optional[date] = None,
        exclude_id: Optional[int] = None,
    ) -> Optional[AvailabilityWindow]:
        """
        First existing window that would produce slots on the same day and
        whose time range overlaps ``[start, end)``.
        """
        today = self.time_provider.now().date()
        existing = await self.list_windows(db, tutor_id)
        new_start, new_end = _minutes(start), _minutes(end)

        for window in existing:
            if exclude_id is not None and window.id == exclude_id:
                continue

            if weekday is not None:
                if window.day_of_week is not None:
                    same_day = window.day_of_week == weekday
                else:
                    same_day = window.date >= today and day_of_week(window.date) == weekday
            else:
                if window.date is not None:
                    same_day = window.date == on_date
                else:
                    same_day = window.day_of_week == day_of_week(on_date)

            if same_day and _minutes(window.start_time) < new_end and _minutes(window.end_time) > new_start:
                return window
        return None

    async def create_windows(
        self,
        db: AsyncSession,
        user: CurrentUser,
        start_time: str,
        end_time: str,
        day_of_week: Optional[int] = None,
        on_date: Optional[date] = None,
        topics: Optional[str] = None,
        is_recurring: bool = False,
        recurring_pattern: Optional[str] = None,
        recurring_end_date: Optional[date] = None,
    ) -> List[AvailabilityWindow]:
        """
        Create one weekly window, one dated window, or a series of dated
        windows expanded from a recurrence rule.

        Raises:
            ForbiddenException: Caller is not a tutor
            ValidationException: Bad times, day of week, date or recurrence
            AvailabilityOverlapException: A new window overlaps an existing one
        """
        self._require_tutor(user)
        start, end = self._check_times(start_time, end_time)

        if (day_of_week is None) == (on_date is None):
            raise ValidationException(
                "Provide either day_of_week or date",
                code="DAY_OR_DATE_REQUIRED",
            )

        if day_of_week is not None:
            validate_day_of_week(day_of_week)
            if is_recurring:
                raise ValidationException(
                    "Weekly windows already repeat; recurrence applies to dated windows",
                    code="INVALID_RECURRENCE",
                )
            targets: List[Tuple[Optional[int], Optional[date]]] = [(day_of_week, None)]
        else:
            self._check_not_past(on_date)
            if is_recurring:
                if not recurring_pattern or recurring_end_date is None:
                    raise ValidationException(
                        "Recurring windows need a recurring pattern and end date",
                        code="INVALID_RECURRENCE",
                    )
                dates = expand_recurrence(on_date, recurring_pattern, recurring_end_date)
            else:
                dates = [on_date]
            targets = [(None, d) for d in dates]

        for weekday, target_date in targets:
            conflict = await self._find_overlap(
                db, user.user_id, start, end, weekday=weekday, on_date=target_date
            )
            if conflict is not None:
                label = target_date.isoformat() if target_date else calendar.day_name[(weekday - 1) % 7]
                raise AvailabilityOverlapException(
                    label, f"{start}-{end}", f"{conflict.start_time}-{conflict.end_time}"
                )

        windows = []
        for weekday, target_date in targets:
            window = AvailabilityWindow(
                tutor_id=user.user_id,
                day_of_week=weekday,
                date=target_date,
                start_time=start,
                end_time=end,
                topics=topics,
                is_recurring=bool(is_recurring and target_date is not None and len(targets) > 1),
                recurring_pattern=recurring_pattern if len(targets) > 1 else None,
                recurring_end_date=recurring_end_date if len(targets) > 1 else None,
            )
            db.add(window)
            windows.append(window)

        await db.commit()
        for window in windows:
            await db.refresh(window)

        logger.info(f"Tutor {user.user_id} created {len(windows)} availability window(s)")
        return windows

    async def _get_owned_window(
        self, db: AsyncSession, user: CurrentUser, window_id: int
    ) -> AvailabilityWindow:
        self._require_tutor(user)
        window = await db.get(AvailabilityWindow, window_id)
        # Another tutor's window is reported as missing
        if window is None or window.tutor_id != user.user_id:
            raise NotFoundException(f"Availability window {window_id} not found")
        return window

    async def update_window(
        self,
        db: AsyncSession,
        user: CurrentUser,
        window_id: int,
        start_time: str,
        end_time: str,
        day_of_week: Optional[int] = None,
        on_date: Optional[date] = None,
        topics: Optional[str] = None,
    ) -> AvailabilityWindow:
        window = await self._get_owned_window(db, user, window_id)
        start, end = self._check_times(start_time, end_time)

        # Keep the window's kind unless the caller switches it explicitly
        if day_of_week is None and on_date is None:
            day_of_week, on_date = window.day_of_week, window.date
        if day_of_week is not None and on_date is not None:
            raise ValidationException("Provide either day_of_week or date", code="DAY_OR_DATE_REQUIRED")
        if day_of_week is not None:
            validate_day_of_week(day_of_week)
        if on_date is not None and on_date != window.date:
            self._check_not_past(on_date)

        conflict = await self._find_overlap(
            db, user.user_id, start, end,
            weekday=day_of_week, on_date=on_date, exclude_id=window.id,
        )
        if conflict is not None:
            label = on_date.isoformat() if on_date else calendar.day_name[(day_of_week - 1) % 7]
            raise AvailabilityOverlapException(
                label, f"{start}-{end}", f"{conflict.start_time}-{conflict.end_time}"
            )

        window.day_of_week = day_of_week
        window.date = on_date
        window.start_time = start
        window.end_time = end
        window.topics = topics
        await db.commit()
        await db.refresh(window)
        return window

    async def delete_window(self, db: AsyncSession, user: CurrentUser, window_id: int) -> None:
        window = await self._get_owned_window(db, user, window_id)
        await db.delete(window)
        await db.commit()
        logger.info(f"Tutor {user.user_id} deleted availability window {window_id}")


# Global engine instance
_engine: Optional[AvailabilityEngine] = None


def get_availability_engine() -> AvailabilityEngine:
    """Get or create global AvailabilityEngine instance."""
    global _engine
    if _engine is None:
        _engine = AvailabilityEngine()
    return _engine
