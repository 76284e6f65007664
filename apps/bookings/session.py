"""
Booking Session Management

Tracks a guest's progress through the booking funnel (search, results,
guest info, payment, confirmation) with a sliding expiry window, and keeps
a local cache of the room holds placed during the session.

A session is guest-local state; holds are owned by the inventory service.
A session can exist without a hold, and cached holds are only a view: the
inventory service stays authoritative.

Expiry is lazy. Nothing sweeps sessions; every read compares expires_at
with the clock and clears what has lapsed.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

import requests

from apps.inventory.domain.availability import (
    AvailabilityManager,
    BookingHold,
    HoldStatus,
    InsufficientInventoryError,
    InventoryError,
    generate_hold_id as make_hold_id,
)
from shared.domain.clock import Clock, system_clock

from .errors import BookingErrorHandler, error_handler as default_error_handler

logger = logging.getLogger(__name__)

STORAGE_KEY = 'ambassador_booking_session'
HOLD_STORAGE_KEY = 'ambassador_booking_holds'


class BookingStep(str, Enum):
    SEARCH = 'search'
    RESULTS = 'results'
    GUEST_INFO = 'guest-info'
    PAYMENT = 'payment'
    CONFIRMATION = 'confirmation'


@dataclass(frozen=True)
class SessionConfig:
    session_timeout_minutes: int = 30
    hold_timeout_minutes: int = 15
    warning_minutes: int = 5
    persist_to_storage: bool = True


@dataclass(frozen=True)
class SearchCriteria:
    hotel_id: str
    check_in_date: date
    check_out_date: date
    adults: int = 2
    children: int = 0
    rooms: int = 1
    currency: str = 'USD'

    def to_dict(self) -> dict:
        return {
            'hotel_id': self.hotel_id,
            'check_in_date': self.check_in_date.isoformat(),
            'check_out_date': self.check_out_date.isoformat(),
            'adults': self.adults,
            'children': self.children,
            'rooms': self.rooms,
            'currency': self.currency,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SearchCriteria':
        return cls(
            hotel_id=str(data['hotel_id']),
            check_in_date=_as_date(data['check_in_date']),
            check_out_date=_as_date(data['check_out_date']),
            adults=int(data.get('adults', 2)),
            children=int(data.get('children', 0)),
            rooms=int(data.get('rooms', 1)),
            currency=data.get('currency', 'USD'),
        )


@dataclass(frozen=True)
class BookingSession:
    session_id: str
    expires_at: datetime
    created_at: datetime
    step: BookingStep = BookingStep.SEARCH
    search_criteria: Optional[SearchCriteria] = None
    hotel_id: Optional[str] = None
    selected_room_type_id: Optional[str] = None
    selected_rate_plan: Optional[str] = None
    guest_details: Dict[str, Any] = field(default_factory=dict)
    booking_hold_id: Optional[str] = None
    # Sliding window length; None falls back to the manager's config
    timeout_minutes: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            'session_id': self.session_id,
            'expires_at': self.expires_at.isoformat(),
            'created_at': self.created_at.isoformat(),
            'step': self.step.value,
            'search_criteria': self.search_criteria.to_dict() if self.search_criteria else None,
            'hotel_id': self.hotel_id,
            'selected_room_type_id': self.selected_room_type_id,
            'selected_rate_plan': self.selected_rate_plan,
            'guest_details': dict(self.guest_details),
            'booking_hold_id': self.booking_hold_id,
            'timeout_minutes': self.timeout_minutes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BookingSession':
        criteria = data.get('search_criteria')
        return cls(
            session_id=data['session_id'],
            expires_at=datetime.fromisoformat(data['expires_at']),
            created_at=datetime.fromisoformat(data['created_at']),
            step=BookingStep(data.get('step', BookingStep.SEARCH.value)),
            search_criteria=SearchCriteria.from_dict(criteria) if criteria else None,
            hotel_id=data.get('hotel_id'),
            selected_room_type_id=data.get('selected_room_type_id'),
            selected_rate_plan=data.get('selected_rate_plan'),
            guest_details=dict(data.get('guest_details') or {}),
            booking_hold_id=data.get('booking_hold_id'),
            timeout_minutes=data.get('timeout_minutes'),
        )


@dataclass(frozen=True)
class TimeoutWarning:
    show_warning: bool
    minutes_remaining: int


@dataclass(frozen=True)
class SessionValidation:
    valid: bool
    issues: List[str]


@dataclass(frozen=True)
class SessionStats:
    session_age_minutes: int
    time_remaining_minutes: int
    step: str
    has_holds: bool


UPDATABLE_FIELDS = frozenset({
    'step',
    'search_criteria',
    'hotel_id',
    'selected_room_type_id',
    'selected_rate_plan',
    'guest_details',
    'booking_hold_id',
})


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _hold_to_dict(hold: BookingHold) -> dict:
    return {
        'hold_id': hold.hold_id,
        'room_type_id': hold.room_type_id,
        'check_in_date': hold.check_in_date.isoformat(),
        'check_out_date': hold.check_out_date.isoformat(),
        'room_count': hold.room_count,
        'expires_at': hold.expires_at.isoformat(),
        'status': hold.status.value,
    }


def _hold_from_dict(data: Dict[str, Any]) -> BookingHold:
    return BookingHold(
        hold_id=data['hold_id'],
        room_type_id=str(data['room_type_id']),
        check_in_date=_as_date(data['check_in_date']),
        check_out_date=_as_date(data['check_out_date']),
        room_count=int(data['room_count']),
        expires_at=datetime.fromisoformat(data['expires_at']),
        status=HoldStatus(data.get('status', HoldStatus.ACTIVE.value)),
    )


def _shortfall_from_response(response) -> Optional[InsufficientInventoryError]:
    """Rebuild the inventory shortfall from an INVENTORY_INSUFFICIENT error body."""
    try:
        error = response.json()['error']
        if error.get('code') != 'INVENTORY_INSUFFICIENT':
            return None
        context = error['context']
        return InsufficientInventoryError(
            str(context['room_type_id']), int(context['requested']), int(context['available']),
        )
    except (KeyError, TypeError, ValueError, AttributeError):
        return None


# ===== Storage =====

class SessionStorage(Protocol):
    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemorySessionStorage:
    def __init__(self):
        self.data: Dict[str, Any] = {}

    def get(self, key: str) -> Any:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class DjangoSessionStorage:
    """Stores session state in ``request.session`` (values must be JSON-serializable)."""

    def __init__(self, django_session):
        self.django_session = django_session

    def get(self, key: str) -> Any:
        return self.django_session.get(key)

    def set(self, key: str, value: Any) -> None:
        self.django_session[key] = value

    def delete(self, key: str) -> None:
        self.django_session.pop(key, None)


# ===== Hold gateways =====

class HoldGateway(Protocol):
    # Why the last create_hold returned None, when the inventory said so
    last_error: Optional[InventoryError]

    def create_hold(
        self,
        room_type_id: str,
        check_in: date,
        check_out: date,
        room_count: int,
        expires_in_minutes: int,
    ) -> Optional[BookingHold]:
        ...

    def release_hold(self, hold_id: str) -> bool:
        ...


class LocalHoldGateway:
    """Places holds through an in-process AvailabilityManager."""

    def __init__(self, manager: AvailabilityManager):
        self.manager = manager
        self.last_error: Optional[InventoryError] = None

    def create_hold(self, room_type_id, check_in, check_out, room_count, expires_in_minutes):
        self.last_error = None
        try:
            return self.manager.reserve_hold(
                room_type_id, check_in, check_out, room_count, expires_in_minutes,
            )
        except InventoryError as e:
            logger.warning(f"Hold rejected: {e}")
            self.last_error = e
            return None

    def release_hold(self, hold_id: str) -> bool:
        return self.manager.release_booking_hold(hold_id)


class HttpHoldGateway:
    """
    Places holds through the inventory HTTP API

    POST {base_url}/holds/ and DELETE {base_url}/holds/<hold_id>/. Failed
    calls are turned into booking errors, logged, and reported as
    None/False.
    """

    def __init__(
        self,
        base_url: str,
        http: Optional[requests.Session] = None,
        timeout: float = 10.0,
        errors: BookingErrorHandler = default_error_handler,
    ):
        self.base_url = base_url.rstrip('/')
        self.http = http or requests.Session()
        self.timeout = timeout
        self.errors = errors
        self.last_error: Optional[InventoryError] = None

    def create_hold(self, room_type_id, check_in, check_out, room_count, expires_in_minutes):
        url = f"{self.base_url}/holds/"
        payload = {
            'room_type_id': str(room_type_id),
            'check_in_date': check_in.isoformat(),
            'check_out_date': check_out.isoformat(),
            'room_count': room_count,
            'expires_in_minutes': expires_in_minutes,
        }
        context = {'operation': 'create_hold', 'room_type_id': str(room_type_id)}
        self.last_error = None

        try:
            response = self.http.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            self.errors.log_error(self.errors.handle_network_error(e, context))
            return None

        if not response.ok:
            self.errors.log_error(self.errors.handle_api_error(response, context))
            self.last_error = _shortfall_from_response(response)
            return None

        try:
            return _hold_from_dict(response.json()['hold'])
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected hold payload from {url}: {e}")
            return None

    def release_hold(self, hold_id: str) -> bool:
        context = {'operation': 'release_hold', 'hold_id': hold_id}
        try:
            response = self.http.delete(f"{self.base_url}/holds/{hold_id}/", timeout=self.timeout)
        except requests.RequestException as e:
            self.errors.log_error(self.errors.handle_network_error(e, context))
            return False

        if not response.ok:
            self.errors.log_error(self.errors.handle_api_error(response, context))
            return False
        return True


# ===== Session manager =====

class BookingSessionManager:
    """
    Guest booking session with sliding expiry

    Usage:
        manager = BookingSessionManager(InMemorySessionStorage(), hold_gateway=gateway)
        session = manager.create_session()
        manager.update_session(step=BookingStep.RESULTS)
        hold = manager.create_booking_hold(room_type_id, check_in, check_out)

    Any update pushes expires_at to now + session timeout. Reads of an
    expired session clear storage and return None.
    """

    def __init__(
        self,
        storage: SessionStorage,
        hold_gateway: Optional[HoldGateway] = None,
        clock: Clock = system_clock,
        config: Optional[SessionConfig] = None,
    ):
        self.storage = storage
        self.hold_gateway = hold_gateway
        self.clock = clock
        self.config = config or SessionConfig()
        self.last_hold_error: Optional[InventoryError] = None

    # ===== Session lifecycle =====

    def create_session(
        self,
        session_id: Optional[str] = None,
        config: Optional[SessionConfig] = None,
    ) -> BookingSession:
        """
        Start a new session

        Args:
            session_id: Explicit id; generated when omitted
            config: Overrides the manager's config for this session

        Returns:
            The new session, expiring session_timeout_minutes from now
        """
        config = config or self.config
        now = self.clock.now()
        session = BookingSession(
            session_id=session_id or self.generate_session_id(),
            expires_at=now + timedelta(minutes=config.session_timeout_minutes),
            created_at=now,
            timeout_minutes=config.session_timeout_minutes,
        )

        if config.persist_to_storage:
            self._save(session)

        logger.info(f"Booking session {session.session_id} created")
        return session

    def get_current_session(self) -> Optional[BookingSession]:
        """Load the stored session; expired or unreadable sessions are cleared."""
        raw = self.storage.get(STORAGE_KEY)
        if not raw:
            return None

        try:
            session = BookingSession.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable booking session: {e}")
            self.clear_session()
            return None

        if session.expires_at < self.clock.now():
            logger.info(f"Booking session {session.session_id} expired")
            self.clear_session()
            return None

        return session

    def update_session(self, **changes) -> Optional[BookingSession]:
        """
        Merge changes into the current session and restart its timeout

        Returns:
            The updated session, or None when there is no live session

        Raises:
            ValueError: If a field cannot be updated
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update session fields: {', '.join(sorted(unknown))}")

        session = self.get_current_session()
        if session is None:
            return None

        if 'step' in changes:
            changes['step'] = BookingStep(changes['step'])
        criteria = changes.get('search_criteria')
        if isinstance(criteria, dict):
            changes['search_criteria'] = SearchCriteria.from_dict(criteria)

        timeout = session.timeout_minutes or self.config.session_timeout_minutes
        updated = replace(session, **changes, expires_at=self.clock.now() + timedelta(minutes=timeout))
        self._save(updated)
        return updated

    def clear_session(self) -> None:
        self.storage.delete(STORAGE_KEY)
        self.storage.delete(HOLD_STORAGE_KEY)

    def extend_session(self, minutes: int = 30) -> bool:
        """Set expiry to now + minutes; False when there is no live session."""
        session = self.get_current_session()
        if session is None:
            return False

        self._save(replace(session, expires_at=self.clock.now() + timedelta(minutes=minutes)))
        return True

    def get_timeout_warning(self, session: BookingSession) -> TimeoutWarning:
        minutes = math.floor((session.expires_at - self.clock.now()).total_seconds() / 60)
        return TimeoutWarning(
            show_warning=0 < minutes <= self.config.warning_minutes,
            minutes_remaining=max(0, minutes),
        )

    def validate_session(self, session: Optional[BookingSession]) -> SessionValidation:
        """Checks run before the guest may proceed to payment."""
        if session is None:
            return SessionValidation(valid=False, issues=['No active session'])

        issues = []
        if not session.session_id:
            issues.append('Missing session ID')
        if session.expires_at < self.clock.now():
            issues.append('Session expired')
        if session.search_criteria is None:
            issues.append('Missing search criteria')

        return SessionValidation(valid=not issues, issues=issues)

    def get_session_stats(self) -> SessionStats:
        session = self.get_current_session()
        if session is None:
            return SessionStats(session_age_minutes=0, time_remaining_minutes=0, step='none', has_holds=False)

        now = self.clock.now()
        return SessionStats(
            session_age_minutes=math.floor((now - session.created_at).total_seconds() / 60),
            time_remaining_minutes=math.floor((session.expires_at - now).total_seconds() / 60),
            step='held' if session.booking_hold_id else 'browsing',
            has_holds=bool(self.get_active_holds()),
        )

    # ===== Holds =====

    def create_booking_hold(
        self,
        room_type_id: str,
        check_in: date,
        check_out: date,
        room_count: int = 1,
    ) -> Optional[BookingHold]:
        """
        Place a hold through the gateway and cache it locally

        The hold is attached to the current session when there is one.
        Returns None when the hold could not be placed; last_hold_error then
        carries the inventory error behind it, if the gateway reported one.
        """
        if self.hold_gateway is None:
            raise RuntimeError('BookingSessionManager has no hold gateway configured')

        self.last_hold_error = None
        hold = self.hold_gateway.create_hold(
            str(room_type_id), check_in, check_out, room_count, self.config.hold_timeout_minutes,
        )
        if hold is None:
            self.last_hold_error = self.hold_gateway.last_error
            return None

        self._save_holds(self.get_active_holds() + [hold])
        if self.get_current_session() is not None:
            self.update_session(booking_hold_id=hold.hold_id)
        return hold

    def release_booking_hold(self, hold_id: str) -> bool:
        if self.hold_gateway is None:
            raise RuntimeError('BookingSessionManager has no hold gateway configured')

        if not self.hold_gateway.release_hold(hold_id):
            return False

        self._save_holds([hold for hold in self.get_active_holds() if hold.hold_id != hold_id])
        session = self.get_current_session()
        if session is not None and session.booking_hold_id == hold_id:
            self.update_session(booking_hold_id=None)
        return True

    def get_active_holds(self) -> List[BookingHold]:
        """Cached holds that have not lapsed; lapsed entries are dropped from storage."""
        raw = self.storage.get(HOLD_STORAGE_KEY)
        if not raw:
            return []

        try:
            holds = [_hold_from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable hold cache: {e}")
            self.storage.delete(HOLD_STORAGE_KEY)
            return []

        now = self.clock.now()
        active = [hold for hold in holds if not hold.is_expired(now)]
        if len(active) != len(holds):
            self._save_holds(active)
        return active

    # ===== Ids =====

    @staticmethod
    def generate_session_id() -> str:
        return f"sess_{uuid.uuid4().hex}"

    @staticmethod
    def generate_hold_id() -> str:
        return make_hold_id()

    def _save(self, session: BookingSession) -> None:
        self.storage.set(STORAGE_KEY, session.to_dict())

    def _save_holds(self, holds: List[BookingHold]) -> None:
        self.storage.set(HOLD_STORAGE_KEY, [_hold_to_dict(hold) for hold in holds])
