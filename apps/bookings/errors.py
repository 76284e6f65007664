"""
Booking Error Handling

Error taxonomy, the catalog of well-known booking failures and the
recovery actions offered to guests.

Every error surfaced to a guest carries a non-technical user_message and
recovery actions ordered by priority. Validation errors are the exception:
they are not retryable and carry no actions, the guest just fixes input.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, TypeVar, Union

import requests

from shared.domain.clock import Clock, system_clock

logger = logging.getLogger(__name__)

T = TypeVar('T')


class BookingErrorType(str, Enum):
    NETWORK_ERROR = 'NETWORK_ERROR'
    VALIDATION_ERROR = 'VALIDATION_ERROR'
    AVAILABILITY_ERROR = 'AVAILABILITY_ERROR'
    PAYMENT_ERROR = 'PAYMENT_ERROR'
    SESSION_EXPIRED = 'SESSION_EXPIRED'
    RATE_CHANGED = 'RATE_CHANGED'
    INVENTORY_INSUFFICIENT = 'INVENTORY_INSUFFICIENT'
    SYSTEM_ERROR = 'SYSTEM_ERROR'


class Severity(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'


class RecoveryActionType(str, Enum):
    RETRY = 'retry'
    FALLBACK = 'fallback'
    REDIRECT = 'redirect'
    REFRESH = 'refresh'
    CONTACT_SUPPORT = 'contact_support'


class BookingErrorCode(str, Enum):
    NETWORK_TIMEOUT = 'NETWORK_TIMEOUT'
    AVAILABILITY_CHANGED = 'AVAILABILITY_CHANGED'
    PAYMENT_DECLINED = 'PAYMENT_DECLINED'
    SESSION_EXPIRED = 'SESSION_EXPIRED'
    RATE_CHANGED = 'RATE_CHANGED'
    INVENTORY_INSUFFICIENT = 'INVENTORY_INSUFFICIENT'


@dataclass(frozen=True)
class RecoveryAction:
    """A button offered to the guest; ``target`` is the page it leads to, if any."""
    type: RecoveryActionType
    label: str
    priority: int
    target: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'type': self.type.value,
            'label': self.label,
            'priority': self.priority,
            'target': self.target,
        }


@dataclass(frozen=True)
class ErrorTemplate:
    code: str
    type: BookingErrorType
    message: str
    user_message: str
    retryable: bool
    severity: Severity
    recovery_actions: Tuple[RecoveryAction, ...]


@dataclass(frozen=True)
class BookingError:
    code: str
    type: BookingErrorType
    message: str
    user_message: str
    retryable: bool
    severity: Severity
    recovery_actions: Tuple[RecoveryAction, ...]
    timestamp: datetime
    context: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'code': self.code,
            'type': self.type.value,
            'message': self.message,
            'user_message': self.user_message,
            'retryable': self.retryable,
            'severity': self.severity.value,
            'recovery_actions': [action.to_dict() for action in self.recovery_actions],
            'timestamp': self.timestamp.isoformat(),
            'context': dict(self.context),
        }


@dataclass(frozen=True)
class ErrorDisplay:
    title: str
    message: str
    actions: Tuple[RecoveryAction, ...]
    severity: Severity


SEARCH_PAGE = '/booking'
CONTACT_PAGE = '/contact'

ERROR_CATALOG: Mapping[BookingErrorCode, ErrorTemplate] = MappingProxyType({
    BookingErrorCode.NETWORK_TIMEOUT: ErrorTemplate(
        code=BookingErrorCode.NETWORK_TIMEOUT.value,
        type=BookingErrorType.NETWORK_ERROR,
        message='Request timed out',
        user_message='Connection timeout. Please check your internet connection and try again.',
        retryable=True,
        severity=Severity.MEDIUM,
        recovery_actions=(
            RecoveryAction(RecoveryActionType.RETRY, 'Try Again', 1),
        ),
    ),
    BookingErrorCode.AVAILABILITY_CHANGED: ErrorTemplate(
        code=BookingErrorCode.AVAILABILITY_CHANGED.value,
        type=BookingErrorType.AVAILABILITY_ERROR,
        message='Room availability changed during booking process',
        user_message="Room availability has changed. We'll help you find the best alternative.",
        retryable=True,
        severity=Severity.HIGH,
        recovery_actions=(
            RecoveryAction(RecoveryActionType.REFRESH, 'Check New Availability', 1),
            RecoveryAction(RecoveryActionType.FALLBACK, 'View Similar Rooms', 2),
        ),
    ),
    BookingErrorCode.PAYMENT_DECLINED: ErrorTemplate(
        code=BookingErrorCode.PAYMENT_DECLINED.value,
        type=BookingErrorType.PAYMENT_ERROR,
        message='Payment method declined',
        user_message='Your payment was declined. Please try a different payment method or contact your bank.',
        retryable=True,
        severity=Severity.HIGH,
        recovery_actions=(
            RecoveryAction(RecoveryActionType.RETRY, 'Try Different Card', 1),
            RecoveryAction(RecoveryActionType.CONTACT_SUPPORT, 'Contact Support', 2, CONTACT_PAGE),
        ),
    ),
    BookingErrorCode.SESSION_EXPIRED: ErrorTemplate(
        code=BookingErrorCode.SESSION_EXPIRED.value,
        type=BookingErrorType.SESSION_EXPIRED,
        message='Booking session has expired',
        user_message='Your booking session has expired for security reasons. Please start a new search.',
        retryable=True,
        severity=Severity.MEDIUM,
        recovery_actions=(
            RecoveryAction(RecoveryActionType.REDIRECT, 'Start New Search', 1, SEARCH_PAGE),
        ),
    ),
    BookingErrorCode.RATE_CHANGED: ErrorTemplate(
        code=BookingErrorCode.RATE_CHANGED.value,
        type=BookingErrorType.RATE_CHANGED,
        message='Room rate has changed',
        user_message='The room rate has changed since you started booking. The new rate is shown below.',
        retryable=True,
        severity=Severity.MEDIUM,
        recovery_actions=(
            RecoveryAction(RecoveryActionType.REFRESH, 'Accept New Rate', 1),
            RecoveryAction(RecoveryActionType.REDIRECT, 'Search Again', 2, SEARCH_PAGE),
        ),
    ),
    BookingErrorCode.INVENTORY_INSUFFICIENT: ErrorTemplate(
        code=BookingErrorCode.INVENTORY_INSUFFICIENT.value,
        type=BookingErrorType.INVENTORY_INSUFFICIENT,
        message='Not enough rooms available',
        user_message=(
            "We don't have enough rooms available for your group size. "
            "Please modify your search or contact us directly."
        ),
        retryable=True,
        severity=Severity.HIGH,
        recovery_actions=(
            RecoveryAction(RecoveryActionType.FALLBACK, 'Modify Search', 1),
            RecoveryAction(RecoveryActionType.CONTACT_SUPPORT, 'Contact Support', 2, CONTACT_PAGE),
        ),
    ),
})

GENERIC_RECOVERY_ACTIONS = (
    RecoveryAction(RecoveryActionType.RETRY, 'Try Again', 1),
    RecoveryAction(RecoveryActionType.CONTACT_SUPPORT, 'Contact Support', 2, CONTACT_PAGE),
)

SEVERITY_TITLES = MappingProxyType({
    Severity.LOW: 'Please Check',
    Severity.MEDIUM: 'Something Went Wrong',
    Severity.HIGH: 'Booking Issue',
    Severity.CRITICAL: 'System Error',
})

ANALYTICS_EVENT_NAME = 'booking_error'

AnalyticsSink = Callable[[str, Dict[str, Any]], None]


class BookingErrorHandler:
    """
    Builds, classifies and reports booking errors

    Usage:
        error = error_handler.create_error(BookingErrorCode.SESSION_EXPIRED)
        error_handler.log_error(error)
        display = error_handler.get_error_display(error)

    analytics_sink, when given, receives ('booking_error', payload) for
    every logged error.
    """

    def __init__(
        self,
        clock: Clock = system_clock,
        analytics_sink: Optional[AnalyticsSink] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.clock = clock
        self.analytics_sink = analytics_sink
        self.sleep = sleep

    def create_error(
        self,
        code: Union[BookingErrorCode, str],
        context: Optional[Mapping[str, Any]] = None,
        custom_message: Optional[str] = None,
    ) -> BookingError:
        """
        Build an error from the catalog

        Unknown codes fall back to a generic SYSTEM_ERROR with retry and
        contact-support actions. custom_message replaces the user message.
        """
        try:
            template = ERROR_CATALOG[BookingErrorCode(code)]
        except ValueError:
            return self.create_generic_error(str(code), context, custom_message)

        return BookingError(
            code=template.code,
            type=template.type,
            message=template.message,
            user_message=custom_message or template.user_message,
            retryable=template.retryable,
            severity=template.severity,
            recovery_actions=template.recovery_actions,
            timestamp=self.clock.now(),
            context=dict(context or {}),
        )

    def create_generic_error(
        self,
        code: str,
        context: Optional[Mapping[str, Any]] = None,
        custom_message: Optional[str] = None,
        error_type: BookingErrorType = BookingErrorType.SYSTEM_ERROR,
    ) -> BookingError:
        return BookingError(
            code=code,
            type=error_type,
            message=custom_message or 'An unexpected error occurred',
            user_message=(
                'We encountered an unexpected error. '
                'Please try again or contact support if the problem persists.'
            ),
            retryable=True,
            severity=Severity.MEDIUM,
            recovery_actions=GENERIC_RECOVERY_ACTIONS,
            timestamp=self.clock.now(),
            context=dict(context or {}),
        )

    def handle_api_error(self, response, context: Optional[Mapping[str, Any]] = None) -> BookingError:
        """Map an HTTP response (requests.Response or alike) to a booking error."""
        status = response.status_code
        if status in (408, 504):
            return self.create_error(BookingErrorCode.NETWORK_TIMEOUT, context)
        if status == 409:
            return self.create_error(BookingErrorCode.AVAILABILITY_CHANGED, context)
        if status == 402:
            return self.create_error(BookingErrorCode.PAYMENT_DECLINED, context)
        if status in (401, 403):
            return self.create_error(BookingErrorCode.SESSION_EXPIRED, context)

        status_text = getattr(response, 'reason', None) or getattr(response, 'status_text', '')
        return self.create_generic_error(
            f'API_ERROR_{status}',
            {**(context or {}), 'status': status, 'status_text': status_text},
        )

    def handle_network_error(self, error: BaseException, context: Optional[Mapping[str, Any]] = None) -> BookingError:
        """Timeouts and dropped connections become NETWORK_TIMEOUT."""
        details = {**(context or {}), 'original_error': str(error)}
        if isinstance(error, (requests.Timeout, requests.ConnectionError, TimeoutError, ConnectionError)):
            return self.create_error(BookingErrorCode.NETWORK_TIMEOUT, details)

        return self.create_generic_error(
            'NETWORK_ERROR',
            details,
            'Network connection error. Please check your internet connection.',
            error_type=BookingErrorType.NETWORK_ERROR,
        )

    def handle_validation_error(
        self,
        field_name: str,
        message: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> BookingError:
        return BookingError(
            code=f'VALIDATION_{field_name.upper()}',
            type=BookingErrorType.VALIDATION_ERROR,
            message=f'Validation failed for field: {field_name}',
            user_message=message,
            retryable=False,
            severity=Severity.LOW,
            recovery_actions=(),
            timestamp=self.clock.now(),
            context={**(context or {}), 'field': field_name},
        )

    async def retry_operation(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> T:
        """
        Await ``operation`` with exponential backoff

        Waits base_delay * 2**attempt seconds between attempts and re-raises
        the last error once max_retries retries are used up.

        Raises:
            ValueError: If max_retries is negative
        """
        if max_retries < 0:
            raise ValueError(f'max_retries must be zero or more, got {max_retries}')

        last_error: Optional[BaseException] = None

        for attempt in range(max_retries + 1):
            try:
                return await operation()
            except Exception as e:
                last_error = e
                if attempt == max_retries:
                    break
                delay = base_delay * (2 ** attempt)
                logger.debug(f"Attempt {attempt + 1} failed ({e}), retrying in {delay}s")
                await self.sleep(delay)

        raise last_error

    def should_auto_retry(self, error: BookingError) -> bool:
        return (
            error.retryable
            and error.severity != Severity.CRITICAL
            and error.type in (BookingErrorType.NETWORK_ERROR, BookingErrorType.SYSTEM_ERROR)
        )

    def get_error_display(self, error: BookingError) -> ErrorDisplay:
        return ErrorDisplay(
            title=SEVERITY_TITLES[error.severity],
            message=error.user_message,
            actions=tuple(sorted(error.recovery_actions, key=lambda action: action.priority)),
            severity=error.severity,
        )

    def log_error(self, error: BookingError) -> None:
        """Emit a structured record and forward it to analytics. Never raises."""
        record = {
            'code': error.code,
            'type': error.type.value,
            'severity': error.severity.value,
            'context': dict(error.context),
            'timestamp': error.timestamp.isoformat(),
        }
        logger.error('Booking error', extra={'booking_error': record})

        if self.analytics_sink is None:
            return
        try:
            self.analytics_sink(ANALYTICS_EVENT_NAME, {
                'error_code': error.code,
                'error_type': error.type.value,
                'error_severity': error.severity.value,
            })
        except Exception as e:
            logger.warning(f"Failed to report booking error {error.code} to analytics: {e}")


error_handler = BookingErrorHandler()
