"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import NotFound  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.inventory.domain.availability import InventoryError
from apps.inventory.serializers import BookingHoldSerializer

from .exceptions import SessionExpiredError
from .models import Booking
from .serializers import (
    BookingCancelSerializer,
    BookingCreateSerializer,
    BookingLookupSerializer,
    BookingSerializer,
    BookingSessionSerializer,
    SessionExtendSerializer,
    SessionHoldSerializer,
    SessionStatsSerializer,
    SessionUpdateSerializer,
    TimeoutWarningSerializer,
)
from .services import (
    BookingCancellationError,
    cancel_booking,
    create_booking_from_hold,
    find_booking,
    get_session_manager,
)
from .session import SearchCriteria


def _is_staff(user) -> bool:
    return bool(getattr(user, "is_staff", False) or getattr(user, "is_superuser", False))


def _user_email(user) -> str:
    return (getattr(user, "email", "") or "").lower() if user.is_authenticated else ""


class IsBookingGuest(permissions.BasePermission):
    """Staff, the signed-in guest who booked, or anyone quoting the booking e-mail."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        if _is_staff(request.user):
            return True
        email = obj.guest_email.lower()
        if _user_email(request.user) == email:
            return True
        return str(request.data.get("email", "")).strip().lower() == email


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Create bookings from holds, list and look them up, cancel them."""

    queryset = Booking.objects.select_related("hotel", "room_type").all()
    serializer_class = BookingSerializer

    def get_permissions(self):  # type: ignore
        if self.action in ("list", "retrieve"):
            return [permissions.IsAuthenticated()]
        if self.action == "cancel":
            return [IsBookingGuest()]
        return [permissions.AllowAny()]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if self.action == "cancel" or _is_staff(user):
            return qs
        if not user.is_authenticated:
            return qs.none()
        return qs.filter(guest_email__iexact=user.email)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = create_booking_from_hold(**serializer.validated_data)
        return Response(
            BookingSerializer(booking, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["post"])
    def lookup(self, request):  # type: ignore
        serializer = BookingLookupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = find_booking(
            serializer.validated_data["confirmation_number"],
            serializer.validated_data["email"],
        )
        if booking is None:
            raise NotFound("Booking not found.")
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            cancel_booking(booking, serializer.validated_data["reason"])
        except BookingCancellationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(BookingSerializer(booking).data)


# ===== Booking session =====

def _require_session(manager):
    session = manager.get_current_session()
    if session is None:
        raise SessionExpiredError("No active booking session.")
    return session


def _session_payload(manager, session) -> dict:
    validation = manager.validate_session(session)
    return {
        "session": BookingSessionSerializer(session).data,
        "timeout_warning": TimeoutWarningSerializer(manager.get_timeout_warning(session)).data,
        "validation": {"valid": validation.valid, "issues": validation.issues},
    }


def _hold_data(hold) -> dict:
    return BookingHoldSerializer(hold).data


class BookingSessionView(APIView):
    """Current booking session of this browser."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):  # type: ignore
        manager = get_session_manager(request)
        session = _require_session(manager)
        payload = _session_payload(manager, session)
        payload["stats"] = SessionStatsSerializer(manager.get_session_stats()).data
        return Response(payload)

    def post(self, request):  # type: ignore
        manager = get_session_manager(request)
        manager.clear_session()
        session = manager.create_session()
        return Response(_session_payload(manager, session), status=status.HTTP_201_CREATED)

    def patch(self, request):  # type: ignore
        serializer = SessionUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)
        if "search_criteria" in changes:
            changes["search_criteria"] = SearchCriteria(**changes["search_criteria"])

        manager = get_session_manager(request)
        session = manager.update_session(**changes)
        if session is None:
            raise SessionExpiredError("No active booking session.")
        return Response(_session_payload(manager, session))

    def delete(self, request):  # type: ignore
        get_session_manager(request).clear_session()
        return Response(status=status.HTTP_204_NO_CONTENT)


class BookingSessionExtendView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):  # type: ignore
        serializer = SessionExtendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        manager = get_session_manager(request)
        if not manager.extend_session(serializer.validated_data["minutes"]):
            raise SessionExpiredError("No active booking session.")
        return Response(_session_payload(manager, _require_session(manager)))


class BookingSessionHoldView(APIView):
    """Hold rooms for the session's current selection."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):  # type: ignore
        manager = get_session_manager(request)
        _require_session(manager)
        return Response({"holds": [_hold_data(hold) for hold in manager.get_active_holds()]})

    def post(self, request):  # type: ignore
        serializer = SessionHoldSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        manager = get_session_manager(request)
        _require_session(manager)
        hold = manager.create_booking_hold(
            data["room_type_id"],
            data["check_in_date"],
            data["check_out_date"],
            data["room_count"],
        )
        if hold is None:
            raise manager.last_hold_error or InventoryError("The selected rooms could not be held for these dates.")
        return Response({"hold": _hold_data(hold)}, status=status.HTTP_201_CREATED)


class BookingSessionHoldDetailView(APIView):
    permission_classes = [permissions.AllowAny]

    def delete(self, request, hold_id: str):  # type: ignore
        manager = get_session_manager(request)
        if not manager.release_booking_hold(hold_id):
            raise NotFound("Hold not found.")
        return Response(status=status.HTTP_204_NO_CONTENT)