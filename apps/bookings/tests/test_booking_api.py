"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core import mail
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.hotels.models import Hotel, RoomType
from apps.inventory.models import BookingHold


class BookingTestMixin:
    def setUp(self) -> None:
        self.hotel = Hotel.objects.create(
            id="a1111111-1111-1111-1111-111111111111",
            name="Ambassador Jerusalem",
            city="Jerusalem",
            tax_region=Hotel.TaxRegion.JERUSALEM,
        )
        self.room_type = RoomType.objects.create(
            hotel=self.hotel,
            name="Deluxe King",
            base_price=Decimal("100.00"),
            max_occupancy=3,
            total_inventory=10,
        )
        self.today = timezone.now().date()
        self.check_in = self.today + timedelta(days=40)
        self.check_out = self.check_in + timedelta(days=3)

    def _hold(self, room_count: int = 1) -> str:
        response = self.client.post(
            reverse("inventory-hold-list"),
            {
                "room_type_id": str(self.room_type.id),
                "check_in_date": str(self.check_in),
                "check_out_date": str(self.check_out),
                "room_count": room_count,
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data["hold"]["hold_id"]

    def _booking_payload(self, hold_id: str, **extra) -> dict:
        payload = {
            "hold_id": hold_id,
            "guest_first_name": "Dana",
            "guest_last_name": "Levi",
            "guest_email": "dana@example.com",
            "guest_phone": "+972500000000",
            "adults": 2,
        }
        payload.update(extra)
        return payload

    def _book(self, **extra):
        with self.captureOnCommitCallbacks(execute=True):
            return self.client.post(
                reverse("booking-list"),
                self._booking_payload(self._hold(), **extra),
                format="json",
            )


class BookingCreateAPITests(BookingTestMixin, APITestCase):
    def test_booking_is_created_from_hold(self) -> None:
        response = self._book()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["total_amount"], "429")
        self.assertEqual(response.data["deposit_amount"], "129")
        self.assertEqual(response.data["status"], Booking.Status.PENDING)
        self.assertEqual(response.data["nights"], 3)
        self.assertEqual(len(response.data["confirmation_number"]), 8)

        hold = BookingHold.objects.get(hold_id=response.data["hold_id"])
        self.assertEqual(hold.status, BookingHold.Status.CONVERTED)
        self.assertEqual(str(hold.booking_id), str(response.data["id"]))

    def test_confirmation_email_is_sent_after_commit(self) -> None:
        response = self._book()

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(response.data["confirmation_number"], mail.outbox[0].subject)
        self.assertEqual(mail.outbox[0].to, ["dana@example.com"])

    def test_multi_room_hold_prices_every_room(self) -> None:
        hold_id = self._hold(room_count=2)

        response = self.client.post(reverse("booking-list"), self._booking_payload(hold_id), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["rooms"], 2)
        self.assertEqual(response.data["total_amount"], "858")

    def test_unknown_hold_is_an_availability_change(self) -> None:
        response = self.client.post(
            reverse("booking-list"),
            self._booking_payload("hold_missing"),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        error = response.data["error"]
        self.assertEqual(error["code"], "AVAILABILITY_CHANGED")
        self.assertEqual(error["recovery_actions"][0]["label"], "Check New Availability")
        self.assertEqual(Booking.objects.count(), 0)

    def test_expired_hold_cannot_be_booked(self) -> None:
        hold_id = self._hold()
        BookingHold.objects.filter(hold_id=hold_id).update(expires_at=timezone.now() - timedelta(seconds=1))

        response = self.client.post(reverse("booking-list"), self._booking_payload(hold_id), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Booking.objects.count(), 0)

    def test_hold_cannot_be_booked_twice(self) -> None:
        hold_id = self._hold()
        first = self.client.post(reverse("booking-list"), self._booking_payload(hold_id), format="json")
        second = self.client.post(reverse("booking-list"), self._booking_payload(hold_id), format="json")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Booking.objects.count(), 1)

    def test_rate_validation_errors_use_the_error_catalog(self) -> None:
        response = self.client.post(
            reverse("booking-list"),
            self._booking_payload(self._hold(), adults=0),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "VALIDATION_ADULTS")
        self.assertEqual(Booking.objects.count(), 0)

    def test_booking_requires_guest_details(self) -> None:
        response = self.client.post(reverse("booking-list"), {"hold_id": self._hold()}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("guest_email", response.data)


class BookingAccessAPITests(BookingTestMixin, APITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.booking = self.client.post(
            reverse("booking-list"),
            self._booking_payload(self._hold()),
            format="json",
        ).data
        User = get_user_model()
        self.guest = User.objects.create_user(username="dana", email="Dana@example.com", password="GuestPass123")
        self.other = User.objects.create_user(username="eli", email="eli@example.com", password="GuestPass123")

    def test_list_requires_authentication(self) -> None:
        response = self.client.get(reverse("booking-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_guest_sees_own_bookings(self) -> None:
        self.client.force_authenticate(self.guest)
        response = self.client.get(reverse("booking-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b["id"] for b in response.data], [self.booking["id"]])

    def test_other_guest_sees_nothing(self) -> None:
        self.client.force_authenticate(self.other)
        response = self.client.get(reverse("booking-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

    def test_lookup_by_confirmation_number_and_email(self) -> None:
        response = self.client.post(
            reverse("booking-lookup"),
            {"confirmation_number": self.booking["confirmation_number"].lower(), "email": "DANA@example.com"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["id"], self.booking["id"])

    def test_lookup_with_wrong_email(self) -> None:
        response = self.client.post(
            reverse("booking-lookup"),
            {"confirmation_number": self.booking["confirmation_number"], "email": "eli@example.com"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class BookingCancelAPITests(BookingTestMixin, APITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.booking_id = self.client.post(
            reverse("booking-list"),
            self._booking_payload(self._hold()),
            format="json",
        ).data["id"]
        self.url = reverse("booking-cancel", args=[self.booking_id])

    def test_guest_cancels_with_booking_email(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.url, {"email": "dana@example.com", "reason": "Plans changed"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], Booking.Status.CANCELLED)
        self.assertEqual(response.data["cancellation_reason"], "Plans changed")
        self.assertIsNotNone(response.data["cancelled_at"])
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("cancelled", mail.outbox[0].subject)

    def test_cancelled_booking_frees_inventory(self) -> None:
        self.client.post(self.url, {"email": "dana@example.com"}, format="json")

        self.assertFalse(
            Booking.objects.filter(room_type=self.room_type, status__in=Booking.ACTIVE_STATUSES).exists()
        )

    def test_cancel_twice(self) -> None:
        self.client.post(self.url, {"email": "dana@example.com"}, format="json")
        response = self.client.post(self.url, {"email": "dana@example.com"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Booking is already cancelled.")

    def test_cancel_with_wrong_email_is_refused(self) -> None:
        response = self.client.post(self.url, {"email": "eli@example.com"}, format="json")

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
        self.assertEqual(Booking.objects.get(pk=self.booking_id).status, Booking.Status.PENDING)

    def test_cancellation_deadline(self) -> None:
        booking = Booking.objects.get(pk=self.booking_id)
        booking.check_in = self.today + timedelta(days=1)
        booking.check_out = self.today + timedelta(days=2)
        booking.save()

        response = self.client.post(self.url, {"email": "dana@example.com"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Cancellation deadline has passed", response.data["detail"])

    def test_completed_booking_cannot_be_cancelled(self) -> None:
        Booking.objects.filter(pk=self.booking_id).update(status=Booking.Status.COMPLETED)

        response = self.client.post(self.url, {"email": "dana@example.com"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class BookingSessionAPITests(BookingTestMixin, APITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.url = reverse("booking-session")

    def test_missing_session_is_reported_as_expired(self) -> None:
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        error = response.data["error"]
        self.assertEqual(error["code"], "SESSION_EXPIRED")
        self.assertEqual(error["recovery_actions"][0]["target"], "/booking")

    def test_session_lifecycle(self) -> None:
        created = self.client.post(self.url, format="json")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        session_id = created.data["session"]["session_id"]
        self.assertTrue(session_id.startswith("sess_"))
        self.assertEqual(created.data["validation"]["issues"], ["Missing search criteria"])

        updated = self.client.patch(
            self.url,
            {
                "step": "results",
                "search_criteria": {
                    "hotel_id": str(self.hotel.id),
                    "check_in_date": str(self.check_in),
                    "check_out_date": str(self.check_out),
                },
            },
            format="json",
        )
        self.assertEqual(updated.status_code, status.HTTP_200_OK, updated.data)
        self.assertEqual(updated.data["session"]["session_id"], session_id)
        self.assertEqual(updated.data["session"]["step"], "results")
        self.assertTrue(updated.data["validation"]["valid"])

        current = self.client.get(self.url)
        self.assertEqual(current.status_code, status.HTTP_200_OK)
        self.assertEqual(current.data["stats"]["step"], "browsing")
        self.assertFalse(current.data["timeout_warning"]["show_warning"])

        extended = self.client.post(reverse("booking-session-extend"), {"minutes": 45}, format="json")
        self.assertEqual(extended.status_code, status.HTTP_200_OK)

        cleared = self.client.delete(self.url)
        self.assertEqual(cleared.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_search_criteria(self) -> None:
        self.client.post(self.url, format="json")
        response = self.client.patch(
            self.url,
            {
                "search_criteria": {
                    "hotel_id": str(self.hotel.id),
                    "check_in_date": str(self.check_out),
                    "check_out_date": str(self.check_in),
                },
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def _hold_payload(self, **extra) -> dict:
        payload = {
            "room_type_id": str(self.room_type.id),
            "check_in_date": str(self.check_in),
            "check_out_date": str(self.check_out),
            "room_count": 1,
        }
        payload.update(extra)
        return payload

    def test_session_hold_lifecycle(self) -> None:
        self.client.post(self.url, format="json")

        created = self.client.post(reverse("booking-session-hold"), self._hold_payload(), format="json")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        hold_id = created.data["hold"]["hold_id"]
        self.assertTrue(BookingHold.objects.filter(hold_id=hold_id, status=BookingHold.Status.ACTIVE).exists())

        session = self.client.get(self.url).data
        self.assertEqual(session["session"]["booking_hold_id"], hold_id)
        self.assertEqual(session["stats"]["step"], "held")

        holds = self.client.get(reverse("booking-session-hold"))
        self.assertEqual([h["hold_id"] for h in holds.data["holds"]], [hold_id])

        released = self.client.delete(reverse("booking-session-hold-detail", args=[hold_id]))
        self.assertEqual(released.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(BookingHold.objects.get(hold_id=hold_id).status, BookingHold.Status.EXPIRED)
        self.assertIsNone(self.client.get(self.url).data["session"]["booking_hold_id"])

    def test_session_hold_requires_session(self) -> None:
        response = self.client.post(reverse("booking-session-hold"), self._hold_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(BookingHold.objects.exists())

    def test_session_hold_without_inventory(self) -> None:
        self.client.post(self.url, format="json")
        RoomType.objects.filter(pk=self.room_type.pk).update(total_inventory=0)

        response = self.client.post(reverse("booking-session-hold"), self._hold_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        error = response.data["error"]
        self.assertEqual(error["code"], "INVENTORY_INSUFFICIENT")
        self.assertEqual(error["context"]["available"], 0)

    def test_session_and_direct_holds_report_the_same_shortfall(self) -> None:
        self.client.post(self.url, format="json")
        RoomType.objects.filter(pk=self.room_type.pk).update(total_inventory=1)

        direct = self.client.post(reverse("inventory-hold-list"), self._hold_payload(room_count=3), format="json")
        session = self.client.post(reverse("booking-session-hold"), self._hold_payload(room_count=3), format="json")

        self.assertEqual(direct.status_code, session.status_code)
        self.assertEqual(direct.data["error"]["code"], session.data["error"]["code"])
        self.assertEqual(session.data["error"]["context"]["requested"], 3)

    def test_session_hold_on_inactive_room_type(self) -> None:
        self.client.post(self.url, format="json")
        self.room_type.status = RoomType.Status.INACTIVE
        self.room_type.save()

        response = self.client.post(reverse("booking-session-hold"), self._hold_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "AVAILABILITY_CHANGED")
        self.assertFalse(BookingHold.objects.exists())
        self.assertIsNone(self.client.get(self.url).data["session"]["booking_hold_id"])

    def test_release_unknown_hold(self) -> None:
        self.client.post(self.url, format="json")
        response = self.client.delete(reverse("booking-session-hold-detail", args=["hold_missing"]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
