"""Integration tests for availability, hold and summary endpoints."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.hotels.models import Hotel, RoomType
from apps.inventory.domain.availability import InventoryError
from apps.inventory.models import BookingHold, InventoryBlock, RoomRestriction
from apps.inventory.services import DjangoInventoryStore
from apps.inventory.tasks import cleanup_expired_holds


class InventoryAPITestCase(APITestCase):
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
        self.check_in = timezone.now().date() + timedelta(days=40)
        self.check_out = self.check_in + timedelta(days=3)

    def _hold_payload(self, room_count: int = 1) -> dict:
        return {
            "room_type_id": str(self.room_type.id),
            "check_in_date": str(self.check_in),
            "check_out_date": str(self.check_out),
            "room_count": room_count,
        }


class AvailabilityAPITests(InventoryAPITestCase):
    def _search(self, **extra):
        payload = {
            "hotel": self.hotel.slug,
            "check_in": str(self.check_in),
            "check_out": str(self.check_out),
            "adults": 2,
        }
        payload.update(extra)
        return self.client.post(reverse("inventory-availability"), payload, format="json")

    def test_availability_with_priced_offers(self) -> None:
        response = self._search()

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["available"])
        [inventory] = response.data["inventory"]
        self.assertEqual(inventory["net_available"], 10)
        self.assertEqual(inventory["oversell_limit"], 1)
        self.assertEqual(inventory["can_book_rooms"], 10)
        self.assertEqual(inventory["hold_capacity"], 10)
        [offer] = response.data["offers"]
        self.assertEqual(offer["hold_capacity"], 10)
        self.assertEqual(offer["room_type"]["name"], "Deluxe King")
        self.assertEqual(offer["rate"]["total_amount"], "429")

    def test_hotel_can_be_addressed_by_id(self) -> None:
        response = self._search(hotel=str(self.hotel.id))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_unknown_hotel(self) -> None:
        response = self._search(hotel="no-such-hotel")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_check_out_must_follow_check_in(self) -> None:
        response = self._search(check_out=str(self.check_in))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_blocks_reduce_inventory(self) -> None:
        InventoryBlock.objects.create(
            room_type=self.room_type,
            start_date=self.check_in,
            end_date=self.check_in,
            rooms_blocked=3,
            reason=InventoryBlock.Reason.MAINTENANCE,
        )
        InventoryBlock.objects.create(
            room_type=self.room_type,
            start_date=self.check_out - timedelta(days=1),
            end_date=self.check_out + timedelta(days=5),
            rooms_blocked=2,
            reason=InventoryBlock.Reason.GROUP,
        )

        [inventory] = self._search().data["inventory"]

        self.assertEqual(inventory["maintenance_rooms"], 3)
        self.assertEqual(inventory["blocked_rooms"], 2)
        self.assertEqual(inventory["net_available"], 5)
        self.assertEqual(inventory["can_book_rooms"], 6)

    def test_offers_follow_hold_capacity_inside_the_oversell_margin(self) -> None:
        InventoryBlock.objects.create(
            room_type=self.room_type,
            start_date=self.check_in,
            end_date=self.check_out,
            rooms_blocked=3,
            reason=InventoryBlock.Reason.GROUP,
        )
        for _ in range(8):
            response = self.client.post(reverse("inventory-hold-list"), self._hold_payload(1), format="json")
            self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

        response = self._search(rooms=1)

        self.assertTrue(response.data["available"])
        [inventory] = response.data["inventory"]
        self.assertEqual(inventory["held_rooms"], 8)
        self.assertEqual(inventory["can_book_rooms"], 1)
        self.assertEqual(inventory["hold_capacity"], 0)
        self.assertEqual(response.data["offers"], [])

        response = self.client.post(reverse("inventory-hold-list"), self._hold_payload(1), format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "INVENTORY_INSUFFICIENT")

    def test_bookings_and_holds_reduce_inventory(self) -> None:
        Booking.objects.create(
            hotel=self.hotel,
            room_type=self.room_type,
            guest_first_name="Dana",
            guest_last_name="Levi",
            guest_email="dana@example.com",
            check_in=self.check_in,
            check_out=self.check_out,
            rooms=4,
        )
        self.client.post(reverse("inventory-hold-list"), self._hold_payload(2), format="json")

        [inventory] = self._search().data["inventory"]

        self.assertEqual(inventory["available_rooms"], 6)
        self.assertEqual(inventory["held_rooms"], 2)
        self.assertEqual(inventory["net_available"], 4)

    def test_restrictions_are_reported_but_do_not_block(self) -> None:
        RoomRestriction.objects.create(
            room_type=self.room_type,
            restriction_type=RoomRestriction.RestrictionType.MINIMUM_STAY,
            start_date=self.check_in,
            end_date=self.check_out,
            value=5,
        )

        response = self._search()

        self.assertTrue(response.data["available"])
        [restriction] = response.data["restrictions"]
        self.assertEqual(restriction["type"], "minimum_stay")
        self.assertEqual(restriction["message"], "Minimum stay of 5 nights required")


class HoldAPITests(InventoryAPITestCase):
    def test_hold_lifecycle(self) -> None:
        created = self.client.post(reverse("inventory-hold-list"), self._hold_payload(2), format="json")

        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        hold_id = created.data["hold"]["hold_id"]
        self.assertTrue(hold_id.startswith("hold_"))
        self.assertEqual(created.data["hold"]["status"], "active")
        self.assertEqual(created.data["hold"]["room_count"], 2)

        detail_url = reverse("inventory-hold-detail", args=[hold_id])
        self.assertEqual(self.client.get(detail_url).data["hold"]["status"], "active")

        self.assertEqual(self.client.delete(detail_url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(detail_url).data["hold"]["status"], "expired")
        self.assertEqual(self.client.delete(detail_url).status_code, status.HTTP_204_NO_CONTENT)

    def test_hold_beyond_capacity_is_rejected(self) -> None:
        response = self.client.post(reverse("inventory-hold-list"), self._hold_payload(11), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        error = response.data["error"]
        self.assertEqual(error["code"], "INVENTORY_INSUFFICIENT")
        self.assertEqual(error["context"]["requested"], 11)
        self.assertEqual(error["context"]["available"], 10)
        self.assertFalse(BookingHold.objects.exists())

    def test_second_hold_cannot_take_the_same_rooms(self) -> None:
        first = self.client.post(reverse("inventory-hold-list"), self._hold_payload(10), format="json")
        second = self.client.post(reverse("inventory-hold-list"), self._hold_payload(2), format="json")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data["error"]["context"]["available"], 1)

    def test_unknown_hold(self) -> None:
        url = reverse("inventory-hold-detail", args=["hold_missing"])
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_404_NOT_FOUND)

    def test_inactive_room_type_cannot_be_held(self) -> None:
        self.room_type.status = RoomType.Status.INACTIVE
        self.room_type.save()

        response = self.client.post(reverse("inventory-hold-list"), self._hold_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("room_type_id", response.data)

    def test_store_refuses_inactive_room_types(self) -> None:
        self.room_type.status = RoomType.Status.INACTIVE
        self.room_type.save()

        with self.assertRaises(InventoryError):
            DjangoInventoryStore().get_room_type(str(self.room_type.id))

    def test_cleanup_task_expires_lapsed_holds(self) -> None:
        hold_id = self.client.post(
            reverse("inventory-hold-list"), self._hold_payload(), format="json"
        ).data["hold"]["hold_id"]
        BookingHold.objects.filter(hold_id=hold_id).update(expires_at=timezone.now() - timedelta(minutes=1))

        self.assertEqual(cleanup_expired_holds(), {"expired": 1})
        self.assertEqual(BookingHold.objects.get(hold_id=hold_id).status, BookingHold.Status.EXPIRED)
        self.assertEqual(cleanup_expired_holds(), {"expired": 0})


class InventorySummaryAPITests(InventoryAPITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.url = reverse("inventory-summary")

    def test_summary_requires_staff(self) -> None:
        response = self.client.get(self.url, {"hotel": self.hotel.slug})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_summary_for_a_night(self) -> None:
        staff = get_user_model().objects.create_user(username="ops", password="OpsPass123", is_staff=True)
        self.client.force_authenticate(staff)
        Booking.objects.create(
            hotel=self.hotel,
            room_type=self.room_type,
            guest_first_name="Dana",
            guest_last_name="Levi",
            guest_email="dana@example.com",
            check_in=self.check_in,
            check_out=self.check_out,
            rooms=2,
        )

        response = self.client.get(self.url, {"hotel": self.hotel.slug, "date": str(self.check_in)})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["total_rooms"], 10)
        self.assertEqual(response.data["occupied_rooms"], 2)
        self.assertEqual(response.data["available_rooms"], 8)
        self.assertEqual(response.data["occupancy_rate"], "0.2000")
