"""API views for pricing."""

from __future__ import annotations

from decimal import Decimal

from django.utils import timezone  # type: ignore
from rest_framework import status  # type: ignore
from rest_framework.permissions import AllowAny  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .serializers import CurrencyRatesQuerySerializer, QuoteRequestSerializer, RateBreakdownSerializer
from .services import get_exchange_rates, quote_room_type

RATE_PRECISION = Decimal("0.000001")


class QuoteView(APIView):
    """Price a room type for the requested stay."""

    permission_classes = [AllowAny]

    def post(self, request):  # type: ignore
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        room_type = data["room_type"]
        breakdown = quote_room_type(
            room_type,
            data["check_in"],
            data["check_out"],
            adults=data["adults"],
            children=data["children"],
            rate_plan_type=data["rate_plan_type"],
            currency=data["currency"],
        )
        payload = {
            "room_type_id": str(room_type.id),
            "hotel_id": str(room_type.hotel_id),
            "check_in": data["check_in"],
            "check_out": data["check_out"],
            "rate_plan_type": data["rate_plan_type"],
            "breakdown": RateBreakdownSerializer(breakdown).data,
        }
        return Response(payload, status=status.HTTP_200_OK)


class CurrencyRatesView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):  # type: ignore
        serializer = CurrencyRatesQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        table = get_exchange_rates(serializer.validated_data["base"])
        return Response(
            {
                "base": table.base,
                "rates": {code: str(rate.quantize(RATE_PRECISION)) for code, rate in table.rates.items()},
                "source": table.source,
                "effective_date": table.as_of,
                "timestamp": timezone.now(),
            }
        )
