"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from shared.application.message_bus import message_bus

from .application.command_handlers import (
    CancelBookingCommand,
    CreateBookingCommand,
    CreatePaymentPreferenceCommand,
    GetSlotsQuery,
    UpdateBookingStatusCommand,
    UpdatePaymentStatusCommand,
)
from .filters import BookingFilterSet
from .models import Booking
from .serializers import (
    BookingCancelSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingStatusUpdateSerializer,
    PaymentPreferenceRequestSerializer,
    PaymentStatusUpdateSerializer,
    SlotsQuerySerializer,
)

DEFAULT_CANCELLATION_REASON = "Cancelled by user"


def _is_staff(user) -> bool:
    return bool(getattr(user, "is_staff", False) or getattr(user, "is_superuser", False))


class IsBookingStakeholder(permissions.BasePermission):
    """Owners of the booking and staff have access to it."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if _is_staff(user):
            return True
        return obj.user_id == user.id


class SlotsView(APIView):
    """Candidate slots of a court on a date with availability. Public."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):  # type: ignore
        serializer = SlotsQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        result = message_bus.handle_command(
            GetSlotsQuery(
                court_id=serializer.validated_data["court_id"],
                on_date=serializer.validated_data["date"],
            )
        )
        price = str(result.price.amount)
        price_per_person = str(result.price_per_person.amount)
        return Response(
            {
                "court_id": str(result.court_id),
                "date": result.on_date.isoformat(),
                "slots": [
                    {
                        "start_time": f"{slot.start_time:%H:%M}",
                        "end_time": f"{slot.end_time:%H:%M}",
                        "is_available": slot.is_available,
                        "price": price,
                        "price_per_person": price_per_person,
                    }
                    for slot in result.slots
                ],
                "summary": {
                    "total": len(result.slots),
                    "open": result.open_count,
                    "rate": result.open_rate,
                },
            }
        )


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Viewset для создания и управления бронированиями.

    Writes go through the booking command handlers; the ORM queryset is
    only used for reads and object permissions.
    """

    queryset = Booking.objects.select_related("court", "user").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filterset_class = BookingFilterSet

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not user.is_authenticated:
            return qs.none()
        if _is_staff(user):
            return qs
        return qs.filter(user=user)

    def _booking_response(self, booking_id, status_code=status.HTTP_200_OK) -> Response:
        booking = self.get_queryset().get(pk=booking_id)
        data = BookingSerializer(booking, context=self.get_serializer_context()).data
        return Response(data, status=status_code)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        booking = message_bus.handle_command(
            CreateBookingCommand(
                court_id=data["court_id"],
                user_id=str(request.user.pk),
                booking_date=data["booking_date"],
                start_time=data["start_time"],
                end_time=data["end_time"],
                notes=data.get("notes", ""),
            )
        )
        return self._booking_response(booking.id, status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        source = request.data if request.data else request.query_params
        serializer = BookingCancelSerializer(data=source)
        serializer.is_valid(raise_exception=True)
        result = message_bus.handle_command(
            CancelBookingCommand(
                booking_id=booking.id,
                reason=serializer.validated_data.get("reason") or DEFAULT_CANCELLATION_REASON,
                cancelled_by=str(request.user.pk),
            )
        )
        return Response(
            {
                "status": result.booking.status.value,
                "refund_granted": result.refund.refund_granted,
                "refund": result.refund.to_dict(),
            },
            status=status.HTTP_200_OK,
        )

    @action(
        detail=True,
        methods=["patch"],
        url_path="status",
        url_name="status",
        permission_classes=[permissions.IsAdminUser],
    )
    def update_status(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message_bus.handle_command(
            UpdateBookingStatusCommand(
                booking_id=booking.id,
                new_status=serializer.validated_data["status"],
                reason=serializer.validated_data.get("reason"),
                changed_by=str(request.user.pk),
            )
        )
        return self._booking_response(booking.id)

    @action(
        detail=True,
        methods=["patch"],
        url_path="payment-status",
        url_name="payment-status",
        permission_classes=[permissions.IsAdminUser],
    )
    def update_payment_status(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = PaymentStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message_bus.handle_command(
            UpdatePaymentStatusCommand(
                booking_id=booking.id,
                new_status=serializer.validated_data["payment_status"],
                method=serializer.validated_data.get("payment_method") or None,
            )
        )
        return self._booking_response(booking.id)

    @action(
        detail=True,
        methods=["post"],
        url_path="payment-preference",
        permission_classes=[permissions.IsAuthenticated, IsBookingStakeholder],
    )
    def payment_preference(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = PaymentPreferenceRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        preference = message_bus.handle_command(
            CreatePaymentPreferenceCommand(
                booking_id=booking.id,
                amount_minor_units=serializer.validated_data.get("amount"),
                expires_at=serializer.validated_data.get("expires_at"),
            )
        )
        return Response(preference.to_dict(), status=status.HTTP_201_CREATED)
