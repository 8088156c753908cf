from enum import Enum


class VehicleStatus(str, Enum):
    # Denormalized display state; availability is decided from bookings
    available = "available"
    booked = "booked"
    out = "out"
    service = "service"


class BookingStatus(str, Enum):
    hold = "hold"
    confirmed = "confirmed"
    checked_out = "checked_out"
    returned = "returned"
    closed = "closed"
    canceled = "canceled"


# Statuses that reserve the vehicle for the booking window
BLOCKING_BOOKING_STATUSES = (
    BookingStatus.hold.value,
    BookingStatus.confirmed.value,
    BookingStatus.checked_out.value,
)


class PaymentStatus(str, Enum):
    pending = "pending"
    success = "success"
    failed = "failed"


class PaymentType(str, Enum):
    deposit = "deposit"
    rental = "rental"
    refund = "refund"


class PaymentChannel(str, Enum):
    mpesa = "mpesa"


class InspectionType(str, Enum):
    checkout = "checkout"
    checkin = "checkin"
