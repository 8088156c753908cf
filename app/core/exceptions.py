from fastapi import status


class AppException(Exception):
    """Base for errors raised by services and rendered by the exception handlers in app.main.

    Each subclass carries the HTTP status and the machine-readable error code
    returned to clients as {"error": code, "message": message}.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InternalError(AppException):
    pass


# --- 400: malformed or out-of-range input ---
class ValidationError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "validation_error"
    default_message = "Bad Request"


class InvalidRatePlan(ValidationError):
    error = "invalid_rate_plan"
    default_message = "Rate plan does not exist or is inactive"


class InvalidVehicle(ValidationError):
    error = "invalid_vehicle"
    default_message = "Vehicle does not exist"


class InvalidAmount(ValidationError):
    error = "invalid_amount"
    default_message = "Amount must be positive"


class InvalidInspection(ValidationError):
    error = "invalid_inspection"
    default_message = "Inspection data is invalid"


# --- 404 ---
class NotFound(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"
    default_message = "Not Found"


class BookingNotFound(NotFound):
    default_message = "Booking not found"


class VehicleNotFound(NotFound):
    default_message = "Vehicle not found"


class RatePlanNotFound(NotFound):
    default_message = "Rate plan not found"


# --- state or availability violations ---
class Conflict(AppException):
    status_code = status.HTTP_409_CONFLICT
    error = "conflict"
    default_message = "Conflict"


class VehicleUnavailable(Conflict):
    error = "vehicle_unavailable"
    default_message = "Vehicle is not available for the requested window"


class InvalidStateTransition(Conflict):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "bad_state"
    default_message = "Booking is not in a state that allows this action"


class BadStateOrNotFound(Conflict):
    """Manual confirm/cancel report a missing booking and a wrong state the same way."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "bad_state_or_not_found"
    default_message = "Booking not found or not in the required state"


class DuplicatePlate(Conflict):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "duplicate_plate"
    default_message = "A vehicle with this plate already exists"


# --- 502: payment provider failures ---
class UpstreamError(AppException):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "upstream_error"
    default_message = "Payment provider request failed"
