"""All models imported here for Alembic autogenerate discovery."""

from app.models.base import Base
from app.models.club import Club, Court, CourtSurface, CourtType
from app.models.reservation import PaymentStatus, Reservation, ReservationStatus, ReservationType

__all__ = [
    "Base",
    "Club",
    "Court",
    "CourtType",
    "CourtSurface",
    "Reservation",
    "ReservationStatus",
    "ReservationType",
    "PaymentStatus",
]
