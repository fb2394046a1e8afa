from .generated import (
    Availabilities,
    Base,
    Bookings,
    Clients,
    GroupClasses,
    GroupParticipants,
    GroupRegistrations,
    GroupSessions,
    Professionals,
    RecurrenceRules,
    Services,
)
from .enums import (
    BookingKind,
    BookingStatus,
    PaymentStatus,
    RecurrenceType,
    RegistrationStatus,
    SessionStatus,
)

__all__ = [
    "Availabilities",
    "Base",
    "Bookings",
    "Clients",
    "GroupClasses",
    "GroupParticipants",
    "GroupRegistrations",
    "GroupSessions",
    "Professionals",
    "RecurrenceRules",
    "Services",
    "BookingKind",
    "BookingStatus",
    "PaymentStatus",
    "RecurrenceType",
    "RegistrationStatus",
    "SessionStatus",
]
