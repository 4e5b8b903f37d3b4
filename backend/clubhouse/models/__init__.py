from .members import Member
from .facilities import Facility, FacilityHold, Reservation, OutOfOrderPeriod
from .bookings import Booking, BookingUnit, BookingSlot, CancellationRequest
from .vouchers import PaymentVoucher, DocumentSequence, BookingLedgerEvent

__all__ = [
    'Member',
    'Facility', 'FacilityHold', 'Reservation', 'OutOfOrderPeriod',
    'Booking', 'BookingUnit', 'BookingSlot', 'CancellationRequest',
    'PaymentVoucher', 'DocumentSequence', 'BookingLedgerEvent',
]
