# API Routers
from kolab.routers import rooms, bookings, guests, housekeeping, maintenance, reports

__all__ = ['rooms', 'bookings', 'guests', 'housekeeping', 'maintenance', 'reports']
