"""FastAPI routers acting as controllers in the MVC architecture."""

from . import availability, bookings, monitor, reschedule

__all__ = ["availability", "bookings", "monitor", "reschedule"]
