"""Bookings app package.

The guest-facing booking funnel: booking sessions with sliding expiry,
the booking error catalog with recovery actions, and confirmed bookings
created from inventory holds. A booking is written and its hold converted
in one transaction, so a lapsed hold never turns into a booking.
"""
