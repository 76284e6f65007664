"""Inventory app package.

Room inventory blocks, stay restrictions and time-boxed booking holds.
Availability is derived on every query from these records plus confirmed
bookings; holds are short leases that keep capacity aside while a guest
completes checkout.
"""
