"""
Shared Kernel

Base classes and utilities shared across the hotels, pricing, inventory
and bookings contexts: value objects, domain events, the clock and the
message bus.
"""
