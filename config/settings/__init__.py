"""Settings modules.

``base`` holds everything shared, including the booking-funnel knobs;
``dev``, ``prod`` and ``test`` override per environment.
"""
