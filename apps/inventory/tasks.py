"""Celery tasks for inventory."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import get_availability_manager

logger = logging.getLogger(__name__)


@shared_task(name="inventory.cleanup_expired_holds")
def cleanup_expired_holds() -> dict[str, int]:
    """
    Expire booking holds whose lease has run out.

    Runs every minute through Celery Beat. The update is conditional on
    status and expiry, so overlapping runs are harmless.

    Returns:
        dict: {"expired": number of holds expired}
    """
    expired = get_availability_manager().cleanup_expired_holds()
    if expired:
        logger.info(f"Hold cleanup expired {expired} holds")
    return {"expired": expired}
