# storefront/services/firebase.py
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from ..settings import settings

logger = logging.getLogger(__name__)


@lru_cache
def ensure_firestore() -> firestore.Client:
    """
    Return a Firestore client, initializing the Firebase app exactly once.

    - Safe to call many times (and from many threads).
    - Uses GOOGLE_APPLICATION_CREDENTIALS if present, or ADC otherwise.
    """

    if not firebase_admin._apps:
        sa_path = settings.google_application_credentials or os.environ.get(
            "GOOGLE_APPLICATION_CREDENTIALS"
        )
        try:
            if sa_path and os.path.isfile(sa_path):
                cred = credentials.Certificate(sa_path)
                firebase_admin.initialize_app(cred, {"projectId": settings.firebase_project_id})
            else:
                firebase_admin.initialize_app(options={"projectId": settings.firebase_project_id})
            logger.info("firebase app initialised for project %s", settings.firebase_project_id)
        except ValueError:
            # initialised by a concurrent caller
            pass

    return firestore.client()


# --- Document helpers ---------------------------------------------------------
def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Firestore hands back aware datetimes; naive ones are treated as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def snapshot_to_dict(snap) -> Optional[Dict[str, Any]]:
    if snap is None or not snap.exists:
        return None
    data = snap.to_dict() or {}
    data["id"] = snap.id
    return data
