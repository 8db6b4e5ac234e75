"""User document shape.

A user is stored as a single MongoDB document with a nested Google identity:

    {"google": {"id": str, "access_token": str, "email": str}}

There is at most one document per `google.id` (unique index in `db.mongo`).
"""
from typing import Optional

USERS_COLLECTION = "users"

# Lookup key for find-or-create; must match the nested schema field.
GOOGLE_ID_FIELD = "google.id"


def build_user_document(google_id: str, access_token: Optional[str], email: Optional[str]) -> dict:
    """Build a new user document from the identity returned by Google."""
    return {
        "google": {
            "id": str(google_id),
            "access_token": access_token,
            "email": email,
        }
    }


def google_id_from_profile(profile: dict) -> str:
    """Extract the provider subject id from a Google userinfo payload.

    The v2 userinfo endpoint returns `id`; the OpenID endpoint returns `sub`.
    """
    google_id = profile.get('id') or profile.get('sub')
    if not google_id:
        raise ValueError('google id (id/sub) is required from Identity Provider')
    return str(google_id)
