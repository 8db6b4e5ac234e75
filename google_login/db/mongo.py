from pymongo import MongoClient, ASCENDING
from pymongo.errors import DuplicateKeyError
from bson import ObjectId
from datetime import datetime, timedelta, timezone
from uuid import uuid4
import logging

from google_login import config
from google_login.models.user import USERS_COLLECTION, GOOGLE_ID_FIELD, build_user_document

logger = logging.getLogger(__name__)

SESSIONS_COLLECTION = "sessions"


def get_client() -> MongoClient:
    """Return a MongoClient for the configured MONGO_URI."""
    return MongoClient(config.MONGO_URI)


def _now():
    # naive UTC, matching what pymongo hands back for stored datetimes
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _doc_to_dict(doc):
    """Convert a MongoDB document to a JSON-serializable dict (stringify _id)."""
    if not doc:
        return None
    out = dict(doc)
    _id = out.pop('_id', None)
    out['id'] = str(_id) if isinstance(_id, ObjectId) else _id
    return out


def ensure_indexes():
    """Create the unique google.id index on users and the TTL index on sessions."""
    client = get_client()
    try:
        db = client[config.DB_NAME]
        db[USERS_COLLECTION].create_index([(GOOGLE_ID_FIELD, ASCENDING)], unique=True)
        db[SESSIONS_COLLECTION].create_index('expires_at', expireAfterSeconds=0)
    finally:
        client.close()


# ---------------------------
# Users
# ---------------------------

def find_or_create_user(google_id: str, access_token: str = None, email: str = None) -> dict:
    """
    Return the user whose `google.id` matches, creating it on first login.

    Existing users are returned untouched: the stored access token is not
    refreshed. Database errors are not handled here and reach the caller.
    """
    client = get_client()
    try:
        coll = client[config.DB_NAME][USERS_COLLECTION]
        query = {GOOGLE_ID_FIELD: str(google_id)}

        existing = coll.find_one(query)
        if existing:
            return _doc_to_dict(existing)

        doc = build_user_document(google_id, access_token, email)
        try:
            res = coll.insert_one(doc)
        except DuplicateKeyError:
            # A concurrent first login won the insert; the unique index keeps one document.
            logger.info(f"User {google_id} created concurrently, reusing stored document.")
            return _doc_to_dict(coll.find_one(query))

        doc['_id'] = res.inserted_id
        logger.info(f"Created user for google id {google_id}.")
        return _doc_to_dict(doc)
    finally:
        client.close()


# ---------------------------
# Sessions
# ---------------------------

def create_session(user: dict, ttl_seconds: int = None) -> str:
    """Create a session holding the whole `user` dict. Returns the session id string."""
    if ttl_seconds is None:
        ttl_seconds = config.SESSION_TTL_SECONDS
    client = get_client()
    try:
        coll = client[config.DB_NAME][SESSIONS_COLLECTION]
        sid = str(uuid4())
        now = _now()
        coll.insert_one({
            '_id': sid,
            'user': dict(user),
            'created_at': now,
            'expires_at': now + timedelta(seconds=ttl_seconds),
        })
        return sid
    finally:
        client.close()


def get_session(session_id: str):
    """Return session document or None. Also returns None if expired."""
    client = get_client()
    try:
        coll = client[config.DB_NAME][SESSIONS_COLLECTION]
        doc = coll.find_one({'_id': session_id})
        if not doc:
            return None
        if doc.get('expires_at') and doc['expires_at'] < _now():
            coll.delete_one({'_id': session_id})
            return None
        return _doc_to_dict(doc)
    finally:
        client.close()


def get_session_user(session_id: str):
    """Return the user stored in the session, exactly as it was stored at login."""
    sess = get_session(session_id)
    if not sess:
        return None
    return sess.get('user')


def delete_session(session_id: str) -> int:
    client = get_client()
    try:
        coll = client[config.DB_NAME][SESSIONS_COLLECTION]
        res = coll.delete_one({'_id': session_id})
        return res.deleted_count
    finally:
        client.close()
