"""
Shared dependencies for the Meetup API.

Routes depend on these rather than on the pool or transport directly, so
tests can override them with in-memory fakes.
"""
from app.auth import get_current_host, get_host_credential
from app.database import get_pool
from app.services.sms import get_sms_sender
from app.services.store import MeetupStore, PgMeetupStore


def get_store() -> MeetupStore:
    """Dependency: store bound to the global asyncpg pool"""
    return PgMeetupStore(get_pool())


__all__ = ["get_store", "get_sms_sender", "get_current_host", "get_host_credential"]
