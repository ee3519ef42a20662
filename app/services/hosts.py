import hashlib
import hmac
import logging
import secrets

from app.models.domain import Host
from app.services.store import MeetupStore
from app.utils.errors import service_error

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260_000


def hash_password(password: str, salt: str = None) -> str:
    """PBKDF2-SHA256, stored as 'pbkdf2_sha256$iterations$salt$hash'."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, iterations, salt, expected = stored.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


async def signup(store: MeetupStore, *, username: str, password: str, name: str, email: str, phone: str) -> Host:
    if await store.get_host_by_username(username):
        raise service_error('USERNAME_TAKEN')

    host = await store.create_host(
        username=username,
        name=name,
        email=email,
        phone=phone,
        password_hash=hash_password(password),
    )
    logger.info(f"Host account created: {host.username} ({host.id})")
    return host


async def login(store: MeetupStore, username: str, password: str) -> Host:
    host = await store.get_host_by_username(username)
    if host is None or not verify_password(password, host.password_hash):
        logger.warning(f"Failed login for host username '{username}'")
        raise service_error('INVALID_CREDENTIALS')
    return host
