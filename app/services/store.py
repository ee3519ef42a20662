"""
Persistence boundary for meetups, participants, reminders and hosts.

`MeetupStore` is what the policy code depends on. `PgMeetupStore` is the
asyncpg implementation used by the API.
"""
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Iterable, List, Optional
from uuid import UUID

from app.models.domain import Host, Meetup, Participant, ParticipantStatus, Reminder, ReminderType
from app.utils.formatting import normalize_phone


# Columns a host may change through an edit
MEETUP_EDITABLE_FIELDS = (
    "title",
    "description",
    "date",
    "location",
    "max_participants",
    "max_waitlist",
    "fee_display",
)

PARTICIPANT_UPDATABLE_FIELDS = ("status", "is_waitlisted", "confirmed_at", "checked_in_at")


class MeetupStore(ABC):
    """Abstract store. Participant lists are always ordered by (registered_at, id)."""

    @abstractmethod
    def locked(self, meetup_id: UUID) -> "AsyncIterator[MeetupStore]":
        """Async context manager serializing capacity decisions for one meetup.

        Everything done through the yielded store commits or fails together.
        """

    # Meetups
    @abstractmethod
    async def create_meetup(self, **fields) -> Meetup: ...

    @abstractmethod
    async def get_meetup(self, meetup_id: UUID) -> Optional[Meetup]: ...

    @abstractmethod
    async def update_meetup(self, meetup_id: UUID, fields: dict) -> Meetup: ...

    @abstractmethod
    async def list_meetups_for_host(self, host_id: UUID) -> List[Meetup]: ...

    # Participants
    @abstractmethod
    async def create_participant(
        self,
        meetup_id: UUID,
        name: str,
        phone: str,
        token: str,
        status: ParticipantStatus,
        is_waitlisted: bool,
        registered_at: datetime,
    ) -> Participant: ...

    @abstractmethod
    async def get_participant(self, participant_id: UUID) -> Optional[Participant]: ...

    @abstractmethod
    async def get_participant_by_token(self, token: str) -> Optional[Participant]: ...

    @abstractmethod
    async def find_active_participant(self, meetup_id: UUID, phone: str) -> Optional[Participant]:
        """Non-cancelled participant holding this phone number for the meetup.

        Numbers are compared with whitespace and '-' removed.
        """

    @abstractmethod
    async def count_active(self, meetup_id: UUID, waitlisted: bool) -> int:
        """Count non-cancelled participants with the given waitlisted flag."""

    @abstractmethod
    async def list_participants(
        self,
        meetup_id: UUID,
        include_cancelled: bool = False,
        ids: Optional[Iterable[UUID]] = None,
    ) -> List[Participant]: ...

    @abstractmethod
    async def first_waitlisted(self, meetup_id: UUID) -> Optional[Participant]:
        """Oldest participant with status 'waitlisted'."""

    @abstractmethod
    async def update_participant(self, participant_id: UUID, **fields) -> Participant: ...

    # Reminders
    @abstractmethod
    async def upsert_reminder(
        self,
        meetup_id: UUID,
        reminder_type: ReminderType,
        sent_at: datetime,
        sent_by: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Reminder: ...

    @abstractmethod
    async def list_reminders(self, meetup_id: UUID) -> List[Reminder]: ...

    # Hosts
    @abstractmethod
    async def create_host(self, **fields) -> Host: ...

    @abstractmethod
    async def get_host(self, host_id: UUID) -> Optional[Host]: ...

    @abstractmethod
    async def get_host_by_username(self, username: str) -> Optional[Host]: ...


class PgMeetupStore(MeetupStore):
    """
    asyncpg implementation.

    `db` is either the pool or a single connection already inside a
    transaction (the store handed out by `locked`).
    """

    def __init__(self, db, in_transaction: bool = False):
        self._db = db
        self._in_transaction = in_transaction

    @asynccontextmanager
    async def locked(self, meetup_id: UUID):
        if self._in_transaction:
            await self._db.execute("SELECT id FROM meetups WHERE id = $1 FOR UPDATE", meetup_id)
            yield self
            return

        async with self._db.acquire() as conn:
            async with conn.transaction():
                await conn.execute("SELECT id FROM meetups WHERE id = $1 FOR UPDATE", meetup_id)
                yield PgMeetupStore(conn, in_transaction=True)

    # Meetups

    async def create_meetup(self, **fields) -> Meetup:
        row = await self._db.fetchrow(
            """
            INSERT INTO meetups (
                id, title, description, date, location, max_participants,
                max_waitlist, fee_display, host_name, host_phone, host_code, host_id
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
            RETURNING *
            """,
            uuid.uuid4(),
            fields["title"],
            fields.get("description"),
            fields["date"],
            fields["location"],
            fields["max_participants"],
            fields.get("max_waitlist"),
            fields.get("fee_display"),
            fields["host_name"],
            fields["host_phone"],
            fields["host_code"],
            fields.get("host_id"),
        )
        return Meetup(**dict(row))

    async def get_meetup(self, meetup_id: UUID) -> Optional[Meetup]:
        row = await self._db.fetchrow("SELECT * FROM meetups WHERE id = $1", meetup_id)
        return Meetup(**dict(row)) if row else None

    async def update_meetup(self, meetup_id: UUID, fields: dict) -> Meetup:
        columns = [c for c in fields if c in MEETUP_EDITABLE_FIELDS + ("confirmation_sent", "status")]
        assignments = ", ".join(f"{c} = ${i + 2}" for i, c in enumerate(columns))
        row = await self._db.fetchrow(
            f"UPDATE meetups SET {assignments} WHERE id = $1 RETURNING *",
            meetup_id,
            *[fields[c] for c in columns],
        )
        return Meetup(**dict(row))

    async def list_meetups_for_host(self, host_id: UUID) -> List[Meetup]:
        rows = await self._db.fetch(
            "SELECT * FROM meetups WHERE host_id = $1 ORDER BY date DESC",
            host_id,
        )
        return [Meetup(**dict(row)) for row in rows]

    # Participants

    async def create_participant(
        self,
        meetup_id: UUID,
        name: str,
        phone: str,
        token: str,
        status: ParticipantStatus,
        is_waitlisted: bool,
        registered_at: datetime,
    ) -> Participant:
        row = await self._db.fetchrow(
            """
            INSERT INTO participants (id, meetup_id, name, phone, token, status, is_waitlisted, registered_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING *
            """,
            uuid.uuid4(),
            meetup_id,
            name,
            phone,
            token,
            status.value,
            is_waitlisted,
            registered_at,
        )
        return Participant(**dict(row))

    async def get_participant(self, participant_id: UUID) -> Optional[Participant]:
        row = await self._db.fetchrow("SELECT * FROM participants WHERE id = $1", participant_id)
        return Participant(**dict(row)) if row else None

    async def get_participant_by_token(self, token: str) -> Optional[Participant]:
        row = await self._db.fetchrow("SELECT * FROM participants WHERE token = $1", token)
        return Participant(**dict(row)) if row else None

    async def find_active_participant(self, meetup_id: UUID, phone: str) -> Optional[Participant]:
        row = await self._db.fetchrow(
            """
            SELECT * FROM participants
            WHERE meetup_id = $1
              AND regexp_replace(phone, '[[:space:]-]', '', 'g') = $2
              AND status <> 'cancelled'
            LIMIT 1
            """,
            meetup_id,
            normalize_phone(phone),
        )
        return Participant(**dict(row)) if row else None

    async def count_active(self, meetup_id: UUID, waitlisted: bool) -> int:
        return await self._db.fetchval(
            """
            SELECT COUNT(*) FROM participants
            WHERE meetup_id = $1 AND is_waitlisted = $2 AND status <> 'cancelled'
            """,
            meetup_id,
            waitlisted,
        )

    async def list_participants(
        self,
        meetup_id: UUID,
        include_cancelled: bool = False,
        ids: Optional[Iterable[UUID]] = None,
    ) -> List[Participant]:
        rows = await self._db.fetch(
            """
            SELECT * FROM participants
            WHERE meetup_id = $1
              AND ($2 OR status <> 'cancelled')
              AND ($3::uuid[] IS NULL OR id = ANY($3::uuid[]))
            ORDER BY registered_at ASC, id ASC
            """,
            meetup_id,
            include_cancelled,
            list(ids) if ids is not None else None,
        )
        return [Participant(**dict(row)) for row in rows]

    async def first_waitlisted(self, meetup_id: UUID) -> Optional[Participant]:
        row = await self._db.fetchrow(
            """
            SELECT * FROM participants
            WHERE meetup_id = $1 AND status = 'waitlisted'
            ORDER BY registered_at ASC, id ASC
            LIMIT 1
            """,
            meetup_id,
        )
        return Participant(**dict(row)) if row else None

    async def update_participant(self, participant_id: UUID, **fields) -> Participant:
        columns = [c for c in fields if c in PARTICIPANT_UPDATABLE_FIELDS]
        values = [
            fields[c].value if isinstance(fields[c], ParticipantStatus) else fields[c]
            for c in columns
        ]
        assignments = ", ".join(f"{c} = ${i + 2}" for i, c in enumerate(columns))
        row = await self._db.fetchrow(
            f"UPDATE participants SET {assignments} WHERE id = $1 RETURNING *",
            participant_id,
            *values,
        )
        return Participant(**dict(row))

    # Reminders

    async def upsert_reminder(
        self,
        meetup_id: UUID,
        reminder_type: ReminderType,
        sent_at: datetime,
        sent_by: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Reminder:
        row = await self._db.fetchrow(
            """
            INSERT INTO reminders (id, meetup_id, type, sent_at, sent_by, note)
            VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (meetup_id, type)
            DO UPDATE SET sent_at = EXCLUDED.sent_at,
                          sent_by = EXCLUDED.sent_by,
                          note = EXCLUDED.note
            RETURNING *
            """,
            uuid.uuid4(),
            meetup_id,
            reminder_type.value,
            sent_at,
            sent_by,
            note,
        )
        return Reminder(**dict(row))

    async def list_reminders(self, meetup_id: UUID) -> List[Reminder]:
        rows = await self._db.fetch("SELECT * FROM reminders WHERE meetup_id = $1", meetup_id)
        return [Reminder(**dict(row)) for row in rows]

    # Hosts

    async def create_host(self, **fields) -> Host:
        row = await self._db.fetchrow(
            """
            INSERT INTO hosts (id, username, name, email, phone, password_hash)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING *
            """,
            uuid.uuid4(),
            fields["username"],
            fields["name"],
            fields["email"],
            fields["phone"],
            fields["password_hash"],
        )
        return Host(**dict(row))

    async def get_host(self, host_id: UUID) -> Optional[Host]:
        row = await self._db.fetchrow("SELECT * FROM hosts WHERE id = $1", host_id)
        return Host(**dict(row)) if row else None

    async def get_host_by_username(self, username: str) -> Optional[Host]:
        row = await self._db.fetchrow("SELECT * FROM hosts WHERE username = $1", username)
        return Host(**dict(row)) if row else None
