import sqlite3
from contextlib import closing
from datetime import date, datetime
from pathlib import Path
from threading import Lock
from typing import Optional

from src.core.negotiation.models import (
    BookingRecord,
    NegotiationEventRecord,
    NegotiationRole,
    NotificationDispatchStatus,
    ProposalDeleteOutcome,
    ProposalResponseResult,
    ProposalStatus,
    ScheduleProposalRecord,
)
from src.core.negotiation.repository import ScheduleNegotiationRepository
from src.infrastructure.negotiation.rows import (
    BOOKING_COLUMNS,
    EVENT_COLUMNS,
    PROPOSAL_COLUMNS,
    event_insert_args,
    optional_json_dump,
    proposal_insert_args,
    timestamp_text,
    to_booking,
    to_event,
    to_proposal,
)

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS schedule_proposals (
        proposal_id INTEGER PRIMARY KEY AUTOINCREMENT,
        booking_id INTEGER NOT NULL,
        installer_id INTEGER NULL,
        proposed_date TEXT NOT NULL,
        proposed_time_slot TEXT NULL,
        proposed_start_time TEXT NULL,
        proposed_end_time TEXT NULL,
        proposal_message TEXT NULL,
        proposed_by TEXT NOT NULL,
        status TEXT NOT NULL,
        response_message TEXT NULL,
        responded_by TEXT NULL,
        responded_at TEXT NULL,
        created_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_schedule_proposals_booking
        ON schedule_proposals (booking_id, created_at, proposal_id);

    CREATE INDEX IF NOT EXISTS idx_schedule_proposals_installer
        ON schedule_proposals (installer_id, created_at, proposal_id);

    CREATE TABLE IF NOT EXISTS negotiation_events (
        event_seq INTEGER PRIMARY KEY AUTOINCREMENT,
        event_id TEXT NOT NULL UNIQUE,
        booking_id INTEGER NOT NULL,
        proposal_id INTEGER NOT NULL,
        event_type TEXT NOT NULL,
        actor_role TEXT NOT NULL,
        recipient_role TEXT NOT NULL,
        occurred_at TEXT NOT NULL,
        payload_json TEXT NOT NULL,
        dispatch_status TEXT NOT NULL,
        dispatch_error_json TEXT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_negotiation_events_booking
        ON negotiation_events (booking_id, occurred_at, event_seq);

    CREATE TABLE IF NOT EXISTS bookings (
        booking_id INTEGER PRIMARY KEY,
        installer_id INTEGER NULL,
        customer_id TEXT NULL,
        status TEXT NOT NULL,
        scheduled_date TEXT NULL,
        scheduled_time_slot TEXT NULL
    );
"""

_INSERT_PROPOSAL = """
    INSERT INTO schedule_proposals (
        booking_id,
        installer_id,
        proposed_date,
        proposed_time_slot,
        proposed_start_time,
        proposed_end_time,
        proposal_message,
        proposed_by,
        status,
        response_message,
        responded_by,
        responded_at,
        created_at
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_INSERT_EVENT = """
    INSERT INTO negotiation_events (
        event_id,
        booking_id,
        proposal_id,
        event_type,
        actor_role,
        recipient_role,
        occurred_at,
        payload_json,
        dispatch_status,
        dispatch_error_json
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


class SqliteScheduleNegotiationRepository(ScheduleNegotiationRepository):
    def __init__(self, *, database_path: str) -> None:
        self._lock = Lock()
        self._database_path = database_path
        _init_db(database_path)

    def create_proposal(
        self, proposal: ScheduleProposalRecord, event: NegotiationEventRecord
    ) -> ScheduleProposalRecord:
        with self._lock, closing(self._connect()) as connection:
            cursor = connection.execute(_INSERT_PROPOSAL, proposal_insert_args(proposal))
            stored = proposal.model_copy(update={"proposal_id": int(cursor.lastrowid)})
            stored_event = event.model_copy(update={"proposal_id": stored.proposal_id})
            connection.execute(_INSERT_EVENT, event_insert_args(stored_event))
            connection.commit()
        return stored

    def get_proposal(self, *, proposal_id: int) -> Optional[ScheduleProposalRecord]:
        query = f"""
            SELECT {PROPOSAL_COLUMNS}
            FROM schedule_proposals
            WHERE proposal_id = ?
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (proposal_id,)).fetchone()
        return to_proposal(row)

    def list_booking_proposals(self, *, booking_id: int) -> list[ScheduleProposalRecord]:
        query = f"""
            SELECT {PROPOSAL_COLUMNS}
            FROM schedule_proposals
            WHERE booking_id = ?
            ORDER BY created_at DESC, proposal_id DESC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, (booking_id,)).fetchall()
        return [to_proposal(row) for row in rows]

    def list_installer_proposals(self, *, installer_id: int) -> list[ScheduleProposalRecord]:
        query = f"""
            SELECT {PROPOSAL_COLUMNS}
            FROM schedule_proposals
            WHERE installer_id = ?
            ORDER BY created_at DESC, proposal_id DESC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, (installer_id,)).fetchall()
        return [to_proposal(row) for row in rows]

    def record_response(
        self,
        *,
        proposal_id: int,
        status: ProposalStatus,
        response_message: Optional[str],
        responded_by: NegotiationRole,
        responded_at: datetime,
        event: NegotiationEventRecord,
    ) -> Optional[ProposalResponseResult]:
        query = """
            UPDATE schedule_proposals
            SET status = ?, response_message = ?, responded_by = ?, responded_at = ?
            WHERE proposal_id = ? AND status = 'pending'
        """
        select_query = f"""
            SELECT {PROPOSAL_COLUMNS}
            FROM schedule_proposals
            WHERE proposal_id = ?
        """
        with self._lock, closing(self._connect()) as connection:
            cursor = connection.execute(
                query,
                (
                    status,
                    response_message,
                    responded_by,
                    timestamp_text(responded_at),
                    proposal_id,
                ),
            )
            if cursor.rowcount != 1:
                connection.rollback()
                return None
            connection.execute(_INSERT_EVENT, event_insert_args(event))
            row = connection.execute(select_query, (proposal_id,)).fetchone()
            connection.commit()
        return ProposalResponseResult(proposal=to_proposal(row), event=event)

    def delete_proposal(
        self, *, proposal_id: int, event: NegotiationEventRecord
    ) -> ProposalDeleteOutcome:
        with self._lock, closing(self._connect()) as connection:
            connection.execute("BEGIN IMMEDIATE")
            row = connection.execute(
                "SELECT booking_id FROM schedule_proposals WHERE proposal_id = ?",
                (proposal_id,),
            ).fetchone()
            if row is None:
                connection.rollback()
                return "NOT_FOUND"
            remaining = connection.execute(
                "SELECT COUNT(*) AS remaining FROM schedule_proposals WHERE booking_id = ?",
                (row["booking_id"],),
            ).fetchone()
            if int(remaining["remaining"]) <= 1:
                connection.rollback()
                return "LATEST_PROTECTED"
            connection.execute(
                "DELETE FROM schedule_proposals WHERE proposal_id = ?",
                (proposal_id,),
            )
            connection.execute(_INSERT_EVENT, event_insert_args(event))
            connection.commit()
        return "DELETED"

    def list_events(self, *, booking_id: int) -> list[NegotiationEventRecord]:
        query = f"""
            SELECT {EVENT_COLUMNS}
            FROM negotiation_events
            WHERE booking_id = ?
            ORDER BY occurred_at ASC, event_seq ASC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, (booking_id,)).fetchall()
        return [to_event(row) for row in rows]

    def mark_event_dispatch(
        self,
        *,
        event_id: str,
        dispatch_status: NotificationDispatchStatus,
        dispatch_error_json: Optional[dict[str, str]],
    ) -> None:
        query = """
            UPDATE negotiation_events
            SET dispatch_status = ?, dispatch_error_json = ?
            WHERE event_id = ?
        """
        with self._lock, closing(self._connect()) as connection:
            connection.execute(
                query,
                (dispatch_status, optional_json_dump(dispatch_error_json), event_id),
            )
            connection.commit()

    def _connect(self) -> sqlite3.Connection:
        return _connect(self._database_path)


class SqliteBookingDirectory:
    def __init__(self, *, database_path: str) -> None:
        self._lock = Lock()
        self._database_path = database_path
        _init_db(database_path)

    def get_booking(self, *, booking_id: int) -> Optional[BookingRecord]:
        query = f"""
            SELECT {BOOKING_COLUMNS}
            FROM bookings
            WHERE booking_id = ?
        """
        with closing(_connect(self._database_path)) as connection:
            row = connection.execute(query, (booking_id,)).fetchone()
        return to_booking(row)

    def upsert_booking(self, booking: BookingRecord) -> None:
        query = f"""
            INSERT INTO bookings ({BOOKING_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(booking_id) DO UPDATE SET
                installer_id=excluded.installer_id,
                customer_id=excluded.customer_id,
                status=excluded.status,
                scheduled_date=excluded.scheduled_date,
                scheduled_time_slot=excluded.scheduled_time_slot
        """
        with self._lock, closing(_connect(self._database_path)) as connection:
            connection.execute(
                query,
                (
                    booking.booking_id,
                    booking.installer_id,
                    booking.customer_id,
                    booking.status,
                    booking.scheduled_date.isoformat() if booking.scheduled_date else None,
                    booking.scheduled_time_slot,
                ),
            )
            connection.commit()

    def mark_scheduled(
        self,
        *,
        booking_id: int,
        scheduled_date: date,
        time_slot: Optional[str],
    ) -> None:
        query = """
            UPDATE bookings
            SET status = 'scheduled', scheduled_date = ?, scheduled_time_slot = ?
            WHERE booking_id = ? AND status <> 'cancelled'
        """
        with self._lock, closing(_connect(self._database_path)) as connection:
            connection.execute(query, (scheduled_date.isoformat(), time_slot, booking_id))
            connection.commit()


def _connect(database_path: str) -> sqlite3.Connection:
    connection = sqlite3.connect(database_path)
    connection.row_factory = sqlite3.Row
    return connection


def _init_db(database_path: str) -> None:
    Path(database_path).parent.mkdir(parents=True, exist_ok=True)
    with closing(_connect(database_path)) as connection:
        connection.executescript(_SCHEMA)
