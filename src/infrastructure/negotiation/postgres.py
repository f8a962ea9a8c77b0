from contextlib import closing
from datetime import date, datetime
from importlib.util import find_spec
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
from src.infrastructure.postgres_migrations import apply_postgres_migrations

MIGRATION_NAMESPACE = "negotiation"

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
    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""


class PostgresScheduleNegotiationRepository:
    def __init__(self, *, dsn: str) -> None:
        if not dsn:
            raise RuntimeError("NEGOTIATION_POSTGRES_DSN_REQUIRED")
        if find_spec("psycopg") is None:
            raise RuntimeError("NEGOTIATION_POSTGRES_DRIVER_MISSING")
        self._dsn = dsn
        self._init_db()

    def create_proposal(
        self, proposal: ScheduleProposalRecord, event: NegotiationEventRecord
    ) -> ScheduleProposalRecord:
        query = """
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
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING proposal_id
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, proposal_insert_args(proposal)).fetchone()
            stored = proposal.model_copy(update={"proposal_id": int(row["proposal_id"])})
            stored_event = event.model_copy(update={"proposal_id": stored.proposal_id})
            connection.execute(_INSERT_EVENT, event_insert_args(stored_event))
            connection.commit()
        return stored

    def get_proposal(self, *, proposal_id: int) -> Optional[ScheduleProposalRecord]:
        query = f"""
            SELECT {PROPOSAL_COLUMNS}
            FROM schedule_proposals
            WHERE proposal_id = %s
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (proposal_id,)).fetchone()
        return to_proposal(row)

    def list_booking_proposals(self, *, booking_id: int) -> list[ScheduleProposalRecord]:
        query = f"""
            SELECT {PROPOSAL_COLUMNS}
            FROM schedule_proposals
            WHERE booking_id = %s
            ORDER BY created_at DESC, proposal_id DESC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, (booking_id,)).fetchall()
        return [to_proposal(row) for row in rows]

    def list_installer_proposals(self, *, installer_id: int) -> list[ScheduleProposalRecord]:
        query = f"""
            SELECT {PROPOSAL_COLUMNS}
            FROM schedule_proposals
            WHERE installer_id = %s
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
        query = f"""
            UPDATE schedule_proposals
            SET status = %s, response_message = %s, responded_by = %s, responded_at = %s
            WHERE proposal_id = %s AND status = 'pending'
            RETURNING {PROPOSAL_COLUMNS}
        """
        with closing(self._connect()) as connection:
            row = connection.execute(
                query,
                (
                    status,
                    response_message,
                    responded_by,
                    timestamp_text(responded_at),
                    proposal_id,
                ),
            ).fetchone()
            if row is None:
                connection.rollback()
                return None
            connection.execute(_INSERT_EVENT, event_insert_args(event))
            connection.commit()
        return ProposalResponseResult(proposal=to_proposal(row), event=event)

    def delete_proposal(
        self, *, proposal_id: int, event: NegotiationEventRecord
    ) -> ProposalDeleteOutcome:
        with closing(self._connect()) as connection:
            target = connection.execute(
                "SELECT booking_id FROM schedule_proposals WHERE proposal_id = %s",
                (proposal_id,),
            ).fetchone()
            if target is None:
                connection.rollback()
                return "NOT_FOUND"
            # Row locks are taken in id order so concurrent deletes on a booking cannot deadlock.
            siblings = connection.execute(
                """
                SELECT proposal_id
                FROM schedule_proposals
                WHERE booking_id = %s
                ORDER BY proposal_id ASC
                FOR UPDATE
                """,
                (target["booking_id"],),
            ).fetchall()
            sibling_ids = [row["proposal_id"] for row in siblings]
            if proposal_id not in sibling_ids:
                connection.rollback()
                return "NOT_FOUND"
            if len(sibling_ids) <= 1:
                connection.rollback()
                return "LATEST_PROTECTED"
            connection.execute(
                "DELETE FROM schedule_proposals WHERE proposal_id = %s",
                (proposal_id,),
            )
            connection.execute(_INSERT_EVENT, event_insert_args(event))
            connection.commit()
        return "DELETED"

    def list_events(self, *, booking_id: int) -> list[NegotiationEventRecord]:
        query = f"""
            SELECT {EVENT_COLUMNS}
            FROM negotiation_events
            WHERE booking_id = %s
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
            SET dispatch_status = %s, dispatch_error_json = %s
            WHERE event_id = %s
        """
        with closing(self._connect()) as connection:
            connection.execute(
                query,
                (dispatch_status, optional_json_dump(dispatch_error_json), event_id),
            )
            connection.commit()

    def _connect(self):
        return _connect(self._dsn)

    def _init_db(self) -> None:
        with closing(self._connect()) as connection:
            apply_postgres_migrations(connection=connection, namespace=MIGRATION_NAMESPACE)


class PostgresBookingDirectory:
    def __init__(self, *, dsn: str) -> None:
        if not dsn:
            raise RuntimeError("NEGOTIATION_POSTGRES_DSN_REQUIRED")
        if find_spec("psycopg") is None:
            raise RuntimeError("NEGOTIATION_POSTGRES_DRIVER_MISSING")
        self._dsn = dsn

    def get_booking(self, *, booking_id: int) -> Optional[BookingRecord]:
        query = f"""
            SELECT {BOOKING_COLUMNS}
            FROM bookings
            WHERE booking_id = %s
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (booking_id,)).fetchone()
        return to_booking(row)

    def mark_scheduled(
        self,
        *,
        booking_id: int,
        scheduled_date: date,
        time_slot: Optional[str],
    ) -> None:
        query = """
            UPDATE bookings
            SET status = 'scheduled', scheduled_date = %s, scheduled_time_slot = %s
            WHERE booking_id = %s AND status <> 'cancelled'
        """
        with closing(self._connect()) as connection:
            connection.execute(query, (scheduled_date.isoformat(), time_slot, booking_id))
            connection.commit()

    def _connect(self):
        return _connect(self._dsn)


def _connect(dsn: str):
    psycopg, dict_row = _import_psycopg()
    return psycopg.connect(dsn, row_factory=dict_row)


def _import_psycopg():
    import psycopg
    from psycopg.rows import dict_row

    return psycopg, dict_row
