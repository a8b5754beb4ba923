"""Persistence layer for billing domain objects."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from .models import BillingWebhookEvent, PlanKey, SubscriptionRecord, SubscriptionStatus
from ... import app_context


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None):
    """Yield ``(connection, managed)``; managed connections are committed and closed on exit."""

    if conn is not None:
        yield conn, False
        return

    connection = app_context.get_conn()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _row_to_subscription(row: dict) -> SubscriptionRecord:
    return SubscriptionRecord(
        subscription_id=row["stripe_subscription_id"],
        customer_id=row["stripe_customer_id"],
        plan=PlanKey(row["plan"]),
        status=SubscriptionStatus(row["status"]),
        seats_allowed=int(row["seats_allowed"]),
        quantity=int(row["quantity"]),
        price_id=row.get("price_id"),
        current_period_end=row.get("current_period_end"),
        user_id=row.get("user_id"),
        updated_at=row["updated_at"],
    )


class PostgresBillingRepository:
    """Subscription mirror and webhook ledger stored in PostgreSQL."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        with managed_connection(self._conn) as (connection, _managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
            finally:
                cursor.close()

    def upsert_subscription(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        """Insert or replace the row keyed by the Stripe subscription id."""

        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO billing_subscriptions (
                    stripe_subscription_id,
                    stripe_customer_id,
                    plan,
                    status,
                    seats_allowed,
                    quantity,
                    price_id,
                    current_period_end,
                    user_id
                )
                VALUES (%(subscription_id)s, %(customer_id)s, %(plan)s, %(status)s,
                        %(seats_allowed)s, %(quantity)s, %(price_id)s,
                        %(current_period_end)s, %(user_id)s)
                ON CONFLICT (stripe_subscription_id) DO UPDATE SET
                    stripe_customer_id = EXCLUDED.stripe_customer_id,
                    plan = EXCLUDED.plan,
                    status = CASE
                        WHEN billing_subscriptions.status = 'canceled' THEN billing_subscriptions.status
                        ELSE EXCLUDED.status
                    END,
                    seats_allowed = EXCLUDED.seats_allowed,
                    quantity = EXCLUDED.quantity,
                    price_id = EXCLUDED.price_id,
                    current_period_end = EXCLUDED.current_period_end,
                    user_id = COALESCE(EXCLUDED.user_id, billing_subscriptions.user_id),
                    updated_at = NOW()
                RETURNING *
                """,
                {
                    "subscription_id": subscription.subscription_id,
                    "customer_id": subscription.customer_id,
                    "plan": subscription.plan.value,
                    "status": subscription.status.value,
                    "seats_allowed": subscription.seats_allowed,
                    "quantity": subscription.quantity,
                    "price_id": subscription.price_id,
                    "current_period_end": subscription.current_period_end,
                    "user_id": subscription.user_id,
                },
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist subscription")
            return _row_to_subscription(row)

    def get_subscription(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM billing_subscriptions
                WHERE stripe_subscription_id = %s
                LIMIT 1
                """,
                (subscription_id,),
            )
            row = cursor.fetchone()
            return _row_to_subscription(row) if row else None

    def find_user_id_for_customer(self, customer_id: str) -> Optional[str]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT user_id
                FROM billing_subscriptions
                WHERE stripe_customer_id = %s AND user_id IS NOT NULL
                ORDER BY updated_at DESC
                LIMIT 1
                """,
                (customer_id,),
            )
            row = cursor.fetchone()
            return row["user_id"] if row else None

    def list_subscriptions_for_user(self, user_id: str) -> List[SubscriptionRecord]:
        """Return every subscription linked to the user, most recently updated first."""

        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM billing_subscriptions
                WHERE user_id = %s
                ORDER BY updated_at DESC
                """,
                (user_id,),
            )
            return [_row_to_subscription(row) for row in cursor.fetchall()]

    def claim_webhook_event(self, event: BillingWebhookEvent) -> bool:
        """Record the event in the ledger; ``False`` when another delivery already holds it."""

        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO billing_webhook_events (
                    event_id,
                    event_type,
                    received_at,
                    processed_at
                )
                VALUES (%s, %s, %s, NOW())
                ON CONFLICT (event_id) DO NOTHING
                """,
                (event.event_id, event.event_type, event.received_at),
            )
            return cursor.rowcount > 0

    def release_webhook_event(self, event_id: str) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                "DELETE FROM billing_webhook_events WHERE event_id = %s",
                (event_id,),
            )


__all__ = ["PostgresBillingRepository", "managed_connection"]
