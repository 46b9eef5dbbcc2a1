# src/notifications/outbox.py
"""
Transactional notification outbox.

Write path (inside the business transaction):
    NotificationOutbox.enqueue() adds a PENDING row next to the task rows,
    so a notification intent exists iff the task commit succeeded.

Publish path (after commit):
    NotificationOutbox.publish() LPUSHes the row ids onto the Redis list.
    A lost publish is harmless: the reconciliation sweep re-queues PENDING
    rows older than the orphan threshold.

Delivery path (background):
    NotificationDispatcher.run_once() RPOPs ids, delivers each row through
    in-app, email and WhatsApp, and records SENT or the failed attempt.
"""

import json
import uuid
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List, Iterable

import redis
from sqlalchemy.orm import Session

from src.config import settings
from src.errors import NotificationDeliveryError
from src.models import SessionLocal, NotificationOutbox as OutboxRow, Notification, User, FreelancerProfile
from .channels import EmailChannel, WhatsAppChannel
from .templates import render

logger = logging.getLogger("designdesk.notifications.outbox")


def get_redis_client() -> redis.Redis:
    return redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=settings.REDIS_DB,
        password=settings.REDIS_PASSWORD,
        decode_responses=True
    )


# =============================================================================
# Outbox (write + publish)
# =============================================================================

class NotificationOutbox:
    """Writes notification intents and hands committed ids to the queue"""

    def __init__(self, redis_client: Optional[redis.Redis] = None, queue_key: str = settings.NOTIFICATION_QUEUE_KEY):
        self._redis = redis_client
        self.queue_key = queue_key

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = get_redis_client()
        return self._redis

    def enqueue(
        self,
        db: Session,
        event_type: str,
        recipient_id: Optional[str],
        task_id: Optional[str],
        payload: Dict[str, Any]
    ) -> str:
        """Add a PENDING outbox row to the caller's transaction. Returns its id."""
        row_id = str(uuid.uuid4())
        db.add(OutboxRow(
            id=row_id,
            event_type=event_type,
            recipient_id=recipient_id,
            task_id=task_id,
            payload_json=json.dumps(payload, default=str),
            status="PENDING",
            attempts=0,
            created_at=datetime.utcnow()
        ))
        return row_id

    def publish(self, outbox_ids: Iterable[str]) -> int:
        """Push committed ids to Redis. Never raises; returns ids published."""
        ids = [i for i in outbox_ids if i]
        if not ids:
            return 0
        try:
            self.redis.lpush(self.queue_key, *ids)
            logger.debug(f"Published {len(ids)} notification(s) to '{self.queue_key}'")
            return len(ids)
        except Exception as e:
            logger.error(
                f"Notification publish failed - reconciliation will retry | "
                f"ids={ids} | error={e}"
            )
            return 0


# =============================================================================
# Dispatcher (delivery + reconciliation)
# =============================================================================

class NotificationDispatcher:
    """Consumes the notification queue and delivers outbox rows"""

    def __init__(
        self,
        session_factory=SessionLocal,
        redis_client: Optional[redis.Redis] = None,
        email_channel: Optional[EmailChannel] = None,
        whatsapp_channel: Optional[WhatsAppChannel] = None,
        queue_key: str = settings.NOTIFICATION_QUEUE_KEY,
        batch_size: int = settings.NOTIFICATION_BATCH_SIZE,
        max_attempts: int = settings.NOTIFICATION_MAX_ATTEMPTS,
        orphan_minutes: int = settings.NOTIFICATION_ORPHAN_MINUTES,
        admin_emails: Optional[List[str]] = None,
        admin_whatsapp: Optional[str] = settings.ADMIN_WHATSAPP_NUMBER
    ):
        self.session_factory = session_factory
        self._redis = redis_client
        self.email = email_channel or EmailChannel()
        self.whatsapp = whatsapp_channel or WhatsAppChannel()
        self.queue_key = queue_key
        self.batch_size = batch_size
        self.max_attempts = max_attempts
        self.orphan_minutes = orphan_minutes
        self.admin_emails = admin_emails if admin_emails is not None else settings.ADMIN_EMAILS
        self.admin_whatsapp = admin_whatsapp
        self._running = False

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = get_redis_client()
        return self._redis

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    async def run_once(self) -> Dict[str, int]:
        """Drain up to batch_size ids from the queue"""
        stats = {"processed": 0, "sent": 0, "failed": 0, "skipped": 0}

        for _ in range(self.batch_size):
            try:
                outbox_id = self.redis.rpop(self.queue_key)
            except Exception as e:
                logger.error(f"Notification queue unavailable: {e}")
                break
            if outbox_id is None:
                break

            stats["processed"] += 1
            outcome = await self.process(outbox_id)
            stats[outcome] += 1

        if stats["processed"]:
            logger.info(
                f"Notification batch | processed={stats['processed']} | sent={stats['sent']} | "
                f"failed={stats['failed']} | skipped={stats['skipped']}"
            )
        return stats

    async def process(self, outbox_id: str) -> str:
        """Deliver one outbox row. Returns 'sent', 'failed' or 'skipped'."""
        db = self.session_factory()
        try:
            row = db.query(OutboxRow).filter(OutboxRow.id == outbox_id).first()
            if row is None or row.status != "PENDING":
                logger.debug(f"Outbox row {outbox_id} missing or already handled")
                return "skipped"

            try:
                await self.deliver(db, row)
            except Exception as e:
                # Drop partial in-app rows, then record the attempt
                db.rollback()
                row.attempts = (row.attempts or 0) + 1
                row.last_error = str(e)[:1000]
                if row.attempts >= self.max_attempts:
                    row.status = "FAILED"
                db.commit()
                logger.warning(
                    f"Notification delivery failed | id={outbox_id} | event={row.event_type} | "
                    f"attempts={row.attempts}/{self.max_attempts} | status={row.status} | error={e}"
                )
                return "failed"

            row.status = "SENT"
            row.sent_at = datetime.utcnow()
            db.commit()
            return "sent"
        finally:
            db.close()

    async def deliver(self, db: Session, row: OutboxRow) -> None:
        payload = json.loads(row.payload_json) if row.payload_json else {}
        if row.recipient_id is None:
            await self._deliver_to_admins(db, row, payload)
        else:
            await self._deliver_to_user(db, row, payload)

    def _add_in_app(self, db: Session, user_id: str, row: OutboxRow, title: str, content: str) -> None:
        db.add(Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=row.event_type,
            channel="IN_APP",
            title=title,
            content=content,
            related_task_id=row.task_id,
            status="SENT",
            sent_at=datetime.utcnow()
        ))

    async def _deliver_to_user(self, db: Session, row: OutboxRow, payload: Dict[str, Any]) -> None:
        user = db.query(User).filter(User.id == row.recipient_id).first()
        if user is None:
            raise NotificationDeliveryError(
                message=f"Recipient {row.recipient_id} not found",
                channel="in_app",
                error_code="RECIPIENT_NOT_FOUND"
            )

        message = render(row.event_type, payload, user.name)
        prefs = user.notification_preferences

        if prefs.get("in_app", True):
            self._add_in_app(db, user.id, row, message.title, message.content)

        if prefs.get("email", True) and user.email:
            await self.email.send([user.email], message.email_subject, message.email_html, message.content)

        if prefs.get("whatsapp", True):
            profile = db.query(FreelancerProfile).filter(FreelancerProfile.user_id == user.id).first()
            number = (profile.whatsapp_number if profile else None) or user.phone
            if number:
                await self.whatsapp.send(number, message.whatsapp)

    async def _deliver_to_admins(self, db: Session, row: OutboxRow, payload: Dict[str, Any]) -> None:
        message = render(row.event_type, payload, "admin")

        for (admin_id,) in db.query(User.id).filter(User.role == "ADMIN").all():
            self._add_in_app(db, admin_id, row, message.title, message.content)

        if self.admin_emails:
            await self.email.send(list(self.admin_emails), message.email_subject, message.email_html, message.content)
        if self.admin_whatsapp:
            await self.whatsapp.send(self.admin_whatsapp, message.whatsapp)

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    async def reconcile(self) -> Dict[str, Any]:
        """Re-queue PENDING rows older than the orphan threshold that are not queued"""
        requeued = 0
        try:
            queued = set(self.redis.lrange(self.queue_key, 0, -1))
            threshold = datetime.utcnow() - timedelta(minutes=self.orphan_minutes)

            db = self.session_factory()
            try:
                orphans = db.query(OutboxRow).filter(
                    OutboxRow.status == "PENDING",
                    OutboxRow.created_at < threshold
                ).all()
                for row in orphans:
                    if row.id in queued:
                        continue
                    self.redis.lpush(self.queue_key, row.id)
                    requeued += 1
                    logger.info(
                        f"Re-queued orphaned notification {row.id} | event={row.event_type} | "
                        f"attempts={row.attempts}"
                    )
            finally:
                db.close()

            if requeued:
                logger.info(f"Notification reconciliation complete | requeued={requeued}")
            else:
                logger.debug("Notification reconciliation complete | nothing to re-queue")
            return {"requeued": requeued}

        except Exception as e:
            logger.error(f"Notification reconciliation error: {e}")
            return {"requeued": requeued, "error": str(e)}

    # -------------------------------------------------------------------------
    # Background loops
    # -------------------------------------------------------------------------

    async def dispatch_loop(self, poll_interval: float = settings.NOTIFICATION_POLL_INTERVAL):
        self._running = True
        logger.info(f"Notification dispatcher started | queue={self.queue_key} | poll={poll_interval}s")

        while self._running:
            try:
                stats = await self.run_once()
                if not stats["processed"]:
                    await asyncio.sleep(poll_interval)
            except Exception as e:
                logger.error(f"Notification dispatch loop error: {e}")
                await asyncio.sleep(poll_interval * 10)

    async def reconcile_loop(self, interval: int = settings.NOTIFICATION_RECONCILE_INTERVAL):
        self._running = True
        logger.info(
            f"Notification reconciliation started | interval={interval}s | "
            f"orphan_threshold={self.orphan_minutes}min"
        )

        while self._running:
            try:
                await asyncio.sleep(interval)
                if not self._running:
                    break
                await self.reconcile()
            except Exception as e:
                logger.error(f"Notification reconciliation loop error: {e}")
                await asyncio.sleep(60)

    async def stop(self) -> None:
        self._running = False
        await self.email.close()
        await self.whatsapp.close()
        logger.info("Notification dispatcher stopped")
