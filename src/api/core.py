# src/api/core.py
"""
DesignDesk Task Service - HTTP API

Task creation runs the assignment engine synchronously inside one database
transaction; notifications leave through the transactional outbox and are
delivered by background loops started with the application.
"""

import os
import json
import asyncio
import logging
import logging.config
import platform
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Depends, Query as QueryParam
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from src.config import settings
from src.errors import MarketplaceError, ForbiddenError, NotFoundError
from src.middleware import CorrelationIdMiddleware
from src.models import (
    engine, get_db, User, Task, TaskFile, TaskOffer, TaskActivityLog
)
from src.auth import get_current_user, require_admin
from src.assignment import (
    TaskAssignmentCoordinator,
    TaskRequest,
    get_active_config,
    create_config_draft,
    publish_config,
    list_configs,
    reassign_task,
    list_reassignment_candidates,
    assign_pending_tasks,
    update_artist_metrics,
)
from src.assignment.algorithm_config import config_to_dict
from src.notifications import NotificationOutbox, NotificationDispatcher
from .schemas import TaskCreate, TaskCreateResponse, ReassignRequest, AlgorithmConfigCreate, AssignPendingRequest
from .views import resolve_view, view_name, task_stats, list_tasks_for_view, task_to_summary

# Configure unified logging with correlation ids
os.makedirs(settings.LOG_DIR, exist_ok=True)
logging.config.dictConfig(settings.get_log_config())
logger = logging.getLogger("designdesk.api")

app = FastAPI(
    title="DesignDesk Task Service",
    description="Design marketplace task creation and smart assignment",
    version="1.0.0"
)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# Error Envelope
# =============================================================================

@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request, exc: MarketplaceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "error_code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "context": {"errors": errors}
            }
        }
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "error_code": "INTERNAL_ERROR",
                "message": "Internal server error",
                "context": {}
            }
        }
    )


# =============================================================================
# Outbox / Dispatcher
# =============================================================================

outbox = NotificationOutbox()
dispatcher: Optional[NotificationDispatcher] = None


def get_outbox() -> NotificationOutbox:
    return outbox


# =============================================================================
# Schema Verification Guard (Startup Event)
# =============================================================================

REQUIRED_TABLES = [
    "users",
    "freelancer_profiles",
    "client_artist_affinity",
    "task_categories",
    "tasks",
    "task_files",
    "task_offers",
    "task_activity_log",
    "credit_transactions",
    "assignment_algorithm_config",
    "notification_outbox",
    "notifications",
]


@app.on_event("startup")
async def verify_schema():
    """Verify all required tables exist on startup"""
    existing_tables = inspect(engine).get_table_names()

    missing = [t for t in REQUIRED_TABLES if t not in existing_tables]
    if missing:
        logger.error(f"Schema verification failed. Missing tables: {missing}")
        raise RuntimeError(
            f"Missing tables: {missing}. Run: alembic upgrade head"
        )
    logger.info(f"Schema verification passed - all {len(REQUIRED_TABLES)} tables present")


@app.on_event("startup")
async def start_notification_dispatcher():
    """Start delivery and reconciliation loops for the notification outbox"""
    global dispatcher
    dispatcher = NotificationDispatcher()
    asyncio.create_task(dispatcher.dispatch_loop())
    asyncio.create_task(dispatcher.reconcile_loop())


@app.on_event("shutdown")
async def stop_notification_dispatcher():
    if dispatcher:
        await dispatcher.stop()


# =============================================================================
# Health Check Endpoint
# =============================================================================

@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        db_healthy = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_healthy = False

    try:
        queue_size = outbox.redis.llen(outbox.queue_key)
        redis_healthy = True
    except Exception:
        queue_size = -1
        redis_healthy = False

    if not db_healthy:
        overall_status = "unhealthy"
    elif not redis_healthy:
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return {
        "status": overall_status,
        "platform": platform.system(),
        "timestamp": datetime.utcnow().isoformat(),
        "database_healthy": db_healthy,
        "redis_healthy": redis_healthy,
        "notification_queue_size": queue_size
    }


# =============================================================================
# POST /tasks Endpoint
# =============================================================================

@app.post("/tasks", status_code=201, response_model=TaskCreateResponse)
async def create_task(
    task: TaskCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    task_outbox: NotificationOutbox = Depends(get_outbox)
):
    """
    Create a task and assign it in one transaction.

    Credits are deducted iff the task is stored. The response reports who got
    the task (or PENDING when no approved freelancer exists at all).
    """
    if user.role != "CLIENT":
        raise ForbiddenError("Only clients can create tasks")

    request = TaskRequest(
        title=task.title,
        description=task.description,
        credits_required=task.credits_required,
        category=task.category,
        requirements=task.requirements,
        required_skills=list(task.required_skills),
        estimated_hours=task.estimated_hours,
        deadline=task.deadline,
        chat_history=task.chat_history,
        style_references=task.style_references,
        attachments=[a.dict() for a in task.attachments],
        moodboard_items=task.moodboard_items,
        brief_id=task.brief_id,
    )

    outcome = TaskAssignmentCoordinator(db, outbox=task_outbox).create_task(user.id, request)

    return TaskCreateResponse(
        task_id=outcome.task_id,
        status=outcome.status,
        assigned_to=outcome.assigned_to,
        freelancer_id=outcome.freelancer_id,
        match_score=outcome.match_score,
        is_fallback=outcome.is_fallback,
        complexity=outcome.complexity,
        urgency=outcome.urgency,
        credits_remaining=outcome.credits_remaining
    )


# =============================================================================
# GET /tasks List Endpoint
# =============================================================================

@app.get("/tasks")
async def list_tasks(
    limit: int = QueryParam(20, ge=1, le=100),
    offset: int = QueryParam(0, ge=0),
    status: Optional[str] = None,
    view: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """
    List tasks visible through the caller's view, with summary stats
    """
    task_view = resolve_view(user, view)
    tasks, total = list_tasks_for_view(db, task_view, limit=limit, offset=offset, status=status)

    return {
        "tasks": [task_to_summary(t) for t in tasks],
        "total": total,
        "limit": limit,
        "offset": offset,
        "view": view_name(task_view),
        "stats": task_stats(db, task_view)
    }


# =============================================================================
# GET /tasks/{task_id} Endpoint
# =============================================================================

def _loads(raw: Optional[str], default):
    return json.loads(raw) if raw else default


@app.get("/tasks/{task_id}")
async def get_task(
    task_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """
    Task detail with attachments, offers and activity trail
    """
    task = db.query(Task).filter(Task.id == task_id).first()
    # Tasks outside the caller's reach look the same as missing ones
    if task is None or (user.role != "ADMIN" and user.id not in (task.client_id, task.freelancer_id)):
        raise NotFoundError("Task", task_id)

    files = db.query(TaskFile).filter(TaskFile.task_id == task.id).order_by(TaskFile.created_at).all()
    offers = db.query(TaskOffer).filter(TaskOffer.task_id == task.id).order_by(TaskOffer.offered_at).all()
    activity = (
        db.query(TaskActivityLog)
        .filter(TaskActivityLog.task_id == task.id)
        .order_by(TaskActivityLog.created_at, TaskActivityLog.action.desc())
        .all()
    )

    detail = task_to_summary(task)
    detail.update({
        "description": task.description,
        "requirements": _loads(task.requirements_json, None),
        "style_references": _loads(task.style_references_json, []),
        "moodboard_items": _loads(task.moodboard_items_json, []),
        "chat_history": _loads(task.chat_history_json, []),
        "brief_id": task.brief_id,
        "estimated_hours": task.estimated_hours,
        "max_revisions": task.max_revisions,
        "revisions_used": task.revisions_used,
        "files": [
            {
                "file_name": f.file_name,
                "file_url": f.file_url,
                "file_type": f.file_type,
                "file_size": f.file_size,
                "is_deliverable": f.is_deliverable,
            }
            for f in files
        ],
        "offers": [
            {
                "artist_id": o.artist_id,
                "match_score": o.match_score,
                "score_breakdown": _loads(o.score_breakdown_json, {}),
                "escalation_level": o.escalation_level,
                "response": o.response,
                "offered_at": o.offered_at.isoformat() if o.offered_at else None,
            }
            for o in offers
        ],
        "activity": [
            {
                "action": a.action,
                "actor_type": a.actor_type,
                "actor_id": a.actor_id,
                "previous_status": a.previous_status,
                "new_status": a.new_status,
                "metadata": _loads(a.metadata_json, {}),
                "created_at": a.created_at.isoformat() if a.created_at else None,
            }
            for a in activity
        ],
    })
    return detail


# =============================================================================
# Admin: Algorithm Configuration
# =============================================================================

@app.get("/admin/algorithm")
async def get_algorithm_configs(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return {
        "active": get_active_config(db).to_dict(),
        "versions": [config_to_dict(row) for row in list_configs(db)]
    }


@app.post("/admin/algorithm", status_code=201)
async def create_algorithm_config(
    body: AlgorithmConfigCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    row = create_config_draft(db, body.name, body.description, body.overrides)
    return config_to_dict(row)


@app.post("/admin/algorithm/{version}/publish")
async def publish_algorithm_config(
    version: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    logger.info(f"Algorithm config v{version} publish requested by {admin.id}")
    return config_to_dict(publish_config(db, version))


# =============================================================================
# Admin: Task Operations
# =============================================================================

@app.get("/admin/tasks/{task_id}/reassign")
async def get_reassignment_candidates(
    task_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return {"task_id": task_id, "freelancers": list_reassignment_candidates(db, task_id)}


@app.post("/admin/tasks/{task_id}/reassign")
async def reassign(
    task_id: str,
    body: ReassignRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    task_outbox: NotificationOutbox = Depends(get_outbox)
):
    return reassign_task(db, task_id, body.freelancer_id, actor_id=admin.id, outbox=task_outbox)


@app.post("/admin/tasks/assign-pending")
async def trigger_pending_assignment(
    body: Optional[AssignPendingRequest] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    task_outbox: NotificationOutbox = Depends(get_outbox)
):
    """
    Manually sweep PENDING tasks that never got a freelancer.
    Useful for operational recovery after onboarding new artists.
    """
    body = body or AssignPendingRequest()
    logger.info(f"Pending assignment sweep triggered by {admin.id} | dry_run={body.dry_run}")
    result = assign_pending_tasks(db, outbox=task_outbox, limit=body.limit, dry_run=body.dry_run)
    return {
        "status": "completed",
        "result": result,
        "timestamp": datetime.utcnow().isoformat()
    }


@app.post("/admin/freelancers/{user_id}/metrics")
async def refresh_freelancer_metrics(
    user_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    metrics = update_artist_metrics(db, user_id)
    return {"user_id": user_id, "updated": metrics is not None, "metrics": metrics}


# =============================================================================
# Admin: Notification Reconciliation
# =============================================================================

@app.post("/admin/notifications/reconcile")
async def trigger_notification_reconciliation(admin: User = Depends(require_admin)):
    """
    Manually re-queue orphaned notification outbox rows.
    """
    logger.info("Manual notification reconciliation triggered")
    runner = dispatcher or NotificationDispatcher(redis_client=outbox.redis)
    result = await runner.reconcile()
    return {
        "status": "completed",
        "result": result,
        "timestamp": datetime.utcnow().isoformat()
    }


# =============================================================================
# Main entry point for development
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.FASTAPI_HOST, port=settings.FASTAPI_PORT)
