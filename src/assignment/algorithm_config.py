# src/assignment/algorithm_config.py
"""
Versioned scoring configuration.

Admins create drafts (inactive versions), then publish one; the scoring
engine always reads the newest active version and falls back to the
built-in defaults when there is none or it fails validation.
"""

import json
import uuid
import logging
from datetime import datetime
from typing import Optional, Dict, Any, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.errors import ConfigValidationError, NotFoundError
from src.models import AssignmentAlgorithmConfig
from .scoring import AlgorithmConfig, DEFAULT_CONFIG

logger = logging.getLogger("designdesk.assignment.algorithm_config")


def get_active_config(db: Session) -> AlgorithmConfig:
    """Active config, or defaults. Database errors propagate."""
    row = (
        db.query(AssignmentAlgorithmConfig)
        .filter(AssignmentAlgorithmConfig.is_active.is_(True))
        .order_by(AssignmentAlgorithmConfig.version.desc())
        .first()
    )
    if row is None:
        return DEFAULT_CONFIG

    try:
        config = AlgorithmConfig.from_dict(json.loads(row.config_json))
        validate_config(config)
    except (TypeError, ValueError, ConfigValidationError) as e:
        logger.error(f"Active algorithm config v{row.version} is invalid - using defaults: {e}")
        return DEFAULT_CONFIG
    return config


def validate_config(config: AlgorithmConfig) -> None:
    errors = {}
    for name, profile in config.weight_profiles().items():
        total = profile.total()
        if abs(total - 100) > 1e-6:
            errors[name] = total
    if errors:
        raise ConfigValidationError(
            "Weights must sum to 100",
            context={"weight_totals": errors}
        )


def create_config_draft(
    db: Session,
    name: str,
    description: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> AssignmentAlgorithmConfig:
    """Store a new inactive version layered over the defaults"""
    try:
        config = AlgorithmConfig.from_dict(overrides or {})
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(f"Invalid algorithm config: {e}")
    validate_config(config)

    try:
        latest = db.query(func.max(AssignmentAlgorithmConfig.version)).scalar() or 0
        row = AssignmentAlgorithmConfig(
            id=str(uuid.uuid4()),
            version=latest + 1,
            name=name,
            description=description,
            is_active=False,
            config_json=json.dumps(config.to_dict()),
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow()
        )
        db.add(row)
        db.commit()
        db.refresh(row)
    except Exception:
        db.rollback()
        raise

    logger.info(f"Algorithm config draft created | version={row.version} | name='{name}'")
    return row


def publish_config(db: Session, version: int) -> AssignmentAlgorithmConfig:
    """Activate one version and deactivate the rest"""
    try:
        row = (
            db.query(AssignmentAlgorithmConfig)
            .filter(AssignmentAlgorithmConfig.version == version)
            .with_for_update()
            .first()
        )
        if row is None:
            raise NotFoundError("Algorithm config version", str(version))

        db.query(AssignmentAlgorithmConfig).filter(
            AssignmentAlgorithmConfig.version != version
        ).update({"is_active": False}, synchronize_session=False)

        row.is_active = True
        row.published_at = datetime.utcnow()
        row.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(row)
    except Exception:
        db.rollback()
        raise

    logger.info(f"Algorithm config published | version={version}")
    return row


def list_configs(db: Session) -> List[AssignmentAlgorithmConfig]:
    return (
        db.query(AssignmentAlgorithmConfig)
        .order_by(AssignmentAlgorithmConfig.version.desc())
        .all()
    )


def config_to_dict(row: AssignmentAlgorithmConfig) -> Dict[str, Any]:
    return {
        "id": row.id,
        "version": row.version,
        "name": row.name,
        "description": row.description,
        "is_active": row.is_active,
        "config": json.loads(row.config_json),
        "published_at": row.published_at.isoformat() if row.published_at else None,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }
