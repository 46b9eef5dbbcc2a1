# DesignDesk Models Package
from .database import Base, engine, SessionLocal, get_db
from .user import User, FreelancerProfile, ClientArtistAffinity
from .task import (
    TaskCategory,
    Task,
    TaskFile,
    TaskOffer,
    TaskActivityLog,
    CreditTransaction,
    AssignmentAlgorithmConfig
)
from .notification import NotificationOutbox, Notification

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "User",
    "FreelancerProfile",
    "ClientArtistAffinity",
    "TaskCategory",
    "Task",
    "TaskFile",
    "TaskOffer",
    "TaskActivityLog",
    "CreditTransaction",
    "AssignmentAlgorithmConfig",
    "NotificationOutbox",
    "Notification",
]
