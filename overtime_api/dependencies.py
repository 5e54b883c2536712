"""
Dependency providers wiring configuration, storage and integration clients
into the routers. Tests swap any of these through app.dependency_overrides.
"""
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from overtime_api.core.config import settings
from overtime_api.database import SessionLocal, get_db
from overtime_api.services.access_control import AccessChecker
from overtime_api.services.activity_log import ActivityLogService
from overtime_api.services.auth import AuthService
from overtime_api.services.authorization import HierarchyService
from overtime_api.services.erpnext import ERPNextClient
from overtime_api.services.notification_routing import NotificationRouter
from overtime_api.services.oauth import GoogleOAuthClient
from overtime_api.services.request_service import RequestService
from overtime_api.services.scheduler import SchedulerService
from overtime_api.services.settings_service import SettingsService
from overtime_api.services.workflow_relay import WorkflowRelay
from overtime_api.storage.base import RequestStore
from overtime_api.storage.sqlalchemy_store import SqlAlchemyStore
from overtime_api.storage.supabase_store import SupabaseStore, create_supabase_client


@lru_cache
def get_supabase_client():
    return create_supabase_client()


def _build_store(db: Session) -> RequestStore:
    if settings.storage.db_type == "supabase":
        return SupabaseStore(get_supabase_client())
    return SqlAlchemyStore(db)


@contextmanager
def store_scope() -> Iterator[RequestStore]:
    """Storage outside a request: scheduler runs and background notifications."""
    db = SessionLocal()
    try:
        yield _build_store(db)
    finally:
        db.close()


@contextmanager
def activity_scope() -> Iterator[ActivityLogService]:
    with store_scope() as store:
        yield ActivityLogService(store)


def get_store(db: Session = Depends(get_db)) -> RequestStore:
    return _build_store(db)


@lru_cache
def get_relay() -> WorkflowRelay:
    return WorkflowRelay()


@lru_cache
def get_erpnext() -> ERPNextClient:
    return ERPNextClient()


@lru_cache
def get_oauth() -> GoogleOAuthClient:
    return GoogleOAuthClient()


@lru_cache
def get_access_checker() -> AccessChecker:
    return AccessChecker()


def get_activity_scope():
    return activity_scope


def get_hierarchy(erpnext: ERPNextClient = Depends(get_erpnext)) -> HierarchyService:
    return HierarchyService(erpnext)


def get_router(relay: WorkflowRelay = Depends(get_relay)) -> NotificationRouter:
    return NotificationRouter(relay)


def get_activity_log(store: RequestStore = Depends(get_store)) -> ActivityLogService:
    return ActivityLogService(store)


def get_settings_service(store: RequestStore = Depends(get_store)) -> SettingsService:
    return SettingsService(store)


def get_auth_service(
    store: RequestStore = Depends(get_store),
    erpnext: ERPNextClient = Depends(get_erpnext),
    oauth: GoogleOAuthClient = Depends(get_oauth),
    access_checker: AccessChecker = Depends(get_access_checker)
) -> AuthService:
    return AuthService(store, erpnext, oauth, access_checker)


def get_request_service(
    store: RequestStore = Depends(get_store),
    relay: WorkflowRelay = Depends(get_relay),
    router: NotificationRouter = Depends(get_router),
    hierarchy: HierarchyService = Depends(get_hierarchy),
    scope=Depends(get_activity_scope)
) -> RequestService:
    return RequestService(store, relay, router, hierarchy, scope)


def get_scheduler(request: Request) -> SchedulerService:
    return request.app.state.scheduler
