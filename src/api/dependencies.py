"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
The store and mailer are created once in the app lifespan and
read from app.state.
"""

from fastapi import Depends, Request

from src.config.settings import Settings, get_settings
from src.domain.notifications import NotificationDispatcher
from src.domain.ports import Mailer, MemberStore
from src.domain.registration import RegistrationWorkflow


def get_store(request: Request) -> MemberStore:
    """
    Get member store from app state.

    The store is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.store


def get_mailer(request: Request) -> Mailer:
    """Get the process-wide mailer from app state."""
    return request.app.state.mailer


def get_dispatcher(
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
) -> NotificationDispatcher:
    """Create notification dispatcher addressed to the configured admin."""
    return NotificationDispatcher(
        mailer=mailer,
        admin_email=settings.admin_email,
        organization_name=settings.organization_name,
    )


def get_registration_workflow(
    store: MemberStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
) -> RegistrationWorkflow:
    """
    Create registration workflow with injected dependencies.

    Wires together the store and dispatcher for the domain service.
    """
    return RegistrationWorkflow(
        store=store,
        dispatcher=dispatcher,
        notification_mode=settings.notification_mode,
        id_max_attempts=settings.id_max_attempts,
    )
