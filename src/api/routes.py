"""
API routes - Registration and member lookup endpoints.

This module defines the HTTP endpoints:
- POST /api/register - Register a new member
- GET /api/member/{member_id} - Look up a member by identifier

Endpoints are plain functions so FastAPI runs the blocking store and
mail calls in its threadpool.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from src.api.dependencies import get_registration_workflow
from src.api.models import (
    ErrorResponse,
    MemberResponse,
    MemberView,
    RegisterRequest,
    RegisterResponse,
)
from src.domain.exceptions import (
    DuplicateKey,
    PartialRegistration,
    RegistrationError,
    ValidationError,
)
from src.domain.registration import RegistrationWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["members"])

REGISTRATION_FAILED = "Registration failed"


def _error(status_code: int, **fields) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(**fields).to_content())


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Storage or notification failure"},
    },
    summary="Register a new member",
    description="Submit applicant details. A member ID is assigned and confirmation "
    "emails are sent to the applicant and the administrator.",
)
def register(
    request_data: RegisterRequest,
    workflow: RegistrationWorkflow = Depends(get_registration_workflow),
) -> RegisterResponse | JSONResponse:
    """
    Register a new member.

    - **fullName**, **email**, **phone**, **address**, **dob**, **membershipType**: required
    - **skills**, **interests**: optional

    Returns the assigned member ID on success.
    """
    try:
        outcome = workflow.register(request_data.to_record())
    except DuplicateKey as e:
        return _error(status.HTTP_409_CONFLICT, message=REGISTRATION_FAILED, error=e.message)
    except ValidationError as e:
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, message=REGISTRATION_FAILED, error=e.message)
    except PartialRegistration as e:
        # Member is stored; report the failure with its id so it can be reconciled
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            message=REGISTRATION_FAILED,
            error=e.message,
            member_id=e.member_id,
        )
    except RegistrationError as e:
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, message=REGISTRATION_FAILED, error=e.message
        )

    return RegisterResponse(message="Registration successful", member_id=outcome.member_id)


@router.get(
    "/member/{member_id}",
    response_model=MemberResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Member not found"},
        500: {"model": ErrorResponse, "description": "Storage failure"},
    },
    summary="Look up a member",
)
def get_member(
    member_id: str,
    workflow: RegistrationWorkflow = Depends(get_registration_workflow),
) -> MemberResponse | JSONResponse:
    """Return the member registered under member_id."""
    try:
        member = workflow.lookup(member_id)
    except RegistrationError as e:
        logger.error("Member lookup for %s failed: %s", member_id, e)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, error=e.message)

    if member is None:
        return _error(status.HTTP_404_NOT_FOUND, message="Member not found")

    return MemberResponse(member=MemberView.from_member(member))
