"""Onboarding profile routes."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request, status

from atlas_api.dependencies import get_current_user, get_profile_gate
from atlas_api.models.user import User
from atlas_api.schemas.common import ErrorResponse, SuccessResponse
from atlas_api.schemas.profile import ProfileRequest
from atlas_api.schemas.responses import BankAccountData, ProfileData, ProfileStatusData
from atlas_api.services.profile import ProfileGate, stored_profile
from atlas_api.utils.response import success

router = APIRouter(prefix="/profile", tags=["profile"])


def profile_data(user: User) -> dict:
    return {
        **stored_profile(user),
        "profile_complete": user.profile_complete,
        "bank_account_linked": user.bank_account_id is not None,
    }


@router.get(
    "/status",
    summary="Profile completeness",
    description="Whether onboarding is complete and which required fields are still empty.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ProfileStatusData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def profile_status(
    request: Request,
    user: User = Depends(get_current_user),
    gate: ProfileGate = Depends(get_profile_gate),
):
    result = gate.check(user.id)
    return success(request, {"is_complete": result.is_complete, "missing_fields": result.missing_fields})


@router.post(
    "/complete",
    summary="Complete the profile",
    description="Validates every required field, links the payments account once and marks the profile complete.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ProfileData],
    responses={401: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def complete_profile(
    payload: ProfileRequest,
    request: Request,
    user: User = Depends(get_current_user),
    gate: ProfileGate = Depends(get_profile_gate),
):
    updated = gate.complete(user.id, payload.model_dump())
    return success(request, profile_data(updated))


@router.get(
    "",
    summary="Current profile",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ProfileData],
    responses={401: {"model": ErrorResponse}},
)
def get_profile(request: Request, user: User = Depends(get_current_user)):
    return success(request, profile_data(user))


@router.put(
    "",
    summary="Update the profile",
    description="Updates the provided fields and re-syncs a linked payments account; never creates one.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ProfileData],
    responses={401: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def update_profile(
    payload: ProfileRequest,
    request: Request,
    user: User = Depends(get_current_user),
    gate: ProfileGate = Depends(get_profile_gate),
):
    updated = gate.update(user.id, payload.model_dump(exclude_none=True))
    return success(request, profile_data(updated))


@router.get(
    "/bank-account",
    summary="Linked payments account",
    description="Reads the linked account from the payments provider.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[BankAccountData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def get_bank_account(
    request: Request,
    user: User = Depends(get_current_user),
    gate: ProfileGate = Depends(get_profile_gate),
):
    account = gate.bank_account(user.id)
    return success(request, asdict(account))
