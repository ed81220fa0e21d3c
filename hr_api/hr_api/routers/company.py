"""Company profile endpoints (admin only)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from hr_core.state.repository import CompanyRepository
from hr_core.state.tables import CompanyTable

from hr_api.dependencies import AdminDep, CompanySessionDep
from hr_api.schemas import CompanyProfileResponse, CompanyProfileUpdate
from hr_api.services.session_resolver import profile_complete

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/company", tags=["company"])


def _to_response(company: CompanyTable) -> CompanyProfileResponse:
    return CompanyProfileResponse(
        id=company.id,
        company_name=company.company_name,
        address=company.address,
        phone=company.phone,
        company_email=company.company_email,
        paye_ref=company.paye_ref,
        subscription_status=company.subscription_status,
        profile_complete=profile_complete(company),
    )


@router.get("/profile", response_model=CompanyProfileResponse)
async def get_profile(session: CompanySessionDep, admin: AdminDep) -> CompanyProfileResponse:
    company = await CompanyRepository(session).get(admin.company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return _to_response(company)


@router.put("/profile", response_model=CompanyProfileResponse)
async def update_profile(
    body: CompanyProfileUpdate,
    session: CompanySessionDep,
    admin: AdminDep,
) -> CompanyProfileResponse:
    """Update the profile fields; the response says whether it is now complete."""
    fields = body.model_dump(exclude_unset=True)
    company = await CompanyRepository(session).update_profile(admin.company_id, **fields)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    logger.info("Company %s profile updated (%s)", admin.company_id, ", ".join(sorted(fields)) or "no fields")
    return _to_response(company)
