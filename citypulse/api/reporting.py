from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from citypulse.api.deps import get_services, get_session
from citypulse.mapper.state_mapper import (
    to_error_out,
    to_notifications_out,
    to_report_out,
    to_reporting_out,
)
from citypulse.models.report import ReportForm
from citypulse.schemas.reporting import (
    LocationReportIn,
    NotificationOut,
    ReportIn,
    ReportingOut,
    SubmitOut,
)
from citypulse.services.container import Services
from citypulse.services.geolocation import ClientGeolocation
from citypulse.services.sessions import ClientSession

router = APIRouter(tags=["Reporting"])


@router.get("/reporting", response_model=ReportingOut)
async def reporting_state(session: ClientSession = Depends(get_session)):
    return to_reporting_out(session.reporting)


# =========================
# Location
# =========================
@router.post("/location", response_model=ReportingOut)
async def report_location(body: LocationReportIn, session: ClientSession = Depends(get_session)):
    provider = session.geolocation
    if not isinstance(provider, ClientGeolocation):
        raise HTTPException(status.HTTP_409_CONFLICT, "Location is resolved by the server")

    if body.error is not None:
        provider.report_error(body.error)
    else:
        provider.report_position(body.latitude, body.longitude)

    await session.reporting.resolve_location()
    return to_reporting_out(session.reporting)


@router.post("/location/resolve", response_model=ReportingOut)
async def resolve_location(session: ClientSession = Depends(get_session)):
    await session.reporting.resolve_location()
    return to_reporting_out(session.reporting)


# =========================
# Report form
# =========================
@router.post("/reporting/modal", response_model=ReportingOut)
async def open_report_form(session: ClientSession = Depends(get_session)):
    await session.reporting.open_report()
    return to_reporting_out(session.reporting)


@router.delete("/reporting/modal", response_model=ReportingOut)
async def close_report_form(session: ClientSession = Depends(get_session)):
    session.reporting.close_report()
    return to_reporting_out(session.reporting)


@router.post("/reports", response_model=SubmitOut)
async def submit_report(
    body: ReportIn,
    session: ClientSession = Depends(get_session),
    services: Services = Depends(get_services),
):
    vm = session.reporting
    if vm.is_submitting:
        raise HTTPException(status.HTTP_409_CONFLICT, "A report is already being submitted")

    report = await vm.submit_report(ReportForm(type=body.type, description=body.description))
    if report is not None:
        await services.audit.record(
            "report.create",
            report.reported_by,
            {"type": "report", "id": report.id},
            "Report created",
            report_type=report.type.value,
        )

    return {
        "ok": report is not None,
        "report": to_report_out(report) if report is not None else None,
        "error": to_error_out(vm.submission_error),
        "notifications": to_notifications_out(vm),
    }


# =========================
# Notifications
# =========================
@router.get("/notifications", response_model=List[NotificationOut])
async def list_notifications(session: ClientSession = Depends(get_session)):
    return to_notifications_out(session.reporting)


@router.delete("/notifications/{notification_id}", response_model=List[NotificationOut])
async def dismiss_notification(notification_id: int, session: ClientSession = Depends(get_session)):
    session.reporting.dismiss(notification_id)
    return to_notifications_out(session.reporting)
