from dataclasses import asdict
from typing import Any, Dict, Optional

from citypulse.core.errors import CityPulseError
from citypulse.models.project import Project
from citypulse.models.report import Report
from citypulse.services.map_adapter import LEGEND, TILE_ATTRIBUTION, build_markers
from citypulse.services.reporting import LiveReportingViewModel
from citypulse.services.session_gate import SessionGate
from citypulse.services.sessions import ClientSession


def to_error_out(err: Optional[CityPulseError]) -> Optional[Dict[str, Any]]:
    return err.as_dict() if err is not None else None


def to_gate_out(gate: SessionGate) -> Dict[str, Any]:
    identity = None
    if gate.identity is not None:
        identity = {
            "uid": gate.identity.uid,
            "email": gate.identity.email,
            "is_privileged": gate.is_privileged,
        }

    return {
        "state": gate.state,
        "view": gate.view,
        "restricted": gate.restricted,
        "auth_open": gate.auth_open,
        "tab": gate.tab,
        "identity": identity,
        "login_error": to_error_out(gate.login_error),
        "signup_error": to_error_out(gate.signup_error),
        "signup_success": gate.signup_success,
        "sign_up_email": gate.sign_up_email,
    }


def to_project_out(p: Project) -> Dict[str, Any]:
    return {
        "id": p.id,
        "type": p.type,
        "status": p.status,
        "name": p.name,
        "description": p.description,
        "position": p.location(),
    }


def to_report_out(r: Report) -> Dict[str, Any]:
    return {
        "id": r.id,
        "type": r.type,
        "description": r.description,
        "position": r.location(),
        "status": r.status,
        "timestamp": r.timestamp,
        "reported_by": r.reported_by,
    }


def to_notifications_out(vm: LiveReportingViewModel):
    return [n.model_dump() for n in vm.notifications.items]


def to_reporting_out(vm: LiveReportingViewModel) -> Dict[str, Any]:
    location = None
    if vm.location is not None:
        location = vm.location.model_dump()

    return {
        "projects": [to_project_out(p) for p in vm.projects],
        "reports": [to_report_out(r) for r in vm.reports],
        "location": location,
        "location_status": vm.location_status,
        "location_error": to_error_out(vm.location_error),
        "form": vm.form.model_dump(),
        "report_open": vm.report_open,
        "is_submitting": vm.is_submitting,
        "can_submit": vm.can_submit,
        "submission_error": to_error_out(vm.submission_error),
        "notifications": to_notifications_out(vm),
    }


def to_map_out(session: ClientSession, tile_url: str) -> Dict[str, Any]:
    vm = session.reporting
    session.selection.sync(vm.projects, vm.reports)
    markers = build_markers(vm.projects, vm.reports, vm.location)
    popup = session.selection.popup

    return {
        "center": session.viewport.center,
        "zoom": session.viewport.zoom,
        "tile_url": tile_url,
        "attribution": TILE_ATTRIBUTION,
        "markers": [asdict(m) for m in markers],
        "legend": LEGEND,
        "selected": asdict(popup) if popup else None,
    }
