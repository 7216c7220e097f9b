from fastapi import APIRouter, Depends, Query

from citypulse.api.deps import get_services, require_official
from citypulse.mapper.state_mapper import to_report_out
from citypulse.services.container import Services
from citypulse.services.dashboard import officials_summary
from citypulse.services.sessions import ClientSession

router = APIRouter(prefix="/officials", tags=["Officials Dashboard"])


@router.get("/dashboard")
async def officials_dashboard(session: ClientSession = Depends(require_official)):
    vm = session.reporting
    summary = officials_summary(vm.projects, vm.reports)
    summary["recent_reports"] = [to_report_out(r) for r in summary["recent_reports"]]
    summary["official"] = session.gate.identity.email
    return summary


@router.get("/audit")
async def list_audit_logs(
    limit: int = Query(200, ge=1, le=1000),
    session: ClientSession = Depends(require_official),
    services: Services = Depends(get_services),
):
    return await services.audit.list_logs(limit)
