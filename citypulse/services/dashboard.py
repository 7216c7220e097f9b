from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, List

from citypulse.core.enums import ProjectStatus, ReportStatus, ReportType
from citypulse.models.project import Project
from citypulse.models.report import Report

RECENT_LIMIT = 10
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _ts(report: Report) -> datetime:
    ts = report.timestamp
    if ts is None:
        return _EPOCH
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def officials_summary(projects: Iterable[Project], reports: Iterable[Report]) -> dict:
    projects = list(projects)
    reports = list(reports)

    # =========================
    # REPORTS
    # =========================
    reports_by_status = {s.value: 0 for s in ReportStatus}
    reports_by_status.update(Counter(r.status for r in reports))

    reports_by_type = {t.value: 0 for t in ReportType}
    reports_by_type.update(Counter(r.type.value for r in reports))

    # =========================
    # PROJECTS
    # =========================
    projects_by_status = {s.value: 0 for s in ProjectStatus}
    projects_by_status.update(Counter(p.status.value for p in projects))

    recent: List[Report] = sorted(reports, key=_ts, reverse=True)[:RECENT_LIMIT]

    return {
        "totals": {
            "projects": len(projects),
            "reports": len(reports),
            "open_reports": sum(1 for r in reports if r.status != ReportStatus.resolved.value),
        },
        "reports_by_status": reports_by_status,
        "reports_by_type": reports_by_type,
        "projects_by_status": projects_by_status,
        "recent_reports": recent,
    }
