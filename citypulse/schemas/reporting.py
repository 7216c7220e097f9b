from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from citypulse.core.enums import LocationStatus, ProjectStatus, ReportType, Severity
from citypulse.core.errors import LocationErrorKind
from citypulse.schemas.auth import ErrorOut


class ReportIn(BaseModel):
    type: ReportType = ReportType.congestion
    description: str = Field(..., min_length=1, max_length=2000)


class LocationReportIn(BaseModel):
    """What the browser's geolocation call produced: a fix or an error kind."""

    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    error: Optional[LocationErrorKind] = None

    @model_validator(mode="after")
    def fix_or_error(self):
        has_fix = self.latitude is not None and self.longitude is not None
        if has_fix == (self.error is not None):
            raise ValueError("send either latitude/longitude or error")
        return self


class ProjectOut(BaseModel):
    id: str
    type: str
    status: ProjectStatus
    name: Optional[str] = None
    description: Optional[str] = None
    position: Optional[Tuple[float, float]] = None


class ReportOut(BaseModel):
    id: Optional[str] = None
    type: ReportType
    description: str
    position: Optional[Tuple[float, float]] = None
    status: str
    timestamp: Optional[datetime] = None
    reported_by: str


class LocationOut(BaseModel):
    latitude: float
    longitude: float
    taken_at: datetime


class NotificationOut(BaseModel):
    id: int
    title: str
    message: str
    severity: Severity


class ReportFormOut(BaseModel):
    type: ReportType
    description: str


class ReportingOut(BaseModel):
    projects: List[ProjectOut]
    reports: List[ReportOut]
    location: Optional[LocationOut] = None
    location_status: LocationStatus
    location_error: Optional[ErrorOut] = None
    form: ReportFormOut
    report_open: bool
    is_submitting: bool
    can_submit: bool
    submission_error: Optional[ErrorOut] = None
    notifications: List[NotificationOut]


class SubmitOut(BaseModel):
    ok: bool
    report: Optional[ReportOut] = None
    error: Optional[ErrorOut] = None
    notifications: List[NotificationOut]
