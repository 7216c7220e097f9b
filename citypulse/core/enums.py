from enum import Enum


class ProjectStatus(str, Enum):
    planned = "planned"
    ongoing = "ongoing"
    completed = "completed"
    other = "other"


class ReportType(str, Enum):
    congestion = "congestion"
    hazard = "hazard"
    outage = "outage"
    sewage = "sewage"
    other = "other"


class ReportStatus(str, Enum):
    reported = "reported"
    confirmed = "confirmed"
    resolved = "resolved"


class Severity(str, Enum):
    success = "success"
    error = "error"
    warning = "warning"
    info = "info"


class View(str, Enum):
    citizen = "citizen"
    officials = "officials"


class AuthTab(str, Enum):
    sign_in = "sign_in"
    sign_up = "sign_up"


class GateState(str, Enum):
    anonymous = "anonymous"
    authenticating = "authenticating"
    privileged = "privileged"


class LocationStatus(str, Enum):
    loading = "loading"
    available = "available"
    unavailable = "unavailable"


class MarkerKind(str, Enum):
    project = "project"
    report = "report"
    user = "user"
