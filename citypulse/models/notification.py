from __future__ import annotations

from citypulse.core.enums import Severity
from citypulse.models.common import CityPulseBaseModel


class Notification(CityPulseBaseModel):
    id: int
    title: str
    message: str
    severity: Severity = Severity.info
