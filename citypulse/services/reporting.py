"""
Citizen-side state: the live project and report sets, where the user is,
the report form and the notices shown after a submission.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import ValidationError

from citypulse.core.enums import LocationStatus, ReportStatus, Severity
from citypulse.core.errors import LocationError, LocationErrorKind, SubmissionError
from citypulse.db.mongo import PROJECTS, REPORTS
from citypulse.models.identity import GeolocationOptions, GeolocationSample
from citypulse.models.project import Project
from citypulse.models.report import Report, ReportForm
from citypulse.services.document_store import DocumentStore, Snapshot
from citypulse.services.geolocation import GeolocationProvider
from citypulse.services.map_adapter import MapView
from citypulse.services.notifications import NotificationCenter
from citypulse.utils.subscription import Subscription

logger = logging.getLogger(__name__)

SUCCESS_TITLE = "Report Submitted"
SUCCESS_MESSAGE = "Your issue has been reported successfully using your current location!"
ERROR_TITLE = "Submission Error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse(model, snapshot: Snapshot) -> list:
    out = []
    for doc in snapshot.docs:
        try:
            out.append(model.model_validate(doc))
        except ValidationError as exc:
            logger.warning("Skipping malformed %s document %s: %s", snapshot.collection, doc.get("id"), exc)
    return out


class LiveReportingViewModel:
    def __init__(
        self,
        store: DocumentStore,
        geolocation: Optional[GeolocationProvider],
        map_view: MapView,
        options: Optional[GeolocationOptions] = None,
        notifications: Optional[NotificationCenter] = None,
        located_zoom: int = 15,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.geolocation = geolocation
        self.map_view = map_view
        self.options = options or GeolocationOptions()
        self.notifications = notifications or NotificationCenter()
        self.located_zoom = located_zoom
        self._clock = clock

        self.projects: List[Project] = []
        self.reports: List[Report] = []

        self.location: Optional[GeolocationSample] = None
        self.location_error: Optional[LocationError] = None
        self.location_loading = False

        self.form = ReportForm()
        self.report_open = False
        self.is_submitting = False
        self.submission_error: Optional[SubmissionError] = None

        self._subscriptions: List[Subscription] = []

    # ------------------------------------------------------------------
    # subscriptions
    # ------------------------------------------------------------------
    @property
    def mounted(self) -> bool:
        return bool(self._subscriptions)

    async def mount(self, resolve: bool = True, sync_timeout: float = 2.0) -> None:
        if self.mounted:
            return
        self._subscriptions = [
            self.store.on_snapshot(PROJECTS, self._on_projects, self._on_error(PROJECTS)),
            self.store.on_snapshot(REPORTS, self._on_reports, self._on_error(REPORTS)),
        ]
        for name in (PROJECTS, REPORTS):
            if not await self.store.synced(name, sync_timeout):
                logger.warning("No %s snapshot after %ss, continuing without it", name, sync_timeout)
        if resolve:
            await self.resolve_location()

    def unmount(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []

    def _on_projects(self, snapshot: Snapshot) -> None:
        self.projects = _parse(Project, snapshot)

    def _on_reports(self, snapshot: Snapshot) -> None:
        self.reports = _parse(Report, snapshot)

    @staticmethod
    def _on_error(name: str):
        def handle(exc: Exception) -> None:
            logger.error("Error fetching %s: %s", name, exc)

        return handle

    # ------------------------------------------------------------------
    # location
    # ------------------------------------------------------------------
    @property
    def location_status(self) -> LocationStatus:
        if self.location_loading:
            return LocationStatus.loading
        if self.location is not None:
            return LocationStatus.available
        return LocationStatus.unavailable

    async def resolve_location(self) -> Optional[GeolocationSample]:
        if self.geolocation is None:
            self.location_error = LocationError(LocationErrorKind.unsupported)
            return None

        self.location_loading = True
        self.location_error = None
        if self.geolocation.awaiting_fix:
            # stays loading until the browser posts a fix or an error
            return None
        try:
            sample = await self.geolocation.get_current_position(self.options)
        except LocationError as exc:
            logger.info("Location request failed: %s", exc.kind.value)
            self.location_error = exc
            return None
        except Exception:
            logger.exception("Location request failed")
            self.location_error = LocationError(LocationErrorKind.unknown)
            return None
        finally:
            self.location_loading = False

        self.location = sample
        self.map_view.set_view(sample.as_lat_lng(), self.located_zoom)
        return sample

    # ------------------------------------------------------------------
    # report form
    # ------------------------------------------------------------------
    @property
    def can_submit(self) -> bool:
        return self.location is not None and not self.is_submitting

    async def open_report(self) -> None:
        if self.location is None:
            await self.resolve_location()
        self.report_open = True

    def close_report(self) -> None:
        self.report_open = False

    async def submit_report(self, form: Optional[ReportForm] = None) -> Optional[Report]:
        if self.is_submitting:
            return None
        if form is not None:
            self.form = form

        self.is_submitting = True
        self.submission_error = None
        try:
            report = await self._persist(self.form)
        except SubmissionError as exc:
            logger.error("Error submitting report: %s", exc.message)
            self.submission_error = exc
            self.notifications.append(ERROR_TITLE, exc.message, Severity.error)
            return None
        finally:
            self.is_submitting = False

        self.form = ReportForm()
        self.report_open = False
        self.notifications.append(SUCCESS_TITLE, SUCCESS_MESSAGE, Severity.success)
        return report

    async def _persist(self, form: ReportForm) -> Report:
        if self.location is None:
            raise SubmissionError.missing_location()

        report = Report(
            type=form.type,
            description=form.description,
            position=self.location.as_lat_lng(),
            status=ReportStatus.reported.value,
            timestamp=self._clock(),
            reported_by="citizen",
        )
        try:
            report_id = await self.store.add_doc(REPORTS, report.to_document())
        except Exception as exc:
            raise SubmissionError.backend_failure(str(exc)) from exc
        return report.model_copy(update={"id": report_id})

    def dismiss(self, notification_id: int) -> bool:
        return self.notifications.dismiss(notification_id)
