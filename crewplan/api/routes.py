import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from crewplan.api.dto import (
    ApplyReportOut,
    AssignmentOut,
    BillingOut,
    BillingStatusUpdate,
    CandidateOut,
    CompletionOut,
    EvaluateRequest,
    MissionIn,
    MissionOut,
    PaymentRequest,
    RosterResponse,
    SelectionRequest,
    TechnicianIn,
    TechnicianOut,
    ToggleRequest,
    ToggleResponse,
    UnavailabilityIn,
    ValidationUpdate,
    WindowIn,
    WindowOut,
)
from crewplan.engine.eligibility import initial_selection
from crewplan.engine.resolver import resolve_roster
from crewplan.models.entities import (
    AcceptedBooking,
    Assignment,
    AssignmentStatus,
    Availability,
    Technician,
    Unavailability,
)
from crewplan.models.errors import (
    BillingTransitionError,
    InvalidTransitionError,
    InvalidWindowError,
    NotFoundError,
    SelectionError,
)
from crewplan.notifications.mailer import Notifier, get_notifier
from crewplan.services.billing import BillingService
from crewplan.services.roster import RosterService
from crewplan.storage.cache import RosterCache, get_cache
from crewplan.storage.database import get_db
from crewplan.storage.repositories import (
    AssignmentRepository,
    AvailabilityRepository,
    BillingRepository,
    MissionRepository,
    TechnicianRepository,
)
from crewplan.utils.timeparse import parse_timestamp, parse_window

router = APIRouter()
logger = logging.getLogger(__name__)


def get_roster_service(db: Session = Depends(get_db), notifier: Notifier = Depends(get_notifier)) -> RosterService:
    return RosterService(db, notifier)


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidWindowError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, SelectionError):
        return HTTPException(status_code=409, detail={"message": str(exc), "refused": exc.refused})
    if isinstance(exc, (InvalidTransitionError, BillingTransitionError)):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=500, detail="Internal error")


# Stateless evaluation


@router.post("/roster/evaluate", response_model=RosterResponse, summary="Classify technicians against a posted snapshot")
def evaluate_roster(req: EvaluateRequest, cache: Optional[RosterCache] = Depends(get_cache)):
    """
    Run the conflict resolver on a snapshot supplied by the caller.

    **Labels** (first match wins): `unavailable`, `conflict`, `available`,
    `no_availability`, then `unavailable` when declared availability misses
    the mission.

    **Error Handling:**
    - 422: malformed timestamps (unless lenient date parsing is enabled)
    """
    logger.info(f"Evaluate request: mission={req.mission.id}, {len(req.technicians)} technicians")

    snapshot_hash = RosterCache.hash_snapshot(req.model_dump(mode="json"))
    if cache is not None:
        cached = cache.get(snapshot_hash)
        if cached:
            logger.info("Cache hit")
            return {**cached, "cached": True}

    try:
        mission = req.mission.to_domain()
        technicians: List[Technician] = []
        availabilities: List[Availability] = []
        unavailabilities: List[Unavailability] = []
        assignments: List[Assignment] = []
        for t in req.technicians:
            technicians.append(t.to_domain())
            availabilities.extend(t.availability_windows())
            unavailabilities.extend(t.unavailability_windows())
            if t.assignment_status is not None:
                assignments.append(Assignment(
                    id=f"{mission.id}:{t.id}", mission_id=mission.id,
                    technician_id=t.id, status=t.assignment_status,
                ))
        bookings = [
            AcceptedBooking(assignment_id=f"{b.mission.id}:{b.technician_id}",
                            technician_id=b.technician_id, mission=b.mission.to_domain())
            for b in req.bookings
        ]
    except InvalidWindowError as exc:
        logger.warning(f"Rejected snapshot: {exc}")
        raise _http_error(exc)

    roster = resolve_roster(mission, technicians, availabilities, unavailabilities, assignments, bookings)
    response = RosterResponse(
        mission_id=mission.id,
        candidates=[CandidateOut.from_domain(c) for c in roster],
        selection=sorted(initial_selection(assignments)),
    )
    if cache is not None:
        cache.set(snapshot_hash, response.model_dump(mode="json"))
    return response


# Missions


@router.post("/missions", response_model=MissionOut, status_code=201)
def create_mission(req: MissionIn, db: Session = Depends(get_db)):
    try:
        mission = req.to_domain(str(uuid.uuid4()))
    except InvalidWindowError as exc:
        raise _http_error(exc)
    MissionRepository(db).save(mission)
    logger.info(f"Mission {mission.id} created: {mission.title}")
    return MissionOut.from_domain(mission)


@router.get("/missions", response_model=List[MissionOut])
def list_missions(db: Session = Depends(get_db)):
    return [MissionOut.from_domain(m) for m in MissionRepository(db).list_all()]


@router.get("/missions/{mission_id}", response_model=MissionOut)
def get_mission(mission_id: str, db: Session = Depends(get_db)):
    mission = MissionRepository(db).get_by_id(mission_id)
    if mission is None:
        raise _http_error(NotFoundError("Mission", mission_id))
    return MissionOut.from_domain(mission)


@router.get("/missions/{mission_id}/roster", response_model=RosterResponse, summary="Candidates for a mission")
def mission_roster(mission_id: str, service: RosterService = Depends(get_roster_service)):
    try:
        roster = service.load(mission_id)
    except NotFoundError as exc:
        raise _http_error(exc)
    assignments = [c.assignment for c in roster if c.assignment is not None]
    return RosterResponse(
        mission_id=mission_id,
        candidates=[CandidateOut.from_domain(c) for c in roster],
        selection=sorted(initial_selection(assignments)),
    )


@router.post("/missions/{mission_id}/selection/toggle", response_model=ToggleResponse)
def toggle_technician(mission_id: str, req: ToggleRequest, service: RosterService = Depends(get_roster_service)):
    """Add or remove a technician from an unsaved proposal selection."""
    try:
        change = service.toggle(mission_id, req.selection, req.technician_id)
    except NotFoundError as exc:
        raise _http_error(exc)
    return ToggleResponse(
        technician_id=change.technician_id,
        selection=sorted(change.selected),
        changed=change.changed,
        reason=change.reason,
    )


@router.post("/missions/{mission_id}/proposals", response_model=ApplyReportOut)
def submit_proposals(mission_id: str, req: SelectionRequest, service: RosterService = Depends(get_roster_service)):
    """
    Replace the mission's pending proposals with the submitted selection.

    **Error Handling:**
    - 404: unknown mission
    - 409: a newly selected technician is accepted, unavailable, in conflict or unknown
    """
    logger.info(f"Proposal request for mission {mission_id}: {len(req.technician_ids)} technician(s)")
    try:
        report = service.submit_selection(mission_id, req.technician_ids)
    except (NotFoundError, SelectionError) as exc:
        logger.warning(f"Proposal refused: {exc}")
        raise _http_error(exc)
    return ApplyReportOut.from_domain(report)


@router.delete("/missions/{mission_id}/proposals", response_model=ApplyReportOut)
def cancel_proposals(mission_id: str, service: RosterService = Depends(get_roster_service)):
    try:
        report = service.cancel_pending(mission_id)
    except NotFoundError as exc:
        raise _http_error(exc)
    return ApplyReportOut.from_domain(report)


@router.get("/missions/{mission_id}/completion", response_model=CompletionOut)
def mission_completion(mission_id: str, service: RosterService = Depends(get_roster_service)):
    try:
        summary = service.completion(mission_id)
    except NotFoundError as exc:
        raise _http_error(exc)
    return CompletionOut.from_domain(summary)


@router.get("/missions/{mission_id}/assignments", response_model=List[AssignmentOut])
def mission_assignments(mission_id: str, db: Session = Depends(get_db)):
    return [AssignmentOut.from_domain(a) for a in AssignmentRepository(db).list_for_mission(mission_id)]


# Assignments


@router.post("/assignments/{assignment_id}/accept", response_model=ApplyReportOut)
def accept_assignment(assignment_id: str, service: RosterService = Depends(get_roster_service)):
    try:
        report = service.respond(assignment_id, accept=True)
    except (NotFoundError, InvalidTransitionError) as exc:
        raise _http_error(exc)
    return ApplyReportOut.from_domain(report)


@router.post("/assignments/{assignment_id}/reject", response_model=ApplyReportOut)
def reject_assignment(assignment_id: str, service: RosterService = Depends(get_roster_service)):
    try:
        report = service.respond(assignment_id, accept=False)
    except (NotFoundError, InvalidTransitionError) as exc:
        raise _http_error(exc)
    return ApplyReportOut.from_domain(report)


# Technicians


@router.post("/technicians", response_model=TechnicianOut, status_code=201)
def create_technician(req: TechnicianIn, db: Session = Depends(get_db)):
    technician = Technician(
        id=str(uuid.uuid4()), name=req.name, is_validated=req.is_validated, email=req.email, phone=req.phone,
    )
    TechnicianRepository(db).save(technician)
    return TechnicianOut.from_domain(technician)


@router.get("/technicians", response_model=List[TechnicianOut])
def list_technicians(db: Session = Depends(get_db)):
    return [TechnicianOut.from_domain(t) for t in TechnicianRepository(db).list_all()]


@router.patch("/technicians/{technician_id}/validation", response_model=TechnicianOut)
def set_technician_validation(technician_id: str, req: ValidationUpdate, db: Session = Depends(get_db)):
    repo = TechnicianRepository(db)
    if not repo.set_validated(technician_id, req.is_validated):
        raise _http_error(NotFoundError("Technician", technician_id))
    logger.info(f"Technician {technician_id} validation set to {req.is_validated}")
    return TechnicianOut.from_domain(repo.get_by_id(technician_id))


@router.get("/technicians/{technician_id}/proposals", response_model=List[AssignmentOut])
def technician_proposals(technician_id: str, db: Session = Depends(get_db)):
    """Proposals still awaiting this technician's answer, newest first."""
    assignments = AssignmentRepository(db).list_for_technician(technician_id, AssignmentStatus.PROPOSED)
    return [AssignmentOut.from_domain(a) for a in assignments]


def _require_technician(db: Session, technician_id: str) -> None:
    if TechnicianRepository(db).get_by_id(technician_id) is None:
        raise _http_error(NotFoundError("Technician", technician_id))


@router.post("/technicians/{technician_id}/availability", response_model=WindowOut, status_code=201)
def add_availability(technician_id: str, req: WindowIn, db: Session = Depends(get_db)):
    _require_technician(db, technician_id)
    try:
        start, end = parse_window(req.start, req.end)
    except InvalidWindowError as exc:
        raise _http_error(exc)
    window = Availability(id=str(uuid.uuid4()), technician_id=technician_id, start=start, end=end)
    AvailabilityRepository(db).add_availability(window)
    return WindowOut.from_domain(window)


@router.get("/technicians/{technician_id}/availability", response_model=List[WindowOut])
def list_availability(technician_id: str, db: Session = Depends(get_db)):
    return [WindowOut.from_domain(w) for w in AvailabilityRepository(db).list_availabilities(technician_id)]


@router.delete("/availability/{window_id}", status_code=204)
def delete_availability(window_id: str, db: Session = Depends(get_db)):
    if not AvailabilityRepository(db).delete_availability(window_id):
        raise _http_error(NotFoundError("Availability", window_id))


@router.post("/technicians/{technician_id}/unavailability", response_model=WindowOut, status_code=201)
def add_unavailability(technician_id: str, req: UnavailabilityIn, db: Session = Depends(get_db)):
    _require_technician(db, technician_id)
    try:
        start, end = parse_window(req.start, req.end)
    except InvalidWindowError as exc:
        raise _http_error(exc)
    window = Unavailability(id=str(uuid.uuid4()), technician_id=technician_id, start=start, end=end, reason=req.reason)
    AvailabilityRepository(db).add_unavailability(window)
    return WindowOut.from_domain(window)


@router.get("/technicians/{technician_id}/unavailability", response_model=List[WindowOut])
def list_unavailability(technician_id: str, db: Session = Depends(get_db)):
    return [WindowOut.from_domain(w) for w in AvailabilityRepository(db).list_unavailabilities(technician_id)]


@router.delete("/unavailability/{window_id}", status_code=204)
def delete_unavailability(window_id: str, db: Session = Depends(get_db)):
    if not AvailabilityRepository(db).delete_unavailability(window_id):
        raise _http_error(NotFoundError("Unavailability", window_id))


# Billing


@router.get("/billing", response_model=List[BillingOut])
def list_billing(technician_id: Optional[str] = Query(None, description="Only entries for this technician"),
                 db: Session = Depends(get_db)):
    return [BillingOut.from_domain(b) for b in BillingRepository(db).list_all(technician_id)]


@router.patch("/billing/{entry_id}", response_model=BillingOut)
def update_billing_status(entry_id: str, req: BillingStatusUpdate, db: Session = Depends(get_db)):
    """
    Advance one billing entry: pending -> validated -> paid.

    **Error Handling:**
    - 404: unknown entry
    - 409: the entry cannot move to the requested status
    """
    try:
        entry = BillingService(db).update_status(entry_id, req.status, req.notes)
    except (NotFoundError, BillingTransitionError) as exc:
        raise _http_error(exc)
    return BillingOut.from_domain(entry)


@router.post("/billing/pay", response_model=List[BillingOut])
def pay_billing(req: PaymentRequest, db: Session = Depends(get_db)):
    """
    Mark a batch of validated entries as paid. Nothing is paid if any entry
    is unknown or not validated.
    """
    try:
        payment_date = parse_timestamp(req.payment_date) if req.payment_date else None
        entries = BillingService(db).pay(req.entry_ids, payment_date)
    except (NotFoundError, InvalidWindowError, BillingTransitionError) as exc:
        raise _http_error(exc)
    return [BillingOut.from_domain(b) for b in entries]
