# Overview: Service-layer operations for adoption requests; owns the request state machine.

"""
Adoption Lifecycle Service

================================================================================
PURPOSE: Move adoption requests through their lifecycle and keep animals,
competing requests and the chosen request consistent with each other.
================================================================================

STATE MACHINE:
    Pending -> Interview Scheduled -> Approved -> Completed

    Staff may also jump from any active state straight to Completed or
    Rejected. The owning adopter may cancel while the request is Pending.
    Completed, Rejected and Cancelled are terminal.

COMPLETION (one transaction):
    1. The request becomes Completed (processed_by / staff_comments recorded)
    2. The animal becomes Adopted; it must still be Available at that moment
    3. Every other active request for the animal becomes Rejected

    If any step fails nothing is committed.

ACTIVE REQUESTS:
    Pending, Interview Scheduled and Approved. At most one per
    (animal, adopter) pair.
================================================================================
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import AdoptionRequest, AdoptionStatus, Animal, AnimalStatus, RoleName
from ..validation import ConflictError, NotFoundError, ValidationError, clean_text
from . import audit_service
from .caller_context import CallerContext, NotOwner, require_owner, require_role
from .concurrency import lock_for_update, run_in_transaction
from .filters import AdoptionRequestFilter


class AnimalUnavailable(ConflictError):
    code = "AnimalUnavailable"
    http_status = 400


class UnknownAnimal(AnimalUnavailable):
    """Animal is missing or soft-deleted; reported as AnimalUnavailable with a 404."""
    http_status = 404


class AnimalAlreadyAdopted(ConflictError):
    code = "AnimalAlreadyAdopted"
    http_status = 409


class DuplicateActiveRequest(ConflictError):
    code = "DuplicateActiveRequest"
    http_status = 400


class IllegalTransition(ConflictError):
    code = "IllegalTransition"
    http_status = 400


class InvalidState(ConflictError):
    code = "InvalidState"
    http_status = 400


class RequestNotFound(NotFoundError):
    code = "RequestNotFound"


class InvalidStatus(ValidationError):
    code = "InvalidStatus"


ADOPTED_BY_ANOTHER_COMMENT = "Animal has been adopted by another applicant"

STAFF_TRANSITIONS = {
    AdoptionStatus.PENDING: {
        AdoptionStatus.INTERVIEW_SCHEDULED,
        AdoptionStatus.REJECTED,
        AdoptionStatus.COMPLETED,
    },
    AdoptionStatus.INTERVIEW_SCHEDULED: {
        AdoptionStatus.APPROVED,
        AdoptionStatus.REJECTED,
        AdoptionStatus.COMPLETED,
    },
    AdoptionStatus.APPROVED: {
        AdoptionStatus.REJECTED,
        AdoptionStatus.COMPLETED,
    },
}


def validate_status(status: str) -> None:
    """Reject status strings that are not part of the lifecycle at all."""
    if status not in AdoptionStatus.ALL:
        raise InvalidStatus(
            f"Invalid status '{status}'. Must be one of: {', '.join(AdoptionStatus.ALL)}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check whether staff may move a request from from_status to to_status.

    Terminal states have no outgoing transitions. Same-state moves are not
    transitions and are rejected. Cancellation is not a staff transition
    (see cancel_request).
    """
    return to_status in STAFF_TRANSITIONS.get(from_status, set())


# =============================================================================
# CREATE
# =============================================================================

def create_request(caller: CallerContext, animal_id: int, adopter_id: int | None = None) -> AdoptionRequest:
    """
    File a new Pending request for an Available animal.

    Args:
        caller: authenticated caller; must be the adopter
        animal_id: animal being applied for
        adopter_id: defaults to the caller

    Raises:
        NotOwner: adopter_id is someone other than the caller
        AnimalUnavailable: animal missing or not Available
        DuplicateActiveRequest: the adopter already has an active request for it
    """
    if adopter_id is None:
        adopter_id = caller.user_id
    require_owner(caller, adopter_id, "Adoption requests can only be filed for yourself")

    def _op():
        animal = lock_for_update(
            db.session.query(Animal).filter_by(id=animal_id, is_deleted=False)
        ).first()
        if not animal:
            raise UnknownAnimal(f"Animal {animal_id} not found")
        if animal.status != AnimalStatus.AVAILABLE:
            raise AnimalUnavailable(
                f"Animal {animal_id} is not available for adoption (status '{animal.status}')"
            )

        existing = db.session.query(AdoptionRequest.id).filter(
            AdoptionRequest.animal_id == animal_id,
            AdoptionRequest.adopter_id == adopter_id,
            AdoptionRequest.status.in_(AdoptionStatus.ACTIVE),
        ).first()
        if existing:
            raise DuplicateActiveRequest("You already have an active request for this animal")

        adoption_request = AdoptionRequest(
            animal_id=animal_id,
            adopter_id=adopter_id,
            status=AdoptionStatus.PENDING,
        )
        db.session.add(adoption_request)
        try:
            db.session.flush()
        except IntegrityError as exc:
            # Concurrent insert won the partial unique index
            raise DuplicateActiveRequest("You already have an active request for this animal") from exc
        return adoption_request, animal.name

    adoption_request, animal_name = run_in_transaction(_op)

    audit_service.record(
        caller.user_id,
        audit_service.CREATE_ADOPTION_REQUEST,
        f"Submitted adoption request ID: {adoption_request.id} for animal: {animal_name}",
    )
    return adoption_request


# =============================================================================
# PROCESS (staff)
# =============================================================================

def process_request(
    caller: CallerContext,
    request_id: int,
    new_status: str,
    comments: str | None = None,
) -> AdoptionRequest:
    """
    Apply a staff decision to a request.

    Completing a request also adopts the animal and rejects every other
    active request for it, all in the same transaction.

    Raises:
        RoleRequired: caller is not Admin/Staff
        InvalidStatus: new_status is not a lifecycle status
        RequestNotFound
        IllegalTransition: not allowed from the current status
        AnimalAlreadyAdopted / AnimalUnavailable: completion found the animal
            no longer Available
    """
    require_role(caller, *RoleName.SHELTER_STAFF)
    validate_status(new_status)
    comments = clean_text(comments, "comments")
    staff_id = caller.user_id

    def _op():
        adoption_request = lock_for_update(
            db.session.query(AdoptionRequest).filter_by(id=request_id)
        ).first()
        if not adoption_request:
            raise RequestNotFound(f"Adoption request {request_id} not found")

        if not can_transition(adoption_request.status, new_status):
            raise IllegalTransition(
                f"Cannot move adoption request {request_id} from "
                f"'{adoption_request.status}' to '{new_status}'"
            )

        adoption_request.status = new_status
        adoption_request.processed_by_id = staff_id
        adoption_request.staff_comments = comments

        rejected_ids: list[int] = []
        if new_status == AdoptionStatus.COMPLETED:
            _mark_animal_adopted(adoption_request.animal_id)
            rejected_ids = _reject_competing_requests(adoption_request, staff_id)

        db.session.flush()
        return adoption_request, rejected_ids

    adoption_request, rejected_ids = run_in_transaction(_op)

    if new_status == AdoptionStatus.COMPLETED:
        current_app.logger.info(
            "Adoption request %s completed; animal %s adopted, %d competing request(s) rejected",
            request_id, adoption_request.animal_id, len(rejected_ids),
        )

    audit_service.record(
        staff_id,
        audit_service.PROCESS_ADOPTION,
        f"Processed adoption request ID: {request_id} - Status: {new_status}",
    )
    return adoption_request


def _mark_animal_adopted(animal_id: int) -> Animal:
    """
    Flip the animal to Adopted inside the completion transaction.

    The row is locked and re-read so two completions racing on the same
    animal cannot both succeed.
    """
    animal = lock_for_update(
        db.session.query(Animal).filter_by(id=animal_id, is_deleted=False)
    ).first()
    if not animal:
        raise UnknownAnimal(f"Animal {animal_id} not found")
    if animal.status == AnimalStatus.ADOPTED:
        raise AnimalAlreadyAdopted(f"Animal {animal_id} has already been adopted")
    if animal.status != AnimalStatus.AVAILABLE:
        raise AnimalUnavailable(
            f"Animal {animal_id} is not available for adoption (status '{animal.status}')"
        )
    animal.status = AnimalStatus.ADOPTED
    return animal


def _reject_competing_requests(winner: AdoptionRequest, staff_id: int) -> list[int]:
    competing = lock_for_update(
        db.session.query(AdoptionRequest).filter(
            AdoptionRequest.animal_id == winner.animal_id,
            AdoptionRequest.id != winner.id,
            AdoptionRequest.status.in_(AdoptionStatus.ACTIVE),
        )
    ).all()

    for other in competing:
        other.status = AdoptionStatus.REJECTED
        other.staff_comments = ADOPTED_BY_ANOTHER_COMMENT
        other.processed_by_id = staff_id

    return [other.id for other in competing]


# =============================================================================
# CANCEL (owning adopter)
# =============================================================================

def cancel_request(caller: CallerContext, request_id: int) -> bool:
    """
    Withdraw a Pending request. Only the adopter who filed it may cancel.

    Raises:
        RequestNotFound
        NotOwner
        InvalidState: request is past Pending
    """
    def _op():
        adoption_request = lock_for_update(
            db.session.query(AdoptionRequest).filter_by(id=request_id)
        ).first()
        if not adoption_request:
            raise RequestNotFound(f"Adoption request {request_id} not found")

        require_owner(caller, adoption_request.adopter_id, "You can only cancel your own requests")

        if adoption_request.status != AdoptionStatus.PENDING:
            raise InvalidState("Only pending requests can be cancelled")

        adoption_request.status = AdoptionStatus.CANCELLED
        return True

    result = run_in_transaction(_op)

    audit_service.record(
        caller.user_id,
        audit_service.CANCEL_ADOPTION,
        f"Cancelled adoption request ID: {request_id}",
    )
    return result


# =============================================================================
# READS
# =============================================================================

def get_request(caller: CallerContext, request_id: int) -> AdoptionRequest:
    adoption_request = db.session.get(AdoptionRequest, request_id)
    if not adoption_request:
        raise RequestNotFound(f"Adoption request {request_id} not found")
    if not caller.is_staff and adoption_request.adopter_id != caller.user_id:
        raise NotOwner("Access denied")
    return adoption_request


def list_requests(caller: CallerContext, request_filter: AdoptionRequestFilter) -> list[AdoptionRequest]:
    """Adopters only ever see their own requests, whatever the filter says."""
    if not caller.is_staff:
        request_filter = request_filter.restricted_to(caller.user_id)
    return request_filter.apply(db.session.query(AdoptionRequest)).all()


def get_active_requests_for_animal(animal_id: int) -> list[AdoptionRequest]:
    return db.session.query(AdoptionRequest).filter(
        AdoptionRequest.animal_id == animal_id,
        AdoptionRequest.status.in_(AdoptionStatus.ACTIVE),
    ).order_by(AdoptionRequest.requested_at, AdoptionRequest.id).all()
