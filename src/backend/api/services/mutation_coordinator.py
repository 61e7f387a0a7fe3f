"""
Dual-system mutation coordinator.

Administrative operations that touch both the identity provider and the
datastore run here in a fixed order. Each step yields a StepResult:

    OK       the step's effect happened (or was not needed)
    WARNING  the step failed but the operation continues
    FATAL    the step failed and the operation stops

Officer deletion tolerates identity-side failures and treats the datastore
delete as authoritative. Case assignment delegates atomicity to the
assign_case_to_officer stored procedure and only interprets its result.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from api.services.broadcast_queue import BroadcastQueue, ToastSeverity
from api.services.datastore import Datastore, DatastoreError
from api.services.identity_provider import IdentityProvider, IdentityProviderError
from core.exceptions import (
    DomainRejection,
    InvalidRequest,
    LawBotError,
    NotFound,
    Unauthorized,
    UpstreamFailure,
)
from core.logging_config import AdminAuditLogger
from core.metrics import track_admin_operation, track_identity_cleanup_failure
from core.security import Principal, SecurityError, TokenExpiredError

logger = logging.getLogger(__name__)

DEFAULT_ASSIGNMENT_REASON = "Case assigned via web interface"


class StepStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    FATAL = "fatal"


@dataclass(frozen=True)
class StepResult:
    """Outcome of one coordinator step."""

    step: str
    status: StepStatus
    message: str = ""
    error: Optional[LawBotError] = None
    value: Any = None

    @classmethod
    def ok(cls, step: str, message: str = "", value: Any = None) -> "StepResult":
        return cls(step=step, status=StepStatus.OK, message=message, value=value)

    @classmethod
    def warning(cls, step: str, message: str) -> "StepResult":
        return cls(step=step, status=StepStatus.WARNING, message=message)

    @classmethod
    def fatal(cls, step: str, error: LawBotError) -> "StepResult":
        return cls(step=step, status=StepStatus.FATAL, message=error.message, error=error)

    @property
    def is_fatal(self) -> bool:
        return self.status == StepStatus.FATAL


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


@dataclass
class OperationOutcome:
    """Structured result of a coordinated mutation."""

    operation: str
    status: OutcomeStatus
    message: str
    steps: List[StepResult] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[LawBotError] = None

    @property
    def succeeded(self) -> bool:
        return self.status != OutcomeStatus.FAILURE

    @property
    def warnings(self) -> List[str]:
        return [step.message for step in self.steps if step.status == StepStatus.WARNING]

    @property
    def completed_steps(self) -> List[str]:
        return [step.step for step in self.steps if step.status == StepStatus.OK]

    @property
    def failed_step(self) -> Optional[str]:
        for step in self.steps:
            if step.is_fatal:
                return step.step
        return None


@dataclass(frozen=True)
class DeleteOfficer:
    """Remove an officer from both the identity provider and the datastore."""

    officer_id: Optional[str]
    caller_token: Optional[str]


@dataclass(frozen=True)
class AssignCase:
    """Assign a complaint to an officer through the atomic stored procedure."""

    complaint_id: Optional[str]
    officer_id: Optional[str]
    admin_id: Optional[str]
    notes: Optional[str] = None
    caller_uid: Optional[str] = None  # verified identity UID, owns the outcome toast


class MutationCoordinator:
    """
    Executes administrative operations against two systems of record.

    Args:
        identity: Identity provider collaborator
        datastore: Datastore collaborator
        broadcast: Queue used to surface outcomes as toasts (optional)
    """

    def __init__(
        self,
        identity: IdentityProvider,
        datastore: Datastore,
        broadcast: Optional[BroadcastQueue] = None,
    ):
        self.identity = identity
        self.datastore = datastore
        self.broadcast = broadcast
        self.audit = AdminAuditLogger("coordinator")

    # ==================== Outcome helpers ====================

    def _finish(
        self, outcome: OperationOutcome, target: str, owner: Optional[str] = None
    ) -> OperationOutcome:
        track_admin_operation(outcome.operation, outcome.status.value)
        self.audit.operation_finished(
            outcome.operation,
            outcome.status.value,
            target,
            warnings=outcome.warnings,
            error=outcome.error.message if outcome.error else None,
        )
        if self.broadcast is not None:
            self._publish_toast(outcome, owner)
        return outcome

    def _publish_toast(self, outcome: OperationOutcome, owner: Optional[str]) -> None:
        if outcome.succeeded:
            title = "Success"
            severity = ToastSeverity.DEFAULT
        else:
            title = "Error"
            severity = ToastSeverity.DESTRUCTIVE
        try:
            self.broadcast.publish(title, outcome.message, severity, owner=owner)
        except RuntimeError as e:
            logger.debug(f"Toast not published: {e}")

    def _fail(
        self,
        operation: str,
        steps: List[StepResult],
        target: str,
        owner: Optional[str] = None,
    ) -> OperationOutcome:
        fatal = steps[-1]
        return self._finish(
            OperationOutcome(
                operation=operation,
                status=OutcomeStatus.FAILURE,
                message=fatal.message,
                steps=steps,
                error=fatal.error,
            ),
            target,
            owner,
        )

    # ==================== DeleteOfficer ====================

    async def _verify_caller(self, token: str) -> StepResult:
        try:
            principal: Principal = await self.identity.verify_token(token)
        except TokenExpiredError:
            return StepResult.fatal("verify_caller", Unauthorized("Admin token has expired"))
        except SecurityError as e:
            logger.warning(f"Rejected admin token: {e}")
            return StepResult.fatal("verify_caller", Unauthorized("Invalid admin token"))
        return StepResult.ok("verify_caller", value=principal)

    async def _fetch_officer(self, officer_id: str) -> StepResult:
        try:
            officer = await self.datastore.get_officer(officer_id)
        except DatastoreError as e:
            return StepResult.fatal(
                "fetch_officer",
                UpstreamFailure(f"Failed to fetch officer data: {e.message}", code=e.code),
            )
        if officer is None:
            return StepResult.fatal("fetch_officer", NotFound("Officer not found"))
        return StepResult.ok("fetch_officer", value=officer)

    async def _delete_identity(self, officer) -> StepResult:
        if not officer.firebase_uid:
            logger.info(f"Officer {officer.id} has no identity UID, skipping identity deletion")
            return StepResult.ok("delete_identity", "No identity to delete")
        try:
            await self.identity.delete_identity(officer.firebase_uid)
        except IdentityProviderError as e:
            track_identity_cleanup_failure()
            self.audit.identity_cleanup_failed(str(officer.id), officer.firebase_uid, e.message)
            detail = f" ({e.code})" if e.code else ""
            return StepResult.warning(
                "delete_identity", f"Identity deletion failed{detail}: {e.message}"
            )
        except Exception as e:
            # Identity cleanup never blocks the authoritative datastore delete
            logger.exception(f"Unexpected identity deletion failure for officer {officer.id}")
            track_identity_cleanup_failure()
            self.audit.identity_cleanup_failed(str(officer.id), officer.firebase_uid, str(e))
            return StepResult.warning(
                "delete_identity", f"Identity deletion failed (unexpected): {type(e).__name__}: {e}"
            )
        return StepResult.ok("delete_identity")

    async def _delete_record(self, officer) -> StepResult:
        try:
            await self.datastore.delete_officer(officer.id)
        except DatastoreError as e:
            return StepResult.fatal(
                "delete_record",
                UpstreamFailure(f"Failed to delete officer: {e.message}", code=e.code),
            )
        return StepResult.ok("delete_record")

    async def delete_officer(self, command: DeleteOfficer) -> OperationOutcome:
        """
        Remove an officer.

        Order: verify caller, validate request, fetch officer, delete
        identity (warning on failure), delete datastore record (fatal on
        failure).
        """
        operation = "delete_officer"
        target = str(command.officer_id or "")
        steps: List[StepResult] = []

        if not command.caller_token:
            steps.append(
                StepResult.fatal("verify_caller", Unauthorized("Authorization header required"))
            )
            return self._fail(operation, steps, target)

        step = await self._verify_caller(command.caller_token)
        steps.append(step)
        if step.is_fatal:
            return self._fail(operation, steps, target)
        caller = step.value.uid

        if not command.officer_id:
            steps.append(
                StepResult.fatal("validate_request", InvalidRequest("Officer ID is required"))
            )
            return self._fail(operation, steps, target, caller)
        self.audit.operation_started(operation, caller, target)

        step = await self._fetch_officer(command.officer_id)
        steps.append(step)
        if step.is_fatal:
            return self._fail(operation, steps, target, caller)
        officer = step.value
        logger.info(f"Deleting officer {officer.full_name} ({officer.badge_number})")

        steps.append(await self._delete_identity(officer))

        step = await self._delete_record(officer)
        steps.append(step)
        if step.is_fatal:
            return self._fail(operation, steps, target, caller)

        return self._finish(
            OperationOutcome(
                operation=operation,
                status=OutcomeStatus.SUCCESS,
                message=f"Officer {officer.full_name} ({officer.badge_number}) deleted successfully",
                steps=steps,
                data={
                    "deleted_officer": {
                        "id": str(officer.id),
                        "name": officer.full_name,
                        "badge": officer.badge_number,
                        "email": officer.email,
                    }
                },
            ),
            target,
            caller,
        )

    # ==================== AssignCase ====================

    async def assign_case(self, command: AssignCase) -> OperationOutcome:
        """
        Assign a complaint through the atomic stored procedure.

        A structural datastore error and an embedded {success: false}
        result both end in FAILURE, with different error types.
        """
        operation = "assign_case"
        target = str(command.complaint_id or "")
        steps: List[StepResult] = []

        if not (command.complaint_id and command.officer_id and command.admin_id):
            steps.append(
                StepResult.fatal(
                    "validate_request",
                    InvalidRequest(
                        "Missing required parameters",
                        details={"required": ["complaintId", "officerId", "adminId"]},
                    ),
                )
            )
            return self._fail(operation, steps, target)
        steps.append(StepResult.ok("validate_request"))
        caller = command.caller_uid
        self.audit.operation_started(operation, caller or str(command.admin_id), target)

        try:
            result = await self.datastore.assign_case(
                str(command.complaint_id),
                str(command.officer_id),
                str(command.admin_id),
                command.notes or DEFAULT_ASSIGNMENT_REASON,
            )
        except DatastoreError as e:
            logger.error(f"Assignment procedure failed: {e.message} (code={e.code})")
            steps.append(
                StepResult.fatal(
                    "assign_procedure",
                    UpstreamFailure(
                        "Failed to assign officer", code=e.code, details={"details": e.message}
                    ),
                )
            )
            return self._fail(operation, steps, target, caller)

        if not result.get("success"):
            reason = result.get("error") or "Assignment failed"
            logger.warning(f"Assignment of complaint {command.complaint_id} refused: {reason}")
            steps.append(StepResult.fatal("assign_procedure", DomainRejection(reason)))
            return self._fail(operation, steps, target, caller)

        steps.append(StepResult.ok("assign_procedure", value=result))
        return self._finish(
            OperationOutcome(
                operation=operation,
                status=OutcomeStatus.SUCCESS,
                message=result.get("message") or f"Case assigned to {result.get('officer_name')}",
                steps=steps,
                data={
                    "assignment_id": result.get("assignment_id"),
                    "officer_name": result.get("officer_name"),
                    "message": result.get("message"),
                    "complaint_number": result.get("complaint_number"),
                },
            ),
            target,
            caller,
        )
