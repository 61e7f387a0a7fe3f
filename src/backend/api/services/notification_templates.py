"""
Case status notification templates.

The template is chosen by the new status; 'Under Investigation' reached
from 'Pending' means an officer has just picked up the case.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from db import CaseStatus, NotificationPriority, NotificationType


@dataclass(frozen=True)
class StatusTemplate:
    title: str
    body: str
    record_type: str = NotificationType.CASE_UPDATE.value
    priority: str = NotificationPriority.NORMAL.value
    data: Dict[str, str] = field(default_factory=dict)


def _data(kind: str, case_number: str, status: str) -> Dict[str, str]:
    return {
        "type": kind,
        "case_number": case_number,
        "status": status,
        "notification_category": "case_update",
    }


def case_assigned(case_number: str, officer_name: str) -> StatusTemplate:
    return StatusTemplate(
        title="Case Under Investigation",
        body=f"Officer {officer_name} has been assigned to your cybercrime case {case_number}",
        record_type=NotificationType.CASE_ASSIGNMENT.value,
        data=_data("case_status_update", case_number, CaseStatus.UNDER_INVESTIGATION.value),
    )


def status_updated(
    case_number: str, old_status: Optional[str], new_status: str, officer_name: str
) -> StatusTemplate:
    return StatusTemplate(
        title="Case Status Updated",
        body=(
            f'Your case {case_number} status changed from "{old_status or "Unknown"}" '
            f'to "{new_status}" by Officer {officer_name}'
        ),
        data=_data("case_status_update", case_number, new_status),
    )


def more_info_required(
    case_number: str, officer_name: str, message: Optional[str] = None
) -> StatusTemplate:
    suffix = f": {message}" if message else ""
    return StatusTemplate(
        title="Additional Information Required",
        body=f"Officer {officer_name} needs more information for case {case_number}{suffix}",
        priority=NotificationPriority.HIGH.value,
        data=_data("more_info_required", case_number, CaseStatus.REQUIRES_MORE_INFO.value),
    )


def case_resolved(case_number: str, officer_name: str) -> StatusTemplate:
    return StatusTemplate(
        title="Case Resolved!",
        body=(
            f"Great news! Your cybercrime case {case_number} has been resolved "
            f"by Officer {officer_name}"
        ),
        record_type=NotificationType.SUCCESS.value,
        data=_data("case_resolved", case_number, CaseStatus.RESOLVED.value),
    )


def case_dismissed(
    case_number: str, officer_name: str, reason: Optional[str] = None
) -> StatusTemplate:
    suffix = f": {reason}" if reason else ""
    return StatusTemplate(
        title="Case Status Update",
        body=f"Your case {case_number} has been dismissed by Officer {officer_name}{suffix}",
        data=_data("case_dismissed", case_number, CaseStatus.DISMISSED.value),
    )


def template_for_status_change(
    case_number: str,
    old_status: Optional[str],
    new_status: str,
    officer_name: str,
    message: Optional[str] = None,
) -> StatusTemplate:
    """Pick the template for a case status transition."""
    if new_status == CaseStatus.UNDER_INVESTIGATION.value:
        if old_status == CaseStatus.PENDING.value:
            return case_assigned(case_number, officer_name)
        return status_updated(case_number, old_status, new_status, officer_name)
    if new_status == CaseStatus.REQUIRES_MORE_INFO.value:
        return more_info_required(case_number, officer_name, message)
    if new_status == CaseStatus.RESOLVED.value:
        return case_resolved(case_number, officer_name)
    if new_status == CaseStatus.DISMISSED.value:
        return case_dismissed(case_number, officer_name, message)
    return status_updated(case_number, old_status, new_status, officer_name)
