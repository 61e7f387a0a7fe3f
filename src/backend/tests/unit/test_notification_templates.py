"""
Unit tests for case status notification templates.
"""

import pytest

from api.services.notification_templates import template_for_status_change


@pytest.mark.parametrize(
    "old_status, new_status, message, title",
    [
        ("Pending", "Under Investigation", None, "Case Under Investigation"),
        ("Requires More Info", "Under Investigation", None, "Case Status Updated"),
        ("Under Investigation", "Requires More Info", "Send receipts", "Additional Information Required"),
        ("Under Investigation", "Resolved", None, "Case Resolved!"),
        ("Under Investigation", "Dismissed", "Duplicate report", "Case Status Update"),
        ("Pending", "Archived", None, "Case Status Updated"),
    ],
)
def test_template_selection(old_status, new_status, message, title):
    template = template_for_status_change("CYB-2025-001", old_status, new_status, "Santos", message)

    assert template.title == title
    assert "CYB-2025-001" in template.body


def test_more_info_includes_officer_message():
    template = template_for_status_change(
        "CYB-2025-001", "Under Investigation", "Requires More Info", "Santos", "Send receipts"
    )

    assert template.body.endswith(": Send receipts")
    assert template.priority == "high"


def test_dismissal_includes_reason():
    template = template_for_status_change("CYB-2025-001", None, "Dismissed", "Santos", "Duplicate")

    assert "dismissed by Officer Santos: Duplicate" in template.body


def test_generic_update_names_both_statuses():
    template = template_for_status_change("CYB-2025-001", None, "Escalated", "Santos")

    assert '"Unknown"' in template.body
    assert '"Escalated"' in template.body
    assert template.data["status"] == "Escalated"
