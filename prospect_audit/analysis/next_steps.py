"""
Outreach next-step drafting from a finalized Report.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from prospect_audit.analysis.config.models import OutreachContacts
from prospect_audit.analysis.types import Report

NO_NEXT_STEPS_MESSAGE = "No specific next steps identified based on analysis."

_NOT_FOUND = "not found"


def _found(value: str | None) -> bool:
    return bool(value) and _NOT_FOUND not in value.lower()


def base_name(label: str) -> str:
    """Label text before its first qualifier, e.g. "Intercom (JS Object)" -> "Intercom"."""
    return label.split(" (")[0]


def is_known_platform(platform: str | None) -> bool:
    lowered = (platform or "").lower()
    return bool(lowered) and "custom" not in lowered and "unknown" not in lowered


def chat_platform_list(report: Report) -> str:
    names: dict[str, None] = {}
    for label in report.chat_platforms:
        names.setdefault(base_name(label), None)
    return " / ".join(names)


@dataclass(frozen=True)
class NextStepRule:
    name: str
    applies: Callable[[Report], bool]
    render: Callable[[Report, OutreachContacts], str]


NEXT_STEP_RULES: tuple[NextStepRule, ...] = (
    NextStepRule(
        name="analytics_access",
        applies=lambda report: _found(report.analytics_id),
        render=lambda report, contacts: (
            "Please provide the Google Analytics account name and invite "
            f"{contacts.analytics_email} with Editor level access to "
            f"{report.analytics_id} associated with {report.url}:\n"
            "In Google Analytics: Gear Icon (Admin - bottom left) → Account Access "
            "Management → Plus Button (top right) → Add Users → Enter "
            f"{contacts.analytics_email} → Select Editor → Add"
        ),
    ),
    NextStepRule(
        name="tag_manager_access",
        applies=lambda report: _found(report.tag_manager_id),
        render=lambda report, contacts: (
            f"Please add {contacts.analytics_email} with admin / publish access to the "
            f"Google Tag Manager ({report.tag_manager_id}) account associated with "
            f"{report.url}. If you prefer our team to do this for you, please provide "
            "the login information for the Google Tag Manager account."
        ),
    ),
    NextStepRule(
        name="cms_access",
        applies=lambda report: is_known_platform(report.cms_platform),
        render=lambda report, contacts: (
            f"Please share the {base_name(report.cms_platform or '')} admin login "
            f"information or add {contacts.cms_email} as an admin user for "
            f"{report.url} so we can install the tracking codes. If you prefer to "
            "install them yourself please let me know, and we will send them to you."
        ),
    ),
    NextStepRule(
        name="chat_credentials",
        applies=lambda report: bool(report.chat_platforms),
        render=lambda report, contacts: (
            f"Please send us the {chat_platform_list(report)} login credentials. We "
            "would like to see if we can set up tracking for the chat function on "
            "the website."
        ),
    ),
    NextStepRule(
        name="privacy_policy",
        applies=lambda report: not _found(report.privacy_policy_location),
        render=lambda report, contacts: (
            f"Please add a Privacy Policy page/statement on {report.url}. Since you "
            "are collecting visitor information you risk being suspended by Google "
            "by not displaying one clearly on your website."
        ),
    ),
)


def draft_next_steps(
    report: Report,
    contacts: OutreachContacts | None = None,
    *,
    rules: tuple[NextStepRule, ...] = NEXT_STEP_RULES,
) -> tuple[str, ...]:
    """
    Numbered outreach steps in rule order, or the single no-steps message.
    """

    active_contacts = contacts or OutreachContacts()
    steps: list[str] = []
    for rule in rules:
        if rule.applies(report):
            steps.append(f"{len(steps) + 1}. {rule.render(report, active_contacts)}")
    if not steps:
        return (NO_NEXT_STEPS_MESSAGE,)
    return tuple(steps)
