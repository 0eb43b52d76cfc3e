"""
Qualification state machine.

    pending --(keyboard | ai | dropdown | manual)--> high_quality / average_quality / disqualified
    qualified --(dropdown)--> another qualified status
    qualified --(any source)--> pending   (explicit reset)

Provenance flags (was_manually_qualified, was_human_verified) only ever
turn on; a reset to pending leaves them as they were.
"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

from .models import BulkAnalysisDomain, QualificationStatus

SOURCE_KEYBOARD = "keyboard"
SOURCE_AI = "ai"
SOURCE_DROPDOWN = "dropdown"
SOURCE_MANUAL = "manual"

# Sources allowed to reclassify an already-qualified domain
_RECLASSIFY_SOURCES = {SOURCE_DROPDOWN, SOURCE_MANUAL}
# Sources that mean a person made the call
_HUMAN_SOURCES = {SOURCE_DROPDOWN, SOURCE_MANUAL}

_SOURCES = {SOURCE_KEYBOARD, SOURCE_AI, SOURCE_DROPDOWN, SOURCE_MANUAL}


class InvalidTransitionError(Exception):
    def __init__(self, current, new, source: str):
        super().__init__(f"Cannot move from {_value(current)} to {_value(new)} via {source}")
        self.current = current
        self.new = new
        self.source = source


def _value(status) -> str:
    return status.value if isinstance(status, QualificationStatus) else str(status)


def can_transition(current, new, source: str = SOURCE_DROPDOWN) -> bool:
    current = QualificationStatus.parse(current)
    try:
        new = QualificationStatus(new)
    except ValueError:
        return False

    if source not in _SOURCES:
        return False
    if new == current:
        return False
    if new == QualificationStatus.PENDING:
        return True
    if current == QualificationStatus.PENDING:
        return True
    return source in _RECLASSIFY_SOURCES


def apply_status(
    domain: BulkAnalysisDomain,
    status,
    is_manual: bool = False,
    user_id: Optional[str] = None,
    source: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BulkAnalysisDomain:
    """
    Return a copy of the domain with the new status applied.

    Raises:
        InvalidTransitionError: The transition is not allowed for this source
    """
    if source is None:
        source = SOURCE_MANUAL if is_manual else SOURCE_DROPDOWN

    if not can_transition(domain.qualification_status, status, source):
        raise InvalidTransitionError(domain.qualification_status, status, source)

    new_status = QualificationStatus(status)
    human = is_manual or source in _HUMAN_SOURCES

    return replace(
        domain,
        qualification_status=new_status,
        notes=notes if notes is not None else domain.notes,
        checked_by=user_id or domain.checked_by,
        checked_at=now or datetime.utcnow(),
        was_manually_qualified=domain.was_manually_qualified or is_manual,
        was_human_verified=domain.was_human_verified or (
            human and new_status != QualificationStatus.PENDING
        ),
        target_page_ids=set(domain.target_page_ids),
    )
