"""
Keyboard navigation for the bulk analysis table.

Keys (only while a domain has focus):
    ArrowUp / ArrowDown   move focus, clamped to the list
    Enter                 expand / collapse the focused row
    Space                 toggle selection of the focused row
    1 / 2 / 3             qualify high / average / disqualified (pending rows only)
"""

import logging
from typing import Callable, List, Optional, Sequence

from .models import BulkAnalysisDomain, QualificationStatus

logger = logging.getLogger(__name__)

QUALIFY_KEYS = {
    "1": QualificationStatus.HIGH_QUALITY,
    "2": QualificationStatus.AVERAGE_QUALITY,
    "3": QualificationStatus.DISQUALIFIED,
}


class QualificationKeyboard:
    """Single focused domain plus key dispatch."""

    def __init__(
        self,
        domains: Sequence[BulkAnalysisDomain],
        on_update_status: Callable[[str, QualificationStatus], None],
        on_toggle_selection: Optional[Callable[[str], None]] = None,
        on_toggle_expanded: Optional[Callable[[str], None]] = None,
    ):
        self.domains: List[BulkAnalysisDomain] = list(domains)
        self.on_update_status = on_update_status
        self.on_toggle_selection = on_toggle_selection
        self.on_toggle_expanded = on_toggle_expanded
        self.focused_domain_id: Optional[str] = None

    def set_domains(self, domains: Sequence[BulkAnalysisDomain]) -> None:
        """Replace the list after a refetch; focus is kept by id."""
        self.domains = list(domains)

    def focus(self, domain_id: Optional[str]) -> None:
        self.focused_domain_id = domain_id

    def _focused_index(self) -> int:
        if self.focused_domain_id is None:
            return -1
        for i, domain in enumerate(self.domains):
            if domain.id == self.focused_domain_id:
                return i
        return -1

    def handle_key(self, key: str) -> bool:
        """
        Handle one key press.

        Returns:
            True if the key was consumed, False if it should fall through
        """
        index = self._focused_index()
        if index == -1:
            return False

        domain = self.domains[index]

        if key == "ArrowUp":
            if index > 0:
                self.focused_domain_id = self.domains[index - 1].id
            return True

        if key == "ArrowDown":
            if index < len(self.domains) - 1:
                self.focused_domain_id = self.domains[index + 1].id
            return True

        if key == "Enter":
            if self.on_toggle_expanded:
                self.on_toggle_expanded(domain.id)
            return True

        if key == " ":
            if self.on_toggle_selection:
                self.on_toggle_selection(domain.id)
            return True

        if key in QUALIFY_KEYS:
            if domain.is_pending:
                self.on_update_status(domain.id, QUALIFY_KEYS[key])
            else:
                logger.debug(f"Ignoring '{key}' for {domain.domain}: already {domain.qualification_status.value}")
            return True

        return False
