"""
Qualification Service

Async operations on one client's bulk analysis domains: status updates
(validated against the state machine first), DataForSEO lookups and runs.
"""

import logging
from typing import Any, Dict, List, Optional

from linkdesk.client import OrderAPIClient

from .dataforseo import DataForSeoSummary, summarize_dataforseo_results
from .models import BulkAnalysisDomain, QualificationStatus
from .state import InvalidTransitionError, SOURCE_DROPDOWN, apply_status, can_transition

logger = logging.getLogger(__name__)


class QualificationService:
    """
    Usage:
        service = QualificationService(client, client_id="client-1")
        domain = await service.update_status(domain, "high_quality", is_manual=True, user_id="u1")
        summary = await service.load_results(domain.id)
    """

    def __init__(self, client: OrderAPIClient, client_id: str):
        self.client = client
        self.client_id = client_id
        self.loading_dataforseo: Dict[str, bool] = {}

    async def update_status(
        self,
        domain: BulkAnalysisDomain,
        status,
        is_manual: bool = False,
        user_id: Optional[str] = None,
        notes: Optional[str] = None,
        source: Optional[str] = None,
    ) -> BulkAnalysisDomain:
        """
        Validate, send, and return the domain with the new status.

        Raises:
            InvalidTransitionError: Not a legal transition (nothing is sent)
            OrderAPIError: The update request failed
        """
        updated = apply_status(
            domain, status, is_manual=is_manual, user_id=user_id, source=source, notes=notes
        )
        await self.client.update_domain_status(
            self.client_id,
            domain.id,
            updated.qualification_status.value,
            is_manual=is_manual,
            user_id=user_id,
            notes=notes,
        )
        logger.info(
            f"Domain {domain.domain}: {domain.qualification_status.value} -> "
            f"{updated.qualification_status.value}"
        )
        return updated

    async def update_status_by_id(
        self,
        domain_id: str,
        current_status,
        status,
        is_manual: bool = False,
        user_id: Optional[str] = None,
        notes: Optional[str] = None,
        source: str = SOURCE_DROPDOWN,
    ) -> QualificationStatus:
        """Same as update_status when only the id and current status are known."""
        if not can_transition(current_status, status, source):
            raise InvalidTransitionError(current_status, status, source)
        new_status = QualificationStatus(status)
        await self.client.update_domain_status(
            self.client_id, domain_id, new_status.value,
            is_manual=is_manual, user_id=user_id, notes=notes,
        )
        return new_status

    async def check_analyzed(self, domain_id: str) -> Dict[str, Any]:
        return await self.client.check_analyzed(self.client_id, domain_id)

    async def load_results(self, domain_id: str, limit: Optional[int] = None) -> DataForSeoSummary:
        results = await self.client.get_dataforseo_results(self.client_id, domain_id, limit=limit)
        return summarize_dataforseo_results(results)

    async def analyze(
        self,
        domain: BulkAnalysisDomain,
        keywords: List[str],
        use_cache: bool = True,
    ) -> Dict[str, Any]:
        """Run a DataForSEO analysis. Only one run per domain at a time."""
        if self.loading_dataforseo.get(domain.id):
            logger.warning(f"DataForSEO analysis already running for {domain.domain}")
            return {}

        self.loading_dataforseo[domain.id] = True
        try:
            return await self.client.analyze_dataforseo(
                self.client_id, domain.id, domain.domain, keywords, use_cache=use_cache
            )
        finally:
            self.loading_dataforseo[domain.id] = False

    def is_loading(self, domain_id: str) -> bool:
        return self.loading_dataforseo.get(domain_id, False)
