"""Outcome assembler: scan + risk results → ParsedDataResponse."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..risk.models import RiskResult
from ..scanner.models import ScanResult
from .models import AnalysisOutcome, ParsedDataResponse

logger = logging.getLogger(__name__)


class OutcomeAssembler:
    """Combines the outputs of one run into a single response.

    Classes that are not user code, and the endpoints they declare, are
    dropped unless ``include_non_user_code`` is set. Endpoints that come
    from API description documents alone are always kept.
    """

    def assemble(
        self,
        project: Dict[str, Any],
        scan_result: Optional[ScanResult],
        risk_result: Optional[RiskResult],
        include_non_user_code: bool = False,
        analyzed_at: Optional[datetime] = None,
    ) -> AnalysisOutcome:
        analyzed_at = analyzed_at or datetime.utcnow()
        parsed = ParsedDataResponse(
            project_id=project.get("project_id"),
            project_name=project.get("name") or "",
            repo_url=project.get("repo_url") or "",
            analyzed_at=analyzed_at.isoformat(),
            commit_hash=project.get("commit_hash"),
        )

        if scan_result is not None:
            classes = scan_result.classes
            endpoints = scan_result.endpoints
            if not include_non_user_code:
                excluded = {c.fully_qualified_name for c in classes if not c.user_code}
                classes = [c for c in classes if c.user_code]
                endpoints = [e for e in endpoints if e.controller_class not in excluded]

            parsed.build_info = scan_result.build_info
            parsed.classes = list(classes)
            parsed.metadata_dump = scan_result.metadata_dump
            parsed.api_endpoints = list(endpoints)
            parsed.gherkin_features = list(scan_result.gherkin_features)
            parsed.warnings = list(scan_result.warnings)
            # Unflagged statements when the classifier did not run
            parsed.logger_insights = list(scan_result.log_statements)

        if risk_result is not None:
            parsed.logger_insights = list(risk_result.logger_insights)
            parsed.pii_pci_scan = list(risk_result.findings)

        logger.debug(
            f"Assembled parsed data for {parsed.project_name}: {len(parsed.classes)} classes, "
            f"{len(parsed.api_endpoints)} endpoints, {len(parsed.logger_insights)} log statements, "
            f"{len(parsed.pii_pci_scan)} findings"
        )
        return AnalysisOutcome(project=project, parsed_data=parsed)
