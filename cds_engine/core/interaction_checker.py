"""
Medication Interaction Report Engine - Pairwise Interaction Checker
Drug-Drug Interaction Detection
"""
import logging
from typing import List, Optional, Sequence

from cds_engine.core.exceptions import LookupInconsistency
from cds_engine.core.knowledge_base import KnowledgeBase, normalize_ingredient
from cds_engine.core.models import InteractionFinding, InteractionRecord, Medication, Severity

logger = logging.getLogger(__name__)


def require_severity(record: InteractionRecord) -> Severity:
    severity = getattr(record, "severity", None)
    if not isinstance(severity, Severity):
        raise LookupInconsistency(
            f"Interaction record {getattr(record, 'drug1', '?')}-{getattr(record, 'drug2', '?')} "
            f"has malformed severity: {severity!r}"
        )
    return severity


class PairwiseInteractionChecker:
    """Find drug-drug interactions across every unordered medication pair"""

    def __init__(self, knowledge_base: KnowledgeBase):
        self.kb = knowledge_base

    def check_pair(self, med1: Medication, med2: Medication) -> Optional[InteractionFinding]:
        """Check a single pair of medications"""
        record = self.kb.find_interaction(med1.active_ingredient, med2.active_ingredient)
        if record is None:
            return None
        require_severity(record)
        return InteractionFinding(
            drug1_name=med1.drug_name,
            drug2_name=med2.drug_name,
            drug1_ingredient=normalize_ingredient(med1.active_ingredient),
            drug2_ingredient=normalize_ingredient(med2.active_ingredient),
            record=record,
        )

    def check_prescription(self, medications: Sequence[Medication]) -> List[InteractionFinding]:
        """
        Check all pairs i < j exactly once (n(n-1)/2 lookups).

        Returns findings sorted most severe first. The sort is stable, so
        equal severities keep pair-discovery order.
        """
        findings = []

        for i, med1 in enumerate(medications):
            for med2 in medications[i + 1:]:
                finding = self.check_pair(med1, med2)
                if finding is not None:
                    findings.append(finding)

        # reverse=True keeps the sort stable
        ordered = sorted(findings, key=lambda f: f.severity.ordinal, reverse=True)
        logger.debug(f"{len(ordered)} interaction(s) across {len(medications)} medication(s)")
        return ordered
