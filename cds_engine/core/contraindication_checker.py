"""
Medication Interaction Report Engine - Contraindication Checker
"""
from typing import List, Sequence

from cds_engine.core.exceptions import LookupInconsistency
from cds_engine.core.knowledge_base import KnowledgeBase
from cds_engine.core.models import (
    ContraindicationFinding, ContraindicationSeverity, Medication
)


class ContraindicationChecker:
    """Check every medication against every patient condition"""

    def __init__(self, knowledge_base: KnowledgeBase):
        self.kb = knowledge_base

    def check(
        self,
        medications: Sequence[Medication],
        conditions: Sequence[str]
    ) -> List[ContraindicationFinding]:
        findings = []

        for med in medications:
            for condition in conditions:
                record = self.kb.find_contraindication(med.active_ingredient, condition)
                if record is None:
                    continue
                if not isinstance(record.severity, ContraindicationSeverity):
                    raise LookupInconsistency(
                        f"Contraindication {record.drug}/{record.condition} "
                        f"has malformed severity: {record.severity!r}"
                    )
                findings.append(ContraindicationFinding(
                    drug=med.drug_name,
                    contraindication=record.type,
                    condition=condition,
                    severity=record.severity,
                    reason=record.reason,
                ))

        return findings
