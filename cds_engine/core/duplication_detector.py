"""
Medication Interaction Report Engine - Therapeutic Duplication Detector
"""
import logging
from typing import Dict, List, Sequence

from cds_engine.core.knowledge_base import KnowledgeBase, UNCLASSIFIED
from cds_engine.core.models import DuplicationFinding, Medication

logger = logging.getLogger(__name__)


class TherapeuticDuplicationDetector:
    """Flag redundant prescribing of two or more drugs from one class"""

    def __init__(self, knowledge_base: KnowledgeBase):
        self.kb = knowledge_base

    def group_by_class(self, medications: Sequence[Medication]) -> Dict[str, List[Medication]]:
        """Group classified medications by therapeutic class, first appearance order"""
        groups: Dict[str, List[Medication]] = {}
        for med in medications:
            therapeutic_class = self.kb.get_therapeutic_class(med.active_ingredient)
            # Unknown ingredients share the sentinel but are unrelated
            if therapeutic_class == UNCLASSIFIED:
                continue
            groups.setdefault(therapeutic_class, []).append(med)
        return groups

    def check(self, medications: Sequence[Medication]) -> List[DuplicationFinding]:
        findings = []
        policy = self.kb.duplication_policy

        for therapeutic_class, members in self.group_by_class(medications).items():
            if len(members) < 2:
                continue

            ingredients = [m.active_ingredient for m in members]
            if self.kb.is_valid_combination(therapeutic_class, ingredients):
                logger.debug(f"Sanctioned {therapeutic_class} combination: {ingredients}")
                continue

            drug_names = tuple(m.drug_name for m in members)
            findings.append(DuplicationFinding(
                drugs=drug_names,
                therapeutic_class=therapeutic_class,
                severity=policy.severity_for(therapeutic_class),
                recommendation=(
                    f"Multiple {therapeutic_class} detected: {', '.join(drug_names)}. "
                    f"Consider consolidating therapy or verify the clinical indication "
                    f"for combined use."
                ),
                clinical_risk=policy.clinical_risk_for(therapeutic_class),
            ))

        return findings
