"""
Medication Interaction Report Engine - Risk Assessment
Overall risk level and advisory recommendations
"""
from typing import List, Sequence

from cds_engine.core.models import (
    ContraindicationFinding, ContraindicationSeverity, DuplicationFinding,
    InteractionFinding, RiskLevel, Severity
)

# Interaction volume that escalates to moderate without any major signal
MODERATE_INTERACTION_VOLUME = 3
# Interaction count above which a polypharmacy review is advised
POLYPHARMACY_INTERACTION_THRESHOLD = 5

CRITICAL_INTERACTION_ADVICE = (
    "CRITICAL: Contraindicated or life-threatening drug combinations detected. "
    "Consider alternative medications immediately."
)
ABSOLUTE_CONTRAINDICATION_ADVICE = (
    "ABSOLUTE CONTRAINDICATION: One or more medications should not be used in this patient. "
    "Contact prescriber for alternative therapy options."
)
MAJOR_INTERACTION_ADVICE = (
    "Major drug interactions found. Monitor patient closely and consider "
    "dose adjustments or alternative therapies."
)
DUPLICATION_ADVICE = (
    "Therapeutic duplication detected. Review the need for multiple agents "
    "from the same therapeutic class."
)
POLYPHARMACY_ADVICE = (
    "High number of drug interactions. Consider a comprehensive medication "
    "review to reduce polypharmacy."
)


def _count_interactions(interactions: Sequence[InteractionFinding], severity: Severity) -> int:
    return sum(1 for i in interactions if i.severity == severity)


def _count_absolute(contraindications: Sequence[ContraindicationFinding]) -> int:
    return sum(1 for c in contraindications if c.severity == ContraindicationSeverity.ABSOLUTE)


class RiskAggregator:
    """Deterministic overall risk level; first matching rule wins"""

    def assess(
        self,
        interactions: Sequence[InteractionFinding],
        duplications: Sequence[DuplicationFinding],
        contraindications: Sequence[ContraindicationFinding]
    ) -> RiskLevel:
        critical_count = (
            _count_interactions(interactions, Severity.CRITICAL)
            + _count_absolute(contraindications)
        )
        major_count = (
            _count_interactions(interactions, Severity.MAJOR)
            + sum(1 for d in duplications if d.severity == Severity.MAJOR)
        )

        if critical_count > 0:
            return RiskLevel.CRITICAL
        if major_count >= 2:
            return RiskLevel.HIGH
        if major_count >= 1 or len(interactions) >= MODERATE_INTERACTION_VOLUME:
            return RiskLevel.MODERATE
        return RiskLevel.LOW


class RecommendationGenerator:
    """Independent advisories, most severe trigger first"""

    def generate(
        self,
        interactions: Sequence[InteractionFinding],
        duplications: Sequence[DuplicationFinding],
        contraindications: Sequence[ContraindicationFinding]
    ) -> List[str]:
        recommendations = []

        if _count_interactions(interactions, Severity.CRITICAL) > 0:
            recommendations.append(CRITICAL_INTERACTION_ADVICE)

        if _count_absolute(contraindications) > 0:
            recommendations.append(ABSOLUTE_CONTRAINDICATION_ADVICE)

        if _count_interactions(interactions, Severity.MAJOR) > 0:
            recommendations.append(MAJOR_INTERACTION_ADVICE)

        if duplications:
            recommendations.append(DUPLICATION_ADVICE)

        if len(interactions) > POLYPHARMACY_INTERACTION_THRESHOLD:
            recommendations.append(POLYPHARMACY_ADVICE)

        return recommendations
