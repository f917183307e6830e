"""
Medication Interaction Report Engine - Report Service
Complete interaction report pipeline
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from config import settings
from cds_engine.core.contraindication_checker import ContraindicationChecker
from cds_engine.core.duplication_detector import TherapeuticDuplicationDetector
from cds_engine.core.exceptions import (
    InvalidInput, ReportGenerationError
)
from cds_engine.core.interaction_checker import PairwiseInteractionChecker
from cds_engine.core.knowledge_base import KnowledgeBase
from cds_engine.core.models import (
    ContraindicationFinding, ContraindicationSeverity, CriticalIssue,
    DuplicationFinding, InteractionFinding, InteractionReport, Medication,
    ReportSummary, Severity
)
from cds_engine.core.risk_assessment import RecommendationGenerator, RiskAggregator
from cds_engine.knowledge.loader import (
    JsonKnowledgeLoader, KnowledgeLoader, build_knowledge_base, load_default_knowledge_base
)

logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)
logger = logging.getLogger(__name__)

Findings = Tuple[
    List[InteractionFinding], List[DuplicationFinding], List[ContraindicationFinding]
]


class ReportBuilder:
    """
    Build a prioritized interaction report for a medication list:
    - Drug-Drug Interactions
    - Therapeutic Duplications
    - Drug-Condition Contraindications

    All components share one read-only KnowledgeBase, so a builder can
    serve concurrent requests without locking.
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        max_medications: Optional[int] = None,
        parallel_checks: Optional[bool] = None
    ):
        self.kb = knowledge_base
        self.interaction_checker = PairwiseInteractionChecker(knowledge_base)
        self.duplication_detector = TherapeuticDuplicationDetector(knowledge_base)
        self.contraindication_checker = ContraindicationChecker(knowledge_base)
        self.risk_aggregator = RiskAggregator()
        self.recommendation_generator = RecommendationGenerator()
        self.max_medications = (
            settings.MAX_MEDICATIONS_PER_REPORT if max_medications is None else max_medications
        )
        self.parallel_checks = (
            settings.ENABLE_PARALLEL_CHECKS if parallel_checks is None else parallel_checks
        )

    def get_interaction_report(
        self,
        medications: Sequence[Medication],
        conditions: Optional[Sequence[str]] = None
    ) -> InteractionReport:
        """
        Evaluate a medication list (and optionally patient conditions).

        Args:
            medications: Non-empty ordered list of Medication
            conditions: Free-text patient conditions for contraindication checks

        Returns:
            InteractionReport

        Raises:
            InvalidInput: before any checking starts
            ReportGenerationError: any later failure; no partial report is returned
        """
        medications, conditions = self._validate_input(medications, conditions)

        try:
            if self.parallel_checks:
                findings = self._run_checks_parallel(medications, conditions)
            else:
                findings = self._run_checks(medications, conditions)
            report = self._assemble(medications, *findings)
        except Exception as e:
            logger.exception("Interaction report generation failed")
            raise ReportGenerationError(f"Interaction report failed: {e}") from e

        self._audit(report)
        return report

    async def aget_interaction_report(
        self,
        medications: Sequence[Medication],
        conditions: Optional[Sequence[str]] = None
    ) -> InteractionReport:
        """Async variant: the three checkers run as concurrent tasks"""
        medications, conditions = self._validate_input(medications, conditions)

        try:
            interactions, duplications, contraindications = await asyncio.gather(
                asyncio.to_thread(self.interaction_checker.check_prescription, medications),
                asyncio.to_thread(self.duplication_detector.check, medications),
                asyncio.to_thread(self.contraindication_checker.check, medications, conditions),
            )
            report = self._assemble(medications, interactions, duplications, contraindications)
        except Exception as e:
            logger.exception("Interaction report generation failed")
            raise ReportGenerationError(f"Interaction report failed: {e}") from e

        self._audit(report)
        return report

    def _validate_input(
        self,
        medications: Sequence[Medication],
        conditions: Optional[Sequence[str]]
    ) -> Tuple[List[Medication], List[str]]:
        if not isinstance(medications, (list, tuple)) or len(medications) == 0:
            raise InvalidInput("At least one medication is required")

        if len(medications) > self.max_medications:
            raise InvalidInput(
                f"Maximum {self.max_medications} medications allowed per report "
                f"(got {len(medications)})"
            )

        for index, med in enumerate(medications):
            if not isinstance(med, Medication):
                raise InvalidInput(f"Medication #{index} is not a Medication: {med!r}")
            if not isinstance(med.drug_name, str) or not med.drug_name.strip():
                raise InvalidInput(f"Medication #{index} has no drug name")
            if not isinstance(med.active_ingredient, str) or not med.active_ingredient.strip():
                raise InvalidInput(f"Medication #{index} ({med.drug_name}) has no active ingredient")

        if conditions is None:
            conditions = []
        elif isinstance(conditions, str) or not isinstance(conditions, (list, tuple)):
            raise InvalidInput("Conditions must be a list of strings")

        for index, condition in enumerate(conditions):
            if not isinstance(condition, str) or not condition.strip():
                raise InvalidInput(f"Condition #{index} is empty or not text: {condition!r}")

        return list(medications), list(conditions)

    def _run_checks(self, medications: List[Medication], conditions: List[str]) -> Findings:
        return (
            self.interaction_checker.check_prescription(medications),
            self.duplication_detector.check(medications),
            self.contraindication_checker.check(medications, conditions),
        )

    def _run_checks_parallel(self, medications: List[Medication], conditions: List[str]) -> Findings:
        with ThreadPoolExecutor(max_workers=3) as executor:
            interactions = executor.submit(self.interaction_checker.check_prescription, medications)
            duplications = executor.submit(self.duplication_detector.check, medications)
            contraindications = executor.submit(self.contraindication_checker.check, medications, conditions)
            # result() re-raises the first checker failure
            return interactions.result(), duplications.result(), contraindications.result()

    def _assemble(
        self,
        medications: List[Medication],
        interactions: List[InteractionFinding],
        duplications: List[DuplicationFinding],
        contraindications: List[ContraindicationFinding]
    ) -> InteractionReport:
        risk_level = self.risk_aggregator.assess(interactions, duplications, contraindications)
        recommendations = self.recommendation_generator.generate(
            interactions, duplications, contraindications
        )

        summary = ReportSummary(
            total_medications=len(medications),
            total_interactions=len(interactions),
            critical_interactions=sum(1 for i in interactions if i.severity == Severity.CRITICAL),
            major_interactions=sum(1 for i in interactions if i.severity == Severity.MAJOR),
            therapeutic_duplications=len(duplications),
            contraindications=len(contraindications),
            overall_risk_level=risk_level,
        )

        return InteractionReport(
            summary=summary,
            interactions=tuple(interactions),
            therapeutic_duplications=tuple(duplications),
            contraindications=tuple(contraindications),
            critical_issues=tuple(self._critical_issues(interactions, duplications, contraindications)),
            recommendations=tuple(recommendations),
        )

    def _critical_issues(
        self,
        interactions: List[InteractionFinding],
        duplications: List[DuplicationFinding],
        contraindications: List[ContraindicationFinding]
    ) -> List[CriticalIssue]:
        """Critical interactions, major duplications, absolute contraindications"""
        issues = []

        for interaction in interactions:
            if interaction.severity == Severity.CRITICAL:
                issues.append(CriticalIssue(
                    issue_type="interaction",
                    severity=interaction.severity.value,
                    drugs=(interaction.drug1_name, interaction.drug2_name),
                    description=(
                        f"{interaction.drug1_name} + {interaction.drug2_name}: "
                        f"{interaction.record.clinical_effect}"
                    ),
                ))

        for duplication in duplications:
            if duplication.severity == Severity.MAJOR:
                issues.append(CriticalIssue(
                    issue_type="duplication",
                    severity=duplication.severity.value,
                    drugs=duplication.drugs,
                    description=f"Duplicate {duplication.therapeutic_class}: {duplication.clinical_risk}",
                ))

        for contra in contraindications:
            if contra.severity == ContraindicationSeverity.ABSOLUTE:
                issues.append(CriticalIssue(
                    issue_type="contraindication",
                    severity=contra.severity.value,
                    drugs=(contra.drug,),
                    description=f"{contra.drug} contraindicated with {contra.condition}: {contra.reason}",
                ))

        return issues

    def _audit(self, report: InteractionReport) -> None:
        if not settings.ENABLE_AUDIT_LOG:
            return
        summary = report.summary
        logger.info(
            f"Interaction report: medications={summary.total_medications} "
            f"interactions={summary.total_interactions} "
            f"critical={summary.critical_interactions} major={summary.major_interactions} "
            f"duplications={summary.therapeutic_duplications} "
            f"contraindications={summary.contraindications} "
            f"risk={summary.overall_risk_level.value}"
        )


# Singleton instance; replaced wholesale on reload, never mutated
_report_builder: Optional[ReportBuilder] = None


def get_report_builder() -> ReportBuilder:
    """Get or create report builder singleton over the default knowledge base"""
    global _report_builder
    if _report_builder is None:
        _report_builder = ReportBuilder(load_default_knowledge_base())
    return _report_builder


def reload_knowledge_base(loader: Optional[KnowledgeLoader] = None) -> ReportBuilder:
    """
    Build a new knowledge base and swap it in atomically.

    In-flight reports keep the builder (and knowledge base) they started
    with. If loading fails the current builder stays in place.
    """
    global _report_builder

    kb = build_knowledge_base(loader or JsonKnowledgeLoader(settings.KNOWLEDGE_BASE_DIR))
    _report_builder = ReportBuilder(kb)
    logger.info("Knowledge base reloaded")
    return _report_builder


def get_interaction_report(
    medications: Sequence[Medication],
    conditions: Optional[Sequence[str]] = None
) -> InteractionReport:
    return get_report_builder().get_interaction_report(medications, conditions)
