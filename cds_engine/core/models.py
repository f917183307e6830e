"""
Medication Interaction Report Engine - Data Models
Knowledge records, findings and the aggregate report
"""
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple, FrozenSet
from enum import Enum


class Severity(Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MODERATE = "moderate"
    MINOR = "minor"

    @property
    def ordinal(self) -> int:
        return _SEVERITY_ORDINALS[self]

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Parse a severity from its value, case-insensitively"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown severity: {value!r}") from None


_SEVERITY_ORDINALS = {
    Severity.CRITICAL: 4,
    Severity.MAJOR: 3,
    Severity.MODERATE: 2,
    Severity.MINOR: 1,
}


class ContraindicationSeverity(Enum):
    ABSOLUTE = "absolute"
    RELATIVE = "relative"


class Onset(Enum):
    IMMEDIATE = "immediate"
    RAPID = "rapid"
    DELAYED = "delayed"


class EvidenceLevel(Enum):
    ESTABLISHED = "established"
    PROBABLE = "probable"
    SUSPECTED = "suspected"
    THEORETICAL = "theoretical"


class RiskLevel(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


def _value(item: Any) -> Any:
    return item.value if isinstance(item, Enum) else item


def _optional_list(items: Optional[Tuple[str, ...]]) -> Optional[List[str]]:
    return list(items) if items is not None else None


@dataclass(frozen=True)
class Medication:
    """A prescribed medication: display label plus canonical ingredient"""
    drug_name: str
    active_ingredient: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Medication":
        """Build from a request payload (camelCase or snake_case keys)"""
        return cls(
            drug_name=data.get("drugName", data.get("drug_name", "")),
            active_ingredient=data.get("activeIngredient", data.get("active_ingredient", "")),
        )


@dataclass(frozen=True)
class InteractionRecord:
    """Curated drug-drug interaction fact"""
    drug1: str
    drug2: str
    severity: Severity
    mechanism: str
    clinical_effect: str
    recommendation: str
    documentation: EvidenceLevel
    monitoring_parameters: Optional[Tuple[str, ...]] = None
    alternative_therapies: Optional[Tuple[str, ...]] = None
    onset_time: Optional[Onset] = None
    references: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class ContraindicationRecord:
    """Curated drug-condition contraindication fact"""
    drug: str
    condition: str
    type: str
    severity: ContraindicationSeverity
    reason: str


@dataclass(frozen=True)
class TherapeuticClassRecord:
    active_ingredient: str
    therapeutic_class: str
    mechanism: str
    subclass: Optional[str] = None


@dataclass(frozen=True)
class ValidCombinationRecord:
    """Same-class combination sanctioned as clinically acceptable"""
    therapeutic_class: str
    active_ingredients: FrozenSet[str]
    rationale: Optional[str] = None


@dataclass(frozen=True)
class InteractionFinding:
    """Interaction detected between two prescribed medications"""
    drug1_name: str
    drug2_name: str
    drug1_ingredient: str
    drug2_ingredient: str
    record: InteractionRecord

    @property
    def severity(self) -> Severity:
        return self.record.severity

    def to_dict(self) -> Dict[str, Any]:
        record = self.record
        return {
            "drug1": self.drug1_ingredient,
            "drug2": self.drug2_ingredient,
            "drug1Name": self.drug1_name,
            "drug2Name": self.drug2_name,
            "severity": record.severity.value,
            "mechanism": record.mechanism,
            "clinicalEffect": record.clinical_effect,
            "recommendation": record.recommendation,
            "monitoringParameters": _optional_list(record.monitoring_parameters),
            "alternativeTherapies": _optional_list(record.alternative_therapies),
            "onsetTime": _value(record.onset_time),
            "documentation": record.documentation.value,
            "references": _optional_list(record.references),
        }


@dataclass(frozen=True)
class DuplicationFinding:
    """Two or more medications from the same therapeutic class"""
    drugs: Tuple[str, ...]
    therapeutic_class: str
    severity: Severity
    recommendation: str
    clinical_risk: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drugs": list(self.drugs),
            "therapeuticClass": self.therapeutic_class,
            "severity": self.severity.value,
            "recommendation": self.recommendation,
            "clinicalRisk": self.clinical_risk,
        }


@dataclass(frozen=True)
class ContraindicationFinding:
    drug: str
    contraindication: str
    condition: str
    severity: ContraindicationSeverity
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drug": self.drug,
            "contraindication": self.contraindication,
            "condition": self.condition,
            "severity": self.severity.value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class CriticalIssue:
    """Shortlisted finding highlighted to the prescriber"""
    issue_type: str  # "interaction", "duplication" or "contraindication"
    severity: str
    drugs: Tuple[str, ...]
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.issue_type,
            "severity": self.severity,
            "drugs": list(self.drugs),
            "description": self.description,
        }


@dataclass(frozen=True)
class ReportSummary:
    total_medications: int
    total_interactions: int
    critical_interactions: int
    major_interactions: int
    therapeutic_duplications: int
    contraindications: int
    overall_risk_level: RiskLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalMedications": self.total_medications,
            "totalInteractions": self.total_interactions,
            "criticalInteractions": self.critical_interactions,
            "majorInteractions": self.major_interactions,
            "therapeuticDuplications": self.therapeutic_duplications,
            "contraindications": self.contraindications,
            "overallRiskLevel": self.overall_risk_level.value,
        }


@dataclass(frozen=True)
class InteractionReport:
    """Prioritized risk report for one medication list"""
    summary: ReportSummary
    interactions: Tuple[InteractionFinding, ...] = field(default_factory=tuple)
    therapeutic_duplications: Tuple[DuplicationFinding, ...] = field(default_factory=tuple)
    contraindications: Tuple[ContraindicationFinding, ...] = field(default_factory=tuple)
    critical_issues: Tuple[CriticalIssue, ...] = field(default_factory=tuple)
    recommendations: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_critical_issues(self) -> bool:
        return len(self.critical_issues) > 0

    def categorized_interactions(self) -> Dict[str, List[InteractionFinding]]:
        """Group interactions by severity, most severe first"""
        categories: Dict[str, List[InteractionFinding]] = {s.value: [] for s in Severity}
        for finding in self.interactions:
            categories[finding.severity.value].append(finding)
        return categories

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "interactions": [i.to_dict() for i in self.interactions],
            "therapeuticDuplications": [d.to_dict() for d in self.therapeutic_duplications],
            "contraindications": [c.to_dict() for c in self.contraindications],
            "criticalIssues": [c.to_dict() for c in self.critical_issues],
            "recommendations": list(self.recommendations),
        }
