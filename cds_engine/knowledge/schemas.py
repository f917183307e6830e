"""
Medication Interaction Report Engine - Knowledge Ingestion Schemas
Validate raw loader rows before they become immutable records
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cds_engine.core.models import (
    ContraindicationRecord, ContraindicationSeverity, EvidenceLevel,
    InteractionRecord, Onset, Severity, TherapeuticClassRecord,
    ValidCombinationRecord
)


def _as_tuple(items: Optional[List[str]]):
    return tuple(items) if items is not None else None


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InteractionSchema(_Schema):
    drug1: str = Field(..., min_length=1)
    drug2: str = Field(..., min_length=1)
    severity: Severity
    mechanism: str
    clinical_effect: str = Field(..., alias="clinicalEffect")
    recommendation: str
    monitoring_parameters: Optional[List[str]] = Field(None, alias="monitoringParameters")
    alternative_therapies: Optional[List[str]] = Field(None, alias="alternativeTherapies")
    onset_time: Optional[Onset] = Field(None, alias="onsetTime")
    documentation: EvidenceLevel
    references: Optional[List[str]] = None

    @field_validator("drug1", "drug2")
    @classmethod
    def _lower_ingredient(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, value):
        return Severity.parse(value)

    @field_validator("onset_time", "documentation", mode="before")
    @classmethod
    def _lower_enum(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    def to_record(self) -> InteractionRecord:
        return InteractionRecord(
            drug1=self.drug1,
            drug2=self.drug2,
            severity=self.severity,
            mechanism=self.mechanism,
            clinical_effect=self.clinical_effect,
            recommendation=self.recommendation,
            documentation=self.documentation,
            monitoring_parameters=_as_tuple(self.monitoring_parameters),
            alternative_therapies=_as_tuple(self.alternative_therapies),
            onset_time=self.onset_time,
            references=_as_tuple(self.references),
        )


class ContraindicationSchema(_Schema):
    drug: str = Field(..., min_length=1)
    condition: str = Field(..., min_length=1)
    type: str
    severity: ContraindicationSeverity
    reason: str

    @field_validator("drug")
    @classmethod
    def _lower_ingredient(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("severity", mode="before")
    @classmethod
    def _lower_severity(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    def to_record(self) -> ContraindicationRecord:
        return ContraindicationRecord(
            drug=self.drug,
            condition=self.condition,
            type=self.type,
            severity=self.severity,
            reason=self.reason,
        )


class TherapeuticClassSchema(_Schema):
    active_ingredient: str = Field(..., alias="activeIngredient", min_length=1)
    therapeutic_class: str = Field(..., alias="therapeuticClass", min_length=1)
    mechanism: str
    subclass: Optional[str] = None

    @field_validator("active_ingredient")
    @classmethod
    def _lower_ingredient(cls, value: str) -> str:
        return value.strip().lower()

    def to_record(self) -> TherapeuticClassRecord:
        return TherapeuticClassRecord(
            active_ingredient=self.active_ingredient,
            therapeutic_class=self.therapeutic_class,
            mechanism=self.mechanism,
            subclass=self.subclass,
        )


class ValidCombinationSchema(_Schema):
    therapeutic_class: str = Field(..., alias="therapeuticClass", min_length=1)
    active_ingredients: List[str] = Field(..., alias="activeIngredients", min_length=2)
    rationale: Optional[str] = None

    def to_record(self) -> ValidCombinationRecord:
        return ValidCombinationRecord(
            therapeutic_class=self.therapeutic_class,
            active_ingredients=frozenset(i.strip().lower() for i in self.active_ingredients),
            rationale=self.rationale,
        )


class DuplicationPolicySchema(_Schema):
    high_risk_classes: List[str] = Field(..., alias="highRiskClasses")
    risk_descriptions: Dict[str, str] = Field(default_factory=dict, alias="riskDescriptions")
    default_risk: str = Field(..., alias="defaultRisk", min_length=1)
