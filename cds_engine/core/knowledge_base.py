"""
Medication Interaction Report Engine - Knowledge Base
Immutable index of interaction, contraindication and therapeutic class facts
"""
import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import (
    Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple
)

from config import settings
from cds_engine.core.models import (
    ContraindicationRecord, ContraindicationSeverity, InteractionRecord, Severity,
    TherapeuticClassRecord, ValidCombinationRecord
)
from cds_engine.core.exceptions import KnowledgeBaseUnavailable

logger = logging.getLogger(__name__)


# Returned for ingredients with no class record. Reserved: never a real class.
UNCLASSIFIED = "unclassified"


def normalize_ingredient(name: str) -> str:
    return " ".join(name.lower().split())


def normalize_condition(condition: str) -> str:
    """'Peptic ulcer' / 'peptic-ulcer' / 'peptic_ulcer' -> 'peptic_ulcer'"""
    normalized = condition.strip().lower().replace("-", " ")
    return "_".join(normalized.split())


def pair_key(ingredient_a: str, ingredient_b: str) -> Tuple[str, str]:
    """Order-independent key for an ingredient pair"""
    a, b = normalize_ingredient(ingredient_a), normalize_ingredient(ingredient_b)
    return (a, b) if a <= b else (b, a)


@dataclass(frozen=True)
class DuplicationPolicy:
    """Severity and risk-text rules for therapeutic duplication findings"""
    high_risk_classes: FrozenSet[str]
    risk_descriptions: Mapping[str, str]
    default_risk: str

    @classmethod
    def create(
        cls,
        high_risk_classes: Iterable[str],
        risk_descriptions: Mapping[str, str],
        default_risk: str,
    ) -> "DuplicationPolicy":
        return cls(
            high_risk_classes=frozenset(c.strip().lower() for c in high_risk_classes),
            risk_descriptions=MappingProxyType(
                {k.strip().lower(): v for k, v in risk_descriptions.items()}
            ),
            default_risk=default_risk,
        )

    @classmethod
    def from_settings(cls) -> "DuplicationPolicy":
        return cls.create(
            settings.HIGH_RISK_THERAPEUTIC_CLASSES,
            settings.THERAPEUTIC_CLASS_RISKS,
            settings.DEFAULT_CLINICAL_RISK,
        )

    def is_high_risk(self, therapeutic_class: str) -> bool:
        return therapeutic_class.strip().lower() in self.high_risk_classes

    def severity_for(self, therapeutic_class: str) -> Severity:
        return Severity.MAJOR if self.is_high_risk(therapeutic_class) else Severity.MODERATE

    def clinical_risk_for(self, therapeutic_class: str) -> str:
        return self.risk_descriptions.get(
            therapeutic_class.strip().lower(), self.default_risk
        )


@dataclass(frozen=True)
class KnowledgeBase:
    """
    Read-only clinical knowledge.

    Built once (see build_knowledge_base) and shared by reference between
    checkers. Lookups never raise on a miss: absence means no finding.
    """
    interactions: Mapping[Tuple[str, str], InteractionRecord]
    contraindications: Mapping[Tuple[str, str], ContraindicationRecord]
    therapeutic_classes: Mapping[str, TherapeuticClassRecord]
    valid_combinations: Mapping[str, FrozenSet[FrozenSet[str]]]
    duplication_policy: DuplicationPolicy
    _interactions_by_drug: Mapping[str, Tuple[InteractionRecord, ...]] = field(
        default_factory=lambda: MappingProxyType({}), repr=False
    )

    @classmethod
    def from_records(
        cls,
        interactions: Iterable[InteractionRecord],
        contraindications: Iterable[ContraindicationRecord],
        therapeutic_classes: Iterable[TherapeuticClassRecord],
        valid_combinations: Iterable[ValidCombinationRecord] = (),
        duplication_policy: Optional[DuplicationPolicy] = None,
    ) -> "KnowledgeBase":
        """Index loaded records. Raises KnowledgeBaseUnavailable on bad data."""
        interaction_index: Dict[Tuple[str, str], InteractionRecord] = {}
        duplicates = 0
        for record in interactions:
            if not isinstance(record.severity, Severity):
                raise KnowledgeBaseUnavailable(
                    f"Interaction {record.drug1}-{record.drug2} has no valid severity"
                )
            key = pair_key(record.drug1, record.drug2)
            existing = interaction_index.get(key)
            if existing is None:
                interaction_index[key] = record
                continue
            duplicates += 1
            if record.severity.ordinal > existing.severity.ordinal:
                interaction_index[key] = record
        if duplicates:
            logger.info(f"Dropped {duplicates} duplicate interaction records, kept most severe per pair")

        by_drug: Dict[str, List[InteractionRecord]] = {}
        for key, record in interaction_index.items():
            for drug in set(key):
                by_drug.setdefault(drug, []).append(record)

        contraindication_index: Dict[Tuple[str, str], ContraindicationRecord] = {}
        for contra in contraindications:
            key = (normalize_ingredient(contra.drug), normalize_condition(contra.condition))
            existing = contraindication_index.get(key)
            if existing is None:
                contraindication_index[key] = contra
                continue
            logger.info(f"Duplicate contraindication {key[0]}/{key[1]}, keeping most severe")
            if (contra.severity == ContraindicationSeverity.ABSOLUTE
                    and existing.severity != ContraindicationSeverity.ABSOLUTE):
                contraindication_index[key] = contra

        class_index: Dict[str, TherapeuticClassRecord] = {}
        for cls_record in therapeutic_classes:
            therapeutic_class = cls_record.therapeutic_class.strip().lower()
            if therapeutic_class == UNCLASSIFIED:
                raise KnowledgeBaseUnavailable(
                    f"'{UNCLASSIFIED}' is reserved and cannot be used as a therapeutic class "
                    f"({cls_record.active_ingredient})"
                )
            if therapeutic_class != cls_record.therapeutic_class:
                cls_record = replace(cls_record, therapeutic_class=therapeutic_class)
            ingredient = normalize_ingredient(cls_record.active_ingredient)
            existing = class_index.get(ingredient)
            if existing is not None and existing.therapeutic_class != therapeutic_class:
                raise KnowledgeBaseUnavailable(
                    f"Conflicting therapeutic classes for {ingredient}: "
                    f"{existing.therapeutic_class} vs {therapeutic_class}"
                )
            class_index[ingredient] = cls_record

        combo_index: Dict[str, set] = {}
        for combo in valid_combinations:
            members = frozenset(normalize_ingredient(i) for i in combo.active_ingredients)
            combo_index.setdefault(combo.therapeutic_class.strip().lower(), set()).add(members)

        kb = cls(
            interactions=MappingProxyType(interaction_index),
            contraindications=MappingProxyType(contraindication_index),
            therapeutic_classes=MappingProxyType(class_index),
            valid_combinations=MappingProxyType(
                {k: frozenset(v) for k, v in combo_index.items()}
            ),
            duplication_policy=duplication_policy or DuplicationPolicy.from_settings(),
            _interactions_by_drug=MappingProxyType(
                {k: tuple(v) for k, v in by_drug.items()}
            ),
        )
        logger.info(
            f"Knowledge base initialized with {len(interaction_index)} interactions, "
            f"{len(contraindication_index)} contraindications, "
            f"{len(class_index)} classified ingredients"
        )
        return kb

    def find_interaction(self, ingredient_a: str, ingredient_b: str) -> Optional[InteractionRecord]:
        return self.interactions.get(pair_key(ingredient_a, ingredient_b))

    def get_therapeutic_class(self, ingredient: str) -> str:
        record = self.therapeutic_classes.get(normalize_ingredient(ingredient))
        return record.therapeutic_class if record else UNCLASSIFIED

    def find_contraindication(self, ingredient: str, condition: str) -> Optional[ContraindicationRecord]:
        return self.contraindications.get(
            (normalize_ingredient(ingredient), normalize_condition(condition))
        )

    def is_valid_combination(self, therapeutic_class: str, ingredients: Iterable[str]) -> bool:
        """True only for explicitly whitelisted combinations"""
        sanctioned = self.valid_combinations.get(therapeutic_class.strip().lower())
        if not sanctioned:
            return False
        return frozenset(normalize_ingredient(i) for i in ingredients) in sanctioned

    def get_interactions_by_drug(self, ingredient: str) -> List[InteractionRecord]:
        return list(self._interactions_by_drug.get(normalize_ingredient(ingredient), ()))

    def get_all_interactions(self) -> List[InteractionRecord]:
        return list(self.interactions.values())

    def get_contraindications_for(self, ingredient: str) -> List[ContraindicationRecord]:
        drug = normalize_ingredient(ingredient)
        return [c for (d, _), c in self.contraindications.items() if d == drug]

    def get_statistics(self) -> Dict[str, Any]:
        by_severity = {s.value: 0 for s in Severity}
        for record in self.interactions.values():
            by_severity[record.severity.value] += 1

        return {
            "interactions": len(self.interactions),
            "interactions_by_severity": by_severity,
            "contraindications": len(self.contraindications),
            "classified_ingredients": len(self.therapeutic_classes),
            "therapeutic_classes": len({r.therapeutic_class for r in self.therapeutic_classes.values()}),
            "valid_combinations": sum(len(v) for v in self.valid_combinations.values()),
        }
