"""
Medication Interaction Report Engine - Checker Tests
Pairwise interactions, therapeutic duplication and contraindications
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dataclasses import replace

import pytest

from cds_engine.core.contraindication_checker import ContraindicationChecker
from cds_engine.core.duplication_detector import TherapeuticDuplicationDetector
from cds_engine.core.exceptions import LookupInconsistency
from cds_engine.core.interaction_checker import PairwiseInteractionChecker
from cds_engine.core.models import ContraindicationSeverity, Medication, Severity


def meds(*ingredients):
    return [Medication(drug_name=i.title(), active_ingredient=i) for i in ingredients]


class MalformedKnowledgeBase:
    """Returns records with string severities"""

    def __init__(self, kb):
        self.kb = kb

    def find_interaction(self, a, b):
        record = self.kb.find_interaction(a, b)
        return replace(record, severity="major") if record else None

    def find_contraindication(self, drug, condition):
        record = self.kb.find_contraindication(drug, condition)
        return replace(record, severity=None) if record else None


class TestPairwiseInteractionChecker:
    """Test drug-drug interaction detection"""

    @pytest.mark.parametrize("n", [1, 2, 3, 5, 10])
    def test_lookup_count_is_n_choose_2(self, counting_kb, n):
        medications = meds(*[f"drug{i}" for i in range(n)])
        PairwiseInteractionChecker(counting_kb).check_prescription(medications)
        assert len(counting_kb.interaction_lookups) == n * (n - 1) // 2

    def test_no_self_pairs_or_reversed_duplicates(self, counting_kb):
        PairwiseInteractionChecker(counting_kb).check_prescription(meds("a", "b", "c"))
        assert counting_kb.interaction_lookups == [("a", "b"), ("a", "c"), ("b", "c")]

    def test_finding_carries_names_and_record(self, clinical_kb):
        medications = [
            Medication("Coumadin 5mg", "warfarin"),
            Medication("Aspocid 75mg", "aspirin"),
        ]
        findings = PairwiseInteractionChecker(clinical_kb).check_prescription(medications)

        assert len(findings) == 1
        finding = findings[0]
        assert finding.drug1_name == "Coumadin 5mg"
        assert finding.drug2_name == "Aspocid 75mg"
        assert finding.severity == Severity.MAJOR
        assert finding.record.clinical_effect == "Increased bleeding risk"
        assert finding.to_dict()["monitoringParameters"] == ["INR", "Signs of bleeding"]

    def test_serialized_ingredients_follow_prescription_order(self, clinical_kb):
        medications = [
            Medication("Coumadin 5mg", "Warfarin"),
            Medication("Cipro 500mg", "ciprofloxacin"),
        ]
        finding = PairwiseInteractionChecker(clinical_kb).check_prescription(medications)[0]

        assert finding.record.drug1 == "ciprofloxacin"
        data = finding.to_dict()
        assert (data["drug1"], data["drug1Name"]) == ("warfarin", "Coumadin 5mg")
        assert (data["drug2"], data["drug2Name"]) == ("ciprofloxacin", "Cipro 500mg")

    def test_sorted_by_severity_with_stable_ties(self, clinical_kb):
        medications = meds(
            "amlodipine", "atenolol", "simvastatin", "ibuprofen", "lisinopril", "clarithromycin"
        )
        findings = PairwiseInteractionChecker(clinical_kb).check_prescription(medications)

        ordered = [(f.drug1_name, f.drug2_name, f.severity) for f in findings]
        assert ordered == [
            ("Simvastatin", "Clarithromycin", Severity.CRITICAL),
            ("Amlodipine", "Atenolol", Severity.MODERATE),
            ("Amlodipine", "Simvastatin", Severity.MODERATE),
            ("Ibuprofen", "Lisinopril", Severity.MODERATE),
        ]

    def test_severities_non_increasing(self, clinical_kb):
        medications = meds(
            "metformin", "furosemide", "digoxin", "amlodipine", "atenolol",
            "warfarin", "aspirin", "simvastatin", "clarithromycin"
        )
        findings = PairwiseInteractionChecker(clinical_kb).check_prescription(medications)
        ordinals = [f.severity.ordinal for f in findings]
        assert len(findings) == 6
        assert ordinals == sorted(ordinals, reverse=True)

    def test_single_medication(self, clinical_kb):
        assert PairwiseInteractionChecker(clinical_kb).check_prescription(meds("warfarin")) == []

    def test_same_ingredient_twice(self, clinical_kb):
        findings = PairwiseInteractionChecker(clinical_kb).check_prescription(
            meds("warfarin", "warfarin", "aspirin")
        )
        assert len(findings) == 2
        assert all(f.drug2_name == "Aspirin" for f in findings)

    def test_check_pair(self, clinical_kb):
        checker = PairwiseInteractionChecker(clinical_kb)
        aspirin, warfarin, paracetamol = meds("aspirin", "warfarin", "paracetamol")
        assert checker.check_pair(aspirin, warfarin).severity == Severity.MAJOR
        assert checker.check_pair(aspirin, paracetamol) is None

    def test_malformed_record_raises(self, clinical_kb):
        checker = PairwiseInteractionChecker(MalformedKnowledgeBase(clinical_kb))
        with pytest.raises(LookupInconsistency):
            checker.check_prescription(meds("warfarin", "aspirin"))


class TestTherapeuticDuplicationDetector:
    """Test same-class duplication detection"""

    def test_three_anticoagulants_one_major_finding(self, clinical_kb):
        findings = TherapeuticDuplicationDetector(clinical_kb).check(
            meds("warfarin", "heparin", "rivaroxaban")
        )
        assert len(findings) == 1
        finding = findings[0]
        assert finding.severity == Severity.MAJOR
        assert finding.therapeutic_class == "anticoagulants"
        assert finding.drugs == ("Warfarin", "Heparin", "Rivaroxaban")
        assert finding.clinical_risk == "Increased bleeding risk"
        assert "anticoagulants" in finding.recommendation
        assert "Warfarin, Heparin, Rivaroxaban" in finding.recommendation

    def test_non_high_risk_class_is_moderate(self, clinical_kb):
        findings = TherapeuticDuplicationDetector(clinical_kb).check(meds("ibuprofen", "naproxen"))
        assert len(findings) == 1
        assert findings[0].severity == Severity.MODERATE
        assert findings[0].clinical_risk == "Increased risk of GI bleeding and renal injury"

    def test_high_risk_match_is_case_insensitive(self, clinical_kb):
        findings = TherapeuticDuplicationDetector(clinical_kb).check(meds("amiodarone", "sotalol"))
        assert findings[0].therapeutic_class == "antiarrhythmics"
        assert findings[0].severity == Severity.MAJOR

    def test_unmapped_class_gets_default_risk(self, clinical_kb):
        findings = TherapeuticDuplicationDetector(clinical_kb).check(meds("atenolol", "metoprolol"))
        assert findings[0].clinical_risk == clinical_kb.duplication_policy.default_risk

    def test_whitelisted_combination_not_flagged(self, clinical_kb):
        assert TherapeuticDuplicationDetector(clinical_kb).check(meds("aspirin", "clopidogrel")) == []

    def test_singleton_groups_skip_combination_check(self, counting_kb):
        findings = TherapeuticDuplicationDetector(counting_kb).check(
            meds("warfarin", "aspirin", "amlodipine", "atenolol")
        )
        assert findings == []
        assert counting_kb.combination_calls == []

    def test_combination_check_only_for_groups(self, counting_kb):
        TherapeuticDuplicationDetector(counting_kb).check(
            meds("warfarin", "ibuprofen", "heparin", "digoxin")
        )
        assert counting_kb.combination_calls == [("anticoagulants", ["warfarin", "heparin"])]

    def test_unclassified_drugs_never_grouped(self, counting_kb):
        findings = TherapeuticDuplicationDetector(counting_kb).check(
            meds("unknowndrug1", "unknowndrug2", "amoxicillin")
        )
        assert findings == []
        assert counting_kb.combination_calls == []

    def test_same_ingredient_twice_is_duplication(self, clinical_kb):
        findings = TherapeuticDuplicationDetector(clinical_kb).check(meds("warfarin", "warfarin"))
        assert len(findings) == 1
        assert findings[0].drugs == ("Warfarin", "Warfarin")


class TestContraindicationChecker:
    """Test drug-condition contraindications"""

    def test_cross_product(self, clinical_kb):
        findings = ContraindicationChecker(clinical_kb).check(
            meds("aspirin", "ibuprofen", "atenolol"), ["peptic ulcer", "asthma"]
        )
        pairs = [(f.drug, f.condition) for f in findings]
        assert pairs == [
            ("Aspirin", "peptic ulcer"),
            ("Ibuprofen", "peptic ulcer"),
            ("Ibuprofen", "asthma"),
            ("Atenolol", "asthma"),
        ]

    def test_multiple_conditions_same_drug_not_deduplicated(self, clinical_kb):
        findings = ContraindicationChecker(clinical_kb).check(
            meds("ibuprofen"), ["Peptic Ulcer", "asthma"]
        )
        assert len(findings) == 2

    def test_finding_fields(self, clinical_kb):
        finding = ContraindicationChecker(clinical_kb).check(meds("atenolol"), ["Asthma"])[0]
        assert finding.severity == ContraindicationSeverity.ABSOLUTE
        assert finding.contraindication == "respiratory_contraindication"
        assert finding.condition == "Asthma"
        assert finding.reason == "Beta-blockers can cause bronchospasm"

    def test_no_conditions(self, clinical_kb):
        assert ContraindicationChecker(clinical_kb).check(meds("atenolol"), []) == []

    def test_malformed_record_raises(self, clinical_kb):
        checker = ContraindicationChecker(MalformedKnowledgeBase(clinical_kb))
        with pytest.raises(LookupInconsistency):
            checker.check(meds("atenolol"), ["asthma"])
