"""
Medication Interaction Report Engine - Shared Test Fixtures
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from cds_engine.knowledge.loader import InMemoryKnowledgeLoader, build_knowledge_base


CLINICAL_INTERACTIONS = [
    {"drug1": "warfarin", "drug2": "aspirin", "severity": "major",
     "mechanism": "Combined anticoagulant and antiplatelet effects",
     "clinicalEffect": "Increased bleeding risk",
     "recommendation": "Avoid combination or monitor INR closely.",
     "monitoringParameters": ["INR", "Signs of bleeding"],
     "onsetTime": "immediate", "documentation": "established"},
    {"drug1": "ciprofloxacin", "drug2": "warfarin", "severity": "major",
     "mechanism": "CYP450 inhibition increases warfarin levels",
     "clinicalEffect": "Increased INR and bleeding risk",
     "recommendation": "Monitor INR closely.",
     "onsetTime": "rapid", "documentation": "established"},
    {"drug1": "digoxin", "drug2": "furosemide", "severity": "major",
     "mechanism": "Hypokalemia increases digoxin toxicity",
     "clinicalEffect": "Arrhythmias",
     "recommendation": "Monitor potassium and digoxin levels.",
     "documentation": "established"},
    {"drug1": "amlodipine", "drug2": "atenolol", "severity": "moderate",
     "mechanism": "Additive hypotensive effects",
     "clinicalEffect": "Possible hypotension",
     "recommendation": "Monitor blood pressure.",
     "alternativeTherapies": [],
     "documentation": "established"},
    {"drug1": "simvastatin", "drug2": "amlodipine", "severity": "moderate",
     "mechanism": "CYP3A4 inhibition",
     "clinicalEffect": "Myopathy risk",
     "recommendation": "Limit simvastatin to 20mg daily.",
     "documentation": "established"},
    {"drug1": "ibuprofen", "drug2": "lisinopril", "severity": "moderate",
     "mechanism": "NSAIDs antagonize ACE inhibitors",
     "clinicalEffect": "Reduced antihypertensive effect",
     "recommendation": "Monitor blood pressure and renal function.",
     "documentation": "established"},
    {"drug1": "clarithromycin", "drug2": "simvastatin", "severity": "critical",
     "mechanism": "Strong CYP3A4 inhibition",
     "clinicalEffect": "Rhabdomyolysis",
     "recommendation": "Contraindicated combination.",
     "documentation": "established"},
    {"drug1": "metformin", "drug2": "furosemide", "severity": "minor",
     "mechanism": "Increased metformin concentration",
     "clinicalEffect": "Slightly increased exposure",
     "recommendation": "No action usually required.",
     "documentation": "suspected"},
]

CLINICAL_CLASSES = [
    {"activeIngredient": "warfarin", "therapeuticClass": "anticoagulants", "mechanism": "Vitamin K antagonist"},
    {"activeIngredient": "heparin", "therapeuticClass": "anticoagulants", "mechanism": "Antithrombin activator"},
    {"activeIngredient": "rivaroxaban", "therapeuticClass": "anticoagulants", "mechanism": "Factor Xa inhibitor"},
    {"activeIngredient": "aspirin", "therapeuticClass": "antiplatelets", "mechanism": "COX-1 inhibitor"},
    {"activeIngredient": "clopidogrel", "therapeuticClass": "antiplatelets", "mechanism": "P2Y12 inhibitor"},
    {"activeIngredient": "amlodipine", "therapeuticClass": "calcium_channel_blockers", "mechanism": "L-type calcium channel blocker"},
    {"activeIngredient": "atenolol", "therapeuticClass": "beta_blockers", "mechanism": "Beta-1 selective blocker"},
    {"activeIngredient": "metoprolol", "therapeuticClass": "beta_blockers", "mechanism": "Beta-1 selective blocker"},
    {"activeIngredient": "ibuprofen", "therapeuticClass": "nsaids", "mechanism": "COX inhibitor"},
    {"activeIngredient": "naproxen", "therapeuticClass": "nsaids", "mechanism": "COX inhibitor"},
    {"activeIngredient": "simvastatin", "therapeuticClass": "statins", "mechanism": "HMG-CoA reductase inhibitor"},
    {"activeIngredient": "digoxin", "therapeuticClass": "cardiac_glycosides", "mechanism": "Na+/K+ ATPase inhibitor"},
    {"activeIngredient": "furosemide", "therapeuticClass": "loop_diuretics", "mechanism": "Loop diuretic"},
    {"activeIngredient": "amiodarone", "therapeuticClass": "Antiarrhythmics", "mechanism": "Potassium channel blocker"},
    {"activeIngredient": "sotalol", "therapeuticClass": "Antiarrhythmics", "mechanism": "Potassium channel blocker"},
]

CLINICAL_CONTRAINDICATIONS = [
    {"drug": "aspirin", "condition": "peptic_ulcer", "type": "gi_contraindication",
     "severity": "relative", "reason": "Increased GI bleeding risk"},
    {"drug": "ibuprofen", "condition": "peptic_ulcer", "type": "gi_contraindication",
     "severity": "relative", "reason": "NSAIDs increase risk of ulcer complications"},
    {"drug": "ibuprofen", "condition": "asthma", "type": "respiratory_contraindication",
     "severity": "relative", "reason": "NSAID-exacerbated respiratory disease"},
    {"drug": "atenolol", "condition": "asthma", "type": "respiratory_contraindication",
     "severity": "absolute", "reason": "Beta-blockers can cause bronchospasm"},
    {"drug": "metformin", "condition": "renal_failure", "type": "metabolic_contraindication",
     "severity": "absolute", "reason": "Risk of lactic acidosis"},
]

CLINICAL_VALID_COMBINATIONS = [
    {"therapeuticClass": "antiplatelets", "activeIngredients": ["aspirin", "clopidogrel"],
     "rationale": "Dual antiplatelet therapy"},
]


class CountingKnowledgeBase:
    """Delegating knowledge base that records lookups"""

    def __init__(self, kb):
        self.kb = kb
        self.interaction_lookups = []
        self.combination_calls = []

    def find_interaction(self, ingredient_a, ingredient_b):
        self.interaction_lookups.append((ingredient_a, ingredient_b))
        return self.kb.find_interaction(ingredient_a, ingredient_b)

    def is_valid_combination(self, therapeutic_class, ingredients):
        self.combination_calls.append((therapeutic_class, list(ingredients)))
        return self.kb.is_valid_combination(therapeutic_class, ingredients)

    def __getattr__(self, name):
        return getattr(self.kb, name)


@pytest.fixture
def clinical_loader():
    return InMemoryKnowledgeLoader(
        interactions=CLINICAL_INTERACTIONS,
        contraindications=CLINICAL_CONTRAINDICATIONS,
        therapeutic_classes=CLINICAL_CLASSES,
        valid_combinations=CLINICAL_VALID_COMBINATIONS,
    )


@pytest.fixture
def clinical_kb(clinical_loader):
    """Knowledge base with clinically relevant fixture facts"""
    return build_knowledge_base(clinical_loader)


@pytest.fixture
def counting_kb(clinical_kb):
    return CountingKnowledgeBase(clinical_kb)
