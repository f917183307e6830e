"""
Medication Interaction Report Engine - Configuration Settings
"""
import os
from pathlib import Path

# Base paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"
KNOWLEDGE_BASE_DIR = Path(os.getenv("KNOWLEDGE_BASE_DIR", str(DATA_DIR / "knowledge_base")))

# Request limits
MAX_MEDICATIONS_PER_REPORT = int(os.getenv("MAX_MEDICATIONS_PER_REPORT", "50"))

# Therapeutic duplication policy (defaults; a knowledge base may ship its own)
HIGH_RISK_THERAPEUTIC_CLASSES = [
    "anticoagulants",
    "antiarrhythmics",
    "cns_depressants",
    "cardiovascular",
]

THERAPEUTIC_CLASS_RISKS = {
    "anticoagulants": "Increased bleeding risk",
    "antiarrhythmics": "Increased risk of proarrhythmia and QT prolongation",
    "cns_depressants": "Additive CNS and respiratory depression",
    "cardiovascular": "Additive hemodynamic effects with risk of hypotension and bradycardia",
    "antiplatelets": "Increased bleeding risk",
    "nsaids": "Increased risk of GI bleeding and renal injury",
    "statins": "Increased risk of myopathy",
}

DEFAULT_CLINICAL_RISK = "Increased risk of additive adverse effects"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Feature Flags
ENABLE_AUDIT_LOG = os.getenv("ENABLE_AUDIT_LOG", "true").lower() == "true"
ENABLE_PARALLEL_CHECKS = os.getenv("ENABLE_PARALLEL_CHECKS", "false").lower() == "true"
