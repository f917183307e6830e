"""
Medication Interaction Report Engine - Error Taxonomy
"""


class ClinicalEngineError(Exception):
    """Base class for all engine failures"""


class InvalidInput(ClinicalEngineError):
    """Empty or malformed medication/condition entries"""


class KnowledgeBaseUnavailable(ClinicalEngineError):
    """Knowledge could not be loaded; no report can be served"""


class LookupInconsistency(ClinicalEngineError):
    """A knowledge base lookup returned a structurally malformed record"""


class ReportGenerationError(ClinicalEngineError):
    """Report aborted; the original failure is chained as __cause__"""
