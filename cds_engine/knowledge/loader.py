"""
Medication Interaction Report Engine - Knowledge Loaders
Read curated facts from JSON, CSV or Excel and build the knowledge base
"""
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from pydantic import ValidationError

from config import settings
from cds_engine.core.exceptions import KnowledgeBaseUnavailable
from cds_engine.core.knowledge_base import DuplicationPolicy, KnowledgeBase
from cds_engine.core.models import (
    ContraindicationRecord, InteractionRecord, TherapeuticClassRecord,
    ValidCombinationRecord
)
from cds_engine.knowledge.schemas import (
    ContraindicationSchema, DuplicationPolicySchema, InteractionSchema,
    TherapeuticClassSchema, ValidCombinationSchema
)

logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)
logger = logging.getLogger(__name__)


INTERACTIONS_TABLE = "interactions"
CONTRAINDICATIONS_TABLE = "contraindications"
THERAPEUTIC_CLASSES_TABLE = "therapeutic_classes"
VALID_COMBINATIONS_TABLE = "valid_combinations"
DUPLICATION_POLICY_TABLE = "duplication_policy"

# Columns holding ';'-separated lists in tabular sources
LIST_COLUMNS = {
    "monitoringParameters", "monitoring_parameters",
    "alternativeTherapies", "alternative_therapies",
    "references",
    "activeIngredients", "active_ingredients",
    "highRiskClasses", "high_risk_classes",
}


_RECORD_TYPES = {
    InteractionSchema: InteractionRecord,
    ContraindicationSchema: ContraindicationRecord,
    TherapeuticClassSchema: TherapeuticClassRecord,
    ValidCombinationSchema: ValidCombinationRecord,
}


def _parse_rows(rows: List[Any], schema) -> List[Any]:
    """Validate dict rows; rows must be a list of dicts or ready-made records"""
    if not isinstance(rows, (list, tuple)):
        raise TypeError(f"Expected a list of rows, got {type(rows).__name__}")

    record_type = _RECORD_TYPES[schema]
    records = []
    for index, row in enumerate(rows):
        if isinstance(row, dict):
            records.append(schema.model_validate(row).to_record())
        elif isinstance(row, record_type):
            records.append(row)
        else:
            raise TypeError(
                f"Row #{index} is neither a mapping nor a {record_type.__name__}: {row!r}"
            )
    return records


class KnowledgeLoader(ABC):
    """Source of curated clinical facts"""

    @abstractmethod
    def load_interactions(self) -> List[InteractionRecord]:
        ...

    @abstractmethod
    def load_contraindications(self) -> List[ContraindicationRecord]:
        ...

    @abstractmethod
    def load_therapeutic_classes(self) -> List[TherapeuticClassRecord]:
        ...

    def load_valid_combinations(self) -> List[ValidCombinationRecord]:
        return []

    def load_duplication_policy(self) -> Optional[DuplicationPolicy]:
        return None


class InMemoryKnowledgeLoader(KnowledgeLoader):
    """Loader over already-fetched rows (dicts or records)"""

    def __init__(
        self,
        interactions: Optional[List[Any]] = None,
        contraindications: Optional[List[Any]] = None,
        therapeutic_classes: Optional[List[Any]] = None,
        valid_combinations: Optional[List[Any]] = None,
        duplication_policy: Optional[Union[DuplicationPolicy, Dict[str, Any]]] = None,
    ):
        self.interactions = interactions or []
        self.contraindications = contraindications or []
        self.therapeutic_classes = therapeutic_classes or []
        self.valid_combinations = valid_combinations or []
        self.duplication_policy = duplication_policy

    def load_interactions(self) -> List[InteractionRecord]:
        return _parse_rows(self.interactions, InteractionSchema)

    def load_contraindications(self) -> List[ContraindicationRecord]:
        return _parse_rows(self.contraindications, ContraindicationSchema)

    def load_therapeutic_classes(self) -> List[TherapeuticClassRecord]:
        return _parse_rows(self.therapeutic_classes, TherapeuticClassSchema)

    def load_valid_combinations(self) -> List[ValidCombinationRecord]:
        return _parse_rows(self.valid_combinations, ValidCombinationSchema)

    def load_duplication_policy(self) -> Optional[DuplicationPolicy]:
        if isinstance(self.duplication_policy, dict):
            return _policy_from_dict(self.duplication_policy)
        return self.duplication_policy


class JsonKnowledgeLoader(KnowledgeLoader):
    """Loader over a directory of <table>.json files"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _read(self, table: str, required: bool = True) -> Any:
        path = self.directory / f"{table}.json"
        if not path.exists():
            if required:
                raise FileNotFoundError(f"Missing knowledge file: {path}")
            return None
        logger.info(f"Loading {table} from JSON: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def load_interactions(self) -> List[InteractionRecord]:
        return _parse_rows(self._read(INTERACTIONS_TABLE), InteractionSchema)

    def load_contraindications(self) -> List[ContraindicationRecord]:
        return _parse_rows(self._read(CONTRAINDICATIONS_TABLE), ContraindicationSchema)

    def load_therapeutic_classes(self) -> List[TherapeuticClassRecord]:
        return _parse_rows(self._read(THERAPEUTIC_CLASSES_TABLE), TherapeuticClassSchema)

    def load_valid_combinations(self) -> List[ValidCombinationRecord]:
        rows = self._read(VALID_COMBINATIONS_TABLE, required=False)
        return _parse_rows(rows or [], ValidCombinationSchema)

    def load_duplication_policy(self) -> Optional[DuplicationPolicy]:
        data = self._read(DUPLICATION_POLICY_TABLE, required=False)
        return _policy_from_dict(data) if data is not None else None


class TabularKnowledgeLoader(KnowledgeLoader):
    """
    Loader over spreadsheet exports.

    `source` is either an .xlsx workbook with one sheet per table or a
    directory of <table>.csv files. List-valued cells use ';' separators.
    Duplication policy is not tabular and falls back to settings.
    """

    def __init__(self, source: Union[str, Path]):
        self.source = Path(source)
        self._sheets: Optional[Dict[str, pd.DataFrame]] = None

    def _frame(self, table: str, required: bool = True) -> Optional[pd.DataFrame]:
        if self.source.is_dir():
            path = self.source / f"{table}.csv"
            if not path.exists():
                if required:
                    raise FileNotFoundError(f"Missing knowledge file: {path}")
                return None
            logger.info(f"Loading {table} from CSV: {path}")
            return pd.read_csv(path)

        if self._sheets is None:
            logger.info(f"Loading knowledge workbook: {self.source}")
            self._sheets = pd.read_excel(self.source, sheet_name=None)
        if table not in self._sheets:
            if required:
                raise KeyError(f"Missing sheet '{table}' in {self.source}")
            return None
        return self._sheets[table]

    def _rows(self, table: str, required: bool = True) -> List[Dict[str, Any]]:
        df = self._frame(table, required)
        if df is None:
            return []

        rows = []
        for raw in df.astype(object).where(pd.notna(df), None).to_dict(orient="records"):
            row = {}
            for column, value in raw.items():
                if isinstance(value, str):
                    value = value.strip() or None
                if column in LIST_COLUMNS and value is not None:
                    value = [item.strip() for item in str(value).split(";") if item.strip()]
                row[column] = value
            if all(v is None for v in row.values()):
                logger.warning(f"Skipping empty row in {table}")
                continue
            rows.append(row)
        return rows

    def load_interactions(self) -> List[InteractionRecord]:
        return _parse_rows(self._rows(INTERACTIONS_TABLE), InteractionSchema)

    def load_contraindications(self) -> List[ContraindicationRecord]:
        return _parse_rows(self._rows(CONTRAINDICATIONS_TABLE), ContraindicationSchema)

    def load_therapeutic_classes(self) -> List[TherapeuticClassRecord]:
        return _parse_rows(self._rows(THERAPEUTIC_CLASSES_TABLE), TherapeuticClassSchema)

    def load_valid_combinations(self) -> List[ValidCombinationRecord]:
        return _parse_rows(self._rows(VALID_COMBINATIONS_TABLE, required=False), ValidCombinationSchema)


def _policy_from_dict(data: Dict[str, Any]) -> DuplicationPolicy:
    schema = DuplicationPolicySchema.model_validate(data)
    return DuplicationPolicy.create(
        schema.high_risk_classes, schema.risk_descriptions, schema.default_risk
    )


def build_knowledge_base(loader: KnowledgeLoader) -> KnowledgeBase:
    """
    Build an immutable knowledge base from a loader.

    Any loader or validation failure is fatal and surfaces as
    KnowledgeBaseUnavailable.
    """
    try:
        interactions = loader.load_interactions()
        contraindications = loader.load_contraindications()
        classes = loader.load_therapeutic_classes()
        combinations = loader.load_valid_combinations()
        policy = loader.load_duplication_policy()
    except (OSError, KeyError, TypeError, ValueError, ValidationError) as e:
        logger.error(f"Failed to load knowledge base from {type(loader).__name__}: {e}")
        raise KnowledgeBaseUnavailable(f"Knowledge loading failed: {e}") from e

    return KnowledgeBase.from_records(
        interactions, contraindications, classes,
        valid_combinations=combinations,
        duplication_policy=policy,
    )


def load_default_knowledge_base() -> KnowledgeBase:
    """Knowledge base from settings.KNOWLEDGE_BASE_DIR"""
    return build_knowledge_base(JsonKnowledgeLoader(settings.KNOWLEDGE_BASE_DIR))
