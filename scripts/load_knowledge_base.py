#!/usr/bin/env python3
"""
Medication Interaction Report Engine
Knowledge Base Loader - Validate and inspect curated clinical knowledge

Usage:
    python load_knowledge_base.py [source] [--export out_dir]
    python load_knowledge_base.py data/knowledge_base --check warfarin:Warfarin aspirin --condition "peptic ulcer"

`source` is a directory of JSON files, a directory of CSV files or an .xlsx workbook.
"""
import sys
import json
import logging
import argparse
from dataclasses import asdict
from pathlib import Path
from typing import List

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import settings
from cds_engine.core.exceptions import ClinicalEngineError
from cds_engine.core.knowledge_base import KnowledgeBase
from cds_engine.core.models import Medication
from cds_engine.core.report_service import ReportBuilder
from cds_engine.knowledge.loader import (
    JsonKnowledgeLoader, KnowledgeLoader, TabularKnowledgeLoader, build_knowledge_base
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def select_loader(source: Path) -> KnowledgeLoader:
    """Pick a loader from the shape of the source"""
    if source.is_dir():
        if any(source.glob("*.json")):
            return JsonKnowledgeLoader(source)
        return TabularKnowledgeLoader(source)
    return TabularKnowledgeLoader(source)


def parse_medication(token: str) -> Medication:
    """'warfarin:Coumadin 5mg' -> Medication; display name defaults to the ingredient"""
    ingredient, _, display = token.partition(":")
    return Medication(drug_name=display or ingredient.title(), active_ingredient=ingredient)


def _jsonable(value):
    if isinstance(value, (set, frozenset, tuple)):
        return sorted(value) if isinstance(value, (set, frozenset)) else list(value)
    if hasattr(value, "value"):
        return value.value
    return value


def export_knowledge_base(kb: KnowledgeBase, output_dir: Path) -> None:
    """Export the loaded knowledge base as normalized JSON tables"""
    output_dir.mkdir(parents=True, exist_ok=True)

    tables = {
        "interactions": kb.get_all_interactions(),
        "contraindications": list(kb.contraindications.values()),
        "therapeutic_classes": list(kb.therapeutic_classes.values()),
    }
    for name, records in tables.items():
        rows = [
            {k: _jsonable(v) for k, v in asdict(record).items()}
            for record in records
        ]
        with open(output_dir / f"{name}.json", "w", encoding="utf-8") as f:
            json.dump(rows, f, ensure_ascii=False, indent=2)

    combinations = [
        {"therapeutic_class": cls, "active_ingredients": sorted(members)}
        for cls, combos in kb.valid_combinations.items()
        for members in combos
    ]
    with open(output_dir / "valid_combinations.json", "w", encoding="utf-8") as f:
        json.dump(combinations, f, ensure_ascii=False, indent=2)

    policy = kb.duplication_policy
    with open(output_dir / "duplication_policy.json", "w", encoding="utf-8") as f:
        json.dump({
            "high_risk_classes": sorted(policy.high_risk_classes),
            "risk_descriptions": dict(policy.risk_descriptions),
            "default_risk": policy.default_risk,
        }, f, ensure_ascii=False, indent=2)

    logger.info(f"Exported knowledge base to: {output_dir}")


def main(argv: List[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Load and inspect the clinical knowledge base")
    parser.add_argument("source", nargs="?", default=str(settings.KNOWLEDGE_BASE_DIR),
                        help="JSON directory, CSV directory or .xlsx workbook")
    parser.add_argument("--export", dest="export_dir", help="Write normalized JSON tables here")
    parser.add_argument("--check", nargs="+", metavar="INGREDIENT[:NAME]",
                        help="Medications to run an interaction report for")
    parser.add_argument("--condition", action="append", default=[],
                        help="Patient condition (repeatable)")
    args = parser.parse_args(argv)

    source = Path(args.source)
    logger.info(f"Loading knowledge base from: {source}")

    try:
        kb = build_knowledge_base(select_loader(source))
    except ClinicalEngineError as e:
        logger.error(f"Knowledge base unavailable: {e}")
        return 1

    logger.info("Knowledge Base Statistics:")
    for key, value in kb.get_statistics().items():
        logger.info(f"  {key}: {value}")

    if args.export_dir:
        export_knowledge_base(kb, Path(args.export_dir))

    if args.check:
        medications = [parse_medication(token) for token in args.check]
        try:
            report = ReportBuilder(kb).get_interaction_report(medications, args.condition)
        except ClinicalEngineError as e:
            logger.error(f"Report failed: {e}")
            return 1
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))

    return 0


if __name__ == "__main__":
    sys.exit(main())
