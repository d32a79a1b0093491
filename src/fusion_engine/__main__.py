"""
Entity Fusion Engine CLI.

Usage:
    python -m src.fusion_engine batch.json
    python -m src.fusion_engine batch.json --json
    python -m src.fusion_engine batch.json --max-batch 1000
    python -m src.fusion_engine batch.json --max-batch none
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from src.fusion_engine.engine import DataFusionEngine
from src.fusion_engine.errors import FusionEngineError
from src.fusion_engine.loader import load_batch
from src.fusion_engine.schemas import FusionReport
from src.shared.config import settings
from src.shared.logger import get_logger, log_config_status, log_result_table

logger = get_logger()


def batch_limit(value: str) -> int | None:
    """Parse --max-batch; 0 or "none" disables the guard."""
    if value.lower() == "none":
        return None
    try:
        limit = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid batch limit: {value!r}") from None
    if limit < 0:
        raise argparse.ArgumentTypeError("batch limit must not be negative")
    return limit or None


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Entity Fusion Engine - correlate and fuse multi-source entities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Batch document format:
  {
    "entities": [{"entity_type": "ip_address", "name": "192.168.1.1",
                  "source": "otx", "confidence": 0.8}, ...],
    "fusion_rules": [{"name": "Network", "entity_types": ["ip_address"],
                      "fusion_strategy": "weighted_average"}],
    "confidence_models": [{"source_name": "otx", "reliability_score": 0.9}]
  }
        """,
    )
    parser.add_argument("batch", type=Path, help="JSON batch document")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the fusion report as JSON",
    )
    parser.add_argument(
        "--max-batch",
        type=batch_limit,
        default=settings.fusion_max_batch_size,
        help=(
            "Reject batches larger than this; 0 or 'none' disables the limit "
            f"(default: {settings.fusion_max_batch_size})"
        ),
    )
    return parser.parse_args(argv)


def print_report(report: FusionReport) -> None:
    """Render a fusion report as rich tables."""
    rows = [
        [
            result.fused_entity.name,
            result.fused_entity.entity_type.value,
            len(result.source_entities),
            result.fusion_method.value,
            f"{result.fused_entity.confidence:.3f}",
            f"{result.confidence_delta:+.3f}",
            f"{result.quality_score:.3f}",
        ]
        for result in report.results
    ]
    log_result_table(
        "🔗 Fusion Results",
        ["Name", "Type", "Sources", "Strategy", "Confidence", "Δ", "Quality"],
        rows,
    )
    logger.result_summary(
        "Fusion Pass",
        "success" if not report.diagnostics else "warning",
        len(report.results),
        {
            "Unfused entities": len(report.unfused_entity_ids),
            "Diagnostics": len(report.diagnostics),
        },
    )


async def run(args: argparse.Namespace) -> int:
    """Load the batch, run one fusion pass and print the outcome."""
    batch = load_batch(args.batch)

    engine = DataFusionEngine(max_batch_size=args.max_batch)
    for model in batch.confidence_models:
        engine.add_confidence_model(model)
    for rule in batch.fusion_rules:
        engine.add_fusion_rule(rule)

    if not args.json:
        log_config_status(
            {
                "Entities": (bool(batch.entities), f"{len(batch.entities)} loaded"),
                "Fusion rules": (bool(batch.fusion_rules), f"{len(batch.fusion_rules)} configured"),
                "Confidence models": (
                    bool(batch.confidence_models),
                    f"{len(batch.confidence_models)} registered",
                ),
            }
        )

    report = await engine.run(batch.entities)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except FusionEngineError as e:
        logger.error(f"{e.error_code}: {e.message}")
        return 1
    except FileNotFoundError as e:
        logger.error(f"Batch file not found: {e.filename}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
