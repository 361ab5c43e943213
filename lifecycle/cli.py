"""CLI entrypoint for lifecycle automation."""

import argparse
import asyncio
import json
import logging
import os
import sys
import warnings
from pathlib import Path

from pydantic import ValidationError

from lifecycle.core.config import API_KEY_ENV_VAR, EXTRACTION_MODEL, LLM_PROVIDER, ConfidenceThresholds

# Suppress LiteLLM's direct prints (must be before import)
os.environ["LITELLM_LOG"] = "ERROR"

warnings.filterwarnings("ignore", message="Pydantic serializer warnings")
warnings.filterwarnings("ignore", category=ResourceWarning)

for logger_name in ["httpx", "httpcore", "litellm", "LiteLLM", "LiteLLM Router", "asyncio"]:
    logging.getLogger(logger_name).setLevel(logging.ERROR)

from dotenv import load_dotenv  # noqa: E402 - must be after logging config

load_dotenv()


def build_overrides(args: argparse.Namespace) -> dict:
    """Map CLI flags onto RunConfig overrides."""
    return {
        "enable_compliance": not args.no_compliance,
        "enable_deals": not args.no_deals,
        "enable_trading": not args.no_trading,
        "enable_esg": not args.no_esg,
        "auto_confirm_low_risk_items": args.auto_confirm,
        "confidence_threshold": args.threshold,
        "fiscal_year_end": args.fiscal_year_end,
    }


async def run(
    document_path: str,
    extraction_path: str | None = None,
    overrides: dict | None = None,
    output_dir: str = "outputs",
    verbose: bool = False,
) -> dict | None:
    """Run lifecycle automation for one document against in-memory stores.

    Args:
        document_path: JSON file with the document record
            (id, organization_id, processing_status, raw_text).
        extraction_path: Saved extraction JSON. When omitted the document
            text is sent to the LLM.
        overrides: RunConfig overrides.
        output_dir: Directory for output files.
        verbose: Verbose output.

    Returns:
        The lifecycle result as a dict, or None when the run was rejected
        or failed.
    """
    # Import here so --help works without the full dependency stack
    from lifecycle.core.errors import AutomationStatus, LifecycleError
    from lifecycle.core.extraction import LLMExtractor, StaticExtractor
    from lifecycle.core.pipeline_logger import get_logger
    from lifecycle.core.stores import DocumentRecord, DomainStores, InMemoryDocumentStore
    from lifecycle.orchestrator import LifecycleOrchestrator

    document_path = Path(document_path)
    if not document_path.exists():
        print(f"Error: File not found: {document_path}")
        return None

    try:
        document = DocumentRecord.model_validate_json(document_path.read_text(encoding="utf-8"))
    except ValidationError as e:
        print(f"Error: {document_path} is not a valid document record:\n{e}")
        return None

    if extraction_path:
        try:
            extractor = StaticExtractor.from_file(extraction_path)
        except LifecycleError as e:
            print(f"Error: {e}")
            return None
        source = f"saved extraction ({Path(extraction_path).name})"
    else:
        if not os.environ.get(API_KEY_ENV_VAR):
            print(f"Error: {API_KEY_ENV_VAR} not set")
            if LLM_PROVIDER == "azure":
                print("For Azure, set: AZURE_API_KEY, AZURE_API_BASE, AZURE_API_VERSION")
            else:
                print("Set it in .env or export OPENROUTER_API_KEY=..., or pass --extraction")
            return None
        extractor = LLMExtractor()
        source = EXTRACTION_MODEL.replace("openrouter/", "").replace("azure/", "")

    output_dir = Path(output_dir)
    json_dir = output_dir / "json"
    logs_dir = output_dir / "logs"
    json_dir.mkdir(parents=True, exist_ok=True)
    logs_dir.mkdir(parents=True, exist_ok=True)

    overrides = overrides or {}
    enabled = [m for m in ("compliance", "deals", "trading", "esg") if overrides.get(f"enable_{m}") is not False]

    print(f"\n{'='*50}")
    print(f"Automating: {document.id}")
    print(f"{'='*50}")
    print(f"  Extraction: {source}")
    print(f"  Modules: {', '.join(enabled) or 'none'}")
    print(f"  Auto-confirm: {'ON' if overrides.get('auto_confirm_low_risk_items') else 'OFF'}")
    print()

    documents = InMemoryDocumentStore([document])
    orchestrator = LifecycleOrchestrator(
        documents=documents,
        extractor=extractor,
        stores=DomainStores.in_memory(),
        logger=get_logger(verbose=verbose, log_dir=logs_dir),
    )

    try:
        result = await orchestrator.start_automation(document.id, overrides)
    except (LifecycleError, ValidationError) as e:
        print(f"\n[REJECTED] {e}")
        return None

    result_dict = result.model_dump(mode="json")
    output_file = json_dir / f"{document.id}.json"
    with open(output_file, "w") as f:
        json.dump(result_dict, f, indent=2, ensure_ascii=False)
    print(f"\n[OUTPUT] {output_file}")

    if result.automation_status == AutomationStatus.FAILED:
        for error in result.errors:
            print(f"[ERROR] {error}")
        return None
    return result_dict


def main():
    parser = argparse.ArgumentParser(
        description="Loan Document Lifecycle Automation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lifecycle run docs/facility.json --extraction docs/facility_extraction.json
  lifecycle run docs/facility.json --no-trading --no-esg
  lifecycle run docs/facility.json --auto-confirm --threshold 0.9
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run automation for one document")
    run_parser.add_argument("document", help="Path to document record JSON")
    run_parser.add_argument(
        "--extraction",
        default=None,
        help="Saved extraction JSON to use instead of calling the LLM",
    )
    run_parser.add_argument("--no-compliance", action="store_true", help="Skip the compliance module")
    run_parser.add_argument("--no-deals", action="store_true", help="Skip the deals module")
    run_parser.add_argument("--no-trading", action="store_true", help="Skip the trading module")
    run_parser.add_argument("--no-esg", action="store_true", help="Skip the ESG module")
    run_parser.add_argument(
        "--auto-confirm",
        action="store_true",
        help="Confirm records that do not need review instead of leaving them pending",
    )
    run_parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help=f"Review confidence threshold (default: {ConfidenceThresholds.DEFAULT_REVIEW})",
    )
    run_parser.add_argument(
        "--fiscal-year-end",
        default=None,
        metavar="MM-DD",
        help="Borrower fiscal year end for the compliance calendar (default: 12-31)",
    )
    run_parser.add_argument(
        "-o", "--output",
        default="outputs",
        help="Output directory (default: outputs)",
    )
    run_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with DEBUG level logging",
    )

    args = parser.parse_args()

    result = asyncio.run(run(
        document_path=args.document,
        extraction_path=args.extraction,
        overrides=build_overrides(args),
        output_dir=args.output,
        verbose=args.verbose,
    ))

    sys.exit(0 if result else 1)


if __name__ == "__main__":
    main()
