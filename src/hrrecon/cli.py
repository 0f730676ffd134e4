"""hrrecon CLI entry points.

Maps argparse commands onto the reconciliation pipeline. Exit codes:
0 success, 1 when a file failed to classify or parse or a persistence batch
failed, 2 on fatal errors.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from hrrecon.core.config import AppSettings
from hrrecon.core.exceptions import HRReconError
from hrrecon.core.logging_config import configure_logging, get_logger
from hrrecon.core.protocols import IFileStore
from hrrecon.ingest.classifier import FormatClassifier
from hrrecon.ingest.narrative_rules import NarrativeRuleset, load_ruleset
from hrrecon.models.pipeline import ClassifiedFile
from hrrecon.orchestrator.pipeline_executor import ReconciliationPipeline, RunResult
from hrrecon.persistence import create_persistence, create_report_store
from hrrecon.persistence.local_backend import LocalFileStore
from hrrecon.transform.org_resolver import OrganizationResolver
from hrrecon.validator.reporter import report_summary

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--org-mapping", help="Organization mapping JSON (overrides HRRECON_ORG_MAPPING_PATH)")
    common.add_argument("--ruleset", help="Narrative label ruleset JSON")
    common.add_argument("--persist", action="store_true", help="Upsert merged records to the employee store")
    common.add_argument("--report-dir", help="Write the run report to this local directory")
    common.add_argument("--log-level", default=None, help="Logging level (default: HRRECON_LOG_LEVEL or INFO)")

    parser = argparse.ArgumentParser(prog="hrrecon", description="Personnel export reconciliation")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_file = subparsers.add_parser("parse-file", parents=[common], help="Parse and normalize one file")
    parse_file.add_argument("path", help="Source export file")

    process_org = subparsers.add_parser("process-org", parents=[common], help="Reconcile one organization")
    process_org.add_argument("directory", help="Directory of source exports")
    process_org.add_argument("code", help="Organization code (file prefix)")

    process_all = subparsers.add_parser("process-all", parents=[common], help="Reconcile every organization")
    process_all.add_argument("directory", help="Directory of source exports")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the hrrecon CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = _build_settings(args)
    configure_logging(settings.log_level)
    try:
        if args.command == "parse-file":
            return _run_parse_file(settings, args)
        if args.command == "process-org":
            return _run_process(settings, args, organization=args.code)
        if args.command == "process-all":
            return _run_process(settings, args, organization=None)
    except HRReconError as exc:
        logger.error("run_aborted", command=args.command, error=str(exc))
        print(f"hrrecon: {exc}", file=sys.stderr)
        return EXIT_FATAL
    parser.error(f"Unsupported command: {args.command}")
    return EXIT_FATAL


def _build_settings(args: argparse.Namespace) -> AppSettings:
    settings = AppSettings()
    updates: dict[str, Any] = {}
    if args.log_level:
        updates["log_level"] = args.log_level
    if args.org_mapping:
        updates["organizations"] = settings.organizations.model_copy(
            update={"source": "file", "mapping_path": args.org_mapping}
        )
    if args.report_dir:
        updates["report"] = settings.report.model_copy(update={"target": "local", "local_dir": args.report_dir})
    return settings.model_copy(update=updates) if updates else settings


def _ruleset(args: argparse.Namespace) -> NarrativeRuleset | None:
    return load_ruleset(args.ruleset) if args.ruleset else None


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))


def _run_parse_file(settings: AppSettings, args: argparse.Namespace) -> int:
    path = Path(args.path)
    if not path.is_file():
        raise HRReconError(f"No such file: {path}")
    outcome = FormatClassifier(settings.classifier, settings.parser).classify_file(path)
    if not isinstance(outcome, ClassifiedFile):
        print(f"hrrecon: cannot classify {path}: {outcome.reason}", file=sys.stderr)
        return EXIT_FAILURES

    pipeline = ReconciliationPipeline(settings, ruleset=_ruleset(args))
    result = pipeline.parse_one_file(outcome)
    _print_json({
        "file": outcome.model_dump(mode="json"),
        "stats": result.stats.model_dump(mode="json"),
        "fragments": [f.model_dump(mode="json") for f in result.fragments],
    })
    return EXIT_FAILURES if result.stats.failed else EXIT_OK


def _run_process(settings: AppSettings, args: argparse.Namespace, organization: str | None) -> int:
    persistence = create_persistence(settings) if args.persist or settings.organizations.source == "dynamodb" else None
    if settings.organizations.source == "dynamodb" and persistence is not None:
        resolver = OrganizationResolver.from_store(persistence.organization_store)
    else:
        resolver = OrganizationResolver.from_file(settings.organizations.mapping_path)

    report_store: IFileStore = (
        LocalFileStore(args.report_dir) if args.report_dir else create_report_store(settings)
    )
    pipeline = ReconciliationPipeline(
        settings,
        resolver=resolver,
        employee_store=persistence.employee_store if persistence is not None and args.persist else None,
        report_store=report_store,
        ruleset=_ruleset(args),
    )
    if organization is None:
        result = pipeline.process_all(args.directory, persist=args.persist)
    else:
        result = pipeline.process_organization(args.directory, organization, persist=args.persist)
    return _finish(result)


def _finish(result: RunResult) -> int:
    summary = report_summary(result.report)
    summary["report_path"] = result.report_path
    _print_json(summary)
    return EXIT_OK if result.succeeded else EXIT_FAILURES


if __name__ == "__main__":
    sys.exit(main())
