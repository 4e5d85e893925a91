"""supplier-eval CLI - deterministic evaluation runs over an opportunity fixture.

Usage:
    supplier-eval compare --input PATH
    supplier-eval matrix --input PATH [--format json|csv] [--category C]
        [--only-differentiators] [--only-failed-or-partial] [--search TERM]
        [--supplier ID ...]
    supplier-eval readiness --input PATH [--supplier ID]

Fixture format (JSON)::

    {
      "tenant_id": "cli",                      (optional)
      "opportunity_id": "opp-1",
      "requirements": [{"requirement_id": "R1", "title": "...", ...}],
      "evaluation_matrix": [{"criterion_id": "pricingCompetitiveness", "weight": 40}],
      "responses": [{"supplier_id": "s1", "submitted": true, "extraction": {...}}]
    }

Exit codes:
    0: Success
    1: Internal error (unexpected)
    2: Invalid input, invalid configuration or an evaluation error (no data,
       unknown supplier, bad filters)
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from supplier_eval.audit.sink import InMemoryAuditSink
from supplier_eval.config import ConfigError, load_engine_config
from supplier_eval.errors import EvaluationError
from supplier_eval.models.extraction import parse_extraction
from supplier_eval.models.matrix import MatrixFilters
from supplier_eval.models.opportunity import (
    EvaluationCriterion,
    Requirement,
    RequirementCategory,
    SupplierResponse,
)
from supplier_eval.persistence.memory import InMemoryEvaluationSource, InMemoryEvaluationStore
from supplier_eval.services.evaluation import EvaluationService

DEFAULT_CLI_TENANT = "cli"


class FixtureError(ValueError):
    """Raised when the opportunity fixture is unreadable or malformed."""

    pass


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _make_error_result(code: str, message: str, details: Any = None) -> dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}


def _read_input(input_path: str | None) -> Any:
    """Read and parse JSON from a file, or stdin when no path is given.

    Raises:
        FixtureError: Missing file, empty input or invalid JSON.
    """
    try:
        if input_path:
            with open(input_path, encoding="utf-8") as f:
                content = f.read()
        else:
            content = sys.stdin.read()
    except FileNotFoundError as e:
        raise FixtureError(f"File not found: {input_path}") from e
    except OSError as e:
        raise FixtureError(f"Cannot read input: {e}") from e

    if not content.strip():
        raise FixtureError("Empty input")
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise FixtureError(f"Invalid JSON: {e}") from e


def load_fixture(data: Any) -> tuple[InMemoryEvaluationSource, str, str]:
    """Register a fixture's opportunity in a fresh in-memory source.

    Extraction payloads go through ``parse_extraction``, so malformed
    sections degrade to unknown instead of failing the load.

    Returns:
        Tuple of (source, tenant_id, opportunity_id).

    Raises:
        FixtureError: Missing opportunity id or malformed requirements/responses.
    """
    if not isinstance(data, dict):
        raise FixtureError("Fixture must be a JSON object")
    opportunity_id = data.get("opportunity_id")
    if not isinstance(opportunity_id, str) or not opportunity_id:
        raise FixtureError("Fixture is missing 'opportunity_id'")
    tenant_id = str(data.get("tenant_id") or DEFAULT_CLI_TENANT)

    try:
        requirements = [Requirement.model_validate(r) for r in data.get("requirements") or []]
        raw_matrix = data.get("evaluation_matrix")
        criteria = (
            [EvaluationCriterion.model_validate(c) for c in raw_matrix]
            if raw_matrix is not None
            else None
        )
        responses = [
            SupplierResponse(
                supplier_id=r["supplier_id"],
                supplier_name=r.get("supplier_name", ""),
                submitted=bool(r.get("submitted", False)),
                extraction=parse_extraction(r.get("extraction"), supplier_id=r["supplier_id"]),
            )
            for r in data.get("responses") or []
        ]
    except (PydanticValidationError, KeyError, TypeError, AttributeError) as e:
        raise FixtureError(f"Malformed fixture: {e}") from e

    source = InMemoryEvaluationSource()
    source.register_opportunity(tenant_id, opportunity_id, requirements, criteria=criteria)
    for response in responses:
        source.put_response(tenant_id, opportunity_id, response)
    return source, tenant_id, opportunity_id


def _build_service(source: InMemoryEvaluationSource) -> EvaluationService:
    return EvaluationService(
        source=source,
        store=InMemoryEvaluationStore(),
        audit_sink=InMemoryAuditSink(),
        config=load_engine_config(),
    )


def cmd_compare(args: argparse.Namespace) -> int:
    source, tenant_id, opportunity_id = load_fixture(_read_input(args.input))
    breakdowns = _build_service(source).run_comparison(tenant_id, opportunity_id)
    _output_json(
        {
            "opportunity_id": opportunity_id,
            "breakdowns": [b.model_dump(mode="json") for b in breakdowns],
        }
    )
    return 0


def cmd_matrix(args: argparse.Namespace) -> int:
    source, tenant_id, opportunity_id = load_fixture(_read_input(args.input))
    filters = MatrixFilters(
        category=RequirementCategory(args.category) if args.category else None,
        only_differentiators=args.only_differentiators,
        only_failed_or_partial=args.only_failed_or_partial,
        search_term=args.search,
        supplier_ids=args.supplier,
    )
    service = _build_service(source)
    if args.format == "csv":
        sys.stdout.write(service.export_scoring_matrix(tenant_id, opportunity_id, filters))
        return 0
    matrix = service.get_scoring_matrix(tenant_id, opportunity_id, filters=filters)
    _output_json(matrix.model_dump(mode="json"))
    return 0


def cmd_readiness(args: argparse.Namespace) -> int:
    source, tenant_id, opportunity_id = load_fixture(_read_input(args.input))
    service = _build_service(source)
    if args.supplier:
        result = service.classify_readiness(tenant_id, opportunity_id, args.supplier)
        _output_json(result.model_dump(mode="json"))
        return 0
    batch = service.classify_all_readiness(tenant_id, opportunity_id)
    _output_json(batch.model_dump(mode="json"))
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="supplier-eval",
        description="Supplier evaluation and scoring engine CLI",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    def add_input(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--input",
            default=None,
            metavar="PATH",
            help="Path to the opportunity fixture JSON (reads stdin if omitted)",
        )

    compare_parser = subparsers.add_parser(
        "compare", help="Rank suppliers by weighted composite score"
    )
    add_input(compare_parser)

    matrix_parser = subparsers.add_parser(
        "matrix", help="Build the requirement-level scoring matrix"
    )
    add_input(matrix_parser)
    matrix_parser.add_argument("--format", choices=("json", "csv"), default="json")
    matrix_parser.add_argument(
        "--category", choices=[c.value for c in RequirementCategory], default=None
    )
    matrix_parser.add_argument("--only-differentiators", action="store_true", default=False)
    matrix_parser.add_argument("--only-failed-or-partial", action="store_true", default=False)
    matrix_parser.add_argument("--search", default=None, metavar="TERM")
    matrix_parser.add_argument(
        "--supplier",
        action="append",
        default=None,
        metavar="ID",
        help="Restrict the view to this supplier (repeatable)",
    )

    readiness_parser = subparsers.add_parser(
        "readiness", help="Classify supplier readiness to proceed"
    )
    add_input(readiness_parser)
    readiness_parser.add_argument(
        "--supplier", default=None, metavar="ID", help="Single supplier (default: all)"
    )

    return parser


_COMMANDS = {
    "compare": cmd_compare,
    "matrix": cmd_matrix,
    "readiness": cmd_readiness,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Internal error (unexpected)
        2: Invalid input, invalid configuration or evaluation error
    """
    try:
        parser = create_parser()
        args = parser.parse_args(argv)

        if args.command is None:
            parser.print_help()
            return 0

        return _COMMANDS[args.command](args)

    except FixtureError as e:
        _output_json(_make_error_result("INVALID_FIXTURE", str(e)))
        return 2
    except ConfigError as e:
        _output_json(_make_error_result("INVALID_CONFIG", str(e)))
        return 2
    except EvaluationError as e:
        _output_json(_make_error_result(e.code, e.message, e.details))
        return 2
    except Exception as e:
        # Fail-closed: unexpected errors return exit code 1
        _output_json(_make_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
