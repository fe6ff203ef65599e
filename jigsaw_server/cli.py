"""
Jigsaw Server CLI
Command-line interface for starting Jigsaw Server or processing a case file
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import uvicorn
from pydantic import ValidationError

from jigsaw_server.config.logging_config import configure_logging
from jigsaw_server.config.settings import settings

logger = logging.getLogger(__name__)


def _serve(args: argparse.Namespace) -> int:
    logger.info(f"Starting Jigsaw Server on {args.host}:{args.port}")

    uvicorn.run(
        "jigsaw_server.app_factory:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level
    )
    return 0


def _process(args: argparse.Namespace) -> int:
    # Imported here so `serve` does not build pipeline engines.
    from jigsaw_server.api.routes.pipeline import ProcessRequest
    from jigsaw_server.services.identity import SeededIdentifierSource
    from jigsaw_server.services.orchestrator import PipelineOrchestrator

    try:
        payload = json.loads(Path(args.batch).read_text(encoding="utf-8"))
        request = ProcessRequest.model_validate(payload)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Cannot read case batch {args.batch}: {e}")
        return 2

    identifiers = SeededIdentifierSource(args.seed) if args.seed is not None else None
    orchestrator = PipelineOrchestrator(identifiers=identifiers)
    result = asyncio.run(
        orchestrator.process(
            request.inputs,
            request.case_id,
            request.case_type,
            request.title,
            request.context,
        )
    )

    output = result.model_dump_json(indent=2)
    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        logger.info(f"Wrote result for case {result.case_id} to {args.output}")
    else:
        sys.stdout.write(output + "\n")
    return 0


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(description="Jigsaw Server - Verified-Fragment Reconstruction Pipeline")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL.lower(), choices=["debug", "info", "warning", "error"], help="Log level")
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.HOST, help=f"Host to bind (default: {settings.HOST})")
    serve.add_argument("--port", type=int, default=settings.PORT, help=f"Port to bind (default: {settings.PORT})")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve.set_defaults(handler=_serve)

    process = subparsers.add_parser("process", help="Process a case batch JSON file")
    process.add_argument("batch", help="JSON file with inputs, case_id, case_type, title and context")
    process.add_argument("--output", "-o", help="Write the result here instead of stdout")
    process.add_argument("--seed", type=int, help="Seed identifiers for a reproducible run")
    process.set_defaults(handler=_process)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command is None:
        # Bare invocation starts the server.
        args = parser.parse_args(["--log-level", args.log_level, "serve"])

    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
