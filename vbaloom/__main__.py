import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .core.pipeline import PipelineError, StepRegistry, run_pipeline

LLM_STRATEGIES = ("llm", "full")


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.ERROR)
    logging.getLogger("uvicorn").setLevel(logging.INFO)


logger = logging.getLogger(__name__)


def _parse_strategies(pairs) -> dict:
    """``["extract=mock", "generate=mechanical"]`` -> ``{step: strategy}``."""
    config = {}
    for pair in pairs or []:
        step, sep, strategy = pair.partition("=")
        if not sep or not step or not strategy:
            raise argparse.ArgumentTypeError(f"Expected STEP=STRATEGY, got {pair!r}")
        config[step.strip()] = strategy.strip()
    return config


def _configure_llm(settings) -> None:
    from .core.model import configure_llm
    try:
        configure_llm(settings)
    except (ImportError, ValueError) as e:
        logger.warning(f"LLM not configured ({e}); only non-LLM strategies will work")


def _needs_llm(config: dict) -> bool:
    """True when any step will run an LLM-backed strategy."""
    for step in StepRegistry.list_steps():
        if config.get(step["name"], step["default_strategy"]) in LLM_STRATEGIES:
            return True
    return False


def _read_json(path: str | None):
    if not path:
        return None
    with open(path, "r") as f:
        return json.load(f)


def cmd_run(args, settings) -> int:
    """Run the pipeline over one VBA source file and print the result."""
    source_path = Path(args.source)
    vba_source = source_path.read_text(encoding=args.encoding)
    module_name = args.module_name or source_path.stem

    try:
        config = {**settings.pipeline.default_strategies, **_parse_strategies(args.strategy)}
    except argparse.ArgumentTypeError as e:
        logger.error(str(e))
        return 2

    if _needs_llm(config):
        _configure_llm(settings)

    initial_input = {
        "vba_source": vba_source,
        "module_name": module_name,
        "app_objects": _read_json(args.app_objects) or {},
    }
    intents = _read_json(args.intents)
    if intents is not None:
        initial_input["intents"] = intents

    try:
        result = asyncio.run(run_pipeline(initial_input, {}, config))
    except PipelineError as e:
        logger.error(str(e))
        return 2
    output = result.to_dict()

    if args.output:
        generate = result.step("generate")
        if generate is not None:
            Path(args.output).write_text(generate.result["source"], encoding="utf-8")
            logger.info(f"Wrote {args.output}")

    print(json.dumps(output, indent=2, default=str))
    return 0 if result.status == "complete" else 1


def cmd_serve(args, settings) -> int:
    """Start the API server."""
    from .api.app import create_app
    from .core.db import ModuleStore, get_database_manager

    db_manager = get_database_manager()
    db_manager.create_tables()
    _configure_llm(settings)

    app = create_app(module_store=ModuleStore(db_manager), settings=settings)

    # Launch with uvicorn
    import uvicorn

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    logger.info(f"Starting FastAPI server on http://{host}:{port}")
    print(f"\n  VBALoom is running at: http://localhost:{port}")
    print(f"  API docs at: http://localhost:{port}/docs\n")

    uvicorn.run(app, host=host, port=port, log_level=args.log_level.lower())
    return 0


def main(argv=None) -> int:
    """Main entry point for VBALoom."""
    parser = argparse.ArgumentParser(description="VBALoom - VBA to ClojureScript translation pipeline")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to vbaloom.yaml (default: $VBALOOM_CONFIG or config/vbaloom.yaml)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Translate one VBA module")
    run_parser.add_argument("--source", required=True, help="VBA source file (.bas/.cls)")
    run_parser.add_argument("--module-name", default=None, help="Module name (default: file stem)")
    run_parser.add_argument(
        "--strategy",
        action="append",
        metavar="STEP=STRATEGY",
        help="Strategy override, repeatable (e.g. extract=mock)"
    )
    run_parser.add_argument("--intents", default=None, help="JSON file with pre-extracted intents")
    run_parser.add_argument("--app-objects", default=None, help="JSON file with {tables, queries, forms, reports}")
    run_parser.add_argument("--output", "-o", default=None, help="Write generated ClojureScript here")
    run_parser.add_argument("--encoding", default="utf-8", help="Source file encoding")

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", type=str, default=None, help="Bind host")
    serve_parser.add_argument("--port", type=int, default=None, help="Port for the API server")

    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    from .setting import load_settings
    settings = load_settings(args.config)

    if args.command == "run":
        return cmd_run(args, settings)
    return cmd_serve(args, settings)


if __name__ == "__main__":
    sys.exit(main())
