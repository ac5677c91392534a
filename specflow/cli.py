"""
cli.py - Command line interface for the session engine.

Usage:
    specflow create context_design --component comp-accounts --project proj-1
    specflow next <session_id>
    specflow submit <session_id> <interaction_id> --file result.json
    specflow show <session_id>
    specflow list [--status active]
    specflow drive <session_id> [--max-cycles 50]
    specflow serve [--host 127.0.0.1] [--port 5001]

Sessions are stored under --data-dir (default .specflow/sessions); the
project catalog is read from --catalog (YAML).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from specflow.config.runtime_config import EngineSettings
from specflow.runtime.agents import AgentFactory
from specflow.runtime.catalog import InMemoryProjectCatalog
from specflow.runtime.engine import SessionEngine
from specflow.runtime.errors import SpecflowError
from specflow.runtime.runner import SessionDriver, SubprocessRunner
from specflow.runtime.steps import StepServices
from specflow.runtime.storage import JsonFileSessionStore
from specflow.runtime.types import Scope, session_to_dict
from specflow.runtime.workflows import WORKFLOW_TYPES, build_workflows

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(".specflow") / "sessions"


def build_engine(
    data_dir: Path,
    catalog_path: Optional[Path] = None,
    root: Optional[Path] = None,
) -> SessionEngine:
    """Wire a file-backed engine with the default workflows."""
    settings = EngineSettings.from_config()
    store = JsonFileSessionStore(data_dir)
    if catalog_path is not None:
        catalog = InMemoryProjectCatalog.from_yaml(catalog_path)
    else:
        catalog = InMemoryProjectCatalog()
    services = StepServices(
        store=store,
        catalog=catalog,
        agent_factory=AgentFactory(default_implementation=settings.default_agent),
        settings=settings,
        root=root,
    )
    return SessionEngine(store, build_workflows(services), settings)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="specflow",
        description="Drive design workflows one command at a time",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--data-dir", type=Path, default=DEFAULT_DATA_DIR, help="Session storage directory")
    parser.add_argument("--catalog", type=Path, default=None, help="Project catalog YAML")
    parser.add_argument("--root", type=Path, default=None, help="Working directory for commands")
    parser.add_argument("--account", default=None, help="Account id for the caller scope")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    create_parser = subparsers.add_parser("create", help="Create a session")
    create_parser.add_argument("type", choices=WORKFLOW_TYPES, help="Workflow type")
    create_parser.add_argument("--component", required=True, help="Component id")
    create_parser.add_argument("--project", default=None, help="Project id")
    create_parser.add_argument("--agent", default=None, help="Agent backend")
    create_parser.add_argument("--environment", default=None, help="local, cli or vscode")
    create_parser.add_argument("--mode", default=None, help="manual, auto or agentic")

    next_parser = subparsers.add_parser("next", help="Issue the next command")
    next_parser.add_argument("session_id")

    submit_parser = subparsers.add_parser("submit", help="Submit an interaction result")
    submit_parser.add_argument("session_id")
    submit_parser.add_argument("interaction_id")
    submit_parser.add_argument("--file", type=Path, default=None, help="Result JSON (default: stdin)")

    show_parser = subparsers.add_parser("show", help="Show a session")
    show_parser.add_argument("session_id")

    list_parser = subparsers.add_parser("list", help="List sessions")
    list_parser.add_argument("--status", default=None)
    list_parser.add_argument("--parent", default=None, help="Parent session id")

    drive_parser = subparsers.add_parser("drive", help="Run a session to completion locally")
    drive_parser.add_argument("session_id")
    drive_parser.add_argument("--max-cycles", type=int, default=None)

    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=5001, help="Port to bind to")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 2

    engine = build_engine(args.data_dir, args.catalog, args.root)
    scope = Scope(account_id=args.account, active_project_id=getattr(args, "project", None))

    try:
        if args.command == "create":
            attrs: Dict[str, Any] = {"type": args.type, "component_id": args.component}
            if args.project:
                attrs["project_id"] = args.project
            if args.agent:
                attrs["agent"] = args.agent
            if args.environment:
                attrs["environment"] = args.environment
            if args.mode:
                attrs["execution_mode"] = args.mode
            _print_json(session_to_dict(engine.create_session(scope, attrs)))

        elif args.command == "next":
            session = engine.next_command(scope, args.session_id)
            pending = session.pending_interaction
            if pending is None:
                _print_json({"session_id": session.id, "status": session.status.value})
            else:
                payload = {"interaction_id": pending.id}
                payload.update(session_to_dict(session)["interactions"][-1]["command"])
                _print_json(payload)

        elif args.command == "submit":
            raw_text = args.file.read_text(encoding="utf-8") if args.file else sys.stdin.read()
            session = engine.handle_result(scope, args.session_id, args.interaction_id, json.loads(raw_text))
            _print_json(session_to_dict(session))

        elif args.command == "show":
            _print_json(session_to_dict(engine.get_session(scope, args.session_id)))

        elif args.command == "list":
            sessions = engine.list_sessions(scope, status=args.status, parent_session_id=args.parent)
            for session in sessions:
                print(f"{session.id}  {session.type:<28} {session.status.value}")

        elif args.command == "drive":
            runner = SubprocessRunner(cwd=args.root, timeout=engine.settings.timeout_seconds)
            session = SessionDriver(engine, runner).drive(scope, args.session_id, args.max_cycles)
            print(f"Session {session.id}: {session.status.value}")
            if session.error_message:
                print(f"  Error: {session.error_message}")
            return 0 if session.status.value == "complete" else 1

        elif args.command == "serve":
            import uvicorn

            from specflow.api import create_app

            uvicorn.run(create_app(engine), host=args.host, port=args.port)

    except (SpecflowError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0
