"""CLI entry point for tmux-workshop."""
from __future__ import annotations

import argparse
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Sequence

from . import metrics
from .config import AppConfig
from .config import load_app_config
from .nudge import NudgeDelivery
from .plan import ApplyPlan
from .plan import WindowStatus
from .service import WorkshopService

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path("workshop.yaml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tmux-workshop", description="Reconcile workshop tmux sessions")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(os.getenv("TMUX_WORKSHOP_CONFIG", str(DEFAULT_CONFIG))),
        help="Path to workshop config YAML",
    )
    parser.add_argument("--log-level", type=str, default=os.getenv("LOG_LEVEL", "WARNING"))
    parser.add_argument("--metrics-port", type=int, default=None, help="Optional Prometheus exporter port")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("plan", help="Show the actions needed to converge the session")

    apply_cmd = sub.add_parser("apply", help="Reconcile the tmux session with the workshop")
    apply_cmd.add_argument("--yes", action="store_true", help="Apply without confirmation")

    sub.add_parser("enrich", help="Apply key bindings, pane titles and window flags")

    status_cmd = sub.add_parser("status", help="Show observed windows of a session")
    status_cmd.add_argument("--session", default=None, help="Session name (default: workshop name)")

    sub.add_parser("connect", help="Attach to the workshop session")

    nudge_cmd = sub.add_parser("nudge", help="Type a message into a pane and submit it")
    nudge_cmd.add_argument("target", help="tmux target, e.g. workshop:bench.1")
    nudge_cmd.add_argument("message", help="Text to deliver")

    return parser


def format_plan(plan: ApplyPlan, workshop_id: str) -> str:
    lines = [f"tmux-workshop apply {workshop_id}"]
    state = "exists" if plan.session_exists else "will create"
    lines.append(f"Session: {plan.session_name} ({state})")
    lines.extend(format_window(status) for status in plan.window_summary)
    if plan.actions:
        lines.append("")
        lines.append("Actions:")
        for idx, action in enumerate(plan.actions, start=1):
            lines.append(f"  {idx}. [{action.type.value}] {action.description}")
    return "\n".join(lines)


def format_window(status: WindowStatus) -> str:
    if status.is_overflow:
        if status.pane_count and status.dead_panes == status.pane_count:
            return f"Window: {status.name} ({status.dead_panes} dead panes) -> KILL"
        if status.dead_panes:
            return f"Window: {status.name} ({status.pane_count} panes, {status.dead_panes} dead) -> PRUNE"
        return f"Window: {status.name} ({status.pane_count} panes)"
    if status.healthy:
        return f"Window: {status.name} ({status.pane_count} panes, healthy)"
    return f"Window: {status.name} ({status.pane_count} panes, {status.dead_panes} dead)"


def cmd_plan(service: WorkshopService) -> None:
    plan = service.plan()
    print(format_plan(plan, service.workshop.id))


def cmd_apply(service: WorkshopService, args: argparse.Namespace) -> None:
    plan = service.plan()
    print(format_plan(plan, service.workshop.id))
    if not plan.actions:
        print("\nNothing to do.")
        return

    outcome = service.apply(plan=plan, confirm=None if args.yes else _confirm)
    if not outcome.applied:
        print("Canceled.")
        return
    print("\nApplied successfully")
    print(f"  Attach with: tmux-workshop --config {args.config} connect")


def cmd_enrich(service: WorkshopService) -> None:
    session_name = service.enrich()
    print(f"Applied enrichment to: {session_name}")
    print("  - Global key bindings")
    print("  - Pane titles (from @pane_role or pane position)")
    print("  - Window flag @workshop_enriched")


def cmd_status(service: WorkshopService, args: argparse.Namespace) -> None:
    statuses = service.session_status(args.session)
    if not statuses:
        print("Session has no windows")
        return
    for status in statuses:
        print(format_window(status))


def cmd_connect(service: WorkshopService) -> None:
    session_name = service.workshop.session_name
    if not service.adapter.session_exists(session_name):
        raise ValueError(f"no tmux session found for {service.workshop.id}; run: tmux-workshop apply")
    tmux_bin = service.config.tmux.bin
    tmux_path = shutil.which(tmux_bin)
    if tmux_path is None:
        raise ValueError(f"{tmux_bin} not found on PATH")
    argv = [tmux_bin]
    if service.config.tmux.socket and service.config.tmux.socket != "default":
        argv += ["-L", service.config.tmux.socket]
    argv += ["attach-session", "-t", f"={session_name}"]
    os.execv(tmux_path, argv)


def cmd_nudge(service: WorkshopService, args: argparse.Namespace) -> None:
    delivery = NudgeDelivery.from_config(service.adapter, service.config.nudge)
    delivery.nudge(args.target, args.message)
    print(f"Delivered message to {args.target}")


def _confirm(plan: ApplyPlan) -> bool:  # noqa: ARG001 - plan already printed
    response = input("\nApply? [y/n] ").strip().lower()
    return response in {"y", "yes"}


def _load_config(args: argparse.Namespace) -> AppConfig:
    path: Path = args.config
    if path.exists():
        return load_app_config(path)
    if args.command == "status" and args.session:
        return AppConfig()
    raise ValueError(f"config file not found: {path}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = _load_config(args)
        metrics_port = args.metrics_port or config.metrics_port
        if metrics_port:
            metrics.start_server(metrics_port)
        service = WorkshopService(config)
        if args.command == "plan":
            cmd_plan(service)
        elif args.command == "apply":
            cmd_apply(service, args)
        elif args.command == "enrich":
            cmd_enrich(service)
        elif args.command == "status":
            cmd_status(service, args)
        elif args.command == "connect":
            cmd_connect(service)
        elif args.command == "nudge":
            cmd_nudge(service, args)
        else:  # pragma: no cover - argparse restricts choices
            parser.print_help()
            return 1
        return 0
    except Exception as exc:  # pragma: no cover - CLI catch-all
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
