"""Operator console for the CyberShield local store."""

import argparse
import logging
import sys
from datetime import timedelta
from pathlib import Path

from .config import Config, load_config
from .errors import StoreError
from .evidence import load_evidence
from .reset import ResetScope
from .store import Store

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, log_file: Path | None = None) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def open_store(args: argparse.Namespace) -> tuple[Store, Config]:
    config_path: Path = args.config
    if not config_path.exists():
        logger.error("Configuration file not found: %s", config_path)
        sys.exit(1)

    config = load_config(config_path)
    logger.debug("Using storage at %s", config.storage_dir)
    return Store.from_config(config), config


def cmd_tickets(args: argparse.Namespace) -> None:
    """List tickets, pending first."""
    store, _ = open_store(args)
    tickets = store.tickets.for_review()
    print(f"{store.tickets.pending_count()} pending, {len(tickets)} total")
    for ticket in tickets:
        print(f"[{ticket.status}] {ticket.id}  {ticket.user_name}: {ticket.question}")
        if ticket.answer is not None:
            print(f"    -> {ticket.answer}")


def cmd_resolve(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    store.tickets.resolve(args.ticket_id, args.answer)


def cmd_delete_ticket(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    store.tickets.delete(args.ticket_id)


def cmd_block(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    store.blocked_users.block(args.name)


def cmd_unblock(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    store.blocked_users.unblock(args.name)


def cmd_blocked(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    for name in store.blocked_users.list():
        print(name)


def cmd_visitors(args: argparse.Namespace) -> None:
    """List visitors, marking those active recently."""
    store, config = open_store(args)
    window = timedelta(minutes=config.visitor_active_minutes)
    active = {v.username for v in store.visitors.active(window)}
    for visitor in store.visitors.recent():
        status = "ONLINE" if visitor.username in active else "offline"
        print(f"{visitor.username:<24} {visitor.last_seen:%Y-%m-%d %H:%M:%S}  {status}")


def cmd_broadcast(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    store.global_message.set(args.text)


def cmd_lockdown(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    if args.state != "status":
        store.lockdown.set(args.state == "on")
    print("Lockdown is ON" if store.lockdown.is_enabled() else "Lockdown is off")


def cmd_leaderboard(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    for position, profile in enumerate(store.detox.rank(), start=1):
        print(f"{position:>3}. {profile.name:<24} {profile.total_points:>6} pts  {profile.email}")


def cmd_logs(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    if args.email:
        logs = store.detox.logs_for(args.email)
    else:
        logs = sorted(store.detox.logs(), key=lambda log: log.timestamp, reverse=True)
    for log in logs:
        evidence = "screenshot" if log.image_base64 else "no screenshot"
        print(f"{log.id}  {log.date_str}  {log.email}  {log.hours:.1f}h  {log.points} pts  ({evidence})")


def cmd_join(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    profile = store.detox.login(args.email, args.name)
    print(f"{profile.name} <{profile.email}>: {profile.total_points} pts")


def cmd_submit(args: argparse.Namespace) -> None:
    store, config = open_store(args)
    evidence = None
    if args.evidence:
        evidence = load_evidence(
            args.evidence,
            max_bytes=config.max_evidence_bytes,
            max_side=config.evidence_max_side,
        )
    result = store.detox.submit(args.email, args.hours, evidence)
    print(f"+{result.points} pts, total {result.new_total}")


def cmd_correct(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    store.detox.correct(args.log_id, args.points)


def cmd_retract(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    store.detox.retract(args.log_id)


def cmd_set_points(args: argparse.Namespace) -> None:
    store, _ = open_store(args)
    store.detox.set_absolute(args.email, args.points)


def cmd_reset(args: argparse.Namespace) -> None:
    """Delete a group of collections."""
    if not args.yes:
        print(f"This deletes all {args.scope} data and cannot be undone. Re-run with --yes.")
        sys.exit(1)
    store, _ = open_store(args)
    removed = store.reset(args.scope)
    print(f"Removed {len(removed)} collections")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CyberShield local store console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cybershield-admin tickets                       Show tickets, pending first
  cybershield-admin resolve <id> "Answer"         Answer a ticket
  cybershield-admin broadcast "Quiz closes at 5"  Set the global message
  cybershield-admin broadcast ""                  Clear the global message
  cybershield-admin reset tickets --yes           Delete all tickets
""",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config.json"),
        help="Path to configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("tickets", help="List support tickets").set_defaults(func=cmd_tickets)

    resolve_parser = subparsers.add_parser("resolve", help="Answer a ticket")
    resolve_parser.add_argument("ticket_id")
    resolve_parser.add_argument("answer")
    resolve_parser.set_defaults(func=cmd_resolve)

    delete_parser = subparsers.add_parser("delete-ticket", help="Delete a ticket")
    delete_parser.add_argument("ticket_id")
    delete_parser.set_defaults(func=cmd_delete_ticket)

    block_parser = subparsers.add_parser("block", help="Block a user")
    block_parser.add_argument("name")
    block_parser.set_defaults(func=cmd_block)

    unblock_parser = subparsers.add_parser("unblock", help="Unblock a user")
    unblock_parser.add_argument("name")
    unblock_parser.set_defaults(func=cmd_unblock)

    subparsers.add_parser("blocked", help="List blocked users").set_defaults(func=cmd_blocked)
    subparsers.add_parser("visitors", help="List recent visitors").set_defaults(func=cmd_visitors)

    broadcast_parser = subparsers.add_parser(
        "broadcast", help="Set the global message (empty text clears it)"
    )
    broadcast_parser.add_argument("text", nargs="?", default="")
    broadcast_parser.set_defaults(func=cmd_broadcast)

    lockdown_parser = subparsers.add_parser("lockdown", help="Show or change lockdown mode")
    lockdown_parser.add_argument("state", choices=["on", "off", "status"])
    lockdown_parser.set_defaults(func=cmd_lockdown)

    subparsers.add_parser("leaderboard", help="Show detox ranking").set_defaults(
        func=cmd_leaderboard
    )

    logs_parser = subparsers.add_parser("logs", help="List detox logs")
    logs_parser.add_argument("--email")
    logs_parser.set_defaults(func=cmd_logs)

    join_parser = subparsers.add_parser("join", help="Create or rename a detox profile")
    join_parser.add_argument("email")
    join_parser.add_argument("name")
    join_parser.set_defaults(func=cmd_join)

    submit_parser = subparsers.add_parser("submit", help="Record today's screen time")
    submit_parser.add_argument("email")
    submit_parser.add_argument("hours", type=float)
    submit_parser.add_argument("--evidence", type=Path, help="Screenshot to attach")
    submit_parser.set_defaults(func=cmd_submit)

    correct_parser = subparsers.add_parser("correct", help="Change the points of one log")
    correct_parser.add_argument("log_id")
    correct_parser.add_argument("points", type=int)
    correct_parser.set_defaults(func=cmd_correct)

    retract_parser = subparsers.add_parser("retract", help="Delete a log and its points")
    retract_parser.add_argument("log_id")
    retract_parser.set_defaults(func=cmd_retract)

    set_points_parser = subparsers.add_parser("set-points", help="Override a user's total")
    set_points_parser.add_argument("email")
    set_points_parser.add_argument("points", type=int)
    set_points_parser.set_defaults(func=cmd_set_points)

    reset_parser = subparsers.add_parser("reset", help="Delete a group of collections")
    reset_parser.add_argument("scope", choices=[scope.value for scope in ResetScope])
    reset_parser.add_argument("--yes", action="store_true", help="Confirm deletion")
    reset_parser.set_defaults(func=cmd_reset)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        args.func(args)
    except (StoreError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
