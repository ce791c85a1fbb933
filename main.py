#!/usr/bin/env python3
"""
Smart Study Planner - Command Line Entry Point

Drives the client core from a terminal: sign-in flows, the local task
list and a focus countdown with do-not-disturb.

Usage:
    python main.py login --email you@example.com
    python main.py tasks add "Read chapter 3" --subject Biology --deadline 2026-11-01T18:00
    python main.py focus --minutes 50
"""

import sys
import getpass
import logging
import threading
import argparse
from datetime import datetime
from typing import List, Optional

import config
from core.context import AppContext, build_context
from core.errors import StudyPlannerError
from core.models import IdentityProfile, StudyTask

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format=config.LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Suppress noisy third-party library logs (HTTP requests, etc.)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


PRIORITY_LABELS = {
    config.PRIORITY_LOW: "low",
    config.PRIORITY_MEDIUM: "medium",
    config.PRIORITY_HIGH: "high",
}


def _prompt(label: str, value: Optional[str]) -> str:
    if value:
        return value
    return input(f"{label}: ").strip()


def _prompt_password(label: str = "Password", value: Optional[str] = None) -> str:
    if value:
        return value
    return getpass.getpass(f"{label}: ")


def _print_task(task: StudyTask) -> None:
    mark = "✓" if task.is_completed else "•"
    due = task.deadline.strftime("%Y-%m-%d %H:%M")
    priority = PRIORITY_LABELS.get(task.priority, str(task.priority))
    print(f"  {mark} [{task.id[:8]}] {task.title} ({task.subject}) due {due}, {priority} priority")
    if task.notes:
        print(f"      {task.notes}")


def _find_task(ctx: AppContext, task_id: str) -> StudyTask:
    """Resolve a full id or an unambiguous id prefix."""
    matches = [t for t in ctx.task_store.fetch_tasks() if t.id.startswith(task_id)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise StudyPlannerError(f"No task with id '{task_id}'")
    raise StudyPlannerError(f"Task id '{task_id}' is ambiguous")


# =============================================================================
# Account commands
# =============================================================================

def cmd_login(ctx: AppContext, args: argparse.Namespace) -> int:
    manager = ctx.session_manager
    email = _prompt("Email", args.email or manager.saved_email)
    password = _prompt_password(value=args.password)
    user = manager.login(email, password)
    print(f"✓ Logged in as {user.name} <{user.email}>")
    return 0


def cmd_register(ctx: AppContext, args: argparse.Namespace) -> int:
    name = _prompt("Full name", args.name)
    email = _prompt("Email", args.email)
    password = _prompt_password()
    confirm = _prompt_password("Confirm password")
    user = ctx.session_manager.register(name, email, password, confirm)
    print(f"✓ Account created. Welcome, {user.name}!")
    return 0


def cmd_biometric_login(ctx: AppContext, args: argparse.Namespace) -> int:
    user = ctx.session_manager.sign_in_with_biometrics()
    print(f"✓ Logged in as {user.name} <{user.email}>")
    return 0


def cmd_identity_login(ctx: AppContext, args: argparse.Namespace) -> int:
    manager = ctx.session_manager
    if args.token:
        profile = IdentityProfile(name=args.name, email=args.email)
        user = manager.sign_in_with_identity(args.token, profile)
    else:
        print("🌐 Opening your browser to sign in...")
        user = manager.sign_in_with_identity_provider(timeout=args.timeout)
    print(f"✓ Logged in as {user.name} <{user.email}>")
    return 0


def cmd_logout(ctx: AppContext, args: argparse.Namespace) -> int:
    ctx.profile.logout()
    print("👋 Logged out")
    return 0


def cmd_reset_password(ctx: AppContext, args: argparse.Namespace) -> int:
    flow = ctx.password_reset_flow()
    email = _prompt("Email", args.email)
    response = flow.request_code(email)
    print(f"📧 {response.message}")

    otp = _prompt("Code", None)
    response = flow.verify_code(otp)
    print(f"✓ {response.message}")

    new_password = _prompt_password("New password")
    confirm = _prompt_password("Confirm new password")
    response = flow.reset_password(new_password, confirm)
    print(f"✓ {response.message}")
    return 0


def cmd_whoami(ctx: AppContext, args: argparse.Namespace) -> int:
    # Each CLI run starts without a live token, so only the cached profile is shown.
    profile = ctx.profile
    if not ctx.session_manager.is_authenticated:
        print("Not logged in")
        return 1

    print(f"👤 {profile.user_name or '(unknown)'} <{profile.user_email or '-'}>")
    print(f"   Notifications: {'on' if profile.notifications_enabled else 'off'}")
    print(f"   Theme: {profile.theme}")
    print(f"   Default study session: {profile.default_study_duration / 60:.0f} minutes")
    return 0


# =============================================================================
# Task commands
# =============================================================================

def cmd_tasks(ctx: AppContext, args: argparse.Namespace) -> int:
    store = ctx.task_store

    if args.tasks_command == "add":
        try:
            deadline = datetime.fromisoformat(args.deadline)
        except ValueError:
            print(f"❌ Invalid deadline '{args.deadline}' (use YYYY-MM-DDTHH:MM)")
            return 1
        task = store.create_task(args.title, args.subject, deadline, args.priority, args.notes)
        print("✓ Task added")
        _print_task(task)
        return 0

    if args.tasks_command == "list":
        completed = True if args.completed else (False if args.pending else None)
        tasks = store.fetch_tasks(completed)
    elif args.tasks_command == "search":
        tasks = store.search_tasks(args.query)
    elif args.tasks_command == "toggle":
        task = store.toggle_task_completion(_find_task(ctx, args.id))
        print("✓ Completed" if task.is_completed else "↺ Marked pending")
        _print_task(task)
        return 0
    elif args.tasks_command == "delete":
        task = _find_task(ctx, args.id)
        store.delete_task(task)
        print(f"🗑  Deleted '{task.title}'")
        return 0
    else:
        return 2

    if not tasks:
        print("No tasks")
    for task in tasks:
        _print_task(task)
    return 0


# =============================================================================
# Focus command
# =============================================================================

def cmd_focus(ctx: AppContext, args: argparse.Namespace) -> int:
    minutes = args.minutes or ctx.profile.default_study_duration / 60
    session = ctx.focus_session(estimated_focus_time=minutes * 60)
    ended = threading.Event()

    def on_tick(remaining: float) -> None:
        if remaining > 0 and int(remaining) % 300 == 0:
            print(f"⏳ {int(remaining // 60)} minutes left")

    session.on_tick = on_tick
    session.on_session_ended = ended.set

    session.toggle_focus_mode()
    print(f"\n📚 Focus session started ({minutes:.0f} minutes)")
    if session.is_dnd_enabled:
        print("🔕 Do not disturb is on")
    else:
        print("⚠️  Do not disturb could not be enabled")
    print("   Press Enter to end the session\n")

    def _keyboard_listener() -> None:
        try:
            input()
        except (EOFError, OSError):
            return
        session.end_current_session()

    threading.Thread(target=_keyboard_listener, daemon=True).start()

    try:
        ended.wait()
    except KeyboardInterrupt:
        session.end_current_session()
        print("\n\n⏸️  Session interrupted by user")
        return 0

    print("✨ Session complete! Keep up the great work!")
    return 0


# =============================================================================
# Argument parsing
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Smart Study Planner - study tasks, sign-in and focus sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py login --email you@example.com
  python main.py tasks list --pending
  python main.py focus --minutes 50
        """
    )
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Log in with email and password")
    login.add_argument("--email")
    login.add_argument("--password", help="Prompted for when omitted")
    login.set_defaults(handler=cmd_login)

    register = commands.add_parser("register", help="Create an account")
    register.add_argument("--name")
    register.add_argument("--email")
    register.set_defaults(handler=cmd_register)

    biometric = commands.add_parser("biometric-login", help="Log in with stored credentials")
    biometric.set_defaults(handler=cmd_biometric_login)

    identity = commands.add_parser("identity-login", help="Sign in with a third-party identity")
    identity.add_argument("--token", help="Use an identity token you already have")
    identity.add_argument("--name")
    identity.add_argument("--email")
    identity.add_argument("--timeout", type=float, default=300,
                          help="Seconds to wait for the browser sign-in")
    identity.set_defaults(handler=cmd_identity_login)

    logout = commands.add_parser("logout", help="Log out and forget stored credentials")
    logout.set_defaults(handler=cmd_logout)

    reset = commands.add_parser("reset-password", help="Reset a forgotten password")
    reset.add_argument("--email")
    reset.set_defaults(handler=cmd_reset_password)

    whoami = commands.add_parser("whoami", help="Show the signed-in profile")
    whoami.set_defaults(handler=cmd_whoami)

    tasks = commands.add_parser("tasks", help="Manage study tasks")
    tasks.set_defaults(handler=cmd_tasks)
    task_commands = tasks.add_subparsers(dest="tasks_command", required=True)

    add = task_commands.add_parser("add", help="Add a task")
    add.add_argument("title")
    add.add_argument("--subject", required=True)
    add.add_argument("--deadline", required=True, help="ISO date/time, e.g. 2026-11-01T18:00")
    add.add_argument("--priority", type=int, choices=sorted(PRIORITY_LABELS),
                     default=config.PRIORITY_MEDIUM)
    add.add_argument("--notes")

    listing = task_commands.add_parser("list", help="List tasks by deadline")
    status = listing.add_mutually_exclusive_group()
    status.add_argument("--completed", action="store_true")
    status.add_argument("--pending", action="store_true")

    search = task_commands.add_parser("search", help="Search titles and subjects")
    search.add_argument("query")

    toggle = task_commands.add_parser("toggle", help="Flip a task between pending and completed")
    toggle.add_argument("id", help="Task id or unique prefix")

    delete = task_commands.add_parser("delete", help="Delete a task")
    delete.add_argument("id", help="Task id or unique prefix")

    focus = commands.add_parser("focus", help="Run a focus countdown with do not disturb")
    focus.add_argument("--minutes", type=float,
                       help="Session length (defaults to your study duration)")
    focus.set_defaults(handler=cmd_focus)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point: parse arguments, wire services and run one command."""
    args = build_parser().parse_args(argv)
    ctx = build_context()
    try:
        return args.handler(ctx, args)
    except StudyPlannerError as e:
        logger.debug(f"{args.command} failed: {e!r}")
        print(f"❌ {e.message}")
        return 1
    except KeyboardInterrupt:
        print("\n\n👋 Goodbye!")
        return 0
    finally:
        ctx.close()


if __name__ == "__main__":
    sys.exit(main())
