"""
main.py

Command-line entry point for JobTrack sign-in.
Signs in with Google, resumes a redirected sign-in, shows status,
prints a valid access token for scripts, and signs out.
Part of JobTrack — Personal Job Application Tracker.
"""

import argparse
import asyncio
import json
import logging
import sys

import config
from auth import AuthError, build_auth_manager, describe_auth_error


_log = logging.getLogger("jobtrack.main")
_handler = logging.FileHandler(config.LOGS_DIR / "main.log", encoding="utf-8")
_handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
_log.addHandler(_handler)
_log.setLevel(getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))

console_handler = logging.StreamHandler(sys.stderr)
console_handler.setFormatter(logging.Formatter("%(message)s"))
logging.getLogger().addHandler(console_handler)
logging.getLogger().setLevel(logging.WARNING)


def print_banner() -> None:
    """Print the JobTrack banner."""
    print()
    print("=" * 60)
    print("   JobTrack - Personal Job Application Tracker")
    print("=" * 60)
    print()


def print_identity(identity) -> None:
    """
    Print who is signed in.

    Args:
        identity: The Identity returned by sign-in or whoami.
    """
    print(f"Signed in as {identity.display_name} <{identity.email}>")
    if identity.avatar_url:
        print(f"  Avatar: {identity.avatar_url}")


async def run_command(args: argparse.Namespace) -> int:
    """
    Execute one CLI command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Process exit code.
    """
    manager = build_auth_manager()

    if args.command == "signin":
        config.validate_oauth_config()
        print_banner()
        identity = await manager.sign_in()
        if identity is None:
            return 0
        print_identity(identity)
        return 0

    if args.command == "resume":
        config.validate_oauth_config()
        identity = await manager.resume_from_url(args.url)
        if identity is None:
            print("That address carries no sign-in result.", file=sys.stderr)
            return 1
        print_identity(identity)
        return 0

    if args.command == "whoami":
        print_identity(await manager.get_user_info())
        return 0

    if args.command == "token":
        print(await manager.get_valid_access_token())
        return 0

    if args.command == "status":
        print(json.dumps(manager.get_status(), indent=2))
        return 0

    if args.command == "signout":
        manager.sign_out(revoke=args.revoke)
        print("Signed out.")
        return 0

    return 2


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(description="JobTrack Google sign-in")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("signin", help="Sign in with Google in your browser")
    resume = sub.add_parser("resume", help="Finish a sign-in from a redirected address")
    resume.add_argument("url", help="Address your browser was redirected to")
    sub.add_parser("whoami", help="Show the signed-in Google account")
    sub.add_parser("token", help="Print a valid access token, refreshing if needed")
    sub.add_parser("status", help="Show stored credential status")
    signout = sub.add_parser("signout", help="Forget stored tokens")
    signout.add_argument("--revoke", action="store_true", help="Also revoke the token at Google")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and run the command."""
    args = build_parser().parse_args(argv)
    _log.info("Command: %s", args.command)
    try:
        return asyncio.run(run_command(args))
    except AuthError as exc:
        _log.error("Command %s failed: %r", args.command, exc)
        print(describe_auth_error(exc), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
