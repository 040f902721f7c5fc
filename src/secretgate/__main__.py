"""SecretGate CLI entry point.

Usage:
    secretgate scan [-r] [--cached] [--no-index] [--untracked] [--format text|json] [FILES...]
    secretgate scan-history
    secretgate install [-f] [TARGET]
    secretgate list [--global]
    secretgate add [-a] [-l] [--global] PATTERN
    secretgate add-provider [--global] COMMAND [ARGS...]
    secretgate register-aws [--global]
    secretgate aws-provider [CREDENTIALS_FILE]
    python -m secretgate <command> [options]

Hook entry points, called by the scripts ``install`` writes:
    secretgate commit-msg-hook FILE
    secretgate pre-commit-hook
    secretgate prepare-commit-msg-hook FILE [SOURCE] [SHA]
"""

from __future__ import annotations

import argparse
import subprocess
import sys

import yaml

from secretgate import aws
from secretgate.config import SecretGateConfig
from secretgate.engine import SecretScanner
from secretgate.errors import RepositoryAbsent, SecretGateError
from secretgate.hooks import CommitMsgEvent, HookDispatcher, HookEvent
from secretgate.install_command import install_command
from secretgate.models import ScanInput, ScanResult
from secretgate.reporters.json_reporter import JSONReporter
from secretgate.reporters.text_reporter import TextReporter
from secretgate.store import (
    ALL_KEYS,
    ALLOWED_KEY,
    GLOBAL,
    LOCAL,
    PATTERNS_KEY,
    PROVIDERS_KEY,
    GitConfigStore,
    escape_literal,
)


def _scope(args: argparse.Namespace) -> str:
    return GLOBAL if getattr(args, "global_", False) else LOCAL


def _scanner(args: argparse.Namespace) -> SecretScanner:
    config = SecretGateConfig.load(getattr(args, "config", None))
    return SecretScanner(GitConfigStore(), config)


def _report_failure(result: ScanResult) -> None:
    print(TextReporter().render_failure(result), file=sys.stderr)


def _describe_failure(error: subprocess.CalledProcessError) -> str:
    stderr = error.stderr or ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    command = " ".join(error.cmd) if isinstance(error.cmd, list) else str(error.cmd)
    return f"{command} failed: {stderr.strip() or error}"


def scan_command(args: argparse.Namespace) -> int:
    """Execute the scan command."""
    scanner = _scanner(args)
    files = list(args.files or [])

    if files == ["-"]:
        scan_input = ScanInput(stream=sys.stdin.buffer.read())
    else:
        scan_input = ScanInput(
            files=files,
            recursive=args.recursive,
            cached=args.cached,
            untracked=args.untracked,
            no_index=args.no_index,
        )

    result = scanner.scan(scan_input)

    if args.format == "json":
        print(JSONReporter().render(result))
        return 0 if result.clean else 1

    if not result.clean:
        _report_failure(result)
        return 1
    return 0


def scan_history_command(args: argparse.Namespace) -> int:
    """Execute the scan-history command."""
    result = _scanner(args).scan_history()
    if not result.clean:
        _report_failure(result)
        return 1
    return 0


def list_command(args: argparse.Namespace) -> int:
    """Print every ``secrets.*`` value, one ``key value`` pair per line."""
    store = GitConfigStore()
    scopes = [GLOBAL] if args.global_ else [GLOBAL, LOCAL]
    for key in ALL_KEYS:
        seen: list[str] = []
        for scope in scopes:
            try:
                values = store.get_all(key, scope)
            except RepositoryAbsent:
                # Outside a repository only global settings exist
                continue
            seen.extend(v for v in values if v not in seen)
        for value in seen:
            print(f"{key} {value}")
    return 0


def add_command(args: argparse.Namespace) -> int:
    """Add a prohibited or allowed pattern."""
    key = ALLOWED_KEY if args.allowed else PATTERNS_KEY
    value = escape_literal(args.pattern) if args.literal else args.pattern
    if not GitConfigStore().add(key, value, _scope(args)):
        print(f"❌ {value} is already registered in {key}", file=sys.stderr)
        return 1
    return 0


def add_provider_command(args: argparse.Namespace) -> int:
    """Register a command whose output lines are extra prohibited patterns."""
    command = " ".join(args.provider)
    if not GitConfigStore().add(PROVIDERS_KEY, command, _scope(args)):
        print(f"❌ Provider '{command}' is already registered", file=sys.stderr)
        return 1
    return 0


def register_aws_command(args: argparse.Namespace) -> int:
    """Register the AWS patterns, provider and example exceptions."""
    aws.register_aws(GitConfigStore(), _scope(args))
    print("OK", file=sys.stderr)
    return 0


def aws_provider_command(args: argparse.Namespace) -> int:
    """Print escaped literal patterns for the keys in an AWS credentials file."""
    for pattern in aws.extract(args.credentials_file):
        print(pattern)
    return 0


def _run_hook(args: argparse.Namespace, build_event) -> int:
    dispatcher = HookDispatcher(_scanner(args))
    event: HookEvent = build_event(dispatcher)
    outcome = dispatcher.handle(event)
    if not outcome.passed and outcome.result is not None:
        _report_failure(outcome.result)
    return outcome.exit_code


def commit_msg_hook_command(args: argparse.Namespace) -> int:
    return _run_hook(args, lambda d: CommitMsgEvent(message_path=args.message_file))


def pre_commit_hook_command(args: argparse.Namespace) -> int:
    return _run_hook(args, lambda d: d.pre_commit_event())


def prepare_commit_msg_hook_command(args: argparse.Namespace) -> int:
    return _run_hook(
        args, lambda d: d.prepare_commit_msg_event(args.message_file, args.source, args.sha)
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="secretgate",
        description="SecretGate — keep secrets out of git history",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to .secretgate.yml config file",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # scan subcommand
    scan_parser = subparsers.add_parser("scan", help="Scan files or the tracked tree for secrets")
    scan_parser.add_argument("files", nargs="*", help="Files to scan ('-' reads stdin)")
    scan_parser.add_argument(
        "-r", "--recursive", action="store_true", help="Scan directories recursively"
    )
    scan_parser.add_argument(
        "--cached", action="store_true", help="Scan staged content instead of the working tree"
    )
    scan_parser.add_argument(
        "--no-index", action="store_true", help="Scan files on disk, not just tracked ones"
    )
    scan_parser.add_argument(
        "--untracked", action="store_true", help="Also scan untracked, non-ignored files"
    )
    scan_parser.add_argument(
        "--format",
        type=str,
        choices=["text", "json"],
        default="text",
        help="Output format",
    )

    subparsers.add_parser("scan-history", help="Scan every revision in the repository")

    install_parser = subparsers.add_parser("install", help="Install git hooks")
    install_parser.add_argument("target", nargs="?", default=None, help="Repository or template dir")
    install_parser.add_argument(
        "-f", "--force", action="store_true", help="Overwrite existing hooks"
    )

    list_parser = subparsers.add_parser("list", help="List configured patterns and providers")
    list_parser.add_argument("--global", dest="global_", action="store_true")

    add_parser = subparsers.add_parser("add", help="Add a prohibited or allowed pattern")
    add_parser.add_argument("pattern", help="Regular expression to add")
    add_parser.add_argument(
        "-a", "--allowed", action="store_true", help="Add as an allowed pattern"
    )
    add_parser.add_argument(
        "-l", "--literal", action="store_true", help="Escape regex metacharacters first"
    )
    add_parser.add_argument("--global", dest="global_", action="store_true")

    provider_parser = subparsers.add_parser(
        "add-provider", help="Add a command that prints prohibited patterns"
    )
    provider_parser.add_argument("--global", dest="global_", action="store_true")
    provider_parser.add_argument("provider", nargs=argparse.REMAINDER, help="Command and arguments")

    aws_parser = subparsers.add_parser("register-aws", help="Register AWS patterns")
    aws_parser.add_argument("--global", dest="global_", action="store_true")

    aws_provider_parser = subparsers.add_parser(
        "aws-provider", help="Print patterns for keys in an AWS credentials file"
    )
    aws_provider_parser.add_argument("credentials_file", nargs="?", default=None)

    commit_msg_parser = subparsers.add_parser("commit-msg-hook", help=argparse.SUPPRESS)
    commit_msg_parser.add_argument("message_file")

    subparsers.add_parser("pre-commit-hook", help=argparse.SUPPRESS)

    prepare_parser = subparsers.add_parser("prepare-commit-msg-hook", help=argparse.SUPPRESS)
    prepare_parser.add_argument("message_file")
    prepare_parser.add_argument("source", nargs="?", default=None)
    prepare_parser.add_argument("sha", nargs="?", default=None)

    return parser


_COMMANDS = {
    "scan": scan_command,
    "scan-history": scan_history_command,
    "install": install_command,
    "list": list_command,
    "add": add_command,
    "add-provider": add_provider_command,
    "register-aws": register_aws_command,
    "aws-provider": aws_provider_command,
    "commit-msg-hook": commit_msg_hook_command,
    "pre-commit-hook": pre_commit_hook_command,
    "prepare-commit-msg-hook": prepare_commit_msg_hook_command,
}


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = _COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "add-provider" and not args.provider:
        parser.error("add-provider requires a command")

    try:
        sys.exit(handler(args))
    except SecretGateError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(e.status)
    except subprocess.CalledProcessError as e:
        print(f"❌ {_describe_failure(e)}", file=sys.stderr)
        sys.exit(e.returncode)
    except (ValueError, yaml.YAMLError) as e:
        print(f"❌ Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
