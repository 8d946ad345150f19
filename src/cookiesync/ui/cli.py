# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from cookiesync.app import (
    add_rule,
    clear_all_rules,
    list_rules,
    remove_rule,
    set_all_rules,
    watch_rules,
)
from cookiesync.config import ConfigurationError, configure_logging
from cookiesync.domain.model import InvalidRuleError, Rule, Setting, complete_pattern, sorted_rules

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import FrameType

    from cookiesync.domain.model import RuleKey
    from cookiesync.domain.reconciliation import OperationResult

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keep cookie rules in sync across devices")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="Show the canonical rule set")

    add = subparsers.add_parser("add", help="Add a rule or replace the rule with the same patterns")
    add.add_argument("primary", type=str, help="Primary URL pattern, e.g. https://example.com")
    add.add_argument(
        "--secondary",
        type=str,
        default=None,
        help="Secondary URL pattern (defaults to any)",
    )
    add.add_argument(
        "--setting",
        type=str,
        choices=[setting.value for setting in Setting],
        default=Setting.BLOCK.value,
        help="Setting applied to matching requests (default: %(default)s)",
    )

    remove = subparsers.add_parser("remove", help="Remove the rule with the given key")
    remove.add_argument("key", type=str, help="Rule key as shown by 'list'")

    subparsers.add_parser("set-all", help="Replay every canonical rule into the rule engine")

    clear = subparsers.add_parser("clear-all", help="Remove every rule everywhere")
    clear.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    watch = subparsers.add_parser("watch", help="Follow changes made on other devices")
    watch.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between polls (defaults to config)",
    )

    return parser.parse_args(list(argv))


def _build_rule(args: argparse.Namespace) -> Rule:
    secondary = complete_pattern(args.secondary) if args.secondary else None
    return Rule(
        primary_pattern=complete_pattern(args.primary),
        secondary_pattern=secondary,
        setting=Setting(args.setting),
    )


def _print_rules(rules: Mapping[RuleKey, Rule]) -> None:
    if not rules:
        print("No rules.")
        return
    for key, rule in sorted_rules(rules):
        print(f"{rule.primary_pattern}\t{rule.display_secondary_pattern}\t{rule.setting}\t{key}")


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _report(result: OperationResult) -> int:
    if result.ok:
        return 0
    if result.failed_keys:
        log.warning(
            "Rules not applied to the rule engine (kept in canonical state): %s",
            ", ".join(result.failed_keys),
        )
    log.error("%s failed: %s", result.operation, result.error or "Unknown error")
    return 1


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        rule = _build_rule(parsed_args) if parsed_args.command == "add" else None
        if parsed_args.command == "watch" and (
            parsed_args.interval is not None and parsed_args.interval <= 0
        ):
            raise ValueError("Interval must be positive")  # noqa: TRY301
    except (InvalidRuleError, ValueError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        status = 0
        if parsed_args.command == "list":
            _print_rules(list_rules())
        elif parsed_args.command == "add" and rule is not None:
            status = _report(add_rule(rule))
        elif parsed_args.command == "remove":
            status = _report(remove_rule(parsed_args.key))
        elif parsed_args.command == "set-all":
            status = _report(set_all_rules())
        elif parsed_args.command == "clear-all":
            if not parsed_args.yes and not _confirm("Clear all rules?"):
                log.info("Aborted")
                return
            status = _report(clear_all_rules())
        elif parsed_args.command == "watch":
            watch_rules(interval=parsed_args.interval)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)

    if status:
        sys.exit(status)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
