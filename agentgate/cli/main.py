"""agentgate: operator CLI for agent gateway sessions."""

from __future__ import annotations

import sys

from agentgate import __version__
from agentgate.cli.tool_commands import handle_sessions
from agentgate.logging_config import setup_logging


def _usage() -> str:
    return (
        "Usage: agentgate [--log-level <LEVEL>] <command> [args]\n"
        "\n"
        "Commands:\n"
        "  sessions     Work with gateway sessions (send)\n"
        "\n"
        "Options:\n"
        "  --log-level  DEBUG, INFO, WARNING or ERROR (default: $AGENTGATE_LOG_LEVEL or WARNING)\n"
        "  --version    Print the version and exit\n"
    )


def _main_impl(argv: list[str]) -> None:
    log_level: str | None = None
    args = list(argv)
    while args and args[0].startswith("-"):
        flag = args.pop(0)
        if flag in ("-h", "--help"):
            print(_usage())
            return
        if flag == "--version":
            print(__version__)
            return
        if flag == "--log-level" and args:
            log_level = args.pop(0)
            continue
        print(f"Unknown option: {flag}", file=sys.stderr)
        print(_usage(), file=sys.stderr)
        raise SystemExit(1)

    setup_logging(log_level)

    if not args:
        print(_usage())
        return

    command, rest = args[0], args[1:]
    if command == "sessions":
        handle_sessions(rest)
    else:
        print(f"Unknown command: {command}", file=sys.stderr)
        print("Run 'agentgate --help' for usage.", file=sys.stderr)
        raise SystemExit(1)


def main(argv: list[str] | None = None) -> None:
    try:
        _main_impl(sys.argv[1:] if argv is None else argv)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
