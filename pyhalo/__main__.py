"""A tiny CLI.

Invoke using e.g. ``python -m pyhalo version``, ``python -m pyhalo check shader.wgsl``
or ``python -m pyhalo run shader.wgsl``.
"""

import sys
import argparse

import pyhalo


def check(path):
    """Validate a file, print the result, and return the exit code."""
    with open(path, "rb") as f:
        text = f.read().decode("utf-8")
    result = pyhalo.validate_sync(text)
    if isinstance(result, pyhalo.Diagnostic):
        print(f"{path}: {result.kind} error")
        print(result.format(text))
        return 1
    print(f"{path}: ok (entry point '{result.entry_point}')")
    return 0


def run(path, auto_validate):
    """Open the viewer, optionally watching a file."""
    from pyhalo.app import Viewer

    session = pyhalo.create_session(auto_validate=auto_validate)
    viewer = Viewer(session)

    async def start():
        # Validation requests are scheduled on the running loop
        if path:
            session.open(path)
            viewer.watch(path)

    viewer.loop.add_task(start)
    viewer.run()
    return 0


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]

    # Defaults and aliases
    if not argv:
        argv = ["help"]
    if argv == ["--version"]:
        argv = ["version"]

    # Let the rest to argparse

    parser = argparse.ArgumentParser(
        prog="pyhalo",
        description="The pyhalo CLI",
    )

    parser.add_argument(
        "command",
        action="store",
        help="The command to run: 'help', 'version', 'check' or 'run'",
    )
    parser.add_argument(
        "file", nargs="?", default=None, help="The WGSL file to check or run"
    )
    parser.add_argument(
        "--no-auto-validate",
        action="store_true",
        help="With 'run': only validate on Ctrl+Enter",
    )

    args = parser.parse_args(argv)
    command = args.command.lower()

    if command == "help":
        parser.print_help()
    elif command == "version":
        print("pyhalo v" + pyhalo.__version__)
    elif command == "check":
        if not args.file:
            parser.error("The 'check' command needs a file.")
        return check(args.file)
    elif command == "run":
        return run(args.file, not args.no_auto_validate)
    else:
        print(f"Invalid command '{command}'")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
