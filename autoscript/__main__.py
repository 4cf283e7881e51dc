import argparse
import asyncio
import sys
from pathlib import Path

from autoscript.autoscript_runtime import ScriptRunner
from autoscript.autoscript_host import SimulatedHost

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)


def print_side_effects(result):
    for effect in result.side_effects:
        topics = effect.get('topics') or []
        stream = sys.stderr if 'stderr' in topics else sys.stdout
        print(effect.get('message', ''), file=stream)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="autoscript", description="Run automation scripts.")
    parser.add_argument("script", nargs="?", help="script file to run; starts a REPL when omitted")
    parser.add_argument("--screen", help="YAML screen description for a simulated device")
    parser.add_argument("--timeout", type=float, default=None, help="abort after this many seconds")
    return parser


def make_runner(screen_path=None) -> ScriptRunner:
    host = SimulatedHost.from_file(screen_path) if screen_path else None
    return ScriptRunner(host_object=host)


async def run_script_file(file_path: str, runner: ScriptRunner, timeout=None):
    """Run a script file non-interactively and exit with appropriate status."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    result = await runner.handle_script(source, timeout=timeout)
    print_side_effects(result)
    if not result.success:
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)
    print(result.output)


async def main(argv=None):
    """Run a script file when provided, otherwise start the interactive REPL."""
    args = build_parser().parse_args(argv)
    try:
        runner = make_runner(args.screen)
    except (OSError, ValueError) as e:
        print(f"Error: cannot load screen description: {e}", file=sys.stderr)
        raise SystemExit(1)

    if args.script:
        await run_script_file(args.script, runner, args.timeout)
        return

    print("AutoScript REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    # REPL Loop
    while True:
        try:
            raw = await ainput(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            result = await runner.handle_script(line, timeout=args.timeout)
            print_side_effects(result)
            if not result.success:
                print(result.format_error(), file=sys.stderr)

        except EOFError:
            print("\nExiting.")
            break


def cli():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")


if __name__ == "__main__":
    cli()
