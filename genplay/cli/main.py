import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from genplay.config import PlaygroundConfig
from genplay.data import RunResult
from genplay.logging import configure_logging
from genplay.runner import Runner
from genplay.samples import PackagedSampleCatalog


def _print_pane(title: str, text: str) -> None:
    print(f"=== {title} ===")
    print(text.rstrip("\n"))
    print()


def _load_sources(args: argparse.Namespace) -> Tuple[str, str]:
    if args.sample:
        if args.program or args.generator:
            raise ValueError("--sample cannot be combined with --program/--generator.")
        return PackagedSampleCatalog().load_sample(args.sample)
    if not args.program or not args.generator:
        raise ValueError("Either --sample <NAME> or both --program and --generator are required.")
    program = Path(args.program).read_text(encoding="utf-8")
    generator = Path(args.generator).read_text(encoding="utf-8")
    return program, generator


def run(args: argparse.Namespace) -> int:
    """Run one program/generator pair and print the three panes."""
    program, generator = _load_sources(args)
    config = PlaygroundConfig.from_env()
    overrides = {}
    if args.execution_mode:
        overrides["execution_mode"] = args.execution_mode
    if args.timeout is not None:
        overrides["execution_timeout"] = args.timeout
    if overrides:
        config = config.model_copy(update=overrides)

    result: RunResult = Runner.from_config(config).run(program, generator)
    _print_pane("Generated source", result.generated_source_text)
    _print_pane("Program output", result.program_output_text)
    if result.error_text:
        _print_pane("Errors", result.error_text)
        return 1
    return 0


def samples(args: argparse.Namespace) -> int:
    """List the packaged samples."""
    for name in PackagedSampleCatalog().list_sample_names():
        print(f"- {name}")
    return 0


def cli(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="genplay: source generator playground",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--log-level", default=None, help="Level of the genplay logger.")
    command_subparsers = parser.add_subparsers(
        dest="command", required=True, help="Primary commands"
    )

    run_parser = command_subparsers.add_parser(
        "run", help="Compile a generator, apply it to a program and run the program."
    )
    run_parser.add_argument("--program", type=Path, help="Path to the program source.")
    run_parser.add_argument("--generator", type=Path, help="Path to the generator source.")
    run_parser.add_argument("--sample", help="Name of a packaged sample to run instead.")
    run_parser.add_argument(
        "--execution-mode", choices=["in_process", "subprocess"], default=None
    )
    run_parser.add_argument(
        "--timeout", type=float, default=None, help="Seconds the program may run (subprocess)."
    )
    run_parser.set_defaults(func=run)

    samples_parser = command_subparsers.add_parser("samples", help="List the packaged samples.")
    samples_parser.set_defaults(func=samples)

    args = parser.parse_args(argv)
    configure_logging(args.log_level or PlaygroundConfig.from_env().log_level)
    try:
        return args.func(args)
    except (ValueError, KeyError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


def main() -> None:
    sys.exit(cli())


if __name__ == "__main__":
    main()
