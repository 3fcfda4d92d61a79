"""
tinyc - Tiny-C Command-Line Interface
=====================================

Compiles a Tiny-C program, runs it, and prints every variable that ended
up non-zero.

Usage Examples
--------------
Run a program from standard input:
    $ echo "a=b=c=2<3;" | tinyc
    a = 1
    b = 1
    c = 1

Run a file:
    $ tinyc gcd.tc

One program per line, sharing variables:
    $ tinyc --lines session.tc

Show the bytecode instead of running it:
    $ tinyc --disasm gcd.tc

Trace execution:
    $ tinyc --trace gcd.tc
"""

import logging
from typing import TextIO

import click

from tinyc import __version__
from tinyc.cli.errors import handle_cli_exception
from tinyc.compiler import compile_source
from tinyc.disassembler import format_listing
from tinyc.vm import VM, format_variables

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, trace: bool) -> None:
    """Configure logging based on verbosity; traces go to stderr at DEBUG."""
    level = logging.DEBUG if verbose or trace else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def echo_variables(variables: list[int]) -> None:
    for line in format_variables(variables):
        click.echo(line)


@click.command()
@click.argument("source", type=click.File("r"), default="-")
@click.option(
    "--lines",
    is_flag=True,
    help="Treat each input line as a separate program; variables persist between lines",
)
@click.option(
    "--disasm",
    is_flag=True,
    help="Print the bytecode listing instead of running the program",
)
@click.option(
    "--trace",
    is_flag=True,
    help="Log each executed instruction to stderr",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="tinyc")
def main(source: TextIO, lines: bool, disasm: bool, trace: bool, verbose: bool) -> None:
    """
    Compile and run a Tiny-C program.

    SOURCE is the program file; omit it or pass - to read standard input.

    \b
    Examples:
        tinyc prog.tc               # Run, print non-zero variables
        tinyc --disasm prog.tc      # Show bytecode
        tinyc --lines session.tc    # One program per line
    """
    setup_logging(verbose, trace)
    filename = getattr(source, "name", None)
    if not isinstance(filename, str) or filename == "-":
        filename = "<stdin>"

    try:
        text = source.read()

        if lines:
            vm = VM(trace=trace)
            for line_number, line in enumerate(text.splitlines(), start=1):
                if not line.strip():
                    continue
                program = compile_source(line, filename, line_number)
                if disasm:
                    click.echo(format_listing(program))
                    continue
                echo_variables(vm.run(program))
            return

        program = compile_source(text, filename)
        if verbose:
            click.echo(f"Compiled {filename}: {len(program)} words", err=True)

        if disasm:
            click.echo(format_listing(program))
            return

        echo_variables(VM(trace=trace).run(program))

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
