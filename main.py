"""
Rill Programming Language - Main Entry Point
A small imperative language with first-class closures and procedures
"""

import sys
import argparse
from pathlib import Path
from typing import Optional
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from parsing import (
    KEYWORDS, create_parser, create_debug_parser, RillParseError,
    pretty_print_ast, unparse_stmt
)
from interpreter import create_interpreter, create_debug_interpreter, RillInterpreter
from error_handling import RillRuntimeError
from stdlib import show_value


VERSION = "Rill v1.0.0"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Rill Programming Language - closures, procedures and do blocks',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.rill            # Run a Rill script
  %(prog)s -i                     # Interactive mode
  %(prog)s -i script.rill         # Run a script, then continue interactively
  %(prog)s --parse script.rill    # Parse and show the statement trees
  %(prog)s --debug script.rill    # Run with evaluation tracing
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Rill script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the statement trees (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Trace evaluation and execution steps'
  )

  parser.add_argument(
      '--recursion-limit',
      type=int,
      default=None,
      metavar='N',
      help='Python recursion limit used while running programs'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def print_runtime_error(e: RillRuntimeError) -> None:
  """Show a runtime error and the statement that raised it"""
  print(f"\nRuntime Error:")
  print(f"  {e.message}")
  if e.source_line:
    print(f"  Source: {e.source_line}")
  print()


def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a Rill script file and show the statement trees"""
  try:
    parser = create_debug_parser() if debug else create_parser()

    print(f"Parsing {script_path}...")
    stmts = parser.parse_file(script_path)

    print(f"\nParsed {len(stmts)} statements:")
    print("=" * 50)

    for i, stmt in enumerate(stmts, 1):
      print(f"\nStatement {i}: {unparse_stmt(stmt)}")
      print(pretty_print_ast(stmt), end="")

  except RillParseError as e:
    print(e)
    sys.exit(1)


def run_script_file(script_path: str, debug: bool = False,
                    interpreter: Optional[RillInterpreter] = None) -> RillInterpreter:
  """Run every statement of a Rill script, printing each non-empty output"""
  if interpreter is None:
    interpreter = create_debug_interpreter() if debug else create_interpreter()

  try:
    stmts = interpreter.parser.parse_file(script_path)

    for stmt in stmts:
      output = interpreter.execute(stmt)
      if output:
        print(output)
      if interpreter.finished:
        break

  except RillParseError as e:
    print(e)
    sys.exit(1)
  except RillRuntimeError as e:
    print(f"\n{'='*70}")
    print(f"Runtime Error in '{script_path}'")
    print(f"{'='*70}")
    print(f"\nError: {e.message}")
    if e.source_line:
      print(f"\nSource:")
      print(f"  {e.source_line}")
    print(f"\n{'='*70}\n")
    sys.exit(1)

  return interpreter


def setup_readline():
  """Setup readline with history and keyword completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser("~/.rill_history")
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First run or unreadable history

  readline.set_history_length(1000)

  completions = list(KEYWORDS) + [":parse", ":env", ":procs", ":help"]

  def completer(text, state):
    options = [word for word in completions if word.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def show_help() -> None:
  print("REPL Commands:")
  print("  :parse <stmt>     - Show the parsed statement tree")
  print("  :env              - Show value bindings")
  print("  :procs            - Show defined procedures")
  print("  :help             - Show this help")
  print("  quit;             - Exit REPL")
  print()
  print("Language features:")
  print("  x := 5;                              - Assignment")
  print("  print x * 2 + 1;                     - Print a value")
  print("  f := fn [a, b] a + b end;            - Closure")
  print("  print apply f (1, 2);                - Application")
  print("  print let [a := 1; b := 2] a + b end;  - Local bindings")
  print("  procedure p(n) print n; endproc      - Procedure definition")
  print("  call p(3);                           - Procedure call")
  print("  do x := 1; print x; od;              - Sequence")


def run_interactive_mode(debug: bool = False,
                         interpreter: Optional[RillInterpreter] = None) -> None:
  """Run Rill in interactive mode"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'quit;' to exit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()

  if interpreter is None:
    interpreter = create_debug_interpreter() if debug else create_interpreter()

  while not interpreter.finished:
    try:
      code = input("rill> ")

      if not code.strip():
        continue

      # Special commands
      if code.startswith(":parse "):
        try:
          stmt = interpreter.parser.parse_statement(code[len(":parse "):])
          print(pretty_print_ast(stmt), end="")
        except RillParseError as e:
          print(e)
        continue

      if code.strip() == ":env":
        if interpreter.env:
          for name, value in interpreter.env.items():
            print(f"  {name} = {show_value(value)}")
        else:
          print("  (no bindings)")
        continue

      if code.strip() == ":procs":
        if interpreter.penv:
          for name, proc in interpreter.penv.items():
            print(f"  {name}({', '.join(proc.params)})")
        else:
          print("  (no procedures)")
        continue

      if code.strip() == ":help":
        show_help()
        continue

      try:
        for stmt in interpreter.parser.parse_string(code):
          output = interpreter.execute(stmt)
          if output:
            print(output)
          if interpreter.finished:
            break
      except RillParseError as e:
        print(e)
      except RillRuntimeError as e:
        print_runtime_error(e)

    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break


def main() -> None:
  """Main entry point for Rill"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args()

  if args.recursion_limit is not None:
    sys.setrecursionlimit(args.recursion_limit)

  if args.script:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist")
      sys.exit(1)

    if args.parse:
      parse_file(args.script, debug=args.debug)
      return

    interpreter = run_script_file(args.script, debug=args.debug)
    if args.interactive and not interpreter.finished:
      run_interactive_mode(debug=args.debug, interpreter=interpreter)

  else:
    # No script: straight into the REPL
    run_interactive_mode(debug=args.debug)


if __name__ == "__main__":
  main()
