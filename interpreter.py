"""
Rill Interpreter - Pure Functional Style
eval_exp reduces an expression to a value, exec_stmt runs a statement against
persistent procedure/value environments and returns the new pair.
Faults are values (ExnVal), never Python exceptions.
"""

from typing import Dict, List, Optional, Tuple

from parsing import (
    Exp, IntExp, BoolExp, FunExp, LetExp, AppExp, IfExp, IntOpExp, BoolOpExp,
    CompOpExp, VarExp, Stmt, SetStmt, PrintStmt, QuitStmt, IfStmt, ProcedureStmt,
    CallStmt, SeqStmt, RillParser, create_parser, unparse_stmt
)
from stdlib import (
    Val, IntVal, BoolVal, CloVal, ExnVal,
    INT_OPS, BOOL_OPS, COMP_OPS,
    lift_int_op, lift_bool_op, lift_comp_op, show_value,
    DIVISION_BY_ZERO, NO_MATCH, NOT_A_BOOL, NOT_A_CLOSURE, ARITY_MISMATCH
)
from utilities import make_env, env_bind, env_bind_many, env_lookup, bind_params
from error_handling import RillRuntimeError


Env = Dict[str, Val]
PEnv = Dict[str, ProcedureStmt]
Result = Tuple[str, PEnv, Env]

FAREWELL = "Bye!"


# ============================================================================
# EXPRESSIONS
# ============================================================================

def eval_exp(exp: Exp, env: Env, debug: bool = False) -> Val:
  """
  Evaluate an expression in env.
  Total: every failure comes back as an ExnVal.
  """
  if debug:
    print(f"Evaluating: {type(exp).__name__}")

  if isinstance(exp, IntExp):
    return IntVal(exp.value)
  elif isinstance(exp, BoolExp):
    return BoolVal(exp.value)
  elif isinstance(exp, VarExp):
    return eval_var(exp, env, debug)
  elif isinstance(exp, IntOpExp):
    return eval_int_op(exp, env, debug)
  elif isinstance(exp, BoolOpExp):
    return eval_bool_op(exp, env, debug)
  elif isinstance(exp, CompOpExp):
    return eval_comp_op(exp, env, debug)
  elif isinstance(exp, IfExp):
    return eval_if(exp, env, debug)
  elif isinstance(exp, FunExp):
    return CloVal(exp.params, exp.body, env)
  elif isinstance(exp, AppExp):
    return eval_app(exp, env, debug)
  elif isinstance(exp, LetExp):
    return eval_let(exp, env, debug)
  else:
    return ExnVal(f"Unknown expression: {type(exp).__name__}")


def eval_var(exp: VarExp, env: Env, debug: bool = False) -> Val:
  """Evaluate variable by looking up in environment"""
  value = env_lookup(env, exp.name)
  if value is None:
    return ExnVal(NO_MATCH)
  return value


def eval_int_op(exp: IntOpExp, env: Env, debug: bool = False) -> Val:
  """Evaluate integer arithmetic"""
  # Literal zero divisor: neither operand is evaluated
  if exp.op == '/' and exp.right == IntExp(0):
    return ExnVal(DIVISION_BY_ZERO)

  op = INT_OPS.get(exp.op)
  if op is None:
    return ExnVal(NO_MATCH)

  left = eval_exp(exp.left, env, debug)
  right = eval_exp(exp.right, env, debug)

  # Divisor that only evaluates to zero
  if exp.op == '/' and isinstance(left, IntVal) and right == IntVal(0):
    return ExnVal(DIVISION_BY_ZERO)

  return lift_int_op(op, left, right)


def eval_bool_op(exp: BoolOpExp, env: Env, debug: bool = False) -> Val:
  """Evaluate `and` / `or`; both operands are always evaluated"""
  op = BOOL_OPS.get(exp.op)
  if op is None:
    return ExnVal(NO_MATCH)
  return lift_bool_op(op, eval_exp(exp.left, env, debug), eval_exp(exp.right, env, debug))


def eval_comp_op(exp: CompOpExp, env: Env, debug: bool = False) -> Val:
  """Evaluate integer comparison"""
  op = COMP_OPS.get(exp.op)
  if op is None:
    return ExnVal(NO_MATCH)
  return lift_comp_op(op, eval_exp(exp.left, env, debug), eval_exp(exp.right, env, debug))


def eval_if(exp: IfExp, env: Env, debug: bool = False) -> Val:
  """Evaluate if-expression; the condition must be exactly a BoolVal"""
  cond = eval_exp(exp.cond, env, debug)
  if cond == BoolVal(True):
    return eval_exp(exp.then, env, debug)
  elif cond == BoolVal(False):
    return eval_exp(exp.orelse, env, debug)
  return ExnVal(NOT_A_BOOL)


def eval_app(exp: AppExp, env: Env, debug: bool = False) -> Val:
  """Evaluate function application

  Arguments are evaluated left to right in the caller's environment and bound
  on top of the closure's captured environment.
  """
  fn = eval_exp(exp.fn, env, debug)
  if not isinstance(fn, CloVal):
    return ExnVal(NOT_A_CLOSURE)

  args = [eval_exp(arg, env, debug) for arg in exp.args]
  call_env = bind_params(fn.env, fn.params, args)
  if call_env is None:
    return ExnVal(ARITY_MISMATCH)

  return eval_exp(fn.body, call_env, debug)


def eval_let(exp: LetExp, env: Env, debug: bool = False) -> Val:
  """Evaluate let: every initializer sees the outer env, bindings land together"""
  bindings = [(name, eval_exp(init, env, debug)) for name, init in exp.bindings]
  return eval_exp(exp.body, env_bind_many(env, bindings), debug)


# ============================================================================
# STATEMENTS
# ============================================================================

def exec_stmt(stmt: Stmt, penv: PEnv, env: Env, debug: bool = False) -> Result:
  """
  Execute a statement and return (output, new_penv, new_env).
  The input environments are never modified.
  """
  if debug:
    print(f"Executing: {type(stmt).__name__}")

  if isinstance(stmt, PrintStmt):
    return show_value(eval_exp(stmt.exp, env, debug)), penv, env
  elif isinstance(stmt, SetStmt):
    return "", penv, env_bind(env, stmt.name, eval_exp(stmt.exp, env, debug))
  elif isinstance(stmt, IfStmt):
    return exec_if(stmt, penv, env, debug)
  elif isinstance(stmt, SeqStmt):
    return exec_seq(stmt, penv, env, debug)
  elif isinstance(stmt, ProcedureStmt):
    return "", env_bind(penv, stmt.name, stmt), env
  elif isinstance(stmt, CallStmt):
    return exec_call(stmt, penv, env, debug)
  elif isinstance(stmt, QuitStmt):
    # Ending the session is up to the driver
    return "", penv, env
  else:
    return show_value(ExnVal(f"Unknown statement: {type(stmt).__name__}")), penv, env


def exec_if(stmt: IfStmt, penv: PEnv, env: Env, debug: bool = False) -> Result:
  """Execute if-statement with the same Bool discipline as if-expressions"""
  cond = eval_exp(stmt.cond, env, debug)
  if cond == BoolVal(True):
    return exec_stmt(stmt.then, penv, env, debug)
  elif cond == BoolVal(False):
    return exec_stmt(stmt.orelse, penv, env, debug)
  return show_value(ExnVal(NOT_A_BOOL)), penv, env


def exec_seq(stmt: SeqStmt, penv: PEnv, env: Env, debug: bool = False) -> Result:
  """Execute statements in order, threading environments; outputs concatenate"""
  outputs = []
  for step in stmt.stmts:
    output, penv, env = exec_stmt(step, penv, env, debug)
    outputs.append(output)
  return "".join(outputs), penv, env


def exec_call(stmt: CallStmt, penv: PEnv, env: Env, debug: bool = False) -> Result:
  """Call a procedure

  Procedures capture nothing: the body runs in the caller's environment
  extended with the parameters, against the same procedure environment.
  """
  proc = env_lookup(penv, stmt.name)
  if proc is None:
    return f"Procedure {stmt.name} undefined", penv, env

  args = [eval_exp(arg, env, debug) for arg in stmt.args]
  call_env = bind_params(env, proc.params, args)
  if call_env is None:
    return show_value(ExnVal(ARITY_MISMATCH)), penv, env

  return exec_stmt(proc.body, penv, call_env, debug)


# ============================================================================
# SESSIONS
# ============================================================================

class RillInterpreter:
  """An interpreter session owning the current procedure and value environments"""

  def __init__(self, debug: bool = False, parser: Optional[RillParser] = None):
    self.debug = debug
    self.parser = parser or create_parser(debug)
    self.penv: PEnv = make_env()
    self.env: Env = make_env()
    self.finished = False

  def execute(self, stmt: Stmt) -> str:
    """Execute one top-level statement and adopt the environments it returns"""
    if isinstance(stmt, QuitStmt):
      self.finished = True
      return FAREWELL

    try:
      output, penv, env = exec_stmt(stmt, self.penv, self.env, self.debug)
    except RecursionError as e:
      raise RillRuntimeError("maximum recursion depth exceeded", unparse_stmt(stmt)) from e

    self.penv, self.env = penv, env
    return output

  def run(self, text: str, filename: str = "<input>") -> List[str]:
    """Parse text as a program and execute it, stopping at a top-level quit"""
    outputs = []
    for stmt in self.parser.parse_string(text, filename):
      outputs.append(self.execute(stmt))
      if self.finished:
        break
    return outputs

  def run_file(self, filepath: str) -> List[str]:
    """Parse and execute a Rill source file"""
    outputs = []
    for stmt in self.parser.parse_file(filepath):
      outputs.append(self.execute(stmt))
      if self.finished:
        break
    return outputs


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter(debug: bool = False) -> RillInterpreter:
  """Factory function returning an interpreter session"""
  return RillInterpreter(debug=debug)


def create_debug_interpreter() -> RillInterpreter:
  """Factory function returning a debug interpreter session"""
  return create_interpreter(debug=True)
