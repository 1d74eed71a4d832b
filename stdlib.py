"""
Rill Standard Library
Runtime values, primitive operator tables, lifting and value rendering
"""

from typing import Dict, Callable, Tuple, Union, Mapping
from dataclasses import dataclass, field
import operator

from parsing import Exp, IntExp, BoolExp, unparse_exp
from utilities import wrap_int


# ============================================================================
# VALUES
# ============================================================================

@dataclass(frozen=True)
class IntVal:
  value: int


@dataclass(frozen=True)
class BoolVal:
  value: bool


@dataclass(frozen=True)
class CloVal:
  """Closure: parameters, body and a snapshot of the defining environment

  The environment takes part in equality but not in the hash.
  """
  params: Tuple[str, ...]
  body: Exp
  env: Mapping[str, 'Val'] = field(hash=False)


@dataclass(frozen=True)
class ExnVal:
  """A runtime fault carried as an ordinary value"""
  message: str


Val = Union[IntVal, BoolVal, CloVal, ExnVal]


DIVISION_BY_ZERO = "Division by 0"
NO_MATCH = "No match in env"
CANNOT_LIFT = "Cannot lift"
NOT_A_BOOL = "Condition is not a Bool"
NOT_A_CLOSURE = "Apply to non-closure"
ARITY_MISMATCH = "Argument count mismatch"


# ============================================================================
# PRIMITIVE OPERATORS
# ============================================================================

INT_OPS: Dict[str, Callable[[int, int], int]] = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.floordiv,
}

BOOL_OPS: Dict[str, Callable[[bool, bool], bool]] = {
    'and': lambda x, y: x and y,
    'or': lambda x, y: x or y,
}

COMP_OPS: Dict[str, Callable[[int, int], bool]] = {
    '<': operator.lt,
    '>': operator.gt,
    '<=': operator.le,
    '>=': operator.ge,
    '/=': operator.ne,
    '==': operator.eq,
}


def lift_int_op(op: Callable[[int, int], int], x: Val, y: Val) -> Val:
  """Apply an integer operator to two IntVals, wrapping to 64 bits"""
  if isinstance(x, IntVal) and isinstance(y, IntVal):
    return IntVal(wrap_int(op(x.value, y.value)))
  return ExnVal(CANNOT_LIFT)


def lift_bool_op(op: Callable[[bool, bool], bool], x: Val, y: Val) -> Val:
  """Apply a boolean connective to two BoolVals"""
  if isinstance(x, BoolVal) and isinstance(y, BoolVal):
    return BoolVal(op(x.value, y.value))
  return ExnVal(CANNOT_LIFT)


def lift_comp_op(op: Callable[[int, int], bool], x: Val, y: Val) -> Val:
  """Compare two IntVals"""
  if isinstance(x, IntVal) and isinstance(y, IntVal):
    return BoolVal(op(x.value, y.value))
  return ExnVal(CANNOT_LIFT)


# ============================================================================
# RENDERING
# ============================================================================

def show_value(value: Val) -> str:
  """Render a value the way `print` shows it

  Integers in decimal, booleans as True/False, exceptions as `exn: <message>`,
  closures as `<[params], body source, {name: value, ...}>`.
  """
  if isinstance(value, IntVal):
    return str(value.value)
  elif isinstance(value, BoolVal):
    return "True" if value.value else "False"
  elif isinstance(value, ExnVal):
    return f"exn: {value.message}"
  elif isinstance(value, CloVal):
    return (f"<[{', '.join(value.params)}], {unparse_exp(value.body)}, "
            f"{show_env(value.env)}>")
  raise TypeError(f"Not a Rill value: {value!r}")


def show_env(env: Mapping[str, Val]) -> str:
  """Render an environment as {name: value, ...} in binding order"""
  return "{" + ", ".join(f"{name}: {show_value(val)}" for name, val in env.items()) + "}"


def value_to_literal(value: Val) -> Exp:
  """Literal expression that evaluates back to an integer or boolean value"""
  if isinstance(value, IntVal):
    return IntExp(value.value)
  elif isinstance(value, BoolVal):
    return BoolExp(value.value)
  raise TypeError(f"No literal form for {show_value(value)}")
