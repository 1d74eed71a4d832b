"""
Utilities module for the Rill interpreter
Persistent environment operations: every update returns a new mapping
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, TypeVar


T = TypeVar('T')


# ==================== ENVIRONMENT OPERATIONS ====================

def make_env(bindings: Optional[Dict[str, T]] = None) -> Dict[str, T]:
  """Create a fresh environment (value or procedure)"""
  return dict(bindings or {})


def env_bind(env: Dict[str, T], name: str, value: T) -> Dict[str, T]:
  """Return new environment with name bound to value"""
  return {**env, name: value}


def env_bind_many(env: Dict[str, T], pairs: Sequence[Tuple[str, T]]) -> Dict[str, T]:
  """
  Return new environment extended with all pairs at once

  Args:
    env: Environment to extend (left untouched)
    pairs: (name, value) pairs; a later duplicate name wins

  Returns:
    The extended environment
  """
  return {**env, **dict(pairs)}


def env_lookup(env: Dict[str, T], name: str) -> Optional[T]:
  """Look up a name, None when unbound"""
  return env.get(name)


# ==================== INTEGERS ====================

INT_BITS = 64
INT_MIN = -2 ** (INT_BITS - 1)
INT_MAX = 2 ** (INT_BITS - 1) - 1


def wrap_int(value: int) -> int:
  """Wrap an integer into signed 64-bit range (two's complement)"""
  return ((value - INT_MIN) % 2 ** INT_BITS) + INT_MIN


def parse_int_literal(digits: str) -> int:
  """
  Read a decimal literal of any length as a wrapped 64-bit integer

  10**64 is a multiple of 2**64, so only the last 64 digits matter and
  int() never sees an oversized string.
  """
  return wrap_int(int(digits[-64:]))


# ==================== PARAMETER BINDING ====================

def zip_params(params: Sequence[str], args: List[Any]) -> Optional[List[Tuple[str, Any]]]:
  """
  Pair parameters with arguments positionally

  Args:
    params: Parameter names
    args: Evaluated arguments

  Returns:
    (name, value) pairs, or None when there are fewer arguments than
    parameters. Arguments beyond the last parameter are dropped.

  Examples:
    zip_params(["x", "y"], [1, 2]) -> [("x", 1), ("y", 2)]
    zip_params(["x"], [1, 2]) -> [("x", 1)]
    zip_params(["x", "y"], [1]) -> None
  """
  if len(args) < len(params):
    return None
  return list(zip(params, args))


def bind_params(env: Dict[str, T], params: Sequence[str], args: List[T]) -> Optional[Dict[str, T]]:
  """Extend env with positional parameter bindings; None on an arity mismatch"""
  pairs = zip_params(params, args)
  if pairs is None:
    return None
  return env_bind_many(env, pairs)
