"""
Expression evaluation tests for the Rill interpreter
"""

import pytest
from parsing import parse_expr, unparse_exp, IntOpExp, VarExp, IntExp, AppExp
from utilities import INT_MIN, INT_MAX
from interpreter import eval_exp
from stdlib import IntVal, BoolVal, CloVal, ExnVal, show_value, value_to_literal


def evaluate(source, env=None):
  exp, rest = parse_expr(source)
  assert rest == ""
  return eval_exp(exp, env or {})


class TestArithmetic:
  """Integer and boolean operators"""

  def test_precedence(self):
    assert evaluate("1 + 2 * 3") == IntVal(7)

  def test_left_associative(self):
    assert evaluate("20 - 5 - 3") == IntVal(12)

  def test_division_floors(self):
    assert evaluate("7 / 2") == IntVal(3)

  def test_comparisons(self):
    assert evaluate("3 <= 3") == BoolVal(True)
    assert evaluate("3 >= 4") == BoolVal(False)
    assert evaluate("3 /= 3") == BoolVal(False)
    assert evaluate("3 == 3") == BoolVal(True)

  def test_boolean_connectives(self):
    assert evaluate("true and false") == BoolVal(False)
    assert evaluate("false or true") == BoolVal(True)

  def test_variable_lookup(self):
    assert evaluate("x * x", {'x': IntVal(4)}) == IntVal(16)


class TestIntegerRange:
  """Integers are signed 64-bit and wrap on overflow"""

  def test_addition_wraps(self):
    assert evaluate("9223372036854775807 + 1") == IntVal(INT_MIN)

  def test_subtraction_wraps(self):
    assert evaluate("(0 - 9223372036854775807) - 2") == IntVal(INT_MAX)

  def test_multiplication_wraps(self):
    assert evaluate("4294967296 * 4294967296") == IntVal(0)

  def test_min_divided_by_minus_one(self):
    assert evaluate("x / (0 - 1)", {'x': IntVal(INT_MIN)}) == IntVal(INT_MIN)

  def test_out_of_range_literal_wraps(self):
    assert evaluate("9223372036854775808") == IntVal(INT_MIN)
    assert evaluate("18446744073709551617") == IntVal(1)

  def test_very_long_literal(self):
    value = evaluate("9" * 5000)
    assert isinstance(value, IntVal)
    assert value == IntVal(-1)
    assert show_value(value) == "-1"


class TestFaults:
  """Faults come back as exception values"""

  def test_literal_zero_divisor(self):
    assert evaluate("5 / 0") == ExnVal("Division by 0")

  def test_literal_zero_divisor_skips_dividend(self):
    assert evaluate("nothing / 0") == ExnVal("Division by 0")

  def test_computed_zero_divisor(self):
    assert evaluate("5 / (1 - 1)") == ExnVal("Division by 0")

  def test_unbound_variable(self):
    assert evaluate("x") == ExnVal("No match in env")

  def test_cannot_lift(self):
    assert evaluate("1 + true") == ExnVal("Cannot lift")
    assert evaluate("1 and true") == ExnVal("Cannot lift")
    assert evaluate("true < 2") == ExnVal("Cannot lift")

  def test_no_short_circuit(self):
    assert evaluate("false and 1") == ExnVal("Cannot lift")

  def test_condition_not_bool(self):
    assert evaluate("if 1 then 2 else 3 fi") == ExnVal("Condition is not a Bool")

  def test_apply_non_closure(self):
    assert evaluate("apply 3 (1)") == ExnVal("Apply to non-closure")

  def test_too_few_arguments(self):
    assert evaluate("apply fn [x, y] x end (1)") == ExnVal("Argument count mismatch")

  def test_extra_arguments_dropped(self):
    assert evaluate("apply fn [x] x end (1, 2)") == IntVal(1)

  def test_fault_propagates_as_operand(self):
    assert evaluate("(5 / 0) + 1") == ExnVal("Cannot lift")


class TestClosures:
  """Closures, application and let"""

  def test_closure_captures_environment(self):
    env = {'y': IntVal(10)}
    value = evaluate("fn [x] x + y end", env)
    assert value == CloVal(('x',), IntOpExp('+', VarExp('x'), VarExp('y')), env)

  def test_application_uses_captured_environment(self):
    source = "let [f := let [y := 10] fn [x] x + y end end; y := 1] apply f (5) end"
    assert evaluate(source) == IntVal(15)

  def test_currying(self):
    assert evaluate("apply apply fn [a] fn [b] a - b end end (10) (3)") == IntVal(7)

  def test_self_application_recursion(self):
    source = ("let [fact := fn [f, n] if n == 0 then 1 else n * apply f (f, n - 1) fi end] "
              "apply fact (fact, 5) end")
    assert evaluate(source) == IntVal(120)

  def test_let_initializers_see_outer_scope(self):
    assert evaluate("let [x := 5; y := x] y end", {'x': IntVal(1)}) == IntVal(1)

  def test_let_body_sees_bindings(self):
    assert evaluate("let [a := 2; b := 3] a * b end") == IntVal(6)

  def test_let_binding_not_visible_outside(self):
    assert evaluate("let [t := 1] t end + t") == ExnVal("Cannot lift")
    assert evaluate("let [t := 1] t end") == IntVal(1)

  def test_let_is_deterministic(self):
    env = {'x': IntVal(2)}
    snapshot = dict(env)
    exp, _ = parse_expr("let [x := x * 10; y := x] x + y end")
    first = eval_exp(exp, env)
    second = eval_exp(exp, env)
    assert first == second == IntVal(22)
    assert env == snapshot

  def test_zero_parameter_closure_uses_captured_env(self):
    closure = CloVal((), VarExp('y'), {'y': IntVal(1)})
    env = {'f': closure, 'y': IntVal(2)}
    assert eval_exp(AppExp(VarExp('f'), ()), env) == IntVal(1)

  def test_zero_parameter_closure_ignores_caller_env(self):
    closure = CloVal((), VarExp('z'), {})
    env = {'f': closure, 'z': IntVal(3)}
    assert eval_exp(AppExp(VarExp('f'), ()), env) == ExnVal("No match in env")

  def test_closures_are_hashable(self):
    body = IntOpExp('+', VarExp('x'), IntExp(1))
    first = CloVal(('x',), body, {'y': IntVal(1)})
    second = CloVal(('x',), body, {'y': IntVal(1)})
    assert first == second
    assert hash(first) == hash(second)
    assert len({first, second}) == 1
    assert first != CloVal(('x',), body, {'y': IntVal(2)})

  def test_if_expression(self):
    assert evaluate("if 1 < 2 then 10 else 20 fi") == IntVal(10)

  def test_debug_trace(self, capsys):
    exp, _ = parse_expr("1 + 2")
    assert eval_exp(exp, {}, debug=True) == IntVal(3)
    out = capsys.readouterr().out
    assert "Evaluating: IntOpExp" in out
    assert "Evaluating: IntExp" in out


class TestRendering:
  """Printed form of values"""

  def test_scalars(self):
    assert show_value(IntVal(-3)) == "-3"
    assert show_value(BoolVal(True)) == "True"
    assert show_value(BoolVal(False)) == "False"

  def test_exception(self):
    assert show_value(ExnVal("Division by 0")) == "exn: Division by 0"

  def test_closure(self):
    value = evaluate("fn [x, y] x + y end", {'z': IntVal(1)})
    assert show_value(value) == "<[x, y], x + y, {z: 1}>"

  @pytest.mark.parametrize("value", [IntVal(0), IntVal(42), IntVal(-5), IntVal(INT_MAX), IntVal(INT_MIN), BoolVal(True), BoolVal(False)])
  def test_literal_round_trip(self, value):
    exp, _ = parse_expr(unparse_exp(value_to_literal(value)))
    assert eval_exp(exp, {}) == value

  def test_no_literal_for_closure(self):
    with pytest.raises(TypeError):
      value_to_literal(CloVal((), IntExp(1), {}))
