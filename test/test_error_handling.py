"""
Tests for parse error reporting
"""

import pytest
from pyparsing import ParseException

from parsing import create_parser
from error_handling import (
    RillParseError, RillErrorHandler, format_parse_error, make_parse_error,
    get_context_lines, extract_got, generate_suggestions
)


class TestFormatting:
  """Formatted parse error reports"""

  def test_report_with_position(self):
    error = make_parse_error("Expected ';'", 7, 1, 8, expected=["';'"], got="end of input",
                             filename="prog.rill")
    report = format_parse_error(error)
    assert report.startswith("Parse error in prog.rill at line 1, column 8:")
    assert "Expected: ';'" in report
    assert "Got: end of input" in report

  def test_report_without_position(self):
    assert str(RillParseError("File not found: x.rill")) == "Parse error in <input>:\n  File not found: x.rill"

  def test_context_lines(self):
    context = get_context_lines("a\nb\nc", 2, 1)
    assert "   2: b" in context
    assert "^ Error here" in context

  def test_got_at_end_of_input(self):
    assert extract_got("print 1", 1, 8) == "end of input"
    assert extract_got("print 1", 1, 7) == "'1'"


class TestSuggestions:
  """Hints attached to common mistakes"""

  def test_assignment_operator(self):
    exc = ParseException("x = 1;", 2, "Expected ':='")
    suggestions = generate_suggestions(exc, "'= 1;'", ["':='"])
    assert any(":=" in s for s in suggestions)

  def test_missing_terminator(self):
    exc = ParseException("print 1", 7, "Expected ';'")
    suggestions = generate_suggestions(exc, "end of input", ["';'"])
    assert any("';'" in s for s in suggestions)

  def test_negative_literal(self):
    exc = ParseException("print -1;", 6, "Expected an expression")
    suggestions = generate_suggestions(exc, "'-1;'", ["an expression"])
    assert any("0 - n" in s for s in suggestions)


class TestEnhancedErrors:
  """pyparsing failures become RillParseErrors"""

  def test_handler_converts_exception(self):
    exc = ParseException("x := ;", 5, "Expected an expression")
    error = RillErrorHandler("x := ;", "prog.rill").enhance_parse_exception(exc)
    assert isinstance(error, RillParseError)
    assert error.line == 1
    assert error.column == 6
    assert error.expected == ["an expression"]
    assert error.got == "';'"
    assert error.filename == "prog.rill"

  def test_parser_reports_filename(self):
    with pytest.raises(RillParseError) as info:
      create_parser().parse_string("print 1", "prog.rill")
    assert "prog.rill" in str(info.value)
    assert info.value.line == 1
