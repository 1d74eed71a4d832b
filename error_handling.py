"""
Error handling for the Rill parser and interpreter
Parse errors are enriched from pyparsing exceptions; evaluation faults are
Rill values (ExnVal), so only host failures surface as RillRuntimeError
"""

from typing import List, Optional, Dict
from pyparsing import ParseBaseException


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    location: int,
    line: int,
    column: int,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None,
    filename: str = "<input>"
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'expected': expected or [],
        'got': got,
        'context': context,
        'suggestions': suggestions or [],
        'filename': filename
    }


def format_parse_error(error: Dict) -> str:
    """Format parse error as string"""
    if error['line']:
        error_msg = f"Parse error in {error['filename']} at line {error['line']}, column {error['column']}:\n"
    else:
        error_msg = f"Parse error in {error['filename']}:\n"
    error_msg += f"  {error['message']}\n"

    if error['expected']:
        error_msg += f"  Expected: {', '.join(error['expected'])}\n"

    if error['got']:
        error_msg += f"  Got: {error['got']}\n"

    if error['context']:
        error_msg += f"  Context:\n{error['context']}\n"

    if error['suggestions']:
        error_msg += "  Suggestions:\n"
        for suggestion in error['suggestions']:
            error_msg += f"    - {suggestion}\n"

    return error_msg.rstrip('\n')


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:  # Error line
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^ Error here")

    return '\n'.join(context_parts)


def extract_expected(exc: ParseBaseException) -> List[str]:
    """Extract the expected construct from a pyparsing exception"""
    msg = exc.msg or ""
    if msg.startswith("Expected "):
        return [msg[len("Expected "):]]
    if msg.startswith("Found unwanted token"):
        return ["an identifier (not a reserved word)"]
    return ["valid syntax"]


def extract_got(source_text: str, line_num: int, col_num: int) -> str:
    """Extract what was actually found at the error location"""
    lines = source_text.split('\n')

    if line_num <= len(lines):
        error_line = lines[line_num - 1]
        if col_num <= len(error_line):
            # Get a few characters around the error position
            start = max(0, col_num - 1)
            end = min(len(error_line), col_num + 10)
            got_text = error_line[start:end].strip()
            if got_text:
                return f"'{got_text}'"
        if line_num == len(lines):
            return "end of input"
        return "end of line"
    return "end of input"


def generate_suggestions(exc: ParseBaseException, got: str, expected: List[str]) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []
    wanted = " ".join(expected)

    if "unwanted token" in (exc.msg or ""):
        suggestions.append("Reserved words (fn, end, if, let, do, od, ...) cannot be used as names")

    if "';'" in wanted:
        suggestions.append("print, call, quit, assignments and do ... od end with ';'")

    if "'fi'" in wanted:
        suggestions.append("Close 'if ... then ... else ...' with 'fi'")

    if "'endproc'" in wanted:
        suggestions.append("Close a procedure body with 'endproc'")

    if "'od'" in wanted:
        suggestions.append("Close a do block with 'od;'")

    if "'end'" in wanted:
        suggestions.append("Close 'fn [...] body' and 'let [...] body' with 'end'")

    if got.startswith("'=") and not got.startswith("'=="):
        suggestions.append("Use ':=' for assignment and '==' for equality")

    if got.startswith("'-"):
        suggestions.append("There are no negative literals - write 0 - n")

    return suggestions


def enhance_parse_exception_dict(exc: ParseBaseException, source_text: str, filename: str = "<input>") -> Dict:
    """Convert pyparsing exception to enhanced Rill error dict"""
    line_num = exc.lineno
    col_num = exc.column

    # Get context around the error
    context = get_context_lines(source_text, line_num, col_num)

    # Extract what was expected
    expected = extract_expected(exc)

    # Extract what was actually found
    got = extract_got(source_text, line_num, col_num)

    # Generate suggestions
    suggestions = generate_suggestions(exc, got, expected)

    return make_parse_error(
        message=str(exc),
        location=exc.loc,
        line=line_num,
        column=col_num,
        expected=expected,
        got=got,
        context=context,
        suggestions=suggestions,
        filename=filename
    )


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class RillParseError(Exception):
    """Structural failure while consuming Rill source text"""
    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None,
                 filename: str = "<input>"):
        self.message = message
        self.location = location
        self.line = line
        self.column = column
        self.expected = expected or []
        self.got = got
        self.context = context
        self.suggestions = suggestions or []
        self.filename = filename
        super().__init__(message)

    def __str__(self) -> str:
        error_dict = make_parse_error(
            self.message, self.location, self.line, self.column,
            self.expected, self.got, self.context, self.suggestions, self.filename
        )
        return format_parse_error(error_dict)


class RillRuntimeError(Exception):
    """Host-level failure while running a statement (e.g. recursion exhaustion)"""
    def __init__(self, message: str, source_line: Optional[str] = None):
        self.message = message
        self.source_line = source_line
        super().__init__(message)


class RillErrorHandler:
    """Builds RillParseErrors for one source text"""
    def __init__(self, source_text: str, filename: str = "<input>"):
        self.source_text = source_text
        self.filename = filename
        self.lines = source_text.split('\n')

    def enhance_parse_exception(self, exc: ParseBaseException) -> RillParseError:
        """Convert pyparsing exception to enhanced Rill error"""
        error_dict = enhance_parse_exception_dict(exc, self.source_text, self.filename)
        return RillParseError(
            message=error_dict['message'],
            location=error_dict['location'],
            line=error_dict['line'],
            column=error_dict['column'],
            expected=error_dict['expected'],
            got=error_dict['got'],
            context=error_dict['context'],
            suggestions=error_dict['suggestions'],
            filename=error_dict['filename']
        )
