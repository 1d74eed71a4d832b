"""
Rill Programming Language Parser
pyparsing grammar for Rill expressions and statements, the AST it builds,
and an unparser that renders trees back to Rill source
"""

from typing import List, Tuple, Union, Any
from dataclasses import dataclass, fields, is_dataclass

# Import pyparsing with error handling
try:
    from pyparsing import (
        Word, alphas, nums, Optional as PyParsingOptional, ZeroOrMore, OneOrMore,
        Literal, Forward, Group, Keyword, MatchFirst, Regex, Suppress, Empty,
        StringEnd, DelimitedList, ParseBaseException, ParserElement
    )
    # Enable packrat parsing for performance
    ParserElement.enable_packrat()
except ImportError:
    raise ImportError("pyparsing library not found. Install with: pip install pyparsing")

from error_handling import RillErrorHandler, RillParseError
from utilities import parse_int_literal


# ============================================================================
# EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class IntExp:
    value: int


@dataclass(frozen=True)
class BoolExp:
    value: bool


@dataclass(frozen=True)
class FunExp:
    params: Tuple[str, ...]
    body: 'Exp'


@dataclass(frozen=True)
class LetExp:
    bindings: Tuple[Tuple[str, 'Exp'], ...]
    body: 'Exp'


@dataclass(frozen=True)
class AppExp:
    fn: 'Exp'
    args: Tuple['Exp', ...]


@dataclass(frozen=True)
class IfExp:
    cond: 'Exp'
    then: 'Exp'
    orelse: 'Exp'


@dataclass(frozen=True)
class IntOpExp:
    op: str
    left: 'Exp'
    right: 'Exp'


@dataclass(frozen=True)
class BoolOpExp:
    op: str
    left: 'Exp'
    right: 'Exp'


@dataclass(frozen=True)
class CompOpExp:
    op: str
    left: 'Exp'
    right: 'Exp'


@dataclass(frozen=True)
class VarExp:
    name: str


Exp = Union[IntExp, BoolExp, FunExp, LetExp, AppExp, IfExp,
            IntOpExp, BoolOpExp, CompOpExp, VarExp]


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class SetStmt:
    name: str
    exp: Exp


@dataclass(frozen=True)
class PrintStmt:
    exp: Exp


@dataclass(frozen=True)
class QuitStmt:
    pass


@dataclass(frozen=True)
class IfStmt:
    cond: Exp
    then: 'Stmt'
    orelse: 'Stmt'


@dataclass(frozen=True)
class ProcedureStmt:
    name: str
    params: Tuple[str, ...]
    body: 'Stmt'


@dataclass(frozen=True)
class CallStmt:
    name: str
    args: Tuple[Exp, ...]


@dataclass(frozen=True)
class SeqStmt:
    stmts: Tuple['Stmt', ...]


Stmt = Union[SetStmt, PrintStmt, QuitStmt, IfStmt, ProcedureStmt, CallStmt, SeqStmt]


KEYWORDS = (
    "fn", "end", "if", "then", "else", "fi", "let", "apply", "true", "false",
    "quit", "print", "procedure", "endproc", "call", "do", "od", "and", "or",
)

COMMENT_MARKER = "--"


def _fold_left(node_type):
    """Parse action folding `a op b op c` into `(a op b) op c`"""
    def fold(tokens):
        items = list(tokens)
        result = items[0]
        for index in range(1, len(items), 2):
            result = node_type(items[index], result, items[index + 1])
        return result
    return fold


class RillGrammar:
    """Rill grammar definition using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_grammar()

    def _setup_grammar(self):
        """Setup the Rill grammar, leaf tokens first"""

        # Forward declarations for recursive structures
        expression = Forward()
        statement = Forward()

        def kw(word: str) -> ParserElement:
            return Suppress(Keyword(word))

        def sym(text: str) -> ParserElement:
            return Suppress(Literal(text))

        # Lexicals. Keywords match whole words only, so `trueish` and `android`
        # stay identifiers, and reserved words are never identifiers.
        reserved = MatchFirst([Keyword(word) for word in KEYWORDS])
        integer = Word(nums).set_name("an integer")
        identifier = (~reserved + Word(alphas).set_name("an identifier")).set_name("an identifier")

        param_list = Group(PyParsingOptional(DelimitedList(identifier, ",")))
        arg_list = Group(PyParsingOptional(DelimitedList(expression, ",")))

        # Atoms
        int_exp = integer.set_parse_action(lambda t: IntExp(parse_int_literal(t[0])))

        fun_exp = (
            kw("fn") + sym("[") + param_list + sym("]") + expression + kw("end")
        ).set_parse_action(lambda t: FunExp(tuple(t[0]), t[1]))

        if_exp = (
            kw("if") + expression + kw("then") + expression +
            kw("else") + expression + kw("fi")
        ).set_parse_action(lambda t: IfExp(t[0], t[1], t[2]))

        let_binding = Group(identifier + sym(":=") + expression)
        let_exp = (
            kw("let") + sym("[") + Group(PyParsingOptional(DelimitedList(let_binding, ";"))) +
            sym("]") + expression + kw("end")
        ).set_parse_action(lambda t: LetExp(tuple((b[0], b[1]) for b in t[0]), t[1]))

        bool_exp = (Keyword("true") | Keyword("false")).set_parse_action(
            lambda t: BoolExp(t[0] == "true")
        )

        app_exp = (
            kw("apply") + expression + sym("(") + arg_list + sym(")")
        ).set_parse_action(lambda t: AppExp(t[0], tuple(t[1])))

        var_exp = identifier.copy().set_parse_action(lambda t: VarExp(t[0]))

        paren_exp = sym("(") + expression + sym(")")

        atom = (
            int_exp | fun_exp | if_exp | let_exp | bool_exp | app_exp | var_exp | paren_exp
        ).set_name("an expression")

        # Operators. Two-character operators come before their one-character
        # prefixes, and `/` never eats the first half of `/=`.
        mul_op = Literal("*") | Regex(r"/(?!=)").set_name("'/'")
        add_op = Literal("+") | Literal("-")
        comp_op = (
            Literal("<=") | Literal(">=") | Literal("/=") | Literal("==") |
            Literal("<") | Literal(">")
        )
        and_op = Keyword("and")
        or_op = Keyword("or")

        # Precedence levels, each an iterative left fold
        term = (atom + ZeroOrMore(mul_op + atom)).set_parse_action(_fold_left(IntOpExp))
        arith = (term + ZeroOrMore(add_op + term)).set_parse_action(_fold_left(IntOpExp))
        comparison = (arith + ZeroOrMore(comp_op + arith)).set_parse_action(_fold_left(CompOpExp))
        conjunction = (comparison + ZeroOrMore(and_op + comparison)).set_parse_action(_fold_left(BoolOpExp))
        disjunction = (conjunction + ZeroOrMore(or_op + conjunction)).set_parse_action(_fold_left(BoolOpExp))

        expression <<= disjunction

        # Statements
        quit_stmt = (kw("quit") + sym(";")).set_parse_action(lambda t: QuitStmt())

        print_stmt = (kw("print") + expression + sym(";")).set_parse_action(lambda t: PrintStmt(t[0]))

        if_stmt = (
            kw("if") + expression + kw("then") + statement +
            kw("else") + statement + kw("fi")
        ).set_parse_action(lambda t: IfStmt(t[0], t[1], t[2]))

        proc_stmt = (
            kw("procedure") + identifier + sym("(") + param_list + sym(")") +
            statement + kw("endproc")
        ).set_parse_action(lambda t: ProcedureStmt(t[0], tuple(t[1]), t[2]))

        call_stmt = (
            kw("call") + identifier + sym("(") + arg_list + sym(")") + sym(";")
        ).set_parse_action(lambda t: CallStmt(t[0], tuple(t[1])))

        seq_stmt = (
            kw("do") + Group(OneOrMore(statement)) + kw("od") + sym(";")
        ).set_parse_action(lambda t: SeqStmt(tuple(t[0])))

        # No leading keyword, so assignment is tried last
        set_stmt = (
            identifier + sym(":=") + expression + sym(";")
        ).set_parse_action(lambda t: SetStmt(t[0], t[1]))

        statement <<= (
            quit_stmt | print_stmt | if_stmt | proc_stmt | call_stmt | seq_stmt | set_stmt
        ).set_name("a statement")

        program = ZeroOrMore(statement) + StringEnd()

        # Reports where a prefix parse stopped (after trailing whitespace)
        position = Empty().set_parse_action(lambda s, loc, t: loc)

        # Store the main parsers
        self.expression = expression
        self.statement = statement
        self.program = program
        self._expression_prefix = expression + position
        self._statement_prefix = statement + position

    def _parse(self, element: ParserElement, text: str, filename: str, parse_all: bool = False):
        """Run a pyparsing element, converting its failures into RillParseErrors"""
        try:
            return element.parse_string(text, parse_all=parse_all)
        except ParseBaseException as e:
            raise RillErrorHandler(text, filename).enhance_parse_exception(e) from e
        except RecursionError as e:
            raise RillParseError(
                "Input nested too deeply: maximum recursion depth exceeded",
                expected=["less deeply nested input"],
                filename=filename,
            ) from e

    def parse_expr(self, text: str, filename: str = "<input>") -> Tuple[Exp, str]:
        """Parse one expression from the front of text, returning it with the unconsumed rest"""
        result = self._parse(self._expression_prefix, text, filename)
        return result[0], text[result[-1]:]

    def parse_stmt(self, text: str, filename: str = "<input>") -> Tuple[Stmt, str]:
        """Parse one statement from the front of text, returning it with the unconsumed rest"""
        result = self._parse(self._statement_prefix, text, filename)
        return result[0], text[result[-1]:]

    def parse_program(self, text: str, filename: str = "<input>") -> List[Stmt]:
        """Parse a complete Rill program: every statement in text, in order"""
        preprocessed_text = self._preprocess_text(text)

        # Handle empty programs (e.g., files with only comments)
        if not preprocessed_text.strip():
            return []

        return list(self._parse(self.program, preprocessed_text, filename, parse_all=True))

    def _preprocess_text(self, text: str) -> str:
        """Blank out `--` comments, keeping line and column positions intact"""
        lines = text.split('\n')
        processed_lines = []

        for line in lines:
            if COMMENT_MARKER in line:
                line = line[:line.index(COMMENT_MARKER)]
            processed_lines.append(line)

        return '\n'.join(processed_lines)


_default_grammar = None


def _grammar() -> RillGrammar:
    global _default_grammar
    if _default_grammar is None:
        _default_grammar = RillGrammar()
    return _default_grammar


def parse_expr(text: str) -> Tuple[Exp, str]:
    """Parse an expression prefix of text; see RillGrammar.parse_expr"""
    return _grammar().parse_expr(text)


def parse_stmt(text: str) -> Tuple[Stmt, str]:
    """Parse a statement prefix of text; see RillGrammar.parse_stmt"""
    return _grammar().parse_stmt(text)


class RillParser:
    """Main Rill parser: whole files, whole strings, single statements and expressions"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = RillGrammar(debug)

    def parse_file(self, filepath: str) -> List[Stmt]:
        """Parse a Rill source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise RillParseError(f"File not found: {filepath}")
        except UnicodeDecodeError as e:
            raise RillParseError(f"Cannot decode file {filepath}: {e}")

        stmts = self.grammar.parse_program(content, filepath)
        if self.debug:
            print(f"Parsed {len(stmts)} statements from {filepath}")
        return stmts

    def parse_string(self, text: str, filename: str = "<input>") -> List[Stmt]:
        """Parse Rill source code from string"""
        return self.grammar.parse_program(text, filename)

    def parse_statement(self, text: str, filename: str = "<input>") -> Stmt:
        """Parse text that must hold exactly one statement"""
        stmt, rest = self.grammar.parse_stmt(text, filename)
        if rest.strip():
            raise RillParseError(
                f"Unexpected input after statement: {rest.strip()!r}",
                location=len(text) - len(rest),
                expected=["end of input"],
                got=repr(rest.strip()),
            )
        return stmt

    def parse_expression(self, text: str, filename: str = "<input>") -> Exp:
        """Parse text that must hold exactly one expression"""
        exp, rest = self.grammar.parse_expr(text, filename)
        if rest.strip():
            raise RillParseError(
                f"Unexpected input after expression: {rest.strip()!r}",
                location=len(text) - len(rest),
                expected=["end of input"],
                got=repr(rest.strip()),
            )
        return exp


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> RillParser:
    """Create a Rill parser"""
    return RillParser(debug=debug)


def create_debug_parser() -> RillParser:
    """Create a Rill parser with debug enabled"""
    return RillParser(debug=True)


# ============================================================================
# UNPARSING
# ============================================================================

# Binding strength of binary operators; atoms bind tightest
OPERATOR_PRECEDENCE = {
    "or": 1,
    "and": 2,
    "<": 3, ">": 3, "<=": 3, ">=": 3, "==": 3, "/=": 3,
    "+": 4, "-": 4,
    "*": 5, "/": 5,
}
ATOM_PRECEDENCE = 6


def _precedence(exp: Exp) -> int:
    if isinstance(exp, (IntOpExp, BoolOpExp, CompOpExp)):
        return OPERATOR_PRECEDENCE.get(exp.op, ATOM_PRECEDENCE)
    return ATOM_PRECEDENCE


def unparse_exp(exp: Exp) -> str:
    """Render an expression as Rill source that parses back to the same tree"""
    if isinstance(exp, IntExp):
        # There are no negative literals
        return str(exp.value) if exp.value >= 0 else f"(0 - {-exp.value})"
    elif isinstance(exp, BoolExp):
        return "true" if exp.value else "false"
    elif isinstance(exp, VarExp):
        return exp.name
    elif isinstance(exp, FunExp):
        return f"fn [{', '.join(exp.params)}] {unparse_exp(exp.body)} end"
    elif isinstance(exp, LetExp):
        bindings = "; ".join(f"{name} := {unparse_exp(init)}" for name, init in exp.bindings)
        return f"let [{bindings}] {unparse_exp(exp.body)} end"
    elif isinstance(exp, AppExp):
        args = ", ".join(unparse_exp(arg) for arg in exp.args)
        return f"apply {unparse_exp(exp.fn)} ({args})"
    elif isinstance(exp, IfExp):
        return (f"if {unparse_exp(exp.cond)} then {unparse_exp(exp.then)} "
                f"else {unparse_exp(exp.orelse)} fi")
    elif isinstance(exp, (IntOpExp, BoolOpExp, CompOpExp)):
        level = _precedence(exp)
        left = unparse_exp(exp.left)
        right = unparse_exp(exp.right)
        # Left associative: only the right operand needs parens at equal strength
        if _precedence(exp.left) < level:
            left = f"({left})"
        if _precedence(exp.right) <= level:
            right = f"({right})"
        return f"{left} {exp.op} {right}"
    raise TypeError(f"Not a Rill expression: {exp!r}")


def unparse_stmt(stmt: Stmt) -> str:
    """Render a statement as Rill source"""
    if isinstance(stmt, SetStmt):
        return f"{stmt.name} := {unparse_exp(stmt.exp)};"
    elif isinstance(stmt, PrintStmt):
        return f"print {unparse_exp(stmt.exp)};"
    elif isinstance(stmt, QuitStmt):
        return "quit;"
    elif isinstance(stmt, IfStmt):
        return (f"if {unparse_exp(stmt.cond)} then {unparse_stmt(stmt.then)} "
                f"else {unparse_stmt(stmt.orelse)} fi")
    elif isinstance(stmt, ProcedureStmt):
        return f"procedure {stmt.name}({', '.join(stmt.params)}) {unparse_stmt(stmt.body)} endproc"
    elif isinstance(stmt, CallStmt):
        return f"call {stmt.name}({', '.join(unparse_exp(arg) for arg in stmt.args)});"
    elif isinstance(stmt, SeqStmt):
        return f"do {' '.join(unparse_stmt(s) for s in stmt.stmts)} od;"
    raise TypeError(f"Not a Rill statement: {stmt!r}")


def pretty_print_ast(node: Any, indent: int = 0) -> str:
    """Pretty print an AST node for debugging"""
    pad = "  " * indent
    if not is_dataclass(node):
        return f"{pad}{node!r}\n"

    result = f"{pad}{type(node).__name__}\n"
    for field in fields(node):
        value = getattr(node, field.name)
        if is_dataclass(value):
            result += f"{pad}  {field.name}:\n"
            result += pretty_print_ast(value, indent + 2)
        elif isinstance(value, tuple) and any(is_dataclass(item) or isinstance(item, tuple) for item in value):
            result += f"{pad}  {field.name}:\n"
            for item in value:
                if isinstance(item, tuple):
                    # let binding: (name, init)
                    result += f"{pad}    {item[0]} :=\n"
                    result += pretty_print_ast(item[1], indent + 3)
                else:
                    result += pretty_print_ast(item, indent + 2)
        else:
            result += f"{pad}  {field.name}: {value!r}\n"
    return result
