"""
Restricted expression evaluator for formula salary items.

Formula items carry a small arithmetic expression such as
``work_years * 100`` or ``IF(attendance_exceptions == 0, 500, 0)``.  The
expression is parsed with ``ast`` and validated against a fixed operator
set; nothing is ever handed to ``eval``.

Allowed:
  - Arithmetic: +, -, *, /, //, %, unary +/-
  - Comparisons: <, <=, >, >=, ==, !=
  - Logical: and, or, not (``&&`` and ``||`` are accepted as aliases)
  - Conditional: ternary (a if b else c)
  - Functions: IF(cond, a, b), MIN(...), MAX(...), ROUND(x[, places]), ABS(x)
  - Names: only those present in the variable mapping
    (the composer supplies ``base_salary``, ``work_years``, ``year``,
    ``month``, ``attendance_exceptions`` and earlier item names;
    ``attendance_exceptions`` is the summed exception count for the
    period, not the number of attendance rows, so one row of count 3
    and three rows of count 1 read the same)
  - Literals: numbers, True, False

Rejected:
  - attribute access, subscripts, strings, lambdas, comprehensions,
    any other call, any name not in the mapping

All arithmetic is Decimal.  Booleans count as 1 and 0 where a number is
required.  Every failure raises ``FormulaError``; a formula never
degrades silently to zero.  That includes expressions longer than
``MAX_FORMULA_LENGTH`` characters or nested deeper than
``MAX_FORMULA_DEPTH`` tree levels, which are rejected before any
recursive walk.
"""

from __future__ import annotations

import ast
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from payroll_kernel.exceptions import FormulaError

# Function names are matched case-insensitively.
ALLOWED_FUNCTIONS: frozenset[str] = frozenset({"IF", "MIN", "MAX", "ROUND", "ABS"})

_BINARY_OPS = (ast.Add, ast.Sub, ast.Mult, ast.Div, ast.FloorDiv, ast.Mod)
_COMPARE_OPS = (ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE)

MAX_FORMULA_LENGTH = 2000
MAX_FORMULA_DEPTH = 100


@dataclass(frozen=True)
class FormulaIssue:
    """A validation problem found in a formula expression."""

    expression: str
    message: str
    node_type: str = ""


def _parse(expression: str) -> ast.Expression:
    """Parse an expression, raising ``FormulaError`` on any rejection."""
    if len(expression) > MAX_FORMULA_LENGTH:
        raise FormulaError(
            expression, f"Formula longer than {MAX_FORMULA_LENGTH} characters",
        )
    normalized = expression.replace("&&", " and ").replace("||", " or ").strip()
    try:
        tree = ast.parse(normalized, mode="eval")
    except SyntaxError as e:
        raise FormulaError(expression, f"Syntax error: {e.msg}") from e
    except (RecursionError, MemoryError) as e:
        raise FormulaError(expression, "Formula nested too deeply") from e
    if _tree_depth(tree.body) > MAX_FORMULA_DEPTH:
        raise FormulaError(
            expression, f"Formula nested deeper than {MAX_FORMULA_DEPTH} levels",
        )
    return tree


def _tree_depth(root: ast.AST) -> int:
    deepest = 0
    stack = [(root, 1)]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in ast.iter_child_nodes(node))
    return deepest


def _function_name(node: ast.Call) -> str | None:
    if isinstance(node.func, ast.Name) and node.func.id.upper() in ALLOWED_FUNCTIONS:
        return node.func.id.upper()
    return None


def validate_formula(
    expression: str,
    allowed_names: frozenset[str] | set[str] | None = None,
) -> list[FormulaIssue]:
    """Check a formula against the restricted grammar without evaluating it.

    When ``allowed_names`` is given, names outside it are reported too.
    Returns an empty list for a valid expression.
    """
    if not expression or not expression.strip():
        return [FormulaIssue(expression, "Empty formula")]
    try:
        tree = _parse(expression)
    except FormulaError as e:
        return [FormulaIssue(expression, e.reason)]

    issues: list[FormulaIssue] = []
    _validate_node(tree.body, expression, allowed_names, issues)
    return issues


def _validate_node(
    node: ast.AST,
    expression: str,
    allowed_names: frozenset[str] | set[str] | None,
    issues: list[FormulaIssue],
) -> None:
    """Recursively validate an AST node."""

    def recurse(child: ast.AST) -> None:
        _validate_node(child, expression, allowed_names, issues)

    if isinstance(node, ast.BoolOp):
        for value in node.values:
            recurse(value)

    elif isinstance(node, ast.UnaryOp):
        if not isinstance(node.op, (ast.Not, ast.UAdd, ast.USub)):
            issues.append(FormulaIssue(
                expression, f"Disallowed unary operator: {type(node.op).__name__}",
                type(node.op).__name__,
            ))
        recurse(node.operand)

    elif isinstance(node, ast.BinOp):
        if isinstance(node.op, _BINARY_OPS):
            recurse(node.left)
            recurse(node.right)
        else:
            issues.append(FormulaIssue(
                expression, f"Disallowed binary operator: {type(node.op).__name__}",
                type(node.op).__name__,
            ))

    elif isinstance(node, ast.Compare):
        recurse(node.left)
        for comparator in node.comparators:
            recurse(comparator)
        for op in node.ops:
            if not isinstance(op, _COMPARE_OPS):
                issues.append(FormulaIssue(
                    expression, f"Disallowed comparison: {type(op).__name__}",
                    type(op).__name__,
                ))

    elif isinstance(node, ast.IfExp):
        recurse(node.test)
        recurse(node.body)
        recurse(node.orelse)

    elif isinstance(node, ast.Call):
        if _function_name(node) is None:
            name = node.func.id if isinstance(node.func, ast.Name) else type(node.func).__name__
            issues.append(FormulaIssue(expression, f"Disallowed function call: {name}", "Call"))
        elif node.keywords:
            issues.append(FormulaIssue(expression, "Keyword arguments are not allowed", "Call"))
        else:
            for arg in node.args:
                recurse(arg)

    elif isinstance(node, ast.Name):
        if allowed_names is not None and node.id not in allowed_names:
            issues.append(FormulaIssue(expression, f"Unknown name: {node.id}", "Name"))

    elif isinstance(node, ast.Constant):
        # bool is an int subclass, so True/False pass here
        if not isinstance(node.value, (int, float)):
            issues.append(FormulaIssue(
                expression, f"Disallowed constant type: {type(node.value).__name__}",
                "Constant",
            ))

    else:
        issues.append(FormulaIssue(
            expression, f"Disallowed construct: {type(node).__name__}",
            type(node).__name__,
        ))


def referenced_names(expression: str) -> frozenset[str]:
    """Variable names an expression reads, excluding function names.

    Raises:
        FormulaError: If the expression does not parse or exceeds the
            length or depth bound.
    """
    tree = _parse(expression)
    func_nodes = {id(n.func) for n in ast.walk(tree) if isinstance(n, ast.Call)}
    return frozenset(
        n.id for n in ast.walk(tree)
        if isinstance(n, ast.Name) and id(n) not in func_nodes
    )


def evaluate_formula(
    expression: str,
    variables: Mapping[str, Decimal],
    salary_item_id: int | None = None,
) -> Decimal:
    """Evaluate a formula against ``variables`` and return a Decimal.

    Raises:
        FormulaError: On a grammar violation, an unknown name, division by
            zero, or any other arithmetic failure.
    """
    issues = validate_formula(expression, frozenset(variables))
    if issues:
        raise FormulaError(expression, issues[0].message, salary_item_id)
    tree = _parse(expression)
    evaluator = _Evaluator(expression, variables, salary_item_id)
    try:
        result = evaluator.visit(tree.body)
    except (InvalidOperation, ArithmeticError) as e:
        raise FormulaError(
            expression, f"Arithmetic error: {type(e).__name__}", salary_item_id,
        ) from e
    return _as_decimal(result)


def _as_decimal(value: Decimal | bool) -> Decimal:
    if isinstance(value, bool):
        return Decimal(1) if value else Decimal(0)
    return value


class _Evaluator(ast.NodeVisitor):
    """Walks an expression tree that ``validate_formula`` accepted."""

    def __init__(
        self, expression: str, variables: Mapping[str, Decimal], item_id: int | None,
    ):
        self._expression = expression
        self._variables = variables
        self._item_id = item_id

    def _fail(self, reason: str) -> FormulaError:
        return FormulaError(self._expression, reason, self._item_id)

    def generic_visit(self, node: ast.AST):
        raise self._fail(f"Disallowed construct: {type(node).__name__}")

    def visit_Constant(self, node: ast.Constant) -> Decimal | bool:
        if isinstance(node.value, bool):
            return node.value
        return Decimal(str(node.value))

    def visit_Name(self, node: ast.Name) -> Decimal | bool:
        return self._variables[node.id]

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Decimal | bool:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.Not):
            return not operand
        value = _as_decimal(operand)
        return -value if isinstance(node.op, ast.USub) else value

    def visit_BinOp(self, node: ast.BinOp) -> Decimal:
        left = _as_decimal(self.visit(node.left))
        right = _as_decimal(self.visit(node.right))
        op = node.op
        if isinstance(op, (ast.Div, ast.FloorDiv, ast.Mod)) and right == 0:
            raise self._fail("Division by zero")
        if isinstance(op, ast.Add):
            return left + right
        if isinstance(op, ast.Sub):
            return left - right
        if isinstance(op, ast.Mult):
            return left * right
        if isinstance(op, ast.Div):
            return left / right
        if isinstance(op, ast.FloorDiv):
            return left // right
        return left % right

    def visit_BoolOp(self, node: ast.BoolOp) -> Decimal | bool:
        # Python semantics: returns the deciding operand
        stop_on = not isinstance(node.op, ast.And)
        result: Decimal | bool = not stop_on
        for value in node.values:
            result = self.visit(value)
            if bool(result) is stop_on:
                return result
        return result

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = _as_decimal(self.visit(node.left))
        for op, comparator in zip(node.ops, node.comparators):
            right = _as_decimal(self.visit(comparator))
            if isinstance(op, ast.Eq):
                ok = left == right
            elif isinstance(op, ast.NotEq):
                ok = left != right
            elif isinstance(op, ast.Lt):
                ok = left < right
            elif isinstance(op, ast.LtE):
                ok = left <= right
            elif isinstance(op, ast.Gt):
                ok = left > right
            else:
                ok = left >= right
            if not ok:
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Decimal | bool:
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def visit_Call(self, node: ast.Call) -> Decimal | bool:
        name = _function_name(node)
        args = node.args
        if name == "IF":
            if len(args) != 3:
                raise self._fail("IF takes exactly 3 arguments")
            return self.visit(args[1]) if self.visit(args[0]) else self.visit(args[2])

        values = [_as_decimal(self.visit(a)) for a in args]
        if name in ("MIN", "MAX"):
            if not values:
                raise self._fail(f"{name} needs at least one argument")
            return min(values) if name == "MIN" else max(values)
        if name == "ABS":
            if len(values) != 1:
                raise self._fail("ABS takes exactly 1 argument")
            return abs(values[0])
        if len(values) not in (1, 2):
            raise self._fail("ROUND takes 1 or 2 arguments")
        places = int(values[1]) if len(values) == 2 else 0
        return values[0].quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
