"""
SalaryGroup Resolver -- which salary group applies to an employee.

Responsibility:
    Resolve the single effective salary group for an employee by trying
    assignment lookups in precedence order:

        1. explicit employee-level assignment
        2. department-level assignment
        3. position-level assignment

    The first lookup that yields a group id wins.  No assignment at any
    level is a configuration gap, reported as ``None``.

Architecture position:
    Engines.  Reads through an injected ``SalaryGroupSource``; holds no
    cache, so a changed assignment is visible on the next calculation.

Invariants enforced:
    - Exactly one group (or None) per call.
    - Materialized items are ordered by calculation_order; ties keep the
      group's declared order.

Failure modes:
    - SalaryGroupNotFoundError: an assignment names a group that is gone.
    - SalaryItemNotFoundError: a group entry names an item that is gone.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from decimal import Decimal
from typing import Protocol

from payroll_engines.formula import referenced_names, validate_formula
from payroll_engines.types import (
    AssignmentLevel,
    ComputeMode,
    ResolvedSalaryGroup,
    SalaryGroup,
    SalaryItem,
)
from payroll_kernel.exceptions import (
    FormulaError,
    SalaryGroupNotFoundError,
    SalaryItemNotFoundError,
)


class SalaryGroupSource(Protocol):
    def get_salary_group(self, salary_group_id: int) -> SalaryGroup | None: ...

    def get_salary_item(self, salary_item_id: int) -> SalaryItem | None: ...

    def get_employee_assignment(self, employee_id: int) -> int | None: ...

    def get_department_assignment(self, department_id: int) -> int | None: ...

    def get_position_assignment(self, position_id: int) -> int | None: ...


_Lookup = Callable[[int, int | None, int | None], int | None]


class SalaryGroupResolver:
    """Resolves an employee's effective salary group.

    The precedence rule lives in ``self.lookups``, an ordered tuple of
    ``(level, lookup)`` pairs; reordering or extending the tuple changes
    precedence without touching ``resolve``.
    """

    def __init__(self, source: SalaryGroupSource):
        self._source = source
        self.lookups: tuple[tuple[AssignmentLevel, _Lookup], ...] = (
            (AssignmentLevel.EMPLOYEE,
             lambda emp, dept, pos: source.get_employee_assignment(emp)),
            (AssignmentLevel.DEPARTMENT,
             lambda emp, dept, pos: (
                 source.get_department_assignment(dept) if dept is not None else None)),
            (AssignmentLevel.POSITION,
             lambda emp, dept, pos: (
                 source.get_position_assignment(pos) if pos is not None else None)),
        )

    def resolve(
        self,
        employee_id: int,
        department_id: int | None = None,
        position_id: int | None = None,
    ) -> ResolvedSalaryGroup | None:
        """Return the effective group, or None when nothing is assigned."""
        for level, lookup in self.lookups:
            group_id = lookup(employee_id, department_id, position_id)
            if group_id is not None:
                return self.materialize(group_id, level)
        return None

    def materialize(
        self, salary_group_id: int, level: AssignmentLevel | None = None,
    ) -> ResolvedSalaryGroup:
        """Load a group and its items in calculation order.

        ``level`` is None when the group is loaded directly rather than
        through an assignment.
        """
        group = self._source.get_salary_group(salary_group_id)
        if group is None:
            raise SalaryGroupNotFoundError(salary_group_id, level.value if level else None)

        refs = sorted(group.items, key=lambda ref: ref.calculation_order)
        items = []
        for ref in refs:
            item = self._source.get_salary_item(ref.salary_item_id)
            if item is None:
                raise SalaryItemNotFoundError(ref.salary_item_id, salary_group_id)
            items.append(item)

        return ResolvedSalaryGroup(
            group_id=group.id,
            name=group.name,
            assignment_level=level,
            items=tuple(items),
        )


def validate_salary_group_formulas(
    items: Sequence[SalaryItem],
    base_variables: Iterable[str],
) -> list[str]:
    """Report formula problems in a group without evaluating anything.

    Each formula item may read the base variables and the names of items
    that come before it.  Returns human-readable problems; empty when the
    group is sound.
    """
    visible = set(base_variables)
    problems: list[str] = []

    for position, item in enumerate(items):
        if item.compute_mode == ComputeMode.FORMULA:
            later_names = {later.name for later in items[position + 1:]}
            problems.extend(_formula_problems(item, visible, later_names))
        elif not isinstance(item.value, Decimal) or not item.value.is_finite():
            problems.append(f"{item.name}: value {item.value!r} is not a decimal amount")
        visible.add(item.name)

    return problems


def _formula_problems(
    item: SalaryItem, visible: set[str], later_names: set[str],
) -> list[str]:
    expression = item.value if isinstance(item.value, str) else ""
    grammar = validate_formula(expression)
    if grammar:
        return [f"{item.name}: {issue.message}" for issue in grammar]
    try:
        names = referenced_names(expression)
    except FormulaError as e:
        return [f"{item.name}: {e.reason}"]
    problems = []
    for name in sorted(names - visible):
        if name in later_names:
            problems.append(f"{item.name}: references {name}, which is computed later")
        else:
            problems.append(f"{item.name}: unknown name {name}")
    return problems
