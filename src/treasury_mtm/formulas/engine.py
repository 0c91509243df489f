from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Mapping, Optional, Set

from treasury_mtm.formulas.expression import FormulaError, evaluate
from treasury_mtm.formulas.schemas import (
    BaseMetricLabels,
    CustomFieldDefinition,
    FieldDataType,
    FieldKind,
    FieldResolution,
    FieldStatus,
    FieldValue,
)
from treasury_mtm.positions.schemas import HedgePosition

LOGGER = logging.getLogger(__name__)

FIELD_TOKEN = re.compile(r"\{([^}]+)\}")


# ------------------------------------------------------------
# Token helpers
# ------------------------------------------------------------
def to_number(value) -> Optional[Decimal]:
    """Finite Decimal for numeric-looking values, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, float):
            number = Decimal(repr(value))
        elif isinstance(value, str):
            if not value.strip():
                return None
            number = Decimal(value.strip())
        else:
            number = Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return None
    return number if number.is_finite() else None


def referenced_names(formula: str) -> List[str]:
    """Field names referenced by `{...}` tokens, in order, whitespace-trimmed."""
    return [m.strip() for m in FIELD_TOKEN.findall(formula or "")]


def _literal(value: Decimal) -> str:
    text = format(value, "f")
    # parenthesize so "{a}-{b}" with b < 0 reads "a-(-b)"
    return f"({text})" if value < 0 else text


def substitute_tokens(formula: str, row: Mapping[str, Decimal]) -> str:
    """
    Replace every `{name}` with the numeric value of `name` in `row`.

    Raises FormulaError if a name is missing or its value is not a finite
    number.
    """

    def _replace(match: re.Match) -> str:
        name = match.group(1).strip()
        number = to_number(row.get(name))
        if number is None:
            raise FormulaError(f"Field '{name}' not found or invalid.")
        return _literal(number)

    return FIELD_TOKEN.sub(_replace, formula)


def evaluate_formula(formula: str, row: Mapping[str, Decimal]) -> Decimal:
    """Substitute tokens, check the character set, evaluate."""
    if not formula:
        raise FormulaError("Empty formula")
    return evaluate(substitute_tokens(formula, row))


# ------------------------------------------------------------
# Engine
# ------------------------------------------------------------
class CustomFieldFormulaEngine:
    """
    Resolves calculated custom fields for a position.

    Calculated fields are evaluated in dependency order: a field is only
    evaluated once every calculated field it references has been attempted.
    Fields that can never be ordered sit on, or downstream of, a dependency
    cycle and are reported as CYCLIC. Failures never raise.
    """

    def __init__(self, labels: Optional[BaseMetricLabels] = None):
        self.labels = labels or BaseMetricLabels()

    def base_row(
        self, position: HedgePosition, field_defs: Iterable[CustomFieldDefinition]
    ) -> Dict[str, Decimal]:
        """Named numeric inputs: base metrics plus manual NUMBER fields by name."""
        row: Dict[str, Decimal] = {
            self.labels.notional: position.notional_usd,
            self.labels.agreed_rate: position.agreed_rate,
        }
        if position.close_rate is not None:
            row[self.labels.close_rate] = position.close_rate

        for f in field_defs:
            if f.kind is not FieldKind.MANUAL or f.data_type is not FieldDataType.NUMBER:
                continue
            number = to_number(position.custom_field_values.get(f.id))
            if number is not None:
                row[f.name] = number
        return row

    def dependency_order(
        self, calculated: List[CustomFieldDefinition]
    ) -> tuple[List[CustomFieldDefinition], List[CustomFieldDefinition]]:
        """
        Split calculated fields into (evaluation order, cyclic).

        Passes over the fields in definition order, emitting every field whose
        calculated dependencies have all been emitted, until a pass makes no
        progress. Whatever is left cannot be ordered.
        """
        by_name: Dict[str, CustomFieldDefinition] = {}
        for f in calculated:
            by_name.setdefault(f.name, f)

        deps: Dict[str, Set[str]] = {
            f.id: {by_name[n].id for n in referenced_names(f.formula) if n in by_name}
            for f in calculated
        }

        ordered: List[CustomFieldDefinition] = []
        done: Set[str] = set()
        progress = True
        while progress:
            progress = False
            for f in calculated:
                if f.id not in done and deps[f.id] <= done:
                    ordered.append(f)
                    done.add(f.id)
                    progress = True

        cyclic = [f for f in calculated if f.id not in done]
        return ordered, cyclic

    def resolve(
        self, position: HedgePosition, field_defs: Iterable[CustomFieldDefinition]
    ) -> FieldResolution:
        field_defs = list(field_defs)
        calculated = [f for f in field_defs if f.is_calculated and f.formula]
        calculated_ids = {f.id for f in field_defs if f.is_calculated}

        # manual values pass through; calculated ones are always recomputed
        values: Dict[str, FieldValue] = {
            fid: v for fid, v in position.custom_field_values.items() if fid not in calculated_ids
        }
        statuses: Dict[str, FieldStatus] = {}
        errors: Dict[str, str] = {}

        row = self.base_row(position, field_defs)
        ordered, cyclic = self.dependency_order(calculated)

        for f in ordered:
            try:
                result = evaluate_formula(f.formula, row)
            except FormulaError as e:
                statuses[f.id] = FieldStatus.UNRESOLVED
                errors[f.id] = str(e)
                LOGGER.debug("Field %s unresolved for position %s: %s", f.name, position.id, e)
                continue
            values[f.id] = result
            row[f.name] = result
            statuses[f.id] = FieldStatus.RESOLVED

        for f in cyclic:
            statuses[f.id] = FieldStatus.CYCLIC
            errors[f.id] = "Circular dependency between calculated fields."
        if cyclic:
            LOGGER.debug(
                "Cyclic calculated fields for position %s: %s",
                position.id,
                [f.name for f in cyclic],
            )

        return FieldResolution(values=values, statuses=statuses, errors=errors)
