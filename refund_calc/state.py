"""Application state and the pure functions that update it.

Every update takes an ``AppState`` and returns a new one; nothing is
mutated in place and nothing here touches the store. The caller persists
the parts that changed and, if that fails, keeps the previous state
(see ``webapp.app``).
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from refund_calc.calculator import (
    Clock,
    IdFactory,
    calculate_refund,
    can_calculate,
    generate_id,
    now_ms,
)
from refund_calc.catalog import input_from_medication
from refund_calc.config import DEFAULT_CURRENCY, DEFAULT_HISTORY_LIMIT
from refund_calc.models import (
    CalculationInput,
    CalculationResult,
    HistoryItem,
    Medication,
    SelectedMedication,
    Template,
)
from refund_calc.store import prepend_history

PRECONDITION_NOTICE = "Enter an amount paid and a number of weeks paid greater than 0."
TEMPLATE_NOTICE = "Calculate a refund and enter a name before saving a template."


@dataclass(frozen=True)
class AppState:
    form: CalculationInput = CalculationInput()
    result: Optional[CalculationResult] = None
    history: Tuple[HistoryItem, ...] = ()
    templates: Tuple[Template, ...] = ()
    selected_medications: Tuple[SelectedMedication, ...] = ()
    dark_mode: bool = False
    currency: str = DEFAULT_CURRENCY
    history_limit: int = DEFAULT_HISTORY_LIMIT
    notice: Optional[str] = None


def with_notice(state: AppState, notice: Optional[str]) -> AppState:
    return replace(state, notice=notice)


def update_form(state: AppState, form: CalculationInput) -> AppState:
    return replace(state, form=form, notice=None)


def calculate(state: AppState, clock: Clock = now_ms, id_factory: IdFactory = generate_id) -> AppState:
    """Run the calculator on the current form and prepend the result to history.

    Without a positive amount paid and weeks paid nothing is calculated and
    history is left alone.
    """
    if not can_calculate(state.form):
        return with_notice(state, PRECONDITION_NOTICE)
    result = calculate_refund(state.form, clock=clock, id_factory=id_factory)
    item = HistoryItem(id=id_factory(), timestamp=clock(), result=result)
    history = prepend_history(state.history, item, state.history_limit)
    return replace(state, result=result, history=tuple(history), notice=None)


def clear_form(state: AppState) -> AppState:
    return replace(state, form=CalculationInput(), result=None, notice=None)


def save_template(
    state: AppState,
    name: str,
    clock: Clock = now_ms,
    id_factory: IdFactory = generate_id,
) -> AppState:
    name = (name or "").strip()
    if not name or state.result is None:
        return with_notice(state, TEMPLATE_NOTICE)
    template = Template(id=id_factory(), name=name, input=state.form, created_at=clock())
    return replace(state, templates=state.templates + (template,), notice=None)


def load_template(state: AppState, template_id: str) -> AppState:
    for template in state.templates:
        if template.id == template_id:
            return replace(state, form=template.input, notice=None)
    return with_notice(state, "Template not found.")


def load_history_item(state: AppState, item_id: str) -> AppState:
    for item in state.history:
        if item.id == item_id:
            return replace(state, form=item.result.input, result=item.result, notice=None)
    return with_notice(state, "History entry not found.")


def clear_history(state: AppState) -> AppState:
    return replace(state, history=(), notice=None)


def clear_templates(state: AppState) -> AppState:
    return replace(state, templates=(), notice=None)


def toggle_dark_mode(state: AppState) -> AppState:
    return replace(state, dark_mode=not state.dark_mode)


def set_currency(state: AppState, currency: str) -> AppState:
    return replace(state, currency=(currency or DEFAULT_CURRENCY).upper())


def set_history_limit(state: AppState, limit: int) -> AppState:
    """Change the cap; an already longer history is trimmed from the oldest end."""
    limit = max(1, int(limit))
    return replace(state, history_limit=limit, history=state.history[:limit])


def add_medication(
    state: AppState,
    medication: Medication,
    clock: Clock = now_ms,
    id_factory: IdFactory = generate_id,
) -> AppState:
    calculation = calculate_refund(input_from_medication(medication), clock=clock, id_factory=id_factory)
    selected = SelectedMedication(medication=medication, calculation=calculation)
    return replace(state, selected_medications=state.selected_medications + (selected,), notice=None)


def remove_medication(state: AppState, index: int) -> AppState:
    meds = state.selected_medications
    if not 0 <= index < len(meds):
        return state
    return replace(state, selected_medications=meds[:index] + meds[index + 1:])


def restore_backup(state: AppState, history: Sequence[HistoryItem], templates: Sequence[Template]) -> AppState:
    return replace(
        state,
        history=tuple(history)[: state.history_limit],
        templates=tuple(templates),
        notice=None,
    )


def total_refund_amount(state: AppState) -> float:
    """Current result's refund plus the refunds of all selected catalog medications."""
    current = state.result.refund_amount if state.result is not None else 0.0
    return current + sum(m.calculation.refund_amount for m in state.selected_medications)
