from flask import Flask, Response, flash, redirect, render_template, request, url_for
import logging
from typing import Optional

from refund_calc import state as st
from refund_calc.billing import medication_profit
from refund_calc.calculator import calculate_statistics, format_currency
from refund_calc.catalog import filter_medications, find_medication, load_medications
from refund_calc.config import (
    CURRENCY_KEY,
    DARK_MODE_KEY,
    HISTORY_KEY,
    HISTORY_LIMIT_KEY,
    SUPPORTED_CURRENCIES,
    TEMPLATES_KEY,
    Settings,
    load_settings,
)
from refund_calc.export import (
    BackupError,
    backup_filename,
    csv_filename,
    export_backup,
    format_plain_number,
    format_timestamp,
    history_to_csv,
    parse_backup,
    pdf_filename,
    result_to_pdf,
)
from refund_calc.models import CalculationInput, CalculationResult, SelectedMedication
from refund_calc.parsing import DEFAULT_UNIT, parse_amount, parse_typed_quantity, parse_weeks
from refund_calc.store import JsonFileStore, KeyValueStore, RecordStore
from refund_calc.undo import UndoRedoManager

logger = logging.getLogger(__name__)

UNIT_OPTIONS = ["units", "mg", "g", "ml", "l"]
UNDO_DEPTH = 20
SAVE_FAILED_NOTICE = "Could not save your changes; nothing was changed."


def input_from_form(form) -> CalculationInput:
    """Normalize the posted form. Unparseable numbers become 0.

    A unit typed into the dispensed field ("100mg") wins over the unit
    selector.
    """
    dispensed, unit = parse_typed_quantity(form.get("medication_dispensed"))
    if unit is None:
        unit = (form.get("medication_unit") or DEFAULT_UNIT).strip().lower() or DEFAULT_UNIT
    return CalculationInput(
        amount_paid=parse_amount(form.get("amount_paid")),
        medication_dispensed=dispensed,
        medication_unit=unit,
        weeks_paid=parse_weeks(form.get("weeks_paid")),
        weeks_received=parse_weeks(form.get("weeks_received")),
        notes=(form.get("notes") or "").strip(),
    )


def create_app(settings: Optional[Settings] = None, kv: Optional[KeyValueStore] = None,
               medications=None) -> Flask:
    settings = settings or load_settings()
    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config["SETTINGS"] = settings

    records = RecordStore(kv if kv is not None else JsonFileStore(settings.store_path))
    catalog = list(medications) if medications is not None else load_medications(settings.catalog_path)

    # ---------------------------------------------------------------
    # state <-> store
    # ---------------------------------------------------------------

    def _undo_manager(session: dict, form: CalculationInput) -> UndoRedoManager:
        raw = session.get("undo")
        if raw:
            try:
                return UndoRedoManager.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Discarding unreadable undo history: %s", e)
        return UndoRedoManager(form.to_dict(), UNDO_DEPTH)

    def load_state():
        session = records.load_session()
        try:
            form = CalculationInput.from_dict(session.get("form") or {})
            result = CalculationResult.from_dict(session["result"]) if session.get("result") else None
            selected = tuple(SelectedMedication.from_dict(m) for m in session.get("selectedMedications") or [])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Discarding unreadable UI session: %s", e)
            session, form, result, selected = {}, CalculationInput(), None, ()

        state = st.AppState(
            form=form,
            result=result,
            history=tuple(records.load_history()),
            templates=tuple(records.load_templates()),
            selected_medications=selected,
            dark_mode=records.load_dark_mode(),
            currency=records.load_currency(settings.default_currency),
            history_limit=records.load_history_limit(settings.history_limit),
        )
        return state, _undo_manager(session, form)

    def _persist(old: st.AppState, new: st.AppState) -> bool:
        """Write the keys that changed; all of them or none of them."""
        writes = []
        if new.history != old.history:
            if new.history:
                writes.append((HISTORY_KEY, lambda: records.save_history(new.history, new.history_limit)))
            else:
                writes.append((HISTORY_KEY, records.clear_history))
        if new.templates != old.templates:
            if new.templates:
                writes.append((TEMPLATES_KEY, lambda: records.save_templates(new.templates)))
            else:
                writes.append((TEMPLATES_KEY, records.clear_templates))
        if new.dark_mode != old.dark_mode:
            writes.append((DARK_MODE_KEY, lambda: records.save_dark_mode(new.dark_mode)))
        if new.currency != old.currency:
            writes.append((CURRENCY_KEY, lambda: records.save_currency(new.currency)))
        if new.history_limit != old.history_limit:
            writes.append((HISTORY_LIMIT_KEY, lambda: records.save_history_limit(new.history_limit)))

        before = records.snapshot([key for key, _ in writes])
        for key, write in writes:
            if not write():
                logger.error("Saving %r failed, rolling back this request", key)
                records.rollback(before)
                return False
        return True

    def _save_session(state: st.AppState, undo: UndoRedoManager) -> None:
        records.save_session({
            "form": state.form.to_dict(),
            "result": state.result.to_dict() if state.result else None,
            "selectedMedications": [m.to_dict() for m in state.selected_medications],
            "undo": undo.to_dict(),
        })

    def commit(old: st.AppState, new: st.AppState, undo: UndoRedoManager, track_form: bool = True,
               done: Optional[str] = None):
        """Persist ``new``; on failure keep ``old`` and tell the user.

        ``done`` is flashed only once everything was saved.
        """
        if new.notice:
            flash(new.notice)
        if not _persist(old, new):
            flash(SAVE_FAILED_NOTICE)
            return redirect(url_for("index"))
        if done:
            flash(done)
        if track_form and new.form != old.form:
            undo.add_state(new.form.to_dict())
        _save_session(new, undo)
        return redirect(url_for("index"))

    # ---------------------------------------------------------------
    # filters
    # ---------------------------------------------------------------

    app.jinja_env.filters["datetime"] = format_timestamp
    app.jinja_env.filters["num"] = format_plain_number

    def _money(val, currency="USD"):
        return format_currency(val, currency)

    app.jinja_env.filters["money"] = _money

    # ---------------------------------------------------------------
    # pages
    # ---------------------------------------------------------------

    @app.route("/", methods=["GET"])
    def index():
        state, undo = load_state()
        query = request.args.get("q", "")
        meds = filter_medications(catalog, query)
        profits = {m.id: medication_profit(m) for m in meds}
        return render_template(
            "index.html",
            state=state,
            stats=calculate_statistics(state.history, state.selected_medications),
            total_refund=st.total_refund_amount(state),
            medications=meds,
            profits=profits,
            query=query,
            currencies=SUPPORTED_CURRENCIES,
            unit_options=UNIT_OPTIONS,
            can_undo=undo.can_undo(),
            can_redo=undo.can_redo(),
        )

    @app.route("/print")
    def print_view():
        state, _ = load_state()
        if state.result is None:
            return "Nothing to print yet. Run a calculation first.", 400
        return render_template("print.html", result=state.result, currency=state.currency)

    # ---------------------------------------------------------------
    # calculation
    # ---------------------------------------------------------------

    @app.route("/calculate", methods=["POST"])
    def calculate():
        old, undo = load_state()
        new = st.calculate(st.update_form(old, input_from_form(request.form)))
        if new.result is not None and new.result is not old.result:
            logger.info("Calculated refund %.2f (paid %.2f over %s weeks, received %s)",
                        new.result.refund_amount, new.form.amount_paid,
                        format_plain_number(new.form.weeks_paid), format_plain_number(new.form.weeks_received))
        return commit(old, new, undo)

    @app.route("/clear", methods=["POST"])
    def clear():
        old, undo = load_state()
        return commit(old, st.clear_form(old), undo)

    @app.route("/undo", methods=["POST"])
    def undo_form():
        old, undo = load_state()
        previous = undo.undo()
        if previous is None:
            return redirect(url_for("index"))
        return commit(old, st.update_form(old, CalculationInput.from_dict(previous)), undo, track_form=False)

    @app.route("/redo", methods=["POST"])
    def redo_form():
        old, undo = load_state()
        following = undo.redo()
        if following is None:
            return redirect(url_for("index"))
        return commit(old, st.update_form(old, CalculationInput.from_dict(following)), undo, track_form=False)

    # ---------------------------------------------------------------
    # templates & history
    # ---------------------------------------------------------------

    @app.route("/templates", methods=["POST"])
    def save_template():
        old, undo = load_state()
        return commit(old, st.save_template(old, request.form.get("template_name", "")), undo)

    @app.route("/templates/<template_id>/load", methods=["POST"])
    def load_template(template_id):
        old, undo = load_state()
        return commit(old, st.load_template(old, template_id), undo)

    @app.route("/templates/clear", methods=["POST"])
    def clear_templates():
        old, undo = load_state()
        return commit(old, st.clear_templates(old), undo)

    @app.route("/history/<item_id>/load", methods=["POST"])
    def load_history_item(item_id):
        old, undo = load_state()
        return commit(old, st.load_history_item(old, item_id), undo)

    @app.route("/history/clear", methods=["POST"])
    def clear_history():
        old, undo = load_state()
        return commit(old, st.clear_history(old), undo)

    # ---------------------------------------------------------------
    # preferences
    # ---------------------------------------------------------------

    @app.route("/dark-mode", methods=["POST"])
    def toggle_dark_mode():
        old, undo = load_state()
        return commit(old, st.toggle_dark_mode(old), undo)

    @app.route("/preferences", methods=["POST"])
    def preferences():
        old, undo = load_state()
        new = old
        currency = request.form.get("currency")
        if currency:
            new = st.set_currency(new, currency)
        limit_raw = request.form.get("history_limit")
        if limit_raw:
            try:
                new = st.set_history_limit(new, int(limit_raw))
            except ValueError:
                new = st.with_notice(new, "History limit must be a whole number.")
        return commit(old, new, undo)

    # ---------------------------------------------------------------
    # catalog
    # ---------------------------------------------------------------

    @app.route("/medications/<medication_id>/add", methods=["POST"])
    def add_medication(medication_id):
        old, undo = load_state()
        med = find_medication(catalog, medication_id)
        if med is None:
            flash("Medication not found.")
            return redirect(url_for("index"))
        return commit(old, st.add_medication(old, med), undo)

    @app.route("/medications/<int:index>/remove", methods=["POST"])
    def remove_medication(index):
        old, undo = load_state()
        return commit(old, st.remove_medication(old, index), undo)

    # ---------------------------------------------------------------
    # export / import
    # ---------------------------------------------------------------

    def _attachment(body, mimetype: str, filename: str) -> Response:
        resp = Response(body, mimetype=mimetype)
        resp.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
        return resp

    @app.route("/export/csv")
    def export_csv():
        state, _ = load_state()
        return _attachment(history_to_csv(state.history), "text/csv; charset=utf-8", csv_filename())

    @app.route("/export/pdf")
    def export_pdf():
        state, _ = load_state()
        result = state.result
        item_id = request.args.get("history_id")
        if item_id:
            result = next((h.result for h in state.history if h.id == item_id), None)
        if result is None:
            flash("Nothing to export yet. Run a calculation first.")
            return redirect(url_for("index"))
        return _attachment(result_to_pdf(result, state.currency), "application/pdf", pdf_filename())

    @app.route("/export/backup")
    def export_backup_file():
        state, _ = load_state()
        return _attachment(export_backup(state.history, state.templates), "application/json", backup_filename())

    @app.route("/import/backup", methods=["POST"])
    def import_backup():
        old, undo = load_state()
        upload = request.files.get("backup")
        if upload is None or not upload.filename:
            flash("Choose a backup file to restore.")
            return redirect(url_for("index"))
        try:
            history, templates = parse_backup(upload.read())
        except BackupError as e:
            logger.warning("Backup restore failed: %s", e)
            flash("Could not read the backup file; your data was not changed.")
            return redirect(url_for("index"))
        logger.info("Restoring %d history items and %d templates", len(history), len(templates))
        return commit(old, st.restore_backup(old, history, templates), undo,
                      done=f"Restored {len(history)} calculations and {len(templates)} templates.")

    return app


app = create_app()
