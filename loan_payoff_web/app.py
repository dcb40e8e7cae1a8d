import os
from uuid import uuid4

import click
from flask import Flask, redirect, render_template, request, session, url_for

from loan_payoff.data_models import FREQUENCY_LABELS, MONTHLY
from loan_payoff.engine import simulate_payoff
from loan_payoff.logging_config import configure_logging, get_logger
from loan_payoff.main import build_params_from_options, schedule_to_dicts, simulation_to_dict
from loan_payoff_web.comparison_store import create_store_from_env

logger = get_logger(__name__)

app = Flask(__name__)
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
comparison_store = create_store_from_env(
    os.environ.get("COMPARISON_DATABASE_URL"), os.environ.get("COMPARISON_MAX_PER_USER")
)

PREVIEW_ROWS = 120

CURRENCY_OPTIONS = {
    "DKK": {"label": "Danish krone", "prefix": "", "suffix": " kr."},
    "PLN": {"label": "Polish złoty", "prefix": "", "suffix": " zł"},
    "USD": {"label": "US dollar", "prefix": "$", "suffix": ""},
    "EUR": {"label": "Euro", "prefix": "€", "suffix": ""},
    "GBP": {"label": "British pound", "prefix": "£", "suffix": ""},
}


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _normalized_currency(form) -> str:
    code = form.get("currency", "DKK").upper()
    return code if code in CURRENCY_OPTIONS else "DKK"


def _form_to_params(form):
    term = form.get("term", "").strip()
    return build_params_from_options(
        form.get("balance", "").strip(),
        float(form.get("rate", 0.0) or 0.0),
        form.get("payment", "").strip() or None,
        int(term) if term else None,
        form.get("frequency", MONTHLY),
        form.get("start_date", "").strip(),
        form.get("extra_monthly", "").strip() or None,
        form.get("one_time_payment", "").strip() or None,
        form.get("one_time_date", "").strip() or None,
    )


def _run_simulation(form, show_full_schedule: bool):
    params = _form_to_params(form)
    result = simulate_payoff(params)
    rows = result.accelerated_schedule
    preview = rows if show_full_schedule else rows[:PREVIEW_ROWS]
    truncated = len(rows) - len(preview)
    return params, result, preview, truncated


def _handle_save_action(user_token: str, form, result) -> None:
    scenario_name = form.get("scenario_name", "").strip() or "Scenario"
    comparison_store.add_scenario(
        user_token,
        uuid4().hex,
        scenario_name,
        simulation_to_dict(result),
        schedule_to_dicts(result.accelerated_schedule),
    )
    logger.info("Saved scenario %r", scenario_name)


@app.route("/", methods=["GET", "POST"])
def index():
    params = None
    result = None
    schedule = None
    truncated = 0
    error = None
    show_full_schedule = False
    currency_code = "DKK"

    user_token = _ensure_user_token()

    if request.method == "POST":
        action = request.form.get("action", "run")
        currency_code = _normalized_currency(request.form)
        show_full_schedule = request.form.get("show_full_schedule") == "1"
        try:
            params, result, schedule, truncated = _run_simulation(request.form, show_full_schedule)
            if action == "add_to_comparison":
                _handle_save_action(user_token, request.form, result)
        except (ValueError, click.ClickException) as exc:
            logger.warning("Simulation rejected: %s", exc)
            error = exc.format_message() if isinstance(exc, click.ClickException) else str(exc)

    currency_meta = CURRENCY_OPTIONS[currency_code]
    return render_template(
        "index.html",
        form=request.form,
        params=params,
        result=result,
        schedule=schedule,
        truncated=truncated,
        error=error,
        show_full_schedule=show_full_schedule,
        frequencies=FREQUENCY_LABELS,
        currency_code=currency_code,
        currency_options=CURRENCY_OPTIONS,
        currency_prefix=currency_meta["prefix"],
        currency_suffix=currency_meta["suffix"],
        comparison_scenarios=comparison_store.list_scenarios(user_token),
    )


@app.post("/comparison/remove")
def remove_comparison():
    comparison_store.remove_scenario(session.get("user_token"), request.form.get("scenario_id"))
    return redirect(url_for("index"))


@app.post("/comparison/clear")
def clear_comparisons():
    comparison_store.clear_scenarios(session.get("user_token"))
    return redirect(url_for("index"))


if __name__ == "__main__":
    configure_logging()
    logger.info("Starting loan payoff web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
