"""
FinE Survey - CLI Entry Point.

Usage:
    fine-survey take         Take the survey in the terminal
    fine-survey serve        Start the relay + wizard API server
    fine-survey health       Check configuration
    fine-survey --help       Show help
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.prompt import Prompt
from rich.spinner import Spinner

from survey_wizard.forms import (
    AGE_OPTIONS,
    EXPERIENCE_RATING_OPTIONS,
    GENDER_OPTIONS,
    INTEREST_LEVEL_OPTIONS,
    INTEREST_OPTIONS,
    MONTHLY_INVESTMENT_OPTIONS,
    PLATFORM_FEATURE_OPTIONS,
    USAGE_FREQUENCY_OPTIONS,
    USEFULNESS_OPTIONS,
    WOULD_RECOMMEND_OPTIONS,
    SurveyResponse,
    requires_platform_feedback,
)
from survey_wizard.state import (
    SessionMarker,
    SurveyWizard,
    TOTAL_STEPS,
    WizardStep,
    WizardView,
)
from survey_wizard.submission import SubmissionClient

app = typer.Typer(
    name="fine-survey",
    help="FinE Market Research - financial education survey.",
    add_completion=False,
)
console = Console()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Terminal questions
# =============================================================================

@dataclass
class Question:
    field: str
    label: str
    options: list[str] | None = None
    multi: bool = False
    required: bool = True
    only_if_used_apps: bool = False


STEP_QUESTIONS: dict[WizardStep, list[Question]] = {
    WizardStep.WELCOME: [],
    WizardStep.IDENTITY: [
        Question("name", "What's your name?"),
        Question("email", "E-mail"),
    ],
    WizardStep.AGE: [
        Question("age", "What is your age range?", AGE_OPTIONS),
    ],
    WizardStep.GENDER_LOCATION: [
        Question("gender", "What is your gender?", GENDER_OPTIONS),
        Question("location", "Where do you live? (Country, city and State/Province)"),
    ],
    WizardStep.INTERESTS: [
        Question(
            "interests",
            "Which financial education topics interest you the most right now?",
            INTEREST_OPTIONS,
            multi=True,
        ),
    ],
    WizardStep.APP_USAGE: [
        Question(
            "has_used_apps",
            "Have you ever used or are you currently using any app or platform "
            "to learn about personal finance?",
            ["yes", "no"],
        ),
        Question("platforms_used", "If yes, which one(s)?", only_if_used_apps=True),
    ],
    WizardStep.PLATFORM_INVESTMENT: [
        Question(
            "platform_features",
            "What do you like most about these platforms?",
            PLATFORM_FEATURE_OPTIONS,
            multi=True,
            only_if_used_apps=True,
        ),
        Question(
            "experience_rating",
            "How would you rate your experience? (1 = Very dissatisfied, 5 = Very satisfied)",
            EXPERIENCE_RATING_OPTIONS,
            only_if_used_apps=True,
        ),
        Question(
            "platform_feedback",
            "Anything else about these platforms? (optional)",
            required=False,
            only_if_used_apps=True,
        ),
        Question(
            "monthly_investment",
            "How much would you be willing to invest monthly in a complete "
            "financial education platform?",
            MONTHLY_INVESTMENT_OPTIONS,
        ),
    ],
    WizardStep.PRODUCT_FIT: [
        Question(
            "interest_level",
            "If there were a free app that taught you personal finance in a practical "
            "and fun way, with rewards for progress, how interested would you be?",
            INTEREST_LEVEL_OPTIONS,
        ),
        Question(
            "usage_frequency",
            "How often do you think you would use an app like this?",
            USAGE_FREQUENCY_OPTIONS,
        ),
        Question(
            "usefulness",
            "How useful would a free financial education app be for your life today?",
            USEFULNESS_OPTIONS,
        ),
        Question(
            "would_recommend",
            "Would you recommend this app to friends or family?",
            WOULD_RECOMMEND_OPTIONS,
        ),
    ],
}


def visible_questions(step: WizardStep, response: SurveyResponse) -> list[Question]:
    """Questions shown on ``step`` given the answers so far."""
    show_conditional = requires_platform_feedback(response)
    return [q for q in STEP_QUESTIONS[step] if show_conditional or not q.only_if_used_apps]


def parse_choices(raw: str, options: list[str], multi: bool) -> str | list[str] | None:
    """
    Turn "2" or "1,3" into option labels. Returns None on bad input.
    """
    picks = [p.strip() for p in raw.split(",") if p.strip()]
    if not picks or (not multi and len(picks) > 1):
        return None
    chosen = []
    for p in picks:
        if not p.isdigit() or not 1 <= int(p) <= len(options):
            return None
        label = options[int(p) - 1]
        if label not in chosen:
            chosen.append(label)
    return chosen if multi else chosen[0]


def ask_question(question: Question, current) -> str | list[str]:
    console.print(f"\n[bold]{question.label}[/bold]{' *' if question.required else ''}")
    if question.options is None:
        return Prompt.ask("  ", default=current or "", show_default=bool(current), console=console)

    for i, option in enumerate(question.options, start=1):
        checked = "x" if option == current or (question.multi and option in current) else " "
        console.print(f"  ({checked}) {i}. {escape(option)}")
    hint = "numbers separated by commas" if question.multi else "a number"
    while True:
        raw = Prompt.ask(f"  Choose {hint}", console=console, default="")
        if not raw and current:
            return current
        value = parse_choices(raw, question.options, question.multi)
        if value is not None:
            return value
        console.print("  [red]Please pick from the list.[/red]")


def render_header(wizard: SurveyWizard) -> None:
    console.print()
    console.print(f"[dim]Step {wizard.step.value + 1} of {TOTAL_STEPS}[/dim]")
    console.print(ProgressBar(total=100, completed=wizard.progress, width=40))


def render_welcome() -> None:
    console.print(
        Panel.fit(
            "[bold green]FinE Market Research[/bold green]\n\n"
            "Hello! We are FinE, a startup focused on transforming the way people\n"
            "learn about finance. To help us, we're running a quick survey about\n"
            "people's habits and needs on this topic.\n\n"
            "[dim]Takes less than 2 minutes to complete.[/dim]",
            title="Welcome",
            border_style="green",
        )
    )


def render_thank_you() -> None:
    console.print(
        Panel.fit(
            "[bold green]Thank you![/bold green]\n"
            "Your answers help us improve financial education.",
            border_style="green",
        )
    )


def show_notifications(wizard: SurveyWizard) -> None:
    for n in wizard.drain_notifications():
        style = "red" if n.variant == "destructive" else "green"
        console.print(f"\n[{style}][bold]{n.title}[/bold] {n.description}[/{style}]")


def run_terminal_survey(wizard: SurveyWizard, client: SubmissionClient) -> bool:
    """Drive ``wizard`` from the terminal. Returns True once submitted."""
    if wizard.view is WizardView.THANK_YOU:
        render_thank_you()
        return True

    while True:
        if wizard.step is WizardStep.WELCOME:
            render_welcome()
            Prompt.ask("Press Enter to get started", default="", show_default=False, console=console)
            wizard.advance()
            continue

        render_header(wizard)
        for question in visible_questions(wizard.step, wizard.response):
            value = ask_question(question, getattr(wizard.response, question.field))
            wizard.update(question.field, value)
            # Answering has_used_apps can reveal follow-up questions on this step
            if question.field == "has_used_apps":
                break

        if wizard.step is WizardStep.APP_USAGE and requires_platform_feedback(wizard.response):
            value = ask_question(STEP_QUESTIONS[WizardStep.APP_USAGE][1], wizard.response.platforms_used)
            wizard.update("platforms_used", value)

        final = wizard.step.is_final
        action = Prompt.ask(
            "\nContinue",
            choices=["submit" if final else "next", "back"],
            default="submit" if final else "next",
            console=console,
        )
        if action == "back":
            wizard.retreat()
            continue

        if not final:
            wizard.advance()
            show_notifications(wizard)
            continue

        with Live(Spinner("dots", text="Submitting..."), console=console, transient=True):
            outcome = asyncio.run(wizard.submit(client))
        show_notifications(wizard)
        if outcome.success:
            time.sleep(outcome.redirect_delay_seconds)
            render_thank_you()
            return True
        if not typer.confirm("Try again?", default=True):
            return False


# =============================================================================
# Commands
# =============================================================================

@app.command()
def take(
    relay_url: Optional[str] = typer.Option(None, "--relay-url", "-r", help="Relay base URL (defaults to RELAY_BASE_URL)"),
) -> None:
    """Take the survey in the terminal."""
    from fine_survey.config import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)

    client = SubmissionClient(
        relay_url or settings.relay_base_url,
        timeout=settings.relay_timeout_seconds,
    )
    wizard = SurveyWizard.mount(
        SessionMarker(),
        redirect_delay_seconds=settings.redirect_delay_seconds,
    )

    try:
        submitted = run_terminal_survey(wizard, client)
    except KeyboardInterrupt:
        console.print("\n\n[dim]Survey abandoned. Nothing was sent.[/dim]")
        raise typer.Exit(1)

    if not submitted:
        raise typer.Exit(1)


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to run on (defaults to PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
) -> None:
    """Start the relay and wizard API server."""
    import uvicorn

    from fine_survey.config import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)
    actual_port = port or settings.port

    console.print("\n[bold green]FinE Survey backend[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "fine_survey.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command()
def health() -> None:
    """Check configuration."""
    from fine_survey.config import get_settings

    console.print("\n[bold]FinE Survey Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("[green]OK[/green] Configuration loaded")
        console.print(f"   Environment: {settings.survey_env}")
        console.print(f"   Log level: {settings.log_level}")

        if settings.survey_sink_url.startswith("https://"):
            console.print("[green]OK[/green] Survey sink URL configured")
        else:
            console.print("[yellow]WARN[/yellow] Survey sink URL is not https")

        console.print(f"   Relay base URL: {settings.relay_base_url}")
        console.print(f"   CORS origins: {', '.join(settings.cors_origins)}")

        console.print("\n[green]All checks passed![/green]")

    except Exception as e:
        console.print(f"\n[red]FAIL Configuration error: {e}[/red]")
        console.print("[dim]Check your environment or .env file.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from fine_survey import __version__

    console.print(f"FinE Survey version {__version__}")


if __name__ == "__main__":
    app()
