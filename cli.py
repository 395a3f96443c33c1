#!/usr/bin/env python3
"""
Questex CLI - Parse exam questions and convert shorthand math to LaTeX.
"""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from config import Config
from core.math_renderer import SegmentKind
from core.question_parser import QuestionType
from core.service import QuestexService, ServiceResult
from models.llm_manager import LLMManager

console = Console()

QUESTION_TYPE_CHOICES = [qtype.value for qtype in QuestionType]


def _configure_logging(verbose: bool):
    level = logging.DEBUG if verbose else getattr(logging, Config.LOG_LEVEL, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=verbose)],
    )


def _check(result: ServiceResult) -> ServiceResult:
    """Print a failed result and abort."""
    if not result.success:
        console.print(f"\n[bold red]Error:[/bold red] {escape(str(result.error))}\n")
        raise click.Abort()
    return result


def _print_segments(segments):
    for rendered in segments:
        if rendered.kind is SegmentKind.LITERAL:
            console.print(f"  [white]text[/white]     {escape(repr(rendered.content))}")
        elif rendered.is_fallback:
            console.print(
                f"  [red]math err[/red] {escape(repr(rendered.content))} [dim]({escape(rendered.error)})[/dim]"
            )
        else:
            label = "display " if rendered.kind is SegmentKind.DISPLAY_MATH else "inline  "
            console.print(f"  [cyan]{label}[/cyan] {escape(repr(rendered.segment.text.strip()))}")


@click.group()
@click.version_option(version="0.1.0", prog_name="Questex")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose):
    """Questex - Parse exam questions and convert shorthand math to LaTeX."""
    _configure_logging(verbose)


@cli.command()
def init():
    """Initialize Questex data directories and database."""
    console.print("\n[bold cyan]Initializing Questex...[/bold cyan]\n")

    console.print("🗄️  Creating database schema...")
    _check(QuestexService().initialize())
    console.print("   ✓ Database schema created\n")

    console.print("[bold green]✨ Questex initialized successfully![/bold green]\n")
    console.print(f"Database: {Config.DB_PATH}")
    console.print(f"Data directory: {Config.DATA_DIR}\n")
    console.print("Next steps:")
    console.print("  • questex add-exam <NAME> - Create an exam")
    console.print("  • questex parse <FILE> --local - Preview questions from a text file")
    console.print("  • questex --help - See all commands\n")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--type", "-t", "question_type",
    type=click.Choice(QUESTION_TYPE_CHOICES),
    default="MCQ",
    help="Question type",
)
@click.option("--local", is_flag=True, help="Parse with the local splitter instead of the LLM")
@click.option(
    "--provider",
    type=click.Choice(Config.SUPPORTED_PROVIDERS),
    default=None,
    help=f"LLM provider (default: {Config.LLM_PROVIDER})",
)
@click.option("--save", is_flag=True, help="Store the parsed questions")
@click.option("--course", "-c", default=None, help="Course ID to store questions under")
def parse(file, question_type, local, provider, save, course):
    """Parse a file of questions separated by '---' and convert them to LaTeX."""
    if save and not course:
        console.print("\n[bold red]Error:[/bold red] --save requires --course\n")
        raise click.Abort()

    if not local:
        effective = provider or Config.LLM_PROVIDER
        if not LLMManager.is_provider_available(effective):
            console.print(
                f"\n[bold red]Error:[/bold red] Provider '{effective}' has no API key configured. "
                "Use --local or set the key in .env\n"
            )
            raise click.Abort()

    raw_text = file.read_text(encoding="utf-8")
    service = QuestexService(provider=provider)

    with console.status("[cyan]Parsing questions...[/cyan]"):
        result = _check(service.parse_questions(raw_text, question_type, use_ai=not local))

    converted = result.data["converted"]
    if not converted:
        console.print("\n[yellow]Nothing to process.[/yellow]\n")
        return

    console.print(f"\n[bold]Parsed {len(converted)} questions[/bold]\n")
    for index, question in enumerate(converted, start=1):
        console.print(f"[bold cyan]Question {index}[/bold cyan]")
        console.print(question.statement, markup=False)
        if question.options:
            for label, option in zip("abcdefghijklmnopqrstuvwxyz", question.options):
                console.print(f"  {label}) {option}", markup=False, highlight=False)
        console.print()

    if not local:
        cache_stats = service.llm.get_cache_stats()
        if cache_stats["total"] > 0:
            console.print("📊 LLM Response Cache:")
            console.print(f"   Cache hits: {cache_stats['hits']}")
            console.print(f"   Cache misses: {cache_stats['misses']}")
            console.print(f"   Hit rate: {cache_stats['hit_rate']}%\n")

    if save:
        saved = _check(service.save_questions(result.data["parsed"], question_type, course))
        console.print(f"[bold green]✓ {escape(saved.message)}[/bold green]\n")


@cli.command()
@click.argument("text")
def convert(text):
    """Convert shorthand math in TEXT to LaTeX."""
    result = QuestexService().convert_text(text)
    console.print(result.data["latex"], markup=False, highlight=False)


@cli.command()
@click.argument("text")
@click.option("--html", "as_html", is_flag=True, help="Output an HTML fragment")
def render(text, as_html):
    """Split TEXT into literal and math segments and typeset the math."""
    result = QuestexService().render_question(text, html=as_html)

    if as_html:
        console.print(result.data["statement"], markup=False, highlight=False)
        for label, option in result.data["options"]:
            console.print(f"{label} {option}", markup=False, highlight=False)
        return

    _print_segments(result.data["statement"])
    for label, segments in result.data["options"]:
        console.print(f"[bold]{label}[/bold]")
        _print_segments(segments)

    if result.data["fallbacks"]:
        console.print(f"\n[yellow]{result.data['fallbacks']} math segment(s) failed to render[/yellow]")


@cli.command()
@click.option(
    "--type", "-t", "question_type",
    type=click.Choice(QUESTION_TYPE_CHOICES),
    default=None,
    help="Only show questions of this type",
)
def questions(question_type):
    """List stored questions, newest first."""
    result = _check(QuestexService().get_questions(question_type))
    stored = result.data["questions"]

    if not stored:
        console.print("\n[yellow]No questions found.[/yellow]\n")
        return

    table = Table(title="\n📝 Questions")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Statement", style="white")
    table.add_column("Options", style="green", justify="right")
    table.add_column("Created", style="dim")

    for question in stored:
        statement = question["question_statement"]
        if len(statement) > 60:
            statement = statement[:57] + "..."
        table.add_row(
            question["id"],
            question["question_type"],
            escape(statement),
            str(len(question["options"] or [])),
            str(question["created_at"]),
        )

    console.print(table)
    console.print(f"\nTotal: {result.data['count']} questions\n")


@cli.command()
@click.argument("question_id")
def delete(question_id):
    """Delete a stored question."""
    result = _check(QuestexService().delete_question(question_id))
    console.print(f"\n[green]✓ {escape(result.message)}[/green]\n")


@cli.command()
def exams():
    """List all exams."""
    result = _check(QuestexService().get_exams())
    all_exams = result.data["exams"]

    if not all_exams:
        console.print("\n[yellow]No exams found. Use 'questex add-exam' first.[/yellow]\n")
        return

    table = Table(title="\n📚 Exams")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Description", style="dim")

    for exam in all_exams:
        table.add_row(exam["id"], escape(exam["name"]), escape(exam["description"] or ""))

    console.print(table)
    console.print(f"\nTotal: {result.data['count']} exams\n")


@cli.command()
@click.argument("exam_id")
def courses(exam_id):
    """List the courses of an exam."""
    result = _check(QuestexService().get_courses(exam_id))
    exam_courses = result.data["courses"]

    if not exam_courses:
        console.print("\n[yellow]No courses found for this exam.[/yellow]\n")
        return

    table = Table(title="\n📖 Courses")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Description", style="dim")

    for course in exam_courses:
        table.add_row(course["id"], escape(course["name"]), escape(course["description"] or ""))

    console.print(table)
    console.print(f"\nTotal: {result.data['count']} courses\n")


@cli.command("add-exam")
@click.argument("name")
@click.option("--description", "-d", default=None, help="Exam description")
def add_exam(name, description):
    """Create an exam."""
    result = _check(QuestexService().add_exam(name, description))
    console.print(f"\n[green]✓ {escape(result.message)}[/green] ({result.data['id']})\n")


@cli.command("add-course")
@click.argument("exam_id")
@click.argument("name")
@click.option("--description", "-d", default=None, help="Course description")
def add_course(exam_id, name, description):
    """Create a course under an exam."""
    result = _check(QuestexService().add_course(exam_id, name, description))
    console.print(f"\n[green]✓ {escape(result.message)}[/green] ({result.data['id']})\n")


if __name__ == "__main__":
    cli()
