"""Interactive CLI application."""
import json
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from exam_tutor import api, auth
from exam_tutor.config import get_settings
from exam_tutor.db import init_db
from exam_tutor.errors import TutorError
from exam_tutor.log import setup_logging
from exam_tutor.progress import get_readiness_color, get_readiness_label
from exam_tutor.seed import is_seeded, seed_all

console = Console()

EXIT_WORDS = ("q", "quit", "menu")


class SessionExitRequested(Exception):
    """User asked to leave the current learn or practice session."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def call(db_path: str, token: str, fn, *args, **kwargs):
    """Run an api operation; print the error and return None if it fails."""
    status, payload = api.handle(fn, db_path, token, *args, **kwargs)
    if status != 200:
        console.print(f"[red]{payload['message']}[/red]")
        return None
    return payload


def progress_bar(percent: float, width: int = 20) -> str:
    color = get_readiness_color(percent)
    filled = int(percent / 100 * width)
    return f"[{color}]{'█' * filled}{'░' * (width - filled)}[/{color}]"


def show_welcome():
    console.print(Panel(
        "[bold]Exam Tutor[/bold]\n[dim]Learn cards, generated practice, and your formula cheat sheet[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu(is_admin: bool):
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("learn", "Work through a topic's learn cards"),
        ("practice", "Generated practice questions"),
        ("progress", "Per-topic and overall progress"),
        ("cheatsheet", "Formula cheat sheet"),
    ]
    if is_admin:
        commands.append(("admin", "Author topics, cards and templates"))
    commands += [("logout", "Sign out"), ("quit", "Exit")]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


# --- Sign in ---


def cmd_login(db_path: str) -> str | None:
    mode = Prompt.ask("Sign in or register", choices=["login", "register", "quit"], default="login")
    if mode == "quit":
        return None
    email = Prompt.ask("Email")
    if mode == "register":
        display_name = Prompt.ask("Display name")
        password = Prompt.ask("Password", password=True)
        invite = Prompt.ask("Invite code", default="") if get_settings().require_invite else None
        status, payload = api.handle(auth.register, db_path, email, password, display_name, invite)
        if status != 200:
            console.print(f"[red]{payload['message']}[/red]")
            return ""
    else:
        password = Prompt.ask("Password", password=True)
    status, payload = api.handle(auth.login, db_path, email, password)
    if status != 200:
        console.print(f"[red]{payload['message']}[/red]")
        return ""
    return payload


# --- Course and topic selection ---


def choose_course(db_path: str, token: str) -> dict | None:
    courses = call(db_path, token, api.list_courses) or []
    if not courses:
        console.print("[yellow]No courses yet.[/yellow]")
        return None
    for c in courses:
        lock = " [dim](coming soon)[/dim]" if c["locked"] else ""
        console.print(f"  [cyan]{c['id']}[/cyan]) {c['icon']} {c['name']}{lock}")
    course_id = IntPrompt.ask("Select course", choices=[str(c["id"]) for c in courses])
    course = next(c for c in courses if c["id"] == course_id)
    if course["locked"]:
        console.print(f"[yellow]{course['name']} is not available yet.[/yellow]")
        return None
    return course


def choose_topic(db_path: str, token: str) -> dict | None:
    course = choose_course(db_path, token)
    if course is None:
        return None
    topics = call(db_path, token, api.list_topics, course["id"]) or []
    if not topics:
        console.print("[yellow]This course has no topics yet.[/yellow]")
        return None
    table = Table(title=course["name"])
    table.add_column("#", justify="right")
    table.add_column("Topic", style="cyan")
    table.add_column("Learn", justify="right")
    table.add_column("Practice", justify="right")
    for tp in topics:
        table.add_row(
            str(tp["topic"]["id"]), f"{tp['topic']['icon']} {tp['topic']['name']}",
            f"{tp['learn_completed']}/{tp['learn_total']}",
            f"{tp['practice_correct']}/{tp['practice_total']}",
        )
    console.print(table)
    topic_id = IntPrompt.ask("Select topic", choices=[str(tp["topic"]["id"]) for tp in topics])
    return next(tp["topic"] for tp in topics if tp["topic"]["id"] == topic_id)


# --- Learn ---


def run_learn_session(db_path: str, token: str, topic_id: int) -> None:
    session = call(db_path, token, api.get_learn_session, topic_id)
    if session is None:
        return
    cards = [c for c in session["cards"] if not c["completed"]]
    if not cards:
        console.print("[green]Every card in this topic is complete.[/green]")
        return
    console.print(f"\n[bold]{session['topic']['name']}[/bold]: {len(cards)} cards left\n")
    for i, card in enumerate(cards, 1):
        console.print(Panel(Markdown(card["content"]), title=f"{i}/{len(cards)} {card['title']}", border_style="cyan"))
        if card["formula"]:
            console.print(f"  [bold]Key formula:[/bold] {escape(card['formula'])}")
        if card["quick_check"]:
            console.print(f"\n[bold]Quick check:[/bold] {escape(card['quick_check'])}")
            session_prompt("[dim]Press Enter to reveal the answer[/dim]", default="")
            console.print(f"[green]{escape(card['quick_check_answer'] or '')}[/green]")
        session_prompt("[dim]Press Enter to mark this card complete[/dim]", default="")
        call(db_path, token, api.complete_card, topic_id, card["id"])


def cmd_learn(db_path: str, token: str):
    topic = choose_topic(db_path, token)
    if topic is None:
        return
    try:
        run_learn_session(db_path, token, topic["id"])
    except SessionExitRequested:
        console.print("[dim]Progress saved.[/dim]")


# --- Practice ---


def show_solution(result: dict) -> None:
    console.print(f"Answer: [green]{result['correct_answer'] or '(not available)'}[/green]")
    console.print(Panel(escape(result["solution_steps"]), title="Solution", border_style="green"))


def run_practice_question(db_path: str, token: str, topic_id: int, template_id: int | None = None) -> dict | None:
    """Ask one generated question and grade or reveal it."""
    question = call(db_path, token, api.generate_question, topic_id, template_id)
    if question is None:
        return None
    console.print(Panel(escape(question["question_text"]), title="Question", border_style="cyan"))
    answer = session_prompt("Your answer ([dim]? to reveal[/dim])")
    if answer.strip() == "?":
        result = call(db_path, token, api.view_answer, question["attempt_id"])
    else:
        result = call(db_path, token, api.grade_attempt, question["attempt_id"], answer)
        if result:
            console.print("[green]Correct![/green]" if result["correct"] else "[red]Incorrect.[/red]")
    if result:
        show_solution(result)
    return question


def run_practice_loop(db_path: str, token: str, topic_id: int) -> None:
    template_id = None
    while True:
        question = run_practice_question(db_path, token, topic_id, template_id)
        if question is None:
            return
        nxt = session_prompt(
            "Next: (n)ew, (r)egenerate this one, (m)ark mastered, (q)uit",
            choices=["n", "r", "m", "q"], default="n",
        )
        if nxt == "m" and call(db_path, token, api.mark_mastered, question["attempt_id"]):
            console.print("[green]Marked as mastered.[/green]")
        template_id = question["template_id"] if nxt == "r" else None


def cmd_practice(db_path: str, token: str):
    topic = choose_topic(db_path, token)
    if topic is None:
        return
    try:
        run_practice_loop(db_path, token, topic["id"])
    except SessionExitRequested:
        console.print("[dim]Back to menu.[/dim]")


# --- Progress ---


def cmd_progress(db_path: str, token: str):
    overview = call(db_path, token, api.get_progress_overview)
    if overview is None:
        return
    overall = overview["overall"]
    color = get_readiness_color(overall)
    console.print(
        f"\n  Overall: [bold]{overall:.0f}%[/bold] {progress_bar(overall)} "
        f"[{color}]{get_readiness_label(overall)}[/{color}]\n"
    )
    table = Table(title="Topics")
    table.add_column("Topic", style="cyan")
    table.add_column("Learn", justify="right")
    table.add_column("Practice", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Status")
    for tp in overview["topics"]:
        sc_color = get_readiness_color(tp["total_percent"])
        table.add_row(
            tp["topic"]["name"],
            f"{tp['learn_percent']:.0f}%",
            f"{tp['practice_percent']:.0f}%",
            f"{tp['total_percent']:.0f}%",
            f"[{sc_color}]{get_readiness_label(tp['total_percent'])}[/{sc_color}]",
        )
    console.print(table)
    started = [tp for tp in overview["topics"] if tp["learn_total"] or tp["practice_total"]]
    if started:
        weakest = min(started, key=lambda tp: tp["total_percent"])
        if weakest["total_percent"] < 80:
            console.print(f"\n  [yellow]Recommendation: Focus on {weakest['topic']['name']}[/yellow]")


# --- Cheat sheet ---


def show_cheat_sheet(sections: list) -> None:
    for section in sections:
        if not section["groups"] and not section["user_entries"]:
            continue
        console.print(f"\n[bold cyan]{section['topic']['name']}[/bold cyan]")
        for group in section["groups"]:
            for f in group["formulas"]:
                console.print(f"  [dim]{group['card_title']}:[/dim] {escape(f['formula'])}")
        for e in section["user_entries"]:
            console.print(f"  [magenta]#{e['id']} {escape(e['label'])}:[/magenta] {escape(e['formula'])}")


def cmd_cheatsheet(db_path: str, token: str):
    course = choose_course(db_path, token)
    if course is None:
        return
    while True:
        sections = call(db_path, token, api.list_cheat_sheet, course["id"])
        if sections is None:
            return
        show_cheat_sheet(sections)
        action = Prompt.ask("\n(a)dd, (d)elete, (b)ack", choices=["a", "d", "b"], default="b")
        if action == "b":
            return
        if action == "a":
            topic_id = IntPrompt.ask("Topic", choices=[str(s["topic"]["id"]) for s in sections])
            label = Prompt.ask("Label")
            formula = Prompt.ask("Formula")
            call(db_path, token, api.add_cheat_sheet_entry, topic_id, formula, label)
        else:
            entry_id = IntPrompt.ask("Entry number")
            call(db_path, token, api.delete_cheat_sheet_entry, entry_id)


# --- Admin ---


def cmd_admin(db_path: str, token: str):
    action = Prompt.ask(
        "Admin", choices=["course", "topic", "card", "template", "import", "delete", "back"], default="back",
    )
    if action == "back":
        return
    if action == "import":
        file_path = Prompt.ask("File path")
        if not Path(file_path).exists():
            console.print(f"[red]File not found: {file_path}[/red]")
            return
        result = call(db_path, token, api.admin_import_content, file_path)
        if result:
            console.print(
                f"[green]Imported {result['filename']}: {result['topics']} topics, "
                f"{result['cards']} cards, {result['templates']} templates[/green]"
            )
        return
    if action == "delete":
        entity = Prompt.ask("Delete what", choices=["course", "topic", "card", "template"])
        entity_id = IntPrompt.ask("Id")
        if Confirm.ask(f"Delete {entity} {entity_id} and everything under it?", default=False):
            call(db_path, token, api.admin_delete, entity, entity_id)
        return

    if action == "course":
        data = {
            "name": Prompt.ask("Name"),
            "description": Prompt.ask("Description"),
            "icon": Prompt.ask("Icon", default="NEW"),
            "locked": Confirm.ask("Locked (coming soon)?", default=False),
        }
    elif action == "topic":
        course_id = Prompt.ask("Course id (blank for none)", default="")
        data = {
            "name": Prompt.ask("Name"),
            "description": Prompt.ask("Description"),
            "icon": Prompt.ask("Icon", default="NEW"),
            "order_index": IntPrompt.ask("Order", default=0),
            "course_id": int(course_id) if course_id else None,
        }
    elif action == "card":
        data = {
            "topic_id": IntPrompt.ask("Topic id"),
            "title": Prompt.ask("Title"),
            "content": Prompt.ask("Content (markdown)"),
            "formula": Prompt.ask("Key formula", default="") or None,
            "quick_check": Prompt.ask("Quick check question", default="") or None,
            "quick_check_answer": Prompt.ask("Quick check answer", default="") or None,
            "order_index": IntPrompt.ask("Order", default=0),
        }
    else:
        raw_params = Prompt.ask('Parameters as JSON, e.g. {"a": {"min": 1, "max": 9}}')
        try:
            parameters = json.loads(raw_params)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid JSON: {e}[/red]")
            return
        data = {
            "topic_id": IntPrompt.ask("Topic id"),
            "template_text": Prompt.ask("Question text with {placeholders}"),
            "solution_template": Prompt.ask("Solution text"),
            "answer_type": Prompt.ask("Answer type", choices=["numeric", "text"], default="numeric"),
            "parameters": parameters,
            "kind": Prompt.ask("Kind (blank to match by keyword)", default="") or None,
        }
    created = call(db_path, token, api.admin_create, action, data)
    if created:
        console.print(f"[green]Created {action} {created['id']}[/green]")


def main():
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    db_path = settings.db_path
    init_db(db_path)
    if settings.seed_on_start:
        first_run = not is_seeded(db_path)
        if first_run:
            console.print("[dim]Setting up for first use...[/dim]")
        seed_all(db_path)

    show_welcome()
    token = ""
    while not token:
        token = cmd_login(db_path)
        if token is None:
            return
    user = auth.authenticate(db_path, token)
    console.print(f"[green]Signed in as {user.display_name}[/green]")

    while True:
        show_menu(user.is_admin)
        choice = Prompt.ask("\n[bold]>[/bold]", default="learn").strip().lower()
        try:
            if choice == "learn":
                cmd_learn(db_path, token)
            elif choice == "practice":
                cmd_practice(db_path, token)
            elif choice == "progress":
                cmd_progress(db_path, token)
            elif choice == "cheatsheet":
                cmd_cheatsheet(db_path, token)
            elif choice == "admin" and user.is_admin:
                cmd_admin(db_path, token)
            elif choice == "logout":
                auth.logout(db_path, token)
                console.print("[dim]Signed out.[/dim]")
                break
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck on your exam![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except TutorError as e:
            console.print(f"[red]Error: {e.message}[/red]")


if __name__ == "__main__":
    main()
