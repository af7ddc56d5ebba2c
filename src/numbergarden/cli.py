"""CLI entry point for Number Garden."""

import logging
import sys
import time

import click

from numbergarden.config.settings import Settings


def _build_runner(settings: Settings):
    from numbergarden.engine.adaptive import AdaptiveDifficultyEngine
    from numbergarden.engine.session_runner import SessionRunner
    from numbergarden.engine.tutor_voice import TutorVoice
    from numbergarden.skills.registry import SkillRegistry
    from numbergarden.state.progress import ProgressStore

    registry = SkillRegistry()
    engine = AdaptiveDifficultyEngine(registry=registry, thresholds=settings.adaptive)
    return SessionRunner(
        engine=engine,
        registry=registry,
        progress=ProgressStore(db_path=settings.data_dir / "progress.db"),
        voice=TutorVoice(settings=settings),
        settings=settings,
    )


@click.group(invoke_without_command=True)
@click.option("--verbose", "-v", is_flag=True, help="Log engine decisions to stderr")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Number Garden: adaptive mental arithmetic practice with Buzzy the bee."""
    settings = Settings.load()
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    if ctx.invoked_subcommand is None:
        ctx.invoke(practice)


@main.command()
@click.option("--skill", "skill_id", default=None, help="Practise this skill instead of the guided warmup")
@click.option("--problems", default=10, show_default=True, help="Number of problems before wrapping up")
@click.pass_context
def practice(ctx: click.Context, skill_id, problems: int) -> None:
    """Run an interactive practice session in the terminal."""
    from numbergarden.engine.scaffolding import peek_view, render_text

    settings = ctx.obj["settings"]
    runner = _build_runner(settings)

    click.echo(f"🐝 {runner.start()}\n")
    if skill_id:
        try:
            click.echo(f"🐝 {runner.select_skill(skill_id)}\n")
        except ValueError as e:
            raise click.ClickException(str(e))

    for _ in range(problems):
        nxt = runner.next_problem()
        if nxt.message:
            click.echo(f"🐝 {nxt.message}\n")

        click.echo(f"[{nxt.phase.value} · {nxt.skill_id} L{nxt.level}]")
        scaffold_text = render_text(nxt.scaffold)
        if scaffold_text:
            click.echo(scaffold_text)
        click.echo(nxt.problem.question)

        started = time.monotonic()
        while True:
            raw = click.prompt("Answer", default="", show_default=False).strip().lower()
            if raw in ("q", "quit"):
                _finish(runner)
                return
            if raw == "hint":
                click.echo(f"🐝 {runner.hint()}")
                continue
            if raw == "peek" and nxt.scaffold.peek_available:
                click.echo(render_text(peek_view(nxt.problem)))
                continue
            try:
                answer = int(raw)
            except ValueError:
                click.echo("Type a number! (or 'hint', 'quit')")
                continue
            break

        outcome = runner.submit(answer, time.monotonic() - started)
        if outcome.correct:
            click.secho(f"Correct! +{outcome.gold_earned} gold", fg="green")
        else:
            click.secho(f"Not quite... the answer was {outcome.expected}", fg="yellow")
            if nxt.problem.grid_path:
                click.echo(render_text(peek_view(nxt.problem), show_answer=outcome.expected))
        click.echo(f"🐝 {outcome.message}")
        if outcome.adjustment.changes_level or outcome.adjustment.calibration_complete:
            click.echo(f"   ({outcome.adjustment.reason})")
        if outcome.new_medal:
            click.secho(
                f"   You earned a {outcome.new_medal.medal.upper()} medal in {outcome.new_medal.skill_id}!",
                fg="cyan",
            )
        if outcome.suggest_break and not click.confirm("Keep going?", default=True):
            break
        click.echo("")

    _finish(runner)


def _finish(runner) -> None:
    report = runner.finish()
    s = report.summary
    click.echo("")
    click.echo(f"🐝 {report.message}")
    click.echo(f"  Problems: {s.total_problems}")
    click.echo(f"  Accuracy: {s.accuracy_percent}%")
    click.echo(f"  Avg time: {s.avg_time_seconds}s")
    click.echo(f"  Gold:     {report.gold}")
    if report.medals:
        click.echo(f"  Medals:   {', '.join(f'{m.medal} {m.skill_id}' for m in report.medals)}")


@main.command()
@click.pass_context
def skills(ctx: click.Context) -> None:
    """Show the skill tree with levels and medals."""
    from numbergarden.skills.registry import SkillRegistry
    from numbergarden.state.progress import ProgressStore

    settings = ctx.obj["settings"]
    registry = SkillRegistry()
    progress = ProgressStore(db_path=settings.data_dir / "progress.db")
    levels = progress.get_levels()
    stats = progress.get_stats()

    for branch, branch_skills in registry.branches().items():
        click.echo(registry.branch_name(branch))
        for skill in branch_skills:
            lock = " " if registry.is_unlocked(skill.id, levels) else "🔒"
            medal = registry.get_medal(stats.get(skill.id))
            medal_text = f" [{medal}]" if medal else ""
            click.echo(
                f"  {lock} {skill.icon} {skill.name} ({skill.id}) "
                f"Lv {levels.get(skill.id, 0)}/{skill.max_level}{medal_text}"
            )


@main.command()
@click.pass_context
def summary(ctx: click.Context) -> None:
    """Show the last session summary."""
    from numbergarden.state.progress import ProgressStore

    settings = ctx.obj["settings"]
    last = ProgressStore(db_path=settings.data_dir / "progress.db").get_last_session()
    if last is None:
        click.echo("No sessions yet.")
        return
    click.echo(f"Duration: {last['duration']} min")
    click.echo(f"Problems: {last['totalProblems']} ({last['accuracy']}% correct)")
    click.echo(f"Avg time: {last['avgTime']}s")
    click.echo(f"Skills:   {', '.join(last['skillsWorked']) or '-'}")
    click.echo(f"Final:    level {last['finalLevel']}, scaffold {last['finalScaffold']}")


@main.command()
@click.option("--skill", "skill_id", default=None, help="Only reset this skill")
@click.confirmation_option(prompt="Erase stored progress?")
@click.pass_context
def reset(ctx: click.Context, skill_id) -> None:
    """Erase stored progress."""
    from numbergarden.state.progress import ProgressStore

    settings = ctx.obj["settings"]
    store = ProgressStore(db_path=settings.data_dir / "progress.db")
    if skill_id:
        store.reset_skill(skill_id)
    else:
        store.reset_all()
    click.echo("Progress reset.")
