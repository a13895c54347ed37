"""CLI entrypoint for running AGI race simulations."""

import click

from agirace.core.constants import MAX_TURN
from agirace.core.persistence import load_game, save_game
from agirace.core.victory_conditions import victory_progress
from agirace.gamemaster import Gamemaster, create_llm_client
from agirace.history import TurnHistory
from agirace.simulation import parse_directive, simulate_one_game
from agirace.utils import setup_logging


def _parse_directives(ctx, param, values):
    try:
        return tuple(parse_directive(value) for value in values)
    except ValueError as e:
        raise click.BadParameter(str(e))


def print_summary(state):
    click.echo("--- Summary ---")
    for faction in state.factions.values():
        click.echo(
            f"{faction.name}: cap {faction.capability_score:.1f} / safety {faction.safety_score:.1f} / "
            f"trust {faction.resources.trust:.1f} / compute {faction.resources.compute:.1f} / "
            f"techs {len(faction.unlocked_techs)}"
        )
        progress = victory_progress(state, faction.id)
        if progress:
            best, value = max(progress.items(), key=lambda item: item[1])
            click.echo(f"    closest route: {best.value} ({value * 100:.0f}%)")
    click.echo(f"Global Safety: {state.global_safety:.1f}")
    click.echo(f"Reached {state.date_label} (turn {state.turn})")

    if not state.game_over:
        click.echo("Outcome: No AGI deployment yet")
    elif state.winner_id:
        click.echo(f"Outcome: {state.outcome.value}. Winner: {state.factions[state.winner_id].name}")
    elif state.loser_id and state.outcome.is_loss:
        click.echo(f"Outcome: {state.outcome.value}. Loser: {state.factions[state.loser_id].name}")
    else:
        click.echo(f"Outcome: {state.outcome.value}")


@click.command()
@click.option(
    "--turns",
    default=MAX_TURN,
    type=int,
    help=f"Number of turns to simulate (default: {MAX_TURN})",
)
@click.option(
    "--seed",
    default=42,
    type=int,
    help="Random seed for reproducibility (default: 42)",
)
@click.option(
    "--events/--no-events",
    default=True,
    help="Enable random events between turns (default: enabled)",
)
@click.option(
    "--log",
    "show_log",
    is_flag=True,
    default=False,
    help="Print the game log as turns resolve",
)
@click.option(
    "--load",
    "load_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Resume from a saved game JSON file",
)
@click.option(
    "--save",
    "save_path",
    default=None,
    type=click.Path(dir_okay=False, writable=True),
    help="Write the final game state to a JSON file",
)
@click.option(
    "--history-csv",
    default=None,
    type=click.Path(dir_okay=False, writable=True),
    help="Write per-turn faction snapshots to a CSV file",
)
@click.option(
    "--transcript",
    default=None,
    type=click.Path(dir_okay=False, writable=True),
    help="Write a JSON-lines transcript of every turn",
)
@click.option(
    "--directive",
    "directives",
    multiple=True,
    callback=_parse_directives,
    help="Gamemaster directive as TURN:FACTION_ID:TEXT (repeatable; needs an API key)",
)
@click.option(
    "--api-key",
    envvar="OPENAI_API_KEY",
    default=None,
    help="API key for the gamemaster LLM (or set OPENAI_API_KEY env var)",
)
@click.option(
    "--model",
    default="gpt-4o-mini",
    help="Gamemaster model name (default: gpt-4o-mini)",
)
@click.option(
    "--api-base",
    envvar="OPENAI_API_BASE",
    default=None,
    help="Custom API base URL for alternative providers (or set OPENAI_API_BASE env var)",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable verbose logging",
)
def main(
    turns: int,
    seed: int,
    events: bool,
    show_log: bool,
    load_path: str,
    save_path: str,
    history_csv: str,
    transcript: str,
    directives: tuple,
    api_key: str,
    model: str,
    api_base: str,
    verbose: bool,
):
    """Run a heuristic AI-vs-AI game and print a summary."""
    setup_logging(verbose=verbose, transcript_file=transcript, log_level=None if verbose else "WARNING")

    gamemaster = None
    if directives:
        if not api_key:
            raise click.UsageError("--directive needs an API key (--api-key or OPENAI_API_KEY)")
        gamemaster = Gamemaster(create_llm_client(api_key=api_key, model=model, api_base=api_base))

    state = load_game(load_path) if load_path else None
    history = TurnHistory() if history_csv else None

    printed = 0

    def echo_new_log_entries(current_state):
        nonlocal printed
        if show_log:
            for entry in current_state.log[printed:]:
                click.echo(entry)
        printed = len(current_state.log)

    try:
        if state is not None:
            printed = len(state.log)
        final_state = simulate_one_game(
            turns=turns,
            seed=seed,
            state=state,
            events_enabled=events,
            history=history,
            on_turn=echo_new_log_entries,
            gamemaster=gamemaster,
            directives=directives,
        )
    except KeyboardInterrupt:
        click.echo("\nSimulation interrupted by user.", err=True)
        raise click.Abort()

    print_summary(final_state)

    if save_path:
        save_game(final_state, save_path)
        click.echo(f"Saved game to {save_path}")
    if history is not None:
        history.to_csv(history_csv)
        click.echo(f"Wrote turn history to {history_csv}")


if __name__ == "__main__":
    main()
