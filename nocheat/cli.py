"""
NoCheat CLI - model training commands.

    nocheat train default <output_path>
    nocheat train custom <training_data.json> <output_path>
"""

import logging
from pathlib import Path

import typer

from nocheat import __version__
from nocheat.errors import NoCheatError
from nocheat.training import generate_default, load_training_file, train_model

app = typer.Typer(
    name="nocheat",
    help="Machine learning based cheat detection for game servers",
    add_completion=False,
)
train_app = typer.Typer(help="Train and save a cheat detection model", no_args_is_help=True)
app.add_typer(train_app, name="train")

logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"nocheat v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@train_app.command("default")
def train_default(
    output_path: Path = typer.Argument(..., help="Where to write the model file"),
) -> None:
    """Generate a default model from synthetic profiles."""
    typer.echo(f"Generating default model at: {output_path}")
    try:
        generate_default(str(output_path))
    except NoCheatError as e:
        typer.echo(f"Error generating default model: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo("Default model successfully generated!")


@train_app.command("custom")
def train_custom(
    training_data: Path = typer.Argument(..., help="JSON array of labeled stat records"),
    output_path: Path = typer.Argument(..., help="Where to write the model file"),
) -> None:
    """Train a model from labeled stat records."""
    typer.echo(f"Loading training data from: {training_data}")
    try:
        records = load_training_file(str(training_data))
        typer.echo(f"Training model with {len(records)} examples...")
        train_model(records, None, str(output_path))
    except (NoCheatError, OSError) as e:
        typer.echo(f"Error training model: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Model successfully trained and saved to: {output_path}")


if __name__ == "__main__":
    app()
