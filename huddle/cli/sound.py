"""Sound subcommands: on, off, status, test."""

import typer

from huddle.chat import CueKind, get_engine

from .errors import error_feedback
from .output import echo_json, echo_text

app = typer.Typer(help="Sound notifications")


@app.command("on")
@error_feedback
def on_cmd(ctx: typer.Context):
    get_engine().set_enabled(True)
    echo_json({"enabled": True}, ctx) or echo_text("Sound notifications on", ctx)


@app.command("off")
@error_feedback
def off_cmd(ctx: typer.Context):
    get_engine().set_enabled(False)
    echo_json({"enabled": False}, ctx) or echo_text("Sound notifications off", ctx)


@app.command("status")
@error_feedback
def status_cmd(ctx: typer.Context):
    enabled = get_engine().enabled
    echo_json({"enabled": enabled}, ctx) or echo_text(
        f"Sound notifications {'on' if enabled else 'off'}", ctx
    )


@app.command("test")
@error_feedback
def test_cmd(
    ctx: typer.Context,
    kind: CueKind = typer.Argument(CueKind.MENTION, help="Cue to play"),
):
    """Play one cue now."""
    engine = get_engine()
    engine.unlock()
    played = engine.request_cue(kind)
    echo_json({"kind": kind.value, "played": played}, ctx) or echo_text(
        f"Played {kind.value}" if played else "Sound notifications are off", ctx
    )
