import json as json_lib
from dataclasses import asdict, is_dataclass

import typer


def init_context(
    ctx: typer.Context,
    json_output: bool = False,
    quiet_output: bool = False,
    identity: str | None = None,
) -> None:
    """Initialize CLI context with standard flags and identity."""
    if ctx.obj is None or not isinstance(ctx.obj, dict):
        ctx.obj = {}
    ctx.obj["json_output"] = json_output
    ctx.obj["quiet_output"] = quiet_output
    ctx.obj["identity"] = identity


def _root_obj(ctx: typer.Context) -> dict:
    root = ctx.find_root()
    return root.obj if isinstance(root.obj, dict) else {}


def is_json_mode(ctx: typer.Context) -> bool:
    """Check if JSON output mode is enabled."""
    return _root_obj(ctx).get("json_output", False)


def is_quiet_mode(ctx: typer.Context) -> bool:
    """Check if quiet output mode is enabled."""
    return _root_obj(ctx).get("quiet_output", False)


def get_identity(ctx: typer.Context) -> str | None:
    return _root_obj(ctx).get("identity")


def require_identity(ctx: typer.Context) -> str:
    identity = get_identity(ctx)
    if not identity:
        raise ValueError("identity required (use --as)")
    return identity


def _plain(data):
    if is_dataclass(data):
        return asdict(data)
    if isinstance(data, list):
        return [_plain(item) for item in data]
    return data


def echo_json(data, ctx: typer.Context) -> bool:
    """Output data as JSON if in JSON mode. Returns True if output, False otherwise."""
    if is_json_mode(ctx):
        typer.echo(json_lib.dumps(_plain(data), indent=2))
        return True
    return False


def echo_text(msg: str, ctx: typer.Context) -> None:
    """Echo message only if not in quiet mode."""
    if not is_quiet_mode(ctx):
        typer.echo(msg)
