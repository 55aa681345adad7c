"""CLI error handling: wrap commands to report errors instead of silent failures."""

import logging
from functools import wraps

import typer
from click.exceptions import Exit

from huddle.errors import (
    AuthorizationError,
    MessageNotFoundError,
    NotAMemberError,
    TeamNotFoundError,
    TransportError,
)

log = logging.getLogger(__name__)


def error_feedback(f):
    """Wrap command to catch exceptions and report them before exiting.

    Not being a member of the team is the one failure phrased for the user;
    everything else is echoed to stderr before raising Exit(1).
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (SystemExit, Exit):
            raise
        except NotAMemberError as e:
            typer.echo("You are not a member of this team", err=True)
            raise typer.Exit(1) from e
        except (AuthorizationError, MessageNotFoundError, TeamNotFoundError) as e:
            typer.echo(str(e), err=True)
            raise typer.Exit(1) from e
        except (ValueError, KeyError, TypeError) as e:
            typer.echo(f"Invalid input: {e}", err=True)
            raise typer.Exit(1) from e
        except TransportError as e:
            typer.echo(f"Store error: {e}", err=True)
            raise typer.Exit(1) from e
        except OSError as e:
            typer.echo(f"File error: {e}", err=True)
            raise typer.Exit(1) from e
        except Exception as e:
            log.error(f"Unhandled error in {f.__name__}", exc_info=True)
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e

    return wrapper
