"""Dependency injection decorators for CLI commands."""

from functools import wraps

import rich_click as click

from ...api.imdb_errors import ImdbApiError, ImdbCaptchaError
from ...api.trakt import TraktApiError
from ..commands.common import (
    print_connection_failure,
    print_connection_success,
    print_connection_test,
)
from .exceptions import ConnectionError

IMDB_HINT = "Check imdb.auth and the matching credentials or cookies in config.yaml"
IMDB_CAPTCHA_HINT = "IMDb asked for a CAPTCHA; switch imdb.auth to cookies"
TRAKT_HINT = "Check the trakt section of config.yaml"


def with_imdb(f):
    """
    Inject a signed-in IMDb client.

    Usage:
        @with_imdb
        def command(ctx, imdb, ...):
            pass
    """
    @wraps(f)
    @click.pass_context
    def wrapper(ctx, *args, **kwargs):
        from ..services.imdb import ImdbService

        print_connection_test("IMDb")
        service = ImdbService.from_config(ctx.obj.config)
        try:
            imdb = service.__enter__()
        except ImdbApiError as e:
            hint = IMDB_CAPTCHA_HINT if isinstance(e, ImdbCaptchaError) else IMDB_HINT
            print_connection_failure("IMDb", hint)
            raise ConnectionError("IMDb", str(e), hint) from e

        try:
            print_connection_success("IMDb", ctx.obj.config.get("imdb.auth"))
            return f(ctx, imdb=imdb, **kwargs)
        finally:
            service.__exit__(None, None, None)
    return wrapper


def with_trakt(f):
    """
    Inject an authenticated Trakt client.

    Usage:
        @with_trakt
        def command(ctx, trakt, ...):
            pass
    """
    @wraps(f)
    @click.pass_context
    def wrapper(ctx, *args, **kwargs):
        from ..services.trakt import TraktService

        print_connection_test("Trakt")
        service = TraktService.from_config(ctx.obj.config)
        try:
            trakt = service.__enter__()
        except TraktApiError as e:
            print_connection_failure("Trakt", TRAKT_HINT)
            raise ConnectionError("Trakt", str(e), TRAKT_HINT) from e

        try:
            print_connection_success("Trakt", trakt.username)
            return f(ctx, trakt=trakt, **kwargs)
        finally:
            service.__exit__(None, None, None)
    return wrapper
