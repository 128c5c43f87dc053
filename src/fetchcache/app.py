"""Typer application and CLI entry point for fetchcache.

The CLI is a thin shell around :class:`~fetchcache.api.WebApi`: ``fetchcache
get`` resolves the configuration, issues a request one or more times
through a single orchestrator (so repeats are served from the cache when
the request names its content), and prints each response.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  It installs a SIGINT handler, maps
:class:`~fetchcache.exceptions.FetchcacheError` to its exit code and writes
a crash log for anything unexpected.
"""

from __future__ import annotations

import signal
import sys
import threading
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from fetchcache import __version__
from fetchcache.api import WebApi
from fetchcache.client.listeners import ApiListener
from fetchcache.client.request import ApiRequest
from fetchcache.client.response import format_api_response
from fetchcache.commands.config import config_app
from fetchcache.exceptions import ConfigError, ConnectionError_, InvalidUsageError
from fetchcache.exit_codes import EXIT_GENERIC_FAILURE
from fetchcache.models import ApiConfig


app = typer.Typer(
    name="fetchcache",
    help="Issue cached, de-duplicated HTTP requests against a configured API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"fetchcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show cache and dispatch diagnostics."
    ),
) -> None:
    """Root callback: installs the global output manager from CLI flags."""
    from fetchcache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))


class _RequestCounter(ApiListener):
    """Counts resolved and failed requests for ``--stats``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.resolved = 0
        self.failed = 0

    def on_request_resolved(self, request: ApiRequest) -> None:
        with self._lock:
            self.resolved += 1
            if request.has_failed:
                self.failed += 1


def create_api(config: ApiConfig) -> WebApi:
    """Build the :class:`WebApi` used by CLI commands."""
    return WebApi.from_config(config)


def _parse_params(values: list[str]) -> dict[str, str]:
    """Parse ``key=value`` strings into a dict."""
    params: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Invalid parameter '{item}', expected key=value")
        params[key] = value
    return params


@app.command("get")
def get_command(
    path: str = typer.Argument(help="Path appended to the base URL, e.g. /users."),
    param: list[str] = typer.Option(
        [], "--param", "-P", help="Query parameter as key=value (repeatable)."
    ),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Override the base URL."),
    timeout_ms: Optional[int] = typer.Option(
        None, "--timeout-ms", min=1, help="Request timeout in milliseconds."
    ),
    content: Optional[str] = typer.Option(
        None, "--content", "-c", help="Content name to cache the response under."
    ),
    cache_ms: Optional[int] = typer.Option(
        None, "--cache-ms", min=0, help="How long to cache the response (milliseconds)."
    ),
    repeat: int = typer.Option(1, "--repeat", "-r", min=1, help="Issue the request N times."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the response cache."),
    stats: bool = typer.Option(False, "--stats", help="Print cache statistics afterwards."),
) -> None:
    """Request PATH and print the response.

    Example::

        fetchcache get /news --content news --cache-ms 60000 --repeat 3 --stats
    """
    from fetchcache.config import resolve_config
    from fetchcache.output import error, print_table

    config = resolve_config(cli_base_url=base_url, cli_timeout_ms=timeout_ms)
    if not config.base_url:
        raise ConfigError(
            "No base URL configured. Pass --base-url, set FETCHCACHE_BASE_URL, "
            "or run 'fetchcache config set base_url <url>'."
        )
    if no_cache:
        config = config.model_copy(
            update={"cache": config.cache.model_copy(update={"enabled": False})}
        )
    params = _parse_params(param)
    cache_time = cache_ms if cache_ms is not None else config.cache.default_cache_ms

    counter = _RequestCounter()
    with create_api(config) as api:
        api.start_listening(counter)
        for _ in range(repeat):
            request = ApiRequest(
                path,
                method=method,
                params=params,
                content_name=content,
                cache_time_ms=cache_time,
            )
            future = api.start_request(request)
            if future is None:
                continue
            future.result()
            if request.has_failed or request.response is None:
                error(f"{request.method} {path} failed")
            else:
                format_api_response(request.response)

        if stats:
            cache_stats: dict[str, Any] = api.cache.stats()
            print_table(
                ["metric", "value"],
                [
                    ["requests", str(counter.resolved)],
                    ["failed", str(counter.failed)],
                    ["cached", str(cache_stats["size"])],
                    ["content", ", ".join(cache_stats["content_names"])],
                ],
                title="Cache statistics",
            )

    if counter.failed:
        raise ConnectionError_(f"{counter.failed} of {repeat} request(s) failed")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under the data directory and return its path."""
    from fetchcache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(exc)))
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``fetchcache`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from fetchcache.exceptions import FetchcacheError
        from fetchcache.output import error, get_output

        if isinstance(exc, FetchcacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        if get_output().is_verbose:
            sys.stderr.write("".join(traceback.format_exception(exc)))
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
