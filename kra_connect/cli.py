"""CLI entry point: command definitions using Click.

Commands:
    init            Generate a template config file
    verify-pin      Verify one or more KRA PINs
    verify-tcc      Verify one or more Tax Compliance Certificates
    validate-eslip  Validate one or more e-slips
    taxpayer        Taxpayer details with an obligations summary
    nil-return      File a NIL return
    stats           Show the effective client settings
"""

import functools
import json
import logging
import sys
from typing import Any

import click

from kra_connect import __version__

logger = logging.getLogger("kra_connect.cli")


# ---------------------------------------------------------------------------
# Helpers shared by all data commands
# ---------------------------------------------------------------------------

def _load_config(ctx: click.Context):
    """Load the config file. Exits on error."""
    from kra_connect.config import ConfigError, load

    try:
        return load(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


def _make_client(ctx: click.Context):
    """Load config and return a ready KraClient. Exits on error."""
    from kra_connect.client import KraClient

    config = _load_config(ctx)
    logger.debug("Connecting to %s", config.base_url)
    return KraClient(config)


def _emit_json(data: Any, ctx: click.Context) -> None:
    """Write JSON to stdout or to the file specified by --output."""
    obj = ctx.obj
    indent = 2 if obj["pretty"] else None
    text = json.dumps(data, indent=indent, ensure_ascii=False)

    output_path: str | None = obj["output_path"]
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Report written to '{output_path}'", err=True)
    else:
        click.echo(text)


def _handle_client_errors(func):
    """Decorator that catches SDK exceptions and exits cleanly."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from kra_connect.exceptions import (
            ApiError,
            AuthenticationError,
            KraError,
            NetworkError,
            RateLimitError,
            RequestTimeoutError,
            ValidationError,
        )

        try:
            return func(*args, **kwargs)
        except ValidationError as exc:
            click.echo(f"Invalid input: {exc}", err=True)
        except AuthenticationError as exc:
            click.echo(f"Authentication error: {exc}", err=True)
        except RateLimitError as exc:
            click.echo(f"Rate limited: {exc}", err=True)
        except RequestTimeoutError as exc:
            click.echo(f"Timeout: {exc}", err=True)
        except NetworkError as exc:
            click.echo(f"Network error: {exc}", err=True)
        except ApiError as exc:
            click.echo(f"KRA API error: {exc}", err=True)
        except KraError as exc:
            click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    return wrapper


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default="kra-config.yaml", show_default=True,
              help="Path to the configuration file.")
@click.option("--output", "output_path", default=None,
              help="Write JSON output to a file instead of stdout.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print the JSON output.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable debug logging on stderr.")
@click.version_option(__version__, prog_name="kra-connect")
@click.pass_context
def cli(ctx: click.Context, config_path: str, output_path: str | None,
        pretty: bool, verbose: bool) -> None:
    """KRA Connect: verify PINs, TCCs and e-slips, file NIL returns."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["output_path"] = output_path
    ctx.obj["pretty"] = pretty
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default="kra-config.yaml", show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template kra-config.yaml file."""
    from kra_connect.config import ConfigError, generate_template
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your GavaConnect API key.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# verify-pin / verify-tcc / validate-eslip
# ---------------------------------------------------------------------------

@cli.command("verify-pin")
@click.argument("pins", nargs=-1, required=True)
@click.pass_context
@_handle_client_errors
def verify_pin_command(ctx: click.Context, pins: tuple[str, ...]) -> None:
    """Verify one or more KRA PINs (batch request when several are given)."""
    from kra_connect.reports.verification import pin_report

    with _make_client(ctx) as client:
        logger.debug("Verifying %d PIN(s)", len(pins))
        report = pin_report(client, pins)
    _emit_json(report, ctx)


@cli.command("verify-tcc")
@click.argument("tccs", nargs=-1, required=True)
@click.pass_context
@_handle_client_errors
def verify_tcc_command(ctx: click.Context, tccs: tuple[str, ...]) -> None:
    """Verify one or more Tax Compliance Certificate numbers."""
    from kra_connect.reports.verification import tcc_report

    with _make_client(ctx) as client:
        logger.debug("Verifying %d TCC(s)", len(tccs))
        report = tcc_report(client, tccs)
    _emit_json(report, ctx)


@cli.command("validate-eslip")
@click.argument("eslips", nargs=-1, required=True)
@click.pass_context
@_handle_client_errors
def validate_eslip_command(ctx: click.Context, eslips: tuple[str, ...]) -> None:
    """Validate one or more e-slip numbers."""
    from kra_connect.reports.verification import eslip_report

    with _make_client(ctx) as client:
        logger.debug("Validating %d e-slip(s)", len(eslips))
        report = eslip_report(client, eslips)
    _emit_json(report, ctx)


# ---------------------------------------------------------------------------
# taxpayer
# ---------------------------------------------------------------------------

@cli.command("taxpayer")
@click.argument("pin")
@click.pass_context
@_handle_client_errors
def taxpayer_command(ctx: click.Context, pin: str) -> None:
    """Taxpayer details for PIN with obligations counted by status."""
    from kra_connect.reports.compliance import get_compliance

    with _make_client(ctx) as client:
        report = get_compliance(client, pin)
    _emit_json(report, ctx)


# ---------------------------------------------------------------------------
# nil-return
# ---------------------------------------------------------------------------

@cli.command("nil-return")
@click.argument("pin")
@click.option("--obligation", required=True, help="Obligation type, e.g. VAT or PAYE.")
@click.option("--period", required=True, help="Tax period as YYYY-MM.")
@click.option("--reason", default=None, help="Why there is nothing to declare.")
@click.option("--notes", default=None, help="Free-form notes sent with the return.")
@click.option("--yes", "declaration", is_flag=True, default=False,
              help="Accept the declaration that the information is correct.")
@click.pass_context
@_handle_client_errors
def nil_return_command(ctx: click.Context, pin: str, obligation: str, period: str,
                       reason: str | None, notes: str | None, declaration: bool) -> None:
    """File a NIL return for PIN. Requires --yes to accept the declaration."""
    from kra_connect.models import NilReturnRequest

    request = NilReturnRequest(
        pin_number=pin,
        obligation_type=obligation,
        tax_period=period,
        declaration=declaration,
        reason=reason,
        notes=notes,
    )
    with _make_client(ctx) as client:
        result = client.file_nil_return(request)
    _emit_json(result.to_dict(), ctx)


# ---------------------------------------------------------------------------
# stats
# ---------------------------------------------------------------------------

@cli.command("stats")
@click.pass_context
def stats_command(ctx: click.Context) -> None:
    """Show the effective client settings (no API call is made)."""
    config = _load_config(ctx)
    _emit_json({"version": __version__, "config": config.summary()}, ctx)
