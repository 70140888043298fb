# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Click-based CLI for pdfmeta.

This module provides the command-line interface for reading and
editing PDF document metadata.
"""

# Standard Library
import logging
import sys
from collections.abc import Callable
from typing import Any, NoReturn

# Third Party
import click
from colorama import Fore, Style, init

# Local
from . import __version__
from .exceptions import BatchFailedError, PDFMetaError, exit_code_for
from .model import (
    ALL_FIELDS,
    BatchRequest,
    IOOptions,
    MetadataPatch,
    ServiceProtocol,
    SetRequest,
    ShowRequest,
    TemplateApplyRequest,
    TemplateSaveRequest,
    UnsetRequest,
)
from .output import JSONFormatter, TextFormatter, get_formatter
from .service import MetadataService
from .templates import STORE_ENV_VAR, TemplateStore
from .utils import setup_logging

logger = logging.getLogger(__name__)


def print_success(msg: str) -> None:
    """Prints a success message in green.

    Args:
        msg: The message to output.
    """
    click.echo(f"{Fore.GREEN}\u2713{Style.RESET_ALL} {msg}")


def print_error(msg: str) -> None:
    """Prints an error message in red to stderr.

    Args:
        msg: The error message to output.
    """
    click.echo(f"{Fore.RED}{msg}{Style.RESET_ALL}", err=True)


def _fail(formatter: TextFormatter | JSONFormatter, exc: BaseException) -> NoReturn:
    """Renders ``exc`` and exits with its mapped exit code."""
    if isinstance(formatter, JSONFormatter):
        click.echo(formatter.error(exc), nl=False)
    else:
        print_error(formatter.error(exc).rstrip("\n"))
    sys.exit(exit_code_for(exc))


def _run(
    as_json: bool,
    action: Callable[[], Any],
    render: Callable[[TextFormatter | JSONFormatter, Any], str] | None = None,
) -> None:
    """Runs a service call and writes its rendered result to stdout.

    Args:
        as_json: Select the JSON formatter.
        action: The service call.
        render: Renders the call's return value; None prints nothing.
    """
    formatter = get_formatter(as_json)
    try:
        result = action()
    except BatchFailedError as e:
        # JSON output stays a single document
        if isinstance(formatter, JSONFormatter):
            click.echo(formatter.batch_failure(e), nl=False)
            sys.exit(exit_code_for(e))
        click.echo(formatter.batch(e.result), nl=False)
        _fail(formatter, e)
    except PDFMetaError as e:
        logger.debug("Command failed: %r", e)
        _fail(formatter, e)
    except Exception as e:
        logger.exception("Unexpected error")
        _fail(formatter, e)

    if render is not None:
        click.echo(render(formatter, result), nl=False)


def _service(ctx: click.Context) -> ServiceProtocol:
    return ctx.obj["service"]


def _patch_options(func: Callable) -> Callable:
    """Adds one ``--<field> VALUE`` option per metadata field."""
    for f in reversed(ALL_FIELDS):
        func = click.option(
            f"--{f.value}",
            f.attr,
            default=None,
            metavar="VALUE",
            help=f"{f.label} value",
        )(func)
    return func


def _unset_options(func: Callable) -> Callable:
    """Adds one ``--<field>`` flag per metadata field."""
    for f in reversed(ALL_FIELDS):
        func = click.option(
            f"--{f.value}",
            f.attr,
            is_flag=True,
            help=f"Unset {f.label}",
        )(func)
    return func


def _destination_options(func: Callable) -> Callable:
    func = click.option(
        "--in-place",
        is_flag=True,
        help="Modify file in place using safe atomic replace",
    )(func)
    func = click.option("--out", "out", default="", help="Output PDF file")(func)
    return click.option(
        "--file",
        "file",
        required=True,
        type=click.Path(dir_okay=False),
        help="Input PDF file",
    )(func)


_strict_option = click.option(
    "--strict",
    is_flag=True,
    help="Reject invalid metadata instead of auto-correcting",
)
_json_option = click.option("--json", "as_json", is_flag=True, help="Emit result JSON")


def _patch_from(values: dict[str, Any]) -> MetadataPatch:
    return MetadataPatch(**{f.attr: values[f.attr] for f in ALL_FIELDS})


@click.group()
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False),
    envvar=STORE_ENV_VAR,
    default=None,
    help="Template store file (default: ~/.pdfmeta/templates.json)",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Detailed output",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Only output errors",
)
@click.version_option(version=__version__, prog_name="pdfmeta")
@click.pass_context
def main(ctx: click.Context, store_path: str | None, verbose: bool, quiet: bool) -> None:
    """Reads and edits PDF document metadata (Info dictionary and XMP)."""
    # Initialize colorama for Windows compatibility
    init()

    # Configure logging
    setup_logging(verbose=verbose, quiet=quiet)

    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    if "service" not in ctx.obj:
        ctx.obj["service"] = MetadataService(template_store=TemplateStore(store_path))


@main.command()
@click.option(
    "--file",
    "file",
    required=True,
    type=click.Path(dir_okay=False),
    help="Input PDF file",
)
@_json_option
@click.pass_context
def show(ctx: click.Context, file: str, as_json: bool) -> None:
    """Show metadata of a PDF."""
    service = _service(ctx)
    _run(
        as_json,
        lambda: service.show(ShowRequest(input_path=file)),
        lambda fmt, result: fmt.show(result),
    )


@main.command("set")
@_destination_options
@_strict_option
@_json_option
@_patch_options
@click.pass_context
def set_command(
    ctx: click.Context,
    file: str,
    out: str,
    in_place: bool,
    strict: bool,
    as_json: bool,
    **fields: str | None,
) -> None:
    """Set metadata fields."""
    service = _service(ctx)
    request = SetRequest(
        io=IOOptions(input_path=file, output_path=out, in_place=in_place),
        changes=_patch_from(fields),
        strict=strict,
    )
    _run(as_json, lambda: service.set(request), lambda fmt, result: fmt.show(result))


@main.command()
@_destination_options
@_strict_option
@_json_option
@click.option("--all", "unset_all", is_flag=True, help="Unset all supported metadata fields")
@_unset_options
@click.pass_context
def unset(
    ctx: click.Context,
    file: str,
    out: str,
    in_place: bool,
    strict: bool,
    as_json: bool,
    unset_all: bool,
    **flags: bool,
) -> None:
    """Unset metadata fields."""
    service = _service(ctx)
    request = UnsetRequest(
        io=IOOptions(input_path=file, output_path=out, in_place=in_place),
        fields=[f.value for f in ALL_FIELDS if flags[f.attr]],
        unset_all=unset_all,
        strict=strict,
    )
    _run(as_json, lambda: service.unset(request), lambda fmt, result: fmt.show(result))


@main.command()
@click.option(
    "--manifest",
    required=True,
    type=click.Path(dir_okay=False),
    help="Path to batch manifest file",
)
@click.option(
    "--continue-on-error",
    is_flag=True,
    help="Continue processing after individual file failures",
)
@_strict_option
@_json_option
@click.pass_context
def batch(
    ctx: click.Context,
    manifest: str,
    continue_on_error: bool,
    strict: bool,
    as_json: bool,
) -> None:
    """Apply metadata operations to many PDFs."""
    service = _service(ctx)
    request = BatchRequest(
        manifest_path=manifest,
        continue_on_error=continue_on_error,
        strict=strict,
    )
    show_progress = not as_json and not ctx.obj.get("quiet", False)
    _run(
        as_json,
        lambda: service.batch(request, show_progress=show_progress),
        lambda fmt, result: fmt.batch(result),
    )


@main.group()
def template() -> None:
    """Manage saved metadata templates."""


@template.command("save")
@click.option("--name", required=True, help="Template name")
@click.option("--note", default="", help="Template note")
@click.option("--force", is_flag=True, help="Overwrite existing template")
@_json_option
@_patch_options
@click.pass_context
def template_save(
    ctx: click.Context,
    name: str,
    note: str,
    force: bool,
    as_json: bool,
    **fields: str | None,
) -> None:
    """Save a metadata template."""
    service = _service(ctx)
    request = TemplateSaveRequest(
        name=name,
        note=note,
        force=force,
        metadata=_patch_from(fields),
    )
    _run(
        as_json,
        lambda: service.template_save(request),
        lambda fmt, record: fmt.template(record),
    )


@template.command("apply")
@click.option("--name", required=True, help="Template name")
@_destination_options
@_strict_option
@_json_option
@click.pass_context
def template_apply(
    ctx: click.Context,
    name: str,
    file: str,
    out: str,
    in_place: bool,
    strict: bool,
    as_json: bool,
) -> None:
    """Apply a saved template to a PDF."""
    service = _service(ctx)
    request = TemplateApplyRequest(
        name=name,
        io=IOOptions(input_path=file, output_path=out, in_place=in_place),
        strict=strict,
    )
    _run(
        as_json,
        lambda: service.template_apply(request),
        lambda fmt, result: fmt.show(result),
    )


@template.command("list")
@_json_option
@click.pass_context
def template_list(ctx: click.Context, as_json: bool) -> None:
    """List templates."""
    service = _service(ctx)
    _run(
        as_json,
        service.template_list,
        lambda fmt, records: fmt.template_list(records),
    )


@template.command("show")
@click.option("--name", required=True, help="Template name")
@_json_option
@click.pass_context
def template_show(ctx: click.Context, name: str, as_json: bool) -> None:
    """Show a template."""
    service = _service(ctx)
    _run(
        as_json,
        lambda: service.template_show(name),
        lambda fmt, record: fmt.template(record),
    )


@template.command("delete")
@click.option("--name", required=True, help="Template name")
@click.option("--force", is_flag=True, help="Delete without confirmation")
@click.pass_context
def template_delete(ctx: click.Context, name: str, force: bool) -> None:
    """Delete a template."""
    service = _service(ctx)
    if not force and sys.stdin.isatty():
        click.confirm(f"Delete template {name!r}?", abort=True)
    _run(False, lambda: service.template_delete(name))
    if not ctx.obj.get("quiet", False):
        print_success(f"Deleted template {name!r}")


if __name__ == "__main__":
    main()
