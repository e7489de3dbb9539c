"""Click CLI wiring and entry points for tilestitch."""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Dict, Optional, cast

import click
from rich import print
from rich.markup import escape

from src.config_loader import ConfigError, load_config, validate_config
from src.datatypes import AppConfig, OutputFormat
from src.tilestitch.cli_runtime import CLIAppError, configure_logging
from src.tilestitch.render.encoders import normalise_output_format
from src.tilestitch.render.postprocess import ImageDecodeError, finish_image

_DEFAULT_CONFIG_NAME = "tilestitch.toml"


def _resolve_config(config_path: Optional[str]) -> AppConfig:
    """Load the explicit config, the default file in the working directory, or defaults."""

    if config_path:
        path = Path(config_path)
        if not path.is_file():
            raise CLIAppError(
                f"Config file not found: {path}",
                rich_message=f"[red]Config file not found:[/red] {escape(str(path))}",
            )
    else:
        path = Path.cwd() / _DEFAULT_CONFIG_NAME
        if not path.is_file():
            return AppConfig()
    try:
        return load_config(str(path))
    except ConfigError as exc:
        raise CLIAppError(
            f"Invalid config {path}: {exc}",
            code=2,
            rich_message=f"[red]Invalid config[/red] {escape(str(path))}: {escape(str(exc))}",
        ) from exc


def _run_finish(
    cfg: AppConfig,
    input_path: Path,
    output_path: Path,
    *,
    crop_visible: Optional[bool],
    resolution: Optional[int],
    fmt: Optional[str],
) -> Path:
    output_cfg = cfg.output
    if crop_visible is not None:
        output_cfg = replace(output_cfg, crop_visible=crop_visible)
    if resolution is not None:
        if resolution < 0:
            raise CLIAppError("--resolution must be >= 0")
        output_cfg = replace(output_cfg, resolution=resolution)
    if fmt is not None:
        output_cfg = replace(output_cfg, format=normalise_output_format(fmt))
    elif output_path.suffix.lower() in {".jpg", ".jpeg"}:
        output_cfg = replace(output_cfg, format=OutputFormat.JPEG)

    try:
        data = input_path.read_bytes()
    except OSError as exc:
        raise CLIAppError(
            f"Unable to read {input_path}: {exc.strerror or exc}",
            rich_message=f"[red]Unable to read[/red] {escape(str(input_path))}",
        ) from exc
    try:
        finished = finish_image(data, output_cfg)
    except ImageDecodeError as exc:
        raise CLIAppError(
            str(exc),
            rich_message=f"[red]{escape(str(exc))}[/red]",
        ) from exc
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(finished)
    except OSError as exc:
        raise CLIAppError(
            f"Unable to write {output_path}: {exc.strerror or exc}",
            rich_message=f"[red]Unable to write[/red] {escape(str(output_path))}",
        ) from exc
    return output_path


def _exit_with(exc: CLIAppError) -> None:
    print(exc.rich_message)
    sys.exit(exc.code)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"Path to a TOML config (default: ./{_DEFAULT_CONFIG_NAME} when present).",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging.")
@click.option("--quiet", is_flag=True, default=False, help="Only log warnings and errors.")
@click.option("--no-color", is_flag=True, default=False, help="Disable coloured output.")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Optional[str],
    verbose: bool,
    quiet: bool,
    no_color: bool,
) -> None:
    """Capture large canvas surfaces tile by tile and finish the stitched image."""

    configure_logging(verbose=verbose, quiet=quiet, no_color=no_color)
    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    params.update(
        {
            "config_path": config_path,
            "verbose": verbose,
            "quiet": quiet,
            "no_color": no_color,
        }
    )


@main.command("finish")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--crop-visible/--no-crop-visible",
    "crop_visible",
    default=None,
    help="Crop to the bounding box of non-black pixels.",
)
@click.option("--resolution", type=int, default=None, help="Longest side limit in pixels (0 keeps size).")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["png", "jpeg", "jpg"], case_sensitive=False),
    default=None,
    help="Output encoding (defaults to config, or the output suffix).",
)
@click.pass_context
def finish_command(
    ctx: click.Context,
    input_path: Path,
    output_path: Path,
    crop_visible: Optional[bool],
    resolution: Optional[int],
    fmt: Optional[str],
) -> None:
    """Post-process a stitched capture: crop, fit and re-encode."""

    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    try:
        cfg = _resolve_config(params.get("config_path"))
        written = _run_finish(
            cfg,
            input_path,
            output_path,
            crop_visible=crop_visible,
            resolution=resolution,
            fmt=fmt,
        )
    except CLIAppError as exc:
        _exit_with(exc)
        return
    except SystemExit:
        raise
    except Exception:  # noqa: BLE001
        from rich.console import Console

        Console().print_exception()
        sys.exit(1)
    if not params.get("quiet"):
        print(f"[green]Saved[/green] {escape(str(written))}")


@main.command("show-config")
@click.pass_context
def show_config_command(ctx: click.Context) -> None:
    """Print the resolved configuration as JSON."""

    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    try:
        cfg = validate_config(_resolve_config(params.get("config_path")))
    except ConfigError as exc:
        _exit_with(CLIAppError(str(exc), code=2))
        return
    except CLIAppError as exc:
        _exit_with(exc)
        return
    click.echo(json.dumps(asdict(cfg), indent=2))


if __name__ == "__main__":  # pragma: no cover
    main()
