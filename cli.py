#!/usr/bin/env python3
"""
FilmSim Command Line Interface

Renders adjustment recipes and film simulations onto images, prints image
analysis summaries and inspects 3D LUT files.
"""

import sys
import json
import click
import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from filmsim.config import load_config
from filmsim.utils.logging import setup_console_logging
from filmsim.processing import AdjustmentParams, Renderer, RenderMode, FormatError
from filmsim.processing.color.lut import LUT3D, load_cube, write_cube
from filmsim.analysis import AnalysisEngine
from filmsim.simulations import SimulationCatalog, SIMULATION_DEFINITIONS
from filmsim.io import load_image, save_image, Recipe

logger = logging.getLogger(__name__)


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    FilmSim - Non-destructive color grading engine

    Applies exposure, white balance, contrast, tone curve, HSL, film
    simulation LUTs, sharpening, grain and vignette to images.
    """

    # Ensure context object exists
    if ctx.obj is None:
        ctx.obj = {}

    ctx.obj['config'] = load_config(config)

    # Configure logging level
    log_config = ctx.obj['config'].get('logging', {})
    level = log_config.get('level', 'INFO')
    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'
    setup_console_logging(level, color=log_config.get('color', True))

    # Store CLI options in context
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


def _load_catalog(config: dict, directory: Optional[str], quiet: bool) -> SimulationCatalog:
    directory = directory or config.get('simulations', {}).get('directory')
    if not directory:
        raise click.UsageError("No simulations directory: pass --simulations-dir "
                               "or set simulations.directory in the config")
    tolerance = config.get('simulations', {}).get('identity_tolerance', 0.001)
    return SimulationCatalog.load(directory, tolerance=tolerance, show_progress=not quiet)


def _resolve_look(ctx, recipe_path: Optional[str], simulation_id: Optional[str],
                  lut_path: Optional[str],
                  simulations_dir: Optional[str]) -> Tuple[AdjustmentParams, Optional[LUT3D]]:
    """Combine recipe, simulation and LUT options into (params, lut)."""
    config = ctx.obj.get('config', {})
    quiet = ctx.obj.get('quiet', False)

    recipe = Recipe.load(recipe_path) if recipe_path else None
    params = recipe.params if recipe else AdjustmentParams()
    simulation_id = simulation_id or (recipe.simulation if recipe else None)

    lut = None
    if lut_path:
        lut = load_cube(lut_path)
    elif simulation_id:
        catalog = _load_catalog(config, simulations_dir, quiet)
        simulation = catalog.get(simulation_id)
        if simulation is None:
            raise click.UsageError(f"Simulation '{simulation_id}' is not available")
        lut = simulation.lut
        if recipe is None:
            params = simulation.apply_defaults(params)

    return params, lut


def _look_options(func):
    """Options shared by render and analyze."""
    options = [
        click.option('--recipe', '-r', type=click.Path(exists=True, dir_okay=False),
                     help='YAML/JSON adjustment recipe'),
        click.option('--simulation', '-s', 'simulation_id',
                     help='Film simulation id (see `filmsim simulations`)'),
        click.option('--lut', 'lut_path', type=click.Path(exists=True, dir_okay=False),
                     help='.cube LUT file (overrides --simulation)'),
        click.option('--simulations-dir', type=click.Path(exists=True, file_okay=False),
                     help='Directory of simulation .cube files'),
        click.option('--exposure', type=float, help='Exposure in stops'),
        click.option('--contrast', type=float, help='Contrast, -100 to 100'),
        click.option('--temperature', type=float, help='White balance in Kelvin'),
        click.option('--tint', type=float, help='Tint, -100 to 100'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _apply_overrides(params: AdjustmentParams, **overrides) -> AdjustmentParams:
    changes = {key: value for key, value in overrides.items() if value is not None}
    return params.replace(**changes) if changes else params


@main.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.argument('output', type=click.Path(dir_okay=False))
@_look_options
@click.option('--preview', is_flag=True, help='Render at preview resolution')
@click.option('--format', 'image_format', type=click.Choice(['png', 'jpeg']),
              help='Output format (default: from suffix or config)')
@click.option('--quality', type=click.IntRange(1, 100), help='JPEG quality')
@click.option('--seed', type=int, help='Grain random seed for reproducible output')
@click.pass_context
def render(ctx, image: str, output: str, recipe: Optional[str], simulation_id: Optional[str],
           lut_path: Optional[str], simulations_dir: Optional[str],
           exposure: Optional[float], contrast: Optional[float],
           temperature: Optional[float], tint: Optional[float],
           preview: bool, image_format: Optional[str], quality: Optional[int],
           seed: Optional[int]):
    """
    Render IMAGE with adjustments and write OUTPUT.

    Without --preview the full source resolution is exported.
    """
    config = ctx.obj.get('config', {})
    verbose = ctx.obj.get('verbose', False)
    quiet = ctx.obj.get('quiet', False)
    export_config = config.get('export', {})

    try:
        params, lut = _resolve_look(ctx, recipe, simulation_id, lut_path, simulations_dir)
        params = _apply_overrides(params, exposure=exposure, contrast=contrast,
                                  temperature=temperature, tint=tint)
        source = load_image(image)

        mode = RenderMode.PREVIEW if preview else RenderMode.EXPORT
        with Renderer(config) as renderer:
            result = renderer.render_for(mode, source, params, lut,
                                         rng=np.random.default_rng(seed))

        if image_format is None and not Path(output).suffix:
            image_format = export_config.get('format', 'png')
        path = save_image(result, output, image_format=image_format,
                          quality=quality or export_config.get('jpeg_quality', 92))

        if not quiet:
            click.echo(f"Rendered {result.width}x{result.height} -> {path}")

    except click.UsageError:
        raise
    except (FormatError, OSError, ValueError) as e:
        click.echo(f"Error rendering {image}: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


@main.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@_look_options
@click.option('--json', 'as_json', is_flag=True, help='Print the summary as JSON')
@click.pass_context
def analyze(ctx, image: str, recipe: Optional[str], simulation_id: Optional[str],
            lut_path: Optional[str], simulations_dir: Optional[str],
            exposure: Optional[float], contrast: Optional[float],
            temperature: Optional[float], tint: Optional[float], as_json: bool):
    """
    Print histogram, entropy and scope statistics for IMAGE.

    The image is rendered with the given adjustments first.
    """
    config = ctx.obj.get('config', {})
    verbose = ctx.obj.get('verbose', False)

    try:
        params, lut = _resolve_look(ctx, recipe, simulation_id, lut_path, simulations_dir)
        params = _apply_overrides(params, exposure=exposure, contrast=contrast,
                                  temperature=temperature, tint=tint)
        source = load_image(image)

        with Renderer(config) as renderer:
            engine = AnalysisEngine(config, renderer=renderer)
            report = engine.analyze_render(source, params, lut)
        summary = report.summary()

    except click.UsageError:
        raise
    except (FormatError, OSError, ValueError) as e:
        click.echo(f"Error analyzing {image}: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    click.echo(f"Analysis of {Path(image).name} ({summary['width']}x{summary['height']}):")
    for key, value in summary.items():
        if key not in ('width', 'height'):
            click.echo(f"  {key}: {value}")


@main.group()
def lut():
    """Inspect and generate .cube LUT files."""
    pass


@lut.command('inspect')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--tolerance', type=float, default=0.001, show_default=True,
              help='Identity detection tolerance')
def lut_inspect(path: str, tolerance: float):
    """Show size, title and identity status of a LUT."""
    try:
        table = load_cube(path)
    except FormatError as e:
        click.echo(f"Invalid LUT {path}: {e}", err=True)
        sys.exit(1)

    click.echo(f"Title:    {table.title}")
    click.echo(f"Size:     {table.size} ({table.size ** 3} entries)")
    click.echo(f"Range:    {table.data.min():.4f} - {table.data.max():.4f}")
    click.echo(f"Identity: {'yes' if table.is_identity(tolerance) else 'no'}")


@lut.command('identity')
@click.argument('size', type=click.IntRange(2, 256))
@click.argument('output', type=click.Path(dir_okay=False))
def lut_identity(size: int, output: str):
    """Write an identity LUT of the given SIZE to OUTPUT."""
    path = write_cube(LUT3D.identity(size, title=f"Identity {size}"), output)
    click.echo(f"Wrote identity LUT to {path}")


@main.command()
@click.option('--simulations-dir', type=click.Path(exists=True, file_okay=False),
              help='Directory of simulation .cube files')
@click.pass_context
def simulations(ctx, simulations_dir: Optional[str]):
    """List film simulations and whether their LUTs are available."""
    config = ctx.obj.get('config', {})
    quiet = ctx.obj.get('quiet', False)

    directory = simulations_dir or config.get('simulations', {}).get('directory')
    catalog = _load_catalog(config, directory, quiet) if directory else SimulationCatalog()

    for definition in SIMULATION_DEFINITIONS:
        status = 'loaded' if definition.id in catalog else 'unavailable'
        click.echo(f"{definition.id:<22} {definition.name:<24} {definition.year}  {status}")


@main.command()
def version():
    """Show FilmSim version information."""
    from filmsim import __version__
    click.echo(f"FilmSim v{__version__}")
    click.echo("Non-destructive color grading engine")


if __name__ == '__main__':
    main()
