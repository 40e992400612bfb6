"""Command-line interface for Cardslice.

Usage:
    cardslice slice model.stl [options]
    cardslice info model.stl
    cardslice init-config [options]
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from .core.config import CardsliceConfig
from .core.errors import CancelledError, CardsliceError
from .core.geometry import SliceResult
from .export.svg import write_svg
from .mesh.loader import MeshLoader
from .mesh.normalize import normalize
from .mesh.slicer import MeshSlicer, SliceProgress

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False)],
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Cardslice - Slice 3D models into laser-cut layers."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


def _print_result_table(result: SliceResult) -> None:
    stats = result.stats()
    table = Table(title="Layers")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Layers", str(stats["num_layers"]))
    table.add_row("Thickness (mm)", f"{stats['thickness']:.3f}")
    table.add_row("Size (mm)", f"{result.width:.1f} x {result.length:.1f} x {result.height:.1f}")
    table.add_row("Contours", f"{stats['num_contours']:,}")
    table.add_row("Segments", f"{stats['num_segments']:,}")
    table.add_row("Empty layers", str(stats["empty_layers"]))
    console.print(table)

    if not result.diagnostics.is_clean:
        diag = Table(title="Geometry Diagnostics")
        diag.add_column("Issue", style="yellow")
        diag.add_column("Count", style="white")
        diag.add_row("Coplanar triangles dropped", str(stats["coplanar_drops"]))
        diag.add_row("Vertex/edge contacts ignored", str(stats["grazing_drops"]))
        diag.add_row("Open contours", str(stats["open_contours"]))
        console.print(diag)


@main.command("slice")
@click.argument("model_path", type=click.Path(exists=True))
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file",
)
@click.option(
    "--height", "-H",
    type=float,
    default=None,
    help="Overall model height in mm",
)
@click.option(
    "--thickness", "-t",
    type=float,
    default=None,
    help="Layer (sheet) thickness in mm",
)
@click.option(
    "--count", "-n",
    type=int,
    default=None,
    help="Total number of layers (alternative to --thickness)",
)
@click.option(
    "--workers", "-w",
    type=int,
    default=None,
    help="Worker threads (default: one per CPU core)",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Reject ASCII STL files with malformed facets",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Output SVG path (default: <model>_slices.svg)",
)
def slice_command(
    model_path: str,
    config: str | None,
    height: float | None,
    thickness: float | None,
    count: int | None,
    workers: int | None,
    strict: bool,
    output: str | None,
) -> None:
    """Slice a model into layers and export an SVG cutting blueprint.

    MODEL_PATH: Path to an STL file (binary or ASCII)
    """
    if thickness is not None and count is not None:
        raise click.UsageError("Use either --thickness or --count, not both")

    if config:
        cfg = CardsliceConfig.from_file(config)
    else:
        cfg = CardsliceConfig.default()

    settings = cfg.slicing
    updates: dict = {}
    if height is not None:
        updates["target_height_mm"] = height
    if thickness is not None:
        updates.update(mode="thickness", layer_thickness_mm=thickness)
    if count is not None:
        updates.update(mode="count", layer_count=count)
    if workers is not None:
        updates["max_workers"] = workers
    try:
        settings = settings.model_validate({**settings.model_dump(), **updates})
    except ValueError as e:
        raise click.BadParameter(str(e))

    console.print("\n[bold]Cardslice[/bold]\n")

    try:
        loader = MeshLoader(model_path, strict=strict or cfg.loader.strict)
        model = normalize(loader.mesh, settings.target_height_mm)
    except (CardsliceError, ValueError) as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise click.Abort()

    plan = settings.plan()
    console.print(
        f"[cyan]{loader.num_faces:,} triangles, "
        f"{model.width:.1f} x {model.length:.1f} x {model.height:.1f} mm[/cyan]"
    )
    console.print(f"[cyan]{plan.count} layers of {plan.thickness:.3f} mm[/cyan]\n")

    cancel_event = threading.Event()
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Slicing...", total=plan.count)

        def update_progress(p: SliceProgress) -> None:
            progress.update(
                task,
                completed=p.completed_layers,
                description=f"Layer {p.completed_layers}/{p.total_layers}",
            )

        try:
            result = MeshSlicer(model, max_workers=settings.max_workers).slice(
                plan,
                progress_callback=update_progress,
                cancel_event=cancel_event,
            )
        except KeyboardInterrupt:
            cancel_event.set()
            console.print("\n[bold yellow]Slicing aborted[/bold yellow]")
            raise click.Abort()
        except CancelledError:
            console.print("\n[bold yellow]Slicing aborted[/bold yellow]")
            raise click.Abort()

    _print_result_table(result)

    output_path = Path(output) if output else Path(model_path).with_name(f"{Path(model_path).stem}_slices.svg")
    try:
        write_svg(result, output_path, cfg.layout)
    except CardsliceError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise click.Abort()

    console.print(f"\n[green]Saved {len(result)} layers to {output_path}[/green]")


@main.command()
@click.argument("model_path", type=click.Path(exists=True))
@click.option("--strict", is_flag=True, help="Reject ASCII STL files with malformed facets")
def info(model_path: str, strict: bool) -> None:
    """Show information about an STL model.

    MODEL_PATH: Path to an STL file (binary or ASCII)
    """
    path = Path(model_path)
    console.print(f"\n[bold]Model Info: {path.name}[/bold]\n")

    try:
        loader = MeshLoader(model_path, strict=strict)
        stats = loader.stats()
    except (CardsliceError, ValueError) as e:
        console.print(f"[red]Error loading: {e}[/red]")
        raise click.Abort()

    table = Table()
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("File", str(stats["path"]))
    table.add_row("Format", stats["format"])
    if stats["name"]:
        table.add_row("Name", stats["name"])
    table.add_row("Triangles", f"{stats['num_faces']:,}")
    table.add_row("Watertight", "Yes" if stats["is_watertight"] else "No")
    if stats["size"] is not None:
        table.add_row(
            "Bounds (min)",
            f"({stats['bounds_min'][0]:.2f}, {stats['bounds_min'][1]:.2f}, {stats['bounds_min'][2]:.2f})"
        )
        table.add_row(
            "Bounds (max)",
            f"({stats['bounds_max'][0]:.2f}, {stats['bounds_max'][1]:.2f}, {stats['bounds_max'][2]:.2f})"
        )
        table.add_row(
            "Size",
            f"{stats['size'][0]:.2f} x {stats['size'][1]:.2f} x {stats['size'][2]:.2f}"
        )

    console.print(table)


@main.command()
@click.option(
    "--output", "-o",
    type=click.Path(),
    default="cardslice_config.json",
    help="Output path for config file",
)
def init_config(output: str) -> None:
    """Generate a default configuration file."""
    cfg = CardsliceConfig.default()
    cfg.to_file(output)
    console.print(f"[green]Created config file: {output}[/green]")


if __name__ == "__main__":
    main()
