from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bsgenome_forge import pipeline
from bsgenome_forge.config import RunConfig, load_run_config
from bsgenome_forge.errors import ForgeError
from bsgenome_forge.manifest import RDNA_SEQNAME
from bsgenome_forge.naming import NamingConvention
from bsgenome_forge.runlog import close_run_logger, setup_run_logger, ts

app = typer.Typer(
    add_completion=False,
    help="bsgenome-forge - download genome sequences and build a BSgenome data package.",
)
console = Console()

INPUT_HELP = "TOML config file."
NAMING_HELP = (
    "Chromosome naming of the BSgenome object: 'ensembl' (1, 2, ..., MT) "
    "or 'ucsc' (chr1, chr2, ..., chrM)."
)


def print_header() -> None:
    console.print(
        Panel(
            "Ensembl sequence download + BSgenome forge",
            title="bsgenome-forge",
            subtitle="BSgenome data package builder",
            expand=False,
        )
    )


def render_run_table(cfg: RunConfig) -> None:
    table = Table(title="Parameter Summary", show_header=True, header_style="bold")
    table.add_column("Item")
    table.add_column("Value", overflow="fold")
    table.add_row("Input", str(cfg.config_path))
    table.add_row("Naming", cfg.naming.value)
    table.add_row("Force all", str(cfg.force))
    table.add_row("Sequence folder", str(cfg.seqdir))
    table.add_row("Chromosomes", ", ".join(cfg.chromosomes))
    table.add_row("Circular", ", ".join(cfg.circular) or "none")
    table.add_row("Package", f"{cfg.package_name} {cfg.version}")
    table.add_row("Seed file", str(cfg.seed_file))
    console.print(table)


def render_result_table(cfg: RunConfig, result: pipeline.RunResult) -> None:
    table = Table(title="Result Summary", show_header=True, header_style="bold")
    table.add_column("Metric")
    table.add_column("Value", overflow="fold")
    table.add_row("Files downloaded", str(result.counters["fetched"]))
    table.add_row("Files already present", str(result.counters["skipped"]))
    table.add_row("Files renamed to UCSC", str(result.counters["renamed"]))
    table.add_row("Sequence records", str(result.counters["records"]))
    table.add_row("Seed file", str(cfg.seed_file))
    for label, built in (("Package source", result.source), ("Package file", result.archive)):
        if built is not None:
            table.add_row(label, f"{built.path} ({built.outcome.value})")
    table.add_row("Log", str(cfg.log_path))
    console.print(table)


def fail(exc: ForgeError) -> NoReturn:
    console.print(f"{ts()} [ERROR] {exc}", style="bold red", markup=False, highlight=False)
    raise typer.Exit(code=1)


def load_or_fail(config: Path, naming: NamingConvention, forceall: bool = False) -> RunConfig:
    try:
        return load_run_config(config, naming, forceall)
    except ForgeError as exc:
        fail(exc)


@app.command("list-seqnames")
def list_seqnames(
    config: Path = typer.Option(..., "--input", "-i", help=INPUT_HELP),
    naming: NamingConvention = typer.Option(
        NamingConvention.ENSEMBL, "--naming", case_sensitive=False, help=NAMING_HELP
    ),
) -> None:
    """
    List the packaged sequences with their final names.
    """
    cfg = load_or_fail(config, naming)
    try:
        manifest = pipeline.plan_manifest(cfg)
    except ForgeError as exc:
        fail(exc)

    sources = list(cfg.chromosomes)
    if RDNA_SEQNAME not in sources:
        sources.append(RDNA_SEQNAME)
    table = Table(title=f"Sequences ({cfg.naming.value})", show_header=True, header_style="bold")
    table.add_column("Ensembl")
    table.add_column("Seqname")
    table.add_column("Circular")
    for source, seqname in zip(sources, manifest.seqnames):
        table.add_row(source, seqname, "yes" if seqname in manifest.circ_seqs else "-")
    console.print(table)


@app.command()
def build(
    config: Path = typer.Option(..., "--input", "-i", help=INPUT_HELP),
    naming: NamingConvention = typer.Option(
        NamingConvention.ENSEMBL, "--naming", case_sensitive=False, help=NAMING_HELP
    ),
    forceall: bool = typer.Option(
        False, "--forceall", "-f", help="Force download and rebuild (this will overwrite existing files)."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the seed file and exit."),
):
    """
    Download sequences, write the BSgenome seed file and build the package.

    Examples:
      bsgenome-forge build -i GRCh38.toml
      bsgenome-forge build -i GRCh38.toml --naming ucsc
      bsgenome-forge build -i GRCh38.toml --naming ucsc -f
    """
    cfg = load_or_fail(config, naming, forceall)

    print_header()
    render_run_table(cfg)

    if dry_run:
        try:
            console.print(pipeline.plan_manifest(cfg).to_dcf(), markup=False, highlight=False)
        except ForgeError as exc:
            fail(exc)
        return

    try:
        pipeline.check_inputs(cfg)
    except ForgeError as exc:
        fail(exc)

    run_logger = setup_run_logger(console, cfg.log_path)
    result: Optional[pipeline.RunResult] = None
    try:
        result = pipeline.run(cfg)
    except ForgeError as exc:
        run_logger.error("%s", exc)
        raise typer.Exit(code=1) from exc
    finally:
        close_run_logger(run_logger)

    render_result_table(cfg, result)
    if result.archive is not None:
        console.print(
            f'{ts()} Install package with \'install.packages("{result.archive.path}", repos = NULL, type = "source")\'.',
            markup=False,
        )


if __name__ == "__main__":
    app()
