import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from bsgenome_forge.config import RunConfig
from bsgenome_forge.errors import ConfigError
from bsgenome_forge.fetch import Fetcher, chromosome_url, ensure_fetched, http_fetcher
from bsgenome_forge.manifest import RDNA_SEQNAME, Manifest, build_manifest
from bsgenome_forge.naming import NamingConvention
from bsgenome_forge.package import (
    BuildResult,
    PackageTool,
    RPackageTool,
    ensure_archive_built,
    ensure_source_built,
)
from bsgenome_forge.sequences import (
    TransformOutcome,
    alternate_path,
    ensure_alternate_naming,
    sequence_path,
    validate,
)

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    manifest: Manifest
    counters: Dict[str, int] = field(
        default_factory=lambda: {"fetched": 0, "skipped": 0, "renamed": 0, "records": 0}
    )
    source: Optional[BuildResult] = None
    archive: Optional[BuildResult] = None


def check_inputs(cfg: RunConfig) -> None:
    if not cfg.seqdir.is_dir():
        raise ConfigError(f"Folder {cfg.seqdir} does not exist.")
    if not cfg.seed_file.parent.is_dir():
        raise ConfigError(f"Folder {cfg.seed_file.parent} for the seed file does not exist.")


def plan_manifest(cfg: RunConfig) -> Manifest:
    return build_manifest(cfg.chromosomes, cfg.circular, cfg.naming, cfg.naming_map, cfg.bsgenome)


def fetch_chromosomes(cfg: RunConfig, fetcher: Fetcher, result: RunResult) -> None:
    logger.info("Downloading Ensembl genome sequence files...")
    for chrom in cfg.chromosomes:
        if chrom == RDNA_SEQNAME:
            continue
        path = sequence_path(cfg.seqdir, chrom)
        url = chromosome_url(cfg.url_template, cfg.base_url, chrom)
        outcome = ensure_fetched(url, path, cfg.force, fetcher, label="Ensembl sequence")
        result.counters[outcome.value] += 1

        sequence_set = validate(path)
        result.counters["records"] += len(sequence_set)

        if cfg.naming is NamingConvention.UCSC:
            out_path = alternate_path(cfg.seqdir, chrom, cfg.naming_map)
            if ensure_alternate_naming(chrom, sequence_set, cfg.naming_map, out_path) is TransformOutcome.WRITTEN:
                result.counters["renamed"] += 1


def fetch_rdna(cfg: RunConfig, fetcher: Fetcher, result: RunResult) -> None:
    path = sequence_path(cfg.seqdir, RDNA_SEQNAME)
    if cfg.rdna_url:
        outcome = ensure_fetched(cfg.rdna_url, path, cfg.force, fetcher, label="rDNA sequence")
        result.counters[outcome.value] += 1
    elif not path.exists():
        raise ConfigError(f"rDNA sequence file {path} not found. Set download.rdna_url or place the file there.")
    result.counters["records"] += len(validate(path))


def run(cfg: RunConfig, fetcher: Optional[Fetcher] = None, tool: Optional[PackageTool] = None) -> RunResult:
    """
    One forge run: download, validate and rename the sequences, write the seed
    file, then forge and build the package. Any ForgeError aborts the run.
    """
    check_inputs(cfg)
    fetcher = fetcher or http_fetcher(cfg.timeout_sec)
    tool = tool or RPackageTool(cfg.rscript, cfg.r, cfg.workdir)

    # Unmapped sequence names fail here, before anything is downloaded.
    result = RunResult(manifest=plan_manifest(cfg))

    fetch_chromosomes(cfg, fetcher, result)
    fetch_rdna(cfg, fetcher, result)

    logger.info("Writing seed file %s...", cfg.seed_file)
    result.manifest.write(cfg.seed_file)

    logger.info("Forging BSgenome...")
    result.source = ensure_source_built(cfg.package_name, cfg.seed_file, cfg.seqdir, cfg.force, tool)

    logger.info("Building BSgenome package...")
    result.archive = ensure_archive_built(cfg.package_name, cfg.version, cfg.force, tool)

    logger.info("All done.")
    return result
