import logging
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Protocol

from bsgenome_forge.errors import BuildToolError
from bsgenome_forge.fetch import should_act

logger = logging.getLogger(__name__)


class BuildOutcome(str, Enum):
    BUILT = "built"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class BuildResult:
    outcome: BuildOutcome
    path: Path


class PackageTool(Protocol):
    workdir: Path

    def forge(self, seed_file: Path, seqdir: Path) -> None:
        ...

    def build(self, package_dir: Path, archive: Path) -> Path:
        ...


def package_dir(workdir: Path, package_name: str) -> Path:
    return workdir / package_name


def archive_name(package_name: str, version: str) -> str:
    return f"{package_name}_{version}.tar.gz"


def r_string(value: object) -> str:
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class RPackageTool:
    """Runs the BSgenome forge and `R CMD build` as subprocesses inside `workdir`."""

    def __init__(self, rscript: str = "Rscript", r: str = "R", workdir: Optional[Path] = None) -> None:
        self.rscript = rscript
        self.r = r
        self.workdir = workdir or Path.cwd()

    def run(self, cmd: List[str]) -> None:
        logger.debug("+ %s", " ".join(cmd))
        try:
            subprocess.run(cmd, cwd=str(self.workdir), check=True)
        except FileNotFoundError as exc:
            raise BuildToolError(f"Executable not found: {cmd[0]}") from exc
        except subprocess.CalledProcessError as exc:
            raise BuildToolError(f"Command failed with exit status {exc.returncode}: {' '.join(cmd)}") from exc

    def forge(self, seed_file: Path, seqdir: Path) -> None:
        expr = "BSgenome::forgeBSgenomeDataPkg({}, seqs_srcdir = {}, destdir = {})".format(
            r_string(seed_file.resolve()),
            r_string(seqdir.resolve()),
            r_string(self.workdir.resolve()),
        )
        self.run([self.rscript, "-e", expr])

    def build(self, package_dir: Path, archive: Path) -> Path:
        self.run([self.r, "CMD", "build", str(package_dir)])
        if not archive.exists():
            raise BuildToolError(f"Package build finished but {archive} was not created.")
        return archive


def ensure_source_built(package_name: str, seed_file: Path, seqdir: Path, force: bool, tool: PackageTool) -> BuildResult:
    source_dir = package_dir(tool.workdir, package_name)
    exists = source_dir.is_dir()
    if not should_act(force, exists):
        logger.info(
            "Folder %s already exists. Skipping (use -f to force rebuild). "
            "Or manually delete target folder (e.g. 'rm -rf %s').",
            source_dir,
            source_dir,
        )
        return BuildResult(BuildOutcome.SKIPPED, source_dir)

    if exists:
        logger.info("Deleting existing folder %s...", source_dir)
        shutil.rmtree(source_dir)
    logger.info("Creating package source files in folder %s", source_dir)
    tool.forge(seed_file, seqdir)
    return BuildResult(BuildOutcome.BUILT, source_dir)


def ensure_archive_built(package_name: str, version: str, force: bool, tool: PackageTool) -> BuildResult:
    archive = tool.workdir / archive_name(package_name, version)
    if not should_act(force, archive.exists()):
        logger.info(
            "File %s already exists. Skipping (use -f to force rebuild). "
            "Or manually delete target file (e.g. 'rm -f %s').",
            archive,
            archive,
        )
        return BuildResult(BuildOutcome.SKIPPED, archive)

    built = tool.build(package_dir(tool.workdir, package_name), archive)
    logger.info("BSgenome package file %s created.", built)
    return BuildResult(BuildOutcome.BUILT, built)
