"""
Shared fixtures: gzipped FASTA writers, a fake downloader and a fake R
package tool, so no test touches the network or needs R.
"""

import gzip
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

SAMPLE_SEQ = "ACGT" * 40


def write_fasta_gz(path: Path, records: List[Tuple[str, str]]) -> Path:
    with gzip.open(path, "wt") as f:
        for header, seq in records:
            f.write(f">{header}\n{seq}\n")
    return path


def chromosome_header(chrom: str) -> str:
    return f"{chrom} dna_rm:chromosome chromosome:GRCh38:{chrom}:1:{len(SAMPLE_SEQ)}:1 REF"


class FakeFetcher:
    """Writes a one-record FASTA for the chromosome named in the URL."""

    def __init__(self, empty: Optional[set] = None) -> None:
        self.calls: List[Tuple[str, Path]] = []
        self.empty = empty or set()

    def __call__(self, url: str, destination: Path) -> None:
        self.calls.append((url, destination))
        seqname = destination.name[: -len(".fa.gz")]
        records = [] if seqname in self.empty else [(chromosome_header(seqname), SAMPLE_SEQ)]
        write_fasta_gz(destination, records)


class FakePackageTool:
    def __init__(self, workdir: Path, package_name: str, version: str) -> None:
        self.workdir = workdir
        self.package_name = package_name
        self.version = version
        self.forge_calls: List[Tuple[Path, Path]] = []
        self.build_calls: List[Tuple[Path, Path]] = []

    def forge(self, seed_file: Path, seqdir: Path) -> None:
        self.forge_calls.append((seed_file, seqdir))
        package_dir = self.workdir / self.package_name
        package_dir.mkdir()
        (package_dir / "DESCRIPTION").write_text(f"Package: {self.package_name}\n")

    def build(self, package_dir: Path, archive: Path) -> Path:
        self.build_calls.append((package_dir, archive))
        archive.write_bytes(b"tarball")
        return archive


CONFIG_TEMPLATE = """
[paths]
seqdir = "seqs"
seed_file = "BSgenome_seed.dcf"

[sequences]
chr = {chr}
chr_circ = {chr_circ}

[download]
baseurl_ensembl = "http://ftp.example.org/pub/release-92/"

[bsgenome]
Package = "BSgenome.Hsapiens.Ensembl.GRCh38"
Title = "Test genome"
Version = "1.0.0"
organism = "Homo sapiens"
seqfiles_suffix = ".fa.gz"
"""


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    (tmp_path / "seqs").mkdir()
    write_fasta_gz(tmp_path / "seqs" / "U13369.1.fa.gz", [("U13369.1 Human ribosomal DNA", SAMPLE_SEQ)])
    return tmp_path


@pytest.fixture
def make_config(workdir: Path):
    def _make(chr_value: str = '["1", "MT"]', chr_circ: str = '["MT"]', extra: str = "") -> Path:
        path = workdir / "config.toml"
        path.write_text(CONFIG_TEMPLATE.format(chr=chr_value, chr_circ=chr_circ) + extra, encoding="utf-8")
        return path

    return _make


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def tool(workdir: Path) -> FakePackageTool:
    return FakePackageTool(workdir, "BSgenome.Hsapiens.Ensembl.GRCh38", "1.0.0")
