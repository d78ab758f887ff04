import gzip
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, TextIO

from Bio import SeqIO
from Bio.SeqIO.FastaIO import FastaWriter
from Bio.SeqRecord import SeqRecord

from bsgenome_forge.errors import EmptyFileError
from bsgenome_forge.naming import NamingMap

logger = logging.getLogger(__name__)

SEQUENCE_EXTENSION = ".fa.gz"
# Line width BSgenome expects in the forged FASTA sources.
FASTA_LINE_WIDTH = 60


class TransformOutcome(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ValidationResult:
    path: Path
    records: List[SeqRecord]

    def __len__(self) -> int:
        return len(self.records)

    @property
    def sequences(self) -> Dict[str, str]:
        return {record.id: str(record.seq) for record in self.records}


def sequence_path(seqdir: Path, seqname: str) -> Path:
    return seqdir / f"{seqname}{SEQUENCE_EXTENSION}"


def alternate_path(seqdir: Path, seqname: str, naming_map: NamingMap) -> Path:
    return sequence_path(seqdir, naming_map.translate(seqname))


@contextmanager
def open_fasta(path: Path, mode: str = "rt") -> Iterator[TextIO]:
    if path.suffix == ".gz":
        with gzip.open(path, mode) as f:
            yield f
    else:
        with path.open(mode.replace("t", ""), encoding="utf-8") as f:
            yield f


def validate(path: Path) -> ValidationResult:
    """
    Parse a downloaded FASTA file. A file without records is almost always a
    failed download (an HTML error page, a truncated archive), so it is fatal.
    """
    try:
        with open_fasta(path) as f:
            records = list(SeqIO.parse(f, "fasta"))
    except (OSError, EOFError, ValueError, UnicodeDecodeError) as exc:
        raise EmptyFileError(f"{path} is not a FASTA file ({exc}). Download failure?") from exc

    if not records:
        raise EmptyFileError(f"File {path} seems to be empty. Download failure?")
    logger.debug("File %s holds %d sequence record(s).", path, len(records))
    return ValidationResult(path, records)


def rename_record(record: SeqRecord, old: str, new: str) -> SeqRecord:
    return SeqRecord(
        record.seq,
        id=record.id.replace(old, new, 1),
        name=record.name.replace(old, new, 1),
        description=record.description.replace(old, new, 1),
    )


def write_fasta_gz(records: List[SeqRecord], output_path: Path) -> int:
    tmp_path = output_path.with_name(output_path.name + ".tmp")
    try:
        with gzip.open(tmp_path, "wt") as out_f:
            count = FastaWriter(out_f, wrap=FASTA_LINE_WIDTH).write_file(records)
        tmp_path.replace(output_path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
    return count


def ensure_alternate_naming(
    chromosome_id: str,
    sequence_set: ValidationResult,
    naming_map: NamingMap,
    output_path: Path,
) -> TransformOutcome:
    if output_path.exists():
        logger.info("File %s already exists. Skipping renaming.", output_path)
        return TransformOutcome.SKIPPED

    alternate_id = naming_map.translate(chromosome_id)
    renamed = 0
    records: List[SeqRecord] = []
    for record in sequence_set.records:
        if chromosome_id in record.id:
            record = rename_record(record, chromosome_id, alternate_id)
            renamed += 1
        records.append(record)
    if not renamed:
        logger.warning("No record in %s is named '%s'; writing names unchanged.", sequence_set.path, chromosome_id)

    logger.info("Writing new file %s in UCSC chromosome notation.", output_path)
    write_fasta_gz(records, output_path)
    return TransformOutcome.WRITTEN
