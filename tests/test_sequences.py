import gzip
import logging

import pytest
from Bio import SeqIO

from bsgenome_forge.errors import EmptyFileError, NamingMapMissError
from bsgenome_forge.naming import NamingMap
from bsgenome_forge.sequences import (
    FASTA_LINE_WIDTH,
    TransformOutcome,
    alternate_path,
    ensure_alternate_naming,
    sequence_path,
    validate,
)
from conftest import chromosome_header, write_fasta_gz

NAMING_MAP = NamingMap({"1": "chr1", "MT": "chrM"})
LONG_SEQ = "ACGTN" * 30


def test_sequence_paths(tmp_path):
    assert sequence_path(tmp_path, "MT") == tmp_path / "MT.fa.gz"
    assert alternate_path(tmp_path, "MT", NAMING_MAP) == tmp_path / "chrM.fa.gz"


def test_validate_returns_records(tmp_path):
    path = write_fasta_gz(tmp_path / "1.fa.gz", [(chromosome_header("1"), LONG_SEQ)])

    result = validate(path)

    assert len(result) == 1
    assert result.path == path
    assert result.sequences == {"1": LONG_SEQ}


def test_validate_empty_file(tmp_path):
    path = write_fasta_gz(tmp_path / "1.fa.gz", [])
    with pytest.raises(EmptyFileError, match="1.fa.gz"):
        validate(path)


def test_validate_not_gzip(tmp_path):
    path = tmp_path / "1.fa.gz"
    path.write_text("<html><body>404 Not Found</body></html>\n")
    with pytest.raises(EmptyFileError, match="Download failure"):
        validate(path)


def test_validate_plain_fasta(tmp_path):
    path = tmp_path / "U13369.1.fa"
    path.write_text(">U13369.1 Human ribosomal DNA\nACGT\n")
    assert validate(path).sequences == {"U13369.1": "ACGT"}


def test_rename_writes_ucsc_copy(tmp_path):
    source = write_fasta_gz(tmp_path / "1.fa.gz", [(chromosome_header("1"), LONG_SEQ)])
    output = tmp_path / "chr1.fa.gz"

    outcome = ensure_alternate_naming("1", validate(source), NAMING_MAP, output)

    assert outcome is TransformOutcome.WRITTEN
    with gzip.open(output, "rt") as f:
        lines = f.read().splitlines()
    assert lines[0] == ">chr1 dna_rm:chromosome chromosome:GRCh38:1:1:160:1 REF"
    assert [len(line) for line in lines[1:]] == [FASTA_LINE_WIDTH, FASTA_LINE_WIDTH, 30]
    with gzip.open(output, "rt") as f:
        record = next(SeqIO.parse(f, "fasta"))
    assert record.id == "chr1"
    assert str(record.seq) == LONG_SEQ


def test_rename_does_not_touch_source_records(tmp_path):
    source = write_fasta_gz(tmp_path / "MT.fa.gz", [(chromosome_header("MT"), LONG_SEQ)])
    sequence_set = validate(source)

    ensure_alternate_naming("MT", sequence_set, NAMING_MAP, tmp_path / "chrM.fa.gz")

    assert sequence_set.records[0].id == "MT"


def test_rename_skips_existing_output(tmp_path):
    """
    Two calls with the same output path rename and write only once.
    """
    source = write_fasta_gz(tmp_path / "1.fa.gz", [(chromosome_header("1"), LONG_SEQ)])
    output = tmp_path / "chr1.fa.gz"
    sequence_set = validate(source)

    assert ensure_alternate_naming("1", sequence_set, NAMING_MAP, output) is TransformOutcome.WRITTEN
    first = output.read_bytes()
    assert ensure_alternate_naming("1", sequence_set, NAMING_MAP, output) is TransformOutcome.SKIPPED
    assert output.read_bytes() == first


def test_rename_unmapped_chromosome(tmp_path):
    source = write_fasta_gz(tmp_path / "GL000008.2.fa.gz", [("GL000008.2 scaffold", LONG_SEQ)])
    output = tmp_path / "never.fa.gz"

    with pytest.raises(NamingMapMissError):
        ensure_alternate_naming("GL000008.2", validate(source), NAMING_MAP, output)
    assert not output.exists()


def test_rename_without_matching_record_warns(tmp_path, caplog):
    """
    A file whose records do not carry the chromosome name is copied unchanged, with a warning.
    """
    source = write_fasta_gz(tmp_path / "1.fa.gz", [("scaffold_A unplaced", LONG_SEQ)])
    output = tmp_path / "chr1.fa.gz"

    with caplog.at_level(logging.WARNING, logger="bsgenome_forge"):
        outcome = ensure_alternate_naming("1", validate(source), NAMING_MAP, output)

    assert outcome is TransformOutcome.WRITTEN
    assert "No record in" in caplog.text
    with gzip.open(output, "rt") as f:
        record = next(SeqIO.parse(f, "fasta"))
    assert record.id == "scaffold_A"
