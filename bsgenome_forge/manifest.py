"""
BSgenome seed file: package metadata plus the derived `seqnames` and
`circ_seqs` fields, written as a Debian Control File for
BSgenome::forgeBSgenomeDataPkg().
"""

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, List, Mapping, Sequence, Tuple

from bsgenome_forge.errors import ConfigError
from bsgenome_forge.naming import NamingConvention, NamingMap

# Human ribosomal DNA repeat (GenBank U13369.1); always packaged, always circular.
RDNA_SEQNAME = "U13369.1"


def r_vector(seqnames: Iterable[str]) -> str:
    return "c({})".format(", ".join(f"'{name}'" for name in seqnames))


def dcf_value(value: str) -> str:
    lines = str(value).splitlines() or [""]
    continuation = [f" {line}" if line.strip() else " ." for line in lines[1:]]
    return "\n".join([lines[0]] + continuation)


@dataclass(frozen=True)
class Manifest:
    fields: Mapping[str, str]
    seqnames: Tuple[str, ...]
    circ_seqs: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        missing = [name for name in self.circ_seqs if name not in self.seqnames]
        if missing:
            raise ConfigError(f"Circular sequences {missing} are not among the packaged sequences.")

    def records(self) -> List[Tuple[str, str]]:
        items = list(self.fields.items())
        items.append(("seqnames", r_vector(self.seqnames)))
        items.append(("circ_seqs", r_vector(self.circ_seqs)))
        return items

    def to_dcf(self) -> str:
        return "".join(f"{key}: {dcf_value(value)}\n" for key, value in self.records())

    def write(self, path: Path) -> Path:
        try:
            path.write_text(self.to_dcf(), encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Could not write seed file {path}: {exc}") from exc
        return path


def convert_with_sentinel(seqnames: Sequence[str], naming: NamingConvention, naming_map: NamingMap) -> Tuple[str, ...]:
    converted = [
        name if name == RDNA_SEQNAME else naming_map.convert(name, naming) for name in seqnames
    ]
    if RDNA_SEQNAME not in converted:
        converted.append(RDNA_SEQNAME)
    return tuple(converted)


def build_manifest(
    chromosome_ids: Sequence[str],
    circular_ids: Sequence[str],
    naming: NamingConvention,
    naming_map: NamingMap,
    fields: Mapping[str, str],
) -> Manifest:
    """
    Sequence order is kept as configured; it is the order of the sequences
    in the forged package.
    """
    return Manifest(
        fields=fields,
        seqnames=convert_with_sentinel(chromosome_ids, naming, naming_map),
        circ_seqs=convert_with_sentinel(circular_ids, naming, naming_map),
    )
