from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping

try:
    import tomllib
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib

from bsgenome_forge.errors import ConfigError, NamingMapMissError

NAMING_MAP_TABLE = "ensembl2ucsc"


class NamingConvention(str, Enum):
    ENSEMBL = "ensembl"
    UCSC = "ucsc"


@dataclass(frozen=True)
class NamingMap:
    """Ensembl sequence name -> UCSC sequence name (e.g. "1" -> "chr1", "MT" -> "chrM")."""

    entries: Mapping[str, str] = field(default_factory=dict)
    source: str = "naming map"

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def translate(self, seqname: str) -> str:
        try:
            return self.entries[seqname]
        except KeyError:
            raise NamingMapMissError(seqname, self.source) from None

    def convert(self, seqname: str, naming: NamingConvention) -> str:
        if naming is NamingConvention.UCSC:
            return self.translate(seqname)
        return seqname


def load_naming_map(path: Path) -> NamingMap:
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Naming map file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Naming map file {path} is not valid TOML: {exc}") from exc

    table = data.get(NAMING_MAP_TABLE)
    if not isinstance(table, dict) or not table:
        raise ConfigError(f"Naming map file {path} must define a non-empty [{NAMING_MAP_TABLE}] table.")

    entries: Dict[str, str] = {}
    for key, value in table.items():
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise ConfigError(f"{NAMING_MAP_TABLE}.{key} must be a string.")
        entries[str(key)] = str(value)
    return NamingMap(entries, source=str(path))
