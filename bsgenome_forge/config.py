import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

try:
    import tomllib
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib

from bsgenome_forge.errors import ConfigError
from bsgenome_forge.fetch import check_url_template
from bsgenome_forge.naming import NamingConvention, NamingMap, load_naming_map

DEFAULT_SEQDIR = "seqs"
DEFAULT_SEED_FILE = "BSgenome_seed.dcf"
DEFAULT_NAMING_MAP = "ensembl2ucsc.toml"
DEFAULT_URL_TEMPLATE = (
    "{base_url}/fasta/homo_sapiens/dna/Homo_sapiens.GRCh38.dna_rm.chromosome.{chrom}.fa.gz"
)
DEFAULT_TIMEOUT_SEC = 600.0
BUNDLED_DATA_DIR = Path(__file__).resolve().parent / "data"

REQUIRED_PACKAGE_FIELDS = ("Package", "Version")
DERIVED_PACKAGE_FIELDS = ("seqnames", "circ_seqs")

RANGE_PATTERN = re.compile(r"^(\d+)\s*:\s*(\d+)$")
R_VECTOR_PATTERN = re.compile(r"^c\((.*)\)$", re.DOTALL)


@dataclass(frozen=True)
class RunConfig:
    """Everything one run needs, resolved once at startup."""

    config_path: Path
    naming: NamingConvention
    force: bool
    workdir: Path
    seqdir: Path
    seed_file: Path
    chromosomes: Tuple[str, ...]
    circular: Tuple[str, ...]
    base_url: str
    url_template: str
    naming_map: NamingMap
    bsgenome: Mapping[str, str] = field(default_factory=dict)
    rdna_url: Optional[str] = None
    timeout_sec: float = DEFAULT_TIMEOUT_SEC
    rscript: str = "Rscript"
    r: str = "R"

    def __post_init__(self) -> None:
        object.__setattr__(self, "bsgenome", MappingProxyType(dict(self.bsgenome)))

    @property
    def package_name(self) -> str:
        return self.bsgenome["Package"]

    @property
    def version(self) -> str:
        return self.bsgenome["Version"]

    @property
    def log_path(self) -> Path:
        return self.seed_file.with_suffix(self.seed_file.suffix + ".log")


def expand_seqname_token(token: str) -> List[str]:
    token = token.strip().strip("'\"").strip()
    if not token:
        return []
    match = RANGE_PATTERN.match(token)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
        step = 1 if end >= start else -1
        return [str(i) for i in range(start, end + step, step)]
    return [token]


def parse_seqnames(value: object, name: str) -> List[str]:
    """
    Accept a TOML list (["1:22", "X", "MT"]) or an R vector expression string
    ("c(1:22, 'X', 'MT')"). "a:b" expands to the integers a..b.
    """
    if isinstance(value, str):
        text = value.strip()
        match = R_VECTOR_PATTERN.match(text)
        if match:
            text = match.group(1)
        tokens = text.split(",")
    elif isinstance(value, list):
        tokens = []
        for item in value:
            if isinstance(item, bool) or not isinstance(item, (str, int)):
                raise ConfigError(f"{name} must contain only strings or integers.")
            tokens.append(str(item))
    else:
        raise ConfigError(f"{name} must be a list or an R vector expression string.")

    seqnames: List[str] = []
    for token in tokens:
        for seqname in expand_seqname_token(token):
            if seqname in seqnames:
                raise ConfigError(f"{name} lists '{seqname}' more than once.")
            seqnames.append(seqname)
    return seqnames


def format_dcf_value(key: str, value: object) -> str:
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError(f"bsgenome.{key} must be a scalar value.")


def parse_package_fields(section: object) -> Dict[str, str]:
    if not isinstance(section, dict):
        raise ConfigError("Missing [bsgenome] section in config.")
    for key in REQUIRED_PACKAGE_FIELDS:
        if not section.get(key):
            raise ConfigError(f"bsgenome.{key} is required.")
    for key in DERIVED_PACKAGE_FIELDS:
        if key in section:
            raise ConfigError(f"bsgenome.{key} is derived from [sequences] and must not be set.")
    return {key: format_dcf_value(key, value) for key, value in section.items()}


def resolve_support_file_path(raw_path: str, config_path: Path, label: str) -> Path:
    path = Path(os.path.expandvars(os.path.expanduser(raw_path)))
    candidates: List[Path] = []
    if path.is_absolute():
        candidates.append(path)
    else:
        candidates.append(config_path.parent / path)
        candidates.append(Path.cwd() / path)
        candidates.append(BUNDLED_DATA_DIR / path)

    resolved = next((p for p in candidates if p.exists()), None)
    if not resolved:
        tried = ", ".join(str(p) for p in candidates)
        raise ConfigError(f"{label} not found. Tried: {tried}")
    return resolved


def get_table(data: Dict, name: str, required: bool = False) -> Dict:
    section = data.get(name)
    if section is None:
        if required:
            raise ConfigError(f"Missing [{name}] section in config.")
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table (dict).")
    return section


def get_string(section: Dict, key: str, table: str, default: Optional[str] = None) -> Optional[str]:
    value = section.get(key, default)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{table}.{key} must be a non-empty string.")
    return value.strip()


def load_config(path: Path) -> Dict:
    if not path.exists():
        raise ConfigError(f"Input file {path} does not exist.")
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Input file {path} is not valid TOML: {exc}") from exc


def load_run_config(
    path: Path,
    naming: NamingConvention = NamingConvention.ENSEMBL,
    force: bool = False,
    workdir: Optional[Path] = None,
) -> RunConfig:
    data = load_config(path)
    workdir = workdir or Path.cwd()

    paths_cfg = get_table(data, "paths")
    seq_cfg = get_table(data, "sequences", required=True)
    download_cfg = get_table(data, "download", required=True)
    tools_cfg = get_table(data, "tools")

    if "chr" not in seq_cfg:
        raise ConfigError("sequences.chr is required.")
    chromosomes = parse_seqnames(seq_cfg["chr"], "sequences.chr")
    if not chromosomes:
        raise ConfigError("sequences.chr must list at least one sequence.")
    circular = parse_seqnames(seq_cfg.get("chr_circ", []), "sequences.chr_circ")

    base_url = get_string(download_cfg, "baseurl_ensembl", "download")
    if not base_url:
        raise ConfigError("download.baseurl_ensembl is required.")

    timeout = download_cfg.get("timeout_sec", DEFAULT_TIMEOUT_SEC)
    try:
        timeout = float(timeout)
    except (TypeError, ValueError) as exc:
        raise ConfigError("download.timeout_sec must be a number.") from exc
    if timeout <= 0:
        raise ConfigError("download.timeout_sec must be > 0.")

    naming_map_raw = get_string(paths_cfg, "naming_map", "paths", DEFAULT_NAMING_MAP)
    naming_map_path = resolve_support_file_path(naming_map_raw, path, "Naming map file")

    return RunConfig(
        config_path=path,
        naming=naming,
        force=force,
        workdir=workdir,
        seqdir=workdir / get_string(paths_cfg, "seqdir", "paths", DEFAULT_SEQDIR),
        seed_file=workdir / get_string(paths_cfg, "seed_file", "paths", DEFAULT_SEED_FILE),
        chromosomes=tuple(chromosomes),
        circular=tuple(circular),
        base_url=base_url.rstrip("/"),
        url_template=check_url_template(get_string(download_cfg, "url_template", "download", DEFAULT_URL_TEMPLATE)),
        naming_map=load_naming_map(naming_map_path),
        bsgenome=parse_package_fields(data.get("bsgenome")),
        rdna_url=get_string(download_cfg, "rdna_url", "download"),
        timeout_sec=timeout,
        rscript=get_string(tools_cfg, "rscript", "tools", "Rscript"),
        r=get_string(tools_cfg, "r", "tools", "R"),
    )
