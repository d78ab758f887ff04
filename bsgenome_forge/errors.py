class ForgeError(Exception):
    """Base class for every fatal error of a forge run."""


class ConfigError(ForgeError):
    pass


class FetchError(ForgeError):
    pass


class EmptyFileError(ForgeError):
    pass


class NamingMapMissError(ForgeError, KeyError):
    def __init__(self, seqname: str, source: str = "naming map") -> None:
        super().__init__(seqname)
        self.seqname = seqname
        self.source = source

    def __str__(self) -> str:
        return f"Sequence name '{self.seqname}' has no entry in {self.source}."


class BuildToolError(ForgeError):
    pass
