from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional
import structlog

log = structlog.get_logger(__name__)

DEFAULT_LANGUAGE_LEVEL = "3"
DEFAULT_MODULE_NAME = "main"
INTERPRETER_SDK_NAME = "interpreter"

class ImportStyle(Enum):
    # how a level-0 import is looked up.
    AUTO = "auto"          # decided per file: py3 or `from __future__ import absolute_import`
    ABSOLUTE = "absolute"  # roots only
    LEGACY = "legacy"      # importing file's directory first, then roots

    @classmethod
    def from_string(cls, s: Optional[str]) -> "ImportStyle":
        if not s:
            return cls.AUTO
        try:
            return cls(s.lower())
        except ValueError:
            log.warning("invalid_import_style_string", input_string=s)
            return cls.AUTO

def is_python3(language_level: Optional[str]) -> bool:
    # "3", "3.11" -> True; "2.7" -> False. unparsable levels count as python 3.
    if not language_level:
        return True
    try:
        return int(str(language_level).split(".")[0]) >= 3
    except ValueError:
        log.warning("invalid_language_level", language_level=language_level)
        return True

@dataclass
class SdkSettings:
    # an interpreter: stdlib/site-packages roots plus an optional skeleton overlay.
    name: str
    version: str = DEFAULT_LANGUAGE_LEVEL
    sources: List[Path] = field(default_factory=list)
    classes: List[Path] = field(default_factory=list)
    skeletons: Optional[Path] = None

@dataclass
class LibrarySettings:
    name: str
    sources: List[Path] = field(default_factory=list)
    classes: List[Path] = field(default_factory=list)

@dataclass
class ModuleSettings:
    name: str
    content_roots: List[Path] = field(default_factory=list)
    source_roots: List[Path] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    sdk: Optional[str] = None
    language_level: Optional[str] = None

@dataclass
class ResolverConfig:
    # holds all configuration parameters for a single run.
    base_dir: Path = field(default_factory=lambda: Path.cwd().resolve())
    language_level: str = DEFAULT_LANGUAGE_LEVEL
    import_style: ImportStyle = ImportStyle.AUTO
    follow_reexports: bool = True
    use_interpreter_sdk: bool = True
    exclude_patterns: List[str] = field(default_factory=list)
    hidden: bool = False
    no_ignore: bool = False
    modules: List[ModuleSettings] = field(default_factory=list)
    sdks: List[SdkSettings] = field(default_factory=list)
    libraries: List[LibrarySettings] = field(default_factory=list)
