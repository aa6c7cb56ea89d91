"""Data models for Godot versions."""

import platform as host
import re
from enum import Enum
from typing import Annotated, ClassVar, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import FormatError, UnsupportedPlatformError

Byte = Annotated[int, Field(ge=0, le=255)]

_ARCHES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "i386": "x86_32",
    "i686": "x86_32",
    "x86": "x86_32",
}


def _host(system: Optional[str], machine: Optional[str]) -> Tuple[str, str, Optional[str]]:
    system = system if system is not None else host.system()
    machine = machine if machine is not None else host.machine()
    return system.lower(), machine, _ARCHES.get(machine.lower())


def platform_suffix(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    """Suffix Godot uses in artifact filenames for the given (default: running) host."""
    os_name, machine, arch = _host(system, machine)
    if os_name == "linux" and arch:
        return f"linux.{arch}"
    if os_name == "windows" and arch == "x86_32":
        return "win32.exe"
    if os_name == "windows" and arch == "x86_64":
        return "win64.exe"
    raise UnsupportedPlatformError(os_name, machine)


class Platform(str, Enum):
    WIN32 = "win32"
    WIN64 = "win64"
    LINUX32 = "linux32"
    LINUX64 = "linux64"
    MACOS = "macos"

    @classmethod
    def current(cls, system: Optional[str] = None, machine: Optional[str] = None) -> "Platform":
        os_name, machine, arch = _host(system, machine)
        if os_name == "darwin":
            return cls.MACOS
        table = {
            ("linux", "x86_32"): cls.LINUX32,
            ("linux", "x86_64"): cls.LINUX64,
            ("windows", "x86_32"): cls.WIN32,
            ("windows", "x86_64"): cls.WIN64,
        }
        try:
            return table[(os_name, arch)]
        except KeyError:
            raise UnsupportedPlatformError(os_name, machine) from None


class _Suffix(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: ClassVar[int]

    def sort_key(self) -> Tuple[int, int]:
        return self.rank, 0


class Stable(_Suffix):
    kind: Literal["stable"] = "stable"
    rank: ClassVar[int] = 3

    def __str__(self) -> str:
        return ""


class _Prerelease(_Suffix):
    number: Byte

    def sort_key(self) -> Tuple[int, int]:
        return self.rank, self.number

    def __str__(self) -> str:
        return f"-{self.kind}{self.number}"


class Alpha(_Prerelease):
    kind: Literal["alpha"] = "alpha"
    rank: ClassVar[int] = 0


class Beta(_Prerelease):
    kind: Literal["beta"] = "beta"
    rank: ClassVar[int] = 1


class Rc(_Prerelease):
    kind: Literal["rc"] = "rc"
    rank: ClassVar[int] = 2


Suffix = Annotated[Union[Stable, Alpha, Beta, Rc], Field(discriminator="kind")]

_PRERELEASES = {"alpha": Alpha, "beta": Beta, "rc": Rc}

_NUM = r"(0|[1-9]\d*)"
_CANONICAL_RE = re.compile(
    rf"Godot_v{_NUM}\.{_NUM}\.{_NUM}(?:-(alpha|beta|rc){_NUM})?(_mono)?"
)
_SPEC_RE = re.compile(
    r"(?:Godot_v)?(\d+)\.(\d+)(?:\.(\d+))?(?:-(?:stable|(alpha|beta|rc)(\d+)))?([_-]mono)?",
    re.IGNORECASE,
)


class VersionId(BaseModel):
    """Identity of one downloadable Godot build.

    Two ids are equal only if every field matches, platform included. The
    canonical string (``str(version_id)``) leaves the platform out and is used
    for directory and file names.
    """

    model_config = ConfigDict(frozen=True)

    major: Byte
    minor: Byte
    patch: Byte
    suffix: Suffix = Field(default_factory=Stable)
    is_mono: bool = False
    platform: Platform

    @property
    def canonical(self) -> str:
        variant = "_mono" if self.is_mono else ""
        return f"Godot_v{self.major}.{self.minor}.{self.patch}{self.suffix}{variant}"

    def __str__(self) -> str:
        return self.canonical

    def artifact_filename(self, system: Optional[str] = None, machine: Optional[str] = None) -> str:
        return f"{self.canonical}_{platform_suffix(system, machine)}.zip"

    def sort_key(self) -> tuple:
        return (self.major, self.minor, self.patch) + self.suffix.sort_key() + (
            self.is_mono, self.platform.value)

    def __lt__(self, other):
        if not isinstance(other, VersionId):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __le__(self, other):
        if not isinstance(other, VersionId):
            return NotImplemented
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other):
        if not isinstance(other, VersionId):
            return NotImplemented
        return self.sort_key() > other.sort_key()

    def __ge__(self, other):
        if not isinstance(other, VersionId):
            return NotImplemented
        return self.sort_key() >= other.sort_key()

    @classmethod
    def parse(cls, text: str, platform: Optional[Platform] = None) -> "VersionId":
        """Parse a canonical string such as ``Godot_v4.0.0-alpha8_mono``."""
        match = _CANONICAL_RE.fullmatch(text)
        if not match:
            raise FormatError(text)
        major, minor, patch, kind, number, mono = match.groups()
        return cls._build(text, major, minor, patch, kind, number, bool(mono), platform)

    @classmethod
    def parse_spec(cls, text: str, platform: Optional[Platform] = None,
                   mono: bool = False) -> "VersionId":
        """Parse a user-typed version such as ``4.0.3``, ``4.1-rc2`` or ``4.0.3-stable_mono``."""
        match = _SPEC_RE.fullmatch(text.strip())
        if not match:
            raise FormatError(text)
        major, minor, patch, kind, number, mono_flag = match.groups()
        return cls._build(text, major, minor, patch or "0", kind, number,
                          mono or bool(mono_flag), platform)

    @classmethod
    def _build(cls, text, major, minor, patch, kind, number, is_mono, platform) -> "VersionId":
        try:
            suffix = _PRERELEASES[kind.lower()](number=int(number)) if kind else Stable()
            return cls(
                major=int(major),
                minor=int(minor),
                patch=int(patch),
                suffix=suffix,
                is_mono=is_mono,
                platform=platform or Platform.current(),
            )
        except ValidationError:
            raise FormatError(text, "version number out of range") from None
