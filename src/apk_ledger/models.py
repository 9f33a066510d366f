"""Data models shared across apk_ledger."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class InputKind(str, Enum):
    PATH = "path"
    BYTES = "bytes"


class PayloadKind(str, Enum):
    RESULT = "result"
    FILE = "file"


class SessionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class Permission:
    name: str
    is_dangerous: bool = False


@dataclass(frozen=True)
class PermissionStats:
    total: int = 0
    dangerous: int = 0


@dataclass(frozen=True)
class SignatureInfo:
    issuer: str
    subject: str
    valid_from: str  # RFC 2822, as reported by the engine
    valid_to: str
    fingerprint_sha1: Optional[str] = None
    fingerprint_sha256: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True if ``valid_to`` is in the past. Unparseable dates count as valid."""
        try:
            expires = parsedate_to_datetime(self.valid_to)
        except (TypeError, ValueError):
            return False
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return expires < (now or datetime.now(timezone.utc))


@dataclass(frozen=True)
class FileInfo:
    md5: str
    sha1: str
    sha256: str
    file_size: int
    file_type: str
    entry_count: int = 0


def format_version_info(version_name: str, version_code: str) -> str:
    return f"{version_name} ({version_code})"


def format_sdk_info(min_sdk: str, target_sdk: str) -> str:
    return f"Min SDK: {min_sdk}, Target SDK: {target_sdk}"


@dataclass(frozen=True)
class AnalysisResult:
    """
    One engine verdict for one package. Never mutated, only replaced.

    ``dangerous_permissions`` and ``permission_stats`` are derived from
    ``permissions`` so they cannot drift apart.
    """

    package_name: str
    version_name: str
    version_code: str
    min_sdk: str
    target_sdk: str
    permissions: tuple[Permission, ...] = ()
    signature_info: Optional[SignatureInfo] = None
    file_info: Optional[FileInfo] = None
    is_certificate_expired: bool = False
    formatted_version_info: str = ""
    formatted_sdk_info: str = ""
    main_activity: Optional[str] = None
    icon_base64: Optional[str] = None

    @property
    def identity(self) -> tuple[str, str]:
        return (self.package_name, self.version_name)

    @property
    def dangerous_permissions(self) -> tuple[Permission, ...]:
        return tuple(p for p in self.permissions if p.is_dangerous)

    @property
    def permission_stats(self) -> PermissionStats:
        return PermissionStats(
            total=len(self.permissions),
            dangerous=len(self.dangerous_permissions),
        )

    def summary(self) -> str:
        lines = [
            f"Package:      {self.package_name}",
            f"Version:      {self.formatted_version_info}",
            f"SDK:          {self.formatted_sdk_info}",
            f"Permissions:  {self.permission_stats.total} "
            f"({self.permission_stats.dangerous} dangerous)",
        ]
        if self.signature_info:
            sig = self.signature_info
            status = "EXPIRED" if self.is_certificate_expired else "valid"
            lines.append(f"Certificate:  {sig.subject} ({status})")
        if self.file_info:
            lines.append(f"SHA-256:      {self.file_info.sha256}")
        for perm in self.dangerous_permissions:
            lines.append(f"  [DANGER] {perm.name}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FileOrigin:
    """Where an analyzed package came from, as shown next to its result."""

    file_name: str
    file_path: str = ""
    file_size: int = 0
    icon_base64: Optional[str] = None

    @classmethod
    def synthesize(cls, result: AnalysisResult) -> "FileOrigin":
        return cls(
            file_name=f"{result.package_name}-{result.version_name}.apk",
            icon_base64=result.icon_base64,
        )


@dataclass(frozen=True)
class PackageInput:
    """Analyzer input: a filesystem path or a raw buffer with a display name."""

    kind: InputKind
    path: Optional[str] = None
    data: Optional[bytes] = None
    display_name: Optional[str] = None

    @classmethod
    def from_path(cls, path: str | Path) -> "PackageInput":
        return cls(kind=InputKind.PATH, path=str(path), display_name=Path(path).name)

    @classmethod
    def from_bytes(cls, data: bytes, display_name: str) -> "PackageInput":
        return cls(kind=InputKind.BYTES, data=bytes(data), display_name=display_name)

    def origin_for(self, result: AnalysisResult) -> FileOrigin:
        if self.kind == InputKind.BYTES:
            return FileOrigin(
                file_name=self.display_name or "",
                file_size=len(self.data or b""),
                icon_base64=result.icon_base64,
            )
        path = Path(self.path or "")
        try:
            size = path.stat().st_size
        except OSError:
            size = result.file_info.file_size if result.file_info else 0
        return FileOrigin(
            file_name=path.name,
            file_path=str(path),
            file_size=size,
            icon_base64=result.icon_base64,
        )


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    result: AnalysisResult
    analyzed_at: datetime
    file_origin: Optional[FileOrigin] = None

    @property
    def identity(self) -> tuple[str, str]:
        return self.result.identity


@dataclass(frozen=True)
class LastAnalysis:
    result: AnalysisResult
    file_origin: Optional[FileOrigin] = None


@dataclass(frozen=True)
class DisplayPayload:
    """Something to put on screen: a bare result, or a result with its file."""

    kind: PayloadKind
    result: AnalysisResult
    file_origin: Optional[FileOrigin] = None

    @classmethod
    def of_result(cls, result: AnalysisResult) -> "DisplayPayload":
        return cls(kind=PayloadKind.RESULT, result=result)

    @classmethod
    def of_file(cls, result: AnalysisResult, file_origin: FileOrigin) -> "DisplayPayload":
        return cls(kind=PayloadKind.FILE, result=result, file_origin=file_origin)


@dataclass(frozen=True)
class SessionState:
    status: SessionStatus = SessionStatus.IDLE
    result: Optional[AnalysisResult] = None
    file_origin: Optional[FileOrigin] = None
    error: Optional[str] = None
    generation: int = 0

    @classmethod
    def idle(cls, generation: int = 0) -> "SessionState":
        return cls(generation=generation)

    @classmethod
    def loading(cls, generation: int) -> "SessionState":
        return cls(status=SessionStatus.LOADING, generation=generation)

    @classmethod
    def ready(
        cls,
        result: AnalysisResult,
        file_origin: Optional[FileOrigin] = None,
        generation: int = 0,
    ) -> "SessionState":
        return cls(
            status=SessionStatus.READY,
            result=result,
            file_origin=file_origin,
            generation=generation,
        )

    @classmethod
    def failed(cls, reason: str, generation: int = 0) -> "SessionState":
        return cls(status=SessionStatus.FAILED, error=reason, generation=generation)

    @property
    def is_loading(self) -> bool:
        return self.status == SessionStatus.LOADING

