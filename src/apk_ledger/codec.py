"""
Lossless dict conversion for the data model.

The same shapes are used for engine responses and for persisted slots.
Optional fields are omitted when unset. Decoding raises ``ValueError`` on
anything malformed; callers decide whether that is a failure or "nothing
there".
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from apk_ledger.log import log_event
from apk_ledger.models import (
    AnalysisResult,
    FileInfo,
    FileOrigin,
    HistoryEntry,
    LastAnalysis,
    Permission,
    SignatureInfo,
    format_sdk_info,
    format_version_info,
)

logger = logging.getLogger(__name__)

_REQUIRED_RESULT_FIELDS = ("package_name", "version_name", "version_code", "min_sdk", "target_sdk")


def _put(data: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _str(data: Mapping[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if value is None:
        raise ValueError(f"{what} is missing '{key}'")
    return str(value)


def _opt_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return None if value is None else str(value)


def _int(data: Mapping[str, Any], key: str, what: str) -> int:
    value = data.get(key, 0)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"{what} has invalid '{key}': {value!r}") from exc


# ── AnalysisResult ────────────────────────────────────────────────────────────


def result_to_dict(result: AnalysisResult) -> dict[str, Any]:
    data: dict[str, Any] = {
        "package_name": result.package_name,
        "version_name": result.version_name,
        "version_code": result.version_code,
        "min_sdk": result.min_sdk,
        "target_sdk": result.target_sdk,
        "permissions": [
            {"name": p.name, "is_dangerous": p.is_dangerous} for p in result.permissions
        ],
        "dangerous_permissions": [
            {"name": p.name, "is_dangerous": True} for p in result.dangerous_permissions
        ],
        "permission_stats": {
            "total": result.permission_stats.total,
            "dangerous": result.permission_stats.dangerous,
        },
        "is_certificate_expired": result.is_certificate_expired,
        "formatted_version_info": result.formatted_version_info,
        "formatted_sdk_info": result.formatted_sdk_info,
    }
    if result.signature_info:
        sig = result.signature_info
        sig_data = {
            "issuer": sig.issuer,
            "subject": sig.subject,
            "valid_from": sig.valid_from,
            "valid_to": sig.valid_to,
        }
        _put(sig_data, "fingerprint_sha1", sig.fingerprint_sha1)
        _put(sig_data, "fingerprint_sha256", sig.fingerprint_sha256)
        data["signature_info"] = sig_data
    if result.file_info:
        fi = result.file_info
        data["file_info"] = {
            "md5": fi.md5,
            "sha1": fi.sha1,
            "sha256": fi.sha256,
            "file_size": fi.file_size,
            "file_type": fi.file_type,
            "entry_count": fi.entry_count,
        }
    _put(data, "main_activity", result.main_activity)
    _put(data, "icon_base64", result.icon_base64)
    return data


def _permissions_from(raw: Any) -> tuple[Permission, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValueError("'permissions' must be a list")
    perms = []
    for item in raw:
        item = _mapping(item, "permission")
        perms.append(
            Permission(name=_str(item, "name", "permission"), is_dangerous=bool(item.get("is_dangerous", False)))
        )
    return tuple(perms)


def _signature_from(raw: Any) -> Optional[SignatureInfo]:
    if raw is None:
        return None
    raw = _mapping(raw, "signature_info")
    return SignatureInfo(
        issuer=_str(raw, "issuer", "signature_info"),
        subject=_str(raw, "subject", "signature_info"),
        valid_from=_str(raw, "valid_from", "signature_info"),
        valid_to=_str(raw, "valid_to", "signature_info"),
        fingerprint_sha1=_opt_str(raw, "fingerprint_sha1"),
        fingerprint_sha256=_opt_str(raw, "fingerprint_sha256"),
    )


def _file_info_from(raw: Any) -> Optional[FileInfo]:
    if raw is None:
        return None
    raw = _mapping(raw, "file_info")
    return FileInfo(
        md5=_str(raw, "md5", "file_info"),
        sha1=_str(raw, "sha1", "file_info"),
        sha256=_str(raw, "sha256", "file_info"),
        file_size=_int(raw, "file_size", "file_info"),
        file_type=str(raw.get("file_type", "")),
        entry_count=_int(raw, "entry_count", "file_info"),
    )


def _check_reported_stats(data: Mapping[str, Any], result: AnalysisResult) -> None:
    """Warn when engine-reported counts disagree with the permission list."""
    if "permissions" not in data:
        return
    stats = data.get("permission_stats")
    reported_dangerous = data.get("dangerous_permissions")
    expected = result.permission_stats
    mismatch = False
    if isinstance(stats, Mapping):
        mismatch = stats.get("total") != expected.total or stats.get("dangerous") != expected.dangerous
    if isinstance(reported_dangerous, list) and len(reported_dangerous) != expected.dangerous:
        mismatch = True
    if mismatch:
        log_event(
            logger,
            logging.WARNING,
            "permission_stats_mismatch",
            package=result.package_name,
            reported=stats,
            derived={"total": expected.total, "dangerous": expected.dangerous},
        )


def result_from_dict(data: Any) -> AnalysisResult:
    """
    Build an ``AnalysisResult`` from an engine response or a stored payload.

    Dangerous-permission list and counts are always re-derived from
    ``permissions``. Missing display strings and the expiry flag are filled
    in the way the engine computes them.
    """
    data = _mapping(data, "analysis result")
    for key in _REQUIRED_RESULT_FIELDS:
        _str(data, key, "analysis result")

    signature = _signature_from(data.get("signature_info"))
    expired = data.get("is_certificate_expired")
    if expired is None:
        expired = signature.is_expired() if signature else False

    result = AnalysisResult(
        package_name=str(data["package_name"]),
        version_name=str(data["version_name"]),
        version_code=str(data["version_code"]),
        min_sdk=str(data["min_sdk"]),
        target_sdk=str(data["target_sdk"]),
        permissions=_permissions_from(data.get("permissions")),
        signature_info=signature,
        file_info=_file_info_from(data.get("file_info")),
        is_certificate_expired=bool(expired),
        formatted_version_info=str(
            data.get("formatted_version_info")
            or format_version_info(str(data["version_name"]), str(data["version_code"]))
        ),
        formatted_sdk_info=str(
            data.get("formatted_sdk_info")
            or format_sdk_info(str(data["min_sdk"]), str(data["target_sdk"]))
        ),
        main_activity=_opt_str(data, "main_activity"),
        icon_base64=_opt_str(data, "icon_base64"),
    )
    _check_reported_stats(data, result)
    return result


# ── FileOrigin / HistoryEntry / LastAnalysis ─────────────────────────────────


def origin_to_dict(origin: FileOrigin) -> dict[str, Any]:
    data: dict[str, Any] = {
        "file_name": origin.file_name,
        "file_path": origin.file_path,
        "file_size": origin.file_size,
    }
    _put(data, "icon_base64", origin.icon_base64)
    return data


def origin_from_dict(data: Any) -> Optional[FileOrigin]:
    if data is None:
        return None
    data = _mapping(data, "file origin")
    return FileOrigin(
        file_name=_str(data, "file_name", "file origin"),
        file_path=str(data.get("file_path") or ""),
        file_size=_int(data, "file_size", "file origin"),
        icon_base64=_opt_str(data, "icon_base64"),
    )


def _parse_timestamp(raw: Any) -> datetime:
    if not isinstance(raw, str):
        raise ValueError("'analyzed_at' must be an ISO 8601 string")
    # Accept the trailing "Z" that JavaScript's toISOString() writes.
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    stamp = datetime.fromisoformat(raw)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def entry_to_dict(entry: HistoryEntry) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": entry.id,
        "apk_info": result_to_dict(entry.result),
        "analyzed_at": entry.analyzed_at.isoformat(),
    }
    if entry.file_origin:
        data["file_info"] = origin_to_dict(entry.file_origin)
    return data


def entry_from_dict(data: Any) -> HistoryEntry:
    data = _mapping(data, "history entry")
    return HistoryEntry(
        id=_str(data, "id", "history entry"),
        result=result_from_dict(data.get("apk_info")),
        analyzed_at=_parse_timestamp(data.get("analyzed_at")),
        file_origin=origin_from_dict(data.get("file_info")),
    )


def history_to_list(entries: list[HistoryEntry] | tuple[HistoryEntry, ...]) -> list[dict[str, Any]]:
    return [entry_to_dict(e) for e in entries]


def history_from_list(data: Any) -> list[HistoryEntry]:
    if not isinstance(data, list):
        raise ValueError("history must be a list")
    return [entry_from_dict(item) for item in data]


def last_to_dict(last: LastAnalysis) -> dict[str, Any]:
    data: dict[str, Any] = {"apkInfo": result_to_dict(last.result)}
    if last.file_origin:
        data["fileInfo"] = origin_to_dict(last.file_origin)
    return data


def last_from_dict(data: Any) -> LastAnalysis:
    data = _mapping(data, "last analysis")
    return LastAnalysis(
        result=result_from_dict(data.get("apkInfo")),
        file_origin=origin_from_dict(data.get("fileInfo")),
    )
