"""Deploy protocol data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..errors import ProtocolError

# Order matters for the archive path: fields are written in this order.
MUTABLE_FIELDS = ("name", "custom_domain", "password", "notification_email")


@dataclass
class SiteUpdate:
    """Outbound payload for a site update.

    ``files`` is only present for directory deploys.
    """

    name: str = ""
    custom_domain: str = ""
    password: str = ""
    notification_email: str = ""
    files: Optional[Dict[str, str]] = None

    @classmethod
    def from_params(
        cls,
        params: Mapping[str, str],
        files: Optional[Dict[str, str]] = None,
    ) -> "SiteUpdate":
        return cls(
            name=params.get("name", ""),
            custom_domain=params.get("custom_domain", ""),
            password=params.get("password", ""),
            notification_email=params.get("notification_email", ""),
            files=files,
        )

    def params(self) -> Dict[str, str]:
        return {key: getattr(self, key) or "" for key in MUTABLE_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = self.params()
        if self.files is not None:
            result["files"] = dict(self.files)
        return result


@dataclass
class DeployInfo:
    """Server response to a deploy submission."""

    id: str = ""
    deploy_id: str = ""
    required: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "DeployInfo":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ProtocolError(f"Expected a JSON object, got {type(data).__name__}")

        required = data.get("required") or []
        if not isinstance(required, list) or not all(isinstance(d, str) for d in required):
            raise ProtocolError("'required' must be a list of digest strings")

        return cls(
            id=str(data.get("id") or ""),
            deploy_id=str(data.get("deploy_id") or ""),
            required=list(required),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "deploy_id": self.deploy_id,
            "required": list(self.required),
        }


__all__ = ["MUTABLE_FIELDS", "DeployInfo", "SiteUpdate"]
