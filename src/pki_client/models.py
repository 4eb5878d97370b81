"""Data models for Horizon requests."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"


class LabelElement(BaseModel):
    """Label attached to an enrollment request."""

    label: str = Field(..., description="Label name")
    value: str = Field(..., description="Label value")


class ExternalRequest(BaseModel):
    """Request as reported by Horizon."""

    id: str = Field(..., description="Horizon request identifier")
    status: str = Field(..., description="Request status (pending, completed, ...)")
    certificate: Optional[str] = Field(None, description="PEM-encoded certificate once completed")

    @property
    def completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    @classmethod
    def from_response(cls, body: Dict[str, Any]) -> "ExternalRequest":
        """Create from a Horizon request JSON body."""
        certificate = body.get("certificate")
        if isinstance(certificate, dict):
            certificate = certificate.get("certificate")
        return cls(
            id=body.get("_id") or body.get("id") or "",
            status=body.get("status", ""),
            certificate=certificate,
        )


def enrollment_payload(profile: str, csr: bytes, labels: List[LabelElement]) -> Dict[str, Any]:
    """Body of a decentralized enrollment submission."""
    return {
        "workflow": "enroll",
        "profile": profile,
        "template": {
            "csr": csr.decode(),
            "labels": [label.model_dump() for label in labels],
        },
    }
