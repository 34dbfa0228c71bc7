from pydantic import BaseModel, Field

from ipwatch.signals import PresenceStatus


class PresenceSignalRequest(BaseModel):
    """Session presence change reported by the desktop session glue."""

    status: PresenceStatus = Field(
        description="Current session presence.",
        examples=["active", "idle"],
    )


class NetworkSignalRequest(BaseModel):
    """Network availability change reported by the network monitor glue."""

    available: bool = Field(
        description="Whether the network monitor reports connectivity.",
        examples=[True, False],
    )
