"""Data models for focus-pin."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BoostState(str, Enum):
    """Lifecycle of a boost task."""

    INITIALIZING = "initializing"
    BOOSTED = "boosted"
    RELEASED = "released"


class ControlSignal(str, Enum):
    """Messages on the daemon's control channel (fed by process signals)."""

    SHUTDOWN = "shutdown"
    RESET = "reset"


class PinSnapshot(BaseModel):
    """Pin mask of one VM as read from the hypervisor."""

    model_config = ConfigDict(frozen=True)

    vm: str = Field(description="VM name")
    mask: str = Field(description="Hard affinity shared by all vCPUs")
    vcpus: int = Field(ge=1, description="Number of vCPU rows seen")
