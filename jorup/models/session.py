"""Session descriptor persisted while a node is running."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class SessionDescriptor(BaseModel):
    """The running node of one channel.

    Written right after the node is spawned and removed after a confirmed
    clean shutdown. Unknown fields are rejected so files written by an older
    format are detected instead of misread.
    """

    model_config = ConfigDict(extra="forbid")
    pid: int = Field(..., ge=0, le=2**32 - 1)
    control_port: int | None = Field(default=None, ge=0, le=65535)
    companion_binary_path: Path
    node_binary_path: Path
