"""Data models shared by the release and runner subsystems."""

from .channel import ChannelEntry, Jorfile, TrustedPeer
from .release import ReleaseAsset, RemoteRelease
from .session import SessionDescriptor

__all__ = [
    "ChannelEntry",
    "Jorfile",
    "TrustedPeer",
    "ReleaseAsset",
    "RemoteRelease",
    "SessionDescriptor",
]
