"""Core functionality (SSH access, remote command strings, relay worker)"""
from .ssh_manager import SSHManager, RemoteStream

__all__ = ["SSHManager", "RemoteStream"]
