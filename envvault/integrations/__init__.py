"""Adapters for the external tools envvault drives.

This package contains:
- sops: SopsAdapter for decrypting and encrypting secret files
- git: GitAdapter for repository state and commits
- protocols: SecretsBackend and VersionControl interfaces
"""

from envvault.integrations.git import GitAdapter, GitStatus, find_repo_root
from envvault.integrations.protocols import SecretsBackend, VersionControl
from envvault.integrations.sops import DecryptedData, SopsAdapter, SopsMetadata

__all__ = [
    "GitAdapter",
    "GitStatus",
    "find_repo_root",
    "SopsAdapter",
    "DecryptedData",
    "SopsMetadata",
    "SecretsBackend",
    "VersionControl",
]
