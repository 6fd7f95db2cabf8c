import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from .engine.context import DEFAULT_NAMESPACE
from .source import DEFAULT_FILE_SOURCE

DEFAULT_ATTEMPTS = 5
DEFAULT_TIMEOUT_MINUTES = 5


def env_namespace() -> str:
    return os.getenv("RAZEEDEPLOY_NAMESPACE", DEFAULT_NAMESPACE)


@dataclass
class InstallSettings:
    namespace: str = DEFAULT_NAMESPACE
    file_source: str = DEFAULT_FILE_SOURCE
    file_path: Optional[str] = None
    registry: Optional[str] = None
    versions: Dict[str, Optional[str]] = field(default_factory=dict)
    razeedash_url: Optional[str] = None
    razeedash_api: Optional[str] = None
    razeedash_org_key: Optional[str] = None
    razeedash_cluster_id: Optional[str] = None
    razeedash_cluster_metadata64: Optional[str] = None
    webhook_cert64: Optional[str] = None
    force: bool = False
    autoupdate: bool = False


@dataclass
class RemoveSettings:
    namespace: str = DEFAULT_NAMESPACE
    file_source: str = DEFAULT_FILE_SOURCE
    file_path: Optional[str] = None
    versions: Dict[str, Optional[str]] = field(default_factory=dict)
    delete_namespace: bool = False
    force: bool = False
    attempts: int = DEFAULT_ATTEMPTS
    timeout_minutes: float = DEFAULT_TIMEOUT_MINUTES
