from .client import KubeClient, get_kube_client
from .crd import CrdConfirmationError, crd_deleted, crd_registered, list_stored_custom_resources
from .resources import KubeResourceMeta, Response
from .wait import PollResult, poll, removal_backoff

__all__ = [
    "KubeClient",
    "get_kube_client",
    "CrdConfirmationError",
    "crd_deleted",
    "crd_registered",
    "list_stored_custom_resources",
    "KubeResourceMeta",
    "Response",
    "PollResult",
    "poll",
    "removal_backoff",
]
