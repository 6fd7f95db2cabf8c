import logging
from typing import Any, Dict, List

from razeedeploy.engine.context import DeployContext

from .resources import KubeResourceMeta
from .wait import PollResult, poll

logger = logging.getLogger("razeedeploy.kube")

CRD_KIND = "CustomResourceDefinition"
CRD_API_VERSIONS = ("apiextensions.k8s.io/v1", "apiextensions.k8s.io/v1beta1")
DEFAULT_GROUP = "deploy.razee.io"


class CrdConfirmationError(TimeoutError):
    pass


async def crd_registered(
    ctx: DeployContext,
    api_version: str,
    kind: str,
    attempts: int = 5,
    initial_delay: float = 0.05,
) -> KubeResourceMeta:
    found: Dict[str, KubeResourceMeta] = {}

    async def check() -> bool:
        krm = await ctx.call(ctx.client.describe, api_version, kind, "get")
        if krm:
            found["krm"] = krm
        return krm is not None

    result = await poll(check, attempts, initial_delay, ctx.sleep, what=f"{api_version} {kind}")
    if result is PollResult.EXHAUSTED:
        raise CrdConfirmationError(f"Failed to find {api_version} {kind}")
    logger.info("Found %s %s", api_version, kind)
    return found["krm"]


async def _crd_meta(ctx: DeployContext) -> KubeResourceMeta:
    for api_version in CRD_API_VERSIONS:
        krm = await ctx.call(ctx.client.describe, api_version, CRD_KIND, "get")
        if krm:
            return krm
    raise CrdConfirmationError("CustomResourceDefinition type not served by the cluster")


async def crd_deleted(ctx: DeployContext, name: str, attempts: int = 5, initial_delay: float = 3.75) -> None:
    krm = await _crd_meta(ctx)

    async def check() -> bool:
        resp = await ctx.call(krm.get, name, None)
        return resp.status_code == 404

    result = await poll(check, attempts, initial_delay, ctx.sleep, what=f"CRD {name} removal")
    if result is PollResult.EXHAUSTED:
        raise CrdConfirmationError(f"Failed to delete {name}")
    logger.info("Successfully deleted %s", name)


async def list_stored_custom_resources(ctx: DeployContext, crd: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Live instances of the CRD's kind, read through its storage version."""
    spec = crd.get("spec") or {}
    group = spec.get("group") or DEFAULT_GROUP
    kind = (spec.get("names") or {}).get("kind") or ""
    instances: List[Dict[str, Any]] = []
    for version in spec.get("versions") or []:
        if not version.get("storage"):
            continue
        api_version = f"{group}/{version.get('name')}"
        krm = await ctx.call(ctx.client.describe, api_version, kind, "get")
        if not krm:
            continue
        resp = await ctx.call(krm.list)
        if resp.status_code != 200:
            logger.error("- List %s %s: %s", resp.status_code, krm.uri(), resp.body.get("message"))
            continue
        for item in resp.body.get("items") or []:
            item.setdefault("apiVersion", api_version)
            item.setdefault("kind", kind)
            instances.append(item)
    return instances
