import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from razeedeploy.kube.crd import CRD_KIND, CrdConfirmationError, crd_deleted, list_stored_custom_resources
from razeedeploy.kube.wait import removal_backoff
from razeedeploy.manifest import Leaf, flatten

from .context import DeployContext
from .result import OperationOutcome

logger = logging.getLogger("razeedeploy.teardown")

CLEAR_FINALIZERS = {"metadata": {"finalizers": None}}


@dataclass
class RemovalPlan:
    crd: Optional[Leaf] = None
    rest: List[Leaf] = field(default_factory=list)

    @classmethod
    def build(cls, manifests: Any) -> "RemovalPlan":
        leaves = flatten(manifests)
        for i, leaf in enumerate(leaves):
            if leaf.kind == CRD_KIND:
                return cls(crd=leaf, rest=leaves[:i] + leaves[i + 1:])
        return cls(rest=leaves)


async def delete_one(leaf: Leaf, ctx: DeployContext, force: bool = False) -> OperationOutcome:
    krm = await ctx.call(ctx.client.describe, leaf.api_version, leaf.kind, "delete")
    if not krm:
        logger.error("KubeResourceMeta not found: %s ... skipping", leaf.describe())
        return OperationOutcome(False, leaf.kind, leaf.name, leaf.namespace)

    if not leaf.namespace and krm.namespaced:
        logger.info("No namespace found for %s %s.. setting namespace: %s", leaf.kind, leaf.name, ctx.namespace)
        leaf.namespace = ctx.namespace

    uri = krm.uri(leaf.name, leaf.namespace)
    logger.info("Delete %s", uri)
    outcome = OperationOutcome(True, leaf.kind, leaf.name, leaf.namespace)

    if force:
        patch = await ctx.call(krm.merge_patch, leaf.name, leaf.namespace, CLEAR_FINALIZERS)
        logger.info("- MergePatch %s %s", patch.status_code, uri)
        if patch.status_code == 404:
            return outcome
        if patch.status_code != 200:
            logger.error("MergePatch %s %s: %s", patch.status_code, uri, patch.body.get("message"))
            outcome.success = False
            return outcome

    dlt = await ctx.call(krm.delete, leaf.name, leaf.namespace)
    logger.info("- Delete %s %s", dlt.status_code, uri)
    if dlt.status_code not in (200, 404):
        logger.error("Delete %s %s: %s", dlt.status_code, uri, dlt.body.get("message"))
        outcome.success = False
    return outcome


async def delete_manifests(manifests: Any, ctx: DeployContext, force: bool = False) -> bool:
    # Later documents depend on earlier ones, so they go first.
    ok = True
    for leaf in reversed(flatten(manifests)):
        outcome = await delete_one(leaf, ctx, force)
        ok = ok and outcome.success
    return ok


async def force_cleanup_custom_resources(crd: Leaf, ctx: DeployContext) -> bool:
    instances = await list_stored_custom_resources(ctx, crd.document)
    return await delete_manifests(instances, ctx, force=True)


async def remove_component(
    manifests: Any,
    ctx: DeployContext,
    force: bool = False,
    attempts: int = 5,
    timeout_minutes: float = 5,
) -> bool:
    """Delete a component's documents, CRD first.

    Raises ``CrdConfirmationError`` when the CRD is still present after the
    configured attempts; the rest of the component is deleted before raising.
    """
    plan = RemovalPlan.build(manifests)
    ok = True
    pending: Optional[CrdConfirmationError] = None

    if plan.crd is not None:
        crd = plan.crd
        outcome = await delete_one(crd, ctx)
        ok = outcome.success
        if force:
            if outcome.success:
                ok = await force_cleanup_custom_resources(crd, ctx) and ok
        else:
            try:
                await crd_deleted(ctx, crd.name, attempts, removal_backoff(timeout_minutes, attempts))
            except CrdConfirmationError as e:
                ok = False
                pending = e

    ok = await delete_manifests(plan.rest, ctx) and ok
    if pending is not None:
        raise pending
    return ok
