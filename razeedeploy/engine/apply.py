import enum
import logging
from typing import Any

from jsonpath_ng import parse as jp_parse

from razeedeploy.manifest import Leaf, flatten

from .context import DEFAULT_REGISTRY, DeployContext
from .result import OperationOutcome

logger = logging.getLogger("razeedeploy.apply")

ENSURE_EXISTS_CREATED = (200, 201, 202, 409)
REPLACE_UPDATED = (200, 201)
REPLACE_CREATED = (200, 201, 202)

_CONTAINERS = jp_parse("spec.template.spec.containers[*]")


class ApplyMode(enum.Enum):
    ENSURE_EXISTS = "ensureExists"
    REPLACE = "replace"


def substitute_registry(leaf: Leaf, registry: str) -> None:
    if not registry.endswith("/"):
        registry = f"{registry}/"
    for match in _CONTAINERS.find(leaf.document):
        container = match.value
        image = container.get("image") if isinstance(container, dict) else None
        if image is not None:
            container["image"] = image.replace(DEFAULT_REGISTRY, registry)


async def apply_one(leaf: Leaf, mode: ApplyMode, ctx: DeployContext) -> OperationOutcome:
    krm = await ctx.call(ctx.client.describe, leaf.api_version, leaf.kind, "update")
    if not krm:
        logger.error("KubeResourceMeta not found: %s ... skipping", leaf.describe())
        return OperationOutcome(False, leaf.kind, leaf.name, leaf.namespace)

    if ctx.registry is not None:
        substitute_registry(leaf, ctx.registry)

    if not leaf.namespace and krm.namespaced:
        logger.info("No namespace found for %s %s.. setting namespace: %s", leaf.kind, leaf.name, ctx.namespace)
        leaf.namespace = ctx.namespace

    if mode is ApplyMode.ENSURE_EXISTS:
        ok = await _ensure_exists(krm, leaf, ctx)
    else:
        ok = await _replace(krm, leaf, ctx)
    return OperationOutcome(ok, leaf.kind, leaf.name, leaf.namespace)


async def _ensure_exists(krm, leaf: Leaf, ctx: DeployContext) -> bool:
    uri = krm.uri(leaf.name, leaf.namespace)
    logger.info("EnsureExists %s", uri)
    get = await ctx.call(krm.get, leaf.name, leaf.namespace)
    logger.info("- Get %s %s", get.status_code, uri)
    if get.status_code == 200:
        return True
    if get.status_code != 404:
        logger.error("Get %s %s: %s", get.status_code, uri, get.body.get("message"))
        return False

    post = await ctx.call(krm.post, leaf.document)
    logger.info("- Post %s %s", post.status_code, uri)
    if post.status_code in ENSURE_EXISTS_CREATED:
        return True
    logger.error("Post %s %s: %s", post.status_code, uri, post.body.get("message"))
    return False


async def _replace(krm, leaf: Leaf, ctx: DeployContext) -> bool:
    uri = krm.uri(leaf.name, leaf.namespace)
    logger.info("Replace %s", uri)
    get = await ctx.call(krm.get, leaf.name, leaf.namespace)
    if get.status_code == 200:
        resource_version = (get.body.get("metadata") or {}).get("resourceVersion")
        logger.info("- Get %s %s: resourceVersion %s", get.status_code, uri, resource_version)
        leaf.metadata["resourceVersion"] = resource_version
        put = await ctx.call(krm.put, leaf.document)
        logger.info("- Put %s %s", put.status_code, uri)
        if put.status_code in REPLACE_UPDATED:
            return True
        logger.error("Put %s %s: %s", put.status_code, uri, put.body.get("message"))
        return False

    logger.info("- Get %s %s", get.status_code, uri)
    if get.status_code != 404:
        logger.error("Get %s %s: %s", get.status_code, uri, get.body.get("message"))
        return False

    post = await ctx.call(krm.post, leaf.document)
    logger.info("- Post %s %s", post.status_code, uri)
    if post.status_code in REPLACE_CREATED:
        return True
    logger.error("Post %s %s: %s", post.status_code, uri, post.body.get("message"))
    return False


async def apply_manifests(manifests: Any, mode: ApplyMode, ctx: DeployContext) -> bool:
    ok = True
    for leaf in flatten(manifests):
        outcome = await apply_one(leaf, mode, ctx)
        ok = ok and outcome.success
    return ok
