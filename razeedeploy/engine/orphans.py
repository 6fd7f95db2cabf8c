"""Auxiliary objects whose lifecycle follows components.

Shared objects exist while any of their owning components is installed and go
away once every owner is removed. Owned objects follow exactly one component,
either just before its manifests ("before") or just after ("after"); on
removal an owned object can also wait for the orphan phase ("orphan").
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from razeedeploy.manifest import flatten
from razeedeploy.templating import read_template

from .apply import ApplyMode, apply_manifests
from .context import DeployContext
from .teardown import delete_manifests

logger = logging.getLogger("razeedeploy.orphans")

BEFORE = "before"
AFTER = "after"
ORPHAN = "orphan"


def _identity(docs: List[Any], values: Dict[str, Any]) -> None:
    cluster_id = values.get("razeedash_cluster_id")
    if not cluster_id:
        return
    leaves = flatten(docs)
    for leaf in leaves:
        if leaf.kind == "ConfigMap":
            leaf.document.setdefault("data", {})["CLUSTER_ID"] = str(cluster_id)
    docs[:] = [leaf.document for leaf in leaves]


def _watch_keeper(docs: List[Any], values: Dict[str, Any]) -> None:
    leaves = flatten(docs)
    for leaf in leaves:
        data = leaf.document.setdefault("data", {})
        if leaf.name == "watch-keeper-config" and values.get("razeedash_url"):
            data["RAZEEDASH_URL"] = values["razeedash_url"]
        if leaf.name == "watch-keeper-cluster-metadata":
            for entry in values.get("razeedash_cluster_metadata") or []:
                data[entry["name"]] = entry["value"]
    docs[:] = [leaf.document for leaf in leaves]


@dataclass(frozen=True)
class AuxObject:
    name: str
    template: str
    finalize: Optional[Callable[[List[Any], Dict[str, Any]], None]] = None

    def documents(self, values: Dict[str, Any]) -> List[Any]:
        docs = read_template(self.template, values)
        if self.finalize:
            self.finalize(docs, values)
        return docs


@dataclass(frozen=True)
class SharedObject:
    obj: AuxObject
    owners: FrozenSet[str]

    def needed(self, selected: Iterable[str], all_selected: bool) -> bool:
        return all_selected or bool(self.owners & set(selected))

    def removable(self, removed: Iterable[str], all_selected: bool) -> bool:
        return all_selected or self.owners <= set(removed)


@dataclass(frozen=True)
class OwnedObject:
    obj: AuxObject
    install_stage: str
    remove_stage: str


IDENTITY = AuxObject("razee-identity", "ridConfig.yaml", _identity)
WATCH_KEEPER_CONFIG = AuxObject("watch-keeper-config", "wkConfig.yaml", _watch_keeper)
WEBHOOK_SECRET = AuxObject("impersonation-webhook-cert", "webhookSecret.yaml")
WEBHOOK_CONFIG = AuxObject("razee-impersonation-webhook", "webhookConfig.yaml")

SHARED: Tuple[SharedObject, ...] = (
    SharedObject(IDENTITY, frozenset({"watchkeeper", "clustersubscription"})),
)

OWNED: Dict[str, Tuple[OwnedObject, ...]] = {
    "watchkeeper": (OwnedObject(WATCH_KEEPER_CONFIG, BEFORE, BEFORE),),
    "impersonationwebhook": (
        OwnedObject(WEBHOOK_SECRET, BEFORE, ORPHAN),
        OwnedObject(WEBHOOK_CONFIG, AFTER, BEFORE),
    ),
}


async def apply_shared(
    selected: Iterable[str], all_selected: bool, ctx: DeployContext, mode: ApplyMode, values: Dict[str, Any]
) -> bool:
    selected = set(selected)
    ok = True
    for shared in SHARED:
        if shared.needed(selected, all_selected):
            ok = await apply_manifests(shared.obj.documents(values), mode, ctx) and ok
    return ok


async def remove_shared(removed: Iterable[str], all_selected: bool, ctx: DeployContext) -> bool:
    removed = set(removed)
    ok = True
    for shared in SHARED:
        if shared.removable(removed, all_selected):
            ok = await delete_manifests(shared.obj.documents({"desired_namespace": ctx.namespace}), ctx) and ok
        else:
            logger.info("Keeping %s: still used by %s", shared.obj.name, ", ".join(sorted(shared.owners - removed)))
    return ok


async def apply_owned(
    component: str, stage: str, ctx: DeployContext, mode: ApplyMode, values: Dict[str, Any]
) -> bool:
    ok = True
    for owned in OWNED.get(component, ()):
        if owned.install_stage == stage:
            ok = await apply_manifests(owned.obj.documents(values), mode, ctx) and ok
    return ok


async def remove_owned(component: str, stage: str, ctx: DeployContext) -> bool:
    ok = True
    for owned in OWNED.get(component, ()):
        if owned.remove_stage == stage:
            ok = await delete_manifests(owned.obj.documents({"desired_namespace": ctx.namespace}), ctx) and ok
    return ok


async def remove_orphans(removed: Iterable[str], all_selected: bool, ctx: DeployContext) -> bool:
    removed = set(removed)
    ok = await remove_shared(removed, all_selected, ctx)
    for component in sorted(removed):
        ok = await remove_owned(component, ORPHAN, ctx) and ok
    return ok
