import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping

from razeedeploy.templating import render_docs

from .context import DeployContext
from .teardown import remove_component

logger = logging.getLogger("razeedeploy.deprecated")


@dataclass(frozen=True)
class DeprecatedResourceEntry:
    key: str
    manifest: str

    def documents(self, namespace: str):
        return render_docs(self.manifest, {"desired_namespace": namespace})


# Retired components. Their release files may no longer be downloadable, so the
# manifest needed to remove them is kept here.
DEPRECATED_RESOURCES: Mapping[str, DeprecatedResourceEntry] = MappingProxyType({
    "encryptedresource": DeprecatedResourceEntry(
        key="encryptedresource",
        manifest="""
apiVersion: v1
kind: List
metadata:
  name: encryptedresource-controller-list
  annotations:
    version: "deprecated"
type: array
items:
  - apiVersion: apps/v1
    kind: Deployment
    metadata:
      name: encryptedresource-controller
      namespace: ${desired_namespace}
  - apiVersion: apiextensions.k8s.io/v1
    kind: CustomResourceDefinition
    metadata:
      name: encryptedresources.deploy.razee.io
""",
    ),
})


def purge_deprecated(requested: Dict[str, Any]) -> Dict[str, Any]:
    kept = {}
    for key, value in requested.items():
        if key in DEPRECATED_RESOURCES:
            logger.info("'%s' is deprecated and will only be removed", key)
            continue
        kept[key] = value
    return kept


async def remove_deprecated(
    ctx: DeployContext,
    force: bool = False,
    attempts: int = 5,
    timeout_minutes: float = 5,
) -> None:
    logger.info("=========== Removing Deprecated Resources ===========")
    for key, entry in DEPRECATED_RESOURCES.items():
        logger.info("=========== Removing %s:DEPRECATED ===========", key)
        try:
            ok = await remove_component(entry.documents(ctx.namespace), ctx, force, attempts, timeout_minutes)
        except Exception as e:
            logger.warning(
                "Failed to remove DEPRECATED resource '%s' -- if still present, manual removal is recommended: %s",
                key, e,
            )
            continue
        if not ok:
            logger.warning(
                "DEPRECATED resource '%s' was not fully removed -- if still present, manual removal is recommended.",
                key,
            )
