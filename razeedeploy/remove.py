import asyncio
import logging

import requests
import yaml

from .components import COMPONENTS, requested_components
from .config import RemoveSettings
from .engine.context import DeployContext
from .engine.deprecated import purge_deprecated, remove_deprecated
from .engine.orphans import BEFORE, remove_orphans, remove_owned
from .engine.result import RunResult
from .engine.teardown import delete_one, remove_component
from .kube.crd import CrdConfirmationError
from .manifest import flatten
from .source import ManifestSource
from .templating import read_template

logger = logging.getLogger("razeedeploy.remove")


class Remover:
    def __init__(self, settings: RemoveSettings, client, source: ManifestSource, sleep=asyncio.sleep):
        self.settings = settings
        self.source = source
        self.ctx = DeployContext(client, settings.namespace, sleep=sleep)

    async def run(self) -> RunResult:
        result = RunResult()
        s = self.settings
        ctx = self.ctx
        requested, all_selected = requested_components(s.versions)
        requested = purge_deprecated(requested)
        await remove_deprecated(ctx, s.force, s.attempts, s.timeout_minutes)

        try:
            for component in COMPONENTS:
                key = component.key
                if key not in requested:
                    continue
                version = requested[key]
                logger.info("=========== Removing %s:%s ===========", key, "Remove All Resources" if all_selected else version)
                try:
                    result.fold(await remove_owned(key, BEFORE, ctx))
                    docs = await ctx.call(self.source.fetch, key, version)
                    result.fold(await remove_component(docs, ctx, s.force, s.attempts, s.timeout_minutes))
                except CrdConfirmationError as e:
                    result.fail()
                    logger.error(
                        "Error trying to safely clean up crd: %s. When uninstalling, use option '-f, --force' "
                        "to force clean up (note: child resources wont be cleaned up)", e,
                    )
                except (requests.RequestException, yaml.YAMLError) as e:
                    result.fail()
                    logger.error("Failed to remove %s: %s", key, e)

            logger.info("=========== Removing Orphans ===========")
            result.fold(await remove_orphans(requested, all_selected, ctx))

            logger.info("=========== Removing Prerequisites ===========")
            await self._remove_prerequisites()
        except Exception:
            result.fail()
            logger.exception("Remove failed")
        return result

    async def _remove_prerequisites(self) -> None:
        # Once the ClusterRoleBinding is gone the job's own account may no longer
        # be allowed to delete the rest, so failures here do not fail the run.
        docs = read_template("preReqs.yaml", {"desired_namespace": self.ctx.namespace})
        for leaf in reversed(flatten(docs)):
            if leaf.kind.lower() == "namespace" and not self.settings.delete_namespace:
                logger.info(
                    "Skipping namespace deletion: --namespace='%s' --delete-namespace='%s'",
                    self.ctx.namespace, self.settings.delete_namespace,
                )
                continue
            outcome = await delete_one(leaf, self.ctx)
            if not outcome.success:
                logger.warning("Could not remove prerequisite %s %s, ignoring", outcome.kind, outcome.name)
