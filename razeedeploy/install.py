import asyncio
import base64
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

import requests
import yaml

from .certs import CertificateError, decode_cluster_metadata, extract_custom_cert, self_signed_cert
from .components import COMPONENTS, requested_components
from .config import InstallSettings
from .engine.apply import ApplyMode, apply_manifests
from .engine.context import DeployContext
from .engine.deprecated import purge_deprecated, remove_deprecated
from .engine.orphans import AFTER, BEFORE, apply_owned, apply_shared
from .engine.result import RunResult
from .kube.crd import CrdConfirmationError, crd_registered
from .source import ManifestSource, valid_url
from .templating import read_template

logger = logging.getLogger("razeedeploy.install")

AUTO_UPDATE_API_VERSION = "deploy.razee.io/v1alpha2"
AUTO_UPDATE_KIND = "RemoteResource"


def _checked_url(value: Optional[str], flag: str) -> Optional[str]:
    if value and not valid_url(value):
        logger.warning("%s '%s' is not a valid url.", flag, value)
        return None
    return value or None


class Installer:
    def __init__(
        self,
        settings: InstallSettings,
        client,
        source: ManifestSource,
        sleep=asyncio.sleep,
        issue_cert: Callable[[str], Dict[str, str]] = self_signed_cert,
    ):
        self.settings = settings
        self.source = source
        self.issue_cert = issue_cert
        self.ctx = DeployContext(client, settings.namespace, settings.registry, sleep)

    def template_values(self) -> Dict[str, Any]:
        s = self.settings
        rd_url = _checked_url(s.razeedash_url, "razeedash-url")
        rd_api = _checked_url(s.razeedash_api, "razeedash-api")
        if not rd_api and rd_url:
            parsed = urlparse(rd_url)
            rd_api = f"{parsed.scheme}://{parsed.netloc}"
        if not rd_url and rd_api:
            rd_url = f"{rd_api.rstrip('/')}/api/v2"
        org_key = s.razeedash_org_key or "api-key-youorgkeyhere"
        return {
            "desired_namespace": s.namespace,
            "razeedash_api": rd_api or "insert-rd-url-here",
            "razeedash_url": rd_url,
            "razeedash_org_key": base64.b64encode(org_key.encode("utf8")).decode("ascii"),
            "razeedash_cluster_id": s.razeedash_cluster_id,
            "razeedash_cluster_metadata": decode_cluster_metadata(s.razeedash_cluster_metadata64),
        }

    def _webhook_values(self, values: Dict[str, Any], cert: Optional[Dict[str, str]]) -> Dict[str, str]:
        if cert is None:
            cert = self.issue_cert(self.settings.namespace)
        values["webhook_ca"] = cert.get("ca") or cert["server"]
        values["webhook_cert"] = cert["server"]
        values["webhook_key"] = cert["key"]
        return cert

    async def run(self) -> RunResult:
        result = RunResult()
        s = self.settings
        ctx = self.ctx
        requested, all_selected = requested_components(s.versions)
        requested = purge_deprecated(requested)
        await remove_deprecated(ctx)

        mode = ApplyMode.REPLACE if s.force else ApplyMode.ENSURE_EXISTS
        try:
            values = self.template_values()

            logger.info("=========== Installing Prerequisites ===========")
            result.fold(await apply_manifests(read_template("preReqs.yaml", values), mode, ctx))
            result.fold(await apply_manifests(read_template("razeeConfig.yaml", values), mode, ctx))

            if all_selected or {"watchkeeper", "clustersubscription"} & set(requested):
                if values["razeedash_api"] == "insert-rd-url-here":
                    logger.warning("Failed to find arg '--razeedash-api' or '--razeedash-url'.. will create template 'razee-identity' config.")
                if not s.razeedash_org_key:
                    logger.warning("Failed to find arg '--razeedash-org-key'.. will create template 'razee-identity' secret.")
            result.fold(await apply_shared(requested, all_selected, ctx, mode, values))

            webhook_cert = extract_custom_cert(s.webhook_cert64)
            auto_update: List[Dict[str, Any]] = []
            for component in COMPONENTS:
                key = component.key
                if key not in requested:
                    continue
                version = requested[key]
                logger.info("=========== Installing %s:%s ===========", key, "Install All Resources" if all_selected else version)
                if key == "clustersubscription" and "remoteresource" not in requested:
                    logger.warning(
                        "RemoteResource CRD must be one of the installed resources in order to use "
                        "ClusterSubscription. (ie. --rr --cs).. Skipping ClusterSubscription"
                    )
                    continue
                try:
                    if key == "impersonationwebhook":
                        webhook_cert = self._webhook_values(values, webhook_cert)
                    result.fold(await apply_owned(key, BEFORE, ctx, mode, values))
                    docs = await ctx.call(self.source.fetch, key, version)
                    result.fold(await apply_manifests(docs, ApplyMode.REPLACE, ctx))
                    result.fold(await apply_owned(key, AFTER, ctx, mode, values))
                except (requests.RequestException, yaml.YAMLError, CertificateError) as e:
                    result.fail()
                    logger.error("Failed to install %s: %s", key, e)
                    continue
                if s.autoupdate:
                    auto_update.append({"options": {"url": self.source.latest_uri(key)}})

            if s.autoupdate:
                await self._install_auto_update(result, requested, values, auto_update)
        except Exception:
            result.fail()
            logger.exception("Install failed")
        return result

    async def _install_auto_update(
        self, result: RunResult, requested: Dict[str, Any], values: Dict[str, Any], auto_update: List[Dict[str, Any]]
    ) -> None:
        logger.info("=========== Installing Auto-Update RemoteResource ===========")
        if "remoteresource" not in requested:
            logger.warning(
                "RemoteResource CRD must be one of the installed resources in order to use autoUpdate. "
                "(ie. --rr -a).. Skipping autoUpdate"
            )
            return
        docs = read_template("autoUpdateRR.yaml", values)
        docs[0].setdefault("spec", {})["requests"] = auto_update
        try:
            await crd_registered(self.ctx, AUTO_UPDATE_API_VERSION, AUTO_UPDATE_KIND)
        except CrdConfirmationError as e:
            result.fail()
            logger.error("%s.. skipping autoUpdate", e)
            return
        result.fold(await apply_manifests(docs, ApplyMode.REPLACE, self.ctx))
