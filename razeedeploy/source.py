import logging
from typing import Any, List, Optional
from urllib.parse import urlparse

import requests
import yaml

from .components import BY_KEY

logger = logging.getLogger("razeedeploy.source")

DEFAULT_FILE_SOURCE = "https://github.com/razee-io"
DEFAULT_FILE_PATH = "releases/{{install_version}}/resource.yaml"
VERSION_PLACEHOLDER = "{{install_version}}"


def valid_url(url: str) -> bool:
    parsed = urlparse(url or "")
    return bool(parsed.scheme and parsed.netloc)


class ManifestSource:
    """Release manifests hosted at ``<file_source>/<Repo>/<file_path>``."""

    def __init__(self, file_source: str = DEFAULT_FILE_SOURCE, file_path: Optional[str] = None, timeout: int = 20):
        if not valid_url(file_source):
            raise ValueError(f"'{file_source}' not a valid source url.")
        self.file_source = file_source.rstrip("/")
        self.custom_path = file_path is not None
        self.file_path = file_path or DEFAULT_FILE_PATH
        self.timeout = timeout

    def template_uri(self, component: str) -> str:
        return f"{self.file_source}/{BY_KEY[component].repo}/{self.file_path}"

    def latest_uri(self, component: str) -> str:
        return self.template_uri(component).replace(
            VERSION_PLACEHOLDER, "latest" if self.custom_path else "latest/download"
        )

    def uri(self, component: str, version: Optional[str]) -> str:
        if self.custom_path:
            install_version = version or "latest"
        elif isinstance(version, str) and version.lower() != "latest":
            install_version = f"download/{version}"
        else:
            install_version = "latest/download"
        return self.template_uri(component).replace(VERSION_PLACEHOLDER, install_version)

    def _get(self, uri: str) -> str:
        resp = requests.get(uri, timeout=self.timeout)
        resp.raise_for_status()
        return resp.text

    def fetch(self, component: str, version: Optional[str]) -> List[Any]:
        uri = self.uri(component, version)
        try:
            logger.info("Downloading %s", uri)
            text = self._get(uri)
        except requests.RequestException:
            latest = self.latest_uri(component)
            logger.warning("Failed to download %s.. defaulting to %s", uri, latest)
            text = self._get(latest)
        return list(yaml.safe_load_all(text))
