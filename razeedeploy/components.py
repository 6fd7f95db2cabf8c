from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Component:
    key: str
    repo: str
    flags: Tuple[str, ...]


COMPONENTS: Tuple[Component, ...] = (
    Component("watchkeeper", "WatchKeeper", ("--wk", "--watchkeeper", "--watch-keeper")),
    Component("clustersubscription", "ClusterSubscription", ("--cs", "--clustersubscription")),
    Component("remoteresource", "RemoteResource", ("--rr", "--remoteresource")),
    Component("remoteresources3", "RemoteResourceS3", ("--rrs3", "--remoteresources3")),
    Component("remoteresources3decrypt", "RemoteResourceS3Decrypt", ("--rrs3d", "--remoteresources3decrypt")),
    Component("mustachetemplate", "MustacheTemplate", ("--mtp", "--mustachetemplate")),
    Component("featureflagsetld", "FeatureFlagSetLD", ("--ffsld", "--featureflagsetld")),
    Component("managedset", "ManagedSet", ("--ms", "--managedset")),
    Component("impersonationwebhook", "ImpersonationWebhook", ("--iw", "--impersonationwebhook")),
    Component("encryptedresource", "EncryptedResource", ("--er", "--encryptedresource")),
)

BY_KEY: Dict[str, Component] = {c.key: c for c in COMPONENTS}


def requested_components(versions: Dict[str, Optional[str]]) -> Tuple[Dict[str, Optional[str]], bool]:
    """Return (selected key -> version, all_selected).

    ``versions`` maps every known key to the value given on the command line,
    ``None`` when the flag was absent. No flag at all selects every component.
    """
    selected = {k: v for k, v in versions.items() if v is not None}
    if selected:
        return selected, False
    return {c.key: "latest" for c in COMPONENTS}, True
