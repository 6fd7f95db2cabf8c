"""Tests for shared and owned auxiliary objects."""

import asyncio
import base64
import json

from razeedeploy.engine.apply import ApplyMode
from razeedeploy.engine.orphans import (
    AFTER,
    BEFORE,
    IDENTITY,
    ORPHAN,
    SHARED,
    WATCH_KEEPER_CONFIG,
    apply_owned,
    apply_shared,
    remove_orphans,
    remove_owned,
    remove_shared,
)
from razeedeploy.manifest import flatten

VALUES = {
    "desired_namespace": "razeedeploy",
    "razeedash_api": "https://api.example.com",
    "razeedash_org_key": base64.b64encode(b"orgkey").decode(),
    "razeedash_url": "https://api.example.com/api/v2",
    "razeedash_cluster_id": "cluster-1",
    "razeedash_cluster_metadata": [{"name": "region", "value": "us-east"}],
}


class TestAuxDocuments:
    """Tests for rendering auxiliary objects."""

    def test_identity_carries_cluster_id(self):
        leaves = flatten(IDENTITY.documents(VALUES))
        config = next(leaf for leaf in leaves if leaf.kind == "ConfigMap")
        secret = next(leaf for leaf in leaves if leaf.kind == "Secret")
        assert config.document["data"] == {"RAZEE_API": "https://api.example.com", "CLUSTER_ID": "cluster-1"}
        assert "CLUSTER_ID" not in secret.document["data"]

    def test_identity_without_cluster_id(self):
        values = dict(VALUES, razeedash_cluster_id=None)
        leaves = flatten(IDENTITY.documents(values))
        assert all("CLUSTER_ID" not in leaf.document["data"] for leaf in leaves)

    def test_watch_keeper_config(self):
        leaves = {leaf.name: leaf for leaf in flatten(WATCH_KEEPER_CONFIG.documents(VALUES))}
        assert leaves["watch-keeper-config"].document["data"]["RAZEEDASH_URL"] == "https://api.example.com/api/v2"
        assert leaves["watch-keeper-cluster-metadata"].document["data"]["region"] == "us-east"


class TestSharedOwnership:
    """Tests for the shared-object ownership rules."""

    def test_needed_by_any_owner(self):
        shared = SHARED[0]
        assert shared.needed({"clustersubscription"}, False)
        assert not shared.needed({"remoteresource"}, False)
        assert shared.needed(set(), True)

    def test_removable_only_when_all_owners_removed(self):
        shared = SHARED[0]
        assert not shared.removable({"watchkeeper"}, False)
        assert shared.removable({"watchkeeper", "clustersubscription", "remoteresource"}, False)
        assert shared.removable(set(), True)


class TestApply:
    """Tests for applying auxiliary objects."""

    def test_shared_applied_for_owner(self, ctx, fake_client):
        assert asyncio.run(apply_shared({"watchkeeper"}, False, ctx, ApplyMode.ENSURE_EXISTS, VALUES))
        assert [c[:3] for c in fake_client.writes()] == [
            ("post", "ConfigMap", "razee-identity"),
            ("post", "Secret", "razee-identity"),
        ]

    def test_shared_skipped_without_owner(self, ctx, fake_client):
        assert asyncio.run(apply_shared({"remoteresource"}, False, ctx, ApplyMode.ENSURE_EXISTS, VALUES))
        assert fake_client.writes() == []

    def test_owned_by_stage(self, ctx, fake_client):
        values = dict(VALUES, webhook_ca="Q0E=", webhook_cert="Q0VSVA==", webhook_key="S0VZ")
        asyncio.run(apply_owned("impersonationwebhook", BEFORE, ctx, ApplyMode.ENSURE_EXISTS, values))
        assert [c[1] for c in fake_client.writes()] == ["Secret"]
        asyncio.run(apply_owned("impersonationwebhook", AFTER, ctx, ApplyMode.ENSURE_EXISTS, values))
        assert [c[1] for c in fake_client.writes()] == ["Secret", "ValidatingWebhookConfiguration"]
        _, _, secret = fake_client.bodies[0]
        assert secret["data"]["tls.key"] == "S0VZ"

    def test_component_without_owned_objects(self, ctx, fake_client):
        assert asyncio.run(apply_owned("managedset", BEFORE, ctx, ApplyMode.REPLACE, VALUES))
        assert fake_client.writes() == []


class TestRemove:
    """Tests for removing auxiliary objects."""

    def test_owned_before_stage(self, ctx, fake_client):
        assert asyncio.run(remove_owned("impersonationwebhook", BEFORE, ctx))
        assert fake_client.writes() == [("delete", "ValidatingWebhookConfiguration", "razee-impersonation-webhook", None)]

    def test_owned_orphan_stage(self, ctx, fake_client):
        assert asyncio.run(remove_owned("impersonationwebhook", ORPHAN, ctx))
        assert fake_client.writes() == [("delete", "Secret", "impersonation-webhook-cert", "razeedeploy")]

    def test_shared_kept_while_owner_remains(self, ctx, fake_client):
        assert asyncio.run(remove_shared({"watchkeeper"}, False, ctx))
        assert fake_client.writes() == []

    def test_shared_removed_in_reverse(self, ctx, fake_client):
        assert asyncio.run(remove_shared({"watchkeeper", "clustersubscription"}, False, ctx))
        assert [c[1] for c in fake_client.writes()] == ["Secret", "ConfigMap"]

    def test_orphans_for_everything(self, ctx, fake_client):
        removed = {
            "watchkeeper", "clustersubscription", "remoteresource", "remoteresources3", "remoteresources3decrypt",
            "mustachetemplate", "featureflagsetld", "managedset", "impersonationwebhook",
        }
        assert asyncio.run(remove_orphans(removed, True, ctx))
        assert [c[1:3] for c in fake_client.writes()] == [
            ("Secret", "razee-identity"),
            ("ConfigMap", "razee-identity"),
            ("Secret", "impersonation-webhook-cert"),
        ]


def test_metadata_values_are_strings():
    values = dict(VALUES, razeedash_cluster_metadata=[{"name": "tags", "value": json.dumps(["a"])}])
    leaves = {leaf.name: leaf for leaf in flatten(WATCH_KEEPER_CONFIG.documents(values))}
    assert leaves["watch-keeper-cluster-metadata"].document["data"]["tags"] == '["a"]'
