import base64
import binascii
import json
import logging
import os
import subprocess
import tempfile
from typing import Any, Dict, List, Optional

logger = logging.getLogger("razeedeploy.certs")


class CertificateError(RuntimeError):
    pass


def _decode_json64(value: str) -> Any:
    return json.loads(base64.b64decode(value).decode("utf8"))


def extract_custom_cert(cert_json64: Optional[str]) -> Optional[Dict[str, str]]:
    """Decode ``{"ca", "server", "key"}`` (each base64 PEM) from a base64 JSON blob."""
    if not cert_json64:
        return None
    try:
        values = _decode_json64(cert_json64)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        logger.warning("Could not decode or parse json object from custom cert")
        return None
    if not isinstance(values, dict) or not values.get("server") or not values.get("key"):
        logger.debug("Server certificate or server key is missing")
        return None
    cert = {k: values[k] for k in ("ca", "server", "key") if values.get(k)}
    cert.setdefault("ca", cert["server"])
    return cert


def decode_cluster_metadata(metadata64: Optional[str]) -> List[Dict[str, str]]:
    if not metadata64:
        return []
    try:
        values = _decode_json64(metadata64)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        logger.warning("can not decode or parse json object from razeedash-cluster-metadata %s", metadata64)
        return []
    if not isinstance(values, dict):
        logger.warning("razeedash-cluster-metadata is not a json object, ignoring")
        return []
    entries = []
    for name, value in values.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        entries.append({"name": str(name), "value": str(value)})
    logger.debug("cluster metadata is %s", entries)
    return entries


def self_signed_cert(namespace: str, days: int = 3650) -> Dict[str, str]:
    """Issue a CA-capable self-signed cert for the webhook service using openssl."""
    host = f"impersonation-webhook.{namespace}.svc"
    logger.debug("Create self-signed certificate for %s", host)
    with tempfile.TemporaryDirectory() as tmp:
        key_path = os.path.join(tmp, "tls.key")
        crt_path = os.path.join(tmp, "tls.crt")
        cmd = [
            "openssl", "req", "-x509", "-newkey", "rsa:2048", "-nodes", "-sha256",
            "-days", str(days),
            "-subj", f"/CN={host}",
            "-addext", "basicConstraints=critical,CA:TRUE",
            "-addext", "keyUsage=keyCertSign,cRLSign,digitalSignature,keyEncipherment",
            "-addext", f"subjectAltName=DNS:{host}",
            "-keyout", key_path,
            "-out", crt_path,
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=60)
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            raise CertificateError(f"openssl unavailable: {e}") from e
        if result.returncode != 0:
            raise CertificateError(f"openssl failed: {result.stderr.strip()}")
        with open(crt_path, "rb") as f:
            crt = base64.b64encode(f.read()).decode("ascii")
        with open(key_path, "rb") as f:
            key = base64.b64encode(f.read()).decode("ascii")
    return {"ca": crt, "server": crt, "key": key}
