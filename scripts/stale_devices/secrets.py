"""Secret reference resolution.

Credentials for the directory bind and the Entra app registration may be
given as plain values or as references to a secret store:
  - AWS Secrets Manager (aws-secret://name#key)
  - GCP Secret Manager (gcp-secret://name)
  - OS keyring (keyring://service/username)
"""

from __future__ import annotations

import json
import logging
import os

logger = logging.getLogger("stale_devices.secrets")

_AWS_PREFIX = "aws-secret://"
_GCP_PREFIX = "gcp-secret://"
_KEYRING_PREFIX = "keyring://"


def resolve_secret(value: str) -> str:
    """Resolve a secret reference to its plaintext value.

    Supported formats:
      - "aws-secret://secret-name"         -> AWS Secrets Manager
      - "aws-secret://secret-name#key"     -> AWS Secrets Manager (JSON key)
      - "gcp-secret://project/secret/ver"  -> GCP Secret Manager
      - "keyring://service/username"       -> OS keyring
      - anything else                      -> returned as-is (env var / literal)
    """
    if value.startswith(_AWS_PREFIX):
        return _resolve_aws_secret(value[len(_AWS_PREFIX):])
    if value.startswith(_GCP_PREFIX):
        return _resolve_gcp_secret(value[len(_GCP_PREFIX):])
    if value.startswith(_KEYRING_PREFIX):
        return _resolve_keyring_secret(value[len(_KEYRING_PREFIX):])
    return value


def _resolve_aws_secret(ref: str) -> str:
    """Fetch a secret string, or one key of a JSON secret, from Secrets Manager."""
    import boto3

    secret_name, _, json_key = ref.partition("#")
    client = boto3.client(
        "secretsmanager", region_name=os.environ.get("AWS_REGION", "us-east-1")
    )
    secret_string = client.get_secret_value(SecretId=secret_name)["SecretString"]
    logger.debug("Resolved AWS secret %s", secret_name)

    if json_key:
        return str(json.loads(secret_string)[json_key])
    return secret_string


def _resolve_gcp_secret(ref: str) -> str:
    """Fetch the latest (or an explicit) version of a GCP secret.

    ref format: "projects/PROJECT/secrets/NAME/versions/VERSION"
             or "NAME" (project from GCP_PROJECT_ID, latest version)
    """
    from google.cloud import secretmanager

    if ref.startswith("projects/"):
        name = ref
    else:
        project = os.environ.get("GCP_PROJECT_ID", "")
        if not project:
            raise RuntimeError(
                f"Cannot resolve gcp-secret://{ref}: set GCP_PROJECT_ID"
            )
        name = f"projects/{project}/secrets/{ref}/versions/latest"

    client = secretmanager.SecretManagerServiceClient()
    response = client.access_secret_version(request={"name": name})
    return response.payload.data.decode("UTF-8")


def _resolve_keyring_secret(ref: str) -> str:
    """Read a password stored with `keyring set SERVICE USERNAME`."""
    import keyring

    service, _, username = ref.partition("/")
    if not service or not username:
        raise ValueError(f"keyring reference must be service/username, got {ref!r}")

    password = keyring.get_password(service, username)
    if password is None:
        raise RuntimeError(f"No keyring entry for service={service} user={username}")
    return password
