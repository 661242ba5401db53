"""Kubeconfig credential document for a GKE cluster.

The document authenticates through the ``gcp`` auth-provider, which shells
out to ``gcloud config config-helper`` for short-lived access tokens. Its text
is consumed by existing tooling and must not change shape.
"""

from __future__ import annotations

CONTEXT_PREFIX = "demo_"

KUBECONFIG_TEMPLATE = """apiVersion: v1
clusters:
- cluster:
    certificate-authority-data: {ca_certificate}
    server: https://{endpoint}
  name: {context}
contexts:
- context:
    cluster: {context}
    user: {context}
  name: {context}
current-context: {context}
kind: Config
preferences: {{}}
users:
- name: {context}
  user:
    auth-provider:
      config:
        cmd-args: config config-helper --format=json
        cmd-path: gcloud
        expiry-key: '{{.credential.token_expiry}}'
        token-key: '{{.credential.access_token}}'
      name: gcp"""


def context_name(cluster_name: str) -> str:
    """Name shared by the cluster, context and user entries."""
    return f"{CONTEXT_PREFIX}{cluster_name}"


def build_credential_document(endpoint: str, cluster_name: str, ca_certificate: str) -> str:
    """Render the kubeconfig text for a cluster.

    Values are interpolated as-is; empty or malformed certificate data gives a
    structurally complete document that the API server will reject.
    """
    return KUBECONFIG_TEMPLATE.format(
        ca_certificate=ca_certificate,
        endpoint=endpoint,
        context=context_name(cluster_name),
    )
