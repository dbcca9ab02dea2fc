"""Candidate identity resolution and validation."""

import logging
import os
import socket
from pathlib import Path
from uuid import uuid4

from leasegate.config import Environment, Settings
from leasegate.errors import IdentityError
from leasegate.models import CandidateIdentity

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"


def _detect_name() -> str:
    """
    Process identity when POD_NAME is not set.

    Checks in priority order:
    1. Kubernetes: HOSTNAME (the pod name unless overridden)
    2. Fallback: socket hostname
    """
    hostname = os.environ.get("HOSTNAME")
    if hostname:
        logger.info(f"Detected Kubernetes pod name from HOSTNAME: {hostname}")
        return hostname

    hostname = socket.gethostname()
    logger.warning(f"No pod name configured, using hostname: {hostname}")
    return hostname


def _detect_namespace(namespace_file: str) -> str:
    """Namespace from the mounted service account, else ``default``."""
    path = Path(namespace_file)
    if path.exists():
        namespace = path.read_text().strip()
        if namespace:
            logger.info(f"Detected namespace from service account: {namespace}")
            return namespace
    logger.warning(f"No namespace configured, using {DEFAULT_NAMESPACE!r}")
    return DEFAULT_NAMESPACE


def resolve_identity(settings: Settings) -> CandidateIdentity:
    """
    Build the candidate identity from configuration.

    POD_NAME, POD_UID and POD_NAMESPACE (normally injected by the downward
    API) are used verbatim. Missing values are detected from the
    environment; a missing UID is generated, which means a restarted
    process still keeps its lease (ownership is decided by name) but the
    owner reference no longer matches the real pod for garbage collection.
    """
    name = settings.pod_name or _detect_name()
    namespace = settings.pod_namespace or _detect_namespace(settings.kubernetes_namespace_file)

    uid = settings.pod_uid
    if not uid:
        uid = str(uuid4())
        logger.warning(
            f"No pod UID configured, generated {uid}; lease will not be garbage collected with the pod"
        )

    return CandidateIdentity(name=name, uid=uid, namespace=namespace)


def validate_identity(identity: CandidateIdentity, env: Environment) -> None:
    """
    Validate the identity is safe to campaign with.

    Raises:
        IdentityError: If the identity is empty, or generic outside development
    """
    if not identity.name or not identity.namespace:
        raise IdentityError(
            f"Candidate identity is incomplete: name={identity.name!r} namespace={identity.namespace!r}"
        )

    # Two replicas sharing a name would both believe they own the lease.
    if env in (Environment.STAGING, Environment.PRODUCTION):
        unsafe_names = ("localhost", "127.0.0.1", "leasegate")
        if identity.name in unsafe_names:
            raise IdentityError(
                f"IDENTITY CONFLICT RISK: name='{identity.name}' is not safe for "
                f"{env.value}. Set POD_NAME from the downward API (metadata.name) "
                f"so every replica campaigns under its own identity."
            )

    logger.info(
        f"Candidate identity: {identity.namespace}/{identity.name} (uid: {identity.uid})"
    )
