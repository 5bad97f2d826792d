"""Constants shared across the KieApp reconciler."""
from __future__ import annotations

API_GROUP = "app.kiegroup.org"
API_VERSION = f"{API_GROUP}/v2"
KIND = "KieApp"

DEFAULT_VERSION = "7.5.1"
IMAGE_REGISTRY = "registry.redhat.io"

KEYSTORE_ALIAS = "jboss"
KEYSTORE_KEY = "keystore.jks"
KEYSTORE_SECRET = "%s-app-secret"

KIE_SERVER_CM_LABEL = "services.server.kie.org/kie-server-state"
DETACHED = "DETACHED"

HOSTNAME_ENV = "HOSTNAME_HTTPS"

ROUTE_REQUEUE_DELAY = 0.2
