"""Resolution of image references to local ImageStreamTags."""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from . import constants
from .config import OperatorSettings
from .errors import AlreadyExistsError, ClusterError, NotFoundError
from .kube import KieAppAPI
from .resources.base import Kind
from .resources.image_stream_tag import ImageStreamTagConfig
from .resources.kieapp import KieApp

_LOG = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")


def split_image_ref(image_ref: str) -> Tuple[str, str]:
    """Split ``repository[:tag]``; the tag defaults to ``latest``."""

    repository, _, tag = image_ref.partition(":")
    return repository, tag or "latest"


class ImageResolver:
    """Makes sure an image referenced by a build or deployment trigger has a local tag."""

    def __init__(self, api: KieAppAPI, settings: OperatorSettings, logger: Optional[logging.Logger] = None) -> None:
        self.api = api
        self.settings = settings
        self.log = logger or _LOG

    def ensure_local_tag(self, image_ref: str, fallback_namespace: Optional[str], cr: KieApp) -> str:
        """Return the namespace holding a tag for ``image_ref``, creating one in the KieApp namespace if needed."""

        candidates: List[str] = [cr.namespace]
        if cr.spec.image_registry is None and fallback_namespace:
            candidates.insert(0, fallback_namespace)
        for namespace in candidates:
            if self.has_tag(image_ref, namespace):
                return namespace

        self.log.warning("ImageStreamTag %s/%s doesn't exist.", fallback_namespace, image_ref)
        self.create_local_tag(image_ref, cr)
        return cr.namespace

    def has_tag(self, image_ref: str, namespace: str) -> bool:
        repository, tag = split_image_ref(image_ref)
        tag_name = f"{repository}:{tag}"
        try:
            self.api.get(Kind.IMAGE_STREAM_TAG, tag_name, namespace)
        except NotFoundError:
            self.log.debug("ImageStreamTag %s/%s does not exist", namespace, tag_name)
            return False
        except ClusterError as exc:
            self.log.info("Unable to look up ImageStreamTag %s/%s: %s", namespace, tag_name, exc)
            return False
        return True

    def create_local_tag(self, image_ref: str, cr: KieApp) -> None:
        config = self.local_tag_config(image_ref, cr)
        definition = config.to_resource()
        self.log.info("Creating ImageStreamTag %s/%s from %s", config.namespace, config.name, config.from_image)
        try:
            self.api.create(definition)
        except AlreadyExistsError:
            self.log.debug("ImageStreamTag %s/%s already exists", config.namespace, config.name)
        except ClusterError:
            self.log.error("Issue creating ImageStreamTag %s/%s", config.namespace, config.name)
            raise

    def local_tag_config(self, image_ref: str, cr: KieApp) -> ImageStreamTagConfig:
        repository, tag = split_image_ref(image_ref)
        image_name = f"{repository}:{tag}"
        context = f"{cr.spec.product}-{cr.spec.major_version()}"

        registry = cr.spec.image_registry
        insecure = registry.insecure if registry is not None else self.settings.insecure
        address = (registry.registry if registry is not None else None) or self.settings.registry

        if "datagrid" in repository:
            address = constants.IMAGE_REGISTRY
            context = "jboss-datagrid-7"
        elif "amq-broker-7" in repository:
            address = constants.IMAGE_REGISTRY
            context = "amq-broker-7-tech-preview" if "scaledown" in repository else "amq-broker-7"
        elif repository in ("postgresql", "mysql"):
            address = constants.IMAGE_REGISTRY
            context = "rhscl"
            image_name = f"{repository}-{''.join(_DIGITS.findall(tag))}-rhel7:latest"

        return ImageStreamTagConfig(
            repository=repository,
            tag=tag,
            namespace=cr.namespace,
            from_image=f"{address}/{context}/{image_name}",
            insecure=insecure,
        )
