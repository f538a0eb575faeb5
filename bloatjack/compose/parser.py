"""
Compose file parsing and service extraction
"""

import logging
from pathlib import Path
from typing import Dict, List, Union

import yaml
from pydantic import ValidationError

from ..errors import ComposeFileError
from ..rules.models import Service
from .models import ComposeFile, ComposeService

logger = logging.getLogger(__name__)

LABEL_PREFIX = "bloatjack."

# image prefix -> kind
KIND_BY_IMAGE = (
    (("postgres", "mysql", "mariadb"), "db"),
    (("redis", "memcached"), "cache"),
    (("nginx", "httpd", "caddy"), "web"),
)

# image prefix -> language runtime
LANG_BY_IMAGE = (
    (("node",), "node"),
    (("python",), "python"),
    (("java", "openjdk", "maven", "gradle"), "java"),
)

# (kind, image prefix) -> engine
ENGINE_BY_IMAGE = {
    "db": (("postgres", "postgres"),),
    "cache": (("redis", "redis"),),
    "web": (("nginx", "nginx"),),
}


def parse_compose_file(file_path: Union[str, Path]) -> ComposeFile:
    """Parse a docker-compose file"""
    path = Path(file_path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ComposeFileError(f"failed to read compose file: {e}")
    except yaml.YAMLError as e:
        raise ComposeFileError(f"failed to parse compose file: {e}")

    if not isinstance(data, dict):
        raise ComposeFileError(f"failed to parse compose file: {path} is not a mapping")

    try:
        return ComposeFile.model_validate(data)
    except ValidationError as e:
        raise ComposeFileError(f"failed to parse compose file: {e}")


def _image_basename(image: str) -> str:
    """'docker.io/library/postgres:16' -> 'postgres:16'"""
    return image.rsplit("/", 1)[-1]


def _first_match(image: str, table) -> str:
    name = _image_basename(image)
    for prefixes, value in table:
        if name.startswith(prefixes):
            return value
    return ""


def extract_service(name: str, compose_service: ComposeService) -> Service:
    """Convert one compose service into a Service.

    User labels prefixed with ``bloatjack.`` win; kind, lang and engine
    are otherwise inferred from the image name.
    """
    metadata: Dict[str, str] = {}
    kind = ""

    for key, value in compose_service.labels.items():
        if key.startswith(LABEL_PREFIX):
            metadata[key[len(LABEL_PREFIX):]] = value

    if "kind" in metadata:
        kind = metadata["kind"]

    image = compose_service.image
    if image:
        if "kind" not in metadata:
            inferred = _first_match(image, KIND_BY_IMAGE)
            if inferred:
                kind = inferred
                metadata["kind"] = inferred

        if "lang" not in metadata:
            lang = _first_match(image, LANG_BY_IMAGE)
            if lang:
                metadata["lang"] = lang

        if "engine" not in metadata and kind in ENGINE_BY_IMAGE:
            engine = _first_match(image, ENGINE_BY_IMAGE[kind])
            if engine:
                metadata["engine"] = engine

    metadata["image"] = image

    limits = compose_service.limits
    if limits is not None:
        if limits.memory:
            metadata["memory_limit"] = limits.memory
        if limits.cpus:
            metadata["cpu_limit"] = limits.cpus

    # current values of the keys rules suggest
    if compose_service.mem_limit:
        metadata["mem_limit"] = compose_service.mem_limit
    elif "memory_limit" in metadata:
        metadata["mem_limit"] = metadata["memory_limit"]
    if compose_service.cpus:
        metadata["cpus"] = compose_service.cpus
    elif "cpu_limit" in metadata:
        metadata["cpus"] = metadata["cpu_limit"]

    return Service(name=name, kind=kind, metadata=metadata)


def extract_services(compose: ComposeFile) -> List[Service]:
    """Convert all compose services, sorted by name"""
    services = [extract_service(name, svc) for name, svc in sorted(compose.services.items())]
    logger.debug("Extracted %d services", len(services))
    return services
