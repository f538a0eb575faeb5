"""
Container runtime clients used by the stats collector
"""

import logging
import os
from typing import Any, Dict, List, Optional, Protocol

import docker
from docker.errors import DockerException

from ..errors import RuntimeUnavailableError
from .models import ContainerRef

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 10


class RuntimeClient(Protocol):
    """The three runtime calls the collector needs"""

    def list_running(self) -> List[ContainerRef]:
        ...

    def inspect(self, container_id: str) -> Dict[str, Any]:
        ...

    def stats(self, container_id: str) -> Dict[str, Any]:
        ...


class DockerRuntimeClient:
    """RuntimeClient backed by the Docker Engine API"""

    def __init__(self, client: Optional[docker.DockerClient] = None,
                 timeout: Optional[int] = None):
        if client is None:
            timeout = timeout or int(os.getenv("BLOATJACK_DOCKER_TIMEOUT", DEFAULT_REQUEST_TIMEOUT))
            try:
                client = docker.from_env(timeout=timeout)
                client.ping()
            except DockerException as e:
                raise RuntimeUnavailableError(
                    f"failed to connect to Docker daemon. Is Docker running? ({e})"
                ) from e
        self.client = client

    def list_running(self) -> List[ContainerRef]:
        try:
            containers = self.client.api.containers(filters={"status": "running"})
        except DockerException as e:
            raise RuntimeUnavailableError(f"failed to list containers: {e}") from e

        refs = []
        for container in containers:
            names = container.get("Names") or []
            name = names[0].lstrip("/") if names else container["Id"][:12]
            refs.append(ContainerRef(id=container["Id"], name=name))
        return refs

    def inspect(self, container_id: str) -> Dict[str, Any]:
        return self.client.api.inspect_container(container_id)

    def stats(self, container_id: str) -> Dict[str, Any]:
        # A single decoded frame; precpu_stats is populated so CPU deltas work
        return self.client.api.stats(container_id, stream=False)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "DockerRuntimeClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
