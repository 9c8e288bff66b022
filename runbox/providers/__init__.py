"""Provider package for container runtime integrations."""

from runbox.providers.runtime import ContainerRuntime, DockerRuntime

__all__ = ["ContainerRuntime", "DockerRuntime"]
